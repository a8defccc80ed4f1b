"""
Unit tests for jobs/retry.py - error classification and backoff
"""
import pytest

from polylingo.ai.exceptions import ConfigurationError, ContentSourceError, ProviderError
from polylingo.jobs.retry import AUTH_MESSAGE, QUOTA_MESSAGE, ErrorClass, RetryPolicy


@pytest.fixture
def policy():
    return RetryPolicy(max_retries=3, base_delay=2.0)


class TestClassify:

    @pytest.mark.parametrize("status_code", [429, 500, 502, 503, 504])
    def test_retryable_status_codes(self, policy, status_code):
        assert policy.classify(ProviderError("boom", status_code=status_code)) == ErrorClass.RETRYABLE

    @pytest.mark.parametrize("status_code", [400, 401, 403, 404])
    def test_fatal_status_codes(self, policy, status_code):
        assert policy.classify(ProviderError("boom", status_code=status_code)) == ErrorClass.FATAL

    def test_content_source_errors_use_the_same_rules(self, policy):
        assert policy.classify(ContentSourceError("x", status_code=503)) == ErrorClass.RETRYABLE
        assert policy.classify(ContentSourceError("x", status_code=404)) == ErrorClass.FATAL

    @pytest.mark.parametrize("code", ["timeout", "network"])
    def test_transport_failures_are_retryable(self, policy, code):
        assert policy.classify(ProviderError("request failed", code=code)) == ErrorClass.RETRYABLE

    @pytest.mark.parametrize("message", [
        "429 Too Many Requests",
        "Rate limit exceeded",
        "RESOURCE_EXHAUSTED",
        "upstream returned 503",
        "Internal error encountered",
        "Service Unavailable",
    ])
    def test_retryable_messages(self, policy, message):
        assert policy.classify(RuntimeError(message)) == ErrorClass.RETRYABLE

    @pytest.mark.parametrize("message", [
        "Content 4290 not found",
        "Post 15003 has no title",
        "Job 5002 was cancelled",
    ])
    def test_ids_containing_status_digits_are_not_retryable(self, policy, message):
        assert policy.classify(RuntimeError(message)) == ErrorClass.FATAL

    def test_unknown_errors_are_fatal(self, policy):
        assert policy.classify(RuntimeError("something odd")) == ErrorClass.FATAL
        assert policy.classify(KeyError("candidates")) == ErrorClass.FATAL

    def test_configuration_errors_are_always_fatal(self, policy):
        error = ConfigurationError("Gemini API key not configured, rate limit unknown")
        assert policy.classify(error) == ErrorClass.FATAL


class TestBackoff:

    def test_delays_double(self, policy):
        assert [policy.next_delay(n) for n in range(4)] == [2.0, 4.0, 8.0, 16.0]

    def test_should_retry_until_budget_is_spent(self, policy):
        error = ProviderError("busy", status_code=503)
        assert policy.should_retry(error, 0)
        assert policy.should_retry(error, 2)
        assert not policy.should_retry(error, 3)

    def test_fatal_is_never_retried(self, policy):
        assert not policy.should_retry(ProviderError("denied", status_code=401), 0)

    def test_zero_retries(self):
        assert not RetryPolicy(max_retries=0).should_retry(ProviderError("busy", status_code=503), 0)


class TestUserMessage:

    def test_quota_errors_are_rewritten(self, policy):
        assert policy.user_message(ProviderError("Gemini API error (429): Quota", status_code=429)) == QUOTA_MESSAGE
        assert policy.user_message(RuntimeError("You exceeded your current quota")) == QUOTA_MESSAGE

    def test_auth_errors_are_rewritten(self, policy):
        assert policy.user_message(ProviderError("forbidden", status_code=403)) == AUTH_MESSAGE

    @pytest.mark.parametrize("content_id", [4290, 14293, 4295])
    def test_status_code_decides_over_message_digits(self, policy, content_id):
        message = f"Content {content_id} not found"
        assert policy.user_message(ContentSourceError(message, status_code=404)) == message
        assert policy.user_message(RuntimeError(message)) == message

    def test_status_code_wins_over_quota_words(self, policy):
        error = ProviderError("Bad request: quota field missing", status_code=400)
        assert policy.user_message(error) == "Bad request: quota field missing"

    def test_deepl_quota_status(self, policy):
        assert policy.user_message(ProviderError("Quota exceeded", status_code=456)) == QUOTA_MESSAGE

    def test_other_errors_keep_their_text(self, policy):
        assert policy.user_message(ProviderError("Content 5 not found", status_code=404)) == "Content 5 not found"
        assert policy.user_message(KeyError()) == "KeyError"
