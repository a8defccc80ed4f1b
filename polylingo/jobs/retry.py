"""
Retry policy: error classification and exponential backoff.
"""

import re
from enum import Enum

from polylingo.ai.exceptions import ConfigurationError, UpstreamError

RETRYABLE_STATUS_CODES = (429, 500, 502, 503, 504)

# UpstreamError codes for failures without an HTTP status
TRANSIENT_CODES = ("timeout", "network")

# Status codes quoted in messages of errors that carry no status_code; matched as whole tokens
RETRYABLE_STATUS_PATTERN = re.compile(r"\b(?:429|500|502|503|504)\b")

# Lower-cased fragments of transient upstream failures
RETRYABLE_MARKERS = (
    "rate limit",
    "too many requests",
    "resource exhausted",
    "resource_exhausted",
    "internal",
    "unavailable",
    "timeout",
    "timed out",
)

QUOTA_STATUS_CODES = (429, 456)  # 456: DeepL quota exceeded
AUTH_STATUS_CODES = (401, 403)
QUOTA_STATUS_PATTERN = re.compile(r"\b429\b")
QUOTA_MARKERS = ("quota", "rate limit", "too many requests", "resource exhausted",
                 "resource_exhausted")

QUOTA_MESSAGE = ("Translation provider quota exceeded. "
                 "Check your provider dashboard for limits and billing.")
AUTH_MESSAGE = ("Translation provider rejected the credentials. "
                "Check the API key in Settings.")


class ErrorClass(str, Enum):
    RETRYABLE = "retryable"
    FATAL = "fatal"


class RetryPolicy:
    """Decides retry vs. permanent failure and the delay before each retry."""

    def __init__(self, max_retries: int = 3, base_delay: float = 2.0):
        """
        Args:
            max_retries: Retries allowed per job after the first attempt
            base_delay: Delay in seconds before the first retry, doubled on each following one
        """
        self.max_retries = max_retries
        self.base_delay = base_delay

    def classify(self, error: Exception) -> ErrorClass:
        """Retryable for throttling and transient upstream failures, fatal for everything else."""
        if isinstance(error, ConfigurationError):
            return ErrorClass.FATAL

        if isinstance(error, UpstreamError):
            if error.status_code is not None:
                if error.status_code in RETRYABLE_STATUS_CODES:
                    return ErrorClass.RETRYABLE
                return ErrorClass.FATAL
            if error.code in TRANSIENT_CODES:
                return ErrorClass.RETRYABLE

        error_str = str(error).lower()
        if RETRYABLE_STATUS_PATTERN.search(error_str) or any(marker in error_str for marker in RETRYABLE_MARKERS):
            return ErrorClass.RETRYABLE
        return ErrorClass.FATAL

    def next_delay(self, attempt: int) -> float:
        """Seconds to wait before retry number `attempt` (0 for the first retry)."""
        return self.base_delay * (2 ** attempt)

    def should_retry(self, error: Exception, attempts: int) -> bool:
        """True when the error is retryable and the job has retries left."""
        return self.classify(error) == ErrorClass.RETRYABLE and attempts < self.max_retries

    def user_message(self, error: Exception) -> str:
        """Human-readable failure message; raw quota and auth errors get actionable text."""
        status_code = getattr(error, "status_code", None)
        if status_code is not None:
            if status_code in QUOTA_STATUS_CODES:
                return QUOTA_MESSAGE
            if status_code in AUTH_STATUS_CODES:
                return AUTH_MESSAGE
            return str(error) or type(error).__name__

        error_str = str(error).lower()
        if QUOTA_STATUS_PATTERN.search(error_str) or any(marker in error_str for marker in QUOTA_MARKERS):
            return QUOTA_MESSAGE
        return str(error) or type(error).__name__
