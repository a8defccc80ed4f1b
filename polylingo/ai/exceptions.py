"""
Translation Exceptions

This module contains the exception hierarchy shared by the providers, the
content source client and the job scheduler.
Separated to avoid circular imports between service.py, providers.py and jobs/.
"""

from typing import Optional


class TranslationError(Exception):
    """Translation service error with optional code and details."""

    def __init__(self, message: str, code: str = None, details: dict = None):
        super().__init__(message)
        self.code = code
        self.details = details or {}


class ConfigurationError(TranslationError):
    """Missing or placeholder settings (API key, WordPress URL). Never retried."""

    def __init__(self, message: str, code: str = "config_missing", details: dict = None):
        super().__init__(message, code=code, details=details)


class UpstreamError(TranslationError):
    """An external HTTP service answered with an error or did not answer at all."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        code: str = None,
        details: dict = None,
    ):
        super().__init__(message, code=code, details=details)
        self.status_code = status_code


class ProviderError(UpstreamError):
    """Translation provider call failed."""


class ContentSourceError(UpstreamError):
    """WordPress (content source) call failed."""


class JobNotFoundError(TranslationError):
    """The durable job record does not exist (never created or deleted mid-flight)."""

    def __init__(self, job_id: str):
        super().__init__(f"Job {job_id} not found", code="job_not_found", details={"job_id": job_id})
        self.job_id = job_id


class InvalidTransitionError(TranslationError):
    """A job status change outside the allowed state machine."""

    def __init__(self, current: str, target: str):
        super().__init__(
            f"Invalid transition: {current} -> {target}",
            code="invalid_transition",
            details={"current": current, "target": target},
        )
