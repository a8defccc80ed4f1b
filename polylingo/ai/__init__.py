"""
AI Module

This module provides the translation provider clients and the shared
exception hierarchy. Provider construction lives in ai/service.py.
"""

from polylingo.ai.exceptions import (
    TranslationError,
    ConfigurationError,
    UpstreamError,
    ProviderError,
    ContentSourceError,
    JobNotFoundError,
    InvalidTransitionError,
)

__all__ = [
    'TranslationError',
    'ConfigurationError',
    'UpstreamError',
    'ProviderError',
    'ContentSourceError',
    'JobNotFoundError',
    'InvalidTransitionError',
]
