"""
Translation Provider Service

- Configuration validation
- Provider factory

For the provider API implementations, see ai/providers.py
"""

from typing import Any, Dict, Optional

import httpx

from polylingo.config import BUILTIN_PROVIDER_DISPLAY_NAMES, KEYLESS_PROVIDERS, is_placeholder
from polylingo.logger import get_logger
from polylingo.ai.exceptions import ConfigurationError
from polylingo.ai.providers import PROVIDER_CLASSES, TranslationProvider

logger = get_logger(__name__)


def _selected_provider(config: Dict[str, Any], provider_override: Optional[str]) -> str:
    return provider_override if provider_override else config.get('translation_provider', 'gemini')


def validate_ai_config(config: Dict[str, Any], provider_override: Optional[str] = None) -> None:
    """
    Validate that the translation provider configuration is properly set up.

    Args:
        config: Application configuration
        provider_override: Optional provider to validate instead of the configured one.

    Raises:
        ConfigurationError: If configuration is invalid or missing, with code and details.
    """
    provider = _selected_provider(config, provider_override)

    if provider not in PROVIDER_CLASSES:
        raise ConfigurationError(
            f"Unknown translation provider '{provider}'",
            code="ai_config_missing",
            details={"provider": provider}
        )

    provider_display = BUILTIN_PROVIDER_DISPLAY_NAMES.get(provider, provider.capitalize())
    provider_config = config.get(provider)
    if provider not in KEYLESS_PROVIDERS:
        if not isinstance(provider_config, dict):
            raise ConfigurationError(
                f"{provider_display} configuration not found",
                code="ai_config_missing",
                details={"provider": provider}
            )
        if is_placeholder(provider_config.get('api_key', '')):
            raise ConfigurationError(
                f"{provider_display} API key not configured. Please set it in Settings.",
                code="ai_config_missing",
                details={"provider": provider, "missing_field": "api_key"}
            )


def create_provider(
    config: Dict[str, Any],
    provider_override: Optional[str] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> TranslationProvider:
    """
    Build a fresh provider for one job run.

    Args:
        config: Application configuration
        provider_override: Optional provider name instead of translation_provider
        client: Optional shared httpx.AsyncClient (tests inject a MockTransport client)
    """
    provider = _selected_provider(config, provider_override)
    provider_cls = PROVIDER_CLASSES.get(provider)
    if provider_cls is None:
        raise ConfigurationError(
            f"Unknown translation provider '{provider}'",
            code="ai_config_missing",
            details={"provider": provider}
        )

    logger.debug(f"Creating translation provider: {provider}")
    return provider_cls(config.get(provider, {}), client=client)
