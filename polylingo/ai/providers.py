"""
Translation Provider Clients

This module contains the API call implementations for each provider:
- Gemini (generateContent REST API)
- DeepL
- MyMemory (keyless)

Every provider exposes translate_title() and translate_body() coroutines and
records the token cost of its most recent call in last_token_usage. A provider
instance belongs to one job run, so the counters never mix jobs.
"""

import re
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Type

import httpx

from polylingo.logger import get_logger
from polylingo.ai.exceptions import ProviderError, UpstreamError
from polylingo import language_codes as lc
from polylingo.jobs.models import TranslationResult

logger = get_logger(__name__)

DEEPL_FREE_URL = "https://api-free.deepl.com/v2/translate"
DEEPL_PRO_URL = "https://api.deepl.com/v2/translate"

_CODE_FENCE = re.compile(r"^```[a-zA-Z]*\s*\n?|\n?```\s*$")


def get_httpx_timeout(timeout_config: Any) -> httpx.Timeout:
    """
    Convert timeout configuration to httpx.Timeout object.

    Args:
        timeout_config: Either a number (read timeout) or a dict with
            connect, write, read, pool keys

    Returns:
        httpx.Timeout object
    """
    if isinstance(timeout_config, dict):
        return httpx.Timeout(
            connect=timeout_config.get('connect', 10.0),
            write=timeout_config.get('write', 60.0),
            read=timeout_config.get('read', 120.0),
            pool=timeout_config.get('pool', 10.0),
        )
    timeout_value = float(timeout_config) if timeout_config else 120.0
    return httpx.Timeout(connect=10.0, write=60.0, read=timeout_value, pool=10.0)


def handle_http_error(e: httpx.HTTPStatusError, service: str,
                      error_cls: Type[UpstreamError] = ProviderError):
    """Raise error_cls carrying the status code and the upstream error message."""
    status_code = e.response.status_code
    error_text = "Unknown error"

    try:
        error_json = e.response.json()
        if isinstance(error_json, dict) and "error" in error_json:
            error_detail = error_json["error"]
            if isinstance(error_detail, dict):
                error_text = error_detail.get("message", str(error_detail))
            else:
                error_text = str(error_detail)
        elif isinstance(error_json, dict) and "message" in error_json:
            error_text = str(error_json["message"])
    except ValueError:
        error_text = e.response.text[:500] or "No details"

    raise error_cls(
        f"{service} API error ({status_code}): {error_text}",
        status_code=status_code,
        details={"service": service},
    ) from None


def language_label(code: str) -> str:
    """Language name for prompts, falling back to the raw code."""
    return lc.get_language_name(code) or code


class TranslationProvider(ABC):
    """
    Abstract base class for translation providers.

    Subclasses implement _translate(); the HTTP plumbing, error mapping and
    token accounting live here.
    """

    name = "provider"
    display_name = "Provider"

    def __init__(self, provider_config: Dict[str, Any], client: Optional[httpx.AsyncClient] = None):
        self.config = provider_config or {}
        self.timeout = get_httpx_timeout(self.config.get('timeout', 120))
        self._client = client
        self.last_token_usage = 0
        self.total_tokens = 0

    def _record_usage(self, tokens: int) -> None:
        self.last_token_usage = tokens
        self.total_tokens += tokens

    async def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        """Send one HTTP request, mapping failures to ProviderError."""
        try:
            if self._client is not None:
                response = await self._client.request(method, url, **kwargs)
                response.raise_for_status()
                return response
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.request(method, url, **kwargs)
                response.raise_for_status()
                return response
        except httpx.HTTPStatusError as e:
            logger.debug(f"{self.display_name} HTTP error: {e.response.status_code} - {e.response.text[:200]}")
            handle_http_error(e, self.display_name)
        except httpx.TimeoutException as e:
            raise ProviderError(f"{self.display_name} API request timeout", code="timeout") from e
        except httpx.TransportError as e:
            raise ProviderError(f"{self.display_name} API network error: {e}", code="network") from e

    @abstractmethod
    async def _translate(self, text: str, source_lang: str, target_lang: str,
                         instructions: Optional[str], is_title: bool) -> TranslationResult:
        """Translate one piece of text."""

    async def translate_title(self, text: str, source_lang: str, target_lang: str) -> str:
        result = await self._translate(text, source_lang, target_lang, None, True)
        self._record_usage(result.tokens_used)
        return result.text

    async def translate_body(self, text: str, source_lang: str, target_lang: str,
                             instructions: Optional[str] = None) -> TranslationResult:
        result = await self._translate(text, source_lang, target_lang, instructions, False)
        self._record_usage(result.tokens_used)
        return result


class GeminiProvider(TranslationProvider):
    name = "gemini"
    display_name = "Gemini"

    async def _generate(self, prompt: str, system_instruction: Optional[str] = None) -> TranslationResult:
        api_key = self.config.get('api_key', '')
        model = self.config.get('model') or 'gemini-2.5-flash'
        api_url = (self.config.get('api_url')
                   or 'https://generativelanguage.googleapis.com/v1beta/models').rstrip('/')

        body: Dict[str, Any] = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {"maxOutputTokens": 8192},
        }
        if system_instruction:
            body["systemInstruction"] = {"parts": [{"text": system_instruction}]}

        logger.debug(f"Calling Gemini API: {model}")
        response = await self._request(
            "POST", f"{api_url}/{model}:generateContent", params={"key": api_key}, json=body
        )
        result = response.json()

        usage_metadata = result.get('usageMetadata', {})
        tokens = usage_metadata.get('totalTokenCount', 0)
        if not usage_metadata:
            logger.warning(f"Gemini token usage not found. Response keys: {list(result.keys())}")

        candidates = result.get('candidates') or []
        if candidates:
            parts = candidates[0].get('content', {}).get('parts') or []
            if parts and parts[0].get('text'):
                return TranslationResult(parts[0]['text'], tokens)

        raise ProviderError("Unexpected Gemini API response format", code="bad_response",
                            details={"keys": list(result.keys())})

    @staticmethod
    def _clean_title(raw: str, fallback: str) -> str:
        """Models sometimes wrap a title in quotes or markdown, or add a second line."""
        for line in raw.splitlines():
            line = line.strip().strip('*').strip().strip('"\'“”«»').strip()
            if line:
                return line
        return fallback

    @staticmethod
    def _clean_body(raw: str) -> str:
        return _CODE_FENCE.sub('', raw.strip())

    async def _translate(self, text, source_lang, target_lang, instructions, is_title):
        source_name = language_label(source_lang)
        target_name = language_label(target_lang)
        if is_title:
            prompt = (f"Translate ONLY this title from {source_name} to {target_name}, "
                      f"return ONLY the translated text without quotes or explanations:\n\n{text}")
            result = await self._generate(prompt)
            return TranslationResult(self._clean_title(result.text, text), result.tokens_used)

        prompt = (f"Translate this HTML from {source_name} to {target_name}. "
                  f"Preserve all shortcodes and HTML structure:\n\n{text}")
        result = await self._generate(prompt, instructions)
        return TranslationResult(self._clean_body(result.text), result.tokens_used)


class DeepLProvider(TranslationProvider):
    """DeepL has no token notion; usage is counted in characters sent."""

    name = "deepl"
    display_name = "DeepL"

    def _endpoint(self) -> str:
        if self.config.get('api_url'):
            return self.config['api_url']
        api_key = self.config.get('api_key', '')
        return DEEPL_FREE_URL if api_key.endswith(':fx') else DEEPL_PRO_URL

    async def _translate(self, text, source_lang, target_lang, instructions, is_title):
        data = {
            "text": text,
            "source_lang": lc.to_deepl_code(source_lang),
            "target_lang": lc.to_deepl_code(target_lang, target=True),
            "preserve_formatting": "1",
        }
        if not is_title:
            data["tag_handling"] = "html"

        response = await self._request(
            "POST",
            self._endpoint(),
            headers={"Authorization": f"DeepL-Auth-Key {self.config.get('api_key', '')}"},
            data=data,
        )
        translations = response.json().get('translations') or []
        if not translations:
            raise ProviderError("No translations in DeepL response", code="bad_response")
        return TranslationResult(translations[0].get('text', ''), len(text))


class MyMemoryProvider(TranslationProvider):
    """Free MyMemory API. Errors arrive as HTTP 200 with responseStatus set."""

    name = "mymemory"
    display_name = "MyMemory"

    async def _translate(self, text, source_lang, target_lang, instructions, is_title):
        api_url = self.config.get('api_url') or 'https://api.mymemory.translated.net/get'
        params = {
            "q": text,
            "langpair": f"{lc.to_mymemory_code(source_lang)}|{lc.to_mymemory_code(target_lang)}",
        }
        response = await self._request("GET", api_url, params=params)
        result = response.json()

        status = result.get('responseStatus', 200)
        try:
            status_code = int(status)
        except (TypeError, ValueError):
            status_code = 500
        if status_code != 200:
            details = result.get('responseDetails') or 'Unknown error'
            raise ProviderError(f"MyMemory API error ({status_code}): {details}", status_code=status_code)

        translated = (result.get('responseData') or {}).get('translatedText', '')
        return TranslationResult(translated, 0)


PROVIDER_CLASSES = {
    GeminiProvider.name: GeminiProvider,
    DeepLProvider.name: DeepLProvider,
    MyMemoryProvider.name: MyMemoryProvider,
}
