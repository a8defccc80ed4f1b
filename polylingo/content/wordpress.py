"""
WordPress Content Source

Fetches posts/pages through the WordPress REST API and publishes translations
linked through Polylang's `lang` / `translations` fields.

Authentication is HTTP Basic with either the account password or an
application password.
"""

import html
import re
from typing import Any, Dict, Optional

import httpx

from polylingo.logger import get_logger
from polylingo.config import is_placeholder
from polylingo.ai.exceptions import ConfigurationError, ContentSourceError
from polylingo.ai.providers import get_httpx_timeout, handle_http_error
from polylingo.jobs.models import ContentItem

logger = get_logger(__name__)

USER_AGENT = "WP-PolyLingo-Translator/1.0"
MAX_DECODE_PASSES = 10

_IMG_TAG = re.compile(r"<img\s+([^>]*?)/?>", re.IGNORECASE)
_ALT_ATTR = re.compile(r"""\balt\s*=\s*["'].*?["']""", re.IGNORECASE)


def decode_html(text: str) -> str:
    """
    Decode HTML entities until the text stops changing.

    Handles double-encoded entities like &amp;lt; coming from page builders.

    Examples:
        >>> decode_html('&amp;lt;p&amp;gt;Hi&amp;lt;/p&amp;gt;')
        '<p>Hi</p>'
    """
    if not text:
        return text
    result = text
    for _ in range(MAX_DECODE_PASSES):
        decoded = html.unescape(result)
        if decoded == result:
            break
        result = decoded
    return result


def ensure_image_alt_attributes(markup: str) -> str:
    """Add alt="Image" to every <img> tag that has no alt attribute."""
    if not markup:
        return markup

    def _add_alt(match):
        tag = match.group(0)
        if _ALT_ATTR.search(tag):
            return tag
        return f'<img {match.group(1).strip()} alt="Image">'

    return _IMG_TAG.sub(_add_alt, markup)


class WordPressClient:
    """Async client for one WordPress site."""

    def __init__(self, base_url: str, username: str, password: str, timeout: Any = 60,
                 client: Optional[httpx.AsyncClient] = None):
        if not base_url or not base_url.strip():
            raise ConfigurationError(
                "WordPress URL not configured. Please set it in Settings.",
                details={"missing_field": "wordpress.url"}
            )
        if not username or is_placeholder(password):
            raise ConfigurationError(
                "WordPress credentials not configured. Please set them in Settings.",
                details={"missing_field": "wordpress.username/password"}
            )
        self.base_url = base_url.strip().rstrip('/')
        self.auth = httpx.BasicAuth(username, password)
        self.timeout = get_httpx_timeout(timeout)
        self._client = client

    @classmethod
    def from_config(cls, config: Dict[str, Any], client: Optional[httpx.AsyncClient] = None) -> 'WordPressClient':
        wp = config.get('wordpress', {})
        return cls(wp.get('url', ''), wp.get('username', ''), wp.get('password', ''),
                   timeout=wp.get('timeout', 60), client=client)

    def _url(self, path: str) -> str:
        return f"{self.base_url}/wp-json/wp/v2/{path.lstrip('/')}"

    async def _request(self, method: str, path: str, allow_404: bool = False, **kwargs) -> Optional[httpx.Response]:
        """
        Send one authenticated request.

        Returns None instead of raising when allow_404 is set and the resource is missing.
        """
        headers = {"User-Agent": USER_AGENT, **kwargs.pop("headers", {})}
        try:
            if self._client is not None:
                response = await self._client.request(method, self._url(path), auth=self.auth,
                                                      headers=headers, **kwargs)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.request(method, self._url(path), auth=self.auth,
                                                    headers=headers, **kwargs)
            if allow_404 and response.status_code == 404:
                return None
            response.raise_for_status()
            return response
        except httpx.HTTPStatusError as e:
            handle_http_error(e, "WordPress", ContentSourceError)
        except httpx.TimeoutException as e:
            raise ContentSourceError("WordPress request timeout", code="timeout") from e
        except httpx.TransportError as e:
            raise ContentSourceError(f"WordPress network error: {e}", code="network") from e

    async def _get_raw(self, content_id: int) -> Dict[str, Any]:
        """GET a post, falling back to pages when the id is not a post."""
        response = await self._request("GET", f"posts/{content_id}", allow_404=True)
        if response is None:
            logger.debug(f"Post {content_id} not found, trying pages")
            response = await self._request("GET", f"pages/{content_id}", allow_404=True)
        if response is None:
            raise ContentSourceError(f"Content {content_id} not found", status_code=404,
                                     details={"content_id": content_id})
        return response.json()

    async def fetch(self, content_id: int) -> ContentItem:
        """Fetch a post or page with its title and body prepared for translation."""
        data = await self._get_raw(content_id)

        title = decode_html((data.get('title') or {}).get('rendered', ''))
        body = decode_html((data.get('content') or {}).get('rendered', ''))
        if not body.strip():
            body = ""

        return ContentItem(
            id=data.get('id', content_id),
            title=title,
            body=body,
            post_type='page' if data.get('type') == 'page' else 'post',
            language=data.get('lang'),
            translations=data.get('translations') or {},
            categories=data.get('categories') or [],
            tags=data.get('tags') or [],
        )

    async def publish(self, content_id: int, target_language: str, title: str, body: str) -> int:
        """
        Create or update the target-language translation of a content item.

        Idempotent: when Polylang already links a translation for
        target_language, that item is updated in place.

        Returns:
            ID of the published translation
        """
        source = await self.fetch(content_id)
        endpoint = 'pages' if source.post_type == 'page' else 'posts'
        payload: Dict[str, Any] = {
            "title": title,
            "content": ensure_image_alt_attributes(decode_html(body)),
            "status": "publish",
        }
        if source.categories:
            payload["categories"] = source.categories
        if source.tags:
            payload["tags"] = source.tags

        existing_id = source.translations.get(target_language)
        if existing_id and existing_id != source.id:
            logger.info(f"Updating existing {source.post_type} translation #{existing_id} ({target_language})")
            await self._request("PUT", f"{endpoint}/{existing_id}", json=payload)
            return existing_id

        payload["lang"] = target_language
        payload["translations"] = {source.language or 'en': source.id}
        logger.info(f"Creating {source.post_type} translation of #{source.id} ({target_language})")
        response = await self._request("POST", endpoint, json=payload)
        new_id = response.json().get('id')
        if not new_id:
            raise ContentSourceError("WordPress did not return the new item id", code="bad_response")
        return new_id

    async def test_connection(self) -> Dict[str, Any]:
        """Check the credentials; returns the authenticated user."""
        response = await self._request("GET", "users/me")
        user = response.json()
        return {"success": True, "user": user.get('name') or user.get('slug', '')}
