"""Generic page extractor.

Fetches one URL, strips boilerplate and isolates the main text. The public
``extract()`` never raises: every failure becomes a PageRecord whose content
explains what went wrong, so the agent can still answer conversationally.
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
from typing import Iterable, List, Optional, Sequence, Tuple
from urllib.parse import urlparse

import httpx
from bs4 import BeautifulSoup, Tag

from ..config import ExtractorConfig
from ..models.page import PageRecord
from .mirror_client import browser_headers
from .site_handlers import SiteProfile, get_site_profile, render_reddit_listing

logger = logging.getLogger(__name__)

TRUNCATION_MARKER = "... [content truncated]"
NO_TITLE = "No title"
NO_CONTENT = "No content extracted"
ERROR_TITLE = "Scraping Error"

HTML_CONTENT_TYPES = ("text/html", "application/xhtml+xml")
JSON_CONTENT_TYPES = ("application/json",)

# Structural regions removed before text extraction
STRIP_TAGS = frozenset({
    "nav", "header", "footer", "script", "style", "iframe",
    "noscript", "aside", "form", "svg",
})
STRIP_NAME_FRAGMENTS = ("nav", "menu", "sidebar", "banner", "footer", "header", "cookie", "popup")
STRIP_ROLES = frozenset({"navigation", "banner", "contentinfo", "complementary"})
PROTECTED_TAGS = frozenset({"html", "body", "main", "article"})
_AD_TOKEN = re.compile(r"^(?:ads?|advert\w*|sponsor\w*)(?:[-_].*)?$|[-_](?:ads?|advert\w*|sponsor\w*)$")

# Tried in order; the first with enough text wins
CONTENT_SELECTORS: Tuple[str, ...] = (
    "main",
    "article",
    '[role="main"]',
    ".content",
    "#content",
    ".main",
    "#main",
    ".post",
    ".article",
    ".post-content",
    ".entry-content",
    ".page-content",
    "#bodyContent",
    ".mw-body",
)
FALLBACK_SELECTOR = "p, h1, h2, h3, h4, h5, h6"

_DNS_MARKERS = (
    "name or service not known",
    "nodename nor servname",
    "getaddrinfo failed",
    "temporary failure in name resolution",
    "no address associated with hostname",
    "name resolution",
)


class NonHtmlContentError(Exception):
    """The response is not a document type we can extract."""

    def __init__(self, content_type: str):
        super().__init__(f"Unsupported content type: {content_type}")
        self.content_type = content_type


class ResponseTooLargeError(Exception):
    """The response body exceeded the configured byte limit."""


# =============================================================================
# Text helpers
# =============================================================================


def normalize_whitespace(text: str) -> str:
    """Collapse space runs and blank-line runs; trim every line."""
    text = re.sub(r"[^\S\n]+", " ", text)
    text = "\n".join(line.strip() for line in text.split("\n"))
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()


def truncate(text: str, max_length: int) -> str:
    if len(text) <= max_length:
        return text
    return text[:max_length] + TRUNCATION_MARKER


def is_http_url(url: Optional[str]) -> bool:
    if not url or not isinstance(url, str):
        return False
    parsed = urlparse(url.strip())
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def _identifiers(tag: Tag) -> List[str]:
    names = []
    tag_id = tag.get("id")
    if isinstance(tag_id, str):
        names.append(tag_id.lower())
    classes = tag.get("class") or []
    if isinstance(classes, str):
        classes = classes.split()
    names.extend(c.lower() for c in classes)
    return names


def is_boilerplate(tag: Tag) -> bool:
    """Whether ``tag`` is navigation, chrome or advertising."""
    if tag.name in STRIP_TAGS:
        return True
    if tag.name in PROTECTED_TAGS:
        return False
    role = tag.get("role")
    if isinstance(role, str) and role.lower() in STRIP_ROLES:
        return True
    for name in _identifiers(tag):
        if any(fragment in name for fragment in STRIP_NAME_FRAGMENTS):
            return True
        if _AD_TOKEN.search(name):
            return True
    return False


def strip_boilerplate(soup: BeautifulSoup) -> None:
    for tag in soup.find_all(is_boilerplate):
        if not tag.decomposed:
            tag.decompose()


def _outermost(elements: Sequence[Tag]) -> List[Tag]:
    chosen = set(id(el) for el in elements)
    return [el for el in elements if not any(id(p) in chosen for p in el.parents)]


def _joined_text(elements: Iterable[Tag]) -> str:
    parts = (el.get_text(" ", strip=True) for el in elements)
    return normalize_whitespace("\n\n".join(p for p in parts if p))


def extract_main_content(
    html: str,
    min_length: int = 100,
    max_length: int = 10_000,
    extra_selectors: Sequence[str] = (),
) -> Tuple[str, str]:
    """Pick the main text of an HTML document.

    Order: site-specific and generic content selectors (first candidate with
    more than ``min_length`` characters), then every paragraph/heading, then
    the whole body.

    Returns:
        (title, content) with content truncated to ``max_length``
    """
    soup = BeautifulSoup(html, "html.parser")
    title = soup.title.get_text(strip=True) if soup.title else ""

    strip_boilerplate(soup)

    content = ""
    for selector in (*extra_selectors, *CONTENT_SELECTORS):
        elements = soup.select(selector)
        if not elements:
            continue
        candidate = _joined_text(_outermost(elements))
        if len(candidate) > min_length:
            content = candidate
            break

    if not content:
        content = _joined_text(soup.select(FALLBACK_SELECTOR))

    if len(content) < min_length:
        root = soup.body or soup
        content = normalize_whitespace(root.get_text(" ", strip=True))

    return title or NO_TITLE, truncate(content, max_length) or NO_CONTENT


# =============================================================================
# Extractor
# =============================================================================


class PageExtractor:
    """
    Fetches pages and turns them into PageRecords.

    Usage:
        extractor = PageExtractor()
        record = await extractor.extract("https://example.com/article")
    """

    def __init__(
        self,
        config: Optional[ExtractorConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.config = config or ExtractorConfig()
        self._transport = transport

    def _new_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=httpx.Timeout(self.config.timeout),
            follow_redirects=True,
            transport=self._transport,
        )

    async def _download(
        self,
        url: str,
        profile: SiteProfile,
        allowed_types: Sequence[str],
    ) -> str:
        """GET ``url`` with the size cap and content-type gate applied."""
        headers = browser_headers(self.config.user_agents)
        headers.update(profile.headers)
        limit = self.config.max_response_bytes

        async with self._new_client() as client:
            async with client.stream("GET", url, headers=headers) as response:
                response.raise_for_status()

                content_type = response.headers.get("content-type", "").lower()
                if not any(t in content_type for t in allowed_types):
                    raise NonHtmlContentError(content_type or "unknown")

                declared = response.headers.get("content-length")
                if declared and declared.isdigit() and int(declared) > limit:
                    raise ResponseTooLargeError(f"Declared size {declared} exceeds {limit} bytes")

                body = bytearray()
                async for chunk in response.aiter_bytes():
                    body.extend(chunk)
                    if len(body) > limit:
                        raise ResponseTooLargeError(f"Response exceeded {limit} bytes")

                return body.decode(response.encoding or "utf-8", errors="replace")

    async def _extract_reddit(self, url: str, profile: SiteProfile) -> PageRecord:
        body = await self._download(profile.json_url or url, profile, JSON_CONTENT_TYPES)
        title, text = render_reddit_listing(json.loads(body))
        content = truncate(normalize_whitespace(text), self.config.max_content_length)
        return PageRecord(url=url, title=title, content=content or NO_CONTENT)

    async def _extract_html(self, url: str, profile: SiteProfile) -> PageRecord:
        html = await self._download(url, profile, HTML_CONTENT_TYPES)

        # Parsing is CPU-bound; keep it off the event loop
        loop = asyncio.get_running_loop()
        title, content = await loop.run_in_executor(
            None,
            lambda: extract_main_content(
                html,
                min_length=self.config.min_content_length,
                max_length=self.config.max_content_length,
                extra_selectors=profile.content_selectors,
            ),
        )
        return PageRecord(url=url, title=title, content=content)

    async def extract(self, url: str) -> PageRecord:
        """Fetch and extract ``url``. Never raises."""
        if not is_http_url(url):
            return PageRecord(
                url=str(url or ""),
                title="Invalid URL",
                content="Invalid URL format",
                error="invalid_url",
            )

        url = url.strip()
        profile = get_site_profile(url)
        logger.info(f"Scraping URL: {url}", extra={"site": profile.site.value})

        try:
            if profile.json_url:
                return await self._extract_reddit(url, profile)
            return await self._extract_html(url, profile)
        except NonHtmlContentError as e:
            return PageRecord(
                url=url,
                title="Non-HTML Content",
                content=f"This is not an HTML page. Content type: {e.content_type}",
                error="non_html",
            )
        except ResponseTooLargeError as e:
            return self._failure(url, "too_large", "Response too large", e)
        except httpx.TimeoutException as e:
            return self._failure(url, "timeout", "Request timed out", e)
        except httpx.ConnectError as e:
            if any(marker in str(e).lower() for marker in _DNS_MARKERS):
                return self._failure(url, "dns_failure", "Domain not found", e)
            return self._failure(url, "no_response", "No response received from server", e)
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            return self._failure(url, "http_status", f"Server responded with status {status}", e)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            return self._failure(url, "request_failed", "Failed to scrape content", e)
        except (ValueError, UnicodeError) as e:
            # Malformed JSON or undecodable body
            return self._failure(url, "request_failed", "Failed to read content", e)
        except Exception as e:
            logger.exception(f"Unexpected error scraping {url}: {e}")
            return self._failure(url, "request_failed", "Failed to scrape content", e)

    def _failure(self, url: str, code: str, summary: str, exc: Exception) -> PageRecord:
        logger.warning(f"Error scraping {url}: {summary} ({type(exc).__name__}: {exc})")
        detail = str(exc) or type(exc).__name__
        return PageRecord(url=url, title=ERROR_TITLE, content=f"{summary}: {detail}", error=code)
