"""Concurrent multi-URL scraping with per-item failure isolation."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, List, Optional

from ..models.page import PageRecord
from .errors import WebReachError, InvalidInputError
from .page_extractor import ERROR_TITLE, PageExtractor
from .social_service import SocialService, format_post_summary

logger = logging.getLogger(__name__)

DEFAULT_MAX_URLS = 3


@dataclass
class BatchItem:
    """Outcome for one URL: a usable record, or an error code and message."""

    url: str
    record: PageRecord
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class BatchResult:
    """All items of a batch, in input order."""

    items: List[BatchItem] = field(default_factory=list)

    @property
    def records(self) -> List[PageRecord]:
        return [item.record for item in self.items]

    @property
    def succeeded(self) -> int:
        return sum(1 for item in self.items if item.ok)

    @property
    def failed(self) -> int:
        return len(self.items) - self.succeeded

    @property
    def all_failed(self) -> bool:
        return bool(self.items) and self.succeeded == 0


class BatchScraper:
    """
    Routes each URL to the social service or the page extractor and runs them
    concurrently. One failing URL never aborts its siblings.
    """

    def __init__(
        self,
        extractor: Optional[PageExtractor] = None,
        social: Optional[SocialService] = None,
        max_urls: int = DEFAULT_MAX_URLS,
    ) -> None:
        self.extractor = extractor or PageExtractor()
        self.social = social or SocialService()
        self.max_urls = max_urls

    async def _scrape_social(self, url: str) -> BatchItem:
        result = await self.social.fetch_by_url(url)
        post = result.post
        title = f"Post by {post.handle or post.author}".strip()
        record = PageRecord(url=url, title=title, content=format_post_summary(post))
        return BatchItem(url=url, record=record)

    async def _scrape_page(self, url: str) -> BatchItem:
        record = await self.extractor.extract(url)
        return BatchItem(url=url, record=record, error=record.error)

    async def _scrape_one(self, url: str) -> BatchItem:
        if self.social.is_social_url(url):
            return await self._scrape_social(url)
        return await self._scrape_page(url)

    @staticmethod
    def _error_item(url: Any, exc: BaseException) -> BatchItem:
        code = exc.code if isinstance(exc, WebReachError) else type(exc).__name__
        message = getattr(exc, "message", None) or str(exc) or type(exc).__name__
        record = PageRecord(
            url=str(url),
            title=ERROR_TITLE,
            content=f"Failed to scrape content: {message}",
            error=code,
        )
        return BatchItem(url=str(url), record=record, error=code)

    async def scrape_many(self, urls: List[str]) -> BatchResult:
        """Scrape up to ``max_urls`` URLs concurrently.

        Raises:
            InvalidInputError: If ``urls`` is not a non-empty list
        """
        if isinstance(urls, str) or not isinstance(urls, (list, tuple)):
            raise InvalidInputError("urls must be a list of URL strings")
        if not urls:
            raise InvalidInputError("urls cannot be empty")

        selected = list(urls[: self.max_urls])
        if len(urls) > self.max_urls:
            logger.info(f"Batch capped at {self.max_urls} of {len(urls)} URLs")

        outcomes = await asyncio.gather(
            *(self._scrape_one(url) for url in selected),
            return_exceptions=True,
        )

        items: List[BatchItem] = []
        for url, outcome in zip(selected, outcomes):
            if isinstance(outcome, BaseException):
                logger.warning(f"Batch item failed for {url}: {outcome}")
                items.append(self._error_item(url, outcome))
            else:
                items.append(outcome)
        return BatchResult(items=items)
