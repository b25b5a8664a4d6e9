"""Retrieval services: page extraction, social mirrors, search and tool dispatch."""

from .batch_scraper import BatchItem, BatchResult, BatchScraper
from .errors import (
    AllFailedError,
    InvalidInputError,
    MirrorUnavailableError,
    ParseFailedError,
    SearchError,
    SocialUnavailableError,
    WebReachError,
)
from .mirror_client import MirrorClient, MirrorRequest
from .page_extractor import PageExtractor
from .search_service import SearchService
from .social_service import SocialService
from .tool_executor import ToolExecutor

__all__ = [
    "BatchItem",
    "BatchResult",
    "BatchScraper",
    "MirrorClient",
    "MirrorRequest",
    "PageExtractor",
    "SearchService",
    "SocialService",
    "ToolExecutor",
    "WebReachError",
    "InvalidInputError",
    "MirrorUnavailableError",
    "ParseFailedError",
    "SocialUnavailableError",
    "SearchError",
    "AllFailedError",
]
