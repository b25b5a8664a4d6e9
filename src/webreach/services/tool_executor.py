"""Tool Executor - Dispatches tool calls to the retrieval services.

This service is the single entry point used by an agent's function-calling
loop. It maps a tool name and its arguments to PageExtractor, BatchScraper,
SocialService or SearchService, and shapes every outcome into one JSON-able
envelope. Nothing raised by the services escapes: each call is wrapped in its
own fault boundary and turned into ``{error, error_code, suggestion, ...}``.

Timeout Configuration:
    Each tool runs under ``asyncio.wait_for``. Timeouts resolve in this order:

    1. Per-call override (timeout parameter in dispatch())
    2. Tool-specific timeout from TOOL_TIMEOUTS
    3. Instance-level default (constructor), then DEFAULT_TIMEOUT

    Social tools get the longest budget because the mirror cascade may walk
    every mirror/proxy pair sequentially.
"""

from __future__ import annotations

import asyncio
import inspect
import json
import logging
from dataclasses import asdict
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import httpx

from ..config import AppConfig, get_config
from .batch_scraper import BatchScraper
from .errors import AllFailedError, WebReachError
from .mirror_client import MirrorClient
from .page_extractor import PageExtractor
from .search_service import SearchService
from .social_service import SocialService

logger = logging.getLogger(__name__)

TOOL_SCHEMAS_PATH = Path(__file__).resolve().parent.parent / "prompts" / "tools.json"

_TRUE_STRINGS = {"true", "1", "yes", "on"}

# PageRecord.error -> (error_code, suggestion category)
PAGE_ERROR_CODES: Dict[str, Tuple[str, str]] = {
    "invalid_url": ("INVALID_INPUT", "user_input_error"),
    "timeout": ("TIMEOUT", "timeout_error"),
    "dns_failure": ("FETCH_FAILED", "network_error"),
    "no_response": ("FETCH_FAILED", "network_error"),
    "http_status": ("FETCH_FAILED", "api_error"),
    "request_failed": ("FETCH_FAILED", "network_error"),
    "non_html": ("UNSUPPORTED_CONTENT", "content_error"),
    "too_large": ("UNSUPPORTED_CONTENT", "content_error"),
}


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_STRINGS
    return bool(value)


class ToolExecutor:
    """
    Executes tool calls by routing to the retrieval services.

    Attributes:
        DEFAULT_TIMEOUT: Default timeout for tool execution (seconds)
        TOOL_TIMEOUTS: Per-tool timeout overrides
    """

    DEFAULT_TIMEOUT: float = 60.0

    TOOL_TIMEOUTS: Dict[str, float] = {
        "web_search": 30.0,
        "web_scrape": 30.0,
        "multi_scrape": 45.0,
        # Worst case is mirrors x (proxies + 1) sequential attempts
        "social_timeline": 180.0,
        "social_post_scrape": 180.0,
    }

    def __init__(
        self,
        config: Optional[AppConfig] = None,
        search_service: Optional[SearchService] = None,
        page_extractor: Optional[PageExtractor] = None,
        social_service: Optional[SocialService] = None,
        batch_scraper: Optional[BatchScraper] = None,
        default_timeout: Optional[float] = None,
    ) -> None:
        """
        Initialize the tool executor with service dependencies.

        Args:
            config: AppConfig (loaded from environment if None)
            search_service: SearchService instance (created if None)
            page_extractor: PageExtractor instance (created if None)
            social_service: SocialService instance (created if None)
            batch_scraper: BatchScraper instance (created if None, sharing the
                extractor and social service above)
            default_timeout: Override the default timeout for all tools (seconds)
        """
        self.config = config or get_config()
        self.extractor = page_extractor or PageExtractor(self.config.extractor)
        self.social = social_service or SocialService(
            MirrorClient(self.config.mirror),
            max_posts=self.config.max_timeline_posts,
        )
        self.batch = batch_scraper or BatchScraper(
            self.extractor,
            self.social,
            max_urls=self.config.max_batch_urls,
        )
        self._search = search_service

        self._default_timeout = default_timeout if default_timeout is not None else self.DEFAULT_TIMEOUT

        # Tool registry mapping tool names to handler methods
        self._tools: Dict[str, Any] = {
            "web_search": self._web_search,
            "web_scrape": self._web_scrape,
            "multi_scrape": self._multi_scrape,
            "social_timeline": self._social_timeline,
            "social_post_scrape": self._social_post_scrape,
        }

        self._schema_cache: Optional[Dict[str, Any]] = None

    @property
    def search(self) -> SearchService:
        """Lazy-load the search service (provider clients need credentials)."""
        if self._search is None:
            self._search = SearchService(self.config)
        return self._search

    @property
    def tool_names(self) -> List[str]:
        return list(self._tools)

    def get_timeout(self, tool_name: str, override: Optional[float] = None) -> float:
        if override is not None:
            return override
        if tool_name in self.TOOL_TIMEOUTS:
            return self.TOOL_TIMEOUTS[tool_name]
        return self._default_timeout

    # =========================================================================
    # Dispatch
    # =========================================================================

    def _error(self, tool: str, message: str, code: str, suggestion: str, **context: Any) -> Dict[str, Any]:
        envelope: Dict[str, Any] = {
            "error": message,
            "error_code": code,
            "suggestion": suggestion,
            "tool": tool,
        }
        for key, value in context.items():
            envelope.setdefault(key, value)
        return envelope

    async def dispatch(
        self,
        name: str,
        arguments: Optional[Dict[str, Any]] = None,
        timeout: Optional[float] = None,
    ) -> Dict[str, Any]:
        """
        Execute a tool call and return its envelope.

        Args:
            name: Tool name to execute
            arguments: Tool arguments dictionary
            timeout: Optional timeout override in seconds

        Returns:
            The tool's success payload, or an error envelope with ``error``,
            ``error_code`` and ``suggestion``. Never raises.
        """
        if name not in self._tools:
            logger.warning(f"Unknown tool requested: {name}")
            return self._error(
                str(name),
                f"Unknown tool: {name}",
                "UNKNOWN_TOOL",
                f"Please use one of the available tools: {', '.join(self._tools)}.",
            )

        if arguments is None:
            arguments = {}
        if not isinstance(arguments, dict):
            return self._error(
                name,
                "Invalid arguments: expected an object of named arguments",
                "INVALID_ARGUMENTS",
                "Pass the tool arguments as a JSON object, e.g. {\"url\": \"https://...\"}.",
            )

        handler = self._tools[name]
        try:
            inspect.signature(handler).bind(**arguments)
        except TypeError as e:
            logger.warning(f"Tool {name} called with bad arguments: {e}")
            return self._error(
                name,
                f"Invalid arguments: {e}",
                "INVALID_ARGUMENTS",
                "Check the tool arguments and ensure all required parameters are provided with correct types.",
            )

        actual_timeout = self.get_timeout(name, timeout)
        try:
            logger.info(
                f"Executing tool: {name}",
                extra={"tool": name, "args_keys": list(arguments.keys()), "timeout": actual_timeout},
            )
            return await asyncio.wait_for(handler(**arguments), timeout=actual_timeout)

        except asyncio.TimeoutError:
            logger.warning(f"Tool {name} timed out after {actual_timeout}s")
            return self._error(
                name,
                f"Tool '{name}' timed out after {actual_timeout} seconds.",
                "TIMEOUT",
                "The sources took too long to respond. Try again later, or try a different source.",
                timeout=actual_timeout,
            )
        except WebReachError as e:
            logger.warning(f"Tool {name} failed: [{e.code}] {e.message}")
            return self._error(name, e.message, e.code, e.suggestion, **e.context)
        except Exception as e:
            logger.exception(f"Tool {name} execution failed: {type(e).__name__}: {e}")
            category = self._categorize_error(e)
            return self._error(
                name,
                f"Failed to execute tool {name}: {e}",
                "INTERNAL_ERROR",
                self._get_error_suggestion_for_agent(category, name),
                category=category,
                error_type=type(e).__name__,
            )

    async def execute(
        self,
        name: str,
        arguments: Optional[Dict[str, Any]] = None,
        timeout: Optional[float] = None,
    ) -> str:
        """Execute a tool call and return the envelope as a JSON string."""
        envelope = await self.dispatch(name, arguments, timeout)
        return json.dumps(envelope, default=str, ensure_ascii=False)

    async def execute_tool_calls(self, tool_calls: List[Dict[str, Any]]) -> List[Dict[str, str]]:
        """
        Execute several tool calls concurrently.

        Args:
            tool_calls: Dicts with ``id``, ``name`` and ``input`` (or
                ``arguments``) keys, as emitted by the model

        Returns:
            ``[{"tool_call_id": ..., "output": <json envelope>}]`` in input order
        """
        if not tool_calls:
            return []

        async def execute_single(call: Dict[str, Any]) -> str:
            arguments = call.get("input", call.get("arguments"))
            if isinstance(arguments, str):
                try:
                    arguments = json.loads(arguments) if arguments.strip() else {}
                except json.JSONDecodeError:
                    arguments = None
            return await self.execute(call.get("name", ""), arguments)

        outputs = await asyncio.gather(
            *(execute_single(call) for call in tool_calls),
            return_exceptions=True,
        )

        results = []
        for i, (call, output) in enumerate(zip(tool_calls, outputs)):
            call_id = call.get("id", f"call_{i}")
            if isinstance(output, BaseException):
                output = json.dumps(self._error(
                    call.get("name", "unknown"),
                    str(output),
                    "INTERNAL_ERROR",
                    self._get_error_suggestion_for_agent(self._categorize_error(output), call.get("name", "")),
                ))
            results.append({"tool_call_id": call_id, "output": output})
        return results

    # =========================================================================
    # Schemas and error helpers
    # =========================================================================

    def get_tool_schemas(self, style: str = "openai") -> List[Dict[str, Any]]:
        """
        Get function-calling schemas for the tools.

        Args:
            style: "openai" for ``{type, function}`` entries, "anthropic" for
                ``{name, description, input_schema}`` entries

        Returns:
            List of tool definitions
        """
        if self._schema_cache is None:
            self._schema_cache = self._load_tool_schemas()

        tools = [t for t in self._schema_cache.get("tools", []) if t.get("function", {}).get("name") in self._tools]
        if style == "anthropic":
            return [
                {
                    "name": t["function"]["name"],
                    "description": t["function"].get("description", ""),
                    "input_schema": t["function"].get("parameters", {"type": "object"}),
                }
                for t in tools
            ]
        return tools

    def _load_tool_schemas(self) -> Dict[str, Any]:
        if not TOOL_SCHEMAS_PATH.exists():
            logger.error(f"Tool schemas not found at {TOOL_SCHEMAS_PATH}")
            return {"tools": []}
        try:
            with open(TOOL_SCHEMAS_PATH, "r", encoding="utf-8") as f:
                return json.load(f)
        except json.JSONDecodeError as e:
            logger.error(f"Failed to parse tool schemas: {e}")
            return {"tools": []}

    def _categorize_error(self, exception: BaseException) -> str:
        """
        Categorize an unexpected exception.

        Returns:
            'timeout_error', 'network_error', 'api_error', 'user_input_error'
            or 'runtime_error'
        """
        error_str = str(exception).lower()

        if isinstance(exception, (TimeoutError, httpx.TimeoutException)) or "timeout" in error_str:
            return "timeout_error"
        if isinstance(exception, (ConnectionError, httpx.TransportError)):
            return "network_error"
        if any(x in error_str for x in ["connection refused", "network unreachable", "host unreachable"]):
            return "network_error"
        if isinstance(exception, (httpx.HTTPStatusError, httpx.InvalidURL)):
            return "api_error"
        if isinstance(exception, (ValueError, TypeError, KeyError)):
            return "user_input_error"
        return "runtime_error"

    def _get_error_suggestion_for_agent(self, category: str, tool_name: str) -> str:
        suggestions = {
            "timeout_error": "The request timed out. Try again later or use a different source.",
            "network_error": (
                "A network operation failed. This could be temporary. Try again in a moment, "
                "or try a different website."
            ),
            "api_error": (
                "The remote service rejected the request or is unavailable. Try a different "
                "source or a general search query instead."
            ),
            "user_input_error": (
                f"Check the arguments passed to {tool_name} and try again with corrected values."
            ),
            "content_error": (
                "The page is not a readable HTML document or is too large. Try a different "
                "page or a general search query instead."
            ),
            "runtime_error": (
                "There was a technical issue. You can try again later or ask a different question."
            ),
        }
        return suggestions.get(category, suggestions["runtime_error"])

    # =========================================================================
    # Tool Implementations
    # =========================================================================

    async def _web_search(self, query: str, **kwargs: Any) -> Dict[str, Any]:
        response = await self.search.search(query)
        limited = response.results[: self.config.max_search_results]
        return {
            "query": response.query,
            "results": [asdict(r) for r in limited],
            "total_count": len(limited),
            "original_count": len(response.results),
        }

    async def _web_scrape(self, url: str, **kwargs: Any) -> Dict[str, Any]:
        record = await self.extractor.extract(url)
        if record.ok:
            return record.model_dump(exclude_none=True)

        code, category = PAGE_ERROR_CODES.get(record.error, ("FETCH_FAILED", "runtime_error"))
        return self._error(
            "web_scrape",
            record.content,
            code,
            self._get_error_suggestion_for_agent(category, "web_scrape"),
            url=record.url,
            title=record.title,
            reason=record.error,
        )

    async def _multi_scrape(self, urls: List[str], **kwargs: Any) -> Dict[str, Any]:
        batch = await self.batch.scrape_many(urls)
        if batch.all_failed:
            raise AllFailedError(
                "All URL scraping attempts failed",
                urls=[item.url for item in batch.items],
                failures=[
                    {"url": item.url, "error": item.error, "content": item.record.content}
                    for item in batch.items
                ],
            )
        return {
            "results": [item.record.model_dump(exclude_none=True) for item in batch.items],
            "succeeded": batch.succeeded,
            "failed": batch.failed,
        }

    async def _social_timeline(
        self,
        username: str,
        include_replies: Any = False,
        **kwargs: Any,
    ) -> Dict[str, Any]:
        timeline = await self.social.fetch_timeline(username, include_replies=_as_bool(include_replies))
        posts = timeline.posts[: self.config.max_timeline_posts]
        return {
            "username": timeline.handle,
            "source": timeline.source,
            "count": len(posts),
            "includes_replies": timeline.include_replies,
            "posts": [p.model_dump(exclude_none=True) for p in posts],
        }

    async def _social_post_scrape(self, url: str, **kwargs: Any) -> Dict[str, Any]:
        result = await self.social.fetch_by_url(url)
        return {
            "post": result.post.model_dump(exclude_none=True),
            "source": result.source,
            "url": result.url,
        }
