"""Mirror client with proxy-then-direct cascading fallback.

Community-run mirrors are individually unreliable, so every logical request
walks an explicit, ordered list of attempts:

    mirror[0] via proxy[0], mirror[0] via proxy[1], ..., mirror[0] direct,
    mirror[1] via proxy[0], ...

Attempts are awaited one after another and the walk stops at the first
attempt for which every sub-request of the plan returned a non-empty body.
There is no retry inside an attempt and no memory of mirror health between
calls; each call starts a fresh traversal with a fresh HTTP client.
"""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Union
from urllib.parse import quote

import httpx

from ..config import MirrorConfig
from .errors import MirrorUnavailableError

logger = logging.getLogger(__name__)

ACCEPT_HEADER = "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,*/*;q=0.8"
ACCEPT_LANGUAGE = "en-US,en;q=0.5"


@dataclass(frozen=True)
class MirrorRequest:
    """One logical sub-request of a plan, e.g. ``timeline`` -> ``/jack``."""

    name: str
    path: str


@dataclass(frozen=True)
class Attempt:
    """A (mirror, transport) pair. ``proxy`` is None for a direct request."""

    mirror: str
    proxy: Optional[str] = None

    @property
    def label(self) -> str:
        return f"{self.mirror} via {self.proxy}" if self.proxy else f"{self.mirror} direct"

    def target_url(self, path: str) -> str:
        return f"{self.mirror}/{path.lstrip('/')}"

    def request_url(self, path: str) -> str:
        target = self.target_url(path)
        if self.proxy is None:
            return target
        return f"{self.proxy}{quote(target, safe='')}"


@dataclass
class CascadeSuccess:
    """Documents for every sub-request, all served by the same attempt."""

    documents: Dict[str, str]
    mirror: str
    proxy: Optional[str] = None

    def url_for(self, request: MirrorRequest) -> str:
        return f"{self.mirror}/{request.path.lstrip('/')}"


@dataclass
class CascadeExhausted:
    """Every attempt failed; ``failures`` holds one line per attempt."""

    failures: List[str] = field(default_factory=list)


CascadeResult = Union[CascadeSuccess, CascadeExhausted]


class EmptyDocumentError(Exception):
    """A mirror answered 2xx with an empty body."""


def build_attempts(config: MirrorConfig) -> List[Attempt]:
    """Expand the configuration into the ordered attempt list."""
    attempts: List[Attempt] = []
    for mirror in config.mirrors:
        attempts.extend(Attempt(mirror=mirror, proxy=proxy) for proxy in config.proxies)
        attempts.append(Attempt(mirror=mirror))
    return attempts


def browser_headers(user_agents: Sequence[str]) -> Dict[str, str]:
    """Request headers with a user agent picked at random from the pool."""
    return {
        "User-Agent": random.choice(list(user_agents)),
        "Accept": ACCEPT_HEADER,
        "Accept-Language": ACCEPT_LANGUAGE,
        "DNT": "1",
    }


class MirrorClient:
    """
    Fetches documents from interchangeable mirrors.

    Usage:
        client = MirrorClient(config)
        result = await client.fetch([MirrorRequest("timeline", "/jack")])
        html = result.documents["timeline"]
    """

    def __init__(
        self,
        config: Optional[MirrorConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """Initialize the mirror client.

        Args:
            config: Mirror/proxy/user-agent lists. Defaults to MirrorConfig().
            transport: Optional httpx transport (tests pass httpx.MockTransport).
        """
        self.config = config or MirrorConfig()
        self._transport = transport

    def _new_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=httpx.Timeout(self.config.timeout),
            follow_redirects=True,
            transport=self._transport,
        )

    async def _get(self, client: httpx.AsyncClient, url: str) -> str:
        response = await client.get(url, headers=browser_headers(self.config.user_agents))
        response.raise_for_status()
        if not response.text.strip():
            raise EmptyDocumentError(f"Empty response from {url}")
        return response.text

    async def _run_attempt(
        self,
        client: httpx.AsyncClient,
        attempt: Attempt,
        plan: Sequence[MirrorRequest],
    ) -> Dict[str, str]:
        bodies = await asyncio.gather(
            *(self._get(client, attempt.request_url(req.path)) for req in plan),
            return_exceptions=True,
        )
        for body in bodies:
            if isinstance(body, BaseException):
                raise body
        return {req.name: body for req, body in zip(plan, bodies)}

    async def cascade(self, plan: Sequence[MirrorRequest]) -> CascadeResult:
        """Walk the attempt list until one attempt satisfies the whole plan."""
        if not plan:
            raise ValueError("Request plan cannot be empty")

        failures: List[str] = []
        async with self._new_client() as client:
            for attempt in build_attempts(self.config):
                try:
                    documents = await self._run_attempt(client, attempt, plan)
                except (httpx.HTTPError, httpx.InvalidURL, EmptyDocumentError) as e:
                    reason = f"{attempt.label}: {type(e).__name__}: {e}"
                    failures.append(reason)
                    logger.warning(f"Mirror attempt failed - {reason}")
                    continue

                logger.info(
                    f"Mirror attempt succeeded: {attempt.label}",
                    extra={"mirror": attempt.mirror, "requests": [r.name for r in plan]},
                )
                return CascadeSuccess(documents=documents, mirror=attempt.mirror, proxy=attempt.proxy)

        return CascadeExhausted(failures=failures)

    async def fetch(self, plan: Sequence[MirrorRequest]) -> CascadeSuccess:
        """Like cascade() but raises MirrorUnavailableError on exhaustion."""
        result = await self.cascade(plan)
        if isinstance(result, CascadeExhausted):
            logger.error(f"All mirrors exhausted for {[r.path for r in plan]}")
            raise MirrorUnavailableError(result.failures)
        return result
