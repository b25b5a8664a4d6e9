"""Social fetch orchestration over the mirror client and tweet parsers."""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from typing import List, Optional, Sequence, Tuple
from urllib.parse import urlparse

from ..config import MirrorConfig
from ..models.post import Post, PostDetail, PostResult, TimelineResult
from .errors import InvalidInputError, MirrorUnavailableError, SocialUnavailableError
from .mirror_client import MirrorClient, MirrorRequest
from .tweet_parser import dedupe_and_sort, parse_detail, parse_timeline

logger = logging.getLogger(__name__)

SOCIAL_HOSTS = frozenset({
    "twitter.com",
    "www.twitter.com",
    "mobile.twitter.com",
    "x.com",
    "www.x.com",
    "mobile.x.com",
})

DEFAULT_MAX_TIMELINE_POSTS = 10

_HANDLE = re.compile(r"^[A-Za-z0-9_]{1,50}$")
_STATUS_PATH = re.compile(r"^/?(i/web|[A-Za-z0-9_]+)/status(?:es)?/(\d+)")
# Share links (/i/web/status/<id>) are served by mirrors under /i/status/<id>
_SHARE_PREFIX = "i/web"


def _is_mirror_host(host: str, mirrors: Sequence[str]) -> bool:
    if host.startswith("nitter."):
        return True
    return any(urlparse(m).hostname == host for m in mirrors)


def is_social_url(url: Optional[str], mirrors: Sequence[str] = ()) -> bool:
    """Whether ``url`` points at the social platform or one of its mirrors."""
    if not url or not isinstance(url, str):
        return False
    parsed = urlparse(url.strip())
    if parsed.scheme not in ("http", "https") or not parsed.hostname:
        return False
    host = parsed.hostname.lower()
    return host in SOCIAL_HOSTS or _is_mirror_host(host, mirrors)


def parse_status_url(url: str, mirrors: Sequence[str] = ()) -> Tuple[str, str]:
    """Split a post URL into (handle, post id).

    Raises:
        InvalidInputError: If the URL is not a social post URL
    """
    if not is_social_url(url, mirrors):
        raise InvalidInputError(f"Not a recognized social media URL: {url}", url=url)
    match = _STATUS_PATH.match(urlparse(url.strip()).path)
    if not match:
        raise InvalidInputError(
            f"URL does not point to a single post (expected /<user>/status/<id>): {url}",
            url=url,
        )
    handle = "i" if match.group(1) == _SHARE_PREFIX else match.group(1)
    return handle, match.group(2)


def normalize_handle(handle: Optional[str]) -> str:
    """Strip whitespace and a leading ``@``; validate the remainder."""
    if not handle or not isinstance(handle, str):
        raise InvalidInputError("Username is required")
    normalized = handle.strip()
    if normalized.startswith("@"):
        normalized = normalized[1:]
    if not _HANDLE.match(normalized):
        raise InvalidInputError(f"Invalid username: {handle!r}", username=handle)
    return normalized


def format_post_summary(post: PostDetail) -> str:
    """Readable summary of a post for page-style consumers."""
    lines = [f"Post by {post.author or post.handle} ({post.handle})".strip()]
    if post.timestamp is not None:
        posted = datetime.fromtimestamp(post.timestamp, tz=timezone.utc)
        lines.append(f"Posted: {posted.strftime('%Y-%m-%d %H:%M UTC')}")
    elif post.date_text:
        lines.append(f"Posted: {post.date_text}")
    if post.is_reply and post.reply_to:
        lines.append(f"Replying to {post.reply_to}")
    if post.is_quote and post.quoted_from:
        lines.append(f"Quoting {post.quoted_from}")

    lines.append("")
    lines.append(post.text)
    lines.append("")
    lines.append(
        f"Replies: {post.stats.replies} | Retweets: {post.stats.retweets} | Likes: {post.stats.likes}"
    )
    if post.media:
        lines.append("Media: " + ", ".join(f"{m.type} {m.url}" for m in post.media))
    if post.conversation:
        lines.append("")
        lines.append("Thread:")
        lines.extend(f"- {c.handle}: {c.text}" for c in post.conversation)
    return "\n".join(lines)


class SocialService:
    """
    Fetches timelines and single posts through the mirror cascade.

    Usage:
        service = SocialService()
        timeline = await service.fetch_timeline("@jack", include_replies=True)
        result = await service.fetch_by_url("https://x.com/jack/status/20")
    """

    def __init__(
        self,
        mirror_client: Optional[MirrorClient] = None,
        max_posts: int = DEFAULT_MAX_TIMELINE_POSTS,
    ) -> None:
        self.mirrors = mirror_client or MirrorClient()
        self.max_posts = max_posts

    @property
    def config(self) -> MirrorConfig:
        return self.mirrors.config

    def is_social_url(self, url: Optional[str]) -> bool:
        return is_social_url(url, self.config.mirrors)

    async def fetch_timeline(self, handle: str, include_replies: bool = False) -> TimelineResult:
        """Recent posts of ``handle``, deduplicated and newest first.

        Raises:
            InvalidInputError: If the handle is empty or malformed
            SocialUnavailableError: If no mirror could serve the timeline
        """
        username = normalize_handle(handle)
        plan = [MirrorRequest("timeline", f"/{username}")]
        if include_replies:
            plan.append(MirrorRequest("with_replies", f"/{username}/with_replies"))

        logger.info(f"Fetching timeline for @{username}, include_replies={include_replies}")
        try:
            result = await self.mirrors.fetch(plan)
        except MirrorUnavailableError as e:
            raise SocialUnavailableError(
                f"Unable to fetch posts for @{username}: {e.message}",
                username=username,
            ) from e

        posts: List[Post] = []
        for request in plan:
            posts.extend(parse_timeline(result.documents[request.name], result.mirror))

        ordered = dedupe_and_sort(posts)[: self.max_posts]
        return TimelineResult(
            handle=username,
            posts=ordered,
            source=result.mirror,
            include_replies=include_replies,
        )

    async def fetch_by_url(self, url: str) -> PostResult:
        """Fetch one post from its twitter.com / x.com / mirror URL.

        Raises:
            InvalidInputError: If ``url`` is not a post URL (no network I/O)
            SocialUnavailableError: If no mirror could serve the post
            ParseFailedError: If the served page has no recognizable post
        """
        if not url or not isinstance(url, str):
            raise InvalidInputError("Post URL is required")
        handle, post_id = parse_status_url(url, self.config.mirrors)
        request = MirrorRequest("post", f"/{handle}/status/{post_id}")

        logger.info(f"Fetching post {post_id} by @{handle}")
        try:
            result = await self.mirrors.fetch([request])
        except MirrorUnavailableError as e:
            raise SocialUnavailableError(
                f"Unable to fetch post {post_id}: {e.message}",
                url=url,
            ) from e

        post = parse_detail(result.documents[request.name], result.mirror, fallback_id=post_id)
        return PostResult(post=post, source=result.mirror, url=result.url_for(request))
