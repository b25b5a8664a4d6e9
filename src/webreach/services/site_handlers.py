"""Per-site request tweaks for the generic page extractor.

Most pages go through plain HTML extraction. A few hosts are easier to read
another way: Reddit exposes a JSON listing for every page, Fandom wikis keep
their article body in known containers and expect a consent cookie, and
twitter.com answers better to a search-engine referer.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import urlparse, urlunparse

MAX_REDDIT_COMMENTS = 10


class SiteType(str, Enum):
    """Hosts with dedicated handling."""

    GENERIC = "generic"
    REDDIT = "reddit"
    FANDOM = "fandom"
    TWITTER = "twitter"


@dataclass(frozen=True)
class SiteProfile:
    """How to request and read a given site."""

    site: SiteType = SiteType.GENERIC
    headers: Dict[str, str] = field(default_factory=dict)
    content_selectors: Tuple[str, ...] = ()
    json_url: Optional[str] = None


def _host_matches(host: str, domain: str) -> bool:
    return host == domain or host.endswith("." + domain)


def get_site_type(url: str) -> SiteType:
    host = (urlparse(url).hostname or "").lower()
    if _host_matches(host, "reddit.com"):
        return SiteType.REDDIT
    if _host_matches(host, "fandom.com") or _host_matches(host, "wikia.com"):
        return SiteType.FANDOM
    if _host_matches(host, "twitter.com") or _host_matches(host, "x.com"):
        return SiteType.TWITTER
    return SiteType.GENERIC


def reddit_json_url(url: str) -> str:
    """The ``.json`` listing endpoint for a Reddit page URL."""
    parsed = urlparse(url)
    path = parsed.path.rstrip("/")
    if not path:
        path = "/.json"
    elif not path.endswith(".json"):
        path += ".json"
    return urlunparse(parsed._replace(path=path, fragment=""))


def get_site_profile(url: str) -> SiteProfile:
    site = get_site_type(url)
    if site is SiteType.REDDIT:
        return SiteProfile(site=site, json_url=reddit_json_url(url))
    if site is SiteType.FANDOM:
        return SiteProfile(
            site=site,
            headers={"Cookie": f"euConsent=0; sessionId={uuid.uuid4().hex[:12]}"},
            content_selectors=(".page-content", ".wds-tab__content", ".mw-parser-output"),
        )
    if site is SiteType.TWITTER:
        return SiteProfile(site=site, headers={"Referer": "https://www.google.com/"})
    return SiteProfile()


# =============================================================================
# Reddit JSON rendering
# =============================================================================


def _children(listing: Any) -> List[Dict[str, Any]]:
    if not isinstance(listing, dict):
        return []
    children = listing.get("data", {}).get("children", [])
    return [c.get("data", {}) for c in children if isinstance(c, dict)]


def _render_post(post: Dict[str, Any]) -> List[str]:
    lines = [
        post.get("title", "").strip(),
        f"Posted by u/{post.get('author', '[deleted]')} in r/{post.get('subreddit', '?')}"
        f" | Score: {post.get('score', 0)} | Comments: {post.get('num_comments', 0)}",
    ]
    body = (post.get("selftext") or "").strip()
    if body:
        lines.extend(["", body])
    elif post.get("url") and post.get("url") != post.get("permalink"):
        lines.extend(["", f"Link: {post['url']}"])
    return lines


def render_reddit_listing(data: Any) -> Tuple[str, str]:
    """Turn a Reddit ``.json`` payload into (title, text).

    A post page returns ``[post_listing, comment_listing]``; a subreddit or
    front page returns a single listing of posts.
    """
    if isinstance(data, list) and data:
        posts = _children(data[0])
        comments = _children(data[1]) if len(data) > 1 else []
        if not posts:
            return "Reddit", ""
        post = posts[0]
        lines = _render_post(post)
        rendered = [
            f"- u/{c.get('author', '[deleted]')} ({c.get('score', 0)}): {c.get('body', '').strip()}"
            for c in comments
            if c.get("body")
        ][:MAX_REDDIT_COMMENTS]
        if rendered:
            lines.extend(["", "Top comments:"] + rendered)
        return post.get("title", "Reddit").strip() or "Reddit", "\n".join(lines)

    posts = _children(data)
    sections = ["\n".join(_render_post(p)) for p in posts]
    subreddit = posts[0].get("subreddit") if posts else None
    title = f"r/{subreddit}" if subreddit else "Reddit"
    return title, "\n\n".join(sections)
