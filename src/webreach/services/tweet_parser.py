"""Parsers for mirror-rendered timelines and single-post pages.

Timeline parsing is lenient: an item missing its content block, permalink id
or a parseable timestamp is malformed scrape noise and is skipped. Detail
parsing is strict: the caller asked for exactly one post, so a missing post
container raises ParseFailedError.
"""

from __future__ import annotations

import logging
import math
import re
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional

from bs4 import BeautifulSoup, Tag

from ..models.post import ConversationPost, Post, PostDetail, PostMedia, PostStats
from .errors import ParseFailedError
from .extraction_rules import (
    MAIN_POST_SELECTOR,
    POST_RULES,
    THREAD_ITEM_SELECTOR,
    THREAD_RULES,
    TIMELINE_ITEM_SELECTOR,
    RuleValue,
    extract_fields,
    status_id_from_href,
)

logger = logging.getLogger(__name__)

# Tooltip format rendered by the mirrors, e.g. "Jan 5, 2024 · 3:04 PM UTC"
DATE_FORMATS = (
    "%b %d, %Y %I:%M %p",
    "%b %d, %Y %H:%M",
    "%d/%m/%Y, %H:%M:%S",
)

_COUNT_SUFFIXES = {"k": 1_000, "m": 1_000_000}
_LEADING_INT = re.compile(r"[+-]?\d+")


def parse_count(text: Optional[str]) -> int:
    """Decode abbreviated engagement counts.

    Examples:
        >>> parse_count("1.5k")
        1500
        >>> parse_count("2M")
        2000000
        >>> parse_count("abc")
        0
    """
    if not text:
        return 0
    cleaned = text.strip().replace(",", "")
    if not cleaned:
        return 0

    multiplier = _COUNT_SUFFIXES.get(cleaned[-1].lower())
    if multiplier:
        try:
            return int(math.floor(float(cleaned[:-1]) * multiplier + 0.5))
        except ValueError:
            return 0

    match = _LEADING_INT.match(cleaned)
    return int(match.group()) if match else 0


def parse_post_date(date_text: Optional[str]) -> Optional[int]:
    """Convert a full-precision tooltip date to epoch seconds (UTC)."""
    if not date_text:
        return None
    cleaned = date_text.replace(" UTC", "").replace(" · ", " ").replace("·", " ")
    cleaned = " ".join(cleaned.split())
    for fmt in DATE_FORMATS:
        try:
            parsed = datetime.strptime(cleaned, fmt)
        except ValueError:
            continue
        return int(parsed.replace(tzinfo=timezone.utc).timestamp())
    logger.debug(f"Unparseable post date: {date_text!r}")
    return None


def _absolute(url: str, mirror_base: str) -> str:
    if url.startswith("/") and not url.startswith("//"):
        return f"{mirror_base.rstrip('/')}{url}"
    return url


def _collect_media(fields: Dict[str, RuleValue], mirror_base: str) -> List[PostMedia]:
    media: List[PostMedia] = []
    seen = set()
    for media_type, key in (("image", "images"), ("video", "videos")):
        for src in fields.get(key) or []:
            url = _absolute(src, mirror_base)
            if url in seen:
                continue
            seen.add(url)
            media.append(PostMedia(type=media_type, url=url))
    return media


def _post_kwargs(fields: Dict[str, RuleValue], mirror_base: str) -> Dict[str, object]:
    """Field values shared by timeline and detail posts."""
    handle = fields.get("handle") or ""
    is_retweet = bool(fields.get("is_retweet"))
    is_quote = bool(fields.get("is_quote"))
    is_reply = bool(fields.get("is_reply"))

    return {
        "text": fields.get("text") or "",
        "author": fields.get("author") or "",
        "handle": handle,
        "stats": PostStats(
            replies=parse_count(fields.get("replies")),
            retweets=parse_count(fields.get("retweets")),
            likes=parse_count(fields.get("likes")),
        ),
        "media": _collect_media(fields, mirror_base),
        "is_reply": is_reply,
        "is_retweet": is_retweet,
        "is_quote": is_quote,
        "reply_to": (fields.get("reply_to") or None) if is_reply else None,
        "retweeted_from": (handle or None) if is_retweet else None,
        "quoted_from": (fields.get("quoted_from") or None) if is_quote else None,
        "quoted_post_id": status_id_from_href(fields.get("quote_link")) if is_quote else None,
    }


def _timeline_post(item: Tag, mirror_base: str) -> Optional[Post]:
    fields = extract_fields(item, POST_RULES)

    if fields["pinned"]:
        logger.debug("Skipping pinned item")
        return None
    if fields["text"] is None:
        logger.debug("Skipping item without content block")
        return None

    post_id = status_id_from_href(fields["permalink"]) or status_id_from_href(fields["date_link"])
    if not post_id:
        logger.debug("Skipping item without permalink id")
        return None

    timestamp = parse_post_date(fields["date_title"])
    if timestamp is None:
        logger.debug(f"Skipping item {post_id} without parseable timestamp")
        return None

    return Post(id=post_id, timestamp=timestamp, **_post_kwargs(fields, mirror_base))


def parse_timeline(html: str, mirror_base: str) -> List[Post]:
    """Parse a timeline document into posts, in document order.

    Args:
        html: Rendered timeline page
        mirror_base: Mirror base URL, used to absolutize ``/...`` media URLs

    Returns:
        Posts that passed the required-field checks. Pinned and malformed
        items are left out; the list may be empty.
    """
    soup = BeautifulSoup(html, "html.parser")
    items = soup.select(TIMELINE_ITEM_SELECTOR)

    posts = [post for post in (_timeline_post(item, mirror_base) for item in items) if post]
    logger.debug(f"Parsed {len(posts)} of {len(items)} timeline items")
    return posts


def _is_related(item: Tag, main: Tag) -> bool:
    """True when ``item`` is, contains, or sits inside the primary container."""
    if item is main:
        return True
    if any(parent is main for parent in item.parents):
        return True
    return any(parent is item for parent in main.parents)


def _conversation(soup: BeautifulSoup, main: Tag) -> List[ConversationPost]:
    posts: List[ConversationPost] = []
    for item in soup.select(THREAD_ITEM_SELECTOR):
        if _is_related(item, main):
            continue
        fields = extract_fields(item, THREAD_RULES)
        post_id = status_id_from_href(fields["permalink"])
        if post_id and fields["text"]:
            posts.append(ConversationPost(id=post_id, handle=fields["handle"] or "", text=fields["text"]))
    return posts


def parse_detail(html: str, mirror_base: str, fallback_id: Optional[str] = None) -> PostDetail:
    """Parse a single-post document.

    Args:
        html: Rendered post page
        mirror_base: Mirror base URL, used to absolutize ``/...`` media URLs
        fallback_id: Post id to use when the page exposes none (taken from
            the requested URL)

    Returns:
        PostDetail for the primary post with its thread context

    Raises:
        ParseFailedError: If the primary post container, its content or its
            id cannot be found
    """
    soup = BeautifulSoup(html, "html.parser")
    main = soup.select_one(MAIN_POST_SELECTOR)
    if main is None:
        raise ParseFailedError("Post container not found")

    fields = extract_fields(main, POST_RULES)
    if fields["text"] is None:
        raise ParseFailedError("Post content not found")

    post_id = (
        status_id_from_href(fields["permalink"])
        or status_id_from_href(fields["date_link"])
        or main.get("data-tweet-id")
        or fallback_id
    )
    if not post_id:
        raise ParseFailedError("Post id not found")

    kwargs = _post_kwargs(fields, mirror_base)
    handle = str(kwargs["handle"]).lstrip("@")
    conversation = _conversation(soup, main)

    return PostDetail(
        id=str(post_id),
        timestamp=parse_post_date(fields["date_title"]),
        date_text=fields["date_title"],
        conversation=conversation or None,
        original_url=f"https://twitter.com/{handle}/status/{post_id}" if handle else None,
        **kwargs,
    )


def dedupe_and_sort(posts: Iterable[Post]) -> List[Post]:
    """Drop repeated ids (first occurrence wins), newest first."""
    seen = set()
    unique: List[Post] = []
    for post in posts:
        if post.id in seen:
            continue
        seen.add(post.id)
        unique.append(post)
    return sorted(unique, key=lambda p: p.timestamp or 0, reverse=True)
