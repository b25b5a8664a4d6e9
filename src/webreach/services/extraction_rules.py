"""Named extraction rules for mirror documents.

Rules are plain data (field name -> selector + how to read it) applied by a
single tree walker, so selector changes in a mirror's markup only touch the
tables below and each table can be tested on its own.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Mapping, Optional, Union

from bs4 import Comment, NavigableString, Tag


class RuleKind(str, Enum):
    """How a matched element is turned into a value."""

    TEXT = "text"
    ATTRIBUTE = "attribute"
    EXISTS = "exists"


@dataclass(frozen=True)
class ExtractionRule:
    """Selector -> field mapping.

    Attributes:
        selector: CSS selector evaluated relative to the item node
        kind: TEXT, ATTRIBUTE (needs ``attribute``) or EXISTS
        attribute: Attribute name read for ATTRIBUTE rules
        many: Return every match instead of the first one
    """

    selector: str
    kind: RuleKind = RuleKind.TEXT
    attribute: Optional[str] = None
    many: bool = False


RuleValue = Union[None, bool, str, List[str]]


# =============================================================================
# Rule Tables
# =============================================================================

TIMELINE_ITEM_SELECTOR = ".timeline .timeline-item"
MAIN_POST_SELECTOR = ".main-tweet"
THREAD_ITEM_SELECTOR = ".timeline-item"

POST_RULES: Dict[str, ExtractionRule] = {
    "pinned": ExtractionRule(".pinned", RuleKind.EXISTS),
    "is_reply": ExtractionRule(".replying-to", RuleKind.EXISTS),
    "reply_to": ExtractionRule(".replying-to a"),
    "is_retweet": ExtractionRule(".retweet-header", RuleKind.EXISTS),
    "is_quote": ExtractionRule(".quote", RuleKind.EXISTS),
    "quoted_from": ExtractionRule(".quote .username"),
    "quote_link": ExtractionRule(".quote a.quote-link", RuleKind.ATTRIBUTE, "href"),
    "text": ExtractionRule(".tweet-content"),
    "permalink": ExtractionRule("a.tweet-link", RuleKind.ATTRIBUTE, "href"),
    "date_title": ExtractionRule(".tweet-date a", RuleKind.ATTRIBUTE, "title"),
    "date_link": ExtractionRule(".tweet-date a", RuleKind.ATTRIBUTE, "href"),
    "author": ExtractionRule(".fullname"),
    "handle": ExtractionRule(".username"),
    "replies": ExtractionRule(".tweet-stat:has(.icon-comment)"),
    "retweets": ExtractionRule(".tweet-stat:has(.icon-retweet)"),
    "likes": ExtractionRule(".tweet-stat:has(.icon-heart)"),
    "images": ExtractionRule(
        ".attachments .attachment.image img, .gallery-row img",
        RuleKind.ATTRIBUTE,
        "src",
        many=True,
    ),
    "videos": ExtractionRule(
        ".attachments .gallery-video video source, .gallery-video video source",
        RuleKind.ATTRIBUTE,
        "src",
        many=True,
    ),
}

THREAD_RULES: Dict[str, ExtractionRule] = {
    "handle": POST_RULES["handle"],
    "text": POST_RULES["text"],
    "permalink": POST_RULES["permalink"],
}

_STATUS_ID = re.compile(r"/status/([^/#?]+)")
_SPACES = re.compile(r"\s+")


# =============================================================================
# Tree Walker
# =============================================================================


def element_text(element: Tag) -> str:
    """Text of ``element`` as rendered inline.

    Inline children are joined without separators so ``@bob</a>!`` stays
    ``@bob!``. Source whitespace collapses to single spaces and ``<br>``
    becomes a line break.
    """
    parts: List[str] = []
    for node in element.descendants:
        if isinstance(node, Tag):
            if node.name == "br":
                parts.append("\n")
        elif isinstance(node, NavigableString) and not isinstance(node, Comment):
            parts.append(_SPACES.sub(" ", str(node)))
    lines = ("".join(parts)).split("\n")
    return "\n".join(line.strip() for line in lines).strip()


def _read(element: Tag, rule: ExtractionRule) -> Optional[str]:
    if rule.kind is RuleKind.ATTRIBUTE:
        value = element.get(rule.attribute or "")
        if isinstance(value, list):
            value = " ".join(value)
        return value.strip() if value else None
    return element_text(element)


def apply_rule(node: Tag, rule: ExtractionRule) -> RuleValue:
    """Evaluate one rule against ``node``."""
    if rule.kind is RuleKind.EXISTS:
        return node.select_one(rule.selector) is not None

    if rule.many:
        values = (_read(el, rule) for el in node.select(rule.selector))
        return [v for v in values if v]

    element = node.select_one(rule.selector)
    if element is None:
        return None
    return _read(element, rule)


def extract_fields(node: Tag, rules: Mapping[str, ExtractionRule]) -> Dict[str, RuleValue]:
    """Evaluate every rule in ``rules`` against ``node``."""
    return {name: apply_rule(node, rule) for name, rule in rules.items()}


def status_id_from_href(href: Optional[str]) -> Optional[str]:
    """Post id from a permalink such as ``/jack/status/20#m``."""
    if not href:
        return None
    match = _STATUS_ID.search(href)
    return match.group(1) if match else None
