"""Pydantic models for retrieved records."""

from .page import PageRecord
from .post import (
    ConversationPost,
    Post,
    PostDetail,
    PostMedia,
    PostResult,
    PostStats,
    TimelineResult,
)

__all__ = [
    "PageRecord",
    "Post",
    "PostStats",
    "PostMedia",
    "PostDetail",
    "ConversationPost",
    "TimelineResult",
    "PostResult",
]
