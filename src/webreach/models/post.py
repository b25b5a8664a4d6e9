"""Models for posts scraped from social-media mirrors."""

from typing import List, Literal, Optional

from pydantic import BaseModel, Field


class PostStats(BaseModel):
    """Engagement counters decoded from abbreviated text."""

    replies: int = 0
    retweets: int = 0
    likes: int = 0


class PostMedia(BaseModel):
    """Image or video attached to a post."""

    type: Literal["image", "video"]
    url: str


class Post(BaseModel):
    """A single post as rendered by a mirror.

    ``timestamp`` is epoch seconds (UTC). Timeline parsing never emits a post
    without one.
    """

    id: str
    text: str
    author: str = ""
    handle: str = ""
    timestamp: Optional[int] = None
    stats: PostStats = Field(default_factory=PostStats)
    media: List[PostMedia] = Field(default_factory=list)
    is_reply: bool = False
    is_retweet: bool = False
    is_quote: bool = False
    reply_to: Optional[str] = None
    retweeted_from: Optional[str] = None
    quoted_from: Optional[str] = None
    quoted_post_id: Optional[str] = None


class ConversationPost(BaseModel):
    """Lightweight view of a sibling post in a thread."""

    id: str
    handle: str = ""
    text: str


class PostDetail(Post):
    """A single fetched post plus the thread around it."""

    date_text: Optional[str] = None
    conversation: Optional[List[ConversationPost]] = None
    original_url: Optional[str] = None


class TimelineResult(BaseModel):
    """Recent posts of one account, newest first."""

    handle: str
    posts: List[Post]
    source: str = Field(description="Mirror base URL that served the timeline")
    include_replies: bool = False

    @property
    def count(self) -> int:
        return len(self.posts)


class PostResult(BaseModel):
    """One post fetched by URL."""

    post: PostDetail
    source: str
    url: str = Field(description="Mirror URL the post was read from")
