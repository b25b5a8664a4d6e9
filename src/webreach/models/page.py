"""Models for generic page extraction."""

from typing import Optional

from pydantic import BaseModel, Field


class PageRecord(BaseModel):
    """Cleaned text of one fetched page.

    Failures are reported through ``content`` (human readable) and ``error``
    (machine readable code) instead of exceptions.
    """

    url: str
    title: str
    content: str
    error: Optional[str] = Field(
        default=None,
        description="Failure code such as 'timeout' or 'non_html'; None on success",
    )

    @property
    def ok(self) -> bool:
        return self.error is None
