"""Typed failures raised by the retrieval services.

Each error carries a stable ``code`` and an agent-facing ``suggestion`` so the
tool executor can turn it into an envelope without inspecting messages.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional


class WebReachError(Exception):
    """Base exception for retrieval errors."""

    code = "INTERNAL_ERROR"
    suggestion = (
        "There was a technical issue. You can try again later or ask a different question."
    )

    def __init__(self, message: str, code: Optional[str] = None, **context: Any):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        self.context: Dict[str, Any] = context


class InvalidInputError(WebReachError, ValueError):
    """Raised before any network I/O when arguments cannot be used."""

    code = "INVALID_INPUT"
    suggestion = (
        "Check the tool arguments and ensure all required parameters are provided "
        "with correct types."
    )


class MirrorUnavailableError(WebReachError):
    """Raised when every mirror/proxy combination failed."""

    code = "MIRROR_UNAVAILABLE"
    suggestion = "The mirrors might be down or blocking access. Try again later."

    def __init__(self, failures: Optional[List[str]] = None, message: Optional[str] = None):
        self.failures = failures or []
        msg = message or f"All mirrors failed after {len(self.failures)} attempts"
        super().__init__(msg)


class ParseFailedError(WebReachError):
    """Raised when a requested document lacks its required structure."""

    code = "PARSE_FAILED"
    suggestion = (
        "The page layout was not recognized. Check that the URL points to a single "
        "post, or try a general web search instead."
    )


class SocialUnavailableError(WebReachError):
    """Raised when a social account or post could not be retrieved."""

    code = "NOT_FOUND_OR_UNAVAILABLE"
    suggestion = (
        "Unable to access the social media mirrors at the moment, or the account/post "
        "does not exist. Check the username or URL, or try again later."
    )


class SearchError(WebReachError):
    """Raised when the search provider fails."""

    code = "SEARCH_FAILED"
    suggestion = (
        "The search service might be unavailable. You can try again later or ask a "
        "different question."
    )


class AllFailedError(WebReachError):
    """Raised when every item of a batch failed."""

    code = "ALL_FAILED"
    suggestion = (
        "The websites might be unavailable or blocking access. You can try different "
        "websites or a general search query instead."
    )
