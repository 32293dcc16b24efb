"""
Exceptions for CDP Pilot pages.
"""
from typing import Any, Dict

from cdp_pilot.core.exceptions import DeadlineExceeded


class BrowserError(Exception):
    """Base exception for browser-related errors."""
    pass


class PageError(BrowserError):
    """Base exception for page-related errors."""
    pass


class NavigationError(PageError):
    """Raised when the browser reports that a navigation failed."""
    pass


class RemoteEvaluationError(PageError):
    """Raised when a script evaluated in the page throws."""

    def __init__(self, details: Dict[str, Any]):
        self.details = details
        exception = details.get("exception") or {}
        if "description" in exception:
            self.description = exception["description"]
        elif "value" in exception:
            self.description = str(exception["value"])
        else:
            self.description = details.get("text", "Unknown error")
        super().__init__(f"Evaluation failed: {self.description}")


class TransientUnavailable(PageError):
    """Raised internally when the page has nothing to return yet."""
    pass


class CloseFailure(PageError):
    """Raised when the browser refuses to close a tab."""

    def __init__(self, response_text: str):
        self.response_text = response_text
        super().__init__(
            f"Page has already been closed or doesn't exist ({response_text})"
        )


__all__ = [
    "BrowserError",
    "PageError",
    "NavigationError",
    "RemoteEvaluationError",
    "TransientUnavailable",
    "CloseFailure",
    "DeadlineExceeded",
]
