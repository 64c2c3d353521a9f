"""Core exception types for pagewise."""

from __future__ import annotations

from typing import Optional


class PagewiseError(Exception):
    """Base error for pagewise runtime failures."""


class ProviderError(PagewiseError):
    """Raised when the embedding provider cannot produce a vector."""

    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class SessionBusy(PagewiseError):
    """Raised when a read-page pass starts while another one is running."""


class ActionError(PagewiseError):
    """A page or browser action failed; shown to the user as a short message."""

    def __init__(self, message: str, *, action: Optional[str] = None) -> None:
        self.message = str(message or "").strip() or "Unknown action error."
        self.action = action
        super().__init__(self.message)

    @property
    def user_message(self) -> str:
        if self.action:
            readable = self.action.replace("_", " ")
            return f"Could not {readable}: {self.message}"
        return self.message


class ElementNotFound(ActionError):
    """A selector resolved to no element."""

    def __init__(self, selector: str, *, action: Optional[str] = None) -> None:
        self.selector = selector
        super().__init__(f"Element not found: {selector}", action=action)


class InvalidActionParams(ActionError):
    """The command is missing parameters the action needs."""


class ActionFailed(ActionError):
    """The receiving context handled the request and reported a failure."""


class TransportFailure(ActionError):
    """The receiving execution context is unreachable."""

    def __init__(
        self, target: str, reason: str = "", *, action: Optional[str] = None
    ) -> None:
        self.target = target
        self.reason = reason
        detail = f"context '{target}' is unreachable"
        if reason:
            detail = f"{detail} ({reason})"
        super().__init__(detail, action=action)
