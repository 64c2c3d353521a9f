"""Message passing between execution contexts (panel, page, browser)."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

from pagewise.core.exceptions import ActionFailed, TransportFailure

logger = logging.getLogger(__name__)

MessageHandler = Callable[["Message"], Any]


@dataclass(frozen=True)
class Message:
    """An action name plus its parameters, sent to one target context."""

    action: str
    params: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {"action": self.action, "params": dict(self.params)}

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "Message":
        return cls(action=str(payload["action"]), params=dict(payload.get("params") or {}))


@dataclass(frozen=True)
class Response:
    success: bool
    data: Any = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        if self.success:
            return {"success": True, "data": self.data}
        return {"success": False, "error": self.error or "unknown error"}

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "Response":
        return cls(
            success=bool(payload.get("success")),
            data=payload.get("data"),
            error=payload.get("error"),
        )


class Transport(ABC):
    """Delivers a message to a target context and returns its response."""

    @abstractmethod
    def send(self, target: str, message: Message) -> Response:
        """Deliver ``message``; raise ``TransportFailure`` if ``target`` is unreachable."""


class LocalTransport(Transport):
    """In-process transport; contexts are handlers registered by name.

    A handler returns the response data; raising turns into an unsuccessful
    ``Response`` carrying the error text.
    """

    def __init__(self) -> None:
        self._handlers: Dict[str, MessageHandler] = {}

    def register(self, target: str, handler: MessageHandler) -> None:
        self._handlers[target] = handler

    def unregister(self, target: str) -> None:
        self._handlers.pop(target, None)

    def is_alive(self, target: str) -> bool:
        return target in self._handlers

    def send(self, target: str, message: Message) -> Response:
        handler = self._handlers.get(target)
        if handler is None:
            raise TransportFailure(target, "no receiver registered")
        try:
            data = handler(message)
        except Exception as exc:
            logger.debug("Handler for %s failed on %s: %s", target, message.action, exc)
            return Response(success=False, error=str(exc) or exc.__class__.__name__)
        if isinstance(data, Response):
            return data
        return Response(success=True, data=data)


class Messenger:
    """Two explicit call modes over a ``Transport``.

    ``notify`` is best effort and never raises for delivery problems.
    ``request`` is for calls whose result someone is waiting on: delivery
    failures propagate and unsuccessful responses raise ``ActionFailed``.
    """

    def __init__(self, transport: Transport) -> None:
        self.transport = transport

    def notify(self, target: str, message: Message) -> bool:
        try:
            response = self.transport.send(target, message)
        except TransportFailure as exc:
            logger.debug("Dropped %s notification: %s", message.action, exc.message)
            return False
        if not response.success:
            logger.debug(
                "Notification %s to %s was rejected: %s",
                message.action,
                target,
                response.error,
            )
        return response.success

    def request(self, target: str, message: Message, *, action: Optional[str] = None) -> Any:
        label = action or message.action
        try:
            response = self.transport.send(target, message)
        except TransportFailure as exc:
            raise TransportFailure(exc.target, exc.reason, action=label) from exc
        if not response.success:
            raise ActionFailed(response.error or "request failed", action=label)
        return response.data
