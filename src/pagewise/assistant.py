"""Utterance handling: interpret, dispatch, and shape a reply."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

from pagewise.commands.dispatcher import ActionDispatcher
from pagewise.commands.interpreter import interpret
from pagewise.core.exceptions import ActionError, PagewiseError
from pagewise.core.types import Action, Command
from pagewise.page.accessor import DomAccessor
from pagewise.session import PageSession
from pagewise.transport import Messenger

logger = logging.getLogger(__name__)

REPLY_RESULT = "result"
REPLY_ERROR = "error"
REPLY_FALLBACK = "fallback"

FALLBACK_MESSAGE = (
    "I did not recognize a page command. Try 'read this page', "
    "'semantic search for <topic>', 'smart scroll to <topic>', "
    "'scroll to section 2', 'list links' or 'show forms'."
)


@dataclass(frozen=True)
class AssistantReply:
    """What the user sees for one utterance.

    ``kind`` is ``result`` (``data`` holds the action output), ``error``
    (``message`` is a readable failure) or ``fallback`` (no command matched).
    """

    kind: str
    message: str
    action: Optional[Action] = None
    data: Any = None
    command: Optional[Command] = None

    @property
    def ok(self) -> bool:
        return self.kind == REPLY_RESULT


class PageAssistant:
    """Front door for free-text page commands."""

    def __init__(
        self,
        dom: DomAccessor,
        session: PageSession,
        messenger: Optional[Messenger] = None,
        dispatcher: Optional[ActionDispatcher] = None,
    ) -> None:
        self.session = session
        self.dispatcher = dispatcher or ActionDispatcher(dom, session, messenger)

    def handle(self, utterance: str) -> AssistantReply:
        command = interpret(utterance)
        if command is None:
            logger.debug("No command rule matched %r", utterance)
            return AssistantReply(kind=REPLY_FALLBACK, message=FALLBACK_MESSAGE)
        return self.run(command)

    def run(self, command: Command) -> AssistantReply:
        try:
            result = self.dispatcher.dispatch(command)
        except ActionError as exc:
            logger.info("%s failed: %s", command.action.value, exc.message)
            return AssistantReply(
                kind=REPLY_ERROR,
                message=exc.user_message,
                action=command.action,
                command=command,
            )
        except PagewiseError as exc:
            logger.warning("%s failed", command.action.value, exc_info=True)
            readable = command.action.value.replace("_", " ")
            return AssistantReply(
                kind=REPLY_ERROR,
                message=f"Could not {readable}: {exc}",
                action=command.action,
                command=command,
            )
        return AssistantReply(
            kind=REPLY_RESULT,
            message=result.summary,
            action=result.action,
            data=result.data,
            command=command,
        )
