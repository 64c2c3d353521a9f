"""Free-text command interpretation.

Rules are tried in order and the first match wins. Specific phrasings sit
above the general ones they would otherwise be shadowed by, e.g.
"semantic search for X" before "search for X".
"""

import logging
import re
from dataclasses import dataclass
from typing import Optional, Pattern

from pagewise.core.types import Action, Command

logger = logging.getLogger(__name__)

TRAILING_PUNCTUATION = ".!?"
URL_LIKE = r"(?:https?://\S+|www\.\S+|[\w-]+(?:\.[\w-]+)*\.[a-z]{2,}(?:[/:?#]\S*)?)"


@dataclass(frozen=True)
class CommandRule:
    action: Action
    pattern: Pattern[str]
    query_group: Optional[int] = None

    def match(self, utterance: str) -> Optional[Command]:
        match = self.pattern.search(utterance)
        if not match:
            return None
        params = {"utterance": utterance}
        if self.query_group is not None:
            params["query"] = _clean_query(match.group(self.query_group))
        return Command(action=self.action, params=params)


def _rule(action: Action, pattern: str, query_group: Optional[int] = None) -> CommandRule:
    return CommandRule(action, re.compile(pattern, re.IGNORECASE), query_group)


RULES = (
    _rule(
        Action.EXTRACT_STRUCTURED_DATA,
        r"^(?:read|extract|scan)(?:\s+(?:this|the))?(?:\s+page)?$",
    ),
    _rule(Action.SEMANTIC_SEARCH, r"^semantic\s+(?:search|find)\s+(?:for\s+)?(.+)$", 1),
    _rule(Action.SEMANTIC_SEARCH, r"^find\s+content\s+(?:like|about|similar\s+to)\s+(.+)$", 1),
    _rule(
        Action.SCROLL_TO_SECTION_BY_NUMBER,
        r"^(?:scroll|go)\s+to\s+(?:section|result)\s+(?:number\s+)?#?(\d+)$",
        1,
    ),
    _rule(Action.SEMANTIC_SCROLL, r"^smart\s+scroll\s+to\s+(.+)$", 1),
    _rule(Action.NAVIGATE, r"^navigate\s+to\s+(.+)$", 1),
    _rule(Action.NAVIGATE, rf"^go\s+to\s+({URL_LIKE})$", 1),
    _rule(Action.SCROLL_TO_SECTION, r"^(?:scroll|go)\s+to\s+(.+)$", 1),
    _rule(Action.FIND_SECTIONS, r"^(?:find|search)\s+(?:for\s+)?(.+)$", 1),
    _rule(
        Action.GET_ALL_LINKS,
        r"^(?:get|list|show)\s+(?:all\s+)?(?:the\s+)?links(?:\s+on\s+(?:this|the)\s+page)?$",
    ),
    _rule(Action.CLICK, r"^(?:click|press)\s+(?:on\s+)?(.+)$", 1),
    _rule(
        Action.EXTRACT_FORM_FIELDS,
        r"^(?:(?:get|list|show|extract)\s+)?(?:all\s+)?(?:the\s+)?(?:form\s+)?"
        r"(?:forms?|inputs?|fields?)(?:\s+on\s+(?:this|the)\s+page)?$",
    ),
)


def _clean_query(raw: str) -> str:
    return raw.strip().strip("\"'").strip()


def normalize_utterance(utterance: str) -> str:
    return " ".join((utterance or "").split()).rstrip(TRAILING_PUNCTUATION).strip()


def interpret(utterance: str) -> Optional[Command]:
    """Return the command for ``utterance``, or None to fall back to conversation."""
    text = normalize_utterance(utterance)
    if not text:
        return None
    for rule in RULES:
        command = rule.match(text)
        if command is not None:
            logger.debug("Interpreted %r as %s", text, command.action.value)
            return command
    return None
