"""CSS selector subset for locating elements in a ``Document``.

Supported: type and universal selectors, ``#id``, ``.class``, ``[attr]`` and
``[attr<op>value]`` (``=``, ``~=``, ``^=``, ``$=``, ``*=``, ``|=``),
``:nth-of-type(n)``, ``:first-of-type``, ``:last-of-type``, descendant and
child combinators, and comma-separated selector groups.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from functools import lru_cache
from typing import TYPE_CHECKING, Callable, List, Optional, Tuple

if TYPE_CHECKING:
    from pagewise.page.dom import Element

_TAG_RE = re.compile(r"\*|[a-zA-Z][a-zA-Z0-9-]*")
_ID_RE = re.compile(r"#([\w-]+)")
_CLASS_RE = re.compile(r"\.([\w-]+)")
_ATTR_RE = re.compile(
    r"""\[\s*([\w:-]+)\s*(?:([~^$*|]?=)\s*(?:"([^"]*)"|'([^']*)'|([^\]\s]+))\s*)?\]"""
)
_NTH_RE = re.compile(r":nth-of-type\(\s*(\d+)\s*\)")
_FIRST_RE = re.compile(r":first-of-type")
_LAST_RE = re.compile(r":last-of-type")


class SelectorSyntaxError(ValueError):
    """The selector uses syntax outside the supported subset."""


Predicate = Callable[["Element"], bool]


@dataclass
class _Compound:
    tag: Optional[str] = None
    predicates: List[Predicate] = field(default_factory=list)

    def matches(self, element: "Element") -> bool:
        if self.tag is not None and element.tag != self.tag:
            return False
        return all(predicate(element) for predicate in self.predicates)


# (combinator to the left, compound); the first entry has combinator "".
_Complex = List[Tuple[str, _Compound]]


def _attr_predicate(name: str, op: Optional[str], value: Optional[str]) -> Predicate:
    name = name.lower()

    def _check(element: "Element") -> bool:
        if not element.has_attr(name):
            return False
        if op is None:
            return True
        actual = element.get(name)
        expected = value or ""
        if op == "=":
            return actual == expected
        if op == "~=":
            return expected in actual.split()
        if op == "^=":
            return bool(expected) and actual.startswith(expected)
        if op == "$=":
            return bool(expected) and actual.endswith(expected)
        if op == "*=":
            return bool(expected) and expected in actual
        if op == "|=":
            return actual == expected or actual.startswith(f"{expected}-")
        return False

    return _check


def _last_of_type(element: "Element") -> bool:
    if element.parent is None:
        return True
    same = [sibling for sibling in element.parent.element_children if sibling.tag == element.tag]
    return same[-1] is element


def _id_predicate(match: "re.Match[str]") -> Predicate:
    wanted = match.group(1)
    return lambda element: element.id == wanted


def _class_predicate(match: "re.Match[str]") -> Predicate:
    wanted = match.group(1)
    return lambda element: wanted in element.classes


def _attr_match_predicate(match: "re.Match[str]") -> Predicate:
    value = next((group for group in match.group(3, 4, 5) if group is not None), None)
    return _attr_predicate(match.group(1), match.group(2), value)


def _nth_predicate(match: "re.Match[str]") -> Predicate:
    wanted = int(match.group(1))
    return lambda element: element.nth_of_type == wanted


_SIMPLE_SELECTORS: Tuple[Tuple["re.Pattern[str]", Callable[..., Predicate]], ...] = (
    (_ID_RE, _id_predicate),
    (_CLASS_RE, _class_predicate),
    (_ATTR_RE, _attr_match_predicate),
    (_NTH_RE, _nth_predicate),
    (_FIRST_RE, lambda match: (lambda element: element.nth_of_type == 1)),
    (_LAST_RE, lambda match: _last_of_type),
)


def _parse_compound(text: str, pos: int) -> Tuple[_Compound, int]:
    compound = _Compound()
    start = pos
    match = _TAG_RE.match(text, pos)
    if match:
        token = match.group(0)
        compound.tag = None if token == "*" else token.lower()
        pos = match.end()
    while pos < len(text):
        for pattern, build in _SIMPLE_SELECTORS:
            match = pattern.match(text, pos)
            if match:
                compound.predicates.append(build(match))
                pos = match.end()
                break
        else:
            break
    if pos == start:
        raise SelectorSyntaxError(f"Unsupported selector syntax near: {text[pos:]!r}")
    return compound, pos


def _split_groups(selector: str) -> List[str]:
    groups: List[str] = []
    depth = 0
    quote: Optional[str] = None
    current: List[str] = []
    for char in selector:
        if quote:
            if char == quote:
                quote = None
        elif char in "\"'":
            quote = char
        elif char in "[(":
            depth += 1
        elif char in "])":
            depth -= 1
        elif char == "," and depth == 0:
            groups.append("".join(current))
            current = []
            continue
        current.append(char)
    groups.append("".join(current))
    return groups


def _parse_complex(text: str) -> _Complex:
    text = text.strip()
    if not text:
        raise SelectorSyntaxError("Empty selector")
    parts: _Complex = []
    pos = 0
    combinator = ""
    while pos < len(text):
        compound, pos = _parse_compound(text, pos)
        parts.append((combinator, compound))
        saw_space = False
        while pos < len(text) and text[pos].isspace():
            pos += 1
            saw_space = True
        if pos >= len(text):
            break
        if text[pos] in ">+~":
            if text[pos] != ">":
                raise SelectorSyntaxError(f"Unsupported combinator {text[pos]!r}")
            combinator = ">"
            pos += 1
            while pos < len(text) and text[pos].isspace():
                pos += 1
            if pos >= len(text):
                raise SelectorSyntaxError("Selector ends with a combinator")
        elif saw_space:
            combinator = " "
        else:
            raise SelectorSyntaxError(f"Unsupported selector syntax near: {text[pos:]!r}")
    return parts


@lru_cache(maxsize=256)
def compile_selector(selector: str) -> Tuple[_Complex, ...]:
    return tuple(_parse_complex(group) for group in _split_groups(selector))


def _matches_from(parts: _Complex, index: int, element: "Element") -> bool:
    combinator, compound = parts[index]
    if not compound.matches(element):
        return False
    if index == 0:
        return True
    if combinator == ">":
        parent = element.parent
        return parent is not None and _matches_from(parts, index - 1, parent)
    return any(
        _matches_from(parts, index - 1, ancestor)
        for ancestor in element.iter_ancestors()
    )


def matches(element: "Element", selector: str) -> bool:
    return any(
        _matches_from(parts, len(parts) - 1, element)
        for parts in compile_selector(selector)
    )


def select(root: "Element", selector: str, *, include_root: bool = False) -> List["Element"]:
    """Return matching elements under ``root`` in document order."""
    compiled = compile_selector(selector)
    candidates = [root] if include_root else []
    candidates.extend(root.iter_descendants())
    return [
        element
        for element in candidates
        if any(_matches_from(parts, len(parts) - 1, element) for parts in compiled)
    ]
