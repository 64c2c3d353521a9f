"""In-memory document model built from HTML or from a browser DOM snapshot."""

from __future__ import annotations

import html
import re
from html.parser import HTMLParser
from typing import Any, Dict, Iterator, List, Optional, Union

from pagewise.core.types import Rect

HEADING_TAGS = frozenset({"h1", "h2", "h3", "h4", "h5", "h6"})
VOID_TAGS = frozenset(
    {
        "area", "base", "br", "col", "embed", "hr", "img", "input",
        "link", "meta", "source", "track", "wbr",
    }
)
HIDDEN_TAGS = frozenset({"script", "style", "noscript", "template", "head"})
BLOCK_TAGS = frozenset(
    {
        "address", "article", "aside", "blockquote", "body", "dd", "details",
        "dialog", "div", "dl", "dt", "fieldset", "figcaption", "figure",
        "footer", "form", "h1", "h2", "h3", "h4", "h5", "h6", "header", "hr",
        "html", "li", "main", "nav", "ol", "p", "pre", "section", "summary",
        "table", "tbody", "thead", "tfoot", "tr", "ul", "option", "select",
        "textarea",
    }
)
CELL_TAGS = frozenset({"td", "th"})
# Opening one of these closes an open <p>.
P_CLOSING_TAGS = BLOCK_TAGS - {"body", "html", "option", "select", "textarea"}
# Opening one of these closes an open sibling of the same tag.
SELF_CLOSING_SIBLINGS = frozenset({"li", "option", "tr", "td", "th", "dt", "dd"})

_WHITESPACE_RE = re.compile(r"\s+")
_INLINE_SPACE_RE = re.compile(r"[ \t\f\r]+")

Node = Union["Element", str]


def collapse_whitespace(text: str) -> str:
    return _WHITESPACE_RE.sub(" ", text or "").strip()


class Element:
    """One element node; children are elements or raw text strings."""

    def __init__(
        self,
        tag: str,
        attrs: Optional[Dict[str, str]] = None,
        rect: Optional[Rect] = None,
    ) -> None:
        self.tag = tag.lower()
        self.attrs: Dict[str, str] = dict(attrs or {})
        self.children: List[Node] = []
        self.parent: Optional[Element] = None
        self.rect = rect or Rect()

    def __repr__(self) -> str:
        ident = f"#{self.id}" if self.id else ""
        return f"<Element {self.tag}{ident}>"

    @property
    def id(self) -> str:
        return self.attrs.get("id", "")

    @id.setter
    def id(self, value: str) -> None:
        self.attrs["id"] = value

    @property
    def classes(self) -> List[str]:
        return self.attrs.get("class", "").split()

    def get(self, name: str, default: str = "") -> str:
        value = self.attrs.get(name.lower())
        return default if value is None else value

    def has_attr(self, name: str) -> bool:
        return name.lower() in self.attrs

    @property
    def heading_level(self) -> int:
        if self.tag in HEADING_TAGS:
            return int(self.tag[1])
        return 0

    def append(self, child: Node) -> None:
        if isinstance(child, Element):
            child.parent = self
        self.children.append(child)

    @property
    def element_children(self) -> List["Element"]:
        return [child for child in self.children if isinstance(child, Element)]

    @property
    def next_element_sibling(self) -> Optional["Element"]:
        if self.parent is None:
            return None
        siblings = self.parent.element_children
        index = _index_by_identity(siblings, self)
        if index + 1 < len(siblings):
            return siblings[index + 1]
        return None

    def following_siblings(self) -> Iterator["Element"]:
        sibling = self.next_element_sibling
        while sibling is not None:
            yield sibling
            sibling = sibling.next_element_sibling

    def iter_descendants(self) -> Iterator["Element"]:
        """Yield descendant elements in document order."""
        stack = list(reversed(self.element_children))
        while stack:
            element = stack.pop()
            yield element
            stack.extend(reversed(element.element_children))

    def iter_ancestors(self) -> Iterator["Element"]:
        node = self.parent
        while node is not None:
            yield node
            node = node.parent

    def contains(self, other: "Element") -> bool:
        if other is self:
            return True
        return any(ancestor is self for ancestor in other.iter_ancestors())

    @property
    def nth_of_type(self) -> int:
        if self.parent is None:
            return 1
        position = 0
        for sibling in self.parent.element_children:
            if sibling.tag == self.tag:
                position += 1
            if sibling is self:
                return position
        return 1

    @property
    def text_content(self) -> str:
        parts: List[str] = []
        for child in self.children:
            if isinstance(child, Element):
                parts.append(child.text_content)
            else:
                parts.append(child)
        return "".join(parts)

    @property
    def inner_text(self) -> str:
        """Rendered text approximation: blocks on their own lines, hidden tags skipped."""
        chunks: List[str] = []
        _render_text(self, chunks, preformatted=False)
        lines = [
            _INLINE_SPACE_RE.sub(" ", line).strip()
            for line in "".join(chunks).split("\n")
        ]
        return "\n".join(line for line in lines if line)

    def outer_html(self) -> str:
        attrs = "".join(
            f' {name}="{html.escape(value, quote=True)}"'
            for name, value in self.attrs.items()
        )
        if self.tag in VOID_TAGS:
            return f"<{self.tag}{attrs}>"
        inner = "".join(
            child.outer_html() if isinstance(child, Element) else html.escape(child)
            for child in self.children
        )
        return f"<{self.tag}{attrs}>{inner}</{self.tag}>"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tag": self.tag,
            "attrs": dict(self.attrs),
            "rect": self.rect.to_dict(),
            "children": [
                child.to_dict() if isinstance(child, Element) else child
                for child in self.children
            ],
        }


def _index_by_identity(items: List[Element], target: Element) -> int:
    for index, item in enumerate(items):
        if item is target:
            return index
    return -1


def _render_text(element: Element, chunks: List[str], *, preformatted: bool) -> None:
    if element.tag in HIDDEN_TAGS:
        return
    if element.tag == "br":
        chunks.append("\n")
        return
    is_block = element.tag in BLOCK_TAGS
    preformatted = preformatted or element.tag == "pre"
    if is_block:
        chunks.append("\n")
    for child in element.children:
        if isinstance(child, Element):
            _render_text(child, chunks, preformatted=preformatted)
        elif preformatted:
            chunks.append(child)
        else:
            chunks.append(_WHITESPACE_RE.sub(" ", child))
    if is_block:
        chunks.append("\n")
    elif element.tag in CELL_TAGS:
        chunks.append(" ")


def structural_selector(element: Element) -> str:
    """Positional path from the document root, e.g. ``html > body > p:nth-of-type(2)``."""
    parts: List[str] = []
    node: Optional[Element] = element
    while node is not None:
        if node.parent is None:
            parts.append(node.tag)
        else:
            parts.append(f"{node.tag}:nth-of-type({node.nth_of_type})")
        node = node.parent
    return " > ".join(reversed(parts))


def element_selector(element: Element) -> str:
    """Id selector when the element has a usable id, else its structural path."""
    if element.id and re.fullmatch(r"[\w-]+", element.id):
        return f"#{element.id}"
    return structural_selector(element)


class Document:
    """A parsed page: element tree plus page-level metadata."""

    def __init__(
        self,
        root: Element,
        *,
        url: str = "",
        title: Optional[str] = None,
    ) -> None:
        self.root = root
        self.url = url
        self._title = title

    @classmethod
    def from_html(cls, markup: str, *, url: str = "") -> "Document":
        builder = _TreeBuilder()
        builder.feed(markup or "")
        builder.close()
        return cls(builder.root, url=url)

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "Document":
        """Build from a serialized browser snapshot ``{url, title, root}``."""
        root = _element_from_dict(payload.get("root") or {"tag": "html"})
        return cls(
            root,
            url=str(payload.get("url") or ""),
            title=payload.get("title"),
        )

    @property
    def title(self) -> str:
        if self._title is not None:
            return self._title
        for element in self.iter_elements():
            if element.tag == "title":
                return collapse_whitespace(element.text_content)
        return ""

    @property
    def body(self) -> Element:
        for element in self.iter_elements():
            if element.tag == "body":
                return element
        return self.root

    @property
    def has_layout(self) -> bool:
        return any(not element.rect.is_empty for element in self.iter_elements())

    def iter_elements(self) -> Iterator[Element]:
        yield self.root
        yield from self.root.iter_descendants()

    def get_element_by_id(self, element_id: str) -> Optional[Element]:
        for element in self.iter_elements():
            if element.id == element_id:
                return element
        return None

    def query_selector_all(self, selector: str) -> List[Element]:
        from pagewise.page.selectors import select

        return select(self.root, selector, include_root=True)

    def query_selector(self, selector: str) -> Optional[Element]:
        matches = self.query_selector_all(selector)
        return matches[0] if matches else None

    def to_html(self) -> str:
        return "<!DOCTYPE html>" + self.root.outer_html()

    def to_dict(self) -> Dict[str, Any]:
        return {"url": self.url, "title": self.title, "root": self.root.to_dict()}


def _element_from_dict(node: Dict[str, Any]) -> Element:
    raw_rect = node.get("rect") or {}
    if isinstance(raw_rect, dict):
        rect = Rect(
            x=float(raw_rect.get("x", 0) or 0),
            y=float(raw_rect.get("y", 0) or 0),
            width=float(raw_rect.get("width", 0) or 0),
            height=float(raw_rect.get("height", 0) or 0),
        )
    else:
        rect = Rect(*[float(value) for value in raw_rect][:4])
    attrs = {
        str(name).lower(): str(value)
        for name, value in (node.get("attrs") or {}).items()
    }
    element = Element(str(node.get("tag") or "div"), attrs, rect)
    for child in node.get("children") or []:
        if isinstance(child, dict):
            element.append(_element_from_dict(child))
        elif isinstance(child, str):
            element.append(child)
    return element


class _TreeBuilder(HTMLParser):
    """Lenient HTML tree builder with the implicit end tags common markup relies on."""

    def __init__(self) -> None:
        super().__init__(convert_charrefs=True)
        self.root = Element("html")
        self._stack: List[Element] = [self.root]
        self._root_opened = False

    @property
    def _current(self) -> Element:
        return self._stack[-1]

    def handle_starttag(self, tag: str, attrs: List[Any]) -> None:
        tag = tag.lower()
        attributes = {name.lower(): (value or "") for name, value in attrs}
        if tag == "html" and not self._root_opened:
            self.root.attrs.update(attributes)
            self._root_opened = True
            return
        self._close_implicit(tag)
        element = Element(tag, attributes)
        self._current.append(element)
        if tag not in VOID_TAGS:
            self._stack.append(element)

    def handle_startendtag(self, tag: str, attrs: List[Any]) -> None:
        tag = tag.lower()
        attributes = {name.lower(): (value or "") for name, value in attrs}
        self._close_implicit(tag)
        self._current.append(Element(tag, attributes))

    def handle_endtag(self, tag: str) -> None:
        tag = tag.lower()
        if tag == "html":
            return
        for index in range(len(self._stack) - 1, 0, -1):
            if self._stack[index].tag == tag:
                del self._stack[index:]
                return

    def handle_data(self, data: str) -> None:
        if data:
            self._current.append(data)

    def _close_implicit(self, tag: str) -> None:
        if tag in P_CLOSING_TAGS and self._current.tag == "p":
            self._stack.pop()
        if tag in SELF_CLOSING_SIBLINGS and self._current.tag == tag:
            self._stack.pop()
        if tag in CELL_TAGS and self._current.tag in CELL_TAGS:
            self._stack.pop()
        if tag == "tr":
            while len(self._stack) > 1 and self._current.tag in CELL_TAGS | {"tr"}:
                self._stack.pop()
