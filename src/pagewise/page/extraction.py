"""Structured data extraction from a page snapshot."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional
from urllib.parse import urljoin

import trafilatura

from pagewise.core.types import PageMatch
from pagewise.page.dom import Document, Element, HEADING_TAGS, element_selector
from pagewise.page.segmenter import embeddable_sections, segment_document
from pagewise.page.selectors import select

logger = logging.getLogger(__name__)

MAIN_CONTENT_SELECTORS = ("main", '[role="main"]', ".main-content", "#main", "article")
EXCLUDED_ZONE_TAGS = frozenset({"nav", "header", "footer"})
EXCLUDED_ZONE_CLASSES = frozenset({"nav", "navigation", "menu"})
FORM_FIELD_SELECTOR = "input, select, textarea"
SUBMIT_BUTTON_SELECTOR = 'button[type="submit"], input[type="submit"]'
MATCH_TEXT_MAX_CHARS = 200
IMPORTANT_STYLES = (
    "display", "position", "visibility", "opacity", "color",
    "background-color", "font-size", "font-family", "width", "height",
    "margin", "padding", "border",
)


def _absolute(document: Document, href: str) -> str:
    if document.url and href:
        return urljoin(document.url, href)
    return href


def meta_description(document: Document) -> str:
    element = document.query_selector('meta[name="description"]')
    return element.get("content") if element is not None else ""


def extract_headings(document: Document) -> List[Dict[str, Any]]:
    headings = []
    for element in document.iter_elements():
        if element.tag not in HEADING_TAGS:
            continue
        headings.append(
            {
                "level": element.heading_level,
                "text": element.inner_text.strip(),
                "id": element.id,
                "selector": element_selector(element),
                "rect": element.rect.to_dict(),
            }
        )
    return headings


def extract_links(document: Document, filter_text: str = "") -> List[Dict[str, Any]]:
    """All ``a[href]`` links, optionally filtered on text or href (case-insensitive)."""
    needle = filter_text.strip().lower()
    links = []
    for element in document.query_selector_all("a[href]"):
        link = {
            "text": element.inner_text.strip(),
            "href": _absolute(document, element.get("href")),
            "title": element.get("title"),
            "target": element.get("target"),
            "selector": element_selector(element),
            "rect": element.rect.to_dict(),
        }
        if needle and needle not in link["text"].lower() and needle not in link["href"].lower():
            continue
        links.append(link)
    return links


def extract_images(document: Document) -> List[Dict[str, Any]]:
    return [
        {
            "src": _absolute(document, element.get("src")),
            "alt": element.get("alt"),
            "title": element.get("title"),
            "width": element.get("width") or element.rect.width,
            "height": element.get("height") or element.rect.height,
            "selector": element_selector(element),
            "rect": element.rect.to_dict(),
        }
        for element in document.query_selector_all("img")
    ]


def extract_tables(document: Document) -> List[Dict[str, Any]]:
    tables = []
    for table in document.query_selector_all("table"):
        headers = [cell.inner_text.strip() for cell in select(table, "th")]
        rows = []
        for row in select(table, "tr"):
            cells = [cell.inner_text.strip() for cell in select(row, "td")]
            if cells:
                rows.append(cells)
        tables.append(
            {"headers": headers, "rows": rows, "selector": element_selector(table)}
        )
    return tables


def _field_descriptor(field: Element) -> Dict[str, Any]:
    if field.tag == "input":
        field_type = field.get("type", "text").lower() or "text"
    elif field.tag == "select":
        field_type = "select-multiple" if field.has_attr("multiple") else "select-one"
    else:
        field_type = field.tag
    descriptor: Dict[str, Any] = {
        "name": field.get("name"),
        "type": field_type,
        "id": field.id,
        "required": field.has_attr("required"),
        "placeholder": field.get("placeholder"),
        "value": field.inner_text.strip() if field.tag == "textarea" else field.get("value"),
        "selector": element_selector(field),
        "options": None,
    }
    if field.tag == "select":
        descriptor["options"] = [
            {
                "value": option.get("value", option.inner_text.strip()),
                "text": option.inner_text.strip(),
            }
            for option in select(field, "option")
        ]
    return descriptor


def extract_form_fields(
    document: Document, form_selector: Optional[str] = None
) -> List[Dict[str, Any]]:
    """Describe forms, their fields and submit buttons."""
    if form_selector:
        form = document.query_selector(form_selector)
        forms = [form] if form is not None else []
    else:
        forms = document.query_selector_all("form")

    described = []
    for form in forms:
        described.append(
            {
                "action": _absolute(document, form.get("action")),
                "method": (form.get("method") or "get").lower(),
                "id": form.id,
                "selector": element_selector(form),
                "fields": [_field_descriptor(field) for field in select(form, FORM_FIELD_SELECTOR)],
                "submit_buttons": [
                    {
                        "text": button.inner_text.strip() or button.get("value"),
                        "selector": element_selector(button),
                    }
                    for button in select(form, SUBMIT_BUTTON_SELECTOR)
                ],
            }
        )
    return described


def _without_zones(element: Element) -> str:
    lines: List[str] = []
    for child in element.element_children:
        if child.tag in EXCLUDED_ZONE_TAGS:
            continue
        if EXCLUDED_ZONE_CLASSES.intersection(child.classes):
            continue
        text = child.inner_text
        if text:
            lines.append(text)
    return "\n".join(lines).strip()


def main_text_content(document: Document) -> str:
    """Main readable text: trafilatura first, then landmark heuristics."""
    try:
        extracted = trafilatura.extract(
            document.to_html(),
            url=document.url or None,
            include_comments=False,
            include_tables=True,
        )
    except Exception as exc:
        logger.debug("trafilatura extraction failed for %s: %s", document.url, exc)
        extracted = None
    if extracted and extracted.strip():
        return extracted.strip()

    for selector in MAIN_CONTENT_SELECTORS:
        element = document.query_selector(selector)
        if element is not None:
            return element.inner_text.strip()
    return _without_zones(document.body)


def extract_structured_data(
    document: Document,
    *,
    include_images: bool = False,
    include_links: bool = True,
    include_headings: bool = True,
    enable_semantic_processing: bool = True,
) -> Dict[str, Any]:
    semantic_sections = []
    if enable_semantic_processing:
        semantic_sections = [
            section.to_dict()
            for section in embeddable_sections(segment_document(document))
        ]
    return {
        "title": document.title,
        "url": document.url,
        "description": meta_description(document),
        "headings": extract_headings(document) if include_headings else [],
        "links": extract_links(document) if include_links else [],
        "images": extract_images(document) if include_images else [],
        "text": main_text_content(document),
        "forms": extract_form_fields(document),
        "tables": extract_tables(document),
        "semantic_sections": semantic_sections,
    }


def find_text_matches(
    document: Document, query: str, limit: Optional[int] = None
) -> List[PageMatch]:
    """Innermost elements whose rendered text contains ``query``.

    Ancestors of a match are skipped so one paragraph is not reported again
    through every container around it. Zero-size elements are skipped only
    when the snapshot carries layout information.
    """
    needle = query.strip().lower()
    if not needle:
        return []
    check_layout = document.has_layout
    body = document.body
    matching = [
        element
        for element in [body, *body.iter_descendants()]
        if needle in element.inner_text.lower()
    ]
    matching_ids = {id(element) for element in matching}

    results: List[PageMatch] = []
    for element in matching:
        if any(id(child) in matching_ids for child in element.iter_descendants()):
            continue
        if check_layout and element.rect.is_empty:
            continue
        results.append(
            PageMatch(
                text=element.inner_text.strip()[:MATCH_TEXT_MAX_CHARS],
                selector=element_selector(element),
                tag=element.tag,
                rect=element.rect,
            )
        )
        if limit is not None and len(results) >= limit:
            break
    return results


def describe_element(element: Element) -> Dict[str, Any]:
    return {
        "tag": element.tag,
        "id": element.id,
        "class_name": element.get("class"),
        "text": element.inner_text.strip(),
        "href": element.get("href"),
        "src": element.get("src"),
        "selector": element_selector(element),
        "rect": element.rect.to_dict(),
    }


def inline_styles(element: Element) -> Dict[str, str]:
    """Parse the inline ``style`` attribute into the properties callers care about."""
    styles: Dict[str, str] = {}
    for declaration in element.get("style").split(";"):
        name, _, value = declaration.partition(":")
        name = name.strip().lower()
        if name in IMPORTANT_STYLES and value.strip():
            styles[name] = value.strip()
    return styles
