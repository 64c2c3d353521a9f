"""Document model, segmentation and page-local access."""

from pagewise.page.accessor import DomAccessor, SnapshotDomAccessor
from pagewise.page.dom import Document, Element
from pagewise.page.segmenter import embeddable_sections, segment_document

__all__ = [
    "Document",
    "DomAccessor",
    "Element",
    "SnapshotDomAccessor",
    "embeddable_sections",
    "segment_document",
]
