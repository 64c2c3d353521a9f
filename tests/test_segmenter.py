"""Tests for page segmentation into semantic sections."""

from itertools import combinations

import pytest

from pagewise.core.types import Link, SectionType
from pagewise.page.dom import Document
from pagewise.page.segmenter import (
    SECTION_ID_PREFIX,
    SegmenterSettings,
    block_title,
    build_embedding_content,
    embeddable_sections,
    identify_content_blocks,
    segment_document,
)


def _overlaps(first, second):
    return any(
        a.contains(b) or b.contains(a)
        for a in first.elements
        for b in second.elements
    )


def test_intro_and_details_in_separate_containers_make_two_sections(filler_text):
    doc = Document.from_html(
        f"<body><section><h1>Intro</h1><p>{filler_text(200)}</p></section>"
        f"<section><h2>Details</h2><p>{filler_text(40, 'dolor')}</p></section></body>"
    )
    sections = segment_document(doc)

    assert len(sections) == 2
    assert [s.heading for s in sections] == ["Intro", "Details"]
    assert [s.level for s in sections] == [1, 2]
    assert all(s.type is SectionType.HEADING_SECTION for s in sections)
    assert all(s.text and s.content for s in sections)
    assert sections[0].content.startswith("Intro lorem ipsum")


def test_deeper_sibling_heading_stays_in_parent_section(filler_text):
    doc = Document.from_html(
        f"<body><h1>Intro</h1><p>{filler_text(200)}</p>"
        f"<h2>Details</h2><p>{filler_text(40, 'dolor')}</p></body>"
    )
    sections = segment_document(doc)

    assert len(sections) == 1
    assert sections[0].heading == "Intro"
    assert "Details" in sections[0].content


def test_equal_or_shallower_heading_closes_previous_section(filler_text):
    doc = Document.from_html(
        f"<body><h2>A</h2><p>{filler_text(30)}</p><h2>B</h2><p>{filler_text(30)}</p>"
        f"<h3>B.1</h3><p>{filler_text(30)}</p><h1>C</h1><p>{filler_text(30)}</p></body>"
    )
    sections = segment_document(doc)

    assert [s.heading for s in sections] == ["A", "B", "C"]
    assert "B.1" in sections[1].text
    assert "C" not in sections[1].text.split()
    assert "B" not in sections[0].text.split()


def test_headings_inside_claimed_bodies_are_not_reprocessed(filler_text):
    doc = Document.from_html(
        f"<body><h2>Outer</h2><div><h3>Inner</h3><p>{filler_text(30)}</p></div></body>"
    )
    sections = segment_document(doc)
    assert len(sections) == 1
    assert sections[0].heading == "Outer"
    assert "Inner" in sections[0].text


def test_blocks_never_overlap(filler_text):
    doc = Document.from_html(
        f"""<body>
        <article><h2>Article heading</h2><p>{filler_text(40)}</p></article>
        <section class="content"><div><p>{filler_text(30)}</p></div><p>{filler_text(25)}</p></section>
        <p>{filler_text(25, 'amet')}</p>
        <div class="info">too short</div>
        </body>"""
    )
    blocks = identify_content_blocks(doc)

    assert [block.type for block in blocks] == [
        SectionType.HEADING_SECTION,
        SectionType.SEMANTIC_BLOCK,
        SectionType.TEXT_BLOCK,
    ]
    for first, second in combinations(blocks, 2):
        assert not _overlaps(first, second)


def test_text_block_length_and_word_bounds(filler_text):
    short = filler_text(12)
    long_words = " ".join(["consectetur"] * 15)
    too_long = filler_text(200)
    good = filler_text(25)
    doc = Document.from_html(
        f"<body><p>{short}</p><p>{long_words}</p><p>{too_long}</p><p class='keep'>{good}</p></body>"
    )
    sections = segment_document(doc)
    assert len(sections) == 1
    assert sections[0].type is SectionType.TEXT_BLOCK
    assert sections[0].heading is None
    assert sections[0].text == good


def test_thresholds_come_from_settings(filler_text):
    doc = Document.from_html(f"<body><p>{filler_text(12)}</p></body>")
    relaxed = SegmenterSettings(text_block_min_chars=10, text_block_min_words=5)
    assert segment_document(doc) == []
    assert len(segment_document(doc, relaxed)) == 1


def test_ids_and_selectors_relocate_roots(university_html):
    doc = Document.from_html(university_html, url="https://uni.example/")
    sections = segment_document(doc)

    assert [s.id for s in sections] == [f"{SECTION_ID_PREFIX}{i}" for i in range(5)]
    # An existing id is kept and used for the selector.
    library = sections[1]
    assert library.selector == "#library-info"
    assert doc.get_element_by_id(library.id) is None

    campus = sections[0]
    assert campus.selector == (
        "html > body:nth-of-type(1) > header:nth-of-type(1) > h1:nth-of-type(1)"
    )
    root = doc.query_selector(campus.selector)
    assert root is doc.get_element_by_id(campus.id)
    assert root.inner_text == "Campus life"


def test_zero_size_elements_are_kept(filler_text):
    payload = {
        "url": "https://example.com/",
        "root": {
            "tag": "html",
            "children": [
                {
                    "tag": "body",
                    "rect": [0, 0, 800, 600],
                    "children": [
                        {"tag": "h2", "rect": [0, 0, 0, 0], "children": ["Hidden heading"]},
                        {"tag": "p", "rect": [0, 0, 0, 0], "children": [filler_text(30)]},
                    ],
                }
            ],
        },
    }
    sections = segment_document(Document.from_dict(payload))
    assert len(sections) == 1
    assert sections[0].rect.is_empty


def test_short_sections_are_not_embeddable(filler_text):
    doc = Document.from_html(
        f"<body><h2>Tiny</h2><p>Hi there.</p><h2>Big</h2><p>{filler_text(30)}</p></body>"
    )
    sections = segment_document(doc)
    assert len(sections) == 2
    assert len(sections[0].content) <= 50
    assert [s.heading for s in embeddable_sections(sections)] == ["Big"]


def test_content_at_the_threshold_is_excluded(filler_text):
    doc = Document.from_html(f"<body><h2>T</h2><p>{filler_text(30)}</p></body>")
    section = segment_document(doc)[0]
    assert embeddable_sections([section], min_chars=len(section.content)) == []
    assert embeddable_sections([section], min_chars=len(section.content) - 1) == [section]


def test_semantic_block_collects_links_and_title(filler_text):
    doc = Document.from_html(
        f'<body><div class="summary" aria-label="Key facts">{filler_text(20)} '
        f'<a href="/apply">Apply now</a> {filler_text(5)}</div></body>'
    )
    sections = segment_document(doc)
    assert len(sections) == 1
    section = sections[0]
    assert section.type is SectionType.SEMANTIC_BLOCK
    assert section.heading == "Key facts"
    assert section.links == [Link(text="Apply now", href="/apply")]
    assert section.content.endswith("Apply now")


@pytest.mark.parametrize(
    "markup, expected",
    [
        ('<div class="info"><h3>Heading inside</h3>body</div>', "Heading inside"),
        ('<div class="info"><span class="headline">Headline</span></div>', "Headline"),
        ('<div class="info" title="Tooltip title">x</div>', "Tooltip title"),
        ('<div class="info" id="pricing_table-v2">x</div>', "pricing table v2"),
        ('<div class="info">Opening line here. Then more.</div>', "Opening line here."),
        ('<div class="info">no sentence end</div>', None),
    ],
)
def test_block_title_fallbacks(markup, expected):
    element = Document.from_html(markup).query_selector(".info")
    assert block_title(element) == expected


def test_build_embedding_content_collapses_whitespace():
    content = build_embedding_content(
        "  Heading ", "line one\n\n  line two", [Link("Read   more", "/x")]
    )
    assert content == "Heading line one line two Read more"
