"""Tests for the HTML text projection and HTML-aware anchor resolution."""

from __future__ import annotations

import pytest

from delvewiki.annotations.anchors import MatchStrategy, TextAnchor
from delvewiki.annotations.html_text import (
    extract_text,
    project_html_text,
    resolve_anchor_in_html,
)


class TestProjection:
    """Tags are skipped and every text character maps back to the HTML."""

    def test_offsets_skip_tags(self) -> None:
        html = "<p>Hello <b>world</b>!</p>"
        projection = project_html_text(html)

        assert projection.text == "Hello world!"
        assert projection.offsets[0] == 3
        assert projection.offsets[6] == 12
        assert projection.offsets[11] == 21
        assert all(html[o] == c for o, c in zip(projection.offsets, projection.text))

    def test_entities_decoded(self) -> None:
        projection = project_html_text("A &amp; B &#233; &#x41;")

        assert projection.text == "A & B é A"
        assert projection.offsets[2] == 2
        assert projection.lengths[2] == 5
        assert projection.lengths[6] == 6

    def test_unknown_entity_kept_literally(self) -> None:
        assert extract_text("<p>&bogus; &amp</p>") == "&bogus; &amp"

    def test_comments_and_scripts_skipped(self) -> None:
        html = (
            "<p>a<!-- hidden <b>tag</b> --></p>"
            "<script>var b = '<p>';</script>"
            "<style>p { color: red }</style>"
            "<p>c</p>"
        )
        assert extract_text(html) == "ac"

    def test_whitespace_preserved(self) -> None:
        assert extract_text("<p>one\n  two</p>\n<p>three</p>") == "one\n  two\nthree"

    def test_void_tags_contribute_nothing(self) -> None:
        assert extract_text("line<br>break<img src='x.png' alt='pic'/>") == "linebreak"

    def test_attribute_values_are_not_text(self) -> None:
        assert extract_text('<a href="/wiki/XYZ" title="XYZ">link</a>') == "link"

    def test_unterminated_tag_swallows_rest(self) -> None:
        assert extract_text("text <b unterminated") == "text "


class TestToHtmlSpan:
    """Mapping a text span back to HTML offsets."""

    def test_span_ends_after_entity(self) -> None:
        html = "Fish &amp; chips"
        projection = project_html_text(html)
        assert projection.to_html_span(5, 6) == (5, 10)

    @pytest.mark.parametrize(("start", "end"), [(0, 0), (3, 2), (0, 99), (-1, 2)])
    def test_invalid_span_raises(self, start: int, end: int) -> None:
        projection = project_html_text("<p>abc</p>")
        with pytest.raises(ValueError, match="outside projection"):
            projection.to_html_span(start, end)


class TestResolveAnchorInHtml:
    """The strategy pipeline run over rendered HTML."""

    def test_selection_spanning_inline_tag(self) -> None:
        html = "<p>Hello <b>world</b>!</p>"
        span = resolve_anchor_in_html(html, TextAnchor(text="Hello world"))

        assert span is not None
        assert (span.start, span.end) == (3, 17)
        assert html[span.start : span.end] == "Hello <b>world"

    def test_tag_characters_never_match(self) -> None:
        html = '<p class="b">text</p>'
        assert resolve_anchor_in_html(html, TextAnchor(text="class")) is None
        assert resolve_anchor_in_html(html, TextAnchor(text="p")) is None

    def test_context_across_elements(self) -> None:
        html = "<p>XYZ first.</p><p>abc <em>XYZ</em> def</p>"
        anchor = TextAnchor(text="XYZ", prefix="abc ", suffix=" def")

        span = resolve_anchor_in_html(html, anchor)

        assert span is not None
        assert span.strategy is MatchStrategy.EXACT_CONTEXT
        assert span.start == html.index("XYZ</em>")

    def test_entity_in_anchor(self) -> None:
        html = "<p>Fish &amp; chips</p>"
        span = resolve_anchor_in_html(html, TextAnchor(text="& chips"))

        assert span is not None
        assert html[span.start : span.end] == "&amp; chips"

    def test_orphan_returns_none(self) -> None:
        html = "<p>Completely rewritten.</p>"
        anchor = TextAnchor(text="original wording", prefix="the ", suffix=".")
        assert resolve_anchor_in_html(html, anchor) is None
