"""Inject inline-comment highlights into rendered HTML.

Each inline comment's anchor is resolved against the text projection of the
HTML and the matching span is wrapped in a marker element::

    <mark class="inline-comment" data-comment-id="abc123">...</mark>

Comments whose anchors cannot be found are returned as orphans and get no
marker.
"""

# Pattern: Functional Core (pure string rewriting)

from __future__ import annotations

import html as html_module
import logging
import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol

from selectolax.lexbor import LexborHTMLParser

from delvewiki.annotations.anchors import resolve_anchor
from delvewiki.annotations.html_text import project_html_text
from delvewiki.config import get_settings

if TYPE_CHECKING:
    from collections.abc import Sequence

    from delvewiki.annotations.anchors import AnchorSpan, TextAnchor

logger = logging.getLogger(__name__)

# Elements that never have a closing tag
_VOID_TAGS = frozenset(
    (
        "area",
        "base",
        "br",
        "col",
        "embed",
        "hr",
        "img",
        "input",
        "link",
        "meta",
        "param",
        "source",
        "track",
        "wbr",
    )
)

# Start tags that end an open <p>
_BLOCK_TAGS = frozenset(
    (
        "address",
        "article",
        "aside",
        "blockquote",
        "details",
        "div",
        "dl",
        "fieldset",
        "figcaption",
        "figure",
        "footer",
        "form",
        "h1",
        "h2",
        "h3",
        "h4",
        "h5",
        "h6",
        "header",
        "hgroup",
        "hr",
        "main",
        "menu",
        "nav",
        "ol",
        "p",
        "pre",
        "section",
        "table",
        "ul",
    )
)

_CELL_CLOSERS = frozenset(("td", "th", "tr", "tbody", "thead", "tfoot"))

# Elements whose end tag may be omitted, and the start tags that end them
_CLOSED_BY: dict[str, frozenset[str]] = {
    "p": _BLOCK_TAGS,
    "li": frozenset(("li",)),
    "dt": frozenset(("dt", "dd")),
    "dd": frozenset(("dt", "dd")),
    "option": frozenset(("option", "optgroup")),
    "optgroup": frozenset(("optgroup",)),
    "rt": frozenset(("rt", "rp")),
    "rp": frozenset(("rt", "rp")),
    "td": _CELL_CLOSERS,
    "th": _CELL_CLOSERS,
    "tr": frozenset(("tr", "tbody", "thead", "tfoot")),
    "thead": frozenset(("tbody", "tfoot")),
    "tbody": frozenset(("tbody", "tfoot")),
}

# Open elements an implied end tag looks past to find what it closes
_PASS_THROUGH = frozenset(
    (
        "a",
        "abbr",
        "address",
        "b",
        "cite",
        "code",
        "div",
        "em",
        "font",
        "i",
        "kbd",
        "mark",
        "p",
        "q",
        "s",
        "samp",
        "small",
        "span",
        "strong",
        "sub",
        "sup",
        "u",
        "var",
    )
)

# A marker between these and their table is moved out of the table by parsers
_TABLE_PARTS = frozenset(
    ("caption", "colgroup", "tbody", "td", "tfoot", "th", "thead", "tr")
)

_TAG = re.compile(
    r"<!--.*?-->|<(/?)([A-Za-z][A-Za-z0-9-]*)[^>]*?(/?)>",
    re.DOTALL,
)


class Highlightable(Protocol):
    """What the injector needs from an inline comment."""

    id: str
    anchor: TextAnchor
    resolved: bool


@dataclass
class HighlightResult:
    """Rewritten HTML plus the ids of comments that could not be placed."""

    html: str
    orphaned_ids: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class _TagPair:
    """An element's extent as HTML offsets.

    An element whose end tag is implied has an empty close at the position
    where the parser would end it.
    """

    name: str
    open_start: int
    open_end: int
    close_start: int
    close_end: int

    @property
    def implicit(self) -> bool:
        return self.close_start == self.close_end

    def within(self, start: int, end: int) -> bool:
        return start <= self.open_start and self.close_end <= end


def _close_from(
    stack: list[tuple[str, int, int]],
    pairs: list[_TagPair],
    depth: int,
    close_start: int,
    close_end: int,
) -> None:
    """Close ``stack[depth]`` and everything opened after it.

    Elements above ``depth`` are ended implicitly at ``close_start``.
    """
    for index in range(len(stack) - 1, depth - 1, -1):
        name, open_start, open_end = stack[index]
        end = close_end if index == depth else close_start
        pairs.append(_TagPair(name, open_start, open_end, close_start, end))
    del stack[depth:]


def _close_implied(
    stack: list[tuple[str, int, int]],
    pairs: list[_TagPair],
    opening: str,
    pos: int,
) -> None:
    """End the open elements that a ``<opening>`` start tag at ``pos`` ends."""
    depth = len(stack) - 1
    while depth >= 0:
        name = stack[depth][0]
        if opening in _CLOSED_BY.get(name, ()):
            _close_from(stack, pairs, depth, pos, pos)
            depth = len(stack) - 1
        elif name in _PASS_THROUGH:
            depth -= 1
        else:
            break


def _match_tag_pairs(html: str) -> list[_TagPair]:
    """Find the extent of every element in ``html``.

    Omitted end tags are inferred the way HTML parsers infer them: a ``<li>``
    ends the previous ``<li>``, a block start tag ends an open ``<p>``, an end
    tag ends the elements still open inside it, and the end of the document
    ends everything. Void and self-closing tags are ignored, as is a closing
    tag with nothing open to close.
    """
    pairs: list[_TagPair] = []
    stack: list[tuple[str, int, int]] = []

    for match in _TAG.finditer(html):
        name = match.group(2)
        if name is None:
            continue  # comment
        name = name.lower()

        if not match.group(1):
            _close_implied(stack, pairs, name, match.start())
            if name not in _VOID_TAGS and not match.group(3):
                stack.append((name, match.start(), match.end()))
            continue

        for depth in range(len(stack) - 1, -1, -1):
            if stack[depth][0] == name:
                _close_from(stack, pairs, depth, match.start(), match.end())
                break

    if stack:
        _close_from(stack, pairs, 0, len(html), len(html))
    return pairs


def _enclosing_table(pairs: list[_TagPair], part: _TagPair) -> _TagPair | None:
    tables = [
        pair
        for pair in pairs
        if pair.name == "table"
        and pair.open_start < part.open_start
        and part.close_start <= pair.close_start
    ]
    return max(tables, key=lambda pair: pair.open_start, default=None)


def _balance_span(pairs: list[_TagPair], start: int, end: int) -> tuple[int, int]:
    """Widen ``[start, end)`` until every element in it is wholly inside.

    An element that opens inside the span but closes after it pushes ``end``
    past its closing tag; one that closes inside but opened before pushes
    ``start`` back to its opening tag. An implied close at ``end`` counts as
    inside only for an element that opened inside. A span taking in rows or
    cells grows to cover their whole table. Repeats until stable, so
    wrapping the result cannot interleave tags.
    """
    changed = True
    while changed:
        changed = False
        for pair in pairs:
            opens_inside = start <= pair.open_start < end
            if pair.implicit:
                closes_inside = start < pair.close_start < end or (
                    opens_inside and pair.close_start == end
                )
            else:
                closes_inside = start <= pair.close_start < end

            if opens_inside and not closes_inside:
                end = pair.close_end
                changed = True
            elif closes_inside and not opens_inside:
                start = pair.open_start
                changed = True
            elif opens_inside and pair.name in _TABLE_PARTS:
                table = _enclosing_table(pairs, pair)
                if table is not None and not table.within(start, end):
                    start = min(start, table.open_start)
                    end = max(end, table.close_end)
                    changed = True
    return start, end


def _implied_end_tags(
    pairs: list[_TagPair], position: int, opened: tuple[int, int]
) -> str:
    """Spell out the implied end tags that fall exactly at ``position``.

    Only elements opening within ``opened`` (``[start, end)``) count.
    Innermost element first.
    """
    low, high = opened
    closing = [
        pair
        for pair in pairs
        if pair.implicit
        and pair.close_start == position
        and low <= pair.open_start < high
    ]
    closing.sort(key=lambda pair: pair.open_start, reverse=True)
    return "".join(f"</{pair.name}>" for pair in closing)


def _open_marker(comment: Highlightable) -> str:
    config = get_settings().annotations
    classes = config.mark_class
    if comment.resolved:
        classes = f"{classes} {config.resolved_class}"
    comment_id = html_module.escape(comment.id, quote=True)
    return f'<{config.mark_tag} class="{classes}" data-comment-id="{comment_id}">'


def _close_marker() -> str:
    return f"</{get_settings().annotations.mark_tag}>"


def inject_highlights(
    html: str, comments: Sequence[Highlightable]
) -> HighlightResult:
    """Wrap each comment's anchored text in a marker element.

    Args:
        html: Rendered page HTML.
        comments: Inline comments to place.

    Returns:
        ``HighlightResult`` with the rewritten HTML and the ids of comments
        whose anchors could not be resolved. With no comments the HTML is
        returned unchanged.

    Implementation notes:
        Anchors are resolved against the text projection, which inserting
        markers never changes. Markers are then applied right to left (by
        descending text offset), and each span is mapped to HTML offsets
        against the document as rewritten so far, so earlier insertions
        cannot leave a later span pointing at stale offsets. Spans that
        overlap end up nested rather than interleaved. End tags the source
        leaves implied are written out where a marker starts or stops, so
        a parser cannot end the marker early.
    """
    if not comments:
        return HighlightResult(html=html)

    text = project_html_text(html).text
    placed: list[tuple[AnchorSpan, Highlightable]] = []
    orphaned_ids: list[str] = []

    for comment in comments:
        span = resolve_anchor(text, comment.anchor)
        if span is None:
            orphaned_ids.append(comment.id)
        else:
            placed.append((span, comment))

    placed.sort(key=lambda item: (item[0].start, item[0].end), reverse=True)

    result = html
    for span, comment in placed:
        projection = project_html_text(result)
        pairs = _match_tag_pairs(result)
        html_start, html_end = projection.to_html_span(span.start, span.end)
        html_start, html_end = _balance_span(pairs, html_start, html_end)
        result = (
            result[:html_start]
            + _implied_end_tags(pairs, html_start, (0, html_start))
            + _open_marker(comment)
            + result[html_start:html_end]
            + _implied_end_tags(pairs, html_end, (html_start, html_end))
            + _close_marker()
            + result[html_end:]
        )

    if orphaned_ids:
        logger.info(
            "Placed %d highlights, %d orphaned: %s",
            len(placed),
            len(orphaned_ids),
            ", ".join(orphaned_ids),
        )
    return HighlightResult(html=result, orphaned_ids=orphaned_ids)


def highlighted_ids(html: str) -> list[str]:
    """Return the comment ids of markers present in ``html``, in document order."""
    config = get_settings().annotations
    tree = LexborHTMLParser(html)
    selector = f"{config.mark_tag}.{config.mark_class}[data-comment-id]"
    return [
        node.attributes.get("data-comment-id") or "" for node in tree.css(selector)
    ]


def strip_highlights(html: str) -> str:
    """Remove previously injected markers, keeping their content.

    The result is re-serialised by the HTML parser, so insignificant markup
    details (attribute quoting, void tag syntax) may be normalised. For a
    fragment, elements the parser places in ``<head>`` (a leading ``<title>``
    or ``<meta>``) are kept ahead of the body content.
    """
    config = get_settings().annotations
    tree = LexborHTMLParser(html)
    selector = f"{config.mark_tag}.{config.mark_class}[data-comment-id]"
    nodes = tree.css(selector)
    if not nodes:
        return html

    for node in nodes:
        node.unwrap()

    if "<html" in html.lower():
        return tree.html or html
    return "".join(
        part.inner_html or ""
        for part in (tree.head, tree.body)
        if part is not None
    )
