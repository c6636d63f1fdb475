"""Plain-text projection of HTML with a map back to HTML offsets.

Anchors are captured from rendered text, so they have to be searched for in
the text a reader sees rather than in the markup. The projection walks the
serialised HTML once, skipping everything between ``<`` and ``>`` (and the
bodies of non-rendered elements), decoding character entities, and records
for each projected character where it starts in the HTML and how many HTML
characters it occupies.
"""

# Pattern: Functional Core (pure string scanning, no DOM mutation)

from __future__ import annotations

import html as html_module
import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from delvewiki.annotations.anchors import AnchorSpan, resolve_anchor

if TYPE_CHECKING:
    from delvewiki.annotations.anchors import TextAnchor

# Elements whose content is never rendered as text
_SKIP_CONTENT_TAGS = frozenset(("script", "style", "noscript", "template"))

# Named or numeric character reference, terminated by ';'
_ENTITY = re.compile(
    r"&(?:#[0-9]{1,7}|#[xX][0-9a-fA-F]{1,6}|[A-Za-z][A-Za-z0-9]{1,31});"
)

_TAG_NAME = re.compile(r"</?\s*([A-Za-z][A-Za-z0-9-]*)")


@dataclass
class HtmlTextProjection:
    """Text content of an HTML string plus a character-level offset map.

    Attributes:
        html: The HTML that was projected.
        text: Concatenated text content, entities decoded.
        offsets: ``offsets[i]`` is where ``text[i]`` starts in ``html``.
        lengths: ``lengths[i]`` is how many HTML characters encode
            ``text[i]`` (1, or the length of an entity).
    """

    html: str
    text: str = ""
    offsets: list[int] = field(default_factory=list)
    lengths: list[int] = field(default_factory=list)

    def to_html_span(self, start: int, end: int) -> tuple[int, int]:
        """Map a non-empty text span ``[start, end)`` to HTML offsets.

        The returned span starts at the first character's HTML position and
        ends just after the last character's encoding, so it never cuts a
        tag or an entity in half.
        """
        if not 0 <= start < end <= len(self.text):
            msg = (
                f"Text span [{start}, {end}) outside projection "
                f"of length {len(self.text)}"
            )
            raise ValueError(msg)
        last = end - 1
        return self.offsets[start], self.offsets[last] + self.lengths[last]


def _tag_name(html: str, pos: int) -> str:
    match = _TAG_NAME.match(html, pos)
    return match.group(1).lower() if match else ""


def _skip_markup(html: str, pos: int) -> int:
    """Return the position just after the markup starting at ``html[pos]``.

    Handles comments, tags, and the bodies of non-rendered elements.
    Unterminated markup swallows the rest of the document.
    """
    if html.startswith("<!--", pos):
        close = html.find("-->", pos + 4)
        return len(html) if close == -1 else close + 3

    tag_end = html.find(">", pos)
    if tag_end == -1:
        return len(html)

    if html[pos + 1 : pos + 2] != "/":
        name = _tag_name(html, pos)
        if name in _SKIP_CONTENT_TAGS and not html[pos:tag_end].endswith("/"):
            close_tag = f"</{name}"
            close_pos = html.lower().find(close_tag, tag_end + 1)
            if close_pos != -1:
                close_end = html.find(">", close_pos)
                return len(html) if close_end == -1 else close_end + 1

    return tag_end + 1


def project_html_text(html: str) -> HtmlTextProjection:
    """Build the plain-text projection of ``html``.

    Examples:
        ``<p>Hello <b>world</b>!</p>`` projects to ``Hello world!`` with
        ``offsets[6]`` pointing at the ``w`` inside ``<b>``.
        ``A &amp; B`` projects to ``A & B``; the ``&`` has length 5.
    """
    projection = HtmlTextProjection(html=html)
    chars: list[str] = []
    offsets = projection.offsets
    lengths = projection.lengths

    i = 0
    n = len(html)
    while i < n:
        char = html[i]
        if char == "<":
            i = _skip_markup(html, i)
            continue

        if char == "&":
            match = _ENTITY.match(html, i)
            if match is not None:
                entity = match.group(0)
                decoded = html_module.unescape(entity)
                if decoded != entity:
                    for decoded_char in decoded:
                        chars.append(decoded_char)
                        offsets.append(i)
                        lengths.append(len(entity))
                    i += len(entity)
                    continue

        chars.append(char)
        offsets.append(i)
        lengths.append(1)
        i += 1

    projection.text = "".join(chars)
    return projection


def extract_text(html: str) -> str:
    """Return just the text content of ``html`` as the projection sees it."""
    return project_html_text(html).text


def resolve_anchor_in_html(html: str, anchor: TextAnchor) -> AnchorSpan | None:
    """Locate ``anchor`` in the rendered text of ``html``.

    Runs the same strategy pipeline as ``resolve_anchor`` against the text
    projection, so tag characters can never take part in a match and a
    selection may run across element boundaries.

    Returns:
        The span in *HTML* offsets, or None if the anchor is orphaned.
    """
    projection = project_html_text(html)
    span = resolve_anchor(projection.text, anchor)
    if span is None:
        return None
    start, end = projection.to_html_span(span.start, span.end)
    return AnchorSpan(start, end, span.strategy)
