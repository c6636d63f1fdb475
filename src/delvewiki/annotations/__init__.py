"""Inline and page-level comments: anchoring, highlighting, threads."""

from delvewiki.annotations.anchors import (
    AnchorSpan,
    MatchStrategy,
    TextAnchor,
    capture_anchor,
    resolve_anchor,
)
from delvewiki.annotations.highlights import (
    HighlightResult,
    highlighted_ids,
    inject_highlights,
    strip_highlights,
)
from delvewiki.annotations.html_text import (
    HtmlTextProjection,
    extract_text,
    project_html_text,
    resolve_anchor_in_html,
)
from delvewiki.annotations.threads import (
    CommentMessage,
    CommentThread,
    InlineComment,
)

__all__ = [
    "AnchorSpan",
    "CommentMessage",
    "CommentThread",
    "HighlightResult",
    "HtmlTextProjection",
    "InlineComment",
    "MatchStrategy",
    "TextAnchor",
    "capture_anchor",
    "extract_text",
    "highlighted_ids",
    "inject_highlights",
    "project_html_text",
    "resolve_anchor",
    "resolve_anchor_in_html",
    "strip_highlights",
]
