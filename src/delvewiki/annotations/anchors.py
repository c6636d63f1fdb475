"""Text anchors: capture a selection and find it again after edits.

An anchor is the selected text plus a little context on each side. Nothing
in it is authoritative once the page changes; resolution is a best-effort
search that prefers reporting an orphan over attaching a comment to the
wrong sentence. There is deliberately no fuzzy matching.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, field_validator

from delvewiki.config import get_settings

logger = logging.getLogger(__name__)


def _normalise_newlines(value: str) -> str:
    # Browsers may hand back \r\n from a selection
    return value.replace("\r\n", "\n")


class TextAnchor(BaseModel):
    """A selected span of rendered text plus surrounding context."""

    model_config = ConfigDict(frozen=True)

    text: str
    prefix: str = ""
    suffix: str = ""

    @field_validator("text", "prefix", "suffix", mode="before")
    @classmethod
    def _normalise(cls, value: object) -> object:
        if isinstance(value, str):
            return _normalise_newlines(value)
        return value

    @field_validator("text")
    @classmethod
    def _text_not_empty(cls, value: str) -> str:
        if not value:
            msg = "Anchor text must not be empty"
            raise ValueError(msg)
        return value


class MatchStrategy(StrEnum):
    """Which search found an anchor."""

    EXACT_TEXT = "exact_text"
    EXACT_CONTEXT = "exact_context"
    PREFIX_CONTEXT = "prefix_context"
    SUFFIX_CONTEXT = "suffix_context"
    FIRST_OCCURRENCE = "first_occurrence"


@dataclass(frozen=True)
class AnchorSpan:
    """Half-open ``[start, end)`` span where an anchor was found."""

    start: int
    end: int
    strategy: MatchStrategy


@dataclass(frozen=True)
class _Strategy:
    """One search in the resolution pipeline.

    Searches ``haystack`` for ``before + text + after`` and reports the span
    of ``text`` inside the hit. With ``unique`` set, a needle occurring more
    than once counts as no match so a later, more specific strategy can
    break the tie.
    """

    kind: MatchStrategy
    use_prefix: bool = False
    use_suffix: bool = False
    unique: bool = False

    def applies_to(self, anchor: TextAnchor) -> bool:
        if self.use_prefix and not anchor.prefix:
            return False
        if self.use_suffix and not anchor.suffix:
            return False
        return True

    def find(self, haystack: str, anchor: TextAnchor) -> AnchorSpan | None:
        before = anchor.prefix if self.use_prefix else ""
        after = anchor.suffix if self.use_suffix else ""
        needle = before + anchor.text + after

        index = haystack.find(needle)
        if index == -1:
            return None
        if self.unique and haystack.find(needle, index + 1) != -1:
            return None

        start = index + len(before)
        return AnchorSpan(start, start + len(anchor.text), self.kind)


# Tried in order, first hit wins.
STRATEGIES: tuple[_Strategy, ...] = (
    _Strategy(MatchStrategy.EXACT_TEXT, unique=True),
    _Strategy(MatchStrategy.EXACT_CONTEXT, use_prefix=True, use_suffix=True),
    _Strategy(MatchStrategy.PREFIX_CONTEXT, use_prefix=True),
    _Strategy(MatchStrategy.SUFFIX_CONTEXT, use_suffix=True),
    _Strategy(MatchStrategy.FIRST_OCCURRENCE),
)


def resolve_anchor(haystack: str, anchor: TextAnchor) -> AnchorSpan | None:
    """Locate ``anchor`` in plain text.

    Args:
        haystack: Current text to search.
        anchor: Anchor captured when the comment was created.

    Returns:
        The span of the anchor text, or None if it cannot be found (the
        comment is orphaned). Never raises for a miss.
    """
    for strategy in STRATEGIES:
        if not strategy.applies_to(anchor):
            continue
        span = strategy.find(haystack, anchor)
        if span is not None:
            if strategy.kind is not MatchStrategy.EXACT_TEXT:
                logger.debug(
                    "Anchor %r resolved by %s at [%d, %d)",
                    anchor.text[:40],
                    span.strategy,
                    span.start,
                    span.end,
                )
            return span

    logger.info("Anchor %r not found; comment is orphaned", anchor.text[:40])
    return None


def capture_anchor(
    text: str,
    start: int,
    end: int,
    context_chars: int | None = None,
) -> TextAnchor:
    """Build an anchor for ``text[start:end]`` with context on both sides.

    Args:
        text: Plain text the selection was made in.
        start: Selection start offset.
        end: Selection end offset (exclusive).
        context_chars: Context width; defaults to
            ``ANNOTATIONS__CONTEXT_CHARS``.

    Raises:
        ValueError: If the span is empty or outside ``text``.
    """
    if not 0 <= start < end <= len(text):
        msg = f"Invalid selection [{start}, {end}) for text of length {len(text)}"
        raise ValueError(msg)

    width = (
        get_settings().annotations.context_chars
        if context_chars is None
        else context_chars
    )
    return TextAnchor(
        text=text[start:end],
        prefix=text[max(0, start - width) : start],
        suffix=text[end : end + width],
    )
