"""Page identity.

Every history, comment and storage operation takes an explicit ``PageKey``
rather than re-deriving file paths or database rows from loose strings.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

DEFAULT_PROJECT = "main"
MAX_SLUG_LENGTH = 100

_NON_SLUG_CHARS = re.compile(r"[^\w\s-]")
_WHITESPACE = re.compile(r"\s+")
_HYPHEN_RUN = re.compile(r"-+")


def slugify(text: str) -> str:
    """Turn a page title into a filesystem- and URL-safe slug.

    Examples:
        "Quantum Computing" -> "quantum-computing"
        "  C++ / Rust!  " -> "c-rust"
    """
    slug = _NON_SLUG_CHARS.sub("", text.lower().strip())
    slug = _WHITESPACE.sub("-", slug)
    slug = _HYPHEN_RUN.sub("-", slug).strip("-")
    return slug[:MAX_SLUG_LENGTH].rstrip("-")


def _check_component(name: str, value: str) -> None:
    if not value:
        msg = f"Page {name} must not be empty"
        raise ValueError(msg)
    if "/" in value or "\\" in value or value in (".", "..") or "\x00" in value:
        msg = f"Page {name} {value!r} contains path characters"
        raise ValueError(msg)


@dataclass(frozen=True, order=True)
class PageKey:
    """Opaque identity of a wiki page: a project plus a slug."""

    slug: str
    project: str = DEFAULT_PROJECT

    def __post_init__(self) -> None:
        _check_component("slug", self.slug)
        _check_component("project", self.project)

    @classmethod
    def from_title(cls, title: str, project: str = DEFAULT_PROJECT) -> PageKey:
        """Build a key from a human title via ``slugify``."""
        return cls(slug=slugify(title), project=project)

    def __str__(self) -> str:
        return f"{self.project}/{self.slug}"
