"""Page identity helpers."""

from delvewiki.pages.keys import DEFAULT_PROJECT, PageKey, slugify

__all__ = ["DEFAULT_PROJECT", "PageKey", "slugify"]
