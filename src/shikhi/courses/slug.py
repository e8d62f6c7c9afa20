"""URL slugs for course titles."""

from __future__ import annotations

import re

_NON_WORD = re.compile(r"[^\w\s-]")
_WHITESPACE = re.compile(r"\s+")
_DASHES = re.compile(r"-{2,}")


def slugify(title: str) -> str:
    """Lower-case, drop non-word characters, join words with ``-``.

    >>> slugify("Japanese  for Beginners!")
    'japanese-for-beginners'
    """
    slug = _NON_WORD.sub("", title.lower()).strip()
    slug = _WHITESPACE.sub("-", slug)
    return _DASHES.sub("-", slug).strip("-")
