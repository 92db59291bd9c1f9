"""URL slugs for custom views and client share links."""

from __future__ import annotations

import re
from collections.abc import Collection

MAX_SLUG_LENGTH = 50

_DISALLOWED = re.compile(r"[^\w\s-]", re.ASCII)
_WHITESPACE = re.compile(r"\s+", re.ASCII)
_HYPHENS = re.compile(r"-+")


def slugify(name: str, fallback: str = "view") -> str:
    """
    Turn a display name into a URL slug.

    "Q3 Roadmap (Draft)" -> "q3-roadmap-draft". A name with nothing
    usable in it becomes `fallback`.
    """
    slug = name.lower().strip()
    slug = _DISALLOWED.sub("", slug)
    slug = _WHITESPACE.sub("-", slug)
    slug = _HYPHENS.sub("-", slug)
    slug = slug[:MAX_SLUG_LENGTH]
    return slug or fallback


def unique_slug(base: str, taken: Collection[str]) -> str:
    """First of base, base-1, base-2, ... not in `taken`."""
    if base not in taken:
        return base
    counter = 1
    while f"{base}-{counter}" in taken:
        counter += 1
    return f"{base}-{counter}"
