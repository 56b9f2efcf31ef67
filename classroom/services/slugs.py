import re
from typing import Iterable


def slugify(value: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", str(value or "").strip().lower()).strip("-")
    return slug or "item"


def unique_slug(value: str, taken: Iterable[str]) -> str:
    """Return the slug for ``value``, suffixed with ``-2``, ``-3``... if it is already taken."""
    base = slugify(value)
    taken = set(taken)
    slug, suffix = base, 2
    while slug in taken:
        slug = f"{base}-{suffix}"
        suffix += 1
    return slug
