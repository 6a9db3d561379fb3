import re
from typing import Callable


def generate_slug(text: str) -> str:
    slug = text.lower().strip()
    slug = re.sub(r"[^\w\s-]", "", slug)
    slug = re.sub(r"[\s_-]+", "-", slug)
    slug = slug.strip("-")
    return slug or "room"


def unique_slug(text: str, exists: Callable[[str], bool]) -> str:
    """Return generate_slug(text), suffixed with -1, -2, ... until `exists` is False."""
    base = generate_slug(text)
    slug = base
    counter = 1
    while exists(slug):
        slug = f"{base}-{counter}"
        counter += 1
    return slug
