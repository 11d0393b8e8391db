"""
Shared utility functions.
"""
import re
import unicodedata
from typing import Callable


def slugify(text: str) -> str:
    """Convert text to URL-safe slug."""
    # Normalize unicode characters
    text = unicodedata.normalize('NFKD', text)
    # Convert to lowercase and replace spaces with hyphens
    text = text.lower().strip()
    text = re.sub(r'[^\w\s-]', '', text)
    text = re.sub(r'[-\s]+', '-', text)
    return text.strip('-')


def unique_slug(
    text: str,
    is_taken: Callable[[str], bool],
    fallback: str = 'item',
    max_length: int = 80,
) -> str:
    """
    Slugify text and append -1, -2, ... until is_taken() says the slug is free.
    """
    base = slugify(text)[:max_length] or fallback
    slug = base
    counter = 1
    while is_taken(slug):
        suffix = f"-{counter}"
        slug = base[:max_length - len(suffix)] + suffix
        counter += 1
    return slug
