"""URL slugs for documents and taxonomy terms"""

import re
import unicodedata


def slugify(text: str) -> str:
    """Lowercase, ASCII-folded, hyphen-separated slug ('C# & .NET' -> 'c-net')."""
    text = unicodedata.normalize('NFKD', text).encode('ascii', 'ignore').decode('ascii')
    text = re.sub(r'[^\w\s-]', ' ', text.lower())
    return re.sub(r'[\s_-]+', '-', text).strip('-')


def term_slug(name: str) -> str:
    """Slug of a tag or series name; falls back to the raw name when nothing ASCII survives."""
    return slugify(name) or name.strip().lower()
