"""Utility functions for staticforge.

String processing, path handling and date helpers shared by the content,
feed and build modules.

Key functions:
    slugify: Convert filenames to URL slugs.
    titleize: Convert filenames to human-readable titles.
    split_list: Normalise comma separated strings or lists.
    extract_date_from_name: Extract date from filename prefix.
    first_paragraph: Plain-text first paragraph of a document.
    is_markdown / is_html: Content type checks.
    ensure_clean_dir: Ensure a directory exists and is empty.
"""

from __future__ import annotations

import re
import shutil
from collections.abc import Iterable
from datetime import datetime
from pathlib import Path

RFC822_FORMAT = "%a, %d %b %Y %H:%M:%S +0000"


def slugify(name: str) -> str:
    """Convert filename (without extension) to slug, dropping date prefix.

    Args:
        name: Filename stem.

    Returns:
        URL-friendly slug.
    """
    cleaned = name
    if "-" in cleaned:
        parts = cleaned.split("-")
        if len(parts) >= 4 and all(p.isdigit() for p in parts[:3]):
            cleaned = "-".join(parts[3:])
    cleaned = re.sub(r"[^a-zA-Z0-9]+", "-", cleaned)
    cleaned = cleaned.strip("-").lower()
    return cleaned or "index"


def titleize(filename: str) -> str:
    """Convert a filename to a human-readable title.

    Examples:
        >>> titleize("2024-01-15-hello-world.md")
        'Hello World'

        >>> titleize("getting-started.md")
        'Getting Started'
    """
    base = Path(filename).stem
    if "-" in base:
        parts = base.split("-")
        if len(parts) >= 4 and all(p.isdigit() for p in parts[:3]):
            base = "-".join(parts[3:])
    words = re.split(r"[\s\-_]+", base)
    return " ".join(word.capitalize() for word in words if word) or "Untitled"


def to_title_case(text: str) -> str:
    """Capitalise the first letter of every whitespace separated word."""
    return " ".join(word[:1].upper() + word[1:] for word in text.split())


def split_list(value: object) -> list[str]:
    """Normalise a comma separated string or a sequence into a list.

    Items are stripped and empty entries dropped; order is preserved and
    duplicates are removed.

    Examples:
        >>> split_list("rust, python,, web ")
        ['rust', 'python', 'web']
    """
    if value is None:
        return []
    if isinstance(value, str):
        items: Iterable = value.split(",")
    elif isinstance(value, Iterable):
        items = value
    else:
        items = [value]
    seen: list[str] = []
    for item in items:
        text = str(item).strip()
        if text and text not in seen:
            seen.append(text)
    return seen


def extract_date_from_name(name: str) -> datetime | None:
    """Extract a date from a filename with YYYY-MM-DD prefix.

    Examples:
        >>> extract_date_from_name("2024-01-15-hello-world")
        datetime(2024, 1, 15, 0, 0)

        >>> extract_date_from_name("hello-world")
        None
    """
    parts = name.split("-")
    if len(parts) >= 3 and all(p.isdigit() for p in parts[:3]):
        try:
            return datetime(int(parts[0]), int(parts[1]), int(parts[2]))
        except ValueError:
            return None
    return None


def extract_number_from_name(name: str) -> int | None:
    """Extract a leading number from a filename for sorting.

    Handles filenames like "01-intro.md". When the filename has a date
    prefix, the number after the date is used.
    """
    parts = name.split("-")
    if len(parts) >= 4 and all(p.isdigit() for p in parts[:3]):
        if parts[3].isdigit():
            return int(parts[3])
        return None
    if parts and parts[0].isdigit():
        return int(parts[0])
    return None


def strip_number_prefix(name: str) -> str:
    """Strip date and number prefixes from a filename stem."""
    parts = name.split("-")
    if len(parts) >= 4 and all(p.isdigit() for p in parts[:3]):
        parts = parts[3:]
        if parts and parts[0].isdigit():
            parts = parts[1:]
    elif parts and parts[0].isdigit():
        parts = parts[1:]
    return "-".join(parts) if parts else name


def first_paragraph(text: str, limit: int = 160) -> str:
    """Extract and clean the first paragraph from text.

    Skips headings, images and code fences; strips HTML tags and inline
    markdown emphasis, collapses whitespace and truncates to ``limit``.
    """
    paragraphs = [p.strip() for p in text.split("\n\n") if p.strip()]
    for para in paragraphs:
        if para.startswith(("#", "![", "```", "---", "<h")):
            continue
        para = re.sub(r"<[^>]+>", "", para)
        para = re.sub(r"!?\[([^\]]*)\]\([^)]*\)", r"\1", para)
        para = re.sub(r"[*_`]+", "", para)
        collapsed = " ".join(para.split())
        if collapsed:
            return collapsed[:limit]
    return ""


def format_rfc822(value: datetime) -> str:
    """Format a datetime the way RSS pubDate fields expect."""
    return value.strftime(RFC822_FORMAT)


def ensure_clean_dir(path: Path) -> None:
    """Ensure a directory exists and is empty.

    If the directory exists, removes all contents. Creates the
    directory if it doesn't exist.
    """
    if path.exists():
        shutil.rmtree(str(path))
    path.mkdir(parents=True, exist_ok=True)


def is_hidden(path: Path) -> bool:
    """Check if any component of a relative path is hidden or internal."""
    return any(part.startswith((".", "_")) for part in path.parts)


def is_markdown(path: Path) -> bool:
    """Check if a path is a Markdown file (case-insensitive)."""
    return path.suffix.lower() in {".md", ".markdown"}


def is_html(path: Path) -> bool:
    """Check if a path is an HTML file."""
    return path.suffix.lower() in {".html", ".htm"}


def is_content_file(path: Path) -> bool:
    """Check if a path is a page source rather than a static asset."""
    return is_markdown(path) or is_html(path)
