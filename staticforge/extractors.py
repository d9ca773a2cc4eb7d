"""Metadata extractors for staticforge.

Each extractor derives one kind of page metadata from the document body,
its path and its parsed front matter. Front matter values always win;
the body and the filename only provide fallbacks.

Key classes:
- TitleExtractor: Title from front matter, first heading or filename.
- DateExtractor: Publication date, standardised to a naive UTC datetime.
- DescriptionExtractor: Description from front matter or first paragraph.
- KeywordExtractor / TagExtractor: Comma separated lists.
- CompositeMetadataExtractor: Runs a list of extractors and merges results.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import date, datetime, timezone
from email.utils import parsedate_to_datetime
from pathlib import Path
from typing import Any

from .errors import MetadataError
from .protocols import MetadataExtractor
from .utils import extract_date_from_name, first_paragraph, split_list, titleize

SLASH_DATE_FORMATS = ("%d/%m/%Y", "%m/%d/%Y")


def standardize_date(value: Any) -> datetime:
    """Interpret a front matter date.

    Accepts ``date``/``datetime`` objects, ``YYYY-MM-DD``, ISO 8601
    date-times, ``DD/MM/YYYY`` (falling back to ``MM/DD/YYYY`` when the
    day-first reading is impossible) and RFC 2822 strings such as
    ``Tue, 20 Feb 2024 15:15:15 GMT``. Timezone-aware values are
    converted to UTC and made naive so all page dates compare.

    Raises:
        MetadataError: If the value is empty, too short or unparseable.
    """
    if isinstance(value, datetime):
        return _naive_utc(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)

    text = str(value or "").strip()
    if len(text) < 8:
        raise MetadataError(f"Invalid date: {text!r}")

    try:
        return _naive_utc(datetime.fromisoformat(text))
    except ValueError:
        pass
    for fmt in SLASH_DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    try:
        return _naive_utc(parsedate_to_datetime(text))
    except (TypeError, ValueError):
        pass
    raise MetadataError(f"Unrecognised date format: {text!r}")


def _naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


class TitleExtractor:
    """Extracts the page title.

    Uses the ``title`` front matter key, then a level-1 heading in the
    body, then the titleized filename.
    """

    def extract(self, content: str, path: Path, frontmatter: Mapping[str, Any]) -> dict[str, Any]:
        title = frontmatter.get("title")
        if title:
            return {"title": str(title).strip()}
        for line in content.splitlines():
            stripped = line.strip()
            if stripped.startswith("# "):
                return {"title": stripped.lstrip("# ").strip()}
        return {"title": titleize(path.name)}


class DateExtractor:
    """Extracts the publication date.

    Looks at the ``date`` front matter key, then a YYYY-MM-DD filename
    prefix, then the file modification time.
    """

    def extract(self, content: str, path: Path, frontmatter: Mapping[str, Any]) -> dict[str, Any]:
        raw = frontmatter.get("date")
        if raw not in (None, ""):
            return {"date": standardize_date(raw)}
        found = extract_date_from_name(path.stem)
        if found is None:
            found = datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc).replace(
                tzinfo=None
            )
        return {"date": found}


class DescriptionExtractor:
    """Extracts the description, falling back to the first paragraph."""

    def extract(self, content: str, path: Path, frontmatter: Mapping[str, Any]) -> dict[str, Any]:
        description = frontmatter.get("description")
        if description:
            return {"description": " ".join(str(description).split())}
        return {"description": first_paragraph(content)}


class KeywordExtractor:
    """Splits the ``keywords`` front matter value into a list."""

    def extract(self, content: str, path: Path, frontmatter: Mapping[str, Any]) -> dict[str, Any]:
        return {"keywords": split_list(frontmatter.get("keywords"))}


class TagExtractor:
    """Splits the ``tags`` front matter value into a list."""

    def extract(self, content: str, path: Path, frontmatter: Mapping[str, Any]) -> dict[str, Any]:
        return {"tags": split_list(frontmatter.get("tags"))}


class CompositeMetadataExtractor:
    """Combines multiple metadata extractors.

    Runs every registered extractor and merges their results; later
    extractors override keys set by earlier ones.
    """

    def __init__(self, extractors: list[MetadataExtractor] | None = None):
        if extractors is None:
            self._extractors = [
                TitleExtractor(),
                DateExtractor(),
                DescriptionExtractor(),
                KeywordExtractor(),
                TagExtractor(),
            ]
        else:
            self._extractors = list(extractors)

    def add_extractor(self, extractor: MetadataExtractor) -> None:
        """Add an extractor to the composite."""
        self._extractors.append(extractor)

    def extract(self, content: str, path: Path, frontmatter: Mapping[str, Any]) -> dict[str, Any]:
        """Extract all metadata from a document.

        Args:
            content: Document body without its front matter.
            path: Path to the source file.
            frontmatter: Parsed front matter mapping.

        Returns:
            Dictionary with all extracted metadata.

        Raises:
            MetadataError: If an extractor cannot interpret a value.
        """
        result: dict[str, Any] = {}
        for extractor in self._extractors:
            result.update(extractor.extract(content, path, frontmatter))
        return result


default_metadata_extractor = CompositeMetadataExtractor()
