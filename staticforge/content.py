"""Content processing for staticforge.

This module discovers content files, extracts their front matter and
metadata, renders them to HTML and creates Page objects.

Key classes:
- Page: Dataclass representing a site page with all its metadata.
- FileContentLoader: Discovers content files below the content directory.
- UrlDeriver: Maps source paths to clean output URLs.
- DefaultPageBuilder: Turns one source file into a Page.
- ContentProcessor: Facade loading every page of a site.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from .errors import BuildError, FrontmatterError, MetadataError
from .extractors import CompositeMetadataExtractor, default_metadata_extractor
from .frontmatter import extract_frontmatter, flatten_metadata
from .html_utils import join_root_url
from .protocols import ContentLoader, PageBuilder
from .renderers import Heading, RendererRegistry, default_renderer_registry, generate_html
from .utils import format_rfc822, is_content_file, slugify

logger = logging.getLogger(__name__)

__all__ = [
    "ContentProcessor",
    "DefaultPageBuilder",
    "FileContentLoader",
    "Heading",
    "Page",
    "UrlDeriver",
]

TRUE_VALUES = {"true", "yes", "1", "on"}


@dataclass
class Page:
    """Represents a site page with all its metadata and content.

    Attributes:
        name: Source path relative to the content directory, without suffix.
        title: Human-readable title of the page.
        description: Short description of the page.
        body: Source text without front matter.
        content: Rendered HTML content.
        url: URL path for the page.
        slug: URL-friendly slug.
        date: Publication date.
        keywords: Keywords from front matter.
        tags: Tags from front matter.
        layout: Layout template name.
        draft: Whether this is a draft page.
        path: Path to the source file.
        folder: Folder path relative to the content directory.
        source_type: "markdown" or "html".
        frontmatter: Parsed front matter.
        metadata: Flattened string metadata used by templates, meta tags and feeds.
    """

    name: str
    title: str
    description: str
    body: str
    content: str
    url: str
    slug: str
    date: datetime
    keywords: list[str]
    tags: list[str]
    layout: str
    draft: bool
    path: Path
    folder: str
    source_type: str
    frontmatter: dict[str, Any] = field(default_factory=dict)
    metadata: dict[str, str] = field(default_factory=dict)
    toc: list[Heading] = field(default_factory=list)

    @property
    def basename(self) -> str:
        """Last component of the page name (``about`` for ``docs/about``)."""
        return self.name.rsplit("/", 1)[-1]

    @property
    def permalink(self) -> str:
        return self.metadata.get("permalink", self.url)


class FileContentLoader:
    """Discovers content files in a directory.

    Hidden files and directories (``.DS_Store``, ``.git``) and directories
    starting with ``_`` are ignored. Files starting with ``_`` are drafts.

    Attributes:
        content_dir: Directory containing site content.
    """

    def __init__(self, content_dir: Path):
        self.content_dir = content_dir

    def iter_files(self, include_drafts: bool = False) -> list[Path]:
        """Return all content files, sorted by path.

        Args:
            include_drafts: Whether to include ``_``-prefixed draft files.
        """
        files: list[Path] = []
        for path in sorted(self.content_dir.rglob("*")):
            if path.is_dir():
                continue
            rel = path.relative_to(self.content_dir)
            if any(part.startswith((".", "_")) for part in rel.parts[:-1]):
                continue
            if rel.name.startswith("."):
                continue
            if rel.name.startswith("_") and not include_drafts:
                continue
            if is_content_file(path):
                files.append(path)
        return files


class UrlDeriver:
    """Derives clean URLs (``/section/slug/``) for pages."""

    def derive(self, rel: Path, slug: str) -> str:
        if rel.stem == "index" and rel.parent == Path("."):
            return "/"
        segments = [p for p in rel.parent.parts if p and p != "."]
        url_parts = segments if slug == "index" else segments + [slug]
        path = "/".join(url_parts)
        return f"/{path}/" if path else "/"


def resolve_layout(frontmatter: Mapping[str, Any], rel: Path) -> str:
    """Pick the layout: front matter ``layout``, ``index`` for the home page, else ``page``."""
    layout = frontmatter.get("layout")
    if layout:
        return str(layout).removesuffix(".html")
    if rel.stem == "index" and rel.parent == Path("."):
        return "index"
    return "page"


def _is_truthy(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in TRUE_VALUES


class DefaultPageBuilder:
    """Builds Page objects from source files.

    Attributes:
        content_dir: Directory containing site content.
        base_url: Site base URL used for permalinks.
        defaults: Site-wide metadata defaults (overridden by front matter).
    """

    def __init__(
        self,
        content_dir: Path,
        base_url: str = "",
        defaults: Mapping[str, str] | None = None,
        renderer_registry: RendererRegistry | None = None,
        metadata_extractor: CompositeMetadataExtractor | None = None,
        build_time: datetime | None = None,
    ):
        self.content_dir = content_dir
        self.base_url = base_url
        self.defaults = dict(defaults or {})
        self.renderer_registry = renderer_registry or default_renderer_registry
        self.metadata_extractor = metadata_extractor or default_metadata_extractor
        self.url_deriver = UrlDeriver()
        self.build_time = build_time or datetime.now(timezone.utc)

    def build(self, path: Path, draft: bool = False) -> Page:
        """Build a Page object from a source file.

        Raises:
            FrontmatterError: If the front matter is malformed.
            MetadataError: If a metadata value cannot be interpreted.
        """
        rel = path.relative_to(self.content_dir)
        folder = rel.parent.as_posix() if rel.parent != Path(".") else ""
        raw = path.read_text(encoding="utf-8")

        frontmatter, body = extract_frontmatter(raw)
        extracted = self.metadata_extractor.extract(body, path, frontmatter)

        renderer = self.renderer_registry.get_renderer(path)
        if renderer:
            source_type = renderer.source_type
            rendered, toc = renderer.render(body, folder)
        else:
            source_type = "unknown"
            rendered, toc = body, []

        title = extracted.get("title", "")
        description = extracted.get("description", "")
        content = generate_html(
            rendered,
            title=title,
            description=str(frontmatter.get("description") or ""),
        )

        slug = slugify(str(frontmatter.get("slug") or path.stem))
        url = self.url_deriver.derive(rel, slug)
        page = Page(
            name=rel.with_suffix("").as_posix(),
            title=title,
            description=description,
            body=body,
            content=content,
            url=url,
            slug=slug,
            date=extracted.get("date") or datetime.now(),
            keywords=extracted.get("keywords", []),
            tags=extracted.get("tags", []),
            layout=resolve_layout(frontmatter, rel),
            draft=draft or _is_truthy(frontmatter.get("draft", False)),
            path=path,
            folder=folder,
            source_type=source_type,
            frontmatter=frontmatter,
            toc=toc,
        )
        page.metadata = self._metadata_for(page)
        return page

    def _metadata_for(self, page: Page) -> dict[str, str]:
        """Flatten front matter and fill in derived fields."""
        metadata = dict(self.defaults)
        metadata.update(flatten_metadata(page.frontmatter))
        metadata["title"] = page.title
        metadata["description"] = page.description
        metadata["date"] = page.date.strftime("%Y-%m-%d")
        metadata["keywords"] = ", ".join(page.keywords)
        metadata["tags"] = ", ".join(page.tags)
        metadata["url"] = page.url
        metadata["layout"] = page.layout
        if not metadata.get("permalink"):
            metadata["permalink"] = join_root_url(self.base_url, page.url)
        defaults = {
            "item_title": page.title,
            "item_description": page.description,
            "item_link": metadata["permalink"],
            "item_guid": metadata["permalink"],
            "item_pub_date": format_rfc822(page.date),
            "last_build_date": format_rfc822(self.build_time),
        }
        for key, value in defaults.items():
            if not metadata.get(key):
                metadata[key] = value
        return metadata


class ContentProcessor:
    """Facade for loading every page below a content directory.

    Attributes:
        content_dir: Directory containing site content.
    """

    def __init__(
        self,
        content_dir: Path,
        content_loader: ContentLoader | None = None,
        page_builder: PageBuilder | None = None,
    ):
        self.content_dir = content_dir
        self._content_loader = content_loader or FileContentLoader(content_dir)
        self._page_builder = page_builder or DefaultPageBuilder(content_dir)

    def load(self, include_drafts: bool = False) -> list[Page]:
        """Load all content files and create Page objects.

        Args:
            include_drafts: Whether to include draft pages.

        Raises:
            BuildError: If a file cannot be read or its metadata is invalid.
        """
        pages: list[Page] = []
        for path in self._content_loader.iter_files(include_drafts):
            try:
                page = self._page_builder.build(path, draft=path.name.startswith("_"))
            except (FrontmatterError, MetadataError) as exc:
                raise BuildError(path, str(exc), exc) from exc
            except UnicodeDecodeError as exc:
                raise BuildError(path, f"File is not valid UTF-8: {exc}", exc) from exc
            if page.draft and not include_drafts:
                logger.debug("Skipping draft %s", path)
                continue
            pages.append(page)
        logger.debug("Loaded %d pages from %s", len(pages), self.content_dir)
        return pages
