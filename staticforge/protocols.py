"""Protocol definitions for staticforge.

These interfaces describe the seams of the build pipeline so that
renderers, extractors, loaders and asset processors can be swapped or
mocked independently.
"""

from __future__ import annotations

from abc import abstractmethod
from collections.abc import Mapping
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from .content import Page
    from .renderers import Heading


@runtime_checkable
class ContentRenderer(Protocol):
    """Renders one content type (Markdown, HTML) to HTML."""

    @abstractmethod
    def can_render(self, path: Path) -> bool:
        """Check if this renderer can handle the given file."""
        ...

    @abstractmethod
    def render(self, content: str, folder: str) -> tuple[str, list[Heading]]:
        """Render content to HTML.

        Args:
            content: Source content without front matter.
            folder: Folder containing the page, relative to the content directory.

        Returns:
            Tuple of (rendered HTML, list of headings for TOC).
        """
        ...

    @property
    @abstractmethod
    def source_type(self) -> str:
        """Return the source type identifier (e.g., 'markdown', 'html')."""
        ...


@runtime_checkable
class MetadataExtractor(Protocol):
    """Extracts one kind of metadata from a document."""

    @abstractmethod
    def extract(self, content: str, path: Path, frontmatter: Mapping[str, Any]) -> dict[str, Any]:
        """Extract metadata.

        Args:
            content: Document body without front matter.
            path: Path to the source file.
            frontmatter: Parsed front matter.

        Returns:
            Dictionary of extracted metadata.
        """
        ...


@runtime_checkable
class AssetProcessor(Protocol):
    """Processes one type of static asset."""

    @abstractmethod
    def can_process(self, path: Path) -> bool:
        ...

    @abstractmethod
    def process(self, source: Path, dest: Path) -> bool:
        ...

    @property
    @abstractmethod
    def priority(self) -> int:
        """Return processor priority (higher = checked first)."""
        ...


@runtime_checkable
class TemplateRenderer(Protocol):
    """Renders pages with their layouts."""

    @abstractmethod
    def render_page(self, page: Page, navigation: str = "") -> str:
        ...

    @abstractmethod
    def render_string(self, template: str, context: Mapping[str, Any]) -> str:
        ...


@runtime_checkable
class ContentLoader(Protocol):
    """Discovers content files."""

    @abstractmethod
    def iter_files(self, include_drafts: bool = False) -> list[Path]:
        ...


@runtime_checkable
class PageBuilder(Protocol):
    """Builds a Page from one source file."""

    @abstractmethod
    def build(self, path: Path, draft: bool = False) -> Page:
        ...
