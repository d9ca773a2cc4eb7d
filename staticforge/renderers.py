"""Content renderers for staticforge.

Each renderer handles one content type and returns the rendered HTML
together with the headings collected for the table of contents.

Key classes:
- MarkdownRenderer: Renders Markdown to accessible HTML with syntax highlighting.
- HTMLRenderer: Passes through HTML content.
- RendererRegistry: Picks the renderer for a source path.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path

import mistune
from pygments import highlight
from pygments.formatters import HtmlFormatter
from pygments.lexers import get_lexer_by_name
from pygments.util import ClassNotFound

from .html_utils import escape_html, strip_tags
from .protocols import ContentRenderer
from .utils import is_html, is_markdown

# ``![alt](src).class="a b"`` leaves the class suffix as text after the <img>.
IMAGE_CLASS_RE = re.compile(
    r'(<img\b[^>]*?)\s*/?>\.class=(?:&quot;|")([^"&<]+)(?:&quot;|")'
)
_WORD_RE = re.compile(r"[A-Za-z0-9]+")


@dataclass
class Heading:
    """Represents a heading extracted from markdown content for TOC generation.

    Attributes:
        id: Anchor ID for the heading.
        text: The text content of the heading.
        level: Heading level (1-6).
    """

    id: str
    text: str
    level: int


def heading_attributes(text: str, level: int) -> tuple[str, str]:
    """Build the base anchor id and attribute string for a heading.

    The id is ``h<level>-<first word>``; the first word also labels the
    heading for assistive technology and, lowercased, is its class.
    Level-1 headings are marked as the page headline, the others as
    names.

    Returns:
        Tuple of (base id, attribute string without the id).
    """
    match = _WORD_RE.search(strip_tags(text))
    word = match.group(0) if match else "section"
    base_id = f"h{level}-{word.lower()}"
    itemprop = "headline" if level == 1 else "name"
    label = escape_html(f"{word[:1].upper()}{word[1:]} Heading")
    attrs = (
        f'tabindex="0" aria-label="{label}" itemprop="{itemprop}" class="{word.lower()}"'
    )
    return base_id, attrs


def apply_image_classes(html: str) -> str:
    """Move ``.class="..."`` suffixes onto the preceding ``<img>`` tag."""
    return IMAGE_CLASS_RE.sub(lambda m: f'{m.group(1)} class="{m.group(2)}" />', html)


def generate_html(body_html: str, title: str = "", description: str = "") -> str:
    """Prefix rendered content with the page headline and description.

    The headline is only added when the body has no level-1 heading of its
    own, so anchors stay unique.
    """
    parts: list[str] = []
    if title and "<h1" not in body_html:
        base_id, attrs = heading_attributes(title, 1)
        parts.append(f'<h1 id="{base_id}" {attrs}>{escape_html(title)}</h1>')
    if description:
        parts.append(f"<p>{escape_html(description)}</p>")
    parts.append(body_html)
    return "".join(parts)


class _AccessibleRenderer(mistune.HTMLRenderer):
    """Markdown renderer adding heading anchors and Pygments highlighting.

    Attributes:
        headings: List of Heading objects extracted during rendering.
    """

    def __init__(self):
        super().__init__(escape=False)
        self.headings: list[Heading] = []
        self._heading_id_counts: dict[str, int] = {}

    def heading(self, text: str, level: int, **attrs) -> str:
        base_id, extra = heading_attributes(text, level)
        if base_id in self._heading_id_counts:
            self._heading_id_counts[base_id] += 1
            heading_id = f"{base_id}-{self._heading_id_counts[base_id]}"
        else:
            self._heading_id_counts[base_id] = 0
            heading_id = base_id

        self.headings.append(Heading(id=heading_id, text=strip_tags(text), level=level))
        return f'<h{level} id="{heading_id}" {extra}>{text}</h{level}>\n'

    def block_code(self, code: str, info: str | None = None) -> str:
        """Render a code block with Pygments syntax highlighting.

        Unknown languages fall back to an escaped ``<pre><code>`` block.
        """
        lang = info.split()[0] if info else ""
        if lang:
            try:
                lexer = get_lexer_by_name(lang, stripall=True)
            except ClassNotFound:
                lexer = None
            if lexer is not None:
                formatter = HtmlFormatter(nowrap=False, cssclass="highlight")
                return highlight(code, lexer, formatter)
        lang_class = f' class="language-{escape_html(lang)}"' if lang else ""
        return f"<pre><code{lang_class}>{escape_html(code)}</code></pre>\n"


class MarkdownRenderer:
    """Renders Markdown content to HTML."""

    @property
    def source_type(self) -> str:
        return "markdown"

    def can_render(self, path: Path) -> bool:
        return is_markdown(path)

    def render(self, content: str, folder: str) -> tuple[str, list[Heading]]:
        """Render Markdown content to HTML.

        Args:
            content: Markdown source content.
            folder: Folder containing the page (unused by markdown).

        Returns:
            Tuple of (rendered HTML, list of Heading objects).
        """
        renderer = _AccessibleRenderer()
        markdown = mistune.create_markdown(
            renderer=renderer, plugins=["strikethrough", "footnotes", "table", "url"]
        )
        html = apply_image_classes(markdown(content))
        return html, renderer.headings


class HTMLRenderer:
    """Passes through HTML content unchanged."""

    @property
    def source_type(self) -> str:
        return "html"

    def can_render(self, path: Path) -> bool:
        return is_html(path)

    def render(self, content: str, folder: str) -> tuple[str, list[Heading]]:
        return content, []


class RendererRegistry:
    """Registry for content renderers.

    Renderers are consulted in registration order; the first one that can
    handle a path wins.
    """

    def __init__(self):
        self._renderers: list[ContentRenderer] = []
        self.register(MarkdownRenderer())
        self.register(HTMLRenderer())

    def register(self, renderer: ContentRenderer) -> None:
        """Register a new renderer."""
        self._renderers.append(renderer)

    def get_renderer(self, path: Path) -> ContentRenderer | None:
        """Return the first renderer that can handle the file, or None."""
        for renderer in self._renderers:
            if renderer.can_render(path):
                return renderer
        return None


default_renderer_registry = RendererRegistry()
