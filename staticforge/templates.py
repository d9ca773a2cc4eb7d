"""Template rendering engine for staticforge.

Layouts are Jinja2 templates stored in the template directory. A page
with layout ``post`` renders ``post.html``; missing layouts fall back to
``page.html`` and then ``template.html``.

Rendering is strict: a variable the layout references but the page does
not define is an error rather than an empty string.

Key class:
- TemplateEngine: Handles template rendering and provides context to templates.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

from jinja2 import (
    Environment,
    FileSystemLoader,
    StrictUndefined,
    Template,
    TemplateNotFound,
    TemplateSyntaxError,
    UndefinedError,
    select_autoescape,
)
from markupsafe import Markup
from pygments.formatters import HtmlFormatter

from .collections import PageCollection, TagCollection
from .content import Heading, Page
from .errors import TemplateError
from .html_utils import escape_html, join_root_url
from .metatags import generate_all_meta_tags

FALLBACK_LAYOUTS = ("page", "template")


def render_toc(page: Page) -> Markup:
    """Render a table of contents as nested HTML from page headings.

    Returns:
        Markup-safe nested ``<ul>`` list, or empty Markup if there are no headings.
    """
    if not page.toc:
        return Markup("")
    return _render_toc_from_headings(page.toc)


def _render_toc_from_headings(headings: list[Heading]) -> Markup:
    html_parts: list[str] = []
    level_stack: list[int] = []

    for heading in headings:
        level = heading.level

        # Close nested lists when moving to a shallower level
        while level_stack and level_stack[-1] > level:
            level_stack.pop()
            html_parts.append("</li></ul>")

        if level_stack and level_stack[-1] == level:
            html_parts.append("</li>")
        else:
            html_parts.append("<ul>")
            level_stack.append(level)

        html_parts.append(
            f'<li><a href="#{escape_html(heading.id)}">{escape_html(heading.text)}</a>'
        )

    while level_stack:
        level_stack.pop()
        html_parts.append("</li></ul>")

    return Markup("".join(html_parts))


class TemplateEngine:
    """Template rendering engine using Jinja2.

    Attributes:
        template_dir: Directory containing layout templates.
        site: Site-wide values exposed to templates as ``site``.
        env: Jinja2 environment.
        pages: Collection of all pages.
        tags: Collection of tags to pages.
    """

    def __init__(self, template_dir: Path, site: Mapping[str, Any] | None = None):
        self.template_dir = template_dir
        self.site = dict(site or {})
        self.env = Environment(
            loader=FileSystemLoader(str(template_dir)),
            autoescape=select_autoescape(["html", "xml"]),
            undefined=StrictUndefined,
        )
        self.pages: PageCollection = PageCollection([])
        self.tags: TagCollection = TagCollection({})
        self._install_globals()

    def _install_globals(self) -> None:
        self.env.globals["site"] = self.site
        self.env.globals["pages"] = self.pages
        self.env.globals["tags"] = self.tags
        self.env.globals["url_for"] = self._url_for
        self.env.globals["pygments_css"] = self._pygments_css
        self.env.globals["render_toc"] = render_toc

    @staticmethod
    def _pygments_css() -> Markup:
        """Return Pygments CSS styles for the ``.highlight`` class."""
        return Markup(HtmlFormatter().get_style_defs(".highlight"))

    def update_collections(
        self, pages: Iterable[Page], tags: Mapping[str, Iterable[Page]]
    ) -> None:
        """Update the page and tag collections exposed to templates."""
        self.pages = PageCollection(pages)
        self.tags = TagCollection(tags)
        self.env.globals["pages"] = self.pages
        self.env.globals["tags"] = self.tags

    def _url_for(self, path: str) -> str:
        """Generate an absolute URL for a site path using ``site.base_url``."""
        if path.startswith(("http://", "https://", "//")):
            return path
        return join_root_url(str(self.site.get("base_url", "")), path)

    def build_context(self, page: Page, navigation: str = "") -> dict[str, Any]:
        """Assemble the variables a layout sees for a page.

        Every flattened metadata key is available directly (``{{ title }}``,
        ``{{ author }}``); HTML fragments are marked safe.
        """
        context: dict[str, Any] = dict(page.metadata)
        groups = generate_all_meta_tags(page.metadata)
        for name, html in groups.as_dict().items():
            context[name] = Markup(html)
        context.update(
            {
                "content": Markup(page.content),
                "navigation": Markup(navigation),
                "toc": render_toc(page),
                "page": page,
                "site": self.site,
                "pages": self.pages,
                "tags": self.tags,
            }
        )
        return context

    def render_page(self, page: Page, navigation: str = "") -> str:
        """Render a page with its layout.

        Raises:
            TemplateError: If no layout exists or rendering fails.
        """
        template = self._resolve_layout_template(page.layout)
        context = self.build_context(page, navigation)
        try:
            return template.render(context)
        except UndefinedError as exc:
            raise TemplateError(
                f"Undefined variable in {template.name}: {exc.message}"
            ) from exc
        except TemplateSyntaxError as exc:
            raise TemplateError(
                f"Template syntax error in {exc.name or template.name} "
                f"on line {exc.lineno}: {exc.message}"
            ) from exc
        except TemplateNotFound as exc:
            raise TemplateError(
                f"Template {exc.name} not found (referenced from {template.name})"
            ) from exc

    def _resolve_layout_template(self, layout: str) -> Template:
        """Load ``<layout>.html``, falling back to ``page.html`` then ``template.html``."""
        candidates: list[str] = []
        for name in (layout, *FALLBACK_LAYOUTS):
            filename = f"{name}.html"
            if filename not in candidates:
                candidates.append(filename)
        for name in candidates:
            try:
                return self.env.get_template(name)
            except TemplateNotFound:
                continue
            except TemplateSyntaxError as exc:
                raise TemplateError(
                    f"Template syntax error in {name} on line {exc.lineno}: {exc.message}"
                ) from exc
        raise TemplateError(
            f"No layout found for '{layout}' in {self.template_dir} "
            f"(tried {', '.join(candidates)})"
        )

    def render_string(self, template: str, context: Mapping[str, Any]) -> str:
        """Render a template string.

        Raises:
            TemplateError: If the template is invalid or references undefined values.
        """
        try:
            return self.env.from_string(template).render(dict(context))
        except (UndefinedError, TemplateSyntaxError) as exc:
            raise TemplateError(str(exc)) from exc
