"""Navigation menu generation for staticforge."""

from __future__ import annotations

from collections.abc import Iterable

from .content import Page
from .html_utils import escape_html
from .utils import to_title_case

EXCLUDED_PAGES = frozenset({"index", "404", "privacy", "terms", "offline", "tags"})


class NavigationGenerator:
    """Builds the site navigation menu from the loaded pages.

    Pages whose basename is in ``excluded`` never appear in the menu; the
    remaining pages are listed alphabetically by name. A page can opt out
    with ``nav: false`` in its front matter.
    """

    def __init__(self, excluded: Iterable[str] = EXCLUDED_PAGES):
        self.excluded = frozenset(excluded)

    def items(self, pages: Iterable[Page]) -> list[Page]:
        """Return the pages that belong in the menu, in menu order."""
        selected = [
            page
            for page in pages
            if page.basename not in self.excluded
            and str(page.frontmatter.get("nav", True)).lower() != "false"
        ]
        return sorted(selected, key=lambda page: page.name)

    def generate(self, pages: Iterable[Page]) -> str:
        """Render the menu as an HTML ``<ul>``; empty string when there is nothing to link."""
        entries = []
        for page in self.items(pages):
            label = escape_html(page.basename.replace("-", " "))
            title = escape_html(to_title_case(page.title))
            url = escape_html(page.url)
            entries.append(
                f'<li class="nav-item"><a aria-label="{label}" href="{url}" '
                f'title="Navigation link for the {title} page" '
                f'class="text-uppercase p-2">{label}</a></li>'
            )
        if not entries:
            return ""
        return '<ul class="navbar-nav ms-auto mb-2 mb-lg-0">' + "".join(entries) + "</ul>"
