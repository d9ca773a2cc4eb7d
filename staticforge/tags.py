"""Tag index generation for staticforge.

Key functions:
    build_tags_index: Map each tag to the pages carrying it.
    render_tags_html: Render the "Featured Tags" listing for the tags page.
    build_tags_page: Create the synthetic Page rendered to ``tags/index.html``.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import datetime
from pathlib import Path

from .content import Page
from .html_utils import escape_html, join_root_url
from .utils import format_rfc822, slugify, to_title_case

TAGS_URL = "/tags/"


def build_tags_index(pages: Iterable[Page]) -> dict[str, list[Page]]:
    """Build an index mapping tags to pages, newest page first.

    Tags are returned in alphabetical (case-insensitive) order.
    """
    index: dict[str, list[Page]] = {}
    for page in pages:
        for tag in page.tags:
            index.setdefault(tag, []).append(page)
    return {
        tag: sorted(index[tag], key=lambda p: p.date, reverse=True)
        for tag in sorted(index, key=str.lower)
    }


def render_tags_html(index: Mapping[str, list[Page]]) -> str:
    """Render the tag listing as HTML.

    The heading counts tagged posts across all tags; each tag gets its own
    ``<h3>`` with a post count and a list of dated links.
    """
    total = sum(len(pages) for pages in index.values())
    parts = [
        '<h2 class="featured-tags" id="h2-featured-tags" tabindex="0">'
        f"Featured Tags ({total})</h2>"
    ]
    for tag, pages in index.items():
        anchor = escape_html(slugify(tag))
        parts.append(
            f'<h3 class="{anchor}" id="h3-{anchor}" tabindex="0">'
            f"{escape_html(to_title_case(tag))} ({len(pages)} Posts)</h3><ul>"
        )
        for page in pages:
            parts.append(
                f"<li>{escape_html(page.metadata.get('date', ''))}: "
                f'<a href="{escape_html(page.permalink)}">{escape_html(page.title)}</a>'
                f" - <strong>{escape_html(page.description)}</strong></li>"
            )
        parts.append("</ul>")
    return "".join(parts)


def build_tags_page(
    index: Mapping[str, list[Page]],
    content_dir: Path,
    base_url: str = "",
    defaults: Mapping[str, str] | None = None,
    title: str = "Tags",
) -> Page:
    """Create the Page for ``tags/index.html`` using the ``tags`` layout."""
    now = datetime.now()
    description = f"Posts grouped by {len(index)} tags"
    permalink = join_root_url(base_url, TAGS_URL)
    metadata = dict(defaults or {})
    metadata.update(
        {
            "title": title,
            "description": description,
            "date": now.strftime("%Y-%m-%d"),
            "url": TAGS_URL,
            "permalink": permalink,
            "layout": "tags",
            "keywords": ", ".join(index),
            "tags": "",
            "item_title": title,
            "item_description": description,
            "item_link": permalink,
            "item_guid": permalink,
            "item_pub_date": format_rfc822(now),
        }
    )
    return Page(
        name="tags",
        title=title,
        description=description,
        body="",
        content=render_tags_html(index),
        url=TAGS_URL,
        slug="tags",
        date=now,
        keywords=list(index),
        tags=[],
        layout="tags",
        draft=False,
        path=content_dir / "tags",
        folder="",
        source_type="generated",
        frontmatter={},
        metadata=metadata,
    )
