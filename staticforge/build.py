"""Site building functionality for staticforge.

The build compiles every content file into ``<output>/<url>/index.html``
inside the build directory, adds the tags page, feeds and static assets,
minifies the HTML and finally moves the build directory into place as
the site directory.

Key functions:
- build_site: Main function to build the entire site.
- collect_site_metadata: Site-wide values for feeds and templates.
- publish: Replace the site directory with a finished build.
"""

from __future__ import annotations

import logging
import os
import shutil
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

from .assets import AssetPipeline
from .config import SiteConfig
from .content import ContentProcessor, DefaultPageBuilder, Page
from .errors import BuildError, TemplateError
from .feeds import create_default_feed_registry
from .minify import minify_html_files
from .navigation import NavigationGenerator
from .protocols import TemplateRenderer
from .tags import build_tags_index, build_tags_page
from .templates import TemplateEngine
from .utils import ensure_clean_dir

logger = logging.getLogger(__name__)

__all__ = ["BuildError", "BuildResult", "build_site", "collect_site_metadata", "publish"]

# Index page keys that describe the page itself rather than the site.
PAGE_ONLY_KEYS = frozenset(
    {
        "url",
        "permalink",
        "layout",
        "date",
        "keywords",
        "tags",
        "last_build_date",
        "item_title",
        "item_description",
        "item_link",
        "item_guid",
        "item_pub_date",
    }
)


@dataclass
class BuildResult:
    """Result of a site build operation.

    Attributes:
        pages: Content pages that were rendered.
        output_dir: Build directory the site was compiled into.
        site_dir: Directory holding the finished site.
        feeds: Site files written by the feed generators.
        assets: Static asset paths written, relative to the site directory.
    """

    pages: list[Page]
    output_dir: Path
    site_dir: Path
    feeds: list[str] = field(default_factory=list)
    assets: list[Path] = field(default_factory=list)


def build_site(config: SiteConfig) -> BuildResult:
    """Build the entire static site.

    Args:
        config: Site configuration, validated before anything is cleaned.

    Returns:
        BuildResult describing the pages and files produced.

    Raises:
        ConfigError: If the configuration is invalid. Nothing is deleted.
        BuildError: If a directory is missing or a page fails to build.
    """
    config.validate()
    content_dir = config.content_dir
    template_dir = config.template_dir
    if not content_dir.is_dir():
        raise BuildError(content_dir, "Content directory not found")
    if not template_dir.is_dir():
        raise BuildError(template_dir, "Template directory not found")

    output_dir = config.output_dir
    ensure_clean_dir(output_dir)

    logger.info("Reading content from %s", content_dir)
    builder = DefaultPageBuilder(
        content_dir, base_url=config.base_url, defaults=config.page_defaults()
    )
    pages = ContentProcessor(content_dir, page_builder=builder).load(
        include_drafts=config.include_drafts
    )
    tags_index = build_tags_index(pages)
    navigation = NavigationGenerator().generate(pages)
    site = collect_site_metadata(config, pages)

    engine = TemplateEngine(template_dir, site)
    engine.update_collections(pages, tags_index)

    logger.info("Rendering %d pages", len(pages))
    written: dict[str, Path] = {}
    for page in pages:
        if page.url in written:
            raise BuildError(
                page.path, f"URL {page.url} is already produced by {written[page.url]}"
            )
        _write_page(output_dir, page, _render(engine, page, navigation))
        written[page.url] = page.path

    if tags_index:
        tags_page = build_tags_page(
            tags_index, content_dir, base_url=config.base_url, defaults=config.page_defaults()
        )
        if tags_page.url not in written:
            _write_page(output_dir, tags_page, _render(engine, tags_page, navigation))

    if config.minify:
        minify_html_files(output_dir)

    feeds = create_default_feed_registry().generate_all(output_dir, pages, site)
    logger.info("Generated %s", ", ".join(feeds))

    asset_paths = AssetPipeline(
        template_dir, content_dir, output_dir, minify=config.minify
    ).run()
    assets = [path.relative_to(output_dir) for path in asset_paths]

    site_dir = publish(output_dir, config.site_dir)
    logger.info("Site written to %s", site_dir)
    return BuildResult(
        pages=pages,
        output_dir=output_dir,
        site_dir=site_dir,
        feeds=feeds,
        assets=assets,
    )


def collect_site_metadata(config: SiteConfig, pages: Iterable[Page]) -> dict[str, str]:
    """Combine configuration values with the home page's front matter.

    Non-empty values from the page at ``/`` override the configuration,
    except for keys that only describe that page (its URL, date, ...).
    """
    site = config.site_metadata()
    home = next((page for page in pages if page.url == "/"), None)
    if home is not None:
        for key, value in home.metadata.items():
            if value and key not in PAGE_ONLY_KEYS:
                site[key] = value
    return site


def publish(build_dir: Path, site_dir: Path) -> Path:
    """Move a finished build into the site directory, replacing the old site.

    Returns:
        The site directory.
    """
    if build_dir.resolve() == site_dir.resolve():
        return site_dir
    if site_dir.exists():
        shutil.rmtree(site_dir)
    site_dir.parent.mkdir(parents=True, exist_ok=True)
    try:
        os.replace(build_dir, site_dir)
    except OSError:
        # Cross-device moves cannot be done with a rename.
        shutil.move(str(build_dir), str(site_dir))
    return site_dir


def _render(engine: TemplateRenderer, page: Page, navigation: str) -> str:
    try:
        return engine.render_page(page, navigation)
    except TemplateError as exc:
        raise BuildError(page.path, str(exc), exc) from exc
    except Exception as exc:
        raise BuildError(page.path, _format_error_message(exc), exc) from exc


def _format_error_message(exc: Exception) -> str:
    """Format an exception into a user-friendly error message."""
    error_type = type(exc).__name__
    error_msg = str(exc)
    if error_type == "TypeError":
        return f"Type error: {error_msg}"
    if error_type == "AttributeError":
        return f"Attribute error: {error_msg}"
    return f"{error_type}: {error_msg}"


def _write_page(output_dir: Path, page: Page, rendered: str) -> None:
    """Write a rendered page to ``<output>/<url>/index.html``."""
    url_path = page.url.strip("/")
    target_dir = output_dir / url_path
    target_dir.mkdir(parents=True, exist_ok=True)
    with open(target_dir / "index.html", "w", encoding="utf-8") as f:
        f.write(rendered)
