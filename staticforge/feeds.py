"""Feed and site file generation for staticforge.

Besides the HTML pages, a site ships a handful of machine-readable files:
the RSS feed, sitemaps, robots.txt, CNAME, humans.txt, security.txt and
the web app manifest. Each is produced by one FeedGenerator from the
list of pages and the site metadata (the configuration overlaid with the
home page's front matter).

Classes:
    FeedGenerator: Base class for site file generators.
    RSSGenerator, SitemapGenerator, NewsSitemapGenerator,
    RobotsGenerator, CnameGenerator, HumansGenerator,
    SecurityGenerator, ManifestGenerator: Concrete generators.
    FeedRegistry: Registry for managing feed generators.

Functions:
    create_default_feed_registry: Create a registry with default generators.
"""

from __future__ import annotations

import json
import logging
import mimetypes
import xml.etree.ElementTree as ET
from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING
from urllib.parse import urlparse

from . import __version__
from .errors import MetadataError
from .extractors import standardize_date
from .html_utils import join_root_url
from .utils import format_rfc822, split_list

if TYPE_CHECKING:
    from .content import Page

logger = logging.getLogger(__name__)

XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8"?>\n'
ATOM_NS = "http://www.w3.org/2005/Atom"
SITEMAP_NS = "http://www.sitemaps.org/schemas/sitemap/0.9"
NEWS_NS = "http://www.google.com/schemas/sitemap-news/0.9"
RSS_DOCS = "https://validator.w3.org/feed/docs/rss2.html"
SECURITY_SCHEMES = {"http", "https", "mailto", "tel"}

ET.register_namespace("atom", ATOM_NS)


def _to_xml(root: ET.Element) -> str:
    ET.indent(root)
    return XML_DECLARATION + ET.tostring(root, encoding="unicode") + "\n"


def _text(parent: ET.Element, tag: str, value: str | None) -> None:
    """Append ``<tag>value</tag>`` when the value is non-empty."""
    if value:
        ET.SubElement(parent, tag).text = str(value)


class FeedGenerator(ABC):
    """Base class for site file generators.

    Subclasses name their output file and render its content; returning
    None from ``generate`` skips the file (for example when required
    metadata is missing).
    """

    @property
    @abstractmethod
    def filename(self) -> str:
        """Output path relative to the site root, e.g. ``rss.xml``."""
        ...

    @abstractmethod
    def generate(self, pages: list[Page], site: Mapping[str, str]) -> str | None:
        """Render the file content, or None to skip it."""
        ...

    def write(self, output_dir: Path, pages: list[Page], site: Mapping[str, str]) -> bool:
        """Generate and write the file.

        Returns:
            True if the file was written, False if skipped.
        """
        content = self.generate(pages, site)
        if content is None:
            return False
        output_path = output_dir / self.filename
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(content, encoding="utf-8")
        return True


class RSSGenerator(FeedGenerator):
    """Generates an RSS 2.0 feed with an Atom self link.

    Items are the site's pages, newest first. Item fields come from the
    ``item_*`` metadata each page carries (title, link, guid, description
    and publication date), plus its author and tags.
    """

    @property
    def filename(self) -> str:
        return "rss.xml"

    def generate(self, pages: list[Page], site: Mapping[str, str]) -> str | None:
        base_url = site.get("base_url", "")
        now = format_rfc822(datetime.now(timezone.utc))
        rss = ET.Element("rss", {"version": "2.0"})
        channel = ET.SubElement(rss, "channel")
        _text(channel, "title", site.get("title") or site.get("site_name"))
        _text(channel, "link", base_url)
        _text(channel, "description", site.get("description"))
        _text(channel, "language", site.get("language"))
        _text(channel, "pubDate", site.get("pub_date") or now)
        _text(channel, "lastBuildDate", now)
        _text(channel, "docs", site.get("docs") or RSS_DOCS)
        _text(channel, "generator", site.get("generator") or f"staticforge {__version__}")
        _text(channel, "managingEditor", site.get("managing_editor"))
        _text(channel, "webMaster", site.get("webmaster"))
        _text(channel, "category", site.get("category"))
        _text(channel, "ttl", site.get("ttl"))
        if site.get("image"):
            image = ET.SubElement(channel, "image")
            _text(image, "url", site["image"])
            _text(image, "title", site.get("title") or site.get("site_name"))
            _text(image, "link", base_url)
        ET.SubElement(
            channel,
            f"{{{ATOM_NS}}}link",
            {
                "href": join_root_url(base_url, "/rss.xml"),
                "rel": "self",
                "type": "application/rss+xml",
            },
        )
        for page in sorted(pages, key=lambda p: p.date, reverse=True):
            meta = page.metadata
            item = ET.SubElement(channel, "item")
            _text(item, "title", meta.get("item_title") or page.title)
            _text(item, "link", meta.get("item_link") or page.permalink)
            guid = ET.SubElement(item, "guid", {"isPermaLink": "true"})
            guid.text = meta.get("item_guid") or page.permalink
            _text(item, "description", meta.get("item_description") or page.description)
            _text(item, "pubDate", meta.get("item_pub_date"))
            _text(item, "author", meta.get("author"))
            for tag in page.tags:
                _text(item, "category", tag)
        return _to_xml(rss)


class SitemapGenerator(FeedGenerator):
    """Generates sitemap.xml following the sitemaps.org protocol.

    Pages may override ``changefreq`` and ``lastmod`` in front matter;
    the defaults are ``weekly`` and the page date.
    """

    @property
    def filename(self) -> str:
        return "sitemap.xml"

    def generate(self, pages: list[Page], site: Mapping[str, str]) -> str | None:
        urlset = ET.Element("urlset", {"xmlns": SITEMAP_NS})
        for page in sorted(pages, key=lambda p: p.url):
            url = ET.SubElement(urlset, "url")
            _text(url, "loc", page.permalink)
            _text(url, "lastmod", page.metadata.get("lastmod") or page.date.strftime("%Y-%m-%d"))
            _text(url, "changefreq", page.metadata.get("changefreq") or "weekly")
        return _to_xml(urlset)


class NewsSitemapGenerator(FeedGenerator):
    """Generates a Google News sitemap for pages carrying ``news_*`` metadata.

    Publication dates given in RFC 2822 form are converted to ISO 8601
    with an explicit ``+00:00`` offset. Skipped when no page has news
    metadata.
    """

    @property
    def filename(self) -> str:
        return "news-sitemap.xml"

    def generate(self, pages: list[Page], site: Mapping[str, str]) -> str | None:
        news_pages = [
            p
            for p in pages
            if p.metadata.get("news_title") or p.metadata.get("news_publication_name")
        ]
        if not news_pages:
            return None
        urlset = ET.Element("urlset", {"xmlns": SITEMAP_NS, "xmlns:news": NEWS_NS})
        for page in news_pages:
            meta = page.metadata
            url = ET.SubElement(urlset, "url")
            _text(url, "loc", meta.get("news_loc") or page.permalink)
            news = ET.SubElement(url, "news:news")
            publication = ET.SubElement(news, "news:publication")
            _text(publication, "news:name", meta.get("news_publication_name") or site.get("title"))
            _text(publication, "news:language", meta.get("news_language") or site.get("language"))
            _text(news, "news:publication_date", self._publication_date(page))
            _text(news, "news:title", meta.get("news_title") or page.title)
            _text(news, "news:keywords", meta.get("news_keywords"))
        return _to_xml(urlset)

    @staticmethod
    def _publication_date(page: Page) -> str:
        raw = page.metadata.get("news_publication_date")
        moment = page.date
        if raw:
            try:
                moment = standardize_date(raw)
            except MetadataError:
                logger.warning(
                    "Ignoring invalid news_publication_date %r in %s", raw, page.path
                )
        return moment.strftime("%Y-%m-%dT%H:%M:%S+00:00")


class RobotsGenerator(FeedGenerator):
    """Generates robots.txt pointing crawlers at the sitemap."""

    @property
    def filename(self) -> str:
        return "robots.txt"

    def generate(self, pages: list[Page], site: Mapping[str, str]) -> str | None:
        sitemap = join_root_url(site.get("base_url", ""), "/sitemap.xml")
        return f"User-agent: *\nSitemap: {sitemap}\n"


class CnameGenerator(FeedGenerator):
    """Generates the CNAME file for the ``cname`` domain, with its www alias."""

    @property
    def filename(self) -> str:
        return "CNAME"

    def generate(self, pages: list[Page], site: Mapping[str, str]) -> str | None:
        domain = site.get("cname", "").strip()
        if not domain:
            return None
        if "://" in domain:
            domain = urlparse(domain).netloc
        domain = domain.strip("/").removeprefix("www.")
        return f"{domain}\nwww.{domain}\n"


class HumansGenerator(FeedGenerator):
    """Generates humans.txt from the author and site metadata."""

    @property
    def filename(self) -> str:
        return "humans.txt"

    def generate(self, pages: list[Page], site: Mapping[str, str]) -> str | None:
        if not site.get("author"):
            return None
        sections = [
            (
                "TEAM",
                [
                    ("Name", site.get("author")),
                    ("Website", site.get("author_website")),
                    ("Twitter", site.get("author_twitter")),
                    ("Location", site.get("author_location")),
                ],
            ),
            ("THANKS", [("Thanks", site.get("thanks"))]),
            (
                "SITE",
                [
                    ("Last update", site.get("site_last_updated") or datetime.now().strftime("%Y/%m/%d")),
                    ("Standards", site.get("site_standards")),
                    ("Components", site.get("site_components")),
                    ("Software", site.get("site_software") or "staticforge"),
                ],
            ),
        ]
        blocks = []
        for heading, fields in sections:
            lines = [f"\t{label}: {value}" for label, value in fields if value]
            if lines:
                blocks.append(f"/* {heading} */\n" + "\n".join(lines))
        return "\n\n".join(blocks) + "\n"


class SecurityGenerator(FeedGenerator):
    """Generates an RFC 9116 security.txt under ``.well-known``.

    Needs at least one usable ``security_contact`` URL and a parseable
    ``security_expires`` date. URLs with schemes other than http, https,
    mailto and tel are dropped.
    """

    FIELDS = [
        ("Acknowledgments", "security_acknowledgments"),
        ("Canonical", "security_canonical"),
        ("Policy", "security_policy"),
        ("Hiring", "security_hiring"),
        ("Encryption", "security_encryption"),
    ]

    @property
    def filename(self) -> str:
        return ".well-known/security.txt"

    def generate(self, pages: list[Page], site: Mapping[str, str]) -> str | None:
        contacts = [c for c in split_list(site.get("security_contact")) if is_safe_url(c)]
        raw_expires = site.get("security_expires")
        if not contacts or not raw_expires:
            return None
        try:
            expires = standardize_date(raw_expires)
        except MetadataError:
            logger.warning("Skipping security.txt: invalid security_expires %r", raw_expires)
            return None

        lines = [f"Contact: {contact}" for contact in contacts]
        lines.append(f"Expires: {expires.strftime('%Y-%m-%dT%H:%M:%SZ')}")
        languages = ", ".join(split_list(site.get("security_preferred_languages")))
        if languages:
            lines.append(f"Preferred-Languages: {languages}")
        for label, key in self.FIELDS:
            for url in split_list(site.get(key)):
                if is_safe_url(url):
                    lines.append(f"{label}: {url}")
        return "\n".join(lines) + "\n"


def is_safe_url(url: str) -> bool:
    """Check that a URL uses an allowed scheme and has no whitespace or control characters."""
    if any(ch.isspace() or ord(ch) < 32 for ch in url):
        return False
    parsed = urlparse(url)
    if parsed.scheme not in SECURITY_SCHEMES:
        return False
    if parsed.scheme in {"http", "https"}:
        return bool(parsed.netloc)
    return bool(parsed.path)


class ManifestGenerator(FeedGenerator):
    """Generates the web app manifest (manifest.json)."""

    @property
    def filename(self) -> str:
        return "manifest.json"

    def generate(self, pages: list[Page], site: Mapping[str, str]) -> str | None:
        name = site.get("name") or site.get("title") or site.get("site_name", "")
        manifest: dict[str, object] = {
            "name": name,
            "short_name": site.get("short_name") or name,
            "start_url": ".",
            "display": "standalone",
            "background_color": "#ffffff",
            "description": site.get("description", ""),
            "icons": [],
            "orientation": "portrait-primary",
            "scope": "/",
            "theme_color": site.get("theme_color") or site.get("theme-color") or "#ffffff",
        }
        icon = site.get("icon")
        if icon:
            icon_type = mimetypes.guess_type(icon)[0] or "image/png"
            manifest["icons"] = [
                {
                    "src": icon,
                    "sizes": "512x512",
                    "type": icon_type,
                    "purpose": "any maskable",
                }
            ]
        return json.dumps(manifest, indent=2) + "\n"


class FeedRegistry:
    """Registry for managing feed generators.

    Attributes:
        _generators: List of registered feed generators.
    """

    def __init__(self) -> None:
        self._generators: list[FeedGenerator] = []

    def register(self, generator: FeedGenerator) -> None:
        self._generators.append(generator)

    def generate_all(
        self,
        output_dir: Path,
        pages: Iterable[Page],
        site: Mapping[str, str],
    ) -> list[str]:
        """Generate all registered feeds.

        Returns:
            List of filenames that were generated.
        """
        pages_list = list(pages)
        generated = []
        for generator in self._generators:
            if generator.write(output_dir, pages_list, site):
                logger.debug("Wrote %s", generator.filename)
                generated.append(generator.filename)
            else:
                logger.debug("Skipped %s", generator.filename)
        return generated


def create_default_feed_registry() -> FeedRegistry:
    """Create a registry with every built-in generator."""
    registry = FeedRegistry()
    for generator in (
        RSSGenerator(),
        SitemapGenerator(),
        NewsSitemapGenerator(),
        RobotsGenerator(),
        CnameGenerator(),
        HumansGenerator(),
        SecurityGenerator(),
        ManifestGenerator(),
    ):
        registry.register(generator)
    return registry
