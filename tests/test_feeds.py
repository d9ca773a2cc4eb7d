import json
import xml.etree.ElementTree as ET
from datetime import datetime
from pathlib import Path

import pytest

from staticforge.content import Page
from staticforge.feeds import (
    CnameGenerator,
    HumansGenerator,
    ManifestGenerator,
    NewsSitemapGenerator,
    RobotsGenerator,
    RSSGenerator,
    SecurityGenerator,
    SitemapGenerator,
    create_default_feed_registry,
    is_safe_url,
)

SITE = {
    "base_url": "https://example.com",
    "title": "Example",
    "description": "An example site",
    "language": "en-GB",
}


def make_page(name, date, tags=None, metadata=None):
    url = f"/{name}/"
    permalink = f"https://example.com{url}"
    meta = {
        "item_title": name.title(),
        "item_link": permalink,
        "item_guid": permalink,
        "item_description": f"About {name}",
        "item_pub_date": date.strftime("%a, %d %b %Y %H:%M:%S +0000"),
        "permalink": permalink,
    }
    meta.update(metadata or {})
    return Page(
        name=name,
        title=name.title(),
        description=f"About {name}",
        body="",
        content="",
        url=url,
        slug=name,
        date=date,
        keywords=[],
        tags=tags or [],
        layout="page",
        draft=False,
        path=Path(f"{name}.md"),
        folder="",
        source_type="markdown",
        metadata=meta,
    )


def parse(xml: str) -> ET.Element:
    return ET.fromstring(xml.encode("utf-8"))


def test_rss_feed():
    pages = [
        make_page("old", datetime(2023, 1, 1), tags=["a"], metadata={"author": "ann@example.com"}),
        make_page("new", datetime(2024, 1, 1)),
    ]
    xml = RSSGenerator().generate(pages, {**SITE, "ttl": "60", "image": "https://example.com/i.png"})
    assert xml.startswith('<?xml version="1.0" encoding="UTF-8"?>')

    channel = parse(xml).find("channel")
    assert channel.findtext("title") == "Example"
    assert channel.findtext("link") == "https://example.com"
    assert channel.findtext("language") == "en-GB"
    assert channel.findtext("ttl") == "60"
    assert channel.findtext("generator").startswith("staticforge")
    assert channel.find("image").findtext("url") == "https://example.com/i.png"
    self_link = channel.find("{http://www.w3.org/2005/Atom}link")
    assert self_link.get("href") == "https://example.com/rss.xml"

    items = channel.findall("item")
    assert [i.findtext("title") for i in items] == ["New", "Old"]
    old = items[1]
    assert old.findtext("link") == "https://example.com/old/"
    assert old.find("guid").get("isPermaLink") == "true"
    assert old.findtext("pubDate") == "Sun, 01 Jan 2023 00:00:00 +0000"
    assert old.findtext("author") == "ann@example.com"
    assert old.findtext("category") == "a"


def test_sitemap():
    pages = [
        make_page("b", datetime(2024, 2, 1)),
        make_page("a", datetime(2024, 1, 1), metadata={"changefreq": "daily", "lastmod": "2024-03-01"}),
    ]
    root = parse(SitemapGenerator().generate(pages, SITE))
    ns = {"sm": "http://www.sitemaps.org/schemas/sitemap/0.9"}
    urls = root.findall("sm:url", ns)
    assert [u.findtext("sm:loc", namespaces=ns) for u in urls] == [
        "https://example.com/a/",
        "https://example.com/b/",
    ]
    assert urls[0].findtext("sm:changefreq", namespaces=ns) == "daily"
    assert urls[0].findtext("sm:lastmod", namespaces=ns) == "2024-03-01"
    assert urls[1].findtext("sm:changefreq", namespaces=ns) == "weekly"
    assert urls[1].findtext("sm:lastmod", namespaces=ns) == "2024-02-01"


def test_news_sitemap():
    generator = NewsSitemapGenerator()
    assert generator.generate([make_page("plain", datetime(2024, 1, 1))], SITE) is None

    page = make_page(
        "story",
        datetime(2024, 1, 1),
        metadata={
            "news_title": "Big Story",
            "news_publication_date": "Tue, 20 Feb 2024 15:15:15 GMT",
            "news_keywords": "big, story",
        },
    )
    xml = generator.generate([page], SITE)
    assert "<news:title>Big Story</news:title>" in xml
    assert "<news:publication_date>2024-02-20T15:15:15+00:00</news:publication_date>" in xml
    assert "<news:name>Example</news:name>" in xml
    assert "<news:language>en-GB</news:language>" in xml
    assert "<loc>https://example.com/story/</loc>" in xml


def test_robots_and_cname():
    assert RobotsGenerator().generate([], SITE) == (
        "User-agent: *\nSitemap: https://example.com/sitemap.xml\n"
    )
    assert CnameGenerator().generate([], SITE) is None
    assert CnameGenerator().generate([], {"cname": "https://www.example.com/"}) == (
        "example.com\nwww.example.com\n"
    )


def test_humans():
    assert HumansGenerator().generate([], SITE) is None
    text = HumansGenerator().generate(
        [],
        {"author": "Ann", "author_website": "https://ann.dev", "site_last_updated": "2024/01/01"},
    )
    assert text.startswith("/* TEAM */\n\tName: Ann\n\tWebsite: https://ann.dev")
    assert "/* THANKS */" not in text
    assert "/* SITE */\n\tLast update: 2024/01/01" in text
    assert "\tSoftware: staticforge" in text


def test_security_txt():
    generator = SecurityGenerator()
    assert generator.filename == ".well-known/security.txt"
    assert generator.generate([], {"security_contact": "mailto:sec@example.com"}) is None
    assert generator.generate(
        [], {"security_contact": "javascript:alert(1)", "security_expires": "2030-01-01"}
    ) is None
    assert generator.generate(
        [], {"security_contact": "mailto:sec@example.com", "security_expires": "soon"}
    ) is None

    text = generator.generate(
        [],
        {
            "security_contact": "mailto:sec@example.com, ftp://bad.example.com",
            "security_expires": "2030-01-01T00:00:00",
            "security_preferred_languages": "en, fr",
            "security_policy": "https://example.com/policy",
        },
    )
    assert text == (
        "Contact: mailto:sec@example.com\n"
        "Expires: 2030-01-01T00:00:00Z\n"
        "Preferred-Languages: en, fr\n"
        "Policy: https://example.com/policy\n"
    )


@pytest.mark.parametrize(
    "url, expected",
    [
        ("https://example.com/x", True),
        ("mailto:a@b.c", True),
        ("tel:+441234", True),
        ("https://", False),
        ("javascript:alert(1)", False),
        ("https://exa mple.com", False),
    ],
)
def test_is_safe_url(url, expected):
    assert is_safe_url(url) is expected


def test_manifest():
    data = json.loads(ManifestGenerator().generate([], SITE))
    assert data["name"] == "Example"
    assert data["short_name"] == "Example"
    assert data["icons"] == []
    assert data["orientation"] == "portrait-primary"

    data = json.loads(ManifestGenerator().generate([], {**SITE, "icon": "/icon.png"}))
    assert data["icons"] == [
        {"src": "/icon.png", "sizes": "512x512", "type": "image/png", "purpose": "any maskable"}
    ]


def test_registry_writes_files(tmp_path):
    pages = [make_page("post", datetime(2024, 1, 1))]
    written = create_default_feed_registry().generate_all(tmp_path, pages, SITE)
    assert written == ["rss.xml", "sitemap.xml", "robots.txt", "manifest.json"]
    for name in written:
        assert (tmp_path / name).is_file()
    assert not (tmp_path / ".well-known").exists()

    site = {**SITE, "security_contact": "mailto:a@b.c", "security_expires": "2030-01-01"}
    written = create_default_feed_registry().generate_all(tmp_path, pages, site)
    assert ".well-known/security.txt" in written
    assert (tmp_path / ".well-known" / "security.txt").is_file()
