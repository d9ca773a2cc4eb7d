"""SEO meta tag generation for staticforge.

Meta tags are grouped the way layouts usually place them: primary
document tags, Apple web-app tags, Open Graph, Microsoft tiles and
Twitter cards. Each group is rendered from a page's flattened metadata
as a string of ``<meta>`` elements; entries whose value is empty are
omitted.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass

from .html_utils import escape_html

# (tag name, metadata keys tried in order)
PRIMARY_TAGS: list[tuple[str, tuple[str, ...]]] = [
    ("author", ("author",)),
    ("description", ("description",)),
    ("format-detection", ("format-detection", "format_detection")),
    ("generator", ("generator",)),
    ("keywords", ("keywords",)),
    ("language", ("language",)),
    ("permalink", ("permalink",)),
    ("rating", ("rating",)),
    ("referrer", ("referrer",)),
    ("revisit-after", ("revisit-after", "revisit_after")),
    ("robots", ("robots",)),
    ("theme-color", ("theme-color", "theme_color")),
    ("title", ("title",)),
    ("viewport", ("viewport",)),
]

APPLE_TAGS: list[tuple[str, tuple[str, ...]]] = [
    ("apple-mobile-web-app-capable", ("apple-mobile-web-app-capable", "apple_mobile_web_app_capable")),
    (
        "apple-mobile-web-app-status-bar-style",
        ("apple-mobile-web-app-status-bar-style", "apple_mobile_web_app_status_bar_style"),
    ),
    ("apple-mobile-web-app-title", ("apple-mobile-web-app-title", "apple_mobile_web_app_title")),
    ("apple-touch-fullscreen", ("apple-touch-fullscreen", "apple_touch_fullscreen")),
]

OPENGRAPH_TAGS: list[tuple[str, tuple[str, ...]]] = [
    ("og:description", ("og_description", "description")),
    ("og:image", ("og_image", "image")),
    ("og:image:alt", ("og_image_alt", "image_alt")),
    ("og:image:height", ("og_image_height", "image_height")),
    ("og:image:width", ("og_image_width", "image_width")),
    ("og:locale", ("og_locale", "locale")),
    ("og:site_name", ("og_site_name", "site_name")),
    ("og:title", ("og_title", "title")),
    ("og:type", ("og_type", "type")),
    ("og:url", ("og_url", "permalink")),
]

MICROSOFT_TAGS: list[tuple[str, tuple[str, ...]]] = [
    ("msapplication-config", ("msapplication-config", "msapplication_config")),
    ("msapplication-navbutton-color", ("msapplication-navbutton-color", "msapplication_navbutton_color")),
    ("msapplication-tap-highlight", ("msapplication-tap-highlight", "msapplication_tap_highlight")),
    ("msapplication-TileColor", ("msapplication-TileColor", "msapplication_tile_color")),
    ("msapplication-TileImage", ("msapplication-TileImage", "msapplication_tile_image")),
]

TWITTER_TAGS: list[tuple[str, tuple[str, ...]]] = [
    ("twitter:card", ("twitter_card",)),
    ("twitter:creator", ("twitter_creator",)),
    ("twitter:description", ("twitter_description", "description")),
    ("twitter:image", ("twitter_image", "image")),
    ("twitter:image:alt", ("twitter_image_alt", "image_alt")),
    ("twitter:site", ("twitter_site",)),
    ("twitter:title", ("twitter_title", "title")),
    ("twitter:url", ("twitter_url", "permalink")),
]


@dataclass
class MetaTagGroups:
    """Rendered meta tags, one HTML string per group."""

    primary: str = ""
    apple: str = ""
    opengraph: str = ""
    microsoft: str = ""
    twitter: str = ""

    def as_dict(self) -> dict[str, str]:
        return {
            "primary": self.primary,
            "apple": self.apple,
            "opengraph": self.opengraph,
            "microsoft": self.microsoft,
            "twitter": self.twitter,
        }


def format_meta_tag(name: str, content: str, attribute: str = "name") -> str:
    """Render a single ``<meta>`` element with escaped values.

    Examples:
        >>> format_meta_tag("author", "Jane & John")
        '<meta name="author" content="Jane &amp; John">'
    """
    return f'<meta {attribute}="{escape_html(name)}" content="{escape_html(content)}">'


def _lookup(metadata: Mapping[str, str], keys: tuple[str, ...]) -> str:
    for key in keys:
        value = str(metadata.get(key) or "").strip()
        if value:
            return value
    return ""


def generate_meta_tags(
    metadata: Mapping[str, str],
    tags: list[tuple[str, tuple[str, ...]]],
    attribute: str = "name",
) -> str:
    """Render every tag of a group that has a non-empty value."""
    rendered = []
    for name, keys in tags:
        value = _lookup(metadata, keys)
        if value:
            rendered.append(format_meta_tag(name, value, attribute))
    return "".join(rendered)


def generate_primary_meta_tags(metadata: Mapping[str, str]) -> str:
    return generate_meta_tags(metadata, PRIMARY_TAGS)


def generate_apple_meta_tags(metadata: Mapping[str, str]) -> str:
    return generate_meta_tags(metadata, APPLE_TAGS)


def generate_opengraph_meta_tags(metadata: Mapping[str, str]) -> str:
    # Open Graph consumers read the ``property`` attribute.
    return generate_meta_tags(metadata, OPENGRAPH_TAGS, attribute="property")


def generate_microsoft_meta_tags(metadata: Mapping[str, str]) -> str:
    return generate_meta_tags(metadata, MICROSOFT_TAGS)


def generate_twitter_meta_tags(metadata: Mapping[str, str]) -> str:
    return generate_meta_tags(metadata, TWITTER_TAGS)


def generate_all_meta_tags(metadata: Mapping[str, str]) -> MetaTagGroups:
    """Render all five meta tag groups for a page."""
    return MetaTagGroups(
        primary=generate_primary_meta_tags(metadata),
        apple=generate_apple_meta_tags(metadata),
        opengraph=generate_opengraph_meta_tags(metadata),
        microsoft=generate_microsoft_meta_tags(metadata),
        twitter=generate_twitter_meta_tags(metadata),
    )
