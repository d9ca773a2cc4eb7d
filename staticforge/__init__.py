"""staticforge static site generator.

This package compiles a directory of Markdown or HTML content with YAML,
TOML or JSON front matter into a minified static website using Jinja2
layouts. Besides the pages it generates SEO meta tags, a navigation menu,
a tags page, RSS, sitemaps, robots.txt and other site files, and it can
serve the result with live reload.

The main entry point is the CLI module.
"""

__all__ = ["__version__"]
__version__ = "0.1.0"
