"""HTML minification for staticforge.

Pages are parsed with BeautifulSoup; comments are dropped, runs of
whitespace in text collapse to a single space and whitespace-only text
between block elements is removed. Inline ``<style>`` and ``<script>``
bodies go through rcssmin and rjsmin, the same minifiers used for
stylesheet and script assets. Closing tags are always kept.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path

from bs4 import BeautifulSoup, Comment, Doctype, NavigableString, Tag
from rcssmin import cssmin
from rjsmin import jsmin

logger = logging.getLogger(__name__)

PRESERVE_WHITESPACE = {"pre", "textarea", "code", "script", "style"}
BLOCK_TAGS = {
    "address", "article", "aside", "blockquote", "body", "dd", "details", "div",
    "dl", "dt", "fieldset", "figcaption", "figure", "footer", "form", "h1", "h2",
    "h3", "h4", "h5", "h6", "head", "header", "hr", "html", "li", "link", "main",
    "meta", "nav", "ol", "p", "pre", "script", "section", "style", "table",
    "tbody", "td", "tfoot", "th", "thead", "title", "tr", "ul",
}
JS_TYPES = {"", "text/javascript", "application/javascript", "module"}
_WS_RE = re.compile(r"\s+")


def _is_block(node) -> bool:
    if node is None or isinstance(node, Doctype):
        return True
    return isinstance(node, Tag) and node.name in BLOCK_TAGS


def _preserved(text: NavigableString) -> bool:
    return any(parent.name in PRESERVE_WHITESPACE for parent in text.parents)


def minify_html(html: str) -> str:
    """Minify an HTML document.

    Text inside ``<pre>``, ``<textarea>`` and ``<code>`` is left untouched.
    """
    soup = BeautifulSoup(html, "html.parser")

    for comment in soup.find_all(string=lambda text: isinstance(text, Comment)):
        comment.extract()
    soup.smooth()

    for style in soup.find_all("style"):
        if style.string:
            style.string = cssmin(style.string)
    for script in soup.find_all("script"):
        if script.string and script.get("type", "").strip().lower() in JS_TYPES:
            script.string = jsmin(script.string)

    for text in list(soup.find_all(string=True)):
        if isinstance(text, Doctype) or _preserved(text):
            continue
        collapsed = _WS_RE.sub(" ", str(text))
        if collapsed.strip():
            if collapsed != text:
                text.replace_with(collapsed)
        elif _is_block(text.previous_sibling) and _is_block(text.next_sibling):
            text.extract()
        elif collapsed != text:
            text.replace_with(collapsed)

    return str(soup).strip()


def minify_html_files(directory: Path) -> int:
    """Minify every ``*.html`` file below a directory in place.

    Returns:
        Number of files rewritten.
    """
    count = 0
    for path in sorted(directory.rglob("*.html")):
        original = path.read_text(encoding="utf-8")
        path.write_text(minify_html(original), encoding="utf-8")
        count += 1
    logger.debug("Minified %d HTML files in %s", count, directory)
    return count
