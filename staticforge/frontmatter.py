"""Front matter parsing for staticforge.

Content files may start with a metadata block in one of three formats:

- YAML between ``---`` lines,
- TOML between ``+++`` lines,
- a JSON object opening the file with ``{``.

``extract_frontmatter`` returns the parsed mapping plus the remaining
body. ``flatten_metadata`` turns the mapping into plain strings, which is
what meta tags, feeds and templates consume.
"""

from __future__ import annotations

import json
import re
import tomllib
from datetime import date, datetime
from typing import Any

import yaml

from .errors import FrontmatterError

YAML_RE = re.compile(r"\A---[ \t]*\r?\n(.*?)^---[ \t]*(?:\r?\n|\Z)", re.DOTALL | re.MULTILINE)
TOML_RE = re.compile(r"\A\+\+\+[ \t]*\r?\n(.*?)^\+\+\+[ \t]*(?:\r?\n|\Z)", re.DOTALL | re.MULTILINE)


def detect_format(text: str) -> str | None:
    """Return the front matter format a document opens with, if any."""
    if text.startswith("\ufeff"):
        text = text[1:]
    if YAML_RE.match(text):
        return "yaml"
    if TOML_RE.match(text):
        return "toml"
    if text.lstrip().startswith("{"):
        return "json"
    return None


def extract_frontmatter(text: str) -> tuple[dict[str, Any], str]:
    """Extract front matter from content.

    Args:
        text: Raw file content.

    Returns:
        Tuple of (front matter dict, remaining content). Documents without
        front matter return an empty dict and the unchanged text.

    Raises:
        FrontmatterError: If a recognised block holds malformed data.
    """
    if text.startswith("\ufeff"):
        text = text[1:]
    fmt = detect_format(text)
    if fmt == "yaml":
        match = YAML_RE.match(text)
        return _parse_yaml(match.group(1)), text[match.end() :]
    if fmt == "toml":
        match = TOML_RE.match(text)
        return _parse_toml(match.group(1)), text[match.end() :]
    if fmt == "json":
        return _parse_json(text)
    return {}, text


def _parse_yaml(raw: str) -> dict[str, Any]:
    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as exc:
        raise FrontmatterError("yaml", str(exc)) from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise FrontmatterError("yaml", "expected a mapping of keys to values")
    return data


def _parse_toml(raw: str) -> dict[str, Any]:
    try:
        return tomllib.loads(raw)
    except tomllib.TOMLDecodeError as exc:
        raise FrontmatterError("toml", str(exc)) from exc


def _parse_json(text: str) -> tuple[dict[str, Any], str]:
    stripped = text.lstrip()
    end = _json_object_end(stripped)
    if end is None:
        raise FrontmatterError("json", "unbalanced braces")
    try:
        data = json.loads(stripped[:end])
    except json.JSONDecodeError as exc:
        raise FrontmatterError("json", str(exc)) from exc
    if not isinstance(data, dict):
        raise FrontmatterError("json", "expected an object")
    body = stripped[end:]
    if body.startswith("\r\n"):
        body = body[2:]
    elif body.startswith("\n"):
        body = body[1:]
    return data, body


def _json_object_end(text: str) -> int | None:
    """Index just past the brace closing the object that starts ``text``."""
    depth = 0
    in_string = False
    escaped = False
    for index, char in enumerate(text):
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"':
            in_string = True
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return index + 1
    return None


def flatten_value(value: Any) -> str | None:
    """Convert a single front matter value to a string.

    Returns None for nested mappings, which have no flat representation.
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, dict):
        return None
    if isinstance(value, (list, tuple, set)):
        parts = [flatten_value(item) for item in value]
        return ", ".join(p for p in parts if p)
    return str(value)


def flatten_metadata(mapping: dict[str, Any]) -> dict[str, str]:
    """Flatten front matter into a ``str -> str`` mapping.

    Examples:
        >>> flatten_metadata({"tags": ["a", "b"], "draft": False})
        {'tags': 'a, b', 'draft': 'false'}
    """
    flat: dict[str, str] = {}
    for key, value in mapping.items():
        text = flatten_value(value)
        if text is not None:
            flat[str(key)] = text
    return flat
