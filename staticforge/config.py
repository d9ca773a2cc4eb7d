"""Site configuration for staticforge.

Configuration comes from an optional YAML file and from command-line
options, which override file values. Everything ends up in a SiteConfig,
which is validated before a build starts.

Example ``staticforge.yaml``::

    site_name: public
    content_dir: content
    output_dir: build
    template_dir: templates
    base_url: https://example.com
    site_title: Example
    language: en-GB
    metadata:
      author: Jane Doe
      cname: example.com
"""

from __future__ import annotations

import dataclasses
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

import yaml

from .errors import ConfigError
from .frontmatter import flatten_metadata

LANGUAGE_RE = re.compile(r"[a-z]{2}-[A-Z]{2}")
RESERVED_NAMES = frozenset({"con", "aux", "nul", "prn", "com1", "lpt1"})
PATH_FIELDS = ("content_dir", "output_dir", "template_dir", "serve_dir", "log_file")


@dataclass
class SiteConfig:
    """Settings for one site build.

    Attributes:
        site_name: Directory the finished site is moved into.
        content_dir: Directory with Markdown/HTML page sources.
        output_dir: Build directory pages are compiled into.
        template_dir: Directory with layout templates and theme assets.
        serve_dir: Directory the development server serves, if any.
        base_url: Absolute site URL used for permalinks and feeds.
        metadata: Extra site metadata (author, cname, security_contact, ...).
    """

    site_name: str = "public"
    content_dir: Path = Path("content")
    output_dir: Path = Path("build")
    template_dir: Path = Path("templates")
    serve_dir: Path | None = None
    base_url: str = "http://localhost:8000"
    site_title: str = "My staticforge site"
    site_description: str = ""
    language: str = "en-GB"
    minify: bool = True
    include_drafts: bool = False
    host: str = "127.0.0.1"
    port: int = 8000
    ws_port: int | None = None
    log_file: Path | None = None
    metadata: dict[str, str] = field(default_factory=dict)

    @property
    def site_dir(self) -> Path:
        return Path(self.site_name)

    @classmethod
    def from_mapping(cls, data: dict[str, Any], base_dir: Path | None = None) -> SiteConfig:
        """Create a config from a mapping, ignoring unknown keys.

        Relative paths are resolved against ``base_dir`` when given.

        Raises:
            ConfigError: If a value has the wrong type.
        """
        known = {f.name: f for f in dataclasses.fields(cls)}
        values: dict[str, Any] = {}
        for key, raw in data.items():
            if key not in known or raw is None:
                continue
            values[key] = _coerce(key, raw, base_dir)
        if "site_name" in values and base_dir is not None:
            values["site_name"] = str(base_dir / values["site_name"])
        return cls(**values)

    def with_overrides(self, **overrides: Any) -> SiteConfig:
        """Return a copy with every non-None override applied."""
        values = {}
        for key, value in overrides.items():
            if value is None:
                continue
            values[key] = _coerce(key, value, None)
        return dataclasses.replace(self, **values)

    def site_metadata(self) -> dict[str, str]:
        """Site-level values used by feeds and templates."""
        site = {
            "base_url": self.base_url.rstrip("/"),
            "title": self.site_title,
            "site_name": self.site_title,
            "description": self.site_description,
            "language": self.language,
        }
        site.update(self.metadata)
        return site

    def page_defaults(self) -> dict[str, str]:
        """Metadata every page starts from before its front matter is applied."""
        defaults = {"language": self.language, "site_name": self.site_title}
        defaults.update(self.metadata)
        return defaults

    def validate(self) -> None:
        """Check paths, URL and language.

        Raises:
            ConfigError: Describing the first invalid setting.
        """
        if not self.site_name.strip():
            raise ConfigError("site_name must not be empty")
        validate_path("site_name", self.site_name)
        for name in PATH_FIELDS:
            value = getattr(self, name)
            if value is not None:
                validate_path(name, value)
        validate_base_url(self.base_url)
        if not LANGUAGE_RE.fullmatch(self.language):
            raise ConfigError(
                f"Invalid language {self.language!r}: expected the form 'en-GB'"
            )
        if not 0 < self.port < 65536:
            raise ConfigError(f"Invalid port {self.port}")
        if self.ws_port is not None and not 0 < self.ws_port < 65536:
            raise ConfigError(f"Invalid websocket port {self.ws_port}")

        # These directories are wiped and replaced on every build or sync.
        targets = {"output_dir": self.output_dir, "site_name": self.site_dir}
        if self.serve_dir is not None:
            targets["serve_dir"] = self.serve_dir
        for name in ("content_dir", "template_dir"):
            source = getattr(self, name).resolve()
            for target_name, target in targets.items():
                target = target.resolve()
                if source.is_relative_to(target) or target.is_relative_to(source):
                    raise ConfigError(
                        f"{name} ({source}) must not overlap {target_name} ({target})"
                    )


def _coerce(key: str, value: Any, base_dir: Path | None) -> Any:
    if key in PATH_FIELDS:
        path = Path(str(value))
        if base_dir is not None and not path.is_absolute():
            path = base_dir / path
        return path
    if key in {"minify", "include_drafts"}:
        if isinstance(value, bool):
            return value
        raise ConfigError(f"{key} must be true or false, got {value!r}")
    if key in {"port", "ws_port"}:
        try:
            return int(value)
        except (TypeError, ValueError):
            raise ConfigError(f"{key} must be an integer, got {value!r}") from None
    if key == "metadata":
        if not isinstance(value, dict):
            raise ConfigError("metadata must be a mapping")
        return flatten_metadata(value)
    return str(value)


def validate_path(name: str, value: Path | str) -> None:
    """Reject paths that are empty, traverse upwards or use unsafe characters.

    Raises:
        ConfigError: If the path is unsafe.
    """
    text = str(value)
    if not text.strip():
        raise ConfigError(f"{name} must not be empty")
    if "\0" in text or "\u202e" in text:
        raise ConfigError(f"{name} contains forbidden characters: {text!r}")
    parts = Path(text).parts
    if ".." in parts:
        raise ConfigError(f"{name} must not contain '..': {text}")
    for part in parts:
        if part.split(".")[0].lower() in RESERVED_NAMES:
            raise ConfigError(f"{name} uses a reserved name: {part}")


def validate_base_url(url: str) -> None:
    """Require an http(s) URL with a host and no backslashes.

    Raises:
        ConfigError: If the URL is not acceptable.
    """
    if "\\" in url:
        raise ConfigError(f"Invalid base_url {url!r}: backslashes are not allowed")
    parsed = urlparse(url)
    if parsed.scheme not in {"http", "https"}:
        raise ConfigError(f"Invalid base_url {url!r}: scheme must be http or https")
    host = parsed.hostname or ""
    if not host or host.startswith("."):
        raise ConfigError(f"Invalid base_url {url!r}: missing host")


def load_config(path: Path) -> SiteConfig:
    """Load a YAML configuration file.

    Relative paths inside the file are resolved against its directory.

    Raises:
        ConfigError: If the file is missing, unreadable or not a mapping.
    """
    try:
        with open(path, encoding="utf-8") as f:
            loaded = yaml.safe_load(f)
    except FileNotFoundError:
        raise ConfigError(f"Configuration file not found: {path}") from None
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {path}: {exc}") from exc
    if loaded is None:
        loaded = {}
    if not isinstance(loaded, dict):
        raise ConfigError(f"{path} must contain a mapping of settings")
    return SiteConfig.from_mapping(loaded, base_dir=path.resolve().parent)
