from pathlib import Path

import pytest

from staticforge.config import SiteConfig, load_config, validate_base_url, validate_path
from staticforge.errors import ConfigError


def test_defaults():
    config = SiteConfig()
    assert config.site_dir == Path("public")
    assert config.output_dir == Path("build")
    assert config.language == "en-GB"
    assert config.minify is True
    config.validate()


def test_load_config_resolves_paths_against_file(tmp_path):
    config_file = tmp_path / "site" / "staticforge.yaml"
    config_file.parent.mkdir()
    config_file.write_text(
        "site_name: www\n"
        "content_dir: content\n"
        "template_dir: /opt/templates\n"
        "base_url: https://example.com\n"
        "port: '9000'\n"
        "minify: false\n"
        "unknown_key: ignored\n"
        "metadata:\n"
        "  author: Ann\n"
        "  tags: [a, b]\n",
        encoding="utf-8",
    )
    config = load_config(config_file)
    root = config_file.parent.resolve()
    assert config.content_dir == root / "content"
    assert config.template_dir == Path("/opt/templates")
    assert config.site_dir == root / "www"
    assert config.port == 9000
    assert config.minify is False
    assert config.metadata == {"author": "Ann", "tags": "a, b"}


def test_load_config_errors(tmp_path):
    with pytest.raises(ConfigError, match="not found"):
        load_config(tmp_path / "missing.yaml")

    bad = tmp_path / "bad.yaml"
    bad.write_text("key: [unclosed", encoding="utf-8")
    with pytest.raises(ConfigError, match="Invalid YAML"):
        load_config(bad)

    listing = tmp_path / "list.yaml"
    listing.write_text("- a\n- b\n", encoding="utf-8")
    with pytest.raises(ConfigError, match="mapping"):
        load_config(listing)

    wrong_type = tmp_path / "wrong.yaml"
    wrong_type.write_text("minify: sometimes\n", encoding="utf-8")
    with pytest.raises(ConfigError, match="minify must be true or false"):
        load_config(wrong_type)

    empty = tmp_path / "empty.yaml"
    empty.write_text("", encoding="utf-8")
    assert load_config(empty).site_name == "public"


def test_with_overrides_skips_none():
    config = SiteConfig(base_url="https://example.com")
    updated = config.with_overrides(base_url=None, port=9001, content_dir="pages")
    assert updated.base_url == "https://example.com"
    assert updated.port == 9001
    assert updated.content_dir == Path("pages")
    assert config.port == 8000


def test_site_metadata_and_page_defaults():
    config = SiteConfig(
        base_url="https://example.com/",
        site_title="Example",
        metadata={"author": "Ann"},
    )
    site = config.site_metadata()
    assert site["base_url"] == "https://example.com"
    assert site["title"] == "Example"
    assert site["author"] == "Ann"
    assert config.page_defaults() == {"language": "en-GB", "site_name": "Example", "author": "Ann"}


@pytest.mark.parametrize(
    "value",
    ["", "  ", "../outside", "a/../b", "bad\0name", "evil\u202ename", "con", "docs/aux.txt"],
)
def test_validate_path_rejects_unsafe_values(value):
    with pytest.raises(ConfigError):
        validate_path("content_dir", value)


def test_validate_path_accepts_normal_paths():
    validate_path("content_dir", "content")
    validate_path("content_dir", "/srv/site/content")
    validate_path("content_dir", "console")


@pytest.mark.parametrize(
    "url",
    ["ftp://example.com", "example.com", "https://", "https://.example.com", "https://example.com\\x"],
)
def test_validate_base_url_rejects(url):
    with pytest.raises(ConfigError):
        validate_base_url(url)


def test_validate_checks_language_ports_and_directories():
    with pytest.raises(ConfigError, match="language"):
        SiteConfig(language="english").validate()
    with pytest.raises(ConfigError, match="port"):
        SiteConfig(port=70000).validate()
    with pytest.raises(ConfigError, match="websocket port"):
        SiteConfig(ws_port=0).validate()
    with pytest.raises(ConfigError, match="content_dir .* must not overlap output_dir"):
        SiteConfig(content_dir=Path("build")).validate()
    with pytest.raises(ConfigError, match="template_dir .* must not overlap site_name"):
        SiteConfig(template_dir=Path("public")).validate()
    with pytest.raises(ConfigError, match="site_name must not be empty"):
        SiteConfig(site_name=" ").validate()


@pytest.mark.parametrize(
    "overrides, message",
    [
        ({"output_dir": "site", "content_dir": "site/content"}, "content_dir .* output_dir"),
        ({"site_name": "site", "content_dir": "site/content"}, "content_dir .* site_name"),
        ({"site_name": ".", "content_dir": "content"}, "content_dir .* site_name"),
        ({"output_dir": "site/build", "content_dir": "site"}, "content_dir .* output_dir"),
        ({"site_name": "theme/public", "template_dir": "theme"}, "template_dir .* site_name"),
        ({"serve_dir": "www", "template_dir": "www/templates"}, "template_dir .* serve_dir"),
    ],
)
def test_validate_rejects_nested_source_and_output_directories(tmp_path, overrides, message):
    values = {
        "site_name": str(tmp_path / "public"),
        "content_dir": tmp_path / "content",
        "template_dir": tmp_path / "templates",
        "output_dir": tmp_path / "build",
    }
    for key, value in overrides.items():
        values[key] = str(tmp_path / value) if key == "site_name" else tmp_path / value
    with pytest.raises(ConfigError, match=message):
        SiteConfig(**values).validate()


def test_validate_accepts_sibling_directories(tmp_path):
    SiteConfig(
        site_name=str(tmp_path / "public"),
        content_dir=tmp_path / "content",
        template_dir=tmp_path / "templates",
        output_dir=tmp_path / "build",
        serve_dir=tmp_path / "public",
    ).validate()
