import logging
from pathlib import Path

from click.testing import CliRunner

from staticforge import __version__
from staticforge.build import BuildResult
from staticforge.cli import cli, configure_logging
from staticforge.errors import BuildError


def fake_result(config):
    return BuildResult(
        pages=[],
        output_dir=config.output_dir,
        site_dir=config.site_dir,
        feeds=["rss.xml"],
        assets=[Path("css/style.css")],
    )


def base_args(tmp_path):
    return [
        "-c", str(tmp_path / "content"),
        "-t", str(tmp_path / "templates"),
        "-o", str(tmp_path / "build"),
        "-n", str(tmp_path / "public"),
    ]


def test_cli_requires_directories():
    result = CliRunner().invoke(cli, ["-c", "content"])
    assert result.exit_code == 2
    assert "--template, --output" in result.output


def test_cli_version():
    result = CliRunner().invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_cli_scaffolds_and_builds(monkeypatch, tmp_path):
    seen = {}

    def fake_build_site(config):
        seen["config"] = config
        return fake_result(config)

    monkeypatch.setattr("staticforge.build.build_site", fake_build_site)
    result = CliRunner().invoke(cli, base_args(tmp_path) + ["--drafts", "--no-minify"])

    assert result.exit_code == 0, result.output
    assert f"Built 0 pages, 1 site files and 1 assets into {tmp_path / 'public'}" in result.output
    assert (tmp_path / "content" / "index.md").is_file()
    assert (tmp_path / "templates" / "page.html").is_file()
    config = seen["config"]
    assert config.include_drafts is True
    assert config.minify is False
    assert config.site_dir == tmp_path / "public"


def test_cli_keeps_existing_content(monkeypatch, tmp_path):
    (tmp_path / "content").mkdir()
    (tmp_path / "content" / "mine.md").write_text("Mine", encoding="utf-8")
    monkeypatch.setattr("staticforge.build.build_site", fake_result)

    result = CliRunner().invoke(cli, base_args(tmp_path))

    assert result.exit_code == 0, result.output
    assert not (tmp_path / "content" / "index.md").exists()
    assert (tmp_path / "templates" / "page.html").is_file()


def test_cli_reports_invalid_configuration(monkeypatch, tmp_path):
    monkeypatch.setattr("staticforge.build.build_site", fake_result)
    result = CliRunner().invoke(cli, base_args(tmp_path) + ["--base-url", "ftp://example.com"])
    assert result.exit_code == 1
    assert "Invalid configuration:" in result.output
    assert "scheme must be http or https" in result.output


def test_cli_reports_build_errors(monkeypatch, tmp_path):
    def failing_build(config):
        raise BuildError(tmp_path / "content" / "bad.md", "Invalid YAML front matter: oops")

    monkeypatch.setattr("staticforge.build.build_site", failing_build)
    result = CliRunner().invoke(cli, base_args(tmp_path))
    assert result.exit_code == 1
    assert "Build failed:" in result.output
    assert "bad.md" in result.output
    assert "Error: Invalid YAML front matter: oops" in result.output


def test_cli_serves_when_requested(monkeypatch, tmp_path):
    created = {}

    class DummyServer:
        def __init__(self, config, watch=False):
            created["config"] = config
            created["watch"] = watch
            self.serve_dir = config.serve_dir
            self.url = f"http://127.0.0.1:{config.port}"

        def start(self):
            created["started"] = True

    monkeypatch.setattr("staticforge.build.build_site", fake_result)
    monkeypatch.setattr("staticforge.server.DevServer", DummyServer)
    result = CliRunner().invoke(
        cli,
        base_args(tmp_path)
        + ["-s", str(tmp_path / "www"), "-w", "--port", "5050", "--ws-port", "5051"],
    )

    assert result.exit_code == 0, result.output
    assert created["started"] is True
    assert created["watch"] is True
    assert created["config"].port == 5050
    assert created["config"].ws_port == 5051
    assert "Serving" in result.output and "http://127.0.0.1:5050" in result.output


def test_cli_reads_config_file(monkeypatch, tmp_path):
    config_file = tmp_path / "staticforge.yaml"
    config_file.write_text(
        "content_dir: content\n"
        "template_dir: templates\n"
        "output_dir: build\n"
        "site_name: public\n"
        "base_url: https://example.com\n",
        encoding="utf-8",
    )
    seen = {}

    def fake_build_site(config):
        seen["config"] = config
        return fake_result(config)

    monkeypatch.setattr("staticforge.build.build_site", fake_build_site)
    result = CliRunner().invoke(cli, ["-f", str(config_file), "--port", "9000"])

    assert result.exit_code == 0, result.output
    config = seen["config"]
    assert config.base_url == "https://example.com"
    assert config.port == 9000
    assert config.content_dir == tmp_path.resolve() / "content"


def test_cli_writes_log_file(monkeypatch, tmp_path):
    monkeypatch.setattr("staticforge.build.build_site", fake_result)
    log_file = tmp_path / "logs" / "build.log"
    result = CliRunner().invoke(cli, base_args(tmp_path) + ["--log-file", str(log_file)])

    assert result.exit_code == 0, result.output
    for handler in logging.getLogger("staticforge").handlers:
        handler.flush()
    assert "Created starter content" in log_file.read_text(encoding="utf-8")


def test_configure_logging_replaces_handlers(tmp_path):
    logger = logging.getLogger("staticforge")
    configure_logging()
    configure_logging(verbose=True, log_file=tmp_path / "a.log")
    ours = [h for h in logger.handlers if getattr(h, "_staticforge", False)]
    assert len(ours) == 2
    configure_logging()
    ours = [h for h in logger.handlers if getattr(h, "_staticforge", False)]
    assert len(ours) == 1
    assert ours[0].level == logging.INFO


def test_cli_rejected_log_file_creates_nothing(monkeypatch, tmp_path):
    monkeypatch.setattr("staticforge.build.build_site", fake_result)
    runner = CliRunner()
    with runner.isolated_filesystem(temp_dir=tmp_path) as work:
        result = runner.invoke(
            cli,
            ["-c", "content", "-t", "templates", "-o", "build", "--log-file", "../escape/x.log"],
        )
        assert result.exit_code == 1
        assert "Invalid configuration:" in result.output
        assert "must not contain '..'" in result.output
        assert not (Path(work).parent / "escape").exists()
        assert not Path("content").exists()


def test_cli_refuses_site_directory_enclosing_content(tmp_path):
    runner = CliRunner()
    with runner.isolated_filesystem(temp_dir=tmp_path):
        Path("content").mkdir()
        Path("content", "index.md").write_text("Keep me", encoding="utf-8")
        result = runner.invoke(cli, ["-c", "content", "-t", "templates", "-o", "build", "-n", "."])
        assert result.exit_code == 1
        assert "must not overlap site_name" in result.output
        assert Path("content", "index.md").read_text(encoding="utf-8") == "Keep me"
