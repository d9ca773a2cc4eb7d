"""Command-line interface for staticforge.

The generator is driven by a single command::

    staticforge -c content -t templates -o build -n public [-s serve] [-w]

Content is compiled with the templates into the build directory, which
then becomes the site directory named by ``--new``. With ``--serve`` the
site is copied into the serve directory and served locally; ``--watch``
adds rebuild-on-change and browser live reload.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

import click

from . import __version__
from .config import SiteConfig, load_config
from .errors import BuildError, ConfigError

logger = logging.getLogger("staticforge")

# Starter content and layouts copied into missing directories
_SCAFFOLD_DIR = Path(__file__).parent / "scaffold"

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class _ClickHandler(logging.Handler):
    """Logging handler that writes through click so output respects CliRunner and colours."""

    COLORS = {logging.WARNING: "yellow", logging.ERROR: "red", logging.CRITICAL: "red"}

    def emit(self, record: logging.LogRecord) -> None:
        try:
            message = self.format(record)
            color = self.COLORS.get(record.levelno)
            click.echo(
                click.style(message, fg=color) if color else message,
                err=record.levelno >= logging.WARNING,
            )
        except Exception:
            self.handleError(record)


def configure_logging(verbose: bool = False, log_file: Path | None = None) -> None:
    """Install console (and optional file) handlers on the package logger.

    Handlers from a previous call are replaced, never duplicated.
    """
    for handler in list(logger.handlers):
        if getattr(handler, "_staticforge", False):
            logger.removeHandler(handler)
            handler.close()

    console = _ClickHandler()
    console.setFormatter(logging.Formatter("%(message)s"))
    console.setLevel(logging.DEBUG if verbose else logging.INFO)
    console._staticforge = True
    logger.addHandler(console)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        file_handler.setLevel(logging.DEBUG)
        file_handler._staticforge = True
        logger.addHandler(file_handler)

    logger.setLevel(logging.DEBUG)
    logger.propagate = False


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(version=__version__, prog_name="staticforge")
@click.option(
    "-n",
    "--new",
    "site_name",
    metavar="DIR",
    help="Directory the finished site is written to (default: public).",
)
@click.option(
    "-c",
    "--content",
    "content_dir",
    type=click.Path(path_type=Path, file_okay=False),
    help="Directory with Markdown/HTML content.",
)
@click.option(
    "-t",
    "--template",
    "template_dir",
    type=click.Path(path_type=Path, file_okay=False),
    help="Directory with layout templates and theme assets.",
)
@click.option(
    "-o",
    "--output",
    "output_dir",
    type=click.Path(path_type=Path, file_okay=False),
    help="Build directory pages are compiled into.",
)
@click.option(
    "-s",
    "--serve",
    "serve_dir",
    type=click.Path(path_type=Path, file_okay=False),
    help="Copy the site here and serve it locally.",
)
@click.option(
    "-f",
    "--config",
    "config_file",
    type=click.Path(path_type=Path, dir_okay=False, exists=True),
    help="YAML configuration file; command-line options override it.",
)
@click.option("-w", "--watch", is_flag=True, help="Rebuild and live reload on changes.")
@click.option("--drafts", is_flag=True, help="Include draft content.")
@click.option("--base-url", help="Absolute site URL used in permalinks and feeds.")
@click.option("--port", type=int, help="Port for the development server (default: 8000).")
@click.option("--ws-port", type=int, help="Port for the live reload websocket server.")
@click.option("--no-minify", is_flag=True, help="Write HTML, CSS and JS unminified.")
@click.option("-v", "--verbose", is_flag=True, help="Show debug output.")
@click.option(
    "--log-file",
    type=click.Path(path_type=Path, dir_okay=False),
    help="Also write a detailed log to this file.",
)
def cli(
    site_name: str | None,
    content_dir: Path | None,
    template_dir: Path | None,
    output_dir: Path | None,
    serve_dir: Path | None,
    config_file: Path | None,
    watch: bool,
    drafts: bool,
    base_url: str | None,
    port: int | None,
    ws_port: int | None,
    no_minify: bool,
    verbose: bool,
    log_file: Path | None,
):
    """staticforge static site generator."""
    if config_file is None:
        missing = [
            flag
            for flag, value in (
                ("--content", content_dir),
                ("--template", template_dir),
                ("--output", output_dir),
            )
            if value is None
        ]
        if missing:
            raise click.UsageError(
                f"Missing option(s) {', '.join(missing)} (or pass --config)."
            )

    try:
        config = load_config(config_file) if config_file else SiteConfig()
        config = config.with_overrides(
            site_name=site_name,
            content_dir=content_dir,
            template_dir=template_dir,
            output_dir=output_dir,
            serve_dir=serve_dir,
            base_url=base_url,
            port=port,
            ws_port=ws_port,
            include_drafts=True if drafts else None,
            minify=False if no_minify else None,
            log_file=log_file,
        )
        config.validate()
    except ConfigError as exc:
        click.echo(click.style("Invalid configuration:", fg="red", bold=True), err=True)
        click.echo(click.style(f"  {exc}", fg="white"), err=True)
        raise SystemExit(1) from None

    configure_logging(verbose, config.log_file)
    _print_banner()
    _scaffold_missing(config)

    from .build import build_site

    try:
        result = build_site(config)
    except BuildError as exc:
        _report_build_error(exc)
        raise SystemExit(1) from None

    click.echo(
        f"Built {len(result.pages)} pages, {len(result.feeds)} site files and "
        f"{len(result.assets)} assets into {result.site_dir}"
    )

    if config.serve_dir is not None or watch:
        from .server import DevServer

        server = DevServer(config, watch=watch)
        click.echo(f"Serving {server.serve_dir} at {server.url} (Ctrl+C to stop)")
        server.start()


def _print_banner() -> None:
    click.echo(click.style(f"staticforge {__version__}", fg="cyan", bold=True))


def _report_build_error(exc: BuildError) -> None:
    """Display a build failure with the offending file."""
    try:
        shown = exc.source_path.resolve().relative_to(Path.cwd())
    except ValueError:
        shown = exc.source_path
    click.echo(click.style("Build failed:", fg="red", bold=True), err=True)
    click.echo(click.style(f"  File: {shown}", fg="yellow"), err=True)
    click.echo(click.style(f"  Error: {exc.message}", fg="white"), err=True)


def _scaffold_missing(config: SiteConfig) -> None:
    """Create starter content and layouts for directories that do not exist yet."""
    for name, target in (("content", config.content_dir), ("templates", config.template_dir)):
        if target.exists() and any(target.iterdir()):
            continue
        _copy_scaffold(_SCAFFOLD_DIR / name, target)
        logger.info("Created starter %s in %s", name, target)


def _copy_scaffold(source: Path, root: Path) -> None:
    for src_path in source.rglob("*"):
        if src_path.is_dir():
            continue
        dest_path = root / src_path.relative_to(source)
        dest_path.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(src_path, dest_path)


def main():
    """Entry point for the CLI application."""
    cli()
