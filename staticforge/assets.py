"""Static asset pipeline for staticforge.

Layout directories often ship scripts, stylesheets and icons next to the
``*.html`` layouts, and content directories hold images next to the
pages that use them. The pipeline copies both into the build directory,
preserving relative paths, and lets the processor registry minify or
optimize them on the way.
"""

from __future__ import annotations

import logging
from pathlib import Path

from .asset_processors import AssetProcessorRegistry, create_default_registry
from .utils import is_content_file, is_hidden, is_html

logger = logging.getLogger(__name__)


class AssetPipeline:
    """Copies and processes static assets for the site.

    Attributes:
        template_dir: Directory holding layouts and theme assets.
        content_dir: Directory holding page sources and their media.
        output_dir: Directory where processed assets are written.
        processor_registry: Registry of asset processors.
    """

    def __init__(
        self,
        template_dir: Path,
        content_dir: Path,
        output_dir: Path,
        processor_registry: AssetProcessorRegistry | None = None,
        minify: bool = True,
    ):
        self.template_dir = template_dir
        self.content_dir = content_dir
        self.output_dir = output_dir
        self.processor_registry = processor_registry or create_default_registry(minify)

    def run(self) -> list[Path]:
        """Process every asset.

        Content assets are processed after theme assets, so a content file
        wins when both directories hold the same relative path.

        Returns:
            Destination paths that were written.
        """
        written: list[Path] = []
        written.extend(self._copy_tree(self.template_dir, skip=is_html))
        written.extend(self._copy_tree(self.content_dir, skip=is_content_file))
        logger.debug("Processed %d assets", len(written))
        return written

    def _copy_tree(self, root: Path, skip) -> list[Path]:
        if not root.exists():
            return []
        written: list[Path] = []
        for item in sorted(root.rglob("*")):
            if item.is_dir():
                continue
            rel = item.relative_to(root)
            if is_hidden(rel) or skip(item):
                continue
            dest = self.output_dir / rel
            if self.processor_registry.process(item, dest):
                written.append(dest)
        return written
