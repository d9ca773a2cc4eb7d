"""Asset processors for staticforge.

Each processor handles one kind of static file copied into the built
site. The registry asks processors in priority order and uses the first
that accepts a file.

Key classes:
- ImageProcessor: Re-saves images with Pillow's optimizer.
- CSSProcessor: Minifies stylesheets with rcssmin.
- JSProcessor: Minifies JavaScript with rjsmin.
- StaticAssetProcessor: Copies anything else unchanged.
- AssetProcessorRegistry: Registry for managing asset processors.
"""

from __future__ import annotations

import logging
import shutil
from abc import ABC, abstractmethod
from pathlib import Path

from rcssmin import cssmin
from PIL import Image, UnidentifiedImageError
from rjsmin import jsmin

from .protocols import AssetProcessor

logger = logging.getLogger(__name__)


class BaseAssetProcessor(ABC):
    """Base class for asset processors."""

    @property
    @abstractmethod
    def priority(self) -> int:
        """Return processor priority (higher = checked first)."""
        ...

    @abstractmethod
    def can_process(self, path: Path) -> bool:
        """Check if this processor can handle the given asset."""
        ...

    @abstractmethod
    def process(self, source: Path, dest: Path) -> bool:
        """Process an asset file.

        Returns:
            True if processing was successful.
        """
        ...

    def ensure_dest_dir(self, dest: Path) -> None:
        dest.parent.mkdir(parents=True, exist_ok=True)


class ImageProcessor(BaseAssetProcessor):
    """Optimizes PNG, JPEG and WebP images.

    Files Pillow cannot read are copied unchanged.
    """

    SUPPORTED_EXTENSIONS = {".png", ".jpg", ".jpeg", ".webp"}

    @property
    def priority(self) -> int:
        return 100

    def can_process(self, path: Path) -> bool:
        return path.suffix.lower() in self.SUPPORTED_EXTENSIONS

    def process(self, source: Path, dest: Path) -> bool:
        self.ensure_dest_dir(dest)
        try:
            with Image.open(source) as img:
                img.save(dest, optimize=True)
            return True
        except (UnidentifiedImageError, OSError) as exc:
            logger.warning("Could not optimize %s (%s); copying as-is", source, exc)
        shutil.copy2(source, dest)
        return True


class CSSProcessor(BaseAssetProcessor):
    """Minifies CSS files. Already minified ``*.min.css`` files are copied."""

    @property
    def priority(self) -> int:
        return 90

    def can_process(self, path: Path) -> bool:
        return path.suffix.lower() == ".css" and not path.name.endswith(".min.css")

    def process(self, source: Path, dest: Path) -> bool:
        self.ensure_dest_dir(dest)
        css = source.read_text(encoding="utf-8")
        dest.write_text(cssmin(css), encoding="utf-8")
        return True


class JSProcessor(BaseAssetProcessor):
    """Minifies JavaScript files. Already minified ``*.min.js`` files are copied."""

    @property
    def priority(self) -> int:
        return 80

    def can_process(self, path: Path) -> bool:
        return path.suffix.lower() == ".js" and not path.name.endswith(".min.js")

    def process(self, source: Path, dest: Path) -> bool:
        self.ensure_dest_dir(dest)
        script = source.read_text(encoding="utf-8")
        dest.write_text(jsmin(script), encoding="utf-8")
        return True


class StaticAssetProcessor(BaseAssetProcessor):
    """Copies static assets without modification (fonts, SVGs, JSON, ...)."""

    @property
    def priority(self) -> int:
        return 0

    def can_process(self, path: Path) -> bool:
        return True

    def process(self, source: Path, dest: Path) -> bool:
        self.ensure_dest_dir(dest)
        shutil.copy2(source, dest)
        return True


class AssetProcessorRegistry:
    """Registry for managing asset processors, kept sorted by priority."""

    def __init__(self):
        self._processors: list[AssetProcessor] = []

    def register(self, processor: AssetProcessor) -> None:
        self._processors.append(processor)
        self._processors.sort(key=lambda p: p.priority, reverse=True)

    def get_processor(self, path: Path) -> AssetProcessor | None:
        for processor in self._processors:
            if processor.can_process(path):
                return processor
        return None

    def process(self, source: Path, dest: Path) -> bool:
        """Process an asset using the appropriate processor.

        Returns:
            True if processing was successful, False if no processor found.
        """
        processor = self.get_processor(source)
        if processor:
            return processor.process(source, dest)
        return False


def create_default_registry(minify: bool = True) -> AssetProcessorRegistry:
    """Create a registry with default processors.

    Args:
        minify: When False only images are optimized; CSS and JS are copied.
    """
    registry = AssetProcessorRegistry()
    registry.register(ImageProcessor())
    if minify:
        registry.register(CSSProcessor())
        registry.register(JSProcessor())
    registry.register(StaticAssetProcessor())
    return registry
