"""Persistence of captured artifacts with timestamped file names."""

import logging
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional

from ..capture.errors import ArtifactWriteError

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%Y%m%d%H%M%S"


class ArtifactWriter:
    """Writes screenshots and PDFs into an output directory."""

    def __init__(self, output_dir: Path, clock: Callable[[], datetime] = datetime.now):
        """Initialize writer.

        Args:
            output_dir: Directory for artifacts, created on first write
            clock: Source of the timestamp embedded in file names
        """
        self.output_dir = Path(output_dir)
        self.clock = clock

    def _path_for(self, prefix: str, extension: str) -> Path:
        return self.output_dir / f"{prefix}_{self.clock().strftime(TIMESTAMP_FORMAT)}.{extension}"

    def _write(self, path: Path, data: bytes) -> Path:
        logger.debug(f"Saving {path.name}: size={len(data)}")
        try:
            self.output_dir.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except OSError as e:
            logger.error(f"Failed to save {path}: {e}")
            raise ArtifactWriteError(str(path), e) from e
        logger.info(f"Saved {path}")
        return path

    def write_screenshot(self, data: bytes, name: Optional[str] = None) -> Path:
        """Save JPEG screenshot bytes, returning the written path."""
        path = self.output_dir / name if name else self._path_for("screenshot", "jpg")
        return self._write(path, data)

    def write_pdf(self, data: bytes, name: Optional[str] = None) -> Path:
        """Save PDF bytes, returning the written path."""
        path = self.output_dir / name if name else self._path_for("page", "pdf")
        return self._write(path, data)
