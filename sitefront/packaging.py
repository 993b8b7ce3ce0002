"""Zip archive of the server build output."""

from __future__ import annotations

import logging
import zipfile
from pathlib import Path

from .assets import iter_files

logger = logging.getLogger(__name__)


def write_archive(target: Path, source_dir: Path) -> Path:
    """Write every file under source_dir into a zip at target, keyed relative to source_dir."""
    target.parent.mkdir(parents=True, exist_ok=True)
    count = 0
    with zipfile.ZipFile(target, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        for path in iter_files(source_dir):
            archive.write(path, path.relative_to(source_dir).as_posix())
            count += 1
    logger.info("Packaged %d files from %s into %s", count, source_dir, target)
    return target
