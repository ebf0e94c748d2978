"""Workflow source packaging."""

import logging
import zipfile
from pathlib import Path

logger = logging.getLogger(__name__)

# Design-time and local-only artifacts never shipped to the Logic App
EXCLUDED_NAMES = frozenset({"workflow-designtime", "local.settings.json", ".vscode"})


class PackagingError(Exception):
    """Raised when the workflow package cannot be built."""

    pass


def iter_package_files(source_dir: Path) -> list[Path]:
    """Files to include, relative to source_dir, in sorted order."""
    files = []
    for path in sorted(source_dir.rglob("*")):
        relative = path.relative_to(source_dir)
        if any(part in EXCLUDED_NAMES for part in relative.parts):
            continue
        if path.is_file():
            files.append(relative)
    return files


def create_package(source_dir: Path, package_path: Path) -> list[Path]:
    """Zip the workflow source directory.

    Any previous package at package_path is replaced.

    Returns:
        Relative paths of the files written to the archive

    Raises:
        PackagingError: If the source directory is missing or empty, or the
            archive cannot be written
    """
    if not source_dir.is_dir():
        raise PackagingError(f"Workflow source directory not found: {source_dir}")

    files = iter_package_files(source_dir)
    if not files:
        raise PackagingError(f"Workflow source directory is empty: {source_dir}")

    try:
        package_path.parent.mkdir(parents=True, exist_ok=True)
        package_path.unlink(missing_ok=True)
        with zipfile.ZipFile(package_path, "w", compression=zipfile.ZIP_DEFLATED) as archive:
            for relative in files:
                archive.write(source_dir / relative, relative.as_posix())
    except OSError as e:
        raise PackagingError(f"Failed to write package {package_path}: {e}") from e

    logger.debug(f"Packaged {len(files)} files into {package_path}")
    return files
