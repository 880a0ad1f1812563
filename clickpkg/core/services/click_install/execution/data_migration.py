"""
L4 Execution — Versioned data directories.

Every version of a package owns one system data dir plus one data dir
per home that has used it:

    <root>/home/*/apps/<qualified>/<version>
    <root>/var/lib/apps/<qualified>/<version>

Switching versions copies the old data forward, but never onto a dir
that already exists: going back to a version that has run before keeps
the data it had.
"""

from __future__ import annotations

import glob
import logging
import os
import shutil
from pathlib import Path

from clickpkg.adapters.shell.runner import run_command
from clickpkg.core.errors import DataCopyFailed
from clickpkg.core.models.layout import EngineConfig

logger = logging.getLogger(__name__)


def snap_data_dirs(config: EngineConfig, qualified: str, version: str) -> list[Path]:
    """Data dirs of one version, homes first, then the system dir.

    The system dir is always listed, whether it exists or not.
    """
    pattern = os.path.join(config.data_home_pattern(), qualified, version)
    dirs = [Path(p) for p in sorted(glob.glob(pattern))]
    dirs.append(config.data_path / qualified / version)
    return dirs


def copy_snap_data_directory(old_path: Path, new_path: Path) -> bool:
    """Copy ``old_path`` to ``new_path`` preserving attributes.

    Returns:
        True if a copy was made; False if there was nothing to copy or
        ``new_path`` already exists.

    Raises:
        DataCopyFailed: if ``cp`` fails.
    """
    if not old_path.exists() or os.path.lexists(new_path):
        return False

    result = run_command(["cp", "-a", str(old_path), str(new_path)])
    if not result["ok"]:
        raise DataCopyFailed(str(old_path), str(new_path), result["returncode"])
    logger.debug("Copied data %s → %s", old_path, new_path)
    return True


def copy_snap_data(
    config: EngineConfig,
    qualified: str,
    old_version: str,
    new_version: str,
    created: list[Path] | None = None,
) -> list[Path]:
    """Copy every data dir of ``old_version`` to ``new_version``.

    Args:
        created: List to record the new dirs in. A dir is recorded
            before its copy starts, so a half-finished copy is listed too.

    Returns:
        The data dirs created by this call.
    """
    if created is None:
        created = []
    for old_dir in snap_data_dirs(config, qualified, old_version):
        new_dir = old_dir.parent / new_version
        if not old_dir.exists() or os.path.lexists(new_dir):
            continue
        created.append(new_dir)
        copy_snap_data_directory(old_dir, new_dir)
    return created


def create_system_data_dir(config: EngineConfig, qualified: str, version: str) -> Path | None:
    """Create the system data dir of a version.

    Returns:
        The dir if this call created it, None if it already existed.
    """
    data_dir = config.data_path / qualified / version
    if data_dir.is_dir():
        return None
    data_dir.mkdir(parents=True, exist_ok=True)
    return data_dir


def remove_data_dirs(dirs: list[Path]) -> None:
    """Remove the given data dirs and, if empty now, their parents."""
    for data_dir in dirs:
        try:
            shutil.rmtree(data_dir)
        except FileNotFoundError:
            pass
        try:
            data_dir.parent.rmdir()
        except OSError:
            # other versions still have data
            pass


def remove_snap_data(config: EngineConfig, qualified: str, version: str) -> None:
    """Remove every data dir of one version."""
    remove_data_dirs(snap_data_dirs(config, qualified, version))
