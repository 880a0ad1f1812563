"""
L3 Detection — Which versions are installed and which one is active.

"Active" is defined only by the ``current`` symlink in a package dir:
no symlink, or a dangling one, means no version is active.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

from clickpkg.core.models.layout import EngineConfig
from clickpkg.core.services.click_install.detection.manifests import PACKAGE_YAML

logger = logging.getLogger(__name__)

CURRENT = "current"


def current_symlink(package_dir: str | Path) -> Path:
    return Path(package_dir) / CURRENT


def current_active_dir(package_dir: str | Path) -> Path | None:
    """Resolved version dir ``current`` points at, or None."""
    link = current_symlink(package_dir)
    if not link.is_symlink():
        return None
    target = Path(os.path.realpath(link))
    if not target.is_dir():
        logger.debug("Dangling %s → %s", link, os.readlink(link))
        return None
    return target


def is_active(basedir: str | Path) -> bool:
    """True if ``basedir`` is the active version of its package."""
    active = current_active_dir(Path(basedir).parent)
    return active is not None and active == Path(os.path.realpath(basedir))


def installed_versions(package_dir: str | Path) -> list[Path]:
    """Version dirs of one package (those holding a descriptor)."""
    package_dir = Path(package_dir)
    if not package_dir.is_dir():
        return []
    return sorted(
        p for p in package_dir.iterdir()
        if p.name != CURRENT and not p.is_symlink() and (p / PACKAGE_YAML).is_file()
    )


def list_installed(config: EngineConfig) -> list[dict[str, Any]]:
    """Every installed version under the apps dir.

    Returns:
        ``[{"name", "version", "path", "active"}]`` sorted by name then
        version directory.
    """
    apps = config.apps_path
    if not apps.is_dir():
        return []

    binaries = Path(os.path.realpath(config.binaries_path))
    result: list[dict[str, Any]] = []
    for package_dir in sorted(apps.iterdir()):
        if not package_dir.is_dir() or Path(os.path.realpath(package_dir)) == binaries:
            continue
        active = current_active_dir(package_dir)
        for version_dir in installed_versions(package_dir):
            result.append({
                "name": package_dir.name,
                "version": version_dir.name,
                "path": str(version_dir),
                "active": active is not None and active == Path(os.path.realpath(version_dir)),
            })
    return result
