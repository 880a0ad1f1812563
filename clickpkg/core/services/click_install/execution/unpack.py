"""
L4 Execution — Unpacking an archive into its version dir.

Package content is never unpacked as root. When running as root the
engine re-executes itself (``<helper> internal-unpack ARCHIVE DEST
ROOT``); the helper hands ``DEST`` to the unpack user, drops privileges
and unpacks. The unpack user travels in ``CLICKPKG_UNPACK_USER`` so the
helper does not depend on finding the same config file. Unprivileged callers unpack in-process.
"""

from __future__ import annotations

import json
import logging
import os
import pwd
import stat
from pathlib import Path

from clickpkg.adapters.base import ArchiveHandle
from clickpkg.adapters.shell.runner import run_command
from clickpkg.core.errors import ClickError, PrivilegeHelperNotFound, UnpackFailed
from clickpkg.core.models.layout import EngineConfig
from clickpkg.core.models.package import PackageType
from clickpkg.core.services.click_install.detection.manifests import (
    CLICK_INFO_DIR,
    MANIFEST_SUFFIX,
    parse_click_manifest,
)

logger = logging.getLogger(__name__)

UNPACK_USER_ENV = "CLICKPKG_UNPACK_USER"

_ANY_EXEC = stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH


def find_binary_in_path(name: str, path: str | None = None) -> str | None:
    """First ``name`` on a colon-separated PATH with any exec bit set."""
    if path is None:
        path = os.environ.get("PATH", "")
    for entry in path.split(os.pathsep):
        if not entry:
            continue
        candidate = os.path.join(entry, name)
        try:
            st = os.stat(candidate)
        except OSError:
            continue
        if stat.S_ISREG(st.st_mode) and st.st_mode & _ANY_EXEC:
            return candidate
    return None


def should_drop_privileges(config: EngineConfig) -> bool:
    return config.drop_privileges and os.geteuid() == 0


def unpack_with_drop_privs(config: EngineConfig, archive: ArchiveHandle, dest: Path) -> None:
    """Unpack ``archive`` into ``dest``, through the helper when root.

    Raises:
        PrivilegeHelperNotFound: no helper executable on PATH.
        UnpackFailed: the helper exited non-zero.
    """
    if not should_drop_privileges(config):
        archive.unpack_into(dest)
        return

    helper = find_binary_in_path(config.helper_name)
    if helper is None:
        raise PrivilegeHelperNotFound(f"{config.helper_name} not found on PATH")

    cmd = [helper, "internal-unpack", archive.path, str(dest), str(config.root_dir)]
    logger.info("Unpacking %s via %s", archive.path, helper)
    result = run_command(cmd, inherit_stdio=True, env_overrides={UNPACK_USER_ENV: config.unpack_user})
    if not result["ok"]:
        raise UnpackFailed(archive.path, str(dest), result["returncode"])


def drop_privileges(user: str, dest: Path) -> None:
    """Give ``dest`` to ``user`` and become that user.

    Called by the ``internal-unpack`` helper before touching the archive.
    """
    try:
        pw = pwd.getpwnam(user)
    except KeyError as e:
        raise ClickError(f"unpack user {user!r} does not exist") from e

    os.chown(dest, pw.pw_uid, pw.pw_gid)
    os.setgroups([])
    os.setgid(pw.pw_gid)
    os.setuid(pw.pw_uid)
    logger.debug("Dropped privileges to %s (%d:%d)", user, pw.pw_uid, pw.pw_gid)


def write_compat_manifest(basedir: Path, manifest_data: bytes, origin: str) -> Path:
    """Write the click manifest, origin-qualified, under ``.click/info``.

    Frameworks and OEM packages keep their bare name.

    Returns:
        Path of the written ``<name>.manifest``.
    """
    manifest = parse_click_manifest(manifest_data)
    if origin and manifest.type not in (PackageType.FRAMEWORK, PackageType.OEM):
        manifest.name = f"{manifest.name}.{origin}"

    info_dir = Path(basedir) / CLICK_INFO_DIR
    info_dir.mkdir(parents=True, exist_ok=True)
    path = info_dir / f"{manifest.name}{MANIFEST_SUFFIX}"
    path.write_text(json.dumps(manifest.to_json_dict(), indent=2) + "\n", encoding="utf-8")
    path.chmod(0o644)
    return path
