"""
Engine configuration — where everything lives on disk.

Every generated path is derived from ``root_dir`` plus a root-relative
location. Tests and image builders point ``root_dir`` somewhere else
instead of overriding module globals; the config instance is handed to
every component through the ``InstallContext``.
"""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import BaseModel


class EngineConfig(BaseModel):
    """On-disk layout and behaviour knobs of the install engine."""

    root_dir: Path = Path("/")

    # ── Root-relative locations ──────────────────────────────────
    apps_dir: str = "apps"
    binaries_dir: str = "apps/bin"
    services_dir: str = "etc/systemd/system"
    seccomp_dir: str = "var/lib/snappy/seccomp/profiles"
    bus_policy_dir: str = "etc/dbus-1/system.d"
    hooks_dir: str = "usr/share/click/hooks"
    data_dir: str = "var/lib/apps"
    data_home_glob: str = "home/*/apps"
    udev_rules_dir: str = "etc/udev/rules.d"
    apparmor_policy_dir: str = "usr/share/apparmor/easyprof"
    seccomp_policy_dir: str = "usr/share/seccomp"

    # ── Behaviour ────────────────────────────────────────────────
    kill_wait: float = 5.0              # seconds between TERM and KILL
    launcher: str = "ubuntu-core-launcher"
    helper_name: str = "clickpkg"
    drop_privileges: bool = True
    unpack_user: str = "clickpkg"       # owner of unpacked content when root

    def path(self, relative: str) -> Path:
        """Absolute path of a root-relative location."""
        return self.root_dir / relative

    @property
    def apps_path(self) -> Path:
        return self.path(self.apps_dir)

    @property
    def binaries_path(self) -> Path:
        return self.path(self.binaries_dir)

    @property
    def services_path(self) -> Path:
        return self.path(self.services_dir)

    @property
    def seccomp_path(self) -> Path:
        return self.path(self.seccomp_dir)

    @property
    def bus_policy_path(self) -> Path:
        return self.path(self.bus_policy_dir)

    @property
    def hooks_path(self) -> Path:
        return self.path(self.hooks_dir)

    @property
    def data_path(self) -> Path:
        return self.path(self.data_dir)

    @property
    def udev_rules_path(self) -> Path:
        return self.path(self.udev_rules_dir)

    def data_home_pattern(self) -> str:
        """Glob pattern matching every per-home data root."""
        return str(self.root_dir / self.data_home_glob)

    def package_dir(self, name: str) -> Path:
        return self.apps_path / name

    def version_dir(self, name: str, version: str) -> Path:
        return self.apps_path / name / version

    def strip_root(self, path: str | os.PathLike[str]) -> str:
        """Map a path under ``root_dir`` back to its in-system form.

        ``<root>/apps/foo/1.0`` becomes ``/apps/foo/1.0``. Paths outside
        the root are returned unchanged.
        """
        path = str(path)
        root = str(self.root_dir)
        if root == "/":
            return path
        root = root.rstrip("/")
        if path == root:
            return "/"
        if path.startswith(root + "/"):
            return path[len(root):]
        return path
