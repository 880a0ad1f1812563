"""
systemctl service manager — drives systemd through its CLI.

Unit files are rendered here; everything else shells out to
``systemctl`` via the shared runner. When the engine works on an
alternative root (image building), ``enable``/``disable`` use
``systemctl --root`` and only touch symlinks.
"""

from __future__ import annotations

import logging
import time
from pathlib import Path

from clickpkg.adapters.base import ServiceManager
from clickpkg.adapters.shell.runner import run_command
from clickpkg.core.errors import ServiceManagerError, ServiceStopTimeout
from clickpkg.core.models.service import ServiceDescription

logger = logging.getLogger(__name__)

# default when a package does not declare stop-timeout
DEFAULT_STOP_TIMEOUT = 30
_POLL_INTERVAL = 0.25

FRAMEWORKS_TARGET = "clickpkg.frameworks.target"
FRAMEWORKS_PRE_TARGET = "clickpkg.frameworks-pre.target"
SERVICES_TARGET = "multi-user.target"


def render_unit_file(desc: ServiceDescription, launcher: str) -> str:
    """Render the systemd unit text for one package service."""
    if desc.is_framework:
        ordering = (
            f"Before={FRAMEWORKS_TARGET}\n"
            f"After={FRAMEWORKS_PRE_TARGET}\n"
            f"Requires={FRAMEWORKS_PRE_TARGET}\n"
        )
    else:
        ordering = (
            f"After={FRAMEWORKS_TARGET}\n"
            f"Requires={FRAMEWORKS_TARGET}\n"
        )

    lines = [
        "[Unit]",
        f"Description={desc.description}",
        ordering.rstrip("\n"),
        "X-Clickpkg=yes",
        "",
        "[Service]",
        f"ExecStart={launcher} {desc.udev_app_name} {desc.aa_profile} "
        f"{desc.app_path}/{desc.start}",
        "Restart=on-failure",
        f"WorkingDirectory={desc.app_path}/",
        f'Environment="SNAP_APP={desc.app_name}_{desc.service_name}_{desc.version}" '
        f'"TMPDIR=/tmp/snaps/{desc.app_name}/{desc.version}/tmp" '
        f'"SNAP_APP_PATH={desc.app_path}/" '
        f'"SNAP_APP_DATA_PATH={desc.data_path}/" '
        f'"SNAP_APP_USER_DATA_PATH=%h/{desc.user_data_path}/"',
    ]
    if desc.stop:
        lines.append(
            f"ExecStop={launcher} {desc.udev_app_name} {desc.aa_profile} "
            f"{desc.app_path}/{desc.stop}"
        )
    if desc.poststop:
        lines.append(
            f"ExecStopPost={launcher} {desc.udev_app_name} {desc.aa_profile} "
            f"{desc.app_path}/{desc.poststop}"
        )
    if desc.stop_timeout:
        lines.append(f"TimeoutStopSec={desc.stop_timeout}")
    if desc.bus_name:
        lines.append(f"BusName={desc.bus_name}")
        lines.append("Type=dbus")

    target = FRAMEWORKS_TARGET if desc.is_framework else SERVICES_TARGET
    lines += ["", "[Install]", f"WantedBy={target}", ""]
    return "\n".join(lines)


class SystemctlServiceManager(ServiceManager):
    """ServiceManager backed by ``systemctl``."""

    def __init__(self, root_dir: Path = Path("/"), launcher: str = "ubuntu-core-launcher"):
        self.root_dir = Path(root_dir)
        self.launcher = launcher

    @property
    def _offline(self) -> bool:
        return self.root_dir != Path("/")

    def _systemctl(self, *args: str, timeout: float | None = 30) -> dict:
        cmd = ["systemctl"]
        if self._offline:
            cmd.append(f"--root={self.root_dir}")
        cmd.extend(args)
        result = run_command(cmd, timeout=timeout)
        if result.get("timed_out") and args[0] == "stop":
            raise ServiceStopTimeout(f"{args[-1]} did not stop within {timeout}s")
        if not result["ok"]:
            stderr = result.get("stderr", "").strip()
            raise ServiceManagerError(
                f"{' '.join(cmd)} failed: {stderr or result.get('error', 'unknown error')}"
            )
        return result

    def gen_unit_file(self, desc: ServiceDescription) -> str:
        return render_unit_file(desc, self.launcher)

    def daemon_reload(self) -> None:
        if self._offline:
            logger.debug("Skipping daemon-reload for offline root %s", self.root_dir)
            return
        self._systemctl("daemon-reload")

    def enable(self, name: str) -> None:
        self._systemctl("enable", name)

    def disable(self, name: str) -> None:
        self._systemctl("disable", name)

    def start(self, name: str) -> None:
        if self._offline:
            logger.debug("Not starting %s on offline root", name)
            return
        self._systemctl("start", name)

    def stop(self, name: str, timeout: float) -> None:
        if self._offline:
            logger.debug("Not stopping %s on offline root", name)
            return
        timeout = timeout or DEFAULT_STOP_TIMEOUT
        self._systemctl("stop", name, timeout=timeout)

        deadline = time.monotonic() + timeout
        while True:
            if self.active_state(name) in ("inactive", "failed", "unknown"):
                return
            if time.monotonic() >= deadline:
                raise ServiceStopTimeout(f"{name} did not stop within {timeout}s")
            time.sleep(_POLL_INTERVAL)

    def kill(self, name: str, signal: str) -> None:
        if self._offline:
            return
        self._systemctl("kill", name, "-s", signal)

    def active_state(self, name: str) -> str:
        """Current ``ActiveState`` of a unit (``unknown`` if unreadable)."""
        result = run_command(
            ["systemctl", "show", name, "--property=ActiveState"], timeout=5,
        )
        if not result["ok"]:
            return "unknown"
        _, _, value = result["stdout"].strip().partition("=")
        return value or "unknown"
