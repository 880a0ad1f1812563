"""
Framework policy registrar — publishes a framework's policy extensions.

A framework may ship extra policy groups and templates under
``meta/framework-policy/{apparmor,seccomp}/{policygroups,templates}/``.
While the framework is active they are copied into the system policy
directories as ``<framework>_<file>`` so apps can reference them.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

from clickpkg.adapters.base import FrameworkPolicy
from clickpkg.core.models.layout import EngineConfig

logger = logging.getLogger(__name__)

POLICY_KINDS = ("apparmor", "seccomp")
POLICY_SECTIONS = ("policygroups", "templates")


class FrameworkPolicyRegistrar(FrameworkPolicy):
    """Copies framework policy files into the system policy dirs."""

    def __init__(self, config: EngineConfig):
        self.config = config

    def _system_dir(self, kind: str, section: str) -> Path:
        base = self.config.apparmor_policy_dir if kind == "apparmor" else self.config.seccomp_policy_dir
        return self.config.path(base) / section

    def install(self, name: str, base_dir: Path) -> None:
        for kind in POLICY_KINDS:
            for section in POLICY_SECTIONS:
                src_dir = Path(base_dir) / "meta" / "framework-policy" / kind / section
                if not src_dir.is_dir():
                    continue
                dst_dir = self._system_dir(kind, section)
                dst_dir.mkdir(parents=True, exist_ok=True)
                for src in sorted(src_dir.iterdir()):
                    if not src.is_file():
                        continue
                    dst = dst_dir / f"{name}_{src.name}"
                    shutil.copyfile(src, dst)
                    logger.debug("Installed framework policy %s", dst)

    def remove(self, name: str, base_dir: Path) -> None:
        for kind in POLICY_KINDS:
            for section in POLICY_SECTIONS:
                dst_dir = self._system_dir(kind, section)
                if not dst_dir.is_dir():
                    continue
                for path in dst_dir.glob(f"{name}_*"):
                    try:
                        path.unlink()
                    except FileNotFoundError:
                        pass
                    logger.debug("Removed framework policy %s", path)
