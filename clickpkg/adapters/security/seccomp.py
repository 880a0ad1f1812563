"""
seccomp policy generator — renders per-app seccomp profiles.

A profile is the named template followed by one policy group per
declared cap, plus an optional override file shipped in the package.
A package may instead ship a complete hand-written policy
(``security-policy: {seccomp: ...}``), which is used verbatim.

Templates and policy groups live under ``<seccomp_policy_dir>/templates``
and ``<seccomp_policy_dir>/policygroups``; frameworks add theirs with a
``<framework>_`` prefix.
"""

from __future__ import annotations

import logging
from pathlib import Path

from clickpkg.adapters.base import SecurityPolicyGenerator
from clickpkg.core.errors import ClickError
from clickpkg.core.models.layout import EngineConfig
from clickpkg.core.models.package import SecurityDefinitions

logger = logging.getLogger(__name__)

DEFAULT_TEMPLATE = "default"
DEFAULT_CAPS = ["network-client"]

# used when the system ships no "default" template at all
_FALLBACK_DEFAULT = """\
# Minimal syscalls every confined app needs
access
brk
close
exit
exit_group
fstat
mmap
munmap
open
openat
read
rt_sigaction
rt_sigprocmask
write
"""

_BUS_POLICY = """\
<!DOCTYPE busconfig PUBLIC
 "-//freedesktop//DTD D-BUS Bus Configuration 1.0//EN"
 "http://www.freedesktop.org/standards/dbus/1.0/busconfig.dtd">
<busconfig>
  <policy user="root">
    <allow own="{bus_name}"/>
    <allow send_destination="{bus_name}"/>
  </policy>
  <policy context="default">
    <allow send_destination="{bus_name}"/>
  </policy>
</busconfig>
"""


class SeccompPolicyGenerator(SecurityPolicyGenerator):
    """Builds seccomp profiles from system templates and policy groups."""

    def __init__(self, config: EngineConfig):
        self.config = config

    @property
    def policy_root(self) -> Path:
        return self.config.path(self.config.seccomp_policy_dir)

    def _read_template(self, name: str) -> str:
        path = self.policy_root / "templates" / name
        if path.is_file():
            return path.read_text(encoding="utf-8")
        if name == DEFAULT_TEMPLATE:
            logger.debug("No system default seccomp template, using built-in")
            return _FALLBACK_DEFAULT
        raise ClickError(f"unknown seccomp template {name!r}")

    def _read_policy_group(self, cap: str) -> str:
        path = self.policy_root / "policygroups" / cap
        if not path.is_file():
            raise ClickError(f"unknown seccomp policy group {cap!r}")
        return path.read_text(encoding="utf-8")

    def generate_profile(
        self, base_dir: Path, app_name: str, security: SecurityDefinitions,
    ) -> bytes:
        if security.security_policy and security.security_policy.seccomp:
            policy_file = Path(base_dir) / security.security_policy.seccomp
            try:
                return policy_file.read_bytes()
            except OSError as e:
                raise ClickError(f"cannot read seccomp policy {policy_file}: {e}") from e

        template = security.security_template or DEFAULT_TEMPLATE
        caps = security.caps or DEFAULT_CAPS

        parts = [
            f"# seccomp profile for {app_name}",
            f"# template: {template}",
            f"# policy groups: {', '.join(caps)}",
            self._read_template(template),
        ]
        parts.extend(self._read_policy_group(cap) for cap in caps)

        if security.security_override and security.security_override.seccomp:
            override = Path(base_dir) / security.security_override.seccomp
            try:
                parts.append(override.read_text(encoding="utf-8"))
            except OSError as e:
                raise ClickError(f"cannot read seccomp override {override}: {e}") from e

        return ("\n".join(p.rstrip("\n") for p in parts) + "\n").encode("utf-8")

    def generate_bus_policy(self, bus_name: str) -> bytes:
        return _BUS_POLICY.format(bus_name=bus_name).encode("utf-8")
