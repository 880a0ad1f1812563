"""
Mock adapters — recording test doubles for every engine collaborator.

Each double keeps a call log and can be told to fail specific calls,
so tests can drive the install saga into any failure branch without a
real service manager, policy toolchain or archive format.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from clickpkg.adapters.base import (
    ArchiveHandle,
    ArchiveReader,
    Dependent,
    DependentResolver,
    FrameworkPolicy,
    Interacter,
    SecurityPolicyGenerator,
    ServiceManager,
)
from clickpkg.core.errors import ClickError, ServiceManagerError, VerificationFailed
from clickpkg.core.models.package import SecurityDefinitions
from clickpkg.core.models.service import ServiceDescription


# ── Archives ────────────────────────────────────────────────────


class MockArchive(ArchiveHandle):
    """In-memory package archive.

    Args:
        manifest: Click manifest dict (stored as the ``manifest`` member).
        files: Payload, relative path → content.
        control: Extra control members.
        authenticated: Whether opening requires ``allow_unauthenticated``.
    """

    def __init__(
        self,
        manifest: dict[str, Any],
        files: dict[str, str | bytes],
        control: dict[str, bytes] | None = None,
        authenticated: bool = True,
    ):
        self._path = ""
        self.files = files
        self.control = {"manifest": json.dumps(manifest).encode(), "hashes.yaml": b"archive: {}\n"}
        self.control.update(control or {})
        self.authenticated = authenticated
        self.closed = False
        self.unpacked_into: list[Path] = []
        self.fail_unpack = False

    @property
    def path(self) -> str:
        return self._path

    def control_member(self, name: str) -> bytes:
        try:
            return self.control[name]
        except KeyError as e:
            raise ClickError(f"no control member {name!r}") from e

    def meta_member(self, name: str) -> bytes:
        content = self.files.get(f"meta/{name}")
        if content is None:
            raise ClickError(f"no meta member {name!r}")
        return content.encode() if isinstance(content, str) else content

    def extract_hashes(self, dest_dir: Path) -> None:
        dest_dir.mkdir(parents=True, exist_ok=True)
        (dest_dir / "content.hash").write_bytes(self.control["hashes.yaml"])

    def unpack_into(self, dest_dir: Path) -> None:
        if self.fail_unpack:
            raise ClickError("mock unpack failure")
        for rel, content in self.files.items():
            target = Path(dest_dir) / rel
            target.parent.mkdir(parents=True, exist_ok=True)
            if isinstance(content, str):
                target.write_text(content, encoding="utf-8")
            else:
                target.write_bytes(content)
        self.unpacked_into.append(Path(dest_dir))

    def close(self) -> None:
        self.closed = True


class MockArchiveReader(ArchiveReader):
    """Serves registered MockArchives by path."""

    def __init__(self):
        self.archives: dict[str, MockArchive] = {}
        self.opened: list[str] = []

    def add(self, path: str, archive: MockArchive) -> MockArchive:
        archive._path = path
        self.archives[path] = archive
        return archive

    def open(self, path: str, allow_unauthenticated: bool = False) -> ArchiveHandle:
        archive = self.archives.get(path)
        if archive is None:
            raise ClickError(f"no such archive: {path}")
        if not archive.authenticated and not allow_unauthenticated:
            raise VerificationFailed(f"{path} is not authenticated")
        self.opened.append(path)
        archive.closed = False
        return archive


# ── Service manager ─────────────────────────────────────────────


class MockServiceManager(ServiceManager):
    """Records service operations and tracks which units are running."""

    def __init__(self):
        self.calls: list[tuple[str, str]] = []
        self.running: set[str] = set()
        self.enabled: set[str] = set()
        self._failures: dict[tuple[str, str | None], Exception] = {}

    def set_failure(self, op: str, name: str | None = None, error: Exception | None = None) -> None:
        """Make ``op`` fail (for ``name``, or for every unit when None)."""
        self._failures[(op, name)] = error or ServiceManagerError(f"mock {op} failure")

    def clear_failures(self) -> None:
        self._failures.clear()

    def _record(self, op: str, name: str = "") -> None:
        self.calls.append((op, name))
        error = self._failures.get((op, name)) or self._failures.get((op, None))
        if error is not None:
            raise error

    def ops(self, op: str) -> list[str]:
        """Unit names passed to ``op``, in call order."""
        return [name for o, name in self.calls if o == op]

    def gen_unit_file(self, desc: ServiceDescription) -> str:
        return (
            "[Unit]\n"
            f"Description={desc.description}\n"
            "[Service]\n"
            f"ExecStart={desc.app_path}/{desc.start}\n"
            f"# profile={desc.aa_profile} framework={desc.is_framework}\n"
        )

    def daemon_reload(self) -> None:
        self._record("daemon-reload")

    def enable(self, name: str) -> None:
        self._record("enable", name)
        self.enabled.add(name)

    def disable(self, name: str) -> None:
        self._record("disable", name)
        self.enabled.discard(name)

    def start(self, name: str) -> None:
        self._record("start", name)
        self.running.add(name)

    def stop(self, name: str, timeout: float) -> None:
        self._record("stop", name)
        self.running.discard(name)

    def kill(self, name: str, signal: str) -> None:
        self._record(f"kill-{signal}", name)
        if signal == "KILL":
            self.running.discard(name)

    def reset(self) -> None:
        self.calls.clear()
        self._failures.clear()


# ── Security ────────────────────────────────────────────────────


class MockPolicyGenerator(SecurityPolicyGenerator):
    """Returns a one-line profile naming the app."""

    def __init__(self):
        self.calls: list[str] = []
        self.fail_for: set[str] = set()

    def generate_profile(
        self, base_dir: Path, app_name: str, security: SecurityDefinitions,
    ) -> bytes:
        self.calls.append(app_name)
        if app_name in self.fail_for:
            raise ClickError(f"mock policy failure for {app_name}")
        template = security.security_template or "default"
        return f"# {app_name} ({template}) from {base_dir}\n".encode()

    def generate_bus_policy(self, bus_name: str) -> bytes:
        return f"<busconfig><allow own=\"{bus_name}\"/></busconfig>\n".encode()


class MockFrameworkPolicy(FrameworkPolicy):
    """Tracks which frameworks have their policy registered."""

    def __init__(self):
        self.calls: list[tuple[str, str]] = []
        self.installed: set[str] = set()
        self.fail_install = False

    def install(self, name: str, base_dir: Path) -> None:
        self.calls.append(("install", name))
        if self.fail_install:
            raise ClickError(f"mock framework policy failure for {name}")
        self.installed.add(name)

    def remove(self, name: str, base_dir: Path) -> None:
        self.calls.append(("remove", name))
        self.installed.discard(name)


# ── Dependents ──────────────────────────────────────────────────


class MockDependentResolver(DependentResolver):
    """Serves a fixed dependent list per package name."""

    def __init__(self, dependents: dict[str, list[Dependent]] | None = None):
        self.dependents = dependents or {}
        self.refreshed: list[str] = []
        self.fail_refresh = False

    def dependents_of(self, name: str) -> list[Dependent]:
        return list(self.dependents.get(name, []))

    def refresh_security(self, name: str, dependents: list[Dependent]) -> None:
        if self.fail_refresh:
            raise ClickError(f"mock refresh failure for {name}")
        self.refreshed.append(name)


# ── User interaction ────────────────────────────────────────────


class MockInteracter(Interacter):
    """Collects notifications and answers license prompts."""

    def __init__(self, agree: bool = True):
        self.agree = agree
        self.messages: list[str] = []
        self.license_prompts: list[str] = []

    def notify(self, status: str) -> None:
        self.messages.append(status)

    def agreed(self, intro: str, license_text: str) -> bool:
        self.license_prompts.append(license_text)
        return self.agree
