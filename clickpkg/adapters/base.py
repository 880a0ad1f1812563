"""
Adapter base — the contracts between the install engine and the system.

The engine never talks to archives, the service manager or the policy
tooling directly; it goes through these interfaces. Concrete adapters
live next to this module, recording test doubles in ``mock.py``.

Unlike receipt-style adapters, these raise: every failure is a
``ClickError`` subclass that the install saga reacts to.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Self

from pydantic import BaseModel, ConfigDict

from clickpkg.core.models.layout import EngineConfig
from clickpkg.core.models.package import PackageYaml, SecurityDefinitions
from clickpkg.core.models.service import ServiceDescription


# ── Archives ────────────────────────────────────────────────────


class ArchiveHandle(ABC):
    """An opened, verified package archive."""

    @property
    @abstractmethod
    def path(self) -> str:
        """Filesystem path of the archive."""

    @abstractmethod
    def control_member(self, name: str) -> bytes:
        """Read a control member (``manifest``, ``hashes.yaml``, ...)."""

    @abstractmethod
    def meta_member(self, name: str) -> bytes:
        """Read a file from the payload's ``meta/`` directory."""

    @abstractmethod
    def extract_hashes(self, dest_dir: Path) -> None:
        """Write the content hashes into ``dest_dir``."""

    @abstractmethod
    def unpack_into(self, dest_dir: Path) -> None:
        """Unpack the payload into ``dest_dir`` (as the current user)."""

    def close(self) -> None:
        """Release the archive."""

    def __enter__(self) -> Self:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class ArchiveReader(ABC):
    """Opens (and verifies) package archives."""

    @abstractmethod
    def open(self, path: str, allow_unauthenticated: bool = False) -> ArchiveHandle:
        """Open an archive.

        Raises:
            VerificationFailed: if the archive cannot be authenticated
                and ``allow_unauthenticated`` is False.
        """


# ── Service manager ─────────────────────────────────────────────


class ServiceManager(ABC):
    """Local service manager (systemd-like)."""

    @abstractmethod
    def gen_unit_file(self, desc: ServiceDescription) -> str:
        """Render the unit file text for a service."""

    @abstractmethod
    def daemon_reload(self) -> None:
        """Reload unit definitions."""

    @abstractmethod
    def enable(self, name: str) -> None:
        """Enable a unit (works offline)."""

    @abstractmethod
    def disable(self, name: str) -> None:
        """Disable a unit."""

    @abstractmethod
    def start(self, name: str) -> None:
        """Start a unit."""

    @abstractmethod
    def stop(self, name: str, timeout: float) -> None:
        """Stop a unit, waiting up to ``timeout`` seconds.

        Raises:
            ServiceStopTimeout: if the unit is still running afterwards.
            ServiceManagerError: on any other failure.
        """

    @abstractmethod
    def kill(self, name: str, signal: str) -> None:
        """Send ``signal`` (e.g. ``TERM``) to every process of the unit."""


# ── Security ────────────────────────────────────────────────────


class SecurityPolicyGenerator(ABC):
    """Renders confinement policy content; the engine owns the files."""

    @abstractmethod
    def generate_profile(
        self, base_dir: Path, app_name: str, security: SecurityDefinitions,
    ) -> bytes:
        """Render the seccomp profile for one app of a package."""

    @abstractmethod
    def generate_bus_policy(self, bus_name: str) -> bytes:
        """Render a system bus policy allowing ``bus_name`` to be owned."""


class FrameworkPolicy(ABC):
    """Registers the policy extensions a framework ships."""

    @abstractmethod
    def install(self, name: str, base_dir: Path) -> None:
        """Make the framework's policy groups/templates available."""

    @abstractmethod
    def remove(self, name: str, base_dir: Path) -> None:
        """Withdraw the framework's policy groups/templates."""


# ── Dependents ──────────────────────────────────────────────────


class Dependent(BaseModel):
    """An installed package whose policy references another package."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    name: str
    base_dir: Path
    descriptor: PackageYaml


class DependentResolver(ABC):
    """Finds and refreshes packages that depend on a (framework) package."""

    @abstractmethod
    def dependents_of(self, name: str) -> list[Dependent]:
        """Installed packages whose policy references ``name``."""

    @abstractmethod
    def refresh_security(self, name: str, dependents: list[Dependent]) -> None:
        """Regenerate the security policy of every active dependent."""


# ── User interaction ────────────────────────────────────────────


class Interacter(ABC):
    """The person (or frontend) driving an operation."""

    @abstractmethod
    def notify(self, status: str) -> None:
        """Show a progress/status message."""

    @abstractmethod
    def agreed(self, intro: str, license_text: str) -> bool:
        """Ask for agreement to a license; True if accepted."""


# ── Wiring ──────────────────────────────────────────────────────


class InstallContext(BaseModel):
    """Everything an engine operation needs: layout plus collaborators.

    Built once per invocation by the entry point and passed explicitly
    to every engine function.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    config: EngineConfig
    archives: ArchiveReader
    services: ServiceManager
    policy: SecurityPolicyGenerator
    framework_policy: FrameworkPolicy
    dependents: DependentResolver | None = None
    interacter: Interacter
