"""
Package descriptor model — the parsed ``meta/package.yaml``.

The descriptor is the rich description of a package: what it is, which
binaries and services it ships, which system hooks it integrates with,
and which security definitions apply to each app. It is parsed fresh
from disk by every operation that needs it and never mutated.
"""

from __future__ import annotations

import os
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from clickpkg.core.errors import NameClash


class PackageType(StrEnum):
    """Kinds of installable packages."""

    APP = "app"
    CORE = "core"
    FRAMEWORK = "framework"
    OEM = "oem"


def _coerce_str(value: Any) -> Any:
    # YAML turns "1.0" into a float; names and versions are always text
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return value


class _Model(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)


# ── Security ────────────────────────────────────────────────────


class SecurityOverride(_Model):
    """Per-app override files for the generated policies."""

    apparmor: str = ""
    seccomp: str = ""


class SecurityPolicy(_Model):
    """Per-app hand-written policy files shipped in the package."""

    apparmor: str = ""
    seccomp: str = ""


class SecurityDefinitions(_Model):
    """Security settings shared by binaries and services."""

    security_template: str = Field("", alias="security-template")
    security_override: SecurityOverride | None = Field(None, alias="security-override")
    security_policy: SecurityPolicy | None = Field(None, alias="security-policy")
    caps: list[str] = Field(default_factory=list)


# ── Apps ────────────────────────────────────────────────────────


class Service(SecurityDefinitions):
    """A long-running service declared under ``services:``."""

    name: str
    description: str = ""
    start: str = ""
    stop: str = ""
    poststop: str = ""
    stop_timeout: int = Field(0, alias="stop-timeout")  # seconds
    bus_name: str = Field("", alias="bus-name")

    @field_validator("name", mode="before")
    @classmethod
    def name_is_text(cls, value: Any) -> Any:
        return _coerce_str(value)


class Binary(SecurityDefinitions):
    """A command declared under ``binaries:``."""

    name: str
    exec_: str = Field("", alias="exec")

    @field_validator("name", mode="before")
    @classmethod
    def name_is_text(cls, value: Any) -> Any:
        return _coerce_str(value)

    @property
    def command(self) -> str:
        """Path of the real executable relative to the package dir."""
        return self.exec_ or self.name


# ── OEM ─────────────────────────────────────────────────────────


class HardwareRule(_Model):
    """udev matchers for one piece of hardware assigned to an app."""

    kernel: str = ""
    subsystem: str = ""
    with_subsystems: str = Field("", alias="with-subsystems")
    with_driver: str = Field("", alias="with-driver")
    with_attrs: list[str] = Field(default_factory=list, alias="with-attrs")
    with_props: list[str] = Field(default_factory=list, alias="with-props")


class HardwareAssign(_Model):
    part_id: str = Field(alias="part-id")
    rules: list[HardwareRule] = Field(default_factory=list)


class Hardware(_Model):
    assign: list[HardwareAssign] = Field(default_factory=list)


class OEM(_Model):
    hardware: Hardware = Field(default_factory=Hardware)


# ── Descriptor ──────────────────────────────────────────────────


class PackageYaml(_Model):
    """The declarative package descriptor.

    ``integration`` maps an app name to its hooks: hook name → source
    file relative to the package directory.
    """

    name: str
    version: str
    vendor: str = ""
    icon: str = ""
    type: PackageType = PackageType.APP
    architectures: list[str] = Field(default_factory=lambda: ["all"])
    frameworks: list[str] = Field(default_factory=list)

    services: list[Service] = Field(default_factory=list)
    binaries: list[Binary] = Field(default_factory=list)
    integration: dict[str, dict[str, str]] = Field(default_factory=dict)

    explicit_license_agreement: bool = Field(False, alias="explicit-license-agreement")
    license_version: str = Field("", alias="license-version")

    oem: OEM | None = None

    @field_validator("name", "version", mode="before")
    @classmethod
    def identity_is_text(cls, value: Any) -> Any:
        return _coerce_str(value)

    @field_validator("integration", mode="before")
    @classmethod
    def none_hooks_are_empty(cls, value: Any) -> Any:
        if isinstance(value, dict):
            return {app: (hooks or {}) for app, hooks in value.items()}
        return value

    @property
    def is_framework(self) -> bool:
        return self.type == PackageType.FRAMEWORK

    def qualified_name(self, origin: str) -> str:
        """``name.origin`` for apps, the bare name for frameworks and OEM."""
        if self.type in (PackageType.FRAMEWORK, PackageType.OEM) or not origin:
            return self.name
        return f"{self.name}.{origin}"

    def check_for_name_clashes(self) -> None:
        """Fail if two apps would generate the same artifact names.

        Binaries and services share the security-profile namespace
        (keyed by the base name of the app), so no two apps may reduce
        to the same base name.

        Raises:
            NameClash: naming the first colliding app.
        """
        seen: set[str] = set()
        for app in [*self.binaries, *self.services]:
            base = os.path.basename(app.name)
            if base in seen:
                raise NameClash(base)
            seen.add(base)
