"""
Engine errors — every failure the install engine surfaces to callers.

All errors derive from ``ClickError`` so entry points can catch the
whole family in one place. Errors that describe an external process
failing carry the exit code of that process.
"""

from __future__ import annotations


class ClickError(Exception):
    """Base class for all engine errors."""


class VerificationFailed(ClickError):
    """The package archive could not be verified."""


class ParseError(ClickError):
    """A package descriptor or manifest is malformed."""


class ManifestNotFound(ClickError):
    """An installed version directory has no (or more than one) compat manifest."""


class WhitelistViolation(ClickError):
    """A declared binary/service field contains illegal characters."""

    def __init__(self, field: str, content: str, whitelist: str):
        self.field = field
        self.content = content
        self.whitelist = whitelist
        super().__init__(
            f"services/binaries description field '{field}' contains "
            f"illegal {content!r} (legal: '{whitelist}')"
        )


class HookExecutionFailed(ClickError):
    """A system hook command exited non-zero."""

    def __init__(self, command: str, exit_code: int):
        self.command = command
        self.exit_code = exit_code
        super().__init__(f"hook command {command!r} failed with exit code {exit_code}")


class UnpackFailed(ClickError):
    """The privileged unpack helper exited non-zero."""

    def __init__(self, archive: str, dest: str, exit_code: int):
        self.archive = archive
        self.dest = dest
        self.exit_code = exit_code
        super().__init__(
            f"unpack of {archive} into {dest} failed with exit code {exit_code}"
        )


class NotActiveError(ClickError):
    """An operation that requires the active version got a non-active one."""


class DataCopyFailed(ClickError):
    """Copying a data directory forward to the new version failed."""

    def __init__(self, old_path: str, new_path: str, exit_code: int):
        self.old_path = old_path
        self.new_path = new_path
        self.exit_code = exit_code
        super().__init__(
            f"data copy from {old_path} to {new_path} failed with exit code {exit_code}"
        )


class PrivilegeHelperNotFound(ClickError):
    """The privilege-dropping unpack helper is not on PATH."""


class NameClash(ClickError):
    """Two declared binaries/services map to the same generated name."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"binary and service both called {name!r}")


class OEMInstallNotAllowed(ClickError):
    """An OEM package was installed without the AllowOEM flag."""


class AlreadyInstalled(ClickError):
    """The exact package version is already installed."""


class LicenseNotAccepted(ClickError):
    """The package requires an explicit license agreement that was refused."""


class MissingFramework(ClickError):
    """A framework the package declares is not installed and active."""

    def __init__(self, frameworks: list[str]):
        self.frameworks = frameworks
        super().__init__(f"missing framework(s): {', '.join(frameworks)}")


class ServiceManagerError(ClickError):
    """The service manager rejected a request."""


class ServiceStopTimeout(ServiceManagerError):
    """A service did not stop within its timeout."""
