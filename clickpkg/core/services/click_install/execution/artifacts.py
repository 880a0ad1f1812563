"""
L4 Execution — Generated artifacts of an active version.

For every app a package declares, activation writes:

    seccomp profile   <seccomp dir>/<qualified>_<app>_<version>      0644
    binary wrapper    <binaries dir>/<name>.<binary>                 0755
    service unit      <services dir>/<name>_<svc>_<version>.service  0644
    bus policy        <bus dir>/<name>_<svc>_<version>.conf          0644
                      (framework services with a bus name only)

Writes are idempotent and removal treats "already gone" as success.
Each add/remove fans out over the apps and stops at the first failure.
"""

from __future__ import annotations

import logging
import time
from pathlib import Path

from clickpkg.adapters.base import InstallContext, SecurityPolicyGenerator
from clickpkg.core.errors import ServiceManagerError, ServiceStopTimeout
from clickpkg.core.models.layout import EngineConfig
from clickpkg.core.models.package import Binary, PackageYaml, Service
from clickpkg.core.models.service import ServiceDescription
from clickpkg.core.services.click_install.domain.naming import (
    binary_file_name,
    bus_policy_file_name,
    security_profile_name,
    service_file_name,
)
from clickpkg.core.services.click_install.domain.templates import render_binary_wrapper
from clickpkg.core.services.click_install.domain.whitelist import (
    verify_binary,
    verify_service,
)

logger = logging.getLogger(__name__)

BINARY_MODE = 0o755
FILE_MODE = 0o644


def write_file(path: Path, content: str | bytes, mode: int) -> None:
    """Write ``content`` to ``path`` with ``mode``, creating parent dirs."""
    path.parent.mkdir(parents=True, exist_ok=True)
    data = content.encode("utf-8") if isinstance(content, str) else content
    path.write_bytes(data)
    path.chmod(mode)


def remove_file(path: Path) -> bool:
    """Remove ``path``; False if it was already absent."""
    try:
        path.unlink()
    except FileNotFoundError:
        return False
    return True


# ── Data paths (as seen from inside the system) ─────────────────


def system_data_path(config: EngineConfig, m: PackageYaml, origin: str) -> str:
    return config.strip_root(config.data_path / m.qualified_name(origin) / m.version)


def user_data_path(config: EngineConfig, m: PackageYaml, origin: str) -> str:
    """Per-user data dir relative to ``$HOME`` (``apps/<qualified>/<version>``)."""
    home_rel = Path(config.data_home_glob)
    # "home/*/apps" → "apps"
    rel = Path(*home_rel.parts[2:]) if len(home_rel.parts) > 2 else Path(home_rel.name)
    return str(rel / m.qualified_name(origin) / m.version)


# ── Security policy ─────────────────────────────────────────────


def add_security_policy(
    config: EngineConfig,
    policy: SecurityPolicyGenerator,
    m: PackageYaml,
    basedir: Path,
    origin: str,
) -> None:
    """Generate the seccomp profile of every service and binary."""
    for app in [*m.services, *m.binaries]:
        profile = security_profile_name(m, app.name, origin)
        content = policy.generate_profile(basedir, app.name, app)
        write_file(config.seccomp_path / profile, content, FILE_MODE)
        logger.debug("Wrote security profile %s", profile)


def remove_security_policy(config: EngineConfig, m: PackageYaml, origin: str) -> None:
    for app in [*m.services, *m.binaries]:
        remove_file(config.seccomp_path / security_profile_name(m, app.name, origin))


# ── Binaries ────────────────────────────────────────────────────


def binary_wrapper_path(config: EngineConfig, m: PackageYaml, binary: Binary) -> Path:
    return config.binaries_path / binary_file_name(m, binary)


def add_package_binaries(config: EngineConfig, m: PackageYaml, basedir: Path, origin: str) -> None:
    """Write a launcher wrapper for every declared binary."""
    config.binaries_path.mkdir(parents=True, exist_ok=True)
    real_basedir = config.strip_root(basedir)

    for binary in m.binaries:
        verify_binary(binary)
        content = render_binary_wrapper(
            name=m.name,
            origin=origin,
            qualified=m.qualified_name(origin),
            version=m.version,
            target=config.strip_root(Path(basedir) / binary.command),
            path=real_basedir,
            profile=security_profile_name(m, binary.name, origin),
            launcher=config.launcher,
            data_path=system_data_path(config, m, origin),
            user_data_path=user_data_path(config, m, origin),
        )
        write_file(binary_wrapper_path(config, m, binary), content, BINARY_MODE)


def remove_package_binaries(config: EngineConfig, m: PackageYaml) -> None:
    for binary in m.binaries:
        remove_file(binary_wrapper_path(config, m, binary))


# ── Services ────────────────────────────────────────────────────


def service_description(
    config: EngineConfig, m: PackageYaml, service: Service, basedir: Path, origin: str,
) -> ServiceDescription:
    return ServiceDescription(
        app_name=m.name,
        service_name=service.name,
        version=m.version,
        description=service.description,
        app_path=config.strip_root(basedir),
        start=service.start,
        stop=service.stop,
        poststop=service.poststop,
        stop_timeout=service.stop_timeout,
        aa_profile=security_profile_name(m, service.name, origin),
        is_framework=m.is_framework,
        bus_name=service.bus_name,
        udev_app_name=m.qualified_name(origin),
        data_path=system_data_path(config, m, origin),
        user_data_path=user_data_path(config, m, origin),
    )


def add_package_services(
    ctx: InstallContext,
    m: PackageYaml,
    basedir: Path,
    origin: str,
    inhibit_hooks: bool,
) -> None:
    """Write, enable and (unless inhibited) start every declared service.

    ``enable`` only sets up symlinks, so it runs even when hooks are
    inhibited; reload and start need a running service manager.
    """
    config = ctx.config
    for service in m.services:
        verify_service(service)
        desc = service_description(config, m, service, basedir, origin)
        unit = service_file_name(m, service)
        write_file(config.services_path / unit, ctx.services.gen_unit_file(desc), FILE_MODE)

        if m.is_framework and service.bus_name:
            content = ctx.policy.generate_bus_policy(service.bus_name)
            write_file(config.bus_policy_path / bus_policy_file_name(m, service), content, FILE_MODE)

        if not inhibit_hooks:
            ctx.services.daemon_reload()
        ctx.services.enable(unit)
        if not inhibit_hooks:
            ctx.services.start(unit)
        logger.info("Service %s enabled", unit)


def stop_service(ctx: InstallContext, unit: str, timeout: float) -> None:
    """Stop a unit, escalating to TERM then KILL if it refuses.

    Raises:
        ServiceManagerError: for failures other than a stop timeout.
    """
    try:
        ctx.services.stop(unit, timeout)
    except ServiceStopTimeout:
        ctx.interacter.notify(f"{unit} refused to stop, killing.")
        _kill_quietly(ctx, unit, "TERM")
        time.sleep(ctx.config.kill_wait)
        _kill_quietly(ctx, unit, "KILL")


def _kill_quietly(ctx: InstallContext, unit: str, signal: str) -> None:
    # nothing else to try if kill fails too
    try:
        ctx.services.kill(unit, signal)
    except ServiceManagerError as e:
        logger.warning("kill -%s %s failed: %s", signal, unit, e)


def remove_package_services(ctx: InstallContext, m: PackageYaml) -> None:
    """Disable, stop and delete every declared service."""
    config = ctx.config
    for service in m.services:
        unit = service_file_name(m, service)
        ctx.services.disable(unit)
        stop_service(ctx, unit, service.stop_timeout)

        for path, what in (
            (config.services_path / unit, "service file"),
            (config.bus_policy_path / bus_policy_file_name(m, service), "bus policy file"),
        ):
            try:
                remove_file(path)
            except OSError as e:
                logger.warning("Failed to remove %s for %s: %s", what, unit, e)

    if m.services:
        ctx.services.daemon_reload()
