"""
L5 Orchestration — Installing and removing package versions.

``install_click`` is a saga: each step that changes the system pushes
its inverse onto a ``CompensationStack`` as it goes, and any failure
unwinds the stack newest-first before the error reaches the caller.
The net effect of a failed install is the state before it: the same
version active, the same data dirs, no new version dir.

Step order (and the compensation each one registers):

    1. open + verify archive, preconditions
    2. OEM udev rules                   → restore the previous rule files
    3. create version dir               → remove version dir
    4. unpack, compat manifest, hashes
    5. deactivate old version           → reactivate old version
       copy data forward / create data  → remove the data dirs created
    6. activate new version             → withdraw new version
    7. stop dependents' services        → restart them
       refresh dependents' policy
       restart dependents' services     → stop the ones restarted
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

from clickpkg.adapters.base import ArchiveHandle, InstallContext
from clickpkg.core.errors import (
    AlreadyInstalled,
    ClickError,
    LicenseNotAccepted,
    MissingFramework,
    NotActiveError,
    OEMInstallNotAllowed,
    ParseError,
    ServiceManagerError,
)
from clickpkg.core.models.flags import InstallFlags
from clickpkg.core.models.package import PackageType, PackageYaml
from clickpkg.core.reliability.saga import CompensationStack
from clickpkg.core.services.click_install.detection.active import (
    current_active_dir,
    current_symlink,
    is_active,
)
from clickpkg.core.services.click_install.detection.manifests import (
    origin_from_basedir,
    parse_package_yaml_text,
    read_package_yaml,
)
from clickpkg.core.services.click_install.domain.naming import service_file_name
from clickpkg.core.services.click_install.execution.artifacts import (
    remove_package_binaries,
    remove_package_services,
    remove_security_policy,
)
from clickpkg.core.services.click_install.execution.data_migration import (
    copy_snap_data,
    create_system_data_dir,
    remove_data_dirs,
    remove_snap_data,
)
from clickpkg.core.services.click_install.execution.hooks import remove_click_hooks
from clickpkg.core.services.click_install.execution.oem import (
    install_oem_hardware_udev_rules,
    remove_oem_hardware_udev_rules,
    restore_udev_rules,
    snapshot_udev_rules,
)
from clickpkg.core.services.click_install.execution.unpack import (
    unpack_with_drop_privs,
    write_compat_manifest,
)
from clickpkg.core.services.click_install.orchestration.activation import (
    set_active_click,
    unset_active_click,
)

logger = logging.getLogger(__name__)

LICENSE_MEMBER = "license.txt"


# ── Preconditions ───────────────────────────────────────────────


def _check_license(ctx: InstallContext, archive: ArchiveHandle, m: PackageYaml, basedir: Path) -> None:
    if not m.explicit_license_agreement:
        return

    # agreeing once per license version is enough
    active = current_active_dir(basedir.parent)
    if active is not None:
        try:
            old = read_package_yaml(active)
        except ParseError:
            old = None
        if old is not None and old.explicit_license_agreement and old.license_version == m.license_version:
            return

    try:
        license_text = archive.control_member(LICENSE_MEMBER).decode("utf-8")
    except ClickError as e:
        raise LicenseNotAccepted(f"{m.name} requires a license agreement but ships no license") from e

    intro = f"{m.name} requires that you accept the following license before continuing"
    if not ctx.interacter.agreed(intro, license_text):
        raise LicenseNotAccepted(f"license of {m.name} not accepted")


def can_install(
    ctx: InstallContext,
    archive: ArchiveHandle,
    m: PackageYaml,
    basedir: Path,
    allow_oem: bool,
) -> None:
    """Refuse installs that could not (or must not) succeed.

    Raises:
        OEMInstallNotAllowed, AlreadyInstalled, LicenseNotAccepted,
        MissingFramework, NameClash
    """
    if m.type == PackageType.OEM and not allow_oem:
        raise OEMInstallNotAllowed(f"{m.name} is an OEM package; not installing without allow-oem")

    if basedir.exists():
        raise AlreadyInstalled(f"{basedir.parent.name} {m.version} is already installed")

    _check_license(ctx, archive, m, basedir)

    missing = [
        fw for fw in m.frameworks
        if current_active_dir(ctx.config.package_dir(fw)) is None
    ]
    if missing:
        raise MissingFramework(missing)

    m.check_for_name_clashes()


# ── Compensations ───────────────────────────────────────────────


def _remove_version_dir(basedir: Path) -> None:
    if basedir.exists():
        shutil.rmtree(basedir)
    try:
        basedir.parent.rmdir()
    except OSError:
        pass


def _reactivate_old_version(ctx: InstallContext, old: Path, inhibit_hooks: bool) -> None:
    # an unset that failed part way leaves ``current`` on old with its
    # artifacts half withdrawn; drop the link so everything is republished
    if is_active(old):
        current_symlink(old.parent).unlink()
    set_active_click(ctx, old, inhibit_hooks)


def _withdraw_new_version(
    ctx: InstallContext, basedir: Path, m: PackageYaml, origin: str, inhibit_hooks: bool,
) -> None:
    """Undo a complete or partial activation of the new version."""
    if is_active(basedir):
        unset_active_click(ctx, basedir, inhibit_hooks)
        return

    steps = [
        ("services", remove_package_services, (ctx, m)),
        ("binaries", remove_package_binaries, (ctx.config, m)),
        ("security policy", remove_security_policy, (ctx.config, m, origin)),
        ("hooks", remove_click_hooks, (ctx.config, m, origin, inhibit_hooks)),
    ]
    if m.is_framework:
        steps.append(("framework policy", ctx.framework_policy.remove, (m.name, basedir)))

    for what, fn, args in steps:
        try:
            fn(*args)
        except (ClickError, OSError) as e:
            logger.warning("Removing %s of %s %s failed: %s", what, m.name, m.version, e)


def _start_services(ctx: InstallContext, units: dict[str, int], name: str) -> None:
    for unit in units:
        try:
            ctx.services.start(unit)
        except ServiceManagerError as e:
            ctx.interacter.notify(f"unable to restart {unit} with the old {name}: {e}")


def _stop_services(ctx: InstallContext, units: dict[str, int], name: str) -> None:
    for unit, timeout in units.items():
        try:
            ctx.services.stop(unit, timeout)
        except ServiceManagerError as e:
            ctx.interacter.notify(f"unable to stop {unit} with the old {name}: {e}")


# ── Install ─────────────────────────────────────────────────────


def _refresh_dependents(ctx: InstallContext, saga: CompensationStack, m: PackageYaml) -> None:
    """Restart the active dependents' services around a policy refresh."""
    deps = ctx.dependents.dependents_of(m.name)

    stopped: dict[str, int] = {}
    saga.push("restart stopped dependent services", _start_services, ctx, stopped, m.name)
    for dep in deps:
        if not is_active(dep.base_dir):
            continue
        for service in dep.descriptor.services:
            unit = service_file_name(dep.descriptor, service)
            try:
                ctx.services.stop(unit, service.stop_timeout)
            except ServiceManagerError as e:
                ctx.interacter.notify(f"unable to stop {unit}; aborting install: {e}")
                raise
            stopped[unit] = service.stop_timeout

    ctx.dependents.refresh_security(m.name, deps)

    started: dict[str, int] = {}
    saga.push("stop restarted dependent services", _stop_services, ctx, started, m.name)
    for unit, timeout in stopped.items():
        try:
            ctx.services.start(unit)
        except ServiceManagerError as e:
            ctx.interacter.notify(f"unable to restart {unit}; aborting install: {e}")
            raise
        started[unit] = timeout


def _install_from_archive(
    ctx: InstallContext,
    archive: ArchiveHandle,
    flags: InstallFlags,
    origin: str,
) -> str:
    config = ctx.config
    inhibit_hooks = bool(flags & InstallFlags.INHIBIT_HOOKS)

    manifest_data = archive.control_member("manifest")
    m = parse_package_yaml_text(archive.meta_member("package.yaml"), source=f"{archive.path}:meta/package.yaml")
    qualified = m.qualified_name(origin)
    basedir = config.version_dir(qualified, m.version)

    can_install(ctx, archive, m, basedir, bool(flags & InstallFlags.ALLOW_OEM))

    current = current_active_dir(basedir.parent)

    with CompensationStack(f"install {qualified} {m.version}") as saga:
        if m.type == PackageType.OEM:
            saga.push("restore udev rules", restore_udev_rules, snapshot_udev_rules(config, m))
            install_oem_hardware_udev_rules(config, m)

        basedir.mkdir(parents=True)
        saga.push(f"remove {basedir}", _remove_version_dir, basedir)

        unpack_with_drop_privs(config, archive, basedir)
        # legacy hooks still read the click manifest
        write_compat_manifest(basedir, manifest_data, origin)
        archive.extract_hashes(basedir / "meta")

        created: list[Path] = []
        if current is not None:
            old_m = read_package_yaml(current)
            saga.push(f"reactivate {current.name}", _reactivate_old_version, ctx, current, inhibit_hooks)
            unset_active_click(ctx, current, inhibit_hooks)

            saga.push("remove new data dirs", remove_data_dirs, created)
            copy_snap_data(config, qualified, old_m.version, m.version, created=created)
        else:
            saga.push("remove new data dirs", remove_data_dirs, created)
            data_dir = create_system_data_dir(config, qualified, m.version)
            if data_dir is not None:
                created.append(data_dir)

        saga.push(f"withdraw {m.version}", _withdraw_new_version, ctx, basedir, m, origin, inhibit_hooks)
        set_active_click(ctx, basedir, inhibit_hooks)

        if not inhibit_hooks and ctx.dependents is not None:
            _refresh_dependents(ctx, saga, m)

    logger.info("Installed %s %s", qualified, m.version)
    return m.name


def install_click(
    ctx: InstallContext,
    archive_path: str | Path,
    flags: InstallFlags = InstallFlags.NONE,
    origin: str = "",
) -> str:
    """Install a package archive and make the new version active.

    Args:
        ctx: Engine configuration and collaborators.
        archive_path: Package archive to install.
        flags: ``ALLOW_UNAUTHENTICATED``, ``ALLOW_OEM``, ``INHIBIT_HOOKS``.
        origin: Publisher of the package ("" for sideloads).

    Returns:
        The package name.

    Raises:
        ClickError: any failure; the system is rolled back first.
    """
    allow_unauthenticated = bool(flags & InstallFlags.ALLOW_UNAUTHENTICATED)
    with ctx.archives.open(str(archive_path), allow_unauthenticated=allow_unauthenticated) as archive:
        return _install_from_archive(ctx, archive, flags, origin)


# ── Remove / purge ──────────────────────────────────────────────


def remove_click(ctx: InstallContext, click_dir: str | Path) -> None:
    """Remove an installed version, deactivating it first if active."""
    click_dir = Path(click_dir)
    m = read_package_yaml(click_dir)
    origin = origin_from_basedir(click_dir)

    remove_click_hooks(ctx.config, m, origin, False)

    if is_active(click_dir):
        unset_active_click(ctx, click_dir, False)
        if m.type == PackageType.OEM:
            remove_oem_hardware_udev_rules(ctx.config, m)

    shutil.rmtree(click_dir)
    try:
        click_dir.parent.rmdir()
    except OSError:
        # other versions are still installed
        pass
    logger.info("Removed %s %s", click_dir.parent.name, m.version)


def resolve_version_dir(ctx: InstallContext, name: str, version: str | None = None) -> Path:
    """Version dir of ``name``: the given version, or the active one."""
    if version is None:
        active = current_active_dir(ctx.config.package_dir(name))
        if active is None:
            raise NotActiveError(f"no version of {name} is active; give a version")
        return active

    basedir = ctx.config.version_dir(name, version)
    if not basedir.is_dir():
        raise ClickError(f"{name} {version} is not installed")
    return basedir


def purge_click_data(ctx: InstallContext, name: str, version: str) -> None:
    """Remove the data dirs of an inactive version.

    Raises:
        ClickError: if that version is currently active.
    """
    basedir = ctx.config.version_dir(name, version)
    if is_active(basedir):
        raise ClickError(f"{name} {version} is active; deactivate it before purging its data")
    remove_snap_data(ctx.config, name, version)
    logger.info("Purged data of %s %s", name, version)
