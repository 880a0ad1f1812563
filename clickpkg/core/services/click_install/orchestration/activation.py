"""
L5 Orchestration — Making a version active (and inactive again).

Per package there is either no active version or exactly one: the
version dir the ``current`` symlink in the package dir resolves to.

``set_active_click`` first deactivates whatever else is active, then
publishes the new version (framework policy, hooks, security profiles,
binaries, services) and only at the very end repoints ``current``.
``unset_active_click`` is its inverse and refuses to touch a version
that is not the active one.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from clickpkg.adapters.base import InstallContext
from clickpkg.core.errors import ClickError, NotActiveError
from clickpkg.core.services.click_install.detection.active import (
    current_active_dir,
    current_symlink,
)
from clickpkg.core.services.click_install.detection.manifests import (
    origin_from_basedir,
    read_package_yaml,
)
from clickpkg.core.services.click_install.execution.artifacts import (
    add_package_binaries,
    add_package_services,
    add_security_policy,
    remove_package_binaries,
    remove_package_services,
    remove_security_policy,
)
from clickpkg.core.services.click_install.execution.hooks import (
    install_click_hooks,
    remove_click_hooks,
)

logger = logging.getLogger(__name__)


def set_active_click(ctx: InstallContext, basedir: str | Path, inhibit_hooks: bool = False) -> None:
    """Make ``basedir`` the active version of its package.

    A no-op if it already is. A failure after the hooks went in leaves
    them (and anything generated after them) in place; the caller
    restores the previous state.
    """
    basedir = Path(basedir)
    package_dir = basedir.parent
    active = current_active_dir(package_dir)

    if active is not None and active == Path(os.path.realpath(basedir)):
        logger.debug("%s is already active", basedir)
        return

    if active is not None:
        unset_active_click(ctx, active, inhibit_hooks)

    m = read_package_yaml(basedir)
    origin = origin_from_basedir(basedir)
    config = ctx.config

    if m.is_framework:
        ctx.framework_policy.install(m.name, basedir)

    try:
        install_click_hooks(config, basedir, m, origin, inhibit_hooks)
    except (ClickError, OSError):
        try:
            remove_click_hooks(config, m, origin, inhibit_hooks)
        except (ClickError, OSError) as e:
            logger.warning("Cleaning up hooks of %s failed: %s", basedir, e)
        raise

    add_security_policy(config, ctx.policy, m, basedir, origin)
    add_package_binaries(config, m, basedir, origin)
    add_package_services(ctx, m, basedir, origin, inhibit_hooks)

    link = current_symlink(package_dir)
    if os.path.lexists(link):
        try:
            link.unlink()
        except OSError as e:
            logger.warning("Failed to remove %s: %s", link, e)

    # relative to the package dir
    os.symlink(basedir.name, link)
    logger.info("%s %s is now active", m.name, m.version)


def unset_active_click(ctx: InstallContext, click_dir: str | Path, inhibit_hooks: bool = False) -> None:
    """Withdraw everything ``click_dir`` published and drop ``current``.

    Raises:
        NotActiveError: if ``click_dir`` is not the active version;
            nothing is changed in that case.
    """
    click_dir = Path(click_dir)
    active = current_active_dir(click_dir.parent)
    if active is None or active != Path(os.path.realpath(click_dir)):
        raise NotActiveError(f"{click_dir} is not the active version")

    m = read_package_yaml(click_dir)
    origin = origin_from_basedir(click_dir)
    config = ctx.config

    remove_package_binaries(config, m)
    remove_package_services(ctx, m)
    remove_security_policy(config, m, origin)

    if m.is_framework:
        ctx.framework_policy.remove(m.name, click_dir)

    remove_click_hooks(config, m, origin, inhibit_hooks)

    link = current_symlink(click_dir.parent)
    try:
        link.unlink()
    except OSError as e:
        logger.warning("Failed to remove %s: %s", link, e)
    logger.info("%s %s is no longer active", m.name, m.version)


def activate_version(ctx: InstallContext, name: str, version: str, inhibit_hooks: bool = False) -> Path:
    """Activate an installed version by package dir name and version."""
    basedir = ctx.config.version_dir(name, version)
    if not basedir.is_dir():
        raise ClickError(f"{name} {version} is not installed")
    set_active_click(ctx, basedir, inhibit_hooks)
    return basedir


def deactivate_package(ctx: InstallContext, name: str, inhibit_hooks: bool = False) -> Path:
    """Deactivate whichever version of ``name`` is active."""
    active = current_active_dir(ctx.config.package_dir(name))
    if active is None:
        raise NotActiveError(f"no version of {name} is active")
    unset_active_click(ctx, active, inhibit_hooks)
    return active
