"""
L4 Execution — Binding package files to system hooks.

A package declares, per app, which of its files feed which system hook
(``integration: {app: {hook: file}}``). For every binding the target
path is derived from the hook's pattern; installing symlinks the file
there, removing just clears it. Either way the hook's command runs
afterwards, unless hooks are inhibited.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Callable

from clickpkg.adapters.shell.runner import run_shell
from clickpkg.core.errors import HookExecutionFailed
from clickpkg.core.models.hook import HookDefinition
from clickpkg.core.models.layout import EngineConfig
from clickpkg.core.models.package import PackageYaml
from clickpkg.core.services.click_install.detection.hook_registry import (
    discover_system_hooks,
)
from clickpkg.core.services.click_install.domain.naming import (
    IGNORE_HOOKS,
    expand_hook_pattern,
)

logger = logging.getLogger(__name__)

# (source file relative to the package dir, target path, system hook)
HookAction = Callable[[str, Path, HookDefinition], None]


def exec_hook(command: str) -> None:
    """Run a hook command through the shell.

    Raises:
        HookExecutionFailed: if it exits non-zero (or cannot run).
    """
    logger.debug("Running hook command %r", command)
    result = run_shell(command)
    if not result["ok"]:
        raise HookExecutionFailed(command, result["returncode"])


def hook_target(config: EngineConfig, m: PackageYaml, origin: str, app: str, hook: HookDefinition) -> Path:
    expanded = expand_hook_pattern(m.qualified_name(origin), app, m.version, hook.pattern)
    return config.root_dir / expanded.lstrip("/")


def iter_hooks(
    config: EngineConfig,
    m: PackageYaml,
    origin: str,
    inhibit_hooks: bool,
    action: HookAction,
) -> None:
    """Apply ``action`` to every declared hook binding, then run the hook.

    Unknown and legacy hook types are skipped. A failing hook command
    removes its own target and stops the iteration; bindings processed
    before it stay as they are.
    """
    system_hooks = discover_system_hooks(config)

    for app, hooks in m.integration.items():
        for hook_name, source in hooks.items():
            if hook_name in IGNORE_HOOKS:
                continue

            system_hook = system_hooks.get(hook_name)
            if system_hook is None:
                logger.warning("Skipping unknown hook %r of %s", hook_name, m.name)
                continue

            dst = hook_target(config, m, origin, app, system_hook)
            if os.path.lexists(dst):
                try:
                    dst.unlink()
                except OSError as e:
                    logger.warning("Failed to remove %s: %s", dst, e)

            action(source, dst, system_hook)

            if system_hook.exec and not inhibit_hooks:
                try:
                    exec_hook(system_hook.exec)
                except HookExecutionFailed:
                    try:
                        dst.unlink()
                    except OSError:
                        pass
                    raise


def install_click_hooks(
    config: EngineConfig,
    basedir: Path,
    m: PackageYaml,
    origin: str,
    inhibit_hooks: bool,
) -> None:
    """Symlink every hook target to its file inside ``basedir``."""

    def link(source: str, dst: Path, hook: HookDefinition) -> None:
        real_src = config.strip_root(Path(basedir) / source)
        dst.parent.mkdir(parents=True, exist_ok=True)
        os.symlink(real_src, dst)
        logger.debug("Hook %s: %s → %s", hook.name, dst, real_src)

    iter_hooks(config, m, origin, inhibit_hooks, link)


def remove_click_hooks(config: EngineConfig, m: PackageYaml, origin: str, inhibit_hooks: bool) -> None:
    """Clear every hook target of the package (and rerun the hooks)."""

    def clear(source: str, dst: Path, hook: HookDefinition) -> None:
        # iter_hooks already removed the target
        return None

    iter_hooks(config, m, origin, inhibit_hooks, clear)


def run_hooks(config: EngineConfig) -> int:
    """Run the command of every system hook once.

    Returns:
        Number of hook commands executed.
    """
    count = 0
    for name, hook in sorted(discover_system_hooks(config).items()):
        if not hook.exec:
            continue
        logger.info("Running system hook %s", name)
        exec_hook(hook.exec)
        count += 1
    return count
