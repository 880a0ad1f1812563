"""
L3 Detection — System hook registry.

System hooks are ``*.hook`` files in the system hook dir, written as
headerless ``Key: value`` stanzas. Each file is read on its own; one
that cannot be read or parsed is logged and skipped.
"""

from __future__ import annotations

import configparser
import logging
from pathlib import Path

from clickpkg.core.errors import ParseError
from clickpkg.core.models.hook import HookDefinition
from clickpkg.core.models.layout import EngineConfig

logger = logging.getLogger(__name__)

_SECTION = "hook"


def read_hook_file(path: Path) -> HookDefinition:
    """Parse one system hook file.

    A missing ``Hook-Name`` defaults to the file name up to its first dot.

    Raises:
        ParseError: if the file cannot be read or is not key/value text.
    """
    path = Path(path)
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ParseError(f"cannot read hook file {path}: {e}") from e

    cfg = configparser.ConfigParser(interpolation=None)
    try:
        cfg.read_string(f"[{_SECTION}]\n{content}", source=str(path))
    except configparser.Error as e:
        raise ParseError(f"cannot parse hook file {path}: {e}") from e

    name = cfg.get(_SECTION, "hook-name", fallback="")
    if not name:
        name = path.name.split(".")[0]

    return HookDefinition(
        name=name,
        exec=cfg.get(_SECTION, "exec", fallback=""),
        user=cfg.get(_SECTION, "user", fallback=""),
        pattern=cfg.get(_SECTION, "pattern", fallback=""),
    )


def discover_system_hooks(config: EngineConfig) -> dict[str, HookDefinition]:
    """All readable system hooks, keyed by hook name."""
    hooks: dict[str, HookDefinition] = {}
    if not config.hooks_path.is_dir():
        return hooks

    for hook_file in sorted(config.hooks_path.glob("*.hook")):
        try:
            hook = read_hook_file(hook_file)
        except ParseError as e:
            logger.warning("Can't read hook file %s: %s", hook_file, e)
            continue
        hooks[hook.name] = hook

    logger.debug("Discovered %d system hook(s) in %s", len(hooks), config.hooks_path)
    return hooks
