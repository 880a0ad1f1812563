"""
L4 Execution — Hardware assignment rules of OEM packages.

An OEM package may assign hardware to apps (``oem.hardware.assign``).
Each assignment becomes one udev rules file that tags the matching
devices for the app's confinement.
"""

from __future__ import annotations

import logging
from pathlib import Path

from clickpkg.core.models.layout import EngineConfig
from clickpkg.core.models.package import HardwareRule, PackageYaml
from clickpkg.core.services.click_install.domain.naming import udev_rules_file_name

logger = logging.getLogger(__name__)


def _key_value(entry: str) -> tuple[str, str]:
    key, _, value = entry.partition("=")
    return key.strip(), value.strip()


def render_udev_rule(rule: HardwareRule, part_id: str) -> str:
    """One udev rule line assigning matching devices to ``part_id``."""
    matchers: list[str] = []
    if rule.kernel:
        matchers.append(f'KERNEL=="{rule.kernel}"')
    if rule.subsystem:
        matchers.append(f'SUBSYSTEM=="{rule.subsystem}"')
    if rule.with_subsystems:
        matchers.append(f'SUBSYSTEMS=="{rule.with_subsystems}"')
    if rule.with_driver:
        matchers.append(f'DRIVER=="{rule.with_driver}"')
    for attr in rule.with_attrs:
        key, value = _key_value(attr)
        matchers.append(f'ATTRS{{{key}}}=="{value}"')
    for prop in rule.with_props:
        key, value = _key_value(prop)
        matchers.append(f'ENV{{{key}}}=="{value}"')

    matchers.append('TAG:="snappy-assign"')
    matchers.append(f'ENV{{SNAPPY_APP}}:="{part_id}"')
    return ", ".join(matchers)


def udev_rules_paths(config: EngineConfig, m: PackageYaml) -> list[Path]:
    if m.oem is None:
        return []
    return [
        config.udev_rules_path / udev_rules_file_name(m.name, assign.part_id)
        for assign in m.oem.hardware.assign
    ]


def install_oem_hardware_udev_rules(config: EngineConfig, m: PackageYaml) -> list[Path]:
    """Write one rules file per hardware assignment.

    Returns:
        The files written.
    """
    if m.oem is None:
        return []

    written: list[Path] = []
    config.udev_rules_path.mkdir(parents=True, exist_ok=True)
    for assign in m.oem.hardware.assign:
        lines = [render_udev_rule(rule, assign.part_id) for rule in assign.rules]
        path = config.udev_rules_path / udev_rules_file_name(m.name, assign.part_id)
        path.write_text("".join(f"{line}\n" for line in lines), encoding="utf-8")
        path.chmod(0o644)
        written.append(path)
        logger.info("Wrote udev rules %s", path.name)
    return written


def remove_oem_hardware_udev_rules(config: EngineConfig, m: PackageYaml) -> None:
    for path in udev_rules_paths(config, m):
        try:
            path.unlink()
        except FileNotFoundError:
            pass


def snapshot_udev_rules(config: EngineConfig, m: PackageYaml) -> dict[Path, bytes | None]:
    """Content of every rules file ``m`` would write, None where absent.

    Rule file names only depend on the package name and part-id, so an
    older version of the same OEM package owns the same files.
    """
    snapshot: dict[Path, bytes | None] = {}
    for path in udev_rules_paths(config, m):
        try:
            snapshot[path] = path.read_bytes()
        except FileNotFoundError:
            snapshot[path] = None
    return snapshot


def restore_udev_rules(snapshot: dict[Path, bytes | None]) -> None:
    for path, content in snapshot.items():
        if content is None:
            path.unlink(missing_ok=True)
            continue
        path.write_bytes(content)
        path.chmod(0o644)
        logger.info("Restored udev rules %s", path.name)
