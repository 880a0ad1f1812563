"""
L4 Execution — Packages built on top of a framework.

A dependent of ``fw`` is any installed package whose descriptor lists
``fw`` under ``frameworks:``. Its confinement profiles may pull in the
framework's policy groups, so they are regenerated whenever the
framework changes.
"""

from __future__ import annotations

import logging
from pathlib import Path

from clickpkg.adapters.base import Dependent, DependentResolver, SecurityPolicyGenerator
from clickpkg.core.errors import ParseError
from clickpkg.core.models.layout import EngineConfig
from clickpkg.core.services.click_install.detection.active import is_active, list_installed
from clickpkg.core.services.click_install.detection.manifests import (
    origin_from_basedir,
    read_package_yaml,
)
from clickpkg.core.services.click_install.execution.artifacts import add_security_policy

logger = logging.getLogger(__name__)


class InstalledDependentResolver(DependentResolver):
    """Finds dependents by scanning the installed descriptors."""

    def __init__(self, config: EngineConfig, policy: SecurityPolicyGenerator):
        self.config = config
        self.policy = policy

    def dependents_of(self, name: str) -> list[Dependent]:
        dependents: list[Dependent] = []
        for entry in list_installed(self.config):
            base_dir = Path(entry["path"])
            try:
                descriptor = read_package_yaml(base_dir)
            except ParseError as e:
                logger.warning("Ignoring %s: %s", base_dir, e)
                continue
            if descriptor.name != name and name in descriptor.frameworks:
                dependents.append(Dependent(name=descriptor.name, base_dir=base_dir, descriptor=descriptor))
        return dependents

    def refresh_security(self, name: str, dependents: list[Dependent]) -> None:
        for dep in dependents:
            if not is_active(dep.base_dir):
                continue
            logger.info("Refreshing security policy of %s for %s", dep.name, name)
            add_security_policy(
                self.config, self.policy, dep.descriptor, dep.base_dir,
                origin_from_basedir(dep.base_dir),
            )
