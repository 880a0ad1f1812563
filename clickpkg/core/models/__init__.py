"""
Domain models — Pydantic types for the install engine.

All models are re-exported here for convenient access:

    from clickpkg.core.models import PackageYaml, ClickManifest, EngineConfig
"""

from clickpkg.core.models.flags import InstallFlags
from clickpkg.core.models.hook import HookDefinition
from clickpkg.core.models.layout import EngineConfig
from clickpkg.core.models.manifest import ClickManifest
from clickpkg.core.models.package import (
    OEM,
    Binary,
    Hardware,
    HardwareAssign,
    HardwareRule,
    PackageType,
    PackageYaml,
    SecurityDefinitions,
    SecurityOverride,
    SecurityPolicy,
    Service,
)
from clickpkg.core.models.service import ServiceDescription

__all__ = [
    # package.py
    "Binary",
    # manifest.py
    "ClickManifest",
    # layout.py
    "EngineConfig",
    "Hardware",
    "HardwareAssign",
    "HardwareRule",
    # hook.py
    "HookDefinition",
    # flags.py
    "InstallFlags",
    "OEM",
    "PackageType",
    "PackageYaml",
    "SecurityDefinitions",
    "SecurityOverride",
    "SecurityPolicy",
    "Service",
    # service.py
    "ServiceDescription",
]
