"""Adapters — bindings between the install engine and the system.

Public re-exports for convenient access.
"""

from clickpkg.adapters.base import (
    ArchiveHandle,
    ArchiveReader,
    Dependent,
    DependentResolver,
    FrameworkPolicy,
    InstallContext,
    Interacter,
    SecurityPolicyGenerator,
    ServiceManager,
)

__all__ = [
    "ArchiveHandle",
    "ArchiveReader",
    "Dependent",
    "DependentResolver",
    "FrameworkPolicy",
    "InstallContext",
    "Interacter",
    "SecurityPolicyGenerator",
    "ServiceManager",
]
