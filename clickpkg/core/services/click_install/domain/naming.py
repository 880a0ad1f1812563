"""
L1 Domain — Generated artifact names (pure).

Every file the engine generates on behalf of a package has a name that
is a pure function of the package identity and the app it belongs to.
No I/O.
"""

from __future__ import annotations

import os

from clickpkg.core.models.package import Binary, PackageYaml, Service

# placeholder in hook patterns
HOOK_ID_PLACEHOLDER = "${id}"

# legacy hook types that are handled natively now
IGNORE_HOOKS = frozenset({"bin-path", "snappy-systemd"})


def expand_hook_pattern(name: str, app: str, version: str, pattern: str) -> str:
    """Expand ``${id}`` in a hook pattern.

    >>> expand_hook_pattern("edge", "app1", "1.0", "${id}/foo")
    'edge_app1_1.0/foo'
    """
    return pattern.replace(HOOK_ID_PLACEHOLDER, f"{name}_{app}_{version}")


def binary_file_name(m: PackageYaml, binary: Binary) -> str:
    """Name of the launcher wrapper in the binaries dir.

    Frameworks provide system-wide commands, so their wrappers are not
    prefixed with the package name.
    """
    base = os.path.basename(binary.name)
    if m.is_framework:
        return base
    return f"{m.name}.{base}"


def service_file_name(m: PackageYaml, service: Service) -> str:
    return f"{m.name}_{service.name}_{m.version}.service"


def bus_policy_file_name(m: PackageYaml, service: Service) -> str:
    return f"{m.name}_{service.name}_{m.version}.conf"


def security_profile_name(m: PackageYaml, app_name: str, origin: str) -> str:
    """Name of the seccomp profile (and apparmor label) of one app."""
    return f"{m.qualified_name(origin)}_{os.path.basename(app_name)}_{m.version}"


def udev_rules_file_name(name: str, part_id: str) -> str:
    return f"80-clickpkg_{name}_{part_id}.rules"


def compat_manifest_name(m: PackageYaml, origin: str) -> str:
    """Name recorded in the compat manifest: origin-qualified for apps."""
    return m.qualified_name(origin)


def split_qualified_name(qualified: str) -> tuple[str, str]:
    """``foo.bar`` → ``("foo", "bar")``; ``foo`` → ``("foo", "")``."""
    name, _, origin = qualified.partition(".")
    return name, origin
