"""
L3 Detection — ``__init__.py`` re-exports the read-only probes.

Nothing in this layer changes the system; it reads descriptors,
manifests, hook files and symlinks.
"""

from clickpkg.core.services.click_install.detection.active import (  # noqa: F401
    current_active_dir,
    current_symlink,
    installed_versions,
    is_active,
    list_installed,
)
from clickpkg.core.services.click_install.detection.hook_registry import (  # noqa: F401
    discover_system_hooks,
    read_hook_file,
)
from clickpkg.core.services.click_install.detection.manifests import (  # noqa: F401
    origin_from_basedir,
    parse_click_manifest,
    parse_package_yaml,
    parse_package_yaml_text,
    read_click_manifest_from_dir,
    read_package_yaml,
)
