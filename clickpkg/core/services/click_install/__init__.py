"""
Click package install engine — package re-exports.

This ``__init__.py`` re-exports the public entry points so callers can
write::

    from clickpkg.core.services.click_install import install_click

Each symbol lives in its single-responsibility module inside the
appropriate layer (domain → detection → execution → orchestration).
"""

# ── L3: Detection ──
from clickpkg.core.services.click_install.detection.active import (  # noqa: F401
    current_active_dir,
    is_active,
    list_installed,
)
from clickpkg.core.services.click_install.detection.hook_registry import (  # noqa: F401
    discover_system_hooks,
)
from clickpkg.core.services.click_install.detection.manifests import (  # noqa: F401
    origin_from_basedir,
    parse_package_yaml,
    read_click_manifest_from_dir,
)

# ── L4: Execution ──
from clickpkg.core.services.click_install.execution.data_migration import (  # noqa: F401
    copy_snap_data,
    remove_snap_data,
)
from clickpkg.core.services.click_install.execution.dependents import (  # noqa: F401
    InstalledDependentResolver,
)
from clickpkg.core.services.click_install.execution.hooks import (  # noqa: F401
    iter_hooks,
    run_hooks,
)
from clickpkg.core.services.click_install.execution.unpack import (  # noqa: F401
    drop_privileges,
)

# ── L5: Orchestration ──
from clickpkg.core.services.click_install.orchestration.activation import (  # noqa: F401
    activate_version,
    deactivate_package,
    set_active_click,
    unset_active_click,
)
from clickpkg.core.services.click_install.orchestration.orchestrator import (  # noqa: F401
    install_click,
    purge_click_data,
    remove_click,
    resolve_version_dir,
)
