"""
L4 Execution — ``__init__.py`` re-exports the system-changing steps.

Every function here touches the filesystem, a subprocess or a
collaborator; sequencing and rollback live one layer up.
"""

from clickpkg.core.services.click_install.execution.artifacts import (  # noqa: F401
    add_package_binaries,
    add_package_services,
    add_security_policy,
    remove_package_binaries,
    remove_package_services,
    remove_security_policy,
    stop_service,
)
from clickpkg.core.services.click_install.execution.data_migration import (  # noqa: F401
    copy_snap_data,
    create_system_data_dir,
    remove_data_dirs,
    remove_snap_data,
    snap_data_dirs,
)
from clickpkg.core.services.click_install.execution.dependents import (  # noqa: F401
    InstalledDependentResolver,
)
from clickpkg.core.services.click_install.execution.hooks import (  # noqa: F401
    exec_hook,
    install_click_hooks,
    iter_hooks,
    remove_click_hooks,
    run_hooks,
)
from clickpkg.core.services.click_install.execution.oem import (  # noqa: F401
    install_oem_hardware_udev_rules,
    remove_oem_hardware_udev_rules,
    restore_udev_rules,
    snapshot_udev_rules,
)
from clickpkg.core.services.click_install.execution.unpack import (  # noqa: F401
    drop_privileges,
    find_binary_in_path,
    unpack_with_drop_privs,
    write_compat_manifest,
)
