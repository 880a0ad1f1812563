"""
L5 Orchestration — ``__init__.py`` re-exports the engine entry points.
"""

from clickpkg.core.services.click_install.orchestration.activation import (  # noqa: F401
    activate_version,
    deactivate_package,
    set_active_click,
    unset_active_click,
)
from clickpkg.core.services.click_install.orchestration.orchestrator import (  # noqa: F401
    can_install,
    install_click,
    purge_click_data,
    remove_click,
    resolve_version_dir,
)
