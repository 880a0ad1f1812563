"""
L1 Domain — ``__init__.py`` re-exports all pure domain functions.

These functions have NO subprocess calls, NO filesystem access.
Pure input→output.
"""

from clickpkg.core.services.click_install.domain.naming import (  # noqa: F401
    IGNORE_HOOKS,
    binary_file_name,
    bus_policy_file_name,
    compat_manifest_name,
    expand_hook_pattern,
    security_profile_name,
    service_file_name,
    split_qualified_name,
    udev_rules_file_name,
)
from clickpkg.core.services.click_install.domain.templates import (  # noqa: F401
    render_binary_wrapper,
)
from clickpkg.core.services.click_install.domain.whitelist import (  # noqa: F401
    SERVICES_BINARIES_WHITELIST,
    verify_binary,
    verify_service,
    verify_string,
)
