"""Security policy adapters — seccomp profiles and framework policy."""

from clickpkg.adapters.security.framework_policy import FrameworkPolicyRegistrar
from clickpkg.adapters.security.seccomp import SeccompPolicyGenerator

__all__ = ["FrameworkPolicyRegistrar", "SeccompPolicyGenerator"]
