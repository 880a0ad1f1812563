"""Service manager adapters."""

from clickpkg.adapters.systemd.systemctl import SystemctlServiceManager, render_unit_file

__all__ = ["SystemctlServiceManager", "render_unit_file"]
