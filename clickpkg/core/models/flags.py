"""
Install flags — pure input modifiers for install operations.
"""

from __future__ import annotations

from enum import IntFlag


class InstallFlags(IntFlag):
    """Bitmask passed to ``install_click``."""

    NONE = 0
    ALLOW_UNAUTHENTICATED = 1 << 0
    INHIBIT_HOOKS = 1 << 1
    ALLOW_OEM = 1 << 2
