"""
Service description — everything the service manager needs to render a unit.
"""

from __future__ import annotations

from pydantic import BaseModel


class ServiceDescription(BaseModel):
    """Input to ``ServiceManager.gen_unit_file``.

    Paths are in-system paths (root prefix already stripped).
    """

    app_name: str
    service_name: str
    version: str
    description: str = ""
    app_path: str
    start: str = ""
    stop: str = ""
    poststop: str = ""
    stop_timeout: int = 0          # seconds, 0 = manager default
    aa_profile: str = ""
    is_framework: bool = False
    bus_name: str = ""
    udev_app_name: str = ""        # qualified name
    data_path: str = ""            # system data dir of this version
    user_data_path: str = ""       # per-user data dir, relative to $HOME
