"""
L1 Domain — Whitelist validation of binary/service fields (pure).

The fields listed here end up verbatim in shell wrappers and unit
files, so they may only contain a small set of characters. The list is
explicit: new descriptor fields are not validated unless added below.
"""

from __future__ import annotations

import re

from clickpkg.core.errors import WhitelistViolation
from clickpkg.core.models.package import Binary, Service

SERVICES_BINARIES_WHITELIST = r"[A-Za-z0-9/. _#:-]*"
_WHITELIST_RE = re.compile(SERVICES_BINARIES_WHITELIST)

BINARY_FIELDS = ("name", "exec")
SERVICE_FIELDS = ("name", "description", "start", "stop", "poststop", "bus-name")


def verify_string(field: str, content: str) -> None:
    """Raise WhitelistViolation if ``content`` has an illegal character."""
    if _WHITELIST_RE.fullmatch(content) is None:
        raise WhitelistViolation(field, content, SERVICES_BINARIES_WHITELIST)


def verify_binary(binary: Binary) -> None:
    values = {"name": binary.name, "exec": binary.exec_}
    for field in BINARY_FIELDS:
        verify_string(field, values[field])


def verify_service(service: Service) -> None:
    values = {
        "name": service.name,
        "description": service.description,
        "start": service.start,
        "stop": service.stop,
        "poststop": service.poststop,
        "bus-name": service.bus_name,
    }
    for field in SERVICE_FIELDS:
        verify_string(field, values[field])
