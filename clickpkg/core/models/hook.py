"""
System hook definition — one ``*.hook`` file from the system hook dir.
"""

from __future__ import annotations

from pydantic import BaseModel


class HookDefinition(BaseModel):
    """A system-wide integration point packages can bind files to.

    Attributes:
        name:     Hook name packages refer to under ``integration:``.
        exec:     Shell command run after a binding changes (may be empty).
        user:     User the command is meant to run as (informational).
        pattern:  Target path pattern; ``${id}`` expands to
                  ``<qualified-name>_<app>_<version>``.
    """

    name: str
    exec: str = ""
    user: str = ""
    pattern: str = ""
