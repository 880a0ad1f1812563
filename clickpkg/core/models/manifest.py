"""
Click manifest model — the identity document of a package.

The archive ships it as the ``manifest`` control member (JSON). A copy,
rewritten to carry the origin in its name, is kept under
``<basedir>/.click/info/`` for the legacy hooks that still read it.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from clickpkg.core.models.package import PackageType


class ClickManifest(BaseModel):
    """Identity manifest: name, version, type and legacy hook table."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: str
    version: str
    architecture: list[str] | str | None = None
    type: PackageType = PackageType.APP
    framework: str = ""
    description: str = ""
    icon: str = ""
    installed_size: str = Field("", alias="installed-size")
    maintainer: str = ""
    title: str = ""
    hooks: dict[str, dict[str, str]] = Field(default_factory=dict)

    @field_validator("version", "installed_size", mode="before")
    @classmethod
    def number_is_text(cls, value: Any) -> Any:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value

    def to_json_dict(self) -> dict[str, Any]:
        """Serialize with on-disk key names, omitting empty fields."""
        data = self.model_dump(mode="json", by_alias=True, exclude_none=True)
        return {k: v for k, v in data.items() if v not in ("", [], {})}
