"""
L3 Detection — Reading package documents from disk.

Descriptors are parsed fresh on every call; nothing here caches.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

import yaml
from pydantic import ValidationError

from clickpkg.core.errors import ClickError, ManifestNotFound, ParseError
from clickpkg.core.models.manifest import ClickManifest
from clickpkg.core.models.package import PackageYaml

logger = logging.getLogger(__name__)

PACKAGE_YAML = Path("meta") / "package.yaml"
CLICK_INFO_DIR = Path(".click") / "info"
MANIFEST_SUFFIX = ".manifest"


def parse_package_yaml_text(text: str | bytes, source: str = "<package.yaml>") -> PackageYaml:
    """Parse descriptor text.

    Raises:
        ParseError: on invalid YAML or a descriptor that fails validation.
    """
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ParseError(f"cannot parse {source}: {e}") from e

    if not isinstance(data, dict):
        raise ParseError(f"{source}: expected a mapping, got {type(data).__name__}")

    try:
        return PackageYaml.model_validate(data)
    except ValidationError as e:
        raise ParseError(f"invalid {source}: {e}") from e


def parse_package_yaml(path: str | Path) -> PackageYaml:
    """Parse a ``package.yaml`` file."""
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ParseError(f"cannot read {path}: {e}") from e
    return parse_package_yaml_text(text, source=str(path))


def read_package_yaml(basedir: str | Path) -> PackageYaml:
    """The descriptor of an installed version."""
    return parse_package_yaml(Path(basedir) / PACKAGE_YAML)


def parse_click_manifest(data: bytes | str, source: str = "<manifest>") -> ClickManifest:
    """Parse a JSON click manifest.

    Raises:
        ParseError: on invalid JSON or missing identity fields.
    """
    try:
        raw = json.loads(data)
    except json.JSONDecodeError as e:
        raise ParseError(f"cannot parse {source}: {e}") from e

    if not isinstance(raw, dict):
        raise ParseError(f"{source}: expected a JSON object")

    try:
        return ClickManifest.model_validate(raw)
    except ValidationError as e:
        raise ParseError(f"invalid {source}: {e}") from e


def read_click_manifest_from_dir(basedir: str | Path) -> ClickManifest:
    """Read the compat manifest of an installed version.

    Raises:
        ManifestNotFound: unless exactly one ``*.manifest`` exists.
        ParseError: if it cannot be parsed.
    """
    info_dir = Path(basedir) / CLICK_INFO_DIR
    manifests = sorted(info_dir.glob(f"*{MANIFEST_SUFFIX}"))
    if len(manifests) != 1:
        raise ManifestNotFound(f"got {len(manifests)} manifests in {basedir}")
    try:
        data = manifests[0].read_bytes()
    except OSError as e:
        raise ParseError(f"cannot read {manifests[0]}: {e}") from e
    return parse_click_manifest(data, source=str(manifests[0]))


def origin_from_basedir(basedir: str | Path) -> str:
    """Origin recorded in an installed version's compat manifest.

    Frameworks, OEM packages and sideloads have none; an unreadable
    manifest is treated the same way.
    """
    try:
        manifest = read_click_manifest_from_dir(basedir)
    except ClickError as e:
        logger.debug("No origin for %s: %s", basedir, e)
        return ""
    _, _, origin = manifest.name.partition(".")
    return origin
