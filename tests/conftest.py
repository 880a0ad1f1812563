"""
Shared test fixtures and configuration.

Every engine test runs against a throwaway install root under
``tmp_path`` with recording doubles for all collaborators.
"""

import json
from pathlib import Path
from typing import Any, Callable

import pytest
import yaml

from clickpkg.adapters.base import InstallContext
from clickpkg.adapters.mock import (
    MockArchive,
    MockArchiveReader,
    MockDependentResolver,
    MockFrameworkPolicy,
    MockInteracter,
    MockPolicyGenerator,
    MockServiceManager,
)
from clickpkg.core.models.layout import EngineConfig


@pytest.fixture
def root(tmp_path: Path) -> Path:
    """Return an empty install root."""
    r = tmp_path / "root"
    r.mkdir()
    return r


@pytest.fixture
def config(root: Path) -> EngineConfig:
    """Engine config rooted in ``root``, unpacking in-process."""
    return EngineConfig(root_dir=root, drop_privileges=False, kill_wait=0)


@pytest.fixture
def engine(config: EngineConfig) -> InstallContext:
    """InstallContext wired to mock collaborators."""
    return InstallContext(
        config=config,
        archives=MockArchiveReader(),
        services=MockServiceManager(),
        policy=MockPolicyGenerator(),
        framework_policy=MockFrameworkPolicy(),
        dependents=MockDependentResolver(),
        interacter=MockInteracter(),
    )


def package_yaml_text(name: str, version: str, **fields: Any) -> str:
    """Render a package.yaml for tests."""
    data = {"name": name, "version": version, **fields}
    return yaml.safe_dump(data, sort_keys=False)


@pytest.fixture
def make_archive(engine: InstallContext, tmp_path: Path) -> Callable[..., str]:
    """Factory registering a MockArchive with the engine's archive reader.

    Returns the archive path to pass to ``install_click``.
    """

    def _make(
        name: str = "foo",
        version: str = "1.0",
        files: dict[str, str] | None = None,
        control: dict[str, bytes] | None = None,
        authenticated: bool = True,
        **fields: Any,
    ) -> str:
        pkg_type = fields.get("type", "app")
        content = {"meta/package.yaml": package_yaml_text(name, version, **fields)}
        for binary in fields.get("binaries", []):
            content[binary.get("exec") or binary["name"]] = "#!/bin/sh\necho hi\n"
        content.update(files or {})

        manifest = {"name": name, "version": version, "type": pkg_type, "description": f"{name} test"}
        path = str(tmp_path / "archives" / f"{name}_{version}_all.click")
        engine.archives.add(path, MockArchive(manifest, content, control=control, authenticated=authenticated))
        return path

    return _make


@pytest.fixture
def make_hook(config: EngineConfig) -> Callable[..., Path]:
    """Factory writing a system ``*.hook`` file."""

    def _make(name: str, pattern: str, exec: str = "", hook_name: str | None = None) -> Path:
        config.hooks_path.mkdir(parents=True, exist_ok=True)
        lines = [f"Pattern: {pattern}"]
        if hook_name is not None:
            lines.append(f"Hook-Name: {hook_name}")
        if exec:
            lines.append(f"Exec: {exec}")
        path = config.hooks_path / f"{name}.hook"
        path.write_text("\n".join(lines) + "\n")
        return path

    return _make


@pytest.fixture
def make_installed(config: EngineConfig) -> Callable[..., Path]:
    """Factory laying out an unpacked (not yet active) version dir.

    Writes ``meta/package.yaml`` and, when ``origin`` is given, the
    compat manifest recording it.
    """

    def _make(name: str = "foo", version: str = "1.0", origin: str = "", **fields: Any) -> Path:
        qualified = f"{name}.{origin}" if origin else name
        basedir = config.version_dir(qualified, version)
        meta = basedir / "meta"
        meta.mkdir(parents=True)
        (meta / "package.yaml").write_text(package_yaml_text(name, version, **fields))
        if origin:
            info = basedir / ".click" / "info"
            info.mkdir(parents=True)
            (info / f"{qualified}.manifest").write_text(
                json.dumps({"name": qualified, "version": version})
            )
        return basedir

    return _make
