"""
Tests for the engine config loader.
"""

from pathlib import Path

import pytest

from clickpkg.core.config.loader import (
    CONFIG_ENV,
    ROOT_ENV,
    ConfigError,
    find_config_file,
    load_config,
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    monkeypatch.delenv(CONFIG_ENV, raising=False)
    monkeypatch.delenv(ROOT_ENV, raising=False)


class TestFindConfigFile:
    def test_explicit_path(self, tmp_path: Path):
        cfg = tmp_path / "config.yml"
        cfg.write_text("kill_wait: 1\n")
        assert find_config_file(cfg) == cfg

    def test_explicit_missing_raises(self, tmp_path: Path):
        with pytest.raises(ConfigError, match="not found"):
            find_config_file(tmp_path / "nope.yml")

    def test_env_var(self, tmp_path: Path, monkeypatch):
        cfg = tmp_path / "env.yml"
        cfg.write_text("{}\n")
        monkeypatch.setenv(CONFIG_ENV, str(cfg))
        assert find_config_file() == cfg

    def test_env_var_missing_file_raises(self, tmp_path: Path, monkeypatch):
        monkeypatch.setenv(CONFIG_ENV, str(tmp_path / "gone.yml"))
        with pytest.raises(ConfigError):
            find_config_file()


class TestLoadConfig:
    def test_flat_file(self, tmp_path: Path):
        cfg = tmp_path / "config.yml"
        cfg.write_text("root_dir: /srv/image\nkill_wait: 2.5\nlauncher: my-launcher\n")
        config = load_config(cfg)
        assert config.root_dir == Path("/srv/image")
        assert config.kill_wait == 2.5
        assert config.launcher == "my-launcher"

    def test_engine_wrapper_key(self, tmp_path: Path):
        cfg = tmp_path / "config.yml"
        cfg.write_text("engine:\n  helper_name: unpacker\n")
        assert load_config(cfg).helper_name == "unpacker"

    def test_empty_file_gives_defaults(self, tmp_path: Path):
        cfg = tmp_path / "config.yml"
        cfg.write_text("")
        config = load_config(cfg)
        assert config.apps_dir == "apps"
        assert config.drop_privileges is True

    def test_root_argument_wins(self, tmp_path: Path, monkeypatch):
        cfg = tmp_path / "config.yml"
        cfg.write_text("root_dir: /from/file\n")
        monkeypatch.setenv(ROOT_ENV, "/from/env")
        assert load_config(cfg, root_dir=tmp_path).root_dir == tmp_path

    def test_root_env_beats_file(self, tmp_path: Path, monkeypatch):
        cfg = tmp_path / "config.yml"
        cfg.write_text("root_dir: /from/file\n")
        monkeypatch.setenv(ROOT_ENV, "/from/env")
        assert load_config(cfg).root_dir == Path("/from/env")

    def test_invalid_yaml(self, tmp_path: Path):
        cfg = tmp_path / "config.yml"
        cfg.write_text("kill_wait: [1,\n")
        with pytest.raises(ConfigError, match="Invalid YAML"):
            load_config(cfg)

    def test_not_a_mapping(self, tmp_path: Path):
        cfg = tmp_path / "config.yml"
        cfg.write_text("- a\n- b\n")
        with pytest.raises(ConfigError, match="mapping"):
            load_config(cfg)

    def test_invalid_value(self, tmp_path: Path):
        cfg = tmp_path / "config.yml"
        cfg.write_text("kill_wait: soon\n")
        with pytest.raises(ConfigError, match="Invalid engine configuration"):
            load_config(cfg)
