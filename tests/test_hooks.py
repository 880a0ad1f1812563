"""
Tests for system hooks — registry discovery and the hook iterator.
"""

import os
from pathlib import Path

import pytest

from clickpkg.core.errors import HookExecutionFailed, ParseError
from clickpkg.core.models import PackageYaml
from clickpkg.core.services.click_install.detection.hook_registry import (
    discover_system_hooks,
    read_hook_file,
)
from clickpkg.core.services.click_install.domain.naming import expand_hook_pattern
from clickpkg.core.services.click_install.execution.hooks import (
    install_click_hooks,
    iter_hooks,
    remove_click_hooks,
    run_hooks,
)


def _package(**integration) -> PackageYaml:
    return PackageYaml(name="edge", version="1.0", integration=integration)


class TestHookPattern:
    def test_id_expansion(self):
        assert expand_hook_pattern("edge", "app1", "1.0", "${id}/foo") == "edge_app1_1.0/foo"

    def test_every_occurrence_expanded(self):
        out = expand_hook_pattern("a", "b", "2", "/x/${id}.json:${id}")
        assert out == "/x/a_b_2.json:a_b_2"

    def test_pattern_without_placeholder(self):
        assert expand_hook_pattern("a", "b", "2", "/static") == "/static"


class TestHookRegistry:
    def test_read_hook_file(self, tmp_path: Path):
        f = tmp_path / "apparmor.hook"
        f.write_text("Pattern: /var/lib/apparmor/clicks/${id}.json\nExec: /usr/bin/aa-clickhook\nUser: root\n")
        hook = read_hook_file(f)
        assert hook.name == "apparmor"
        assert hook.pattern == "/var/lib/apparmor/clicks/${id}.json"
        assert hook.exec == "/usr/bin/aa-clickhook"
        assert hook.user == "root"

    def test_explicit_hook_name(self, tmp_path: Path):
        f = tmp_path / "whatever.hook"
        f.write_text("Hook-Name: urls\nPattern: /usr/share/url-dispatcher/${id}\n")
        assert read_hook_file(f).name == "urls"

    def test_name_defaults_to_text_before_first_dot(self, tmp_path: Path):
        f = tmp_path / "content-hub.v2.hook"
        f.write_text("Pattern: /x/${id}\n")
        assert read_hook_file(f).name == "content-hub"

    def test_unparsable_file(self, tmp_path: Path):
        f = tmp_path / "broken.hook"
        f.write_text("this line has no separator\n")
        with pytest.raises(ParseError):
            read_hook_file(f)

    def test_discover_skips_broken_files(self, config, make_hook):
        make_hook("good", "/good/${id}")
        config.hooks_path.joinpath("broken.hook").write_text("no separator here\n")
        config.hooks_path.joinpath("README").write_text("not a hook\n")
        hooks = discover_system_hooks(config)
        assert list(hooks) == ["good"]

    def test_discover_without_hook_dir(self, config):
        assert discover_system_hooks(config) == {}


class TestIterHooks:
    def test_install_creates_symlink_to_in_system_path(self, config, make_hook, root):
        make_hook("foo-hook", "/var/lib/foo/${id}.conf")
        basedir = config.version_dir("edge", "1.0")
        m = _package(app1={"foo-hook": "meta/foo.conf"})

        install_click_hooks(config, basedir, m, "", inhibit_hooks=False)

        target = root / "var/lib/foo/edge_app1_1.0.conf"
        assert target.is_symlink()
        assert os.readlink(target) == "/apps/edge/1.0/meta/foo.conf"

    def test_origin_goes_into_id(self, config, make_hook, root):
        make_hook("foo-hook", "/hooks/${id}")
        m = _package(app1={"foo-hook": "meta/foo"})
        install_click_hooks(config, config.version_dir("edge.acme", "1.0"), m, "acme", inhibit_hooks=False)
        assert (root / "hooks/edge.acme_app1_1.0").is_symlink()

    def test_existing_target_is_replaced(self, config, make_hook, root):
        make_hook("foo-hook", "/hooks/${id}")
        target = root / "hooks/edge_app1_1.0"
        target.parent.mkdir(parents=True)
        target.write_text("stale")

        install_click_hooks(config, config.version_dir("edge", "1.0"), _package(app1={"foo-hook": "x"}), "", False)
        assert target.is_symlink()

    def test_ignored_and_unknown_hooks_are_skipped(self, config, make_hook):
        make_hook("bin-path", "/should/not/${id}")
        seen = []
        m = _package(app1={"bin-path": "bin/x", "snappy-systemd": "y", "nonexistent": "z"})
        iter_hooks(config, m, "", False, lambda src, dst, hook: seen.append(src))
        assert seen == []

    def test_exec_runs_after_action(self, config, make_hook, tmp_path):
        marker = tmp_path / "ran"
        make_hook("foo-hook", "/hooks/${id}", exec=f"touch {marker}")
        install_click_hooks(config, config.version_dir("edge", "1.0"), _package(app1={"foo-hook": "x"}), "", False)
        assert marker.exists()

    def test_inhibit_skips_exec(self, config, make_hook, tmp_path, root):
        marker = tmp_path / "ran"
        make_hook("foo-hook", "/hooks/${id}", exec=f"touch {marker}")
        install_click_hooks(config, config.version_dir("edge", "1.0"), _package(app1={"foo-hook": "x"}), "", True)
        assert not marker.exists()
        assert (root / "hooks/edge_app1_1.0").is_symlink()

    def test_failing_exec_removes_target_and_stops(self, config, make_hook, root):
        make_hook("bad", "/hooks/bad-${id}", exec="exit 3")
        make_hook("later", "/hooks/later-${id}")
        m = _package(app1={"bad": "x", "later": "y"})

        with pytest.raises(HookExecutionFailed) as exc:
            install_click_hooks(config, config.version_dir("edge", "1.0"), m, "", False)

        assert exc.value.exit_code == 3
        assert exc.value.command == "exit 3"
        assert not os.path.lexists(root / "hooks/bad-edge_app1_1.0")
        assert not os.path.lexists(root / "hooks/later-edge_app1_1.0")

    def test_earlier_hooks_stay_when_a_later_one_fails(self, config, make_hook, root):
        make_hook("good", "/hooks/good-${id}")
        make_hook("bad", "/hooks/bad-${id}", exec="false")
        m = _package(app1={"good": "x", "bad": "y"})

        with pytest.raises(HookExecutionFailed):
            install_click_hooks(config, config.version_dir("edge", "1.0"), m, "", False)
        assert (root / "hooks/good-edge_app1_1.0").is_symlink()

    def test_remove_clears_targets(self, config, make_hook, root):
        make_hook("foo-hook", "/hooks/${id}")
        m = _package(app1={"foo-hook": "x"}, app2={"foo-hook": "y"})
        install_click_hooks(config, config.version_dir("edge", "1.0"), m, "", False)
        assert (root / "hooks/edge_app2_1.0").is_symlink()

        remove_click_hooks(config, m, "", False)
        assert not os.path.lexists(root / "hooks/edge_app1_1.0")
        assert not os.path.lexists(root / "hooks/edge_app2_1.0")


class TestRunHooks:
    def test_runs_every_hook_with_exec(self, config, make_hook, tmp_path):
        make_hook("a", "/a/${id}", exec=f"touch {tmp_path / 'a'}")
        make_hook("b", "/b/${id}")
        make_hook("c", "/c/${id}", exec=f"touch {tmp_path / 'c'}")
        assert run_hooks(config) == 2
        assert (tmp_path / "a").exists()
        assert (tmp_path / "c").exists()

    def test_failure_propagates(self, config, make_hook):
        make_hook("a", "/a/${id}", exec="exit 7")
        with pytest.raises(HookExecutionFailed) as exc:
            run_hooks(config)
        assert exc.value.exit_code == 7
