"""
Tests for the system adapters — archives, policy, systemd, shell, console.
"""

import hashlib
import io
import json
import tarfile
from pathlib import Path

import pytest

from clickpkg.adapters.archive import TarArchiveReader
from clickpkg.adapters.console import ConsoleInteracter
from clickpkg.adapters.mock import MockServiceManager
from clickpkg.adapters.security import FrameworkPolicyRegistrar, SeccompPolicyGenerator
from clickpkg.adapters.shell.runner import run_command, run_shell
from clickpkg.adapters.systemd import SystemctlServiceManager, render_unit_file
from clickpkg.adapters.systemd import systemctl
from clickpkg.core.errors import (
    ClickError,
    ServiceManagerError,
    ServiceStopTimeout,
    VerificationFailed,
)
from clickpkg.core.models import Binary, EngineConfig, ServiceDescription

# ── Tar archives ─────────────────────────────────────────────────────


def _build_tar(path: Path, members: dict[str, bytes]) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    with tarfile.open(path, "w:gz") as tar:
        for name, content in members.items():
            info = tarfile.TarInfo(name)
            info.size = len(content)
            info.mode = 0o644
            tar.addfile(info, io.BytesIO(content))
    return path


def _click(tmp_path: Path, extra: dict[str, bytes] | None = None) -> Path:
    members = {
        "control/manifest": json.dumps({"name": "foo", "version": "1.0"}).encode(),
        "control/hashes.yaml": b"archive: sha256\n",
        "data/meta/package.yaml": b"name: foo\nversion: '1.0'\n",
        "data/bin/foo": b"#!/bin/sh\n",
    }
    members.update(extra or {})
    return _build_tar(tmp_path / "foo_1.0_all.click", members)


def _sign(archive: Path) -> None:
    digest = hashlib.sha256(archive.read_bytes()).hexdigest()
    archive.with_name(archive.name + ".checksum").write_text(f"sha256:{digest}\n")


class TestTarArchiveReader:
    def test_checksum_verified(self, tmp_path):
        archive = _click(tmp_path)
        _sign(archive)
        with TarArchiveReader().open(str(archive)) as handle:
            assert json.loads(handle.control_member("manifest"))["name"] == "foo"
            assert b"version" in handle.meta_member("package.yaml")

    def test_checksum_mismatch(self, tmp_path):
        archive = _click(tmp_path)
        archive.with_name(archive.name + ".checksum").write_text("sha256:" + "0" * 64)
        with pytest.raises(VerificationFailed, match="mismatch"):
            TarArchiveReader().open(str(archive), allow_unauthenticated=True)

    def test_unknown_algorithm(self, tmp_path):
        archive = _click(tmp_path)
        archive.with_name(archive.name + ".checksum").write_text("rot13:abc")
        with pytest.raises(VerificationFailed):
            TarArchiveReader().open(str(archive))

    def test_unauthenticated(self, tmp_path):
        archive = _click(tmp_path)
        with pytest.raises(VerificationFailed, match="not authenticated"):
            TarArchiveReader().open(str(archive))
        with TarArchiveReader().open(str(archive), allow_unauthenticated=True) as handle:
            assert handle.path == str(archive)

    def test_missing_archive(self, tmp_path):
        with pytest.raises(ClickError, match="no such archive"):
            TarArchiveReader().open(str(tmp_path / "nope.click"))

    def test_not_a_tarball(self, tmp_path):
        bogus = tmp_path / "bogus.click"
        bogus.write_text("plain text")
        with pytest.raises(ClickError, match="cannot open"):
            TarArchiveReader().open(str(bogus), allow_unauthenticated=True)

    def test_missing_member(self, tmp_path):
        with TarArchiveReader().open(str(_click(tmp_path)), allow_unauthenticated=True) as handle:
            with pytest.raises(ClickError, match="license.txt"):
                handle.control_member("license.txt")

    def test_unpack_payload_only(self, tmp_path):
        dest = tmp_path / "dest"
        with TarArchiveReader().open(str(_click(tmp_path)), allow_unauthenticated=True) as handle:
            handle.unpack_into(dest)
            handle.extract_hashes(dest / "meta")

        assert (dest / "bin/foo").read_bytes() == b"#!/bin/sh\n"
        assert (dest / "meta/package.yaml").is_file()
        assert not (dest / "control").exists()
        assert (dest / "meta/content.hash").read_bytes() == b"archive: sha256\n"

    def test_unsafe_member_refused(self, tmp_path):
        archive = _click(tmp_path, {"data/../../escape": b"gotcha"})
        with TarArchiveReader().open(str(archive), allow_unauthenticated=True) as handle:
            with pytest.raises(ClickError, match="unsafe"):
                handle.unpack_into(tmp_path / "dest")
        assert not (tmp_path / "escape").exists()


# ── Security policy ──────────────────────────────────────────────────


class TestSeccompPolicyGenerator:
    @pytest.fixture
    def policy_dir(self, config):
        d = config.path(config.seccomp_policy_dir)
        (d / "policygroups").mkdir(parents=True)
        (d / "templates").mkdir()
        (d / "policygroups" / "network-client").write_text("socket\nconnect\n")
        (d / "policygroups" / "camera").write_text("ioctl\n")
        (d / "templates" / "unconfined").write_text("@unrestricted\n")
        return d

    def test_default_profile(self, config, policy_dir, tmp_path):
        profile = SeccompPolicyGenerator(config).generate_profile(tmp_path, "hello", Binary(name="hello"))
        text = profile.decode()
        assert text.startswith("# seccomp profile for hello\n# template: default\n")
        assert "exit_group" in text
        assert text.endswith("socket\nconnect\n")

    def test_template_and_caps(self, config, policy_dir, tmp_path):
        app = Binary.model_validate({"name": "cam", "security-template": "unconfined", "caps": ["camera"]})
        text = SeccompPolicyGenerator(config).generate_profile(tmp_path, "cam", app).decode()
        assert "@unrestricted" in text
        assert "ioctl" in text
        assert "socket" not in text

    def test_unknown_template_or_group(self, config, policy_dir, tmp_path):
        gen = SeccompPolicyGenerator(config)
        with pytest.raises(ClickError, match="template"):
            gen.generate_profile(tmp_path, "x", Binary.model_validate({"name": "x", "security-template": "nope"}))
        with pytest.raises(ClickError, match="policy group"):
            gen.generate_profile(tmp_path, "x", Binary(name="x", caps=["nope"]))

    def test_override_appended(self, config, policy_dir, tmp_path):
        (tmp_path / "extra.seccomp").write_text("ptrace\n")
        app = Binary.model_validate({"name": "x", "security-override": {"seccomp": "extra.seccomp"}})
        text = SeccompPolicyGenerator(config).generate_profile(tmp_path, "x", app).decode()
        assert text.endswith("ptrace\n")

    def test_handwritten_policy_verbatim(self, config, tmp_path):
        (tmp_path / "my.seccomp").write_bytes(b"exactly this\n")
        app = Binary.model_validate({"name": "x", "security-policy": {"seccomp": "my.seccomp"}})
        assert SeccompPolicyGenerator(config).generate_profile(tmp_path, "x", app) == b"exactly this\n"

    def test_bus_policy(self, config):
        policy = SeccompPolicyGenerator(config).generate_bus_policy("com.example.svc").decode()
        assert '<allow own="com.example.svc"/>' in policy


class TestFrameworkPolicyRegistrar:
    def test_install_and_remove(self, config, tmp_path):
        base = tmp_path / "fw"
        groups = base / "meta/framework-policy/seccomp/policygroups"
        groups.mkdir(parents=True)
        (groups / "bus").write_text("sendmsg\n")
        templates = base / "meta/framework-policy/apparmor/templates"
        templates.mkdir(parents=True)
        (templates / "fw-app").write_text("# apparmor\n")

        registrar = FrameworkPolicyRegistrar(config)
        registrar.install("fw", base)

        seccomp_group = config.path(config.seccomp_policy_dir) / "policygroups/fw_bus"
        apparmor_template = config.path(config.apparmor_policy_dir) / "templates/fw_fw-app"
        assert seccomp_group.read_text() == "sendmsg\n"
        assert apparmor_template.is_file()

        registrar.remove("fw", base)
        assert not seccomp_group.exists()
        assert not apparmor_template.exists()

    def test_framework_without_policy(self, config, tmp_path):
        registrar = FrameworkPolicyRegistrar(config)
        registrar.install("fw", tmp_path)
        registrar.remove("fw", tmp_path)
        assert not config.path(config.seccomp_policy_dir).exists()


# ── systemd ──────────────────────────────────────────────────────────


def _desc(**kwargs) -> ServiceDescription:
    base = {
        "app_name": "foo",
        "service_name": "web",
        "version": "1.0",
        "description": "web server",
        "app_path": "/apps/foo/1.0",
        "start": "bin/web",
        "aa_profile": "foo_web_1.0",
        "udev_app_name": "foo",
        "data_path": "/var/lib/apps/foo/1.0",
        "user_data_path": "apps/foo/1.0",
    }
    base.update(kwargs)
    return ServiceDescription(**base)


class TestRenderUnitFile:
    def test_app_service(self):
        unit = render_unit_file(_desc(), "launcher")
        assert "ExecStart=launcher foo foo_web_1.0 /apps/foo/1.0/bin/web" in unit
        assert f"Requires={systemctl.FRAMEWORKS_TARGET}" in unit
        assert "WantedBy=multi-user.target" in unit
        assert "ExecStop=" not in unit
        assert '"SNAP_APP_USER_DATA_PATH=%h/apps/foo/1.0/"' in unit

    def test_framework_service_with_extras(self):
        unit = render_unit_file(
            _desc(is_framework=True, stop="bin/halt", poststop="bin/clean", stop_timeout=10, bus_name="com.x"),
            "launcher",
        )
        assert f"Before={systemctl.FRAMEWORKS_TARGET}" in unit
        assert f"WantedBy={systemctl.FRAMEWORKS_TARGET}" in unit
        assert "ExecStop=launcher foo foo_web_1.0 /apps/foo/1.0/bin/halt" in unit
        assert "ExecStopPost=launcher foo foo_web_1.0 /apps/foo/1.0/bin/clean" in unit
        assert "TimeoutStopSec=10" in unit
        assert "BusName=com.x\nType=dbus" in unit


class _FakeSystemctl:
    """Stands in for ``run_command`` inside the systemctl adapter."""

    def __init__(self, state: str = "inactive"):
        self.state = state
        self.commands: list[list[str]] = []
        self.fail: set[str] = set()
        self.time_out: set[str] = set()

    def __call__(self, cmd, **kwargs):
        self.commands.append(cmd)
        if "show" in cmd:
            return {"ok": True, "returncode": 0, "stdout": f"ActiveState={self.state}\n"}
        verb = next(a for a in cmd[1:] if not a.startswith("--"))
        if verb in self.time_out:
            return {"ok": False, "returncode": -1, "timed_out": True, "error": "timed out"}
        if verb in self.fail:
            return {"ok": False, "returncode": 1, "stderr": f"{verb} exploded"}
        return {"ok": True, "returncode": 0, "stdout": ""}


@pytest.fixture
def fake_systemctl(monkeypatch):
    fake = _FakeSystemctl()
    monkeypatch.setattr(systemctl, "run_command", fake)
    monkeypatch.setattr(systemctl, "_POLL_INTERVAL", 0.01)
    return fake


class TestSystemctlServiceManager:
    def test_offline_root(self, fake_systemctl, tmp_path):
        mgr = SystemctlServiceManager(tmp_path)
        mgr.daemon_reload()
        mgr.enable("foo.service")
        mgr.start("foo.service")
        mgr.stop("foo.service", 5)
        mgr.kill("foo.service", "TERM")
        mgr.disable("foo.service")
        assert fake_systemctl.commands == [
            ["systemctl", f"--root={tmp_path}", "enable", "foo.service"],
            ["systemctl", f"--root={tmp_path}", "disable", "foo.service"],
        ]

    def test_live_operations(self, fake_systemctl):
        mgr = SystemctlServiceManager()
        mgr.daemon_reload()
        mgr.start("foo.service")
        mgr.stop("foo.service", 5)
        mgr.kill("foo.service", "KILL")
        assert fake_systemctl.commands == [
            ["systemctl", "daemon-reload"],
            ["systemctl", "start", "foo.service"],
            ["systemctl", "stop", "foo.service"],
            ["systemctl", "show", "foo.service", "--property=ActiveState"],
            ["systemctl", "kill", "foo.service", "-s", "KILL"],
        ]

    def test_failure_raises(self, fake_systemctl):
        fake_systemctl.fail.add("start")
        with pytest.raises(ServiceManagerError, match="start exploded"):
            SystemctlServiceManager().start("foo.service")

    def test_stop_command_timeout(self, fake_systemctl):
        fake_systemctl.time_out.add("stop")
        with pytest.raises(ServiceStopTimeout):
            SystemctlServiceManager().stop("foo.service", 1)

    def test_still_running_after_timeout(self, fake_systemctl):
        fake_systemctl.state = "deactivating"
        with pytest.raises(ServiceStopTimeout, match="did not stop"):
            SystemctlServiceManager().stop("foo.service", 0.05)

    def test_gen_unit_file_uses_launcher(self):
        unit = SystemctlServiceManager(launcher="my-launcher").gen_unit_file(_desc())
        assert "ExecStart=my-launcher " in unit


# ── Shell runner ─────────────────────────────────────────────────────


class TestRunner:
    def test_success(self):
        result = run_shell("echo hello")
        assert result["ok"]
        assert result["stdout"].strip() == "hello"

    def test_failure(self):
        result = run_shell("echo oops >&2; exit 5")
        assert not result["ok"]
        assert result["returncode"] == 5
        assert "oops" in result["stderr"]

    def test_missing_binary(self):
        result = run_command(["/nonexistent/clickpkg-test-binary"])
        assert not result["ok"]
        assert result["returncode"] == -1

    def test_timeout(self):
        result = run_command(["sleep", "5"], timeout=0.2)
        assert result["timed_out"]
        assert result["returncode"] == -1

    def test_env_overrides(self):
        result = run_shell('echo "$CLICKPKG_TEST_VAR"', env_overrides={"CLICKPKG_TEST_VAR": "set"})
        assert result["stdout"].strip() == "set"


# ── Console / mocks ──────────────────────────────────────────────────


class TestConsoleInteracter:
    def test_notify_to_stderr(self, capsys):
        ConsoleInteracter().notify("doing things")
        assert capsys.readouterr().err == "doing things\n"

    def test_quiet(self, capsys):
        ConsoleInteracter(quiet=True).notify("doing things")
        assert capsys.readouterr().err == ""

    def test_assume_yes(self):
        assert ConsoleInteracter(assume_yes=True).agreed("intro", "license")

    def test_prompt(self, monkeypatch):
        from clickpkg.adapters import console

        shown = []
        monkeypatch.setattr(console.click, "echo", lambda *a, **k: None)
        monkeypatch.setattr(console.click, "echo_via_pager", shown.append)
        monkeypatch.setattr(console.click, "confirm", lambda *a, **k: False)
        assert ConsoleInteracter().agreed("intro", "the license") is False
        assert shown == ["the license"]


class TestMockServiceManager:
    def test_targeted_failure(self):
        mgr = MockServiceManager()
        mgr.set_failure("start", "bad.service")
        mgr.start("good.service")
        with pytest.raises(ServiceManagerError):
            mgr.start("bad.service")
        assert mgr.running == {"good.service"}
        assert mgr.ops("start") == ["good.service", "bad.service"]

    def test_reset(self):
        mgr = MockServiceManager()
        mgr.set_failure("stop")
        mgr.reset()
        mgr.stop("x.service", 1)
        assert mgr.calls == [("stop", "x.service")]


def test_engine_config_strip_root(tmp_path):
    config = EngineConfig(root_dir=tmp_path)
    assert config.strip_root(tmp_path / "apps/foo") == "/apps/foo"
    assert config.strip_root(tmp_path) == "/"
    assert config.strip_root("/elsewhere") == "/elsewhere"
