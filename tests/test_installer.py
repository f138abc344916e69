import datetime
import os
import stat
from pathlib import Path

import pytest

from auto_reboot import installer as installer_mod
from auto_reboot.errors import CommandError
from auto_reboot.installer import (
    InstallStage,
    Installer,
    backup_existing_installation,
    ensure_dependencies,
)


def mode(path):
    return stat.S_IMODE(os.stat(path).st_mode)


def backups(config):
    root = config.BACKUP_ROOT
    if not root.exists():
        return []
    return sorted(p for p in root.iterdir() if p.name.startswith(config.BACKUP_PREFIX))


def test_fresh_install_writes_all_artifacts(config, fake_systemctl):
    systemctl = fake_systemctl()
    inst = Installer(config, systemctl)
    inst.ensure_installed(6, jitter=123)

    conf_lines = config.CONFIG_PATH.read_text().splitlines()
    assert "REBOOT_INTERVAL=6" in conf_lines
    timer = config.timer_path.read_text()
    assert "OnCalendar=*-*-* */6:00:00" in timer
    assert "OnUnitActiveSec=6h" in timer
    assert "RandomizedDelaySec=123" in timer

    service = config.service_path.read_text()
    assert f"ExecStart={config.PYTHON} {config.WORKER_PATH}" in service
    assert f"--config {config.CONFIG_PATH}" in service

    assert config.WORKER_PATH.read_text().startswith("#!/usr/bin/env python3")
    assert mode(config.WORKER_PATH) == 0o755
    assert mode(config.CONFIG_PATH) == 0o644

    assert systemctl.calls == [
        ("daemon-reload",),
        ("enable", "auto-reboot.timer"),
        ("start", "auto-reboot.timer"),
    ]
    assert inst.stage == InstallStage.ACTIVATED
    assert backups(config) == []


def test_random_jitter_is_rolled_when_not_given(config, fake_systemctl):
    inst = Installer(config, fake_systemctl())
    inst.ensure_installed(2)
    assert 0 <= inst.jitter < 600
    assert f"RandomizedDelaySec={inst.jitter}" in config.timer_path.read_text()


def test_reinstall_backs_up_prior_artifacts_once(config, fake_systemctl):
    systemctl = fake_systemctl()
    Installer(config, systemctl).ensure_installed(6, jitter=1)
    old = {p.name: p.read_text() for p in config.artifacts}
    systemctl.calls.clear()

    inst = Installer(config, systemctl)
    inst.ensure_installed(12, jitter=2)

    dirs = backups(config)
    assert len(dirs) == 1
    assert dirs[0] == inst.backup_dir
    copied = {p.name: p.read_text() for p in dirs[0].iterdir()}
    assert copied == old
    assert "REBOOT_INTERVAL=6" in copied["auto_reboot.conf"]
    assert "REBOOT_INTERVAL=12" in config.CONFIG_PATH.read_text()

    assert systemctl.calls[:2] == [("stop", "auto-reboot.timer"), ("disable", "auto-reboot.timer")]
    assert ("start", "auto-reboot.timer") in systemctl.calls


def test_active_service_is_stopped(config, fake_systemctl):
    systemctl = fake_systemctl(active={"auto-reboot.service"})
    inst = Installer(config, systemctl)
    assert inst.stop_existing_services() == ["auto-reboot.service"]
    assert systemctl.calls == [("stop", "auto-reboot.service")]


def test_backup_skipped_without_prior_service(config):
    config.CONFIG_PATH.parent.mkdir(parents=True)
    config.CONFIG_PATH.write_text("REBOOT_INTERVAL=4\n")
    assert backup_existing_installation(config) is None
    assert backups(config) == []


def test_backup_copies_only_present_artifacts(config):
    config.service_path.parent.mkdir(parents=True)
    config.service_path.write_text("[Unit]\n")
    now = datetime.datetime(2026, 10, 19, 8, 30, 5)

    backup_dir = backup_existing_installation(config, now=now)

    assert backup_dir.name == "auto_reboot_backup_20261019_083005"
    assert [p.name for p in backup_dir.iterdir()] == ["auto-reboot.service"]


def test_second_run_with_same_inputs_changes_nothing(config, fake_systemctl):
    systemctl = fake_systemctl()
    Installer(config, systemctl).ensure_installed(8, jitter=30)
    systemctl.calls.clear()

    inst = Installer(config, systemctl)
    inst.ensure_installed(8, jitter=30)

    assert inst.written == []
    # the timer was active, so it is stopped, re-enabled and started again
    assert ("start", "auto-reboot.timer") in systemctl.calls


def test_failure_aborts_remaining_steps(config, fake_systemctl):
    systemctl = fake_systemctl()

    def broken_reload():
        raise CommandError(["systemctl", "daemon-reload"], 1, "boom")

    systemctl.daemon_reload = broken_reload
    inst = Installer(config, systemctl)
    with pytest.raises(CommandError):
        inst.ensure_installed(6, jitter=0)

    assert inst.stage == InstallStage.FILES_WRITTEN
    assert inst.status[InstallStage.ACTIVATED]["status"] == "failed"
    assert systemctl.calls == []


def test_invalid_interval_writes_nothing(config, fake_systemctl):
    inst = Installer(config, fake_systemctl())
    with pytest.raises(Exception):
        inst.ensure_installed(0)
    assert not any(p.exists() for p in config.artifacts)
    assert inst.stage == InstallStage.START


def test_show_status_reports(config, fake_systemctl, capsys):
    inst = Installer(config, fake_systemctl())
    inst.ensure_installed(6, jitter=5)
    inst.print_status_report()
    inst.show_status()
    out = capsys.readouterr().out
    assert "6 hours" in out
    assert "2026-10-19 18:00:00" in out
    assert inst.stage == InstallStage.REPORTED


def test_show_status_without_installation(config, fake_systemctl, capsys):
    Installer(config, fake_systemctl()).show_status()
    out = capsys.readouterr().out
    assert "not installed" in out
    assert "8 hours" not in out


def test_show_status_reads_installed_interval(config, fake_systemctl, capsys):
    config.CONFIG_PATH.parent.mkdir(parents=True)
    config.CONFIG_PATH.write_text('REBOOT_INTERVAL=12\nCONFIG_VERSION="1.0"\n')
    Installer(config, fake_systemctl()).show_status()
    assert "12 hours" in capsys.readouterr().out


def test_failure_text_with_brackets_is_reported(config, fake_systemctl, capsys):
    inst = Installer(config, fake_systemctl())
    inst.status[InstallStage.ACTIVATED] = {"status": "failed", "message": "Missing [Service] section [/etc]"}
    inst.print_status_report()
    assert "[Service]" in capsys.readouterr().out


class FakeHost:
    """PATH lookups and package installs; installing a package makes its targets exist."""

    def __init__(self, present, provides=None):
        self.present = set(present)
        self.provides = provides or {}
        self.commands = []

    def command_exists(self, cmd):
        return cmd in self.present

    def run_command(self, cmd, capture_output=True):
        self.commands.append(cmd)
        if cmd[1] == "install":
            target = self.provides.get(cmd[-1])
            if isinstance(target, Path):
                target.write_text("")
            elif target:
                self.present.add(target)


@pytest.fixture
def fake_host(monkeypatch):
    def make(present, provides=None):
        host = FakeHost(present, provides)
        monkeypatch.setattr(installer_mod, "command_exists", host.command_exists)
        monkeypatch.setattr(installer_mod, "run_command", host.run_command)
        return host

    return make


def test_dependencies_installed_with_apt(config, fake_host):
    config.DEPENDENCIES = {"wall": "util-linux"}
    host = fake_host({"apt", "dnf"}, {"util-linux": "wall"})

    assert ensure_dependencies(config) == []
    assert host.commands == [["apt", "update"], ["apt", "install", "-y", "util-linux"]]


def test_interpreter_checked_at_its_absolute_path(config, fake_host, tmp_path):
    python = tmp_path / "bin" / "python3"
    python.parent.mkdir()
    config.PYTHON = str(python)
    # a python3 on PATH does not count, the unit runs config.PYTHON
    host = fake_host({"python3", "apt"}, {"python3": python})

    assert ensure_dependencies(config) == []
    assert host.commands == [["apt", "update"], ["apt", "install", "-y", "python3"]]
    assert python.exists()


def test_dependencies_use_yum_without_apt(config, fake_host):
    config.DEPENDENCIES = {"wall": "util-linux"}
    host = fake_host({"yum"})

    assert ensure_dependencies(config) == ["wall"]
    assert host.commands == [["yum", "install", "-y", "util-linux"]]


def test_missing_package_manager_only_warns(config, fake_host, fake_systemctl):
    config.DEPENDENCIES = {"wall": "util-linux"}
    host = fake_host(set())

    assert ensure_dependencies(config) == ["wall"]
    assert host.commands == []

    inst = Installer(config, fake_systemctl())
    inst.ensure_installed(6, jitter=0)
    assert inst.status[InstallStage.DEPENDENCIES_READY]["message"] == "missing: wall"
    assert inst.stage == InstallStage.ACTIVATED
