import signal
import sys
from pathlib import Path

import pytest

from auto_reboot.config import Config


class FakeSystemctl:
    """Records systemctl calls and keeps unit state in memory."""

    def __init__(self, active=(), enabled=()):
        self.active = set(active)
        self.enabled = set(enabled)
        self.calls = []

    def is_active(self, unit):
        return unit in self.active

    def is_enabled(self, unit):
        return unit in self.enabled

    def daemon_reload(self):
        self.calls.append(("daemon-reload",))

    def enable(self, unit):
        self.calls.append(("enable", unit))
        self.enabled.add(unit)

    def disable(self, unit):
        self.calls.append(("disable", unit))
        self.enabled.discard(unit)

    def start(self, unit):
        self.calls.append(("start", unit))
        self.active.add(unit)

    def stop(self, unit):
        self.calls.append(("stop", unit))
        self.active.discard(unit)

    def status(self, unit):
        return f"● {unit} - Auto Reboot Timer"

    def next_elapse(self, unit):
        return "Mon 2026-10-19 18:00:00 UTC" if unit in self.active else None


@pytest.fixture
def config(tmp_path: Path) -> Config:
    return Config(
        WORKER_PATH=tmp_path / "usr/local/bin/auto_reboot.py",
        CONFIG_PATH=tmp_path / "etc/auto_reboot.conf",
        SYSTEMD_DIR=tmp_path / "etc/systemd/system",
        WORKER_LOG=tmp_path / "var/log/auto_reboot.log",
        LOG_FILE=tmp_path / "var/log/auto_reboot_setup.log",
        BACKUP_ROOT=tmp_path / "root",
        PYTHON=sys.executable,
        DEPENDENCIES={},
    )


@pytest.fixture
def fake_systemctl():
    return FakeSystemctl


@pytest.fixture
def restore_signals():
    saved = {sig: signal.getsignal(sig) for sig in (signal.SIGINT, signal.SIGTERM)}
    yield
    for sig, handler in saved.items():
        signal.signal(sig, handler)
