"""Thin wrapper over ``systemctl``; systemd is the only record of unit state."""

from typing import Optional

from .commands import run_command


class Systemctl:
    def _run(self, *args: str, check: bool = True):
        return run_command(["systemctl", *args], check=check)

    def is_active(self, unit: str) -> bool:
        return self._run("is-active", "--quiet", unit, check=False).returncode == 0

    def is_enabled(self, unit: str) -> bool:
        return self._run("is-enabled", "--quiet", unit, check=False).returncode == 0

    def daemon_reload(self) -> None:
        self._run("daemon-reload")

    def enable(self, unit: str) -> None:
        self._run("enable", unit)

    def disable(self, unit: str) -> None:
        self._run("disable", unit)

    def start(self, unit: str) -> None:
        self._run("start", unit)

    def stop(self, unit: str) -> None:
        self._run("stop", unit)

    def status(self, unit: str) -> str:
        # status exits 3 for inactive units, which is still useful output
        result = self._run("status", unit, "--no-pager", "-l", check=False)
        return (result.stdout or "").rstrip()

    def next_elapse(self, timer: str) -> Optional[str]:
        """Wall-clock time of the timer's next trigger, if systemd knows it."""
        result = self._run(
            "show", timer, "--property=NextElapseUSecRealtime", "--value", check=False
        )
        value = (result.stdout or "").strip()
        if result.returncode != 0 or not value or value in ("n/a", "0"):
            return None
        return value
