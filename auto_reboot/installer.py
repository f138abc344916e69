"""
Install orchestrator: backup, teardown, dependencies, file generation,
activation and status report, in that order.

Every step asks systemd or the filesystem for the current state and only
acts on what differs, so running the installer twice is safe.
"""

import datetime
import logging
import os
import shutil
import time
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional

from rich import box
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from . import worker
from .commands import command_exists, run_command
from .config import Config
from .errors import AutoRebootError
from .systemd import Systemctl
from .ui import (
    LOGGER_NAME,
    NordColors,
    console,
    print_info,
    print_section,
    print_step,
    print_success,
    print_warning,
)
from .units import RebootConfigFile, ServiceUnit, TimerUnit, random_jitter

logger = logging.getLogger(LOGGER_NAME)


class InstallStage(Enum):
    START = "start"
    VALIDATED = "validated"
    BACKED_UP = "backed_up"
    STOPPED = "stopped"
    DEPENDENCIES_READY = "dependencies_ready"
    FILES_WRITTEN = "files_written"
    ACTIVATED = "activated"
    REPORTED = "reported"


PHASES: List[InstallStage] = list(InstallStage)[1:]


# ----------------------------------------------------------------
# Backup
# ----------------------------------------------------------------
def backup_existing_installation(
    config: Config, now: Optional[datetime.datetime] = None
) -> Optional[Path]:
    """
    Copy the artifacts of a prior installation into one timestamped directory.

    Nothing happens unless the service unit exists. Artifacts that are
    missing are skipped.
    """
    if not config.service_path.is_file():
        logger.debug("No prior installation found, skipping backup")
        return None

    stamp = (now or datetime.datetime.now()).strftime("%Y%m%d_%H%M%S")
    backup_dir = Path(config.BACKUP_ROOT) / f"{config.BACKUP_PREFIX}{stamp}"
    backup_dir.mkdir(parents=True, exist_ok=True)

    for artifact in config.artifacts:
        if artifact.is_file():
            shutil.copy2(artifact, backup_dir / artifact.name)
            logger.debug(f"Backed up {artifact} to {backup_dir}")
        else:
            logger.debug(f"Not present, not backed up: {artifact}")

    logger.info(f"Existing configuration backed up to: {backup_dir}")
    return backup_dir


# ----------------------------------------------------------------
# Dependencies
# ----------------------------------------------------------------
def install_command(manager: str, package: str) -> List[List[str]]:
    if manager == "apt":
        return [["apt", "update"], ["apt", "install", "-y", package]]
    return [[manager, "install", "-y", package]]


def dependency_present(cmd: str) -> bool:
    """Absolute paths must exist as files, bare names must be on PATH."""
    if os.path.isabs(cmd):
        return Path(cmd).exists()
    return command_exists(cmd)


def ensure_dependencies(config: Config) -> List[str]:
    """
    Install the packages behind the worker's interpreter and any missing
    required command. Returns what is still missing afterwards.
    """
    required = {config.PYTHON: config.PYTHON_PACKAGE, **config.DEPENDENCIES}
    missing = [cmd for cmd in required if not dependency_present(cmd)]
    if not missing:
        logger.debug("All dependencies present")
        return []

    manager = next((m for m in config.PACKAGE_MANAGERS if command_exists(m)), None)
    if manager is None:
        for cmd in missing:
            logger.warning(
                f"Cannot install '{required[cmd]}' automatically, please install it manually"
            )
        return missing

    for cmd in missing:
        package = required[cmd]
        logger.info(f"Installing {package} with {manager}...")
        for step in install_command(manager, package):
            run_command(step, capture_output=False)
    return [cmd for cmd in missing if not dependency_present(cmd)]


def write_artifact(path: Path, content: str, mode: int) -> bool:
    """Write ``content`` to ``path`` unless it is already there. Returns True if written."""
    path = Path(path)
    changed = not path.is_file() or path.read_text() != content
    if changed:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_name(f".{path.name}.tmp")
        tmp.write_text(content)
        os.chmod(tmp, mode)
        os.replace(tmp, path)
    else:
        os.chmod(path, mode)
    return changed


# ----------------------------------------------------------------
# Main Installer Class
# ----------------------------------------------------------------
class Installer:
    """Brings the host to the state "reboot every N hours"."""

    def __init__(self, config: Optional[Config] = None, systemctl: Optional[Systemctl] = None):
        self.config = config or Config()
        self.systemctl = systemctl or Systemctl()
        self.stage = InstallStage.START
        self.status: Dict[InstallStage, Dict[str, str]] = {
            phase: {"status": "pending", "message": ""} for phase in PHASES
        }
        self.interval: Optional[int] = None
        self.jitter: Optional[int] = None
        self.backup_dir: Optional[Path] = None
        self.written: List[Path] = []

    def _advance(self, stage: InstallStage, message: str = "") -> None:
        self.stage = stage
        self.status[stage] = {"status": "success", "message": message}
        logger.debug(f"Install stage: {stage.value}")

    def ensure_installed(self, interval: int, jitter: Optional[int] = None) -> None:
        """Run the whole install sequence. Any failure aborts the remaining steps."""
        start = time.time()
        if isinstance(interval, bool) or not isinstance(interval, int) or interval <= 0:
            raise AutoRebootError(f"Invalid reboot interval: {interval!r}")
        self.interval = interval
        self._advance(InstallStage.VALIDATED, f"{interval} hours")
        logger.info(f"Configuring automatic reboot every {interval} hours")

        current = None
        try:
            current = InstallStage.BACKED_UP
            self.backup_dir = backup_existing_installation(self.config)
            self._advance(current, str(self.backup_dir) if self.backup_dir else "nothing to back up")

            current = InstallStage.STOPPED
            self._advance(current, ", ".join(self.stop_existing_services()) or "nothing active")

            current = InstallStage.DEPENDENCIES_READY
            still_missing = ensure_dependencies(self.config)
            self._advance(
                current,
                f"missing: {', '.join(still_missing)}" if still_missing else "all present",
            )

            current = InstallStage.FILES_WRITTEN
            self.write_artifacts(interval, jitter)
            self._advance(current, f"{len(self.written)} file(s) changed")

            current = InstallStage.ACTIVATED
            self.activate()
            self._advance(current, self.config.TIMER_NAME)
        except Exception as e:
            if current is not None:
                self.status[current] = {"status": "failed", "message": str(e)}
            logger.error(f"Installation failed at {current.value if current else 'start'}: {e}")
            raise

        logger.info(f"Installation finished in {time.time() - start:.2f}s")

    # ------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------
    def stop_existing_services(self) -> List[str]:
        """Stop whatever part of a prior installation is running."""
        stopped = []
        timer, service = self.config.TIMER_NAME, self.config.SERVICE_NAME
        if self.systemctl.is_active(timer):
            logger.info(f"Stopping existing {timer}...")
            self.systemctl.stop(timer)
            self.systemctl.disable(timer)
            stopped.append(timer)
        if self.systemctl.is_active(service):
            logger.info(f"Stopping existing {service}...")
            self.systemctl.stop(service)
            stopped.append(service)
        return stopped

    def render_artifacts(self, interval: int, jitter: int) -> Dict[Path, str]:
        """Render all four files, validating each before anything touches disk."""
        cfg = self.config
        service = ServiceUnit(
            exec_start=[
                cfg.PYTHON,
                str(cfg.WORKER_PATH),
                "--config",
                str(cfg.CONFIG_PATH),
                "--log-file",
                str(cfg.WORKER_LOG),
            ],
            read_write_paths=list(cfg.READ_WRITE_PATHS),
        )
        timer = TimerUnit(
            interval=interval,
            jitter=jitter,
            service_name=cfg.SERVICE_NAME,
            boot_delay=cfg.BOOT_DELAY,
            jitter_bound=cfg.JITTER_BOUND,
        )
        return {
            Path(cfg.WORKER_PATH): worker_source(),
            Path(cfg.CONFIG_PATH): RebootConfigFile(interval, cfg.CONFIG_VERSION).render(),
            cfg.service_path: service.render(),
            cfg.timer_path: timer.render(),
        }

    def write_artifacts(self, interval: int, jitter: Optional[int] = None) -> None:
        self.jitter = random_jitter(self.config.JITTER_BOUND) if jitter is None else jitter
        rendered = self.render_artifacts(interval, self.jitter)
        modes = {Path(self.config.WORKER_PATH): 0o755}
        self.written = []
        for path, content in rendered.items():
            if write_artifact(path, content, modes.get(path, 0o644)):
                self.written.append(path)
                print_step(f"Wrote {path}")
            else:
                logger.debug(f"Unchanged: {path}")

    def activate(self) -> None:
        timer = self.config.TIMER_NAME
        logger.info("Reloading systemd configuration...")
        self.systemctl.daemon_reload()
        if not self.systemctl.is_enabled(timer):
            logger.info(f"Enabling {timer}...")
            self.systemctl.enable(timer)
        if not self.systemctl.is_active(timer):
            logger.info(f"Starting {timer}...")
            self.systemctl.start(timer)

    # ------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------
    def print_status_report(self) -> None:
        """Print a status table for all install phases."""
        table = Table(title="Install Status Report", style="banner", box=box.ROUNDED)
        table.add_column("Phase", style="header")
        table.add_column("Status", style="info")
        table.add_column("Message", style="info")

        for phase, data in self.status.items():
            status_color = {
                "pending": "debug",
                "success": "success",
                "failed": "error",
            }.get(data["status"], "info")
            table.add_row(
                phase.value.replace("_", " ").title(),
                f"[{status_color}]{data['status'].upper()}[/{status_color}]",
                Text(data["message"]),
            )
        console.print(table)

    def show_status(self) -> None:
        cfg = self.config
        interval = self.interval or installed_interval(cfg)

        print_section("Auto Reboot Configuration")
        summary = Table(show_header=False, box=box.SIMPLE)
        summary.add_column("Item", style=f"bold {NordColors.FROST_2}")
        summary.add_column("Value", style=NordColors.SNOW_STORM_1)
        summary.add_row("Reboot interval", f"{interval} hours" if interval else "not installed")
        summary.add_row("Worker script", Text(str(cfg.WORKER_PATH)))
        summary.add_row("Config file", Text(str(cfg.CONFIG_PATH)))
        summary.add_row("Log file", Text(str(cfg.WORKER_LOG)))
        if self.jitter is not None:
            summary.add_row("Randomized delay", f"{self.jitter}s")
        if self.backup_dir:
            summary.add_row("Backup", Text(str(self.backup_dir)))
        console.print(summary)

        print_section("Timer Status")
        timer_status = self.systemctl.status(cfg.TIMER_NAME)
        if timer_status:
            console.print(timer_status, markup=False, highlight=False)
        else:
            console.print("[dim]no status available[/dim]")

        print_section("Next Reboot")
        next_time = self.systemctl.next_elapse(cfg.TIMER_NAME)
        if next_time:
            print_info(f"Next reboot: {next_time}")
        else:
            print_warning("Could not determine the next reboot time, check the timer status")

        commands = Table(show_header=False, box=box.SIMPLE)
        commands.add_column("What", style=NordColors.FROST_3)
        commands.add_column("Command", style=NordColors.SNOW_STORM_1)
        for what, command in management_commands(cfg):
            commands.add_row(what, Text(command))
        console.print(
            Panel(
                commands,
                title=f"[bold {NordColors.FROST_2}]Management Commands[/]",
                border_style=NordColors.FROST_3,
                box=box.ROUNDED,
            )
        )

        if self.stage == InstallStage.ACTIVATED:
            self._advance(InstallStage.REPORTED)
            print_success(f"Done. This system will reboot every {interval} hours.")


def management_commands(config: Config) -> List[tuple]:
    timer, service = config.TIMER_NAME, config.SERVICE_NAME
    return [
        ("Timer status", f"systemctl status {timer}"),
        ("Next run", f"systemctl list-timers {timer}"),
        ("Service journal", f"journalctl -u {service} -f"),
        ("Worker log", f"tail -f {config.WORKER_LOG}"),
        ("Stop auto reboot", f"systemctl stop {timer} && systemctl disable {timer}"),
        ("Restart timer", f"systemctl restart {timer}"),
    ]


def installed_interval(config: Config) -> Optional[int]:
    """Interval recorded in the config file, or None when nothing is installed."""
    path = Path(config.CONFIG_PATH)
    if not path.is_file():
        return None
    return RebootConfigFile.parse(path.read_text()).interval


def worker_source() -> str:
    """Source of the worker module, installed as-is on the host."""
    return Path(worker.__file__).read_text()
