#!/usr/bin/env python3
"""
Auto Reboot Worker
--------------------------------------------------

Runs once per timer trigger. Skips the reboot when the host is overloaded,
otherwise broadcasts a warning, counts down five minutes and reboots.

This file is copied verbatim to the target host and executed by the
system interpreter, so it must only use the standard library.
"""

import argparse
import logging
import logging.handlers
import os
import shutil
import signal
import subprocess
import sys
import time
from pathlib import Path
from typing import Dict, List, Optional

DEFAULT_CONFIG: str = "/etc/auto_reboot.conf"
DEFAULT_LOG_FILE: str = "/var/log/auto_reboot.log"
DEFAULT_INTERVAL: int = 8
SYSLOG_TAG: str = "auto-reboot"
SYSLOG_SOCKET: str = "/dev/log"
COUNTDOWN_SECONDS: int = 300
LOAD_FACTOR: int = 2

logger = logging.getLogger(SYSLOG_TAG)


# ----------------------------------------------------------------
# Configuration
# ----------------------------------------------------------------
def parse_key_values(text: str) -> Dict[str, str]:
    """Parse shell-style ``KEY=value`` lines, ignoring comments and quotes."""
    values: Dict[str, str] = {}
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, _, value = line.partition("=")
        values[key.strip()] = value.strip().strip("'\"")
    return values


def load_interval(config_file: str) -> int:
    """Read REBOOT_INTERVAL from the config file, defaulting to 8 hours."""
    path = Path(config_file)
    if not path.is_file():
        return DEFAULT_INTERVAL
    values = parse_key_values(path.read_text())
    try:
        return int(values.get("REBOOT_INTERVAL", DEFAULT_INTERVAL))
    except ValueError:
        return DEFAULT_INTERVAL


# ----------------------------------------------------------------
# Logging
# ----------------------------------------------------------------
def setup_logging(log_file: str) -> logging.Logger:
    """Append to the log file, echo to stdout and mirror to syslog."""
    logger.setLevel(logging.INFO)
    logger.propagate = False
    for h in logger.handlers[:]:
        logger.removeHandler(h)
        h.close()

    formatter = logging.Formatter("%(asctime)s - %(message)s", "%Y-%m-%d %H:%M:%S")
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    try:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))
    except OSError as e:
        print(f"Cannot open log file {log_file}: {e}", file=sys.stderr)
    for handler in handlers:
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    if os.path.exists(SYSLOG_SOCKET):
        try:
            syslog = logging.handlers.SysLogHandler(address=SYSLOG_SOCKET)
        except OSError:
            syslog = None
        if syslog is not None:
            syslog.setFormatter(logging.Formatter(f"{SYSLOG_TAG}: %(message)s"))
            logger.addHandler(syslog)
    return logger


# ----------------------------------------------------------------
# Host Probes
# ----------------------------------------------------------------
def run_command(cmd: List[str]) -> str:
    """Run a command and return its stripped stdout, or "" if it cannot run."""
    try:
        result = subprocess.run(cmd, capture_output=True, text=True, check=False)
    except OSError:
        return ""
    return result.stdout.strip()


def count_sessions() -> int:
    output = run_command(["who"])
    return len([line for line in output.splitlines() if line.strip()])


def read_load_average() -> float:
    return os.getloadavg()[0]


def cpu_count() -> int:
    return os.cpu_count() or 1


def load_summary() -> str:
    try:
        return Path("/proc/loadavg").read_text().strip()
    except OSError:
        return " ".join(f"{value:.2f}" for value in os.getloadavg())


def format_size(num_bytes: float) -> str:
    """Convert bytes to a human-readable string."""
    for unit in ["B", "KB", "MB", "GB", "TB"]:
        if num_bytes < 1024:
            return f"{num_bytes:.1f} {unit}"
        num_bytes /= 1024
    return f"{num_bytes:.1f} PB"


def memory_summary() -> str:
    for line in run_command(["free", "-h"]).splitlines():
        fields = line.split()
        if fields and fields[0] == "Mem:" and len(fields) >= 3:
            return f"{fields[2]}/{fields[1]}"
    return "unknown"


def disk_summary(path: str = "/") -> str:
    usage = shutil.disk_usage(path)
    percent = usage.used / usage.total * 100 if usage.total else 0.0
    return f"{format_size(usage.used)}/{format_size(usage.total)} ({percent:.0f}%)"


# ----------------------------------------------------------------
# Checks
# ----------------------------------------------------------------
def check_users() -> bool:
    """Log active sessions. Returns True when anyone is logged in."""
    users = count_sessions()
    if users > 0:
        logger.info(f"Active user sessions detected: {users}")
        return True
    return False


def check_load() -> bool:
    """Returns False when the one-minute load exceeds LOAD_FACTOR x cores."""
    load = read_load_average()
    threshold = cpu_count() * LOAD_FACTOR
    if load > threshold:
        logger.info(f"System load is high: {load:.2f} (threshold: {threshold}), postponing reboot")
        return False
    return True


# ----------------------------------------------------------------
# Reboot
# ----------------------------------------------------------------
def broadcast(message: str) -> None:
    run_command(["wall", message])


def countdown(seconds: int = COUNTDOWN_SECONDS) -> None:
    """Block for ``seconds``, broadcasting at every full minute remaining."""
    remaining = seconds
    while remaining > 0:
        if remaining % 60 == 0:
            minutes = remaining // 60
            broadcast(f"System will reboot in {minutes} minute(s), save your work!")
        time.sleep(1)
        remaining -= 1


def request_reboot() -> None:
    subprocess.run(["systemctl", "reboot"], check=True)


def handle_signal(signum: int, frame: Optional[object]) -> None:
    logger.warning(f"Reboot aborted by {signal.Signals(signum).name}")
    sys.exit(1)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Reboot this host after a five minute warning")
    parser.add_argument("--config", default=DEFAULT_CONFIG, help="path to the reboot config file")
    parser.add_argument("--log-file", default=DEFAULT_LOG_FILE, help="path to the reboot log")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    setup_logging(args.log_file)
    for sig in (signal.SIGINT, signal.SIGTERM):
        signal.signal(sig, handle_signal)

    interval = load_interval(args.config)
    logger.info("=== Starting scheduled reboot ===")
    logger.info(f"Reboot interval: {interval} hours")
    logger.info(f"Uptime: {run_command(['uptime', '-p']) or 'unknown'}")
    logger.info(f"Load: {load_summary()}")

    # Sessions only notify, they never block the reboot.
    if check_users():
        logger.info("Users are logged in, sending reboot notice and continuing")

    if not check_load():
        logger.info("Load too high, skipping this reboot")
        return 1

    logger.info("Broadcasting reboot warning")
    broadcast(
        "WARNING: this system will reboot in 5 minutes for scheduled maintenance. "
        "Save your work now!"
    )
    logger.info(f"Memory used: {memory_summary()}")
    logger.info(f"Disk used: {disk_summary()}")

    countdown(COUNTDOWN_SECONDS)

    logger.info("Rebooting now...")
    os.sync()
    request_reboot()
    return 0


if __name__ == "__main__":
    sys.exit(main())
