"""
Typed descriptors for the files an installation writes: the systemd service
and timer units and the ``key=value`` config file read by the worker.

Each descriptor renders through a format template and is parsed back and
checked before the installer is allowed to write it.
"""

import configparser
import random
import shlex
from dataclasses import dataclass, field
from typing import Dict, List

from .errors import UnitValidationError
from .worker import DEFAULT_INTERVAL, parse_key_values


def random_jitter(bound: int = 600) -> int:
    """Randomized timer delay in seconds, in ``[0, bound)``."""
    return random.randrange(bound)


def _parse_unit(text: str) -> configparser.ConfigParser:
    parser = configparser.ConfigParser(
        interpolation=None, strict=False, delimiters=("=",)
    )
    parser.optionxform = str  # systemd keys are case sensitive
    try:
        parser.read_string(text)
    except configparser.Error as e:
        raise UnitValidationError(f"Malformed unit text: {e}") from e
    return parser


def _require(parser: configparser.ConfigParser, required: Dict[str, List[str]]) -> None:
    for section, keys in required.items():
        if not parser.has_section(section):
            raise UnitValidationError(f"Missing [{section}] section")
        for key in keys:
            if not parser.get(section, key, fallback="").strip():
                raise UnitValidationError(f"Missing {key}= in [{section}]")


# ----------------------------------------------------------------
# Service Unit
# ----------------------------------------------------------------
@dataclass
class ServiceUnit:
    """One-shot job that runs the reboot worker."""

    exec_start: List[str]
    description: str = "Auto Reboot Service"
    user: str = "root"
    read_write_paths: List[str] = field(default_factory=lambda: ["/var/log", "/etc"])

    TEMPLATE = """[Unit]
Description={description}
After=network.target multi-user.target
Wants=network.target

[Service]
Type=oneshot
ExecStart={exec_start}
User={user}
# Sandboxing
NoNewPrivileges=yes
PrivateTmp=yes
ProtectSystem=strict
ProtectHome=yes
ReadWritePaths={read_write_paths}

[Install]
WantedBy=multi-user.target
"""

    REQUIRED = {
        "Unit": ["Description"],
        "Service": ["Type", "ExecStart", "ReadWritePaths"],
        "Install": ["WantedBy"],
    }

    def validate(self) -> None:
        if not self.exec_start or not self.exec_start[0].startswith("/"):
            raise UnitValidationError("ExecStart must name an absolute executable path")
        if not self.read_write_paths:
            raise UnitValidationError("ReadWritePaths must not be empty")
        for value in [self.description, self.user, *self.exec_start, *self.read_write_paths]:
            if "\n" in value:
                raise UnitValidationError(f"Newline in unit value: {value!r}")

    def render(self) -> str:
        self.validate()
        text = self.TEMPLATE.format(
            description=self.description,
            exec_start=" ".join(shlex.quote(part) for part in self.exec_start),
            user=self.user,
            read_write_paths=" ".join(self.read_write_paths),
        )
        parser = _parse_unit(text)
        _require(parser, self.REQUIRED)
        if parser.get("Service", "Type") != "oneshot":
            raise UnitValidationError("Service must be Type=oneshot")
        return text


# ----------------------------------------------------------------
# Timer Unit
# ----------------------------------------------------------------
@dataclass
class TimerUnit:
    """Calendar trigger firing the service every ``interval`` hours."""

    interval: int
    jitter: int
    service_name: str = "auto-reboot.service"
    description: str = "Auto Reboot Timer"
    boot_delay: str = "15min"
    jitter_bound: int = 600

    TEMPLATE = """[Unit]
Description={description}
Requires={service_name}

[Timer]
# Every {interval} hours
OnCalendar={on_calendar}
RandomizedDelaySec={jitter}
Persistent=true
# Not eligible until {boot_delay} after boot
OnBootSec={boot_delay}
OnUnitActiveSec={interval}h

[Install]
WantedBy=timers.target
"""

    REQUIRED = {
        "Unit": ["Description", "Requires"],
        "Timer": [
            "OnCalendar",
            "RandomizedDelaySec",
            "Persistent",
            "OnBootSec",
            "OnUnitActiveSec",
        ],
        "Install": ["WantedBy"],
    }

    @property
    def on_calendar(self) -> str:
        return f"*-*-* */{self.interval}:00:00"

    def validate(self) -> None:
        if isinstance(self.interval, bool) or not isinstance(self.interval, int):
            raise UnitValidationError(f"Interval must be an integer, got {self.interval!r}")
        if self.interval <= 0:
            raise UnitValidationError(f"Interval must be positive, got {self.interval}")
        if not 0 <= self.jitter < self.jitter_bound:
            raise UnitValidationError(
                f"RandomizedDelaySec must be in [0, {self.jitter_bound}), got {self.jitter}"
            )
        if not self.service_name.endswith(".service"):
            raise UnitValidationError(f"Not a service unit: {self.service_name}")

    def render(self) -> str:
        self.validate()
        text = self.TEMPLATE.format(
            description=self.description,
            service_name=self.service_name,
            interval=self.interval,
            on_calendar=self.on_calendar,
            jitter=self.jitter,
            boot_delay=self.boot_delay,
        )
        _require(_parse_unit(text), self.REQUIRED)
        return text


# ----------------------------------------------------------------
# Worker Config File
# ----------------------------------------------------------------
@dataclass
class RebootConfigFile:
    """``key=value`` file sourced by the worker on every run."""

    interval: int
    version: str = "1.0"

    def render(self) -> str:
        if isinstance(self.interval, bool) or not isinstance(self.interval, int) or self.interval <= 0:
            raise UnitValidationError(f"Interval must be a positive integer, got {self.interval!r}")
        return (
            "# Auto reboot configuration\n"
            f"REBOOT_INTERVAL={self.interval}\n"
            f'CONFIG_VERSION="{self.version}"\n'
        )

    @classmethod
    def parse(cls, text: str) -> "RebootConfigFile":
        values = parse_key_values(text)
        try:
            interval = int(values.get("REBOOT_INTERVAL", DEFAULT_INTERVAL))
        except ValueError:
            interval = DEFAULT_INTERVAL
        return cls(interval=interval, version=values.get("CONFIG_VERSION", "1.0"))
