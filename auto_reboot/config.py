from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List


# ----------------------------------------------------------------
# Data Structures
# ----------------------------------------------------------------
@dataclass
class Config:
    """Install locations and schedule constants for the auto reboot setup."""

    WORKER_PATH: Path = Path("/usr/local/bin/auto_reboot.py")
    CONFIG_PATH: Path = Path("/etc/auto_reboot.conf")
    SYSTEMD_DIR: Path = Path("/etc/systemd/system")
    WORKER_LOG: Path = Path("/var/log/auto_reboot.log")
    LOG_FILE: Path = Path("/var/log/auto_reboot_setup.log")
    BACKUP_ROOT: Path = Path("/root")
    BACKUP_PREFIX: str = "auto_reboot_backup_"

    SERVICE_NAME: str = "auto-reboot.service"
    TIMER_NAME: str = "auto-reboot.timer"
    PYTHON: str = "/usr/bin/python3"  # interpreter named in ExecStart
    PYTHON_PACKAGE: str = "python3"

    CONFIG_VERSION: str = "1.0"
    JITTER_BOUND: int = 600  # seconds, exclusive
    BOOT_DELAY: str = "15min"
    READ_WRITE_PATHS: List[str] = field(default_factory=lambda: ["/var/log", "/etc"])

    # command -> package providing it, checked along with PYTHON
    DEPENDENCIES: Dict[str, str] = field(
        default_factory=lambda: {
            "wall": "util-linux",
        }
    )
    PACKAGE_MANAGERS: List[str] = field(default_factory=lambda: ["apt", "yum", "dnf"])

    @property
    def service_path(self) -> Path:
        return Path(self.SYSTEMD_DIR) / self.SERVICE_NAME

    @property
    def timer_path(self) -> Path:
        return Path(self.SYSTEMD_DIR) / self.TIMER_NAME

    @property
    def artifacts(self) -> List[Path]:
        """The four files an installation consists of."""
        return [
            self.service_path,
            self.timer_path,
            Path(self.WORKER_PATH),
            Path(self.CONFIG_PATH),
        ]
