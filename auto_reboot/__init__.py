"""
Auto Reboot Setup
--------------------------------------------------

Configures a Linux host to reboot itself every N hours through a systemd
timer, a one-shot service and a small worker script.
"""

APP_NAME: str = "Auto Reboot"
APP_SUBTITLE: str = "Scheduled Reboot Configuration Tool"
VERSION: str = "1.0.0"

__version__ = VERSION
