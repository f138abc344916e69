"""
Interactive installer entry point.

Usage:
  sudo auto-reboot-setup                 # prompt for the interval
  sudo auto-reboot-setup --interval 6    # no prompt
  sudo auto-reboot-setup --status        # report only
"""

import argparse
import os
import signal
import sys
from typing import Any, List, Optional

from rich.prompt import Prompt
from rich.traceback import install as install_rich_traceback

from . import APP_NAME, VERSION
from .config import Config
from .errors import AutoRebootError, PrivilegeError
from .installer import Installer
from .ui import (
    NordColors,
    console,
    create_header,
    display_panel,
    print_error,
    print_warning,
    setup_logger,
)
from .validation import prompt_interval, validate_interval


# ----------------------------------------------------------------
# Signal Handling
# ----------------------------------------------------------------
def signal_handler(sig: int, frame: Any) -> None:
    """Gracefully handle termination signals."""
    print_warning(f"Process interrupted by {signal.Signals(sig).name}")
    sys.exit(128 + sig)


def check_root() -> None:
    """Ensure the script is run with root privileges."""
    if os.geteuid() != 0:
        raise PrivilegeError("This script must be run with root privileges: sudo auto-reboot-setup")


def ask_interval() -> str:
    return Prompt.ask(f"[bold {NordColors.PURPLE}]Reboot interval (hours)[/]", console=console)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="auto-reboot-setup",
        description="Configure this host to reboot itself every N hours via a systemd timer",
    )
    parser.add_argument("--interval", metavar="HOURS", help="reboot interval in hours; skips the prompt")
    parser.add_argument("--status", action="store_true", help="show the current schedule and exit")
    parser.add_argument("--version", action="version", version=f"{APP_NAME} {VERSION}")
    return parser.parse_args(argv)


def run(args: argparse.Namespace, config: Config) -> int:
    check_root()
    setup_logger(config.LOG_FILE)
    installer = Installer(config)

    if args.status:
        installer.show_status()
        return 0

    display_panel(
        "This will configure the system to reboot itself automatically!\n"
        "Make sure you run it during a low-traffic window.",
        style=NordColors.YELLOW,
        title="Warning",
    )

    if args.interval is not None:
        result = validate_interval(args.interval)
        if not result:
            print_error(result.error)
            return 1
        interval = result.value
    else:
        interval = prompt_interval(ask_interval)

    try:
        installer.ensure_installed(interval)
    finally:
        installer.print_status_report()
    installer.show_status()
    return 0


# ----------------------------------------------------------------
# Main Program Entry Point
# ----------------------------------------------------------------
def main(argv: Optional[List[str]] = None, config: Optional[Config] = None) -> int:
    install_rich_traceback(show_locals=False)
    for sig in (signal.SIGINT, signal.SIGTERM):
        signal.signal(sig, signal_handler)

    args = parse_args(argv)
    console.print(create_header())
    try:
        return run(args, config or Config())
    except PrivilegeError as e:
        print_error(str(e))
        return 1
    except (KeyboardInterrupt, EOFError):
        print_warning("Operation cancelled by user")
        return 130
    except AutoRebootError as e:
        print_error(f"Installation failed: {e}")
        return 1
    except Exception as e:
        print_error(f"Unexpected error: {e}")
        console.print_exception()
        return 1


if __name__ == "__main__":
    sys.exit(main())
