import logging
import shutil
import subprocess
from typing import List

from .errors import CommandError
from .ui import LOGGER_NAME

OPERATION_TIMEOUT: int = 300  # seconds

logger = logging.getLogger(LOGGER_NAME)


# ----------------------------------------------------------------
# Command Execution Helpers
# ----------------------------------------------------------------
def run_command(
    cmd: List[str],
    check: bool = True,
    capture_output: bool = True,
    timeout: int = OPERATION_TIMEOUT,
) -> subprocess.CompletedProcess:
    """
    Execute a system command.
    Raises CommandError when ``check`` is set and the command fails.
    """
    logger.debug(f"Running command: {' '.join(cmd)}")
    try:
        result = subprocess.run(
            cmd,
            text=True,
            capture_output=capture_output,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired as e:
        raise CommandError(cmd, -1, f"timed out after {timeout} seconds") from e
    except OSError as e:
        raise CommandError(cmd, 127, str(e)) from e

    if check and result.returncode != 0:
        raise CommandError(cmd, result.returncode, result.stderr or "")
    return result


def command_exists(cmd: str) -> bool:
    """Check if a command exists in the system's PATH."""
    return shutil.which(cmd) is not None
