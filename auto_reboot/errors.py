# ----------------------------------------------------------------
# Custom Exception Classes
# ----------------------------------------------------------------
class AutoRebootError(Exception):
    pass


class PrivilegeError(AutoRebootError):
    pass


class CommandError(AutoRebootError):
    """An external command exited with a non-zero status."""

    def __init__(self, cmd, returncode: int, stderr: str = "") -> None:
        self.cmd = list(cmd)
        self.returncode = returncode
        self.stderr = stderr
        message = f"Command failed ({returncode}): {' '.join(self.cmd)}"
        if stderr:
            message += f": {stderr.strip()}"
        super().__init__(message)


class UnitValidationError(AutoRebootError):
    pass
