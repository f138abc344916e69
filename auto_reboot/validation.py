"""Operator input validation for the reboot interval."""

import re
from dataclasses import dataclass
from typing import Callable, Optional

from .ui import print_error

_DIGITS = re.compile(r"^[0-9]+$")


@dataclass(frozen=True)
class ValidationResult:
    value: Optional[int] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.value is not None

    def __bool__(self) -> bool:
        return self.ok


def validate_interval(raw: Optional[str]) -> ValidationResult:
    """
    Validate a reboot interval in hours.

    Accepts only a string of decimal digits with a nonzero value. There is
    no upper bound.
    """
    text = (raw or "").strip()
    if not _DIGITS.match(text):
        return ValidationResult(error="Please enter a valid positive integer.")
    try:
        value = int(text)
    except ValueError:
        # int() refuses very long digit strings (sys.get_int_max_str_digits)
        return ValidationResult(error="That interval is too long to use, please enter a smaller number.")
    if value == 0:
        return ValidationResult(error="The interval must be greater than zero.")
    return ValidationResult(value=value)


def prompt_interval(ask: Callable[[], str]) -> int:
    """Call ``ask`` until it returns a valid interval."""
    while True:
        result = validate_interval(ask())
        if result:
            return result.value
        print_error(result.error)
