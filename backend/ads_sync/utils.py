"""
Shared utility functions.
"""

import logging
import math
import time
from typing import Any, Optional

logger = logging.getLogger(__name__)


def safe_error_detail(exc: Exception, fallback: str = "An internal error occurred. Please try again later.") -> str:
    """
    Return a sanitized error message safe for client consumption.
    Logs the real exception detail server-side.
    """
    logger.error(f"Operation failed: {exc}", exc_info=True)
    return fallback


def parse_float(value: Any) -> float:
    """
    Parse a report metric as float. Missing, blank, non-numeric, NaN and
    infinite values all count as 0 so they never leak into sums.
    """
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        number = float(str(value).strip().replace(",", "")) if isinstance(value, str) else float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(number):
        return 0.0
    return number


def parse_int(value: Any) -> int:
    """Parse a report count as int (truncating), with the same zero policy as parse_float."""
    return int(parse_float(value))


def ratio(numerator: float, denominator: float, scale: float = 1.0) -> float:
    """numerator / denominator * scale, or 0 when the denominator is 0."""
    if not denominator:
        return 0.0
    return numerator / denominator * scale


class Deadline:
    """
    Monotonic wall-clock budget for one sync invocation.
    ``Deadline(None)`` never expires.
    """

    def __init__(self, seconds: Optional[float]):
        self.seconds = seconds
        self._expires_at = None if seconds is None else time.monotonic() + seconds

    def remaining(self) -> Optional[float]:
        if self._expires_at is None:
            return None
        return max(0.0, self._expires_at - time.monotonic())

    @property
    def expired(self) -> bool:
        remaining = self.remaining()
        return remaining is not None and remaining <= 0

    def clip(self, seconds: float) -> float:
        """Shorten a wait so it never runs past the deadline."""
        remaining = self.remaining()
        if remaining is None:
            return seconds
        return min(seconds, remaining)
