"""
Health threshold configuration.

Usage:
    from onlinebank.core.health_thresholds import memory_threshold, check_threshold

    status = check_threshold(value=memory_percent, threshold=memory_threshold(settings))
    # Returns: "ok", "warning", or "critical"
"""

from dataclasses import dataclass
from typing import Literal

__all__ = [
    "Threshold",
    "check_threshold",
    "memory_threshold",
    "ThresholdStatus",
]

ThresholdStatus = Literal["ok", "warning", "critical"]


@dataclass(frozen=True)
class Threshold:
    """
    Health threshold with warning and critical levels.

    Attributes:
        warning: Value at which to warn (degraded)
        critical: Value at which to alert (unhealthy)
        unit: Human-readable unit for display
        name: Optional name for logging
    """

    warning: float
    critical: float
    unit: str = ""
    name: str = ""

    def __str__(self) -> str:
        return f"{self.name or 'threshold'}: warn={self.warning}{self.unit}, crit={self.critical}{self.unit}"


def check_threshold(value: float, threshold: Threshold) -> ThresholdStatus:
    """
    Check if value exceeds threshold.

    Returns:
        "ok" if below warning
        "warning" if at/above warning but below critical
        "critical" if at/above critical
    """
    if value >= threshold.critical:
        return "critical"
    elif value >= threshold.warning:
        return "warning"
    return "ok"


def memory_threshold(settings) -> Threshold:
    """Memory usage threshold built from HEAP_WARNING_PERCENT / HEAP_UNHEALTHY_PERCENT."""
    return Threshold(
        warning=settings.HEAP_WARNING_PERCENT,
        critical=settings.HEAP_UNHEALTHY_PERCENT,
        unit="%",
        name="memory_usage",
    )
