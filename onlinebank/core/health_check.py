"""
Health aggregation.

Combines the probe's availability flag, process runtime statistics and the
API metrics recorder into one report. Nothing here is cached: every call
reads the current state.

Usage:
    health = HealthAggregator(probe, datasource, recorder, bootstrapper, settings)

    health.status()     # HealthStatus.UP / DEGRADED / DOWN
    health.is_ready()   # readiness probe
    health.report()     # full detailed report
"""

import os
import platform
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, Optional

import psutil
import structlog
from sqlalchemy import func, inspect, select

from onlinebank.core.config import Settings
from onlinebank.core.datasource import ResilientDataSource
from onlinebank.core.health_thresholds import check_threshold, memory_threshold
from onlinebank.core.perf_metrics import MetricsRecorder
from onlinebank.core.probe import ConnectionProbe
from onlinebank.core.schema import SchemaBootstrapper
from onlinebank.models import Client

logger = structlog.get_logger(__name__)

__all__ = ["HealthStatus", "HealthAggregator", "format_bytes", "format_uptime", "memory_usage"]


class HealthStatus(str, Enum):
    UP = "UP"
    DEGRADED = "DEGRADED"
    DOWN = "DOWN"


def format_bytes(num_bytes: float) -> str:
    """Human-readable size with binary prefixes, e.g. 1536 -> "1.5 KB"."""
    if num_bytes < 1024:
        return f"{int(num_bytes)} B"
    value = float(num_bytes)
    for prefix in "KMGTPE":
        value /= 1024
        if value < 1024:
            return f"{value:.1f} {prefix}B"
    return f"{value:.1f} EB"


def format_uptime(seconds: float) -> str:
    total_minutes = int(seconds // 60)
    days, remainder = divmod(total_minutes, 24 * 60)
    hours, minutes = divmod(remainder, 60)
    return f"{days} days, {hours} hours, {minutes} minutes"


def memory_usage(limit_mb: int = 0) -> Dict[str, int]:
    """Process RSS and the ceiling it is measured against, in bytes."""
    rss = psutil.Process(os.getpid()).memory_info().rss
    if limit_mb > 0:
        limit = limit_mb * 1024 * 1024
    else:
        limit = psutil.virtual_memory().total
    return {"used": rss, "limit": limit}


class HealthAggregator:
    """
    Builds the tri-state status and the detailed health report on demand.

    Args:
        probe: Owner of the database availability flag
        datasource: Guarded connection source used for database details
        recorder: API metrics
        bootstrapper: Schema latch, reported as schemaInitialized
        settings: Application settings (thresholds, names, readiness policy)
        memory_percent: Override for the memory usage reading (tests)
    """

    def __init__(
        self,
        probe: ConnectionProbe,
        datasource: ResilientDataSource,
        recorder: MetricsRecorder,
        bootstrapper: Optional[SchemaBootstrapper],
        settings: Settings,
        memory_percent: Optional[Callable[[], float]] = None,
    ):
        self.probe = probe
        self.datasource = datasource
        self.recorder = recorder
        self.bootstrapper = bootstrapper
        self.settings = settings
        self._memory_percent = memory_percent
        self.startup_time = datetime.now(timezone.utc)

        # cpu_percent() measures since the previous call on the same object;
        # the first call always returns 0.0
        self._process = psutil.Process()
        self._process.cpu_percent(interval=None)

    # ----------------------------------------------------------------- status

    def memory_percent(self) -> float:
        if self._memory_percent is not None:
            return self._memory_percent()
        usage = memory_usage(self.settings.MEMORY_LIMIT_MB)
        return usage["used"] / usage["limit"] * 100 if usage["limit"] else 0.0

    def runtime_healthy(self) -> bool:
        return self.memory_percent() < self.settings.HEAP_UNHEALTHY_PERCENT

    def status(self) -> HealthStatus:
        database_up = self.probe.is_available()
        runtime_ok = self.runtime_healthy()

        if database_up and runtime_ok:
            return HealthStatus.UP
        if runtime_ok:
            return HealthStatus.DEGRADED
        return HealthStatus.DOWN

    def is_ready(self, status: Optional[HealthStatus] = None) -> bool:
        """Readiness for ``status``, or for a fresh reading when omitted."""
        if status is None:
            status = self.status()
        if self.settings.READINESS_REQUIRES_DATABASE:
            return status is HealthStatus.UP
        return status in (HealthStatus.UP, HealthStatus.DEGRADED)

    def is_live(self) -> bool:
        return True

    # ---------------------------------------------------------------- details

    def application_info(self) -> Dict[str, Any]:
        return {
            "name": self.settings.PROJECT_NAME,
            "profile": self.settings.ACTIVE_PROFILE,
            "version": self.settings.APP_VERSION,
            "startupTime": self.startup_time.isoformat(),
        }

    def runtime_info(self) -> Dict[str, Any]:
        percent = self.memory_percent()
        memory: Dict[str, Any] = {
            "usedPercentage": round(percent, 1),
            "status": check_threshold(percent, memory_threshold(self.settings)),
        }
        try:
            usage = memory_usage(self.settings.MEMORY_LIMIT_MB)
            memory["used"] = format_bytes(usage["used"])
            memory["limit"] = format_bytes(usage["limit"])
        except psutil.Error as e:
            logger.debug("Memory statistics unavailable", error=str(e))

        cpu: Dict[str, Any] = {"availableProcessors": os.cpu_count()}
        try:
            cpu["systemLoadAverage"] = round(os.getloadavg()[0], 2)
        except (AttributeError, OSError):
            cpu["systemLoadAverage"] = -1
        try:
            cpu["processCpuPercent"] = self._process.cpu_percent(interval=None)
        except psutil.Error:
            cpu["processCpuPercent"] = -1

        return {
            "python": platform.python_version(),
            "implementation": platform.python_implementation(),
            "memory": memory,
            "cpu": cpu,
            "os": {
                "name": platform.system(),
                "version": platform.release(),
                "arch": platform.machine(),
            },
        }

    def database_info(self) -> Dict[str, Any]:
        probe_status = self.probe.status()
        if not self.probe.is_available():
            return {
                "status": HealthStatus.DOWN.value,
                "error": "Database is unavailable",
                "lastProbeAt": probe_status.get("lastProbeAt"),
                "lastError": probe_status.get("lastError"),
            }

        info: Dict[str, Any] = {
            "status": HealthStatus.UP.value,
            "version": self.probe.database_version,
            "lastProbeAt": probe_status.get("lastProbeAt"),
            "schemaInitialized": self.bootstrapper.is_initialized if self.bootstrapper else None,
        }
        try:
            with self.datasource.acquire() as connection:
                info["schema"] = inspect(connection).default_schema_name
                info["clientCount"] = connection.execute(
                    select(func.count()).select_from(Client.__table__)
                ).scalar_one()
            info["connectionPool"] = self.datasource.pool_status()
        except Exception as e:
            logger.error("Failed to collect database details", error=str(e))
            info["error"] = str(e).splitlines()[0] if str(e) else type(e).__name__
        return info

    def uptime(self) -> str:
        return format_uptime((datetime.now(timezone.utc) - self.startup_time).total_seconds())

    def metrics_info(self) -> Dict[str, Any]:
        return {
            **self.recorder.summary(),
            "perEndpoint": self.recorder.snapshot(),
        }

    def report(self) -> Dict[str, Any]:
        return {
            "status": self.status().value,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "application": self.application_info(),
            "runtime": self.runtime_info(),
            "database": self.database_info(),
            "metrics": self.metrics_info(),
            "uptime": self.uptime(),
        }
