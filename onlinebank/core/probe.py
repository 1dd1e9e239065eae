"""
Database connectivity probe.

Owns the process-wide "database reachable" flag. A background APScheduler
job validates a pooled connection every probe interval; request threads
only ever read the flag, which never blocks.

Usage:
    probe = ConnectionProbe(engine, interval_seconds=10, validation_timeout=2)
    probe.add_listener(bootstrapper.on_availability_change)
    probe.start()      # one synchronous probe, then every interval

    probe.is_available()  # lock-free read
    probe.stop()       # on shutdown

Listeners are called once per transition (false->true or true->false),
never on polls that leave the flag unchanged.
"""

from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeoutError
from datetime import datetime, timezone
from threading import Event, RLock
from typing import Any, Callable, Dict, List, Optional

import structlog
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy import text
from sqlalchemy.engine import Connection, Engine

logger = structlog.get_logger(__name__)

__all__ = ["ConnectionProbe", "AvailabilityListener"]

# (available) -> ignored
AvailabilityListener = Callable[[bool], Any]

PROBE_JOB_ID = "database-connectivity-probe"


def _server_version(connection: Connection) -> str:
    """Version string the database reported for this connection."""
    if connection.dialect.name == "postgresql":
        # Full banner, e.g. "PostgreSQL 16.2 on x86_64-pc-linux-gnu, ..."
        reported = connection.exec_driver_sql("SELECT version()").scalar()
        if reported:
            return str(reported)
    info = connection.dialect.server_version_info
    if info:
        return ".".join(str(part) for part in info)
    return "unknown"


class ConnectionProbe:
    """
    Periodically validates database connectivity and maintains the
    availability flag.

    Args:
        engine: Real (unguarded) engine whose pool is probed
        interval_seconds: Delay between background probes
        validation_timeout: Upper bound for one probe attempt, in seconds
    """

    def __init__(
        self,
        engine: Engine,
        interval_seconds: float = 10.0,
        validation_timeout: float = 2.0,
    ):
        self._engine = engine
        self.interval_seconds = interval_seconds
        self.validation_timeout = validation_timeout

        self._available = Event()  # starts unavailable
        self._transition_lock = RLock()
        self._listeners: List[AvailabilityListener] = []
        self._version: Optional[str] = None
        self._last_probe_at: Optional[datetime] = None
        self._last_error: Optional[str] = None

        # A hung driver call keeps this worker busy; later attempts then time
        # out in the queue instead of stacking up threads
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="db-probe")
        self._scheduler: Optional[BackgroundScheduler] = None

    # ------------------------------------------------------------------ state

    def is_available(self) -> bool:
        return self._available.is_set()

    @property
    def database_version(self) -> Optional[str]:
        """Version cached on the last false->true transition, None while down."""
        return self._version

    @property
    def is_running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    def add_listener(self, listener: AvailabilityListener) -> None:
        self._listeners.append(listener)

    def status(self) -> Dict[str, Any]:
        return {
            "available": self.is_available(),
            "version": self._version,
            "lastProbeAt": self._last_probe_at.isoformat() if self._last_probe_at else None,
            "lastError": self._last_error,
            "intervalSeconds": self.interval_seconds,
        }

    # ---------------------------------------------------------------- probing

    def _check_connection(self) -> str:
        """Open a pooled connection, validate it, return the server version."""
        with self._engine.connect() as connection:
            connection.execute(text("SELECT 1"))
            return _server_version(connection)

    def probe_once(self) -> bool:
        """
        Run one bounded connectivity check and update the flag.

        Never raises: every failure (timeout, auth, network, driver error) is
        logged and reported as False.
        """
        version: Optional[str] = None
        error: Optional[str] = None

        try:
            future = self._executor.submit(self._check_connection)
        except RuntimeError as e:
            # Executor already shut down
            self._apply_result(False, None, str(e))
            return False

        try:
            version = future.result(timeout=self.validation_timeout)
        except FutureTimeoutError:
            future.cancel()
            error = f"validation timed out after {self.validation_timeout}s"
        except Exception as e:
            error = str(e).splitlines()[0] if str(e) else type(e).__name__

        ok = error is None
        self._apply_result(ok, version, error)
        return ok

    def _apply_result(self, ok: bool, version: Optional[str], error: Optional[str]) -> None:
        with self._transition_lock:
            was_available = self._available.is_set()
            self._last_probe_at = datetime.now(timezone.utc)
            self._last_error = error

            if ok:
                self._available.set()
            else:
                self._available.clear()

            if ok == was_available:
                if not ok:
                    logger.debug("Database still unavailable", error=error)
                return

            if ok:
                self._version = version
                logger.info("Database became available", version=version)
            else:
                self._version = None
                logger.warning("Database became unavailable", error=error)

            # Still under the lock so edges reach listeners in order
            self._notify(ok)

    def _notify(self, available: bool) -> None:
        for listener in list(self._listeners):
            try:
                listener(available)
            except Exception as e:
                logger.error(
                    "Availability listener failed",
                    listener=getattr(listener, "__qualname__", repr(listener)),
                    error=str(e),
                )

    # -------------------------------------------------------------- lifecycle

    def start(self) -> None:
        """Probe immediately, then keep probing on a background timer."""
        if self._scheduler is not None:
            return

        self.probe_once()

        scheduler = BackgroundScheduler(daemon=True)
        scheduler.add_job(
            self.probe_once,
            IntervalTrigger(seconds=self.interval_seconds),
            id=PROBE_JOB_ID,
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        scheduler.start()
        self._scheduler = scheduler
        logger.info("Database probe started", interval_seconds=self.interval_seconds)

    def stop(self) -> None:
        """Cancel the background timer and release the probe worker."""
        if self._scheduler is not None:
            if self._scheduler.running:
                self._scheduler.shutdown(wait=False)
            self._scheduler = None
            logger.info("Database probe stopped")
        self._executor.shutdown(wait=False, cancel_futures=True)
