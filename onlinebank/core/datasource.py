"""
Availability-guarded connection source.

Wraps the real engine and the ConnectionProbe. While the probe reports the
database as unreachable every acquisition fails immediately with
DatabaseUnavailableError instead of waiting out the pool timeout.

Usage:
    datasource = ResilientDataSource(engine, probe, max_pool_size=10)

    with datasource.session() as session:
        session.exec(select(Client)).all()

    datasource.pool_status()
    datasource.close()   # stops the probe, disposes the pool
"""

from contextlib import contextmanager
from threading import Lock
from typing import Any, Dict, Iterator

import structlog
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.pool import QueuePool
from sqlmodel import Session

from onlinebank.core.exceptions import DatabaseUnavailableError
from onlinebank.core.probe import ConnectionProbe

logger = structlog.get_logger(__name__)

__all__ = ["ResilientDataSource"]


class ResilientDataSource:
    def __init__(self, engine: Engine, probe: ConnectionProbe, max_pool_size: int = 10):
        self._engine = engine
        self._probe = probe
        self.max_pool_size = max_pool_size

        self._waiting = 0
        self._waiting_lock = Lock()
        self._closed = False
        self._close_lock = Lock()

    @property
    def engine(self) -> Engine:
        return self._engine

    @property
    def probe(self) -> ConnectionProbe:
        return self._probe

    def is_available(self) -> bool:
        return self._probe.is_available()

    def acquire(self) -> Connection:
        """
        Get a pooled connection.

        Raises:
            DatabaseUnavailableError: the probe flag is down (no pool access)
        """
        if not self._probe.is_available():
            raise DatabaseUnavailableError()

        with self._waiting_lock:
            self._waiting += 1
        try:
            return self._engine.connect()
        finally:
            with self._waiting_lock:
                self._waiting -= 1

    @contextmanager
    def session(self) -> Iterator[Session]:
        """ORM session bound to a freshly acquired connection."""
        connection = self.acquire()
        try:
            with Session(bind=connection) as session:
                yield session
        finally:
            connection.close()

    def pool_status(self) -> Dict[str, Any]:
        pool = self._engine.pool
        with self._waiting_lock:
            waiting = self._waiting

        if isinstance(pool, QueuePool):
            active = pool.checkedout()
            idle = pool.checkedin()
        else:
            # StaticPool / NullPool expose no counters
            active = 0
            idle = 0

        return {
            "activeConnections": active,
            "idleConnections": idle,
            "totalConnections": active + idle,
            "threadsAwaitingConnection": waiting,
            "maxPoolSize": self.max_pool_size,
        }

    def close(self) -> None:
        """Stop the probe and dispose the pool. Safe to call more than once."""
        with self._close_lock:
            if self._closed:
                return
            self._closed = True

        self._probe.stop()
        self._engine.dispose()
        logger.info("Datasource closed")
