"""
Lazy schema bootstrap.

Registered as a ConnectionProbe listener. The first time the database
becomes reachable it checks whether the clients table exists and applies
the bootstrap script when it does not. A successful pass sets a one-shot
latch; a failed pass leaves it unset so the next false->true edge retries.

Usage:
    bootstrapper = SchemaBootstrapper(engine)
    bootstrapper.add_listener(data_initializer.initialize)
    probe.add_listener(bootstrapper.on_availability_change)
"""

from pathlib import Path
from threading import Event, Lock
from typing import Callable, List, Optional

import structlog
from sqlalchemy import inspect, text
from sqlalchemy.engine import Connection, Dialect, Engine
from sqlalchemy.schema import CreateIndex, CreateTable
from sqlmodel import SQLModel

from onlinebank.models import CLIENTS_TABLE

logger = structlog.get_logger(__name__)

__all__ = ["SchemaBootstrapper", "render_schema_script", "split_statements"]


def render_schema_script(dialect: Dialect) -> str:
    """CREATE TABLE / CREATE INDEX script for every ORM table, compiled for ``dialect``."""
    statements: List[str] = []
    for table in SQLModel.metadata.sorted_tables:
        statements.append(str(CreateTable(table).compile(dialect=dialect)).strip())
        for index in sorted(table.indexes, key=lambda i: i.name or ""):
            statements.append(str(CreateIndex(index).compile(dialect=dialect)).strip())
    return ";\n\n".join(statements) + ";\n"


def split_statements(script: str) -> List[str]:
    """Split a script on ';' dropping blank pieces and full-line ``--`` comments."""
    statements = []
    for chunk in script.split(";"):
        lines = [line for line in chunk.splitlines() if not line.strip().startswith("--")]
        statement = "\n".join(lines).strip()
        if statement:
            statements.append(statement)
    return statements


class SchemaBootstrapper:
    """
    Applies the bootstrap script at most once per successful initialization.

    Args:
        engine: Real engine (bypasses the availability guard; only called
            right after the probe has seen the database come up)
        script_path: Optional SQL file; rendered from ORM metadata when None
        table_name: Table whose presence means "schema already there"
    """

    def __init__(self, engine: Engine, script_path: Optional[str] = None, table_name: str = CLIENTS_TABLE):
        self._engine = engine
        self.script_path = script_path
        self.table_name = table_name

        self._initialized = Event()
        # Serializes concurrent edges so the script is never applied twice
        self._lock = Lock()
        self._listeners: List[Callable[[], None]] = []

    @property
    def is_initialized(self) -> bool:
        return self._initialized.is_set()

    def add_listener(self, listener: Callable[[], None]) -> None:
        """Register a hook run once after each successful initialization."""
        self._listeners.append(listener)

    def reset(self) -> None:
        self._initialized.clear()

    def on_availability_change(self, available: bool) -> None:
        if available:
            self.ensure_schema()

    def ensure_schema(self) -> bool:
        """
        Make sure the schema exists. Returns True when the latch is set.

        Never raises; failures are logged and leave the latch unset.
        """
        if self._initialized.is_set():
            return True

        with self._lock:
            if self._initialized.is_set():
                return True

            try:
                with self._engine.connect() as connection:
                    exists = self._schema_exists(connection)

                if exists:
                    logger.info("Database schema already present", table=self.table_name)
                else:
                    logger.info("Database schema missing, applying bootstrap script", table=self.table_name)
                    self._apply_script()
                    logger.info("Database schema initialized", table=self.table_name)
            except Exception as e:
                logger.error("Schema initialization failed", table=self.table_name, error=str(e))
                return False

            self._initialized.set()

        self._run_listeners()
        return True

    def _schema_exists(self, connection: Connection) -> bool:
        try:
            return inspect(connection).has_table(self.table_name)
        except Exception as e:
            # Catalog unavailable: any failure of the query below counts as
            # "missing", even if the real cause was something else
            logger.warning("Catalog inspection failed, falling back to query probe", error=str(e))

        try:
            connection.execute(text(f"SELECT COUNT(*) FROM {self.table_name}"))
            return True
        except Exception:
            connection.rollback()
            return False

    def load_script(self) -> str:
        if self.script_path:
            return Path(self.script_path).read_text(encoding="utf-8")
        return render_schema_script(self._engine.dialect)

    def _apply_script(self) -> None:
        statements = split_statements(self.load_script())
        with self._engine.begin() as connection:
            for statement in statements:
                connection.exec_driver_sql(statement)
        logger.debug("Bootstrap script applied", statements=len(statements))

    def _run_listeners(self) -> None:
        for listener in list(self._listeners):
            try:
                listener()
            except Exception as e:
                logger.error(
                    "Post-initialization hook failed",
                    listener=getattr(listener, "__qualname__", repr(listener)),
                    error=str(e),
                )
