from typing import Iterator

from fastapi import Request
from sqlalchemy.engine import Engine
from sqlmodel import Session, create_engine

from onlinebank.core.config import Settings


def build_engine(settings: Settings) -> Engine:
    """
    Create the real engine behind the resilient datasource.

    Creating an engine never connects, so this succeeds while the database
    is down; the probe finds out later.
    """
    url = settings.database_url
    connect_args = {}
    if url.startswith("postgresql"):
        connect_args = {
            "connect_timeout": max(1, settings.DB_CONNECTION_TIMEOUT_MS // 1000),  # Seconds, libpq minimum is 1
            "keepalives": 1,  # Enable TCP keepalives
            "keepalives_idle": 30,  # Send keepalive after 30s idle
            "keepalives_interval": 10,  # Retry keepalive every 10s
            "keepalives_count": 5,  # Drop connection after 5 failed keepalives
        }

    return create_engine(
        url,
        echo=False,
        pool_size=settings.DB_MAX_POOL_SIZE,
        max_overflow=0,  # maxPoolSize is a hard ceiling
        pool_pre_ping=True,  # Replace connections the server dropped while idle
        pool_recycle=1800,
        pool_timeout=settings.DB_CONNECTION_TIMEOUT_MS / 1000,
        connect_args=connect_args,
    )


def get_session(request: Request) -> Iterator[Session]:
    """
    FastAPI dependency yielding a session from the application's datasource.

    Raises DatabaseUnavailableError (503) without touching the pool while
    the database is known to be down.
    """
    with request.app.state.datasource.session() as session:
        yield session
