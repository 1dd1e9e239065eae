"""
Unified error handling with Sentry integration.

Provides:
- Optional Sentry error tracking (when SENTRY_DSN is configured)
- Structured logging of captured exceptions with request context
- FastAPI exception handlers rendering application/problem+json bodies

Usage:
    init_sentry(settings.SENTRY_DSN, environment=settings.ACTIVE_PROFILE)
    register_exception_handlers(app)

    # Capture an exception manually
    capture_exception(exc, context={"client_id": 42})
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import DisconnectionError, OperationalError, TimeoutError as PoolTimeoutError
from sqlalchemy.orm.exc import StaleDataError

from onlinebank.core.context import get_context_dict, get_request_id
from onlinebank.core.exceptions import (
    DATABASE_UNAVAILABLE_MESSAGE,
    ClientAlreadyExistsError,
    ClientNotFoundError,
    DatabaseUnavailableError,
)

logger = structlog.get_logger(__name__)

__all__ = [
    "init_sentry",
    "capture_exception",
    "is_sentry_enabled",
    "problem_response",
    "register_exception_handlers",
]

PROBLEM_CONTENT_TYPE = "application/problem+json"

# Lazy-loaded Sentry SDK (optional dependency)
_sentry_initialized: bool = False


def init_sentry(
    dsn: str,
    environment: str = "production",
    traces_sample_rate: float = 0.1,
    release: Optional[str] = None,
) -> bool:
    """
    Initialize Sentry SDK for error tracking.

    Returns:
        True if initialization successful, False otherwise
    """
    global _sentry_initialized

    if not dsn:
        logger.info("Sentry disabled (no DSN provided)")
        return False

    try:
        import sentry_sdk
        from sentry_sdk.integrations.fastapi import FastApiIntegration
        from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration
        from sentry_sdk.integrations.logging import LoggingIntegration

        sentry_sdk.init(
            dsn=dsn,
            environment=environment,
            traces_sample_rate=traces_sample_rate,
            release=release,
            integrations=[
                FastApiIntegration(transaction_style="endpoint"),
                SqlalchemyIntegration(),
                LoggingIntegration(
                    level=logging.INFO,
                    event_level=logging.ERROR,
                ),
            ],
            ignore_errors=[
                KeyboardInterrupt,
                SystemExit,
                DatabaseUnavailableError,
            ],
            before_send=_before_send,
        )

        _sentry_initialized = True
        logger.info("Sentry initialized", environment=environment, release=release)
        return True

    except ImportError:
        logger.warning("Sentry SDK not installed, error tracking disabled")
        return False
    except Exception as e:
        logger.error("Failed to initialize Sentry", error=str(e))
        return False


def _before_send(event: Dict[str, Any], hint: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """Drop health probe noise and tag events with the request id."""
    if "request" in event:
        url = event["request"].get("url", "")
        if "/health" in url:
            return None

    request_id = get_request_id()
    if request_id:
        event.setdefault("tags", {})["request_id"] = request_id

    return event


def is_sentry_enabled() -> bool:
    return _sentry_initialized


def capture_exception(
    exc: BaseException,
    context: Optional[Dict[str, Any]] = None,
    level: str = "error",
) -> Optional[str]:
    """
    Capture an exception with Sentry and structured logging.

    Args:
        exc: Exception to capture
        context: Additional context dict (e.g., {"client_id": 123})
        level: Severity level (debug, info, warning, error, fatal)

    Returns:
        Sentry event ID or None if not sent
    """
    enriched_context = {
        **get_context_dict(),
        "error_type": type(exc).__name__,
        **(context or {}),
    }

    # Log with structlog (always, even without Sentry)
    logger.error("Exception captured", exc_info=exc, **enriched_context)

    if _sentry_initialized:
        try:
            import sentry_sdk

            with sentry_sdk.new_scope() as scope:
                for key, value in enriched_context.items():
                    if value is not None:
                        scope.set_extra(key, value)
                scope.level = level
                return sentry_sdk.capture_exception(exc)
        except Exception as e:
            logger.warning("Failed to send exception to Sentry", error=str(e))

    return None


# =============================================================================
# HTTP mapping
# =============================================================================


def problem_response(status: int, title: str, detail: str, **extra: Any) -> JSONResponse:
    """RFC 7807 style error body."""
    body: Dict[str, Any] = {
        "type": "about:blank",
        "title": title,
        "status": status,
        "detail": detail,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    body.update(extra)
    return JSONResponse(status_code=status, content=body, media_type=PROBLEM_CONTENT_TYPE)


async def _database_unavailable_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.warning("Database unavailable", path=request.url.path, error=str(exc))
    return problem_response(503, "Service Unavailable", DATABASE_UNAVAILABLE_MESSAGE)


async def _client_not_found_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.info("Client not found", path=request.url.path, error=str(exc))
    return problem_response(404, "Client not found", str(exc))


async def _client_conflict_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.info("Client conflict", path=request.url.path, error=str(exc))
    return problem_response(409, "Client already exists", str(exc))


async def _stale_data_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.info("Concurrent modification", path=request.url.path, error=str(exc))
    return problem_response(
        409,
        "Concurrent modification",
        "The record was modified by another request. Reload it and try again.",
    )


async def _value_error_handler(request: Request, exc: Exception) -> JSONResponse:
    return problem_response(400, "Bad Request", str(exc))


def _make_unhandled_handler(debug: bool):
    async def _unhandled_handler(request: Request, exc: Exception) -> JSONResponse:
        capture_exception(exc, context={"path": request.url.path, "method": request.method})
        extra: Dict[str, Any] = {}
        if debug:
            extra["debug"] = f"{type(exc).__name__}: {exc}"
        return problem_response(
            500,
            "Internal Server Error",
            "An unexpected error occurred. Please try again later.",
            **extra,
        )

    return _unhandled_handler


def register_exception_handlers(app: FastAPI, debug: bool = False) -> None:
    """Install the domain-error -> HTTP status mapping on ``app``."""
    app.add_exception_handler(DatabaseUnavailableError, _database_unavailable_handler)
    # Raised by the pool inside the staleness window, before the probe notices
    app.add_exception_handler(OperationalError, _database_unavailable_handler)
    app.add_exception_handler(DisconnectionError, _database_unavailable_handler)
    app.add_exception_handler(PoolTimeoutError, _database_unavailable_handler)
    app.add_exception_handler(ClientNotFoundError, _client_not_found_handler)
    app.add_exception_handler(ClientAlreadyExistsError, _client_conflict_handler)
    app.add_exception_handler(StaleDataError, _stale_data_handler)
    app.add_exception_handler(ValueError, _value_error_handler)
    app.add_exception_handler(Exception, _make_unhandled_handler(debug))
