"""
Health endpoints for load balancers and orchestrators.

All state comes from the HealthAggregator stored on app.state; these
routes never touch the database directly and are excluded from API
metrics.
"""

from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, PlainTextResponse

from onlinebank.core.health_check import HealthAggregator, HealthStatus

router = APIRouter()


def _health(request: Request) -> HealthAggregator:
    return request.app.state.health


@router.get("/ping", response_class=PlainTextResponse)
def ping() -> str:
    """Plain liveness check, never touches any component."""
    return "pong"


@router.get("")
def health(request: Request) -> Any:
    status = _health(request).status()
    code = 503 if status is HealthStatus.DOWN else 200
    return JSONResponse(
        status_code=code,
        content={"status": status.value, "timestamp": datetime.now(timezone.utc).isoformat()},
    )


@router.get("/detailed")
def detailed(request: Request) -> Any:
    """Full report; 200 only when every component is UP."""
    report = _health(request).report()
    code = 200 if report["status"] == HealthStatus.UP.value else 503
    return JSONResponse(status_code=code, content=report)


@router.get("/database")
def database(request: Request) -> Any:
    info = _health(request).database_info()
    code = 200 if info["status"] == HealthStatus.UP.value else 503
    return JSONResponse(
        status_code=code,
        content={
            "status": info["status"],
            "version": info.get("version"),
            "schema": info.get("schema"),
            "connectionPool": info.get("connectionPool"),
        },
    )


@router.get("/metrics")
def metrics(request: Request) -> Any:
    aggregator = _health(request)
    info = aggregator.metrics_info()
    return {
        "totalApiCalls": info["totalApiCalls"],
        "averageResponseTime": info["averageResponseTime"],
        "perEndpoint": info["perEndpoint"],
        "uptime": aggregator.uptime(),
    }


@router.get("/ready")
def ready(request: Request) -> Any:
    aggregator = _health(request)
    status = aggregator.status()
    if aggregator.is_ready(status):
        return {"status": status.value}
    return JSONResponse(status_code=503, content={"status": status.value})


@router.get("/live")
def live(request: Request) -> Any:
    return {"status": "UP" if _health(request).is_live() else "DOWN"}
