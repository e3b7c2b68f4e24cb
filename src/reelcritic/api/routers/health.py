"""Liveness and readiness probes.

- /health/live  - answers while the process serves requests
- /health/ready - probes the database and TMDB; a missing TMDB key only
  degrades the service, an unreachable database makes it unready (503)
"""

from __future__ import annotations

import asyncio
import time
from enum import Enum

from fastapi import APIRouter, Request
from fastapi.responses import ORJSONResponse
from pydantic import BaseModel

from reelcritic.persistence.db import Database
from reelcritic.runtime import AppServices
from reelcritic.tmdb.client import TmdbClient

router = APIRouter(tags=["health"])

DATABASE_TIMEOUT = 5.0


class ProbeState(str, Enum):
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


class Probe(BaseModel):
    name: str
    status: ProbeState
    latency_ms: float = 0.0
    message: str | None = None


async def probe_database(db: Database) -> Probe:
    started = time.perf_counter()
    try:
        ok = await asyncio.wait_for(db.health_check(), timeout=DATABASE_TIMEOUT)
        message = None if ok else "Database check failed"
    except asyncio.TimeoutError:
        ok, message = False, "Database check timed out"
    return Probe(
        name="database",
        status=ProbeState.HEALTHY if ok else ProbeState.UNHEALTHY,
        latency_ms=round((time.perf_counter() - started) * 1000, 2),
        message=message,
    )


def probe_tmdb(tmdb: TmdbClient | None) -> Probe:
    if tmdb is None:
        return Probe(name="tmdb", status=ProbeState.DEGRADED, message="TMDB API key not configured")
    governor = tmdb.governor
    return Probe(
        name="tmdb",
        status=ProbeState.HEALTHY,
        message=f"{governor.in_window()}/{governor.max_requests} requests in window",
    )


def overall_state(probes: list[Probe]) -> ProbeState:
    states = {probe.status for probe in probes}
    if ProbeState.UNHEALTHY in states:
        return ProbeState.UNHEALTHY
    if ProbeState.DEGRADED in states:
        return ProbeState.DEGRADED
    return ProbeState.HEALTHY


@router.get("/health/live")
async def live() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/health/ready")
async def ready(request: Request) -> ORJSONResponse:
    services: AppServices | None = getattr(request.app.state, "services", None)
    if services is None:
        return ORJSONResponse(
            {"status": ProbeState.UNHEALTHY.value, "message": "Services not initialized"},
            status_code=503,
        )

    probes = [await probe_database(services.db), probe_tmdb(services.tmdb)]
    state = overall_state(probes)
    return ORJSONResponse(
        {
            "status": state.value,
            "env": services.settings.env,
            "components": [probe.model_dump(mode="json", exclude_none=True) for probe in probes],
        },
        status_code=503 if state is ProbeState.UNHEALTHY else 200,
    )
