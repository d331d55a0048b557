# type: ignore
# pyright: reportGeneralTypeIssues=false
# pyright: reportOptionalMemberAccess=false
"""
On-Call Roster Service
======================
Weekly on-call rosters: fair schedule generation, override-aware on-call
resolution, multi-roster coverage analysis, calendar export and handoff
notifications.

Background work:
    background queue   initial schedule generation, handoff delivery
    handoff ticker     every HANDOFF_TICK_SECONDS
    schedule top-up    at startup, then every TOPUP_INTERVAL_SECONDS

Port: 8003
"""
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from oncall_roster.controllers import oncall_controller, roster_controller, schedule_controller, system_controller
from oncall_roster.core.config import settings
from oncall_roster.core.database import engine
from oncall_roster.core.dependencies import get_background_queue, get_workers
from oncall_roster.core.errors import RosterError
from oncall_roster.core.logging import get_logger
from oncall_roster.core.schema import create_schema
from oncall_roster.middleware import MetricsMiddleware, RequestIDMiddleware

logger = get_logger(settings.SERVICE_NAME)


# ── Lifespan ──────────────────────────────────────────────────────────────
@asynccontextmanager
async def lifespan(application: FastAPI):
    if settings.CREATE_SCHEMA:
        create_schema(engine)
        logger.info("Database schema ensured")
    background = get_background_queue()
    background.start()
    workers = get_workers() if settings.WORKERS_ENABLED else []
    for worker in workers:
        worker.start()
    logger.info("Service started: workers=%d", len(workers))
    yield
    for worker in workers:
        worker.stop()
    background.stop()
    engine.dispose()
    logger.info("Shutting down, connection pool disposed")


# ── FastAPI App ───────────────────────────────────────────────────────────
app = FastAPI(
    title="On-Call Roster Service",
    description="Roster scheduling, on-call resolution, coverage and calendar export.",
    version=settings.SERVICE_VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(MetricsMiddleware)
app.add_middleware(RequestIDMiddleware)


def _error_body(request: Request, error: str, detail: str) -> dict:
    return {
        "error": error,
        "detail": detail,
        "request_id": getattr(request.state, "request_id", None),
    }


@app.exception_handler(RosterError)
async def roster_error_handler(request: Request, exc: RosterError):
    if exc.status_code >= 500:
        logger.error(
            "Request failed: %s", exc, exc_info=exc,
            extra={"request_id": getattr(request.state, "request_id", "-")},
        )
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(request, exc.error_code, str(exc)),
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled exception", extra={"request_id": getattr(request.state, "request_id", "-")})
    return JSONResponse(
        status_code=500,
        content=_error_body(request, "internal_server_error", str(exc)),
    )


# Coverage must be matched before /rosters/{roster_id}.
app.include_router(system_controller.router)
app.include_router(oncall_controller.router)
app.include_router(schedule_controller.router)
app.include_router(roster_controller.router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=settings.SERVICE_PORT)
