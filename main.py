# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Membership Service
==================
Reconciles payment transactions against the member table, detects joins
that are really renewals, schedules expiry notifications, and drains the
expiry FIFO queue with retry and dead-lettering.

Port: 8005
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from membership.controllers import (
    audit_controller,
    expiry_controller,
    member_controller,
    system_controller,
    transaction_controller,
)
from membership.core.config import settings
from membership.core.dependencies import get_action_spec_repo
from membership.core.logging import get_logger
from membership.middleware import MetricsMiddleware, RequestIDMiddleware

logger = get_logger(settings.SERVICE_NAME)


# ── Lifespan ──────────────────────────────────────────────────────────────
@asynccontextmanager
async def lifespan(application: FastAPI):
    """Seed the default notification templates on startup."""
    if settings.SEED_DEFAULT_ACTION_SPECS:
        added = get_action_spec_repo().seed_defaults()
        logger.info("Seeded %d default action specs", added)
    logger.info("Membership service starting on port %d", settings.SERVICE_PORT)
    yield
    logger.info("Membership service shutting down")


# ── FastAPI App ───────────────────────────────────────────────────────────
app = FastAPI(
    title="Membership Service",
    description="Membership reconciliation, expiry scheduling and notification queue.",
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


# ── Global exception handler ─────────────────────────────────────────────
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    req_id = getattr(request.state, "request_id", None)
    logger.exception("Unhandled exception", extra={"request_id": req_id})
    return JSONResponse(
        status_code=500,
        content={"error": "internal_server_error", "detail": str(exc), "request_id": req_id},
    )


# ── Routers ───────────────────────────────────────────────────────────────
app.include_router(system_controller.router)
app.include_router(transaction_controller.router)
app.include_router(member_controller.router)
app.include_router(expiry_controller.router)
app.include_router(audit_controller.router)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=settings.SERVICE_PORT, log_level="info")
