"""
FILE: src/api/main.py
"""

import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request, status
from fastapi.responses import JSONResponse

from src.api.observability import setup_observability
from src.api.persistence_profile import validate_persistence_profile_guardrails
from src.api.routers.multisig import get_multisig_service, shutdown_multisig_service
from src.api.routers.multisig import router as multisig_router
from src.core.multisig import MultisigService

logger = logging.getLogger(__name__)


@asynccontextmanager
async def _app_lifespan(_app: FastAPI):
    validate_persistence_profile_guardrails()
    logger.info("multisig.startup")
    yield
    shutdown_multisig_service()
    logger.info("multisig.shutdown")


app = FastAPI(
    title="Multisig Coordinator API",
    version="0.1.0",
    description=(
        "Coordinates M-of-N multisig wallets: proposal creation, signature collection, "
        "threshold evaluation, and exactly-once execution.\n\n"
        "Proposal status is one of `PENDING`, `APPROVED`, `EXECUTING`, `EXECUTED`, "
        "`REJECTED`, or `CANCELLED`."
    ),
    openapi_tags=[
        {
            "name": "Multisig Wallets",
            "description": "Wallet creation and lookup.",
        },
        {
            "name": "Multisig Proposals",
            "description": "Proposal lifecycle: create, sign, execute, cancel.",
        },
        {
            "name": "Multisig Supportability",
            "description": "Audit timeline and runtime configuration diagnostics.",
        },
        {
            "name": "Health",
            "description": "Liveness and readiness probes.",
        },
    ],
    lifespan=_app_lifespan,
)

setup_observability(app)
app.include_router(multisig_router)


@app.exception_handler(Exception)
async def unhandled_exception_to_problem_details(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled exception while serving request", exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        media_type="application/problem+json",
        content={
            "type": "about:blank",
            "title": "Internal Server Error",
            "status": 500,
            "detail": "An unexpected error occurred.",
            "instance": str(request.url.path),
        },
    )


@app.get("/health", tags=["Health"], summary="Health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/health/live", tags=["Health"], summary="Liveness")
def health_live() -> dict[str, str]:
    return {"status": "live"}


@app.get(
    "/health/ready",
    tags=["Health"],
    summary="Readiness",
    description="Returns 503 while the multisig repository cannot be initialized.",
)
def health_ready(_service: MultisigService = Depends(get_multisig_service)) -> dict[str, str]:
    return {"status": "ready"}
