"""
FastAPI application entry point for the plant portal API.

Loads PortalSettings at startup, opens the configured document store, and
builds the shared services (reconciler, access grants, benchmark records,
measurement client) on app.state for route handlers. ADMIN_TOKENS are
loaded into an AdminTokens registry guarding every /v1 route.

CHANGELOG:
- 2026-10-12: Load AdminTokens registry; InvalidBenchmarkError maps to 422 (STORY-113)
- 2026-10-10: Register rollup router (STORY-107)
- 2026-10-08: Register access and benchmark routers (STORY-111)
- 2026-10-05: Initial creation (STORY-101)
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from portal.src.api.access import router as access_router
from portal.src.api.benchmarks import router as benchmarks_router
from portal.src.api.health import router as health_router
from portal.src.api.rollup import router as rollup_router
from portal.src.auth.bearer import AdminTokens
from portal.src.config import PortalSettings
from portal.src.services.access import AccessGrantReconciler
from portal.src.services.benchmark_records import BenchmarkRecordReconciler
from portal.src.services.benchmarks import InvalidBenchmarkError
from portal.src.services.measurements import MeasurementClient
from portal.src.services.reconciler import ResourceLocks, StateReconciler
from portal.src.stores.base import StoreError
from portal.src.stores.factory import close_store, open_store

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan: build services on startup, close the store on shutdown.

    Raises:
        pydantic.ValidationError: If the environment configuration is invalid.
        AdminTokenError: If ADMIN_TOKENS contains no valid entries.
    """
    settings = PortalSettings()
    app.state.settings = settings

    admin_tokens = AdminTokens.parse(settings.admin_tokens)
    app.state.admin_tokens = admin_tokens
    logger.info(
        "Loaded %d admin token(s) for %s",
        len(admin_tokens),
        ", ".join(sorted(admin_tokens.usernames)),
    )

    store = await open_store(settings)
    reconciler = StateReconciler(concurrency=settings.reconcile_concurrency)
    app.state.store = store
    app.state.locks = ResourceLocks()
    app.state.access = AccessGrantReconciler(store, reconciler)
    app.state.benchmarks = BenchmarkRecordReconciler(store, reconciler)
    app.state.measurements = MeasurementClient(
        settings.measurements_base_url,
        timeout_s=settings.measurements_timeout_s,
    )

    logger.info("Configuration validated, plant portal API ready")
    try:
        yield
    finally:
        await close_store(store)
        logger.info("Plant portal API shutting down")


app = FastAPI(
    title="Plant Portal API",
    description="Plant access, benchmark, and generation rollup API.",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(health_router)
app.include_router(access_router)
app.include_router(benchmarks_router)
app.include_router(rollup_router)


@app.exception_handler(InvalidBenchmarkError)
async def invalid_benchmark_handler(
    request: Request, exc: InvalidBenchmarkError
) -> JSONResponse:
    return JSONResponse(status_code=422, content={"detail": str(exc)})


@app.exception_handler(StoreError)
async def store_error_handler(request: Request, exc: StoreError) -> JSONResponse:
    logger.error(
        "Store unavailable on %s %s: %s", request.method, request.url.path, exc
    )
    return JSONResponse(status_code=503, content={"detail": "Store unavailable."})


@app.get("/")
async def root() -> dict:
    """Root health check endpoint.

    Returns:
        dict: JSON object with application status.
    """
    return {"status": "ok"}


def main() -> None:
    """Run the API with uvicorn and JSON logging."""
    import uvicorn

    from portal.src.logging_config import configure_logging

    settings = PortalSettings()
    configure_logging(settings.log_level)
    uvicorn.run(app, host=settings.api_host, port=settings.api_port, log_config=None)


if __name__ == "__main__":
    main()
