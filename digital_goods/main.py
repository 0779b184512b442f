"""
Main Application - Fulfillment webhook service.

Serves the conversation platform's webhook plus health and metrics endpoints.
"""

import time
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, PlainTextResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from starlette.routing import Match

from digital_goods.api.dependencies import create_commerce_client
from digital_goods.api.routes import router
from digital_goods.config import settings
from digital_goods.observability import get_logger, metrics, setup_logging, setup_tracing
from digital_goods.observability.tracing import instrument_fastapi

setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Open the pooled commerce API client for the life of the process."""
    logger.info(
        "application_starting",
        package_name=settings.package_name,
        product_ids=settings.product_ids,
        consumables_enabled=settings.consumables_enabled,
        commerce_api_base_url=settings.commerce_api_base_url,
        tracing_enabled=settings.tracing_enabled,
    )
    app.state.commerce_client = create_commerce_client()
    try:
        yield
    finally:
        await app.state.commerce_client.close()
        logger.info("application_stopped")


app = FastAPI(
    title=settings.api_title,
    version=settings.api_version,
    description=settings.api_description,
    lifespan=lifespan,
)

setup_tracing()
instrument_fastapi(app)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Reject webhook bodies the platform models cannot parse."""
    # ctx can hold exception instances; keep only what serializes cleanly
    errors = [
        {"type": error["type"], "loc": error["loc"], "msg": error["msg"]}
        for error in exc.errors()
    ]
    logger.warning(
        "validation_error",
        path=request.url.path,
        errors=errors,
        body_preview=str(exc.body)[:500] if exc.body else None,
    )
    return JSONResponse(status_code=422, content={"detail": jsonable_encoder(errors)})


UNMATCHED_ROUTE = "unmatched"


def _route_label(request: Request) -> str:
    """Route template for metric labels; paths no route serves share one label."""
    for route in request.app.router.routes:
        match, _ = route.matches(request.scope)
        if match != Match.NONE:
            return getattr(route, "path", UNMATCHED_ROUTE)
    return UNMATCHED_ROUTE


@app.middleware("http")
async def logging_middleware(
    request: Request, call_next: Callable[[Request], Awaitable[Response]]
) -> Response:
    """Time each request and record it in logs and metrics."""
    method = request.method
    endpoint = _route_label(request)
    in_progress = metrics.http_requests_in_progress.labels(endpoint=endpoint, method=method)
    in_progress.inc()
    started = time.perf_counter()
    status_code = 500

    try:
        response = await call_next(request)
        status_code = response.status_code
        return response
    except Exception as exc:
        metrics.record_error(type(exc).__name__, "http_request")
        logger.exception("request_failed", method=method, path=request.url.path)
        raise
    finally:
        duration = time.perf_counter() - started
        in_progress.dec()
        metrics.record_http_request(endpoint, method, status_code, duration)
        logger.info(
            "request_completed",
            method=method,
            path=request.url.path,
            status_code=status_code,
            duration_seconds=round(duration, 4),
        )


app.include_router(router)


@app.get("/")
async def root() -> dict[str, str]:
    """Service identity."""
    return {
        "service": settings.api_title,
        "version": settings.api_version,
        "status": "running",
    }


@app.get("/health")
async def health() -> dict[str, str]:
    """Liveness probe for the function platform."""
    return {"status": "healthy"}


@app.get("/metrics")
async def metrics_endpoint() -> Response:
    """Prometheus scrape endpoint."""
    if not settings.metrics_enabled:
        return PlainTextResponse("metrics disabled", status_code=404)
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "digital_goods.main:app",
        host=settings.api_host,
        port=settings.api_port,
        log_level=settings.log_level.lower(),
    )
