from fastapi import FastAPI, Request, Depends
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from starlette.responses import Response
from starlette.middleware.base import BaseHTTPMiddleware
from shipment_pricing.api import catalog, jobs, quotes
from shipment_pricing.core.config import settings
from shipment_pricing.core.dependencies import close_clients, get_catalog_store
from shipment_pricing.core.enums import ResourceState
from shipment_pricing.core.redis import init_redis, close_redis, get_redis
from shipment_pricing.core.metrics import request_count, request_duration, redis_connected, get_metrics_text
from shipment_pricing.services.catalog import CatalogStore
import time
import logging

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


class MetricsMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        start_time = time.time()

        try:
            response = await call_next(request)
        except Exception:
            request_count.labels(
                method=request.method,
                endpoint=request.url.path,
                status=500
            ).inc()
            request_duration.labels(
                method=request.method,
                endpoint=request.url.path
            ).observe(time.time() - start_time)
            raise

        request_count.labels(
            method=request.method,
            endpoint=request.url.path,
            status=response.status_code
        ).inc()
        request_duration.labels(
            method=request.method,
            endpoint=request.url.path
        ).observe(time.time() - start_time)
        return response


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application starting...")

    logger.info("Initializing Redis connection...")
    try:
        await init_redis()
        redis_connected.set(1)
        logger.info("Redis connected")
    except Exception as e:
        logger.error(f"Redis connection failed, running without caches: {e}")
        redis_connected.set(0)

    logger.info("Loading rate and extras catalogs...")
    await get_catalog_store().warm_up()

    yield

    logger.info("Application shutting down...")
    await close_clients()
    await close_redis()
    redis_connected.set(0)
    logger.info("Shutdown complete")


app = FastAPI(
    title=settings.API_TITLE,
    description=settings.API_DESCRIPTION,
    version=settings.API_VERSION,
    debug=settings.DEBUG,
    lifespan=lifespan
)

app.add_middleware(MetricsMiddleware)

app.include_router(quotes.router)
app.include_router(catalog.router)
app.include_router(jobs.router)


@app.get("/metrics", tags=["monitoring"])
async def metrics():
    return Response(
        content=get_metrics_text(),
        media_type="text/plain; version=0.0.4; charset=utf-8"
    )


@app.get("/health", tags=["monitoring"])
async def health_check(store: CatalogStore = Depends(get_catalog_store)):
    status = store.status()

    return {
        "status": "healthy",
        "service": settings.API_TITLE,
        "version": settings.API_VERSION,
        "dependencies": {
            "redis": "connected" if get_redis() is not None else "disconnected",
            **{name: str(resource.state) for name, resource in status.resources.items()},
        }
    }


@app.get("/readiness", tags=["monitoring"])
async def readiness_check(store: CatalogStore = Depends(get_catalog_store)):
    if store.rates.state != ResourceState.READY:
        return JSONResponse(
            status_code=503,
            content={
                "ready": False,
                "reason": store.rates.error or f"Rate table is {store.rates.state}"
            }
        )

    return {
        "ready": True,
        "service": settings.API_TITLE
    }


@app.get("/", tags=["root"])
async def root():
    return {
        "message": settings.API_TITLE,
        "version": settings.API_VERSION,
        "docs": "/docs",
        "health": "/health",
        "metrics": "/metrics"
    }
