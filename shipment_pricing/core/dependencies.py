"""Process-wide collaborators handed to routers through FastAPI dependencies"""
import logging
from typing import Optional

import httpx
from fastapi import Depends, Header

from shipment_pricing.core.config import settings
from shipment_pricing.services.backend import BackendClient
from shipment_pricing.services.catalog import CatalogStore
from shipment_pricing.services.distance import DistanceResolver
from shipment_pricing.services.jobs import JobService
from shipment_pricing.services.quotes import QuoteService

logger = logging.getLogger(__name__)

backend_http: Optional[httpx.AsyncClient] = None
routing_http: Optional[httpx.AsyncClient] = None
catalog_store: Optional[CatalogStore] = None


def get_backend_http() -> httpx.AsyncClient:
    global backend_http
    if backend_http is None:
        backend_http = httpx.AsyncClient(timeout=settings.BACKEND_TIMEOUT)
    return backend_http


def get_routing_http() -> httpx.AsyncClient:
    global routing_http
    if routing_http is None:
        routing_http = httpx.AsyncClient(timeout=settings.ROUTING_TIMEOUT)
    return routing_http


def get_catalog_store() -> CatalogStore:
    global catalog_store
    if catalog_store is None:
        catalog_store = CatalogStore(BackendClient(get_backend_http(), token=settings.BACKEND_TOKEN))
    return catalog_store


async def close_clients() -> None:
    global backend_http, routing_http, catalog_store
    for client in (backend_http, routing_http):
        if client is not None:
            await client.aclose()
    backend_http = None
    routing_http = None
    catalog_store = None


def get_bearer_token(authorization: Optional[str] = Header(None)) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def get_distance_resolver() -> DistanceResolver:
    return DistanceResolver(get_routing_http())


def get_backend_client(
    token: Optional[str] = Depends(get_bearer_token),
    store: CatalogStore = Depends(get_catalog_store),
) -> BackendClient:
    return store.client.with_token(token or settings.BACKEND_TOKEN)


def get_quote_service(
    store: CatalogStore = Depends(get_catalog_store),
    resolver: DistanceResolver = Depends(get_distance_resolver),
) -> QuoteService:
    return QuoteService(store, resolver)


def get_job_service(quotes: QuoteService = Depends(get_quote_service)) -> JobService:
    return JobService(quotes)
