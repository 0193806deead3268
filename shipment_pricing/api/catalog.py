from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from shipment_pricing.core.dependencies import get_catalog_store
from shipment_pricing.core.errors import LookupUnavailable
from shipment_pricing.core.redis import cache_delete_prefix
from shipment_pricing.schemas.catalog import CatalogStatus
from shipment_pricing.schemas.extras import ExtraServiceOffer
from shipment_pricing.schemas.rates import RegionRate
from shipment_pricing.services.catalog import CatalogStore
from shipment_pricing.utils.cache_keys import QUOTE_CACHE_NAMESPACE

router = APIRouter(prefix="/catalog", tags=["catalog"])

CATALOG_RESOURCES = {"rates", "extras"}


def _unavailable(e: LookupUnavailable) -> HTTPException:
    return HTTPException(
        status_code=503,
        detail={"kind": str(e.kind), "resource": e.resource, "message": e.message, "retryable": e.retryable},
    )


@router.get("/status", response_model=CatalogStatus)
async def catalog_status(store: CatalogStore = Depends(get_catalog_store)):
    return store.status()


@router.get("/rates", response_model=List[RegionRate])
async def list_rates(store: CatalogStore = Depends(get_catalog_store)):
    try:
        table = await store.rates.get()
    except LookupUnavailable as e:
        raise _unavailable(e)
    return list(table.rows)


@router.get("/extras", response_model=List[ExtraServiceOffer])
async def list_extras(
    vehicle_tag: Optional[str] = Query(None),
    store: CatalogStore = Depends(get_catalog_store),
):
    try:
        extras = await store.extras.get()
    except LookupUnavailable as e:
        raise _unavailable(e)
    return extras.available_for(vehicle_tag)


@router.post("/reload", response_model=CatalogStatus)
async def reload_catalog(
    resource: Optional[str] = Query(None),
    store: CatalogStore = Depends(get_catalog_store),
):
    if resource is not None and resource not in CATALOG_RESOURCES:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid resource. Must be one of {sorted(CATALOG_RESOURCES)}"
        )
    # cached quotes were priced against the catalogs being replaced
    await cache_delete_prefix(f"{QUOTE_CACHE_NAMESPACE}:", QUOTE_CACHE_NAMESPACE)
    try:
        await store.reload(resource)
    except LookupUnavailable as e:
        raise _unavailable(e)
    return store.status()
