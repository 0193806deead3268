"""Pricing quote endpoint with Redis caching"""
import logging
from fastapi import APIRouter, Depends

from shipment_pricing.schemas.quote import QuoteRequest, QuoteResponse
from shipment_pricing.services.backend import BackendClient
from shipment_pricing.services.quotes import QuoteService
from shipment_pricing.core.config import settings
from shipment_pricing.core.dependencies import get_backend_client, get_quote_service
from shipment_pricing.core.redis import cache_get_json, cache_set_json
from shipment_pricing.utils.cache_keys import QUOTE_CACHE_NAMESPACE, cache_key, token_fingerprint

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/quotes", tags=["quotes"])


def _generate_cache_key(req: QuoteRequest, client: BackendClient) -> str:
    return cache_key(
        QUOTE_CACHE_NAMESPACE,
        {"request": req.model_dump(mode="json"), "dealer": token_fingerprint(client.token)},
    )


def _cacheable(result: QuoteResponse) -> bool:
    # warnings carry failed commission/extras lookups, which are retryable too
    if result.warnings:
        return False
    return result.diagnostic is None or not result.diagnostic.retryable


@router.post("/calc", response_model=QuoteResponse)
async def calc_quote(
    req: QuoteRequest,
    service: QuoteService = Depends(get_quote_service),
    client: BackendClient = Depends(get_backend_client),
):
    key = _generate_cache_key(req, client)
    cached = await cache_get_json(key, QUOTE_CACHE_NAMESPACE)
    if cached:
        return QuoteResponse(**cached)

    result = await service.quote(req, client)

    if _cacheable(result):
        await cache_set_json(key, result.model_dump(mode="json"), settings.QUOTE_CACHE_TTL, QUOTE_CACHE_NAMESPACE)
    else:
        logger.debug("Quote not cached: it depends on a lookup that may recover")

    return result
