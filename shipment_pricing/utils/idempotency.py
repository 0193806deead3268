from shipment_pricing.core.config import settings
from shipment_pricing.core.redis import cache_get_json, cache_set_json
from shipment_pricing.utils.cache_keys import token_fingerprint


def _key(token: str | None, key: str) -> str:
    return f"idemp:{token_fingerprint(token)}:{key}"


async def get_idempotent(token: str | None, key: str | None):
    if not key:
        return None
    return await cache_get_json(_key(token, key), "idempotency")


async def set_idempotent(token: str | None, key: str | None, value: dict):
    if not key:
        return
    await cache_set_json(_key(token, key), value, settings.IDEMPOTENCY_TTL, "idempotency")
