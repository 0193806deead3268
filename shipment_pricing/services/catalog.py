"""Session-wide catalogs (region rates, extras, commission) and their loaders"""
import asyncio
import logging
import math
from typing import Any, Awaitable, Callable, Dict, Generic, Iterable, Optional, TypeVar

from shipment_pricing.core.config import settings
from shipment_pricing.core.enums import ResourceState, VehicleClass
from shipment_pricing.core.errors import LookupUnavailable
from shipment_pricing.core.redis import cache_get_json, cache_set_json
from shipment_pricing.schemas.catalog import CatalogStatus, ResourceStatus
from shipment_pricing.schemas.commission import CommissionRate
from shipment_pricing.schemas.extras import ExtraServiceOffer
from shipment_pricing.schemas.rates import RegionRate
from shipment_pricing.services.backend import BackendClient
from shipment_pricing.services.extras import ExtrasCatalog
from shipment_pricing.services.rate_table import RATE_POLICY_VERSION, RateTable
from shipment_pricing.utils.cache_keys import cache_key, token_fingerprint

logger = logging.getLogger(__name__)

T = TypeVar("T")

PRICE_COLUMNS = {
    VehicleClass.COURIER: "courier_price",
    VehicleClass.MINIVAN: "minivan_price",
    VehicleClass.PANELVAN: "panelvan_price",
    VehicleClass.KAMYONET: "kamyonet_price",
    VehicleClass.KAMYON: "kamyon_price",
}


class CatalogResource(Generic[T]):
    """A read-only resource loaded once per session.

    Concurrent callers share the single in-flight load. A failed load keeps
    its message for display until ``reload`` is called.
    """

    def __init__(self, name: str, loader: Callable[[], Awaitable[T]]):
        self.name = name
        self._loader = loader
        self._task: Optional[asyncio.Task] = None
        self.state = ResourceState.IDLE
        self.value: Optional[T] = None
        self.error: Optional[str] = None

    async def _load(self) -> T:
        self.state = ResourceState.LOADING
        self.error = None
        try:
            value = await self._loader()
        except LookupUnavailable as e:
            self.state = ResourceState.FAILED
            self.error = e.message
            logger.warning(f"Loading {self.name} failed: {e.message}")
            raise
        except Exception as e:
            self.state = ResourceState.FAILED
            self.error = f"{self.name} returned malformed data"
            logger.error(f"Loading {self.name} failed: {e}", exc_info=True)
            raise LookupUnavailable(self.name, self.error) from e
        self.value = value
        self.state = ResourceState.READY
        logger.info(f"Loaded {self.name}")
        return value

    async def get(self) -> T:
        if self.state == ResourceState.READY:
            return self.value
        if self.state == ResourceState.FAILED:
            raise LookupUnavailable(self.name, self.error)
        if self._task is None:
            self._task = asyncio.create_task(self._load())
        return await asyncio.shield(self._task)

    async def get_or_none(self) -> Optional[T]:
        try:
            return await self.get()
        except LookupUnavailable:
            return None

    async def reload(self) -> T:
        if self._task is not None and not self._task.done():
            return await asyncio.shield(self._task)
        self._task = None
        self.state = ResourceState.IDLE
        self.value = None
        return await self.get()

    def status(self) -> ResourceStatus:
        size = len(self.value) if self.value is not None and hasattr(self.value, "__len__") else None
        return ResourceStatus(
            state=self.state,
            error=self.error,
            retryable=self.state == ResourceState.FAILED,
            size=size,
        )


def _to_int(value: Any) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _to_price(value: Any) -> float:
    try:
        price = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(price) or price < 0:
        return 0.0
    return price


def _decode_names(cached: Any) -> Dict[int, str]:
    return {int(k): v for k, v in cached.items()}


async def _cached_names(
    kind: str,
    lookup_id: int,
    fetch: Callable[[int], Awaitable[Dict[int, str]]],
) -> Dict[int, str]:
    key = cache_key(f"geo:{kind}", {"id": lookup_id})
    cached = await cache_get_json(key, f"geo_{kind}")
    if isinstance(cached, dict):
        return _decode_names(cached)
    try:
        names = await fetch(lookup_id)
    except LookupUnavailable as e:
        # rows whose names cannot be resolved simply never match a region
        logger.warning(f"Resolving {kind} names for {lookup_id} failed: {e.message}")
        return {}
    await cache_set_json(key, names, settings.GEO_CACHE_TTL, f"geo_{kind}")
    return names


async def _resolve_names(
    kind: str,
    ids: Iterable[int],
    fetch: Callable[[int], Awaitable[Dict[int, str]]],
) -> Dict[int, str]:
    merged: Dict[int, str] = {}
    results = await asyncio.gather(*(_cached_names(kind, i, fetch) for i in sorted(set(ids))))
    for names in results:
        merged.update(names)
    return merged


def region_rate_from_row(row: dict, state_names: Dict[int, str], city_names: Dict[int, str]) -> RegionRate:
    state_id = _to_int(row.get("state_id"))
    city_id = _to_int(row.get("city_id"))
    return RegionRate(
        id=str(row.get("id", "")),
        route_label=str(row.get("route_name") or ""),
        country_id=_to_int(row.get("country_id")),
        state_id=state_id,
        city_id=city_id,
        state_name=state_names.get(state_id, "") if state_id is not None else "",
        city_name=city_names.get(city_id, "") if city_id is not None else "",
        unit_price_by_vehicle_class={
            vehicle_class: _to_price(row.get(column)) for vehicle_class, column in PRICE_COLUMNS.items()
        },
    )


async def load_rate_table(client: BackendClient) -> RateTable:
    rows = await client.fetch_city_prices()

    country_ids = [cid for cid in (_to_int(r.get("country_id")) for r in rows) if cid is not None]
    state_ids = [sid for sid in (_to_int(r.get("state_id")) for r in rows) if sid is not None]

    state_names, city_names = await asyncio.gather(
        _resolve_names("states", country_ids, client.fetch_state_names),
        _resolve_names("cities", state_ids, client.fetch_city_names),
    )

    table = RateTable(region_rate_from_row(r, state_names, city_names) for r in rows)
    logger.info(f"Rate table loaded with {len(table)} regions (policy {RATE_POLICY_VERSION})")
    return table


def offer_from_row(row: dict) -> Optional[ExtraServiceOffer]:
    if row.get("id") is None:
        return None
    return ExtraServiceOffer(
        id=str(row["id"]),
        label=str(row.get("service_name") or row.get("name") or ""),
        price=_to_price(row.get("price")),
        applicable_vehicle_tag=row.get("carrier_type") or None,
    )


async def load_extras(client: BackendClient) -> ExtrasCatalog:
    rows = await client.fetch_extra_services()
    offers = [offer for offer in (offer_from_row(r) for r in rows) if offer is not None]
    return ExtrasCatalog(offers)


def commission_from_data(data: dict) -> CommissionRate:
    try:
        percent = float(data.get("commissionRate") or 0)
    except (TypeError, ValueError):
        percent = 0.0
    if not math.isfinite(percent) or percent < 0:
        percent = 0.0
    if percent > 100:
        raise LookupUnavailable("commission", f"Commission rate {percent}% is out of range")
    description = data.get("commissionDescription")
    return CommissionRate(
        percent=percent,
        description=str(description) if description is not None else None,
    )


async def load_commission(client: BackendClient) -> CommissionRate:
    key = f"commission:{token_fingerprint(client.token)}"
    cached = await cache_get_json(key, "commission")
    if isinstance(cached, dict):
        return CommissionRate(**cached)
    commission = commission_from_data(await client.fetch_commission())
    await cache_set_json(key, commission.model_dump(), settings.COMMISSION_CACHE_TTL, "commission")
    return commission


class CatalogStore:
    """Shared, read-only rate and extras catalogs for one backend session."""

    def __init__(self, client: BackendClient):
        self.client = client
        self.rates: CatalogResource[RateTable] = CatalogResource("rates", lambda: load_rate_table(client))
        self.extras: CatalogResource[ExtrasCatalog] = CatalogResource("extras", lambda: load_extras(client))

    def resources(self) -> Dict[str, CatalogResource]:
        return {"rates": self.rates, "extras": self.extras}

    async def warm_up(self) -> None:
        await asyncio.gather(self.rates.get_or_none(), self.extras.get_or_none())

    async def reload(self, name: Optional[str] = None) -> None:
        targets = [self.resources()[name]] if name else list(self.resources().values())
        for resource in targets:
            await resource.reload()

    def status(self) -> CatalogStatus:
        return CatalogStatus(
            rate_policy=RATE_POLICY_VERSION,
            resources={name: resource.status() for name, resource in self.resources().items()},
        )
