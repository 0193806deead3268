import fnmatch
import json

import httpx
import pytest

from shipment_pricing.core import dependencies
from shipment_pricing.core import redis as redis_module
from shipment_pricing.core.enums import VehicleClass
from shipment_pricing.main import app
from shipment_pricing.schemas.extras import ExtraServiceOffer
from shipment_pricing.schemas.geo import GeoPoint
from shipment_pricing.schemas.rates import RegionRate
from shipment_pricing.services.backend import BackendClient
from shipment_pricing.services.catalog import CatalogStore
from shipment_pricing.services.distance import DistanceResolver
from shipment_pricing.services.extras import ExtrasCatalog
from shipment_pricing.services.rate_table import RateTable

BACKEND_URL = "http://backend.test/yuksi"
ROUTING_URL = "http://osrm.test"


CITY_PRICE_ROWS = [
    {
        "id": "r-ist-kadikoy",
        "route_name": "İstanbul / Kadıköy",
        "country_id": 90,
        "state_id": 34,
        "city_id": 3401,
        "courier_price": 12,
        "minivan_price": 20,
        "panelvan_price": 25,
        "kamyonet_price": 0,
        "kamyon_price": 40,
    },
    {
        "id": "r-ist",
        "route_name": "İstanbul",
        "country_id": 90,
        "state_id": 34,
        "city_id": 3400,
        "courier_price": 10,
        "minivan_price": 18,
        "panelvan_price": 22,
        "kamyonet_price": 30,
        "kamyon_price": 45,
    },
    {
        "id": "r-ank",
        "route_name": "Ankara",
        "country_id": 90,
        "state_id": 6,
        "city_id": 601,
        "courier_price": 8,
        "minivan_price": 0,
        "panelvan_price": 0,
        "kamyonet_price": 0,
        "kamyon_price": 0,
    },
]

STATE_NAMES = [{"id": 34, "name": "İstanbul"}, {"id": 6, "name": "Ankara"}]
CITY_NAMES = {
    34: [{"id": 3401, "name": "Kadıköy"}, {"id": 3400, "name": "İstanbul"}],
    6: [{"id": 601, "name": "Çankaya"}],
}

EXTRA_SERVICES = [
    {"id": "x1", "service_name": "Fragile handling", "price": 100, "carrier_type": "courier"},
    {"id": "x2", "service_name": "Insurance", "price": 50, "carrier_type": None},
    {"id": "x3", "service_name": "Lift gate", "price": 75, "carrier_type": "truck"},
]


def rate_row(id, city, state, **prices):
    return RegionRate(
        id=id,
        route_label=f"{city} / {state}",
        city_name=city,
        state_name=state,
        unit_price_by_vehicle_class={VehicleClass(k): v for k, v in prices.items()},
    )


def json_response(payload, status_code=200):
    return httpx.Response(status_code, content=json.dumps(payload).encode(), headers={"Content-Type": "application/json"})


class FakeBackend:
    """In-memory stand-in for the REST backend, served through httpx.MockTransport."""

    def __init__(self):
        self.city_prices = {"success": True, "data": list(CITY_PRICE_ROWS)}
        self.states = {"success": True, "data": list(STATE_NAMES)}
        self.cities = {sid: {"success": True, "data": rows} for sid, rows in CITY_NAMES.items()}
        self.extras = {"success": True, "data": list(EXTRA_SERVICES)}
        self.commission = {"success": True, "data": {"id": "u1", "commissionRate": 15, "commissionDescription": "Dealer tier A"}}
        self.job_response = {"success": True, "message": "Load created", "data": {"id": "job-1"}}
        self.failures = {}
        self.requests = []
        self.jobs = []

    def fail(self, path, status_code=500, payload=None):
        self.failures[path] = (status_code, payload or {"success": False, "message": f"{path} failed"})

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path.replace("/yuksi", "", 1)
        self.requests.append(request)
        if path in self.failures:
            status_code, payload = self.failures[path]
            return json_response(payload, status_code)
        if path == "/admin/city-prices":
            return json_response(self.city_prices)
        if path == "/geo/states":
            return json_response(self.states)
        if path == "/geo/cities":
            state_id = int(request.url.params["state_id"])
            return json_response(self.cities.get(state_id, {"data": []}))
        if path == "/admin/extra-services":
            return json_response(self.extras)
        if path == "/admin/users/commission/":
            return json_response(self.commission)
        if path == "/corporate/jobs" and request.method == "POST":
            self.jobs.append(json.loads(request.content))
            return json_response(self.job_response)
        return json_response({"detail": "Not Found"}, 404)

    def count(self, path):
        return sum(1 for r in self.requests if r.url.path.endswith(path))


class FakeRouting:

    def __init__(self, meters=12400.0):
        self.meters = meters
        self.status_code = 200
        self.payload = None
        self.requests = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.payload is not None:
            return json_response(self.payload, self.status_code)
        return json_response({"code": "Ok", "routes": [{"distance": self.meters}]}, self.status_code)

class InMemoryRedis:
    """Just enough of redis.asyncio.Redis for the advisory caches."""

    def __init__(self):
        self.store = {}
        self.ttls = {}

    async def get(self, key):
        return self.store.get(key)

    async def set(self, key, value, ex=None):
        self.store[key] = value.encode() if isinstance(value, str) else value
        self.ttls[key] = ex

    async def scan_iter(self, match=None):
        for key in list(self.store):
            if match is None or fnmatch.fnmatchcase(key, match):
                yield key

    async def delete(self, *keys):
        removed = 0
        for key in keys:
            if self.store.pop(key, None) is not None:
                self.ttls.pop(key, None)
                removed += 1
        return removed

    def keys_with_prefix(self, prefix):
        return [key for key in self.store if key.startswith(prefix)]


@pytest.fixture
def fake_redis(monkeypatch):
    client = InMemoryRedis()
    monkeypatch.setattr(redis_module, "redis", client)
    return client



@pytest.fixture
def fake_backend():
    return FakeBackend()


@pytest.fixture
def fake_routing():
    return FakeRouting()


@pytest.fixture
async def backend_client(fake_backend):
    async with httpx.AsyncClient(transport=httpx.MockTransport(fake_backend.handler)) as client:
        yield BackendClient(client, token="dealer-token", base_url=BACKEND_URL)


@pytest.fixture
async def resolver(fake_routing):
    async with httpx.AsyncClient(transport=httpx.MockTransport(fake_routing.handler)) as client:
        yield DistanceResolver(client, base_url=ROUTING_URL, profile="driving")


@pytest.fixture
def catalog_store(backend_client):
    return CatalogStore(backend_client)


@pytest.fixture
def istanbul_table():
    return RateTable([
        rate_row("ist", "İstanbul", "İstanbul", courier=10, minivan=18, panelvan=22, kamyonet=30, kamyon=45),
    ])


@pytest.fixture
def extras_catalog():
    return ExtrasCatalog([
        ExtraServiceOffer(id="fragile", label="Fragile handling", price=100, applicable_vehicle_tag="courier"),
        ExtraServiceOffer(id="insurance", label="Insurance", price=50),
        ExtraServiceOffer(id="liftgate", label="Lift gate", price=75, applicable_vehicle_tag="truck"),
    ])


@pytest.fixture
def pickup():
    return GeoPoint(lat=40.9909, lng=29.0303, address="Moda Cd., Kadıköy, İstanbul, Türkiye",
                    city_name="Kadıköy", state_name="İstanbul")


@pytest.fixture
def dropoff():
    return GeoPoint(lat=41.0422, lng=29.0083, address="Barbaros Blv., Beşiktaş, İstanbul, Türkiye",
                    city_name="İstanbul", state_name="İstanbul")


@pytest.fixture
async def test_client(catalog_store, resolver):
    app.dependency_overrides[dependencies.get_catalog_store] = lambda: catalog_store
    app.dependency_overrides[dependencies.get_distance_resolver] = lambda: resolver
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    return {"Authorization": "Bearer dealer-token"}


def pytest_configure(config):
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests"
    )
    config.addinivalue_line(
        "markers", "pricing: marks tests related to pricing"
    )
    config.addinivalue_line(
        "markers", "rates: marks tests related to region rate matching"
    )
    config.addinivalue_line(
        "markers", "distance: marks tests related to routing distance"
    )
    config.addinivalue_line(
        "markers", "commission: marks tests related to commission splits"
    )
    config.addinivalue_line(
        "markers", "jobs: marks tests related to job submission"
    )
