import asyncio

import pytest

from shipment_pricing.core.enums import RegionMatchLevel, ResourceState, VehicleClass
from shipment_pricing.core.errors import LookupUnavailable
from shipment_pricing.services.catalog import (
    CatalogResource,
    commission_from_data,
    load_commission,
    load_extras,
    load_rate_table,
)


class TestRateTableLoading:

    @pytest.mark.rates
    @pytest.mark.asyncio
    async def test_rows_get_state_and_city_names(self, backend_client):
        table = await load_rate_table(backend_client)

        assert len(table) == 3
        by_id = {row.id: row for row in table.rows}
        assert by_id["r-ist"].state_name == "İstanbul"
        assert by_id["r-ist"].city_name == "İstanbul"
        assert by_id["r-ist-kadikoy"].city_name == "Kadıköy"
        assert by_id["r-ank"].rate_for(VehicleClass.COURIER) == 8

        match = table.match_region("Kadıköy", "istanbul")
        assert match.level == RegionMatchLevel.CITY
        assert match.rate.id == "r-ist-kadikoy"

    @pytest.mark.asyncio
    async def test_geo_lookups_are_grouped_by_id(self, backend_client, fake_backend):
        await load_rate_table(backend_client)
        assert fake_backend.count("/geo/states") == 1
        assert fake_backend.count("/geo/cities") == 2

        states_request = next(r for r in fake_backend.requests if r.url.path.endswith("/geo/states"))
        assert states_request.url.params["country_id"] == "90"
        assert states_request.url.params["limit"] == "500"
        assert states_request.url.params["offset"] == "0"

    @pytest.mark.asyncio
    async def test_failed_geo_lookup_leaves_names_blank(self, backend_client, fake_backend):
        fake_backend.fail("/geo/cities")
        table = await load_rate_table(backend_client)

        assert all(row.city_name == "" for row in table.rows)
        assert table.match_region("Kadıköy", "İstanbul").level == RegionMatchLevel.STATE

    @pytest.mark.asyncio
    async def test_bare_list_payload_is_accepted(self, backend_client, fake_backend):
        fake_backend.city_prices = fake_backend.city_prices["data"][:1]
        table = await load_rate_table(backend_client)
        assert len(table) == 1

    @pytest.mark.asyncio
    async def test_garbage_prices_are_unpriced(self, backend_client, fake_backend):
        fake_backend.city_prices = {"data": [{"id": 1, "state_id": 6, "city_id": 601, "country_id": 90,
                                              "courier_price": "abc", "minivan_price": -4, "kamyon_price": None}]}
        table = await load_rate_table(backend_client)
        row = table.rows[0]
        assert row.rate_for(VehicleClass.COURIER) == 0
        assert row.rate_for(VehicleClass.MINIVAN) == 0
        assert row.rate_for(VehicleClass.KAMYON) == 0

    @pytest.mark.asyncio
    async def test_unsuccessful_envelope_raises_lookup_unavailable(self, backend_client, fake_backend):
        fake_backend.fail("/admin/city-prices", status_code=200,
                          payload={"success": False, "message": "city prices are disabled"})
        with pytest.raises(LookupUnavailable) as exc:
            await load_rate_table(backend_client)
        assert exc.value.resource == "rates"
        assert exc.value.message == "city prices are disabled"
        assert exc.value.retryable


class TestExtrasAndCommissionLoading:

    @pytest.mark.asyncio
    async def test_extras_mapping(self, backend_client):
        extras = await load_extras(backend_client)
        assert [offer.id for offer in extras.offers] == ["x1", "x2", "x3"]
        assert extras.get("x1").label == "Fragile handling"
        assert extras.get("x1").applicable_vehicle_tag == "courier"
        assert [o.id for o in extras.available_for("truck")] == ["x2", "x3"]

    @pytest.mark.commission
    @pytest.mark.asyncio
    async def test_commission_loading(self, backend_client, fake_backend):
        commission = await load_commission(backend_client)
        assert commission.percent == 15
        assert commission.description == "Dealer tier A"
        assert commission.is_configured

        request = next(r for r in fake_backend.requests if r.url.path.endswith("/admin/users/commission/"))
        assert request.headers["Authorization"] == "Bearer dealer-token"

    @pytest.mark.asyncio
    async def test_commission_without_data_is_unavailable(self, backend_client, fake_backend):
        fake_backend.commission = {"success": True}
        with pytest.raises(LookupUnavailable):
            await load_commission(backend_client)

    @pytest.mark.parametrize("data,percent", [
        ({"commissionRate": None}, 0),
        ({"commissionRate": "12.5"}, 12.5),
        ({"commissionRate": "nope"}, 0),
        ({"commissionRate": -3}, 0),
        ({}, 0),
    ])
    def test_commission_from_data(self, data, percent):
        commission = commission_from_data(data)
        assert commission.percent == percent
        assert commission.is_configured == (percent > 0)

    @pytest.mark.commission
    def test_commission_above_hundred_percent_is_rejected(self):
        with pytest.raises(LookupUnavailable) as exc:
            commission_from_data({"commissionRate": 150})
        assert exc.value.resource == "commission"

    @pytest.mark.commission
    @pytest.mark.asyncio
    async def test_out_of_range_commission_is_unavailable(self, backend_client, fake_backend):
        fake_backend.commission = {"success": True, "data": {"commissionRate": "120"}}
        with pytest.raises(LookupUnavailable):
            await load_commission(backend_client)


class TestCatalogResource:

    @pytest.mark.asyncio
    async def test_loads_once_for_concurrent_callers(self):
        calls = []

        async def loader():
            calls.append(1)
            await asyncio.sleep(0)
            return ["row"]

        resource = CatalogResource("rates", loader)
        assert resource.state == ResourceState.IDLE

        results = await asyncio.gather(resource.get(), resource.get(), resource.get())

        assert results == [["row"]] * 3
        assert len(calls) == 1
        assert resource.state == ResourceState.READY
        assert resource.status().size == 1

    @pytest.mark.asyncio
    async def test_failure_is_kept_until_reload(self):
        attempts = []

        async def loader():
            attempts.append(1)
            if len(attempts) == 1:
                raise LookupUnavailable("extras", "HTTP 503")
            return ["offer"]

        resource = CatalogResource("extras", loader)
        assert await resource.get_or_none() is None
        assert resource.state == ResourceState.FAILED
        assert resource.status().retryable
        assert resource.status().error == "HTTP 503"

        with pytest.raises(LookupUnavailable):
            await resource.get()
        assert len(attempts) == 1

        assert await resource.reload() == ["offer"]
        assert resource.state == ResourceState.READY
        assert resource.error is None

    @pytest.mark.asyncio
    async def test_malformed_data_becomes_lookup_unavailable(self):
        async def loader():
            raise KeyError("data")

        resource = CatalogResource("rates", loader)
        with pytest.raises(LookupUnavailable) as exc:
            await resource.get()
        assert exc.value.resource == "rates"
        assert resource.state == ResourceState.FAILED

    @pytest.mark.asyncio
    async def test_store_status(self, catalog_store):
        status = catalog_store.status()
        assert status.resources["rates"].state == ResourceState.IDLE

        await catalog_store.warm_up()
        status = catalog_store.status()
        assert status.resources["rates"].state == ResourceState.READY
        assert status.resources["rates"].size == 3
        assert status.resources["extras"].size == 3
