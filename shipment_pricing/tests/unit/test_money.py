from decimal import Decimal

import pytest

from shipment_pricing.utils.cache_keys import cache_key, token_fingerprint
from shipment_pricing.utils.money import round_half_up, to_decimal


@pytest.mark.unit
@pytest.mark.parametrize("value,expected", [
    (0, 0),
    (0.5, 1),
    (1.49, 1),
    (41.1, 41),
    (124.5, 125),
    (Decimal("2.5"), 3),
    (Decimal("267.5"), 268),
])
def test_round_half_up(value, expected):
    assert round_half_up(value) == expected


@pytest.mark.unit
def test_to_decimal_uses_shortest_repr():
    assert to_decimal(0.1) == Decimal("0.1")
    assert to_decimal(12) == Decimal("12")
    d = Decimal("1.25")
    assert to_decimal(d) is d


@pytest.mark.unit
def test_cache_key_ignores_dict_order():
    a = cache_key("quote", {"pickup": 1, "dropoff": 2})
    b = cache_key("quote", {"dropoff": 2, "pickup": 1})
    assert a == b
    assert a.startswith("quote:")
    assert a != cache_key("quote", {"pickup": 1, "dropoff": 3})


@pytest.mark.unit
def test_token_fingerprint():
    assert token_fingerprint("dealer-token") == token_fingerprint("dealer-token")
    assert token_fingerprint("dealer-token") != token_fingerprint("other")
    assert len(token_fingerprint(None)) == 16
    assert "dealer-token" not in token_fingerprint("dealer-token")
