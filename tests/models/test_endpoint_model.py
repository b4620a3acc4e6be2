import pytest
from sqlalchemy.exc import IntegrityError

from clarity.models.endpoint import Endpoint
from clarity.models.ping import Ping
from clarity.models.price_history import PriceHistory


def test_endpoint_defaults(db):
    endpoint = Endpoint(resource_url="https://api.example.com/")
    db.add(endpoint)
    db.commit()
    db.refresh(endpoint)

    assert endpoint.id is not None
    assert endpoint.is_active is True
    assert endpoint.consecutive_failures == 0
    assert endpoint.tags == []
    assert endpoint.price_micro_usdc is None
    assert endpoint.category is None
    assert endpoint.first_indexed_at is not None
    assert "active" in repr(endpoint)


def test_resource_url_is_unique(db):
    db.add(Endpoint(resource_url="https://api.example.com/"))
    db.commit()

    db.add(Endpoint(resource_url="https://api.example.com/"))
    with pytest.raises(IntegrityError):
        db.commit()
    db.rollback()


def test_relationships(db, make_endpoint, add_pings):
    endpoint = make_endpoint()
    add_pings(endpoint, [(True, 10, 1), (False, 20, 2)])
    db.refresh(endpoint)

    assert len(endpoint.pings) == 2
    assert all(isinstance(p, Ping) for p in endpoint.pings)
    assert endpoint.pings[0].endpoint.id == endpoint.id


def test_price_history_unique_per_day(db, make_endpoint):
    from datetime import date

    endpoint = make_endpoint()
    db.add(PriceHistory(endpoint_id=endpoint.id, recorded_at=date(2026, 1, 1), price_micro_usdc=1))
    db.commit()

    db.add(PriceHistory(endpoint_id=endpoint.id, recorded_at=date(2026, 1, 1), price_micro_usdc=2))
    with pytest.raises(IntegrityError):
        db.commit()
    db.rollback()
