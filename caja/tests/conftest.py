from datetime import datetime, timedelta, timezone as dt_timezone

import pytest
from django.core.cache import cache

from caja.services.accounts import open_account


@pytest.fixture(autouse=True)
def _clear_cache():
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def patient(db):
    account, _ = open_account(101)
    return account.patient_id


@pytest.fixture
def other_patient(db):
    account, _ = open_account(202)
    return account.patient_id


@pytest.fixture
def day():
    """Return aware datetimes one day apart, starting 2024-01-01."""
    base = datetime(2024, 1, 1, 12, 0, tzinfo=dt_timezone.utc)

    def _day(n: int) -> datetime:
        return base + timedelta(days=n)
    return _day
