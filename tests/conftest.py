import pytest

from consult_pricing.models.rates import RateSnapshot

from helpers import make_snapshot


@pytest.fixture
def snapshot() -> RateSnapshot:
    return make_snapshot()
