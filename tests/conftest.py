import pytest

from household_agenda.state import InMemoryStore
from household_agenda.utils import FixedClock

from tests.factories import NOW


@pytest.fixture
def clock():
    return FixedClock(NOW)


@pytest.fixture
def store():
    return InMemoryStore()
