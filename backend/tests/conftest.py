import pytest

from codeui import db
from tests.fakes import FakeClock, MemoryStorage


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture(autouse=True)
def clean_db():
    db.clear()
    yield
    db.clear()
