import pytest

from recordkit import EngineFactory, reset_default_engine


@pytest.fixture(autouse=True)
def fresh_default_engine():
    """Each test starts with an empty shared metadata cache."""
    reset_default_engine()
    yield
    reset_default_engine()


@pytest.fixture
def engine():
    return EngineFactory().create()
