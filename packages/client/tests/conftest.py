"""Client fixtures: a Session wired to the in-process API."""

import pytest

from membermap_client import ClientConfig, DataGateway, Session


class FakeClock:
    """Monotonic clock the test advances by hand."""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def client_config():
    return ClientConfig.model_validate(
        {"server": {"base_url": "http://test"}, "views": {"admin_page_size": 2}}
    )


@pytest.fixture
async def session(transport, client_config):
    s = Session.from_config(client_config, transport=transport)
    yield s
    await s.close()


@pytest.fixture
def gateway(session):
    return DataGateway(session)


@pytest.fixture
def clock():
    return FakeClock()
