import pytest
from fastapi.testclient import TestClient

from factories import FakeIdentityProvider
from src.config.settings import MeetupLocation, Settings
from src.repository.entities import EntityRepository
from src.repository.indexes import IndexMaintainer
from src.server import MarketplaceServer, create_app
from src.services.listing_service import ListingService
from src.services.message_service import MessageService
from src.storage.kv_store import SQLiteKVStore


@pytest.fixture
def settings():
    return Settings(
        db_path=":memory:",
        index_rebuild_time="",
        admin_token="admin-secret",
        meetup_locations=[
            MeetupLocation(slug="sau", label="Student Alumni Union (SAU)"),
            MeetupLocation(slug="wallace-library", label="Wallace Library"),
        ],
    )


@pytest.fixture
async def store():
    async with SQLiteKVStore(":memory:") as kv:
        yield kv


@pytest.fixture
def indexes(store):
    return IndexMaintainer(store)


@pytest.fixture
def repository(store, indexes):
    return EntityRepository(store, indexes)


@pytest.fixture
def listing_service(repository):
    return ListingService(repository)


@pytest.fixture
def message_service(repository, indexes, settings):
    return MessageService(repository, indexes, settings)


@pytest.fixture
def identity():
    return FakeIdentityProvider()


@pytest.fixture
def client(settings, identity):
    server = MarketplaceServer(
        settings=settings,
        store=SQLiteKVStore(":memory:"),
        identity=identity,
    )
    with TestClient(create_app(server)) as test_client:
        yield test_client
