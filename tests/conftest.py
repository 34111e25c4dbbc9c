import pytest
from httpx import ASGITransport, AsyncClient

from s3fileserver.api import create_app
from s3fileserver.config import Settings
from s3fileserver.connections import FileServerContext
from tests.tools import FakeObjectStore, MemoryCache

API_URL = "https://files.example.com"


@pytest.fixture(scope="session")
def anyio_backend():
    return "asyncio"


@pytest.fixture()
def settings() -> Settings:
    return Settings(s3_bucket_name="test-bucket", s3_region="us-east-1", api_url=API_URL)


@pytest.fixture()
def store() -> FakeObjectStore:
    store = FakeObjectStore()
    store.add("docs/a.txt", "docs/b.txt", "docs/sub/c.txt", "readme.md")
    return store


@pytest.fixture()
def cache() -> MemoryCache:
    return MemoryCache()


@pytest.fixture()
def context(settings, store, cache) -> FileServerContext:
    return FileServerContext(settings, store, cache)


@pytest.fixture()
def app(context):
    app = create_app(context.settings)
    # the lifespan is not run by the test transport, so provide the context directly
    app.state.context = context
    return app


@pytest.fixture()
async def client(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test", follow_redirects=False) as client:
        yield client
