import os
import sys
from pathlib import Path

import httpx
import pytest
import pytest_asyncio

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from bookscrapper.fetcher import PageFetcher
from bookscrapper.storage.db import close_db, init_db


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Tests never pick up settings from the developer's shell or .env file."""

    for key in [
        "SCRAPPER_DATABASE_URL",
        "DATABASE_URL",
        "CRAWLER_USER_AGENT",
        "CRAWL_DELAY",
        "MAX_ITERATIONS",
        "WORKERS",
        "WYKOP_APP_KEY",
        "SCRAPPER_ENV_FILE",
        "FUZZY_THRESHOLD",
        "LOG_LEVEL",
        "LOG_PATH",
        "REVIEW_PAGE_DELAY",
        "REQUEST_TIMEOUT",
        "METRICS_PORT",
    ]:
        monkeypatch.delenv(key, raising=False)

    # no .env lookup outside of tests that ask for one
    monkeypatch.setattr(
        "bookscrapper.utils.env_loader.find_dotenv", lambda *args, **kwargs: ""
    )

    # load_dotenv writes os.environ directly, behind monkeypatch's back
    snapshot = dict(os.environ)
    yield
    os.environ.clear()
    os.environ.update(snapshot)


@pytest_asyncio.fixture
async def db():
    await init_db("sqlite://:memory:")
    yield
    await close_db()


@pytest_asyncio.fixture
async def website(db):
    from bookscrapper.storage.website_service import find_or_create_website

    return await find_or_create_website("https://books.example.com")


class RoutedTransport:
    """Serves canned HTML/JSON per path (or full URL); unknown URLs are 404."""

    def __init__(self, routes):
        self.routes = routes
        self.requested = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requested.append(str(request.url))
        route = self.routes.get(str(request.url), self.routes.get(request.url.path))
        if route is None:
            return httpx.Response(status_code=404, text="not found")
        if isinstance(route, httpx.Response):
            return route
        if isinstance(route, (dict, list)):
            return httpx.Response(status_code=200, json=route)
        return httpx.Response(
            status_code=200,
            headers={"Content-Type": "text/html; charset=utf-8"},
            text=route,
        )


@pytest_asyncio.fixture
async def make_fetcher():
    clients = []

    def factory(routes):
        transport = RoutedTransport(routes)
        client = httpx.AsyncClient(
            transport=httpx.MockTransport(transport.handler),
            follow_redirects=True,
        )
        clients.append(client)
        fetcher = PageFetcher(client, min_delay=0)
        fetcher.transport = transport
        return fetcher

    yield factory

    for client in clients:
        await client.aclose()
