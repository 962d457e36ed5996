import httpx
import pytest

from bookscrapper.errors import ParseError, TerminalFetchError, TransientFetchError
from bookscrapper.fetcher import DomainThrottle, PageFetcher
from bookscrapper.monitoring.metrics_server import REQUEST_COUNT


def _fetcher(handler, **kwargs):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler), follow_redirects=True)
    return client, PageFetcher(client, **kwargs)


@pytest.mark.asyncio
async def test_fetch_returns_parsed_document():
    async def handler(request: httpx.Request) -> httpx.Response:
        assert request.headers["User-Agent"] == "TestBot/1.0"
        return httpx.Response(
            status_code=200,
            headers={"Content-Type": "text/html; charset=utf-8"},
            text="<html><head><title>Diuna</title></head><body><h1>Diuna</h1></body></html>",
        )

    client, fetcher = _fetcher(handler, user_agent="TestBot/1.0")
    before = REQUEST_COUNT.labels(website="books.example.com")._value.get()

    async with client:
        page = await fetcher.fetch("https://books.example.com/literatura/1")

    assert page.status_code == 200
    assert page.url == "https://books.example.com/literatura/1"
    assert page.document.h1.get_text() == "Diuna"
    assert REQUEST_COUNT.labels(website="books.example.com")._value.get() == before + 1


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [404, 410, 403])
async def test_client_errors_are_terminal(status):
    async def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code=status, text="nope")

    client, fetcher = _fetcher(handler)
    async with client:
        with pytest.raises(TerminalFetchError) as exc_info:
            await fetcher.fetch("https://books.example.com/missing")

    assert exc_info.value.reason == "NOT_FOUND"
    assert exc_info.value.status_code == status


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [500, 503, 429])
async def test_server_errors_are_transient(status):
    async def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code=status)

    client, fetcher = _fetcher(handler)
    async with client:
        with pytest.raises(TransientFetchError) as exc_info:
            await fetcher.fetch("https://books.example.com/")

    assert exc_info.value.reason == "TRANSIENT_NETWORK_ERROR"


@pytest.mark.asyncio
async def test_transport_errors_are_transient():
    async def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectTimeout("timed out", request=request)

    client, fetcher = _fetcher(handler)
    async with client:
        with pytest.raises(TransientFetchError):
            await fetcher.fetch("https://books.example.com/")


@pytest.mark.asyncio
async def test_non_html_body_is_parse_error():
    async def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code=200, json={"ok": True})

    client, fetcher = _fetcher(handler)
    async with client:
        with pytest.raises(ParseError) as exc_info:
            await fetcher.fetch("https://books.example.com/api")

    assert exc_info.value.reason == "PARSE_ERROR"


@pytest.mark.asyncio
async def test_oversized_body_is_parse_error():
    async def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            status_code=200,
            headers={"Content-Type": "text/html"},
            content=b"x" * 50,
        )

    client, fetcher = _fetcher(handler, max_download_bytes=10)
    async with client:
        with pytest.raises(ParseError):
            await fetcher.fetch("https://books.example.com/large")


@pytest.mark.asyncio
async def test_fetch_json_passes_params():
    async def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.params["page"] == "2"
        return httpx.Response(status_code=200, json={"data": [1, 2]})

    client, fetcher = _fetcher(handler)
    async with client:
        payload = await fetcher.fetch_json("https://api.example.com/entries", {"page": 2})

    assert payload == {"data": [1, 2]}


@pytest.mark.asyncio
async def test_invalid_json_is_parse_error():
    async def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code=200, text="<html></html>")

    client, fetcher = _fetcher(handler)
    async with client:
        with pytest.raises(ParseError):
            await fetcher.fetch_json("https://api.example.com/entries")


@pytest.mark.asyncio
async def test_fetcher_owns_client_when_none_given():
    async with PageFetcher() as fetcher:
        assert isinstance(fetcher.client, httpx.AsyncClient)
    assert fetcher.client is None


@pytest.mark.asyncio
async def test_domain_throttle_delays_same_domain(monkeypatch):
    sleeps = []

    async def fake_sleep(seconds):
        sleeps.append(seconds)

    monkeypatch.setattr("bookscrapper.fetcher.asyncio.sleep", fake_sleep)
    throttle = DomainThrottle(min_delay=5)

    await throttle.wait("https://a.example.com/1")
    await throttle.wait("https://b.example.com/1")
    await throttle.wait("https://a.example.com/2")

    assert len(sleeps) == 1
    assert 0 < sleeps[0] <= 5
