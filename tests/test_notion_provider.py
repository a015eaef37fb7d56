import pytest
import requests

from workgraph.fetching.errors import MalformedResponseError, TransportError, UpstreamError
from workgraph.fetching.providers import PROVIDER_REGISTRY, NotionProvider, get_provider


class FakeResponse:
    def __init__(self, status_code=200, payload=None, text=""):
        self.status_code = status_code
        self._payload = payload
        self.text = text

    @property
    def ok(self):
        return self.status_code < 400

    def json(self):
        if self._payload is None:
            raise ValueError("no json")
        return self._payload


class FakeSession(requests.Session):
    def __init__(self, responses):
        super().__init__()
        self.responses = list(responses)
        self.calls = []

    def request(self, method, url, **kwargs):
        self.calls.append((method, url, kwargs.get("json")))
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def provider(*responses):
    return NotionProvider(api_key="secret", base_url="https://api.test/v1", session=FakeSession(responses))


@pytest.mark.asyncio
async def test_fetch_page_query_and_cursor():
    p = provider(FakeResponse(payload={"results": [{"id": "r1"}, "junk"], "has_more": True, "next_cursor": "c2"}))
    page = await p.fetch_page("db1", "c1", 50)

    assert [r["id"] for r in page.records] == ["r1"]
    assert page.has_more and page.next_cursor == "c2"
    method, url, body = p.session.calls[0]
    assert (method, url) == ("POST", "https://api.test/v1/databases/db1/query")
    assert body == {"page_size": 50, "start_cursor": "c1"}
    assert p.session.headers["Authorization"] == "Bearer secret"


@pytest.mark.asyncio
async def test_last_page_has_no_cursor():
    p = provider(FakeResponse(payload={"results": [], "has_more": False, "next_cursor": None}))
    page = await p.fetch_page("db1", None, 10)
    assert not page.has_more and page.next_cursor is None
    assert "start_cursor" not in p.session.calls[0][2]


@pytest.mark.asyncio
async def test_error_mapping():
    with pytest.raises(UpstreamError) as exc:
        await provider(FakeResponse(401, text="{}")).fetch_page("db1", None, 10)
    assert exc.value.status_code == 401

    with pytest.raises(TransportError):
        await provider(FakeResponse(503, text="")).fetch_page("db1", None, 10)
    with pytest.raises(TransportError):
        await provider(requests.ConnectionError("refused")).fetch_page("db1", None, 10)
    with pytest.raises(TransportError):
        await provider(requests.Timeout("slow")).fetch_page("db1", None, 10)


@pytest.mark.asyncio
async def test_malformed_payloads():
    with pytest.raises(MalformedResponseError):
        await provider(FakeResponse(payload={"object": "list"})).fetch_page("db1", None, 10)
    with pytest.raises(MalformedResponseError):
        await provider(FakeResponse(payload=None)).fetch_page("db1", None, 10)
    with pytest.raises(MalformedResponseError):
        await provider(FakeResponse(payload={"object": "page"})).fetch_record("p1")


@pytest.mark.asyncio
async def test_update_properties_patches_page():
    p = provider(FakeResponse(payload={"id": "p1"}))
    await p.update_properties("p1", {"Progress": {"number": 50}})
    assert p.session.calls[0] == ("PATCH", "https://api.test/v1/pages/p1", {"properties": {"Progress": {"number": 50}}})


def test_registry(monkeypatch):
    monkeypatch.setattr("workgraph.fetching.providers.notion.system_settings.NOTION_API_KEY", None)
    assert PROVIDER_REGISTRY["notion"] is NotionProvider
    assert get_provider("unknown") is None
    with pytest.raises(ValueError):
        NotionProvider(api_key="", session=FakeSession([]))
