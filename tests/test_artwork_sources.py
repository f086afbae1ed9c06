"""Tests for the artwork source resolver fallback ordering."""

from unittest.mock import AsyncMock

import httpx
import pytest
from hypothesis import given, strategies as st

from steamgrid.models.game import ArtworkSource
from steamgrid.services.artwork_sources import ArtworkSourceResolver, extract_search_candidate
from steamgrid.services.errors import SourceError
from steamgrid.services.http_client import HttpClientService


PRIMARY = "https://primary.test/{game_id}/header.jpg"
SECONDARY = "https://secondary.test/{game_id}/header.jpg"
SEARCH = "https://search.test/images?q={query}"

SEARCH_JSON = (
    '{"responseData": {"results": ['
    '{"width":"460","height":"215","tbUrl":"x","unescapedUrl":"https:\\/\\/images.test\\/found.jpg"}'
    "]}}"
)


class MockHttpResponse:
    """Mock HTTP response for testing."""

    def __init__(self, status_code: int = 200, content: bytes = b"", text: str = "") -> None:
        self.status_code = status_code
        self.content = content
        self.text = text


def create_resolver(routes: dict[str, object]) -> tuple[ArtworkSourceResolver, AsyncMock]:
    """Create a resolver whose HTTP client answers from a URL -> response/exception table.

    URLs missing from the table answer 404.
    """
    mock_http_client = AsyncMock(spec=HttpClientService)

    def fake_get(url: str, *args: object, **kwargs: object) -> MockHttpResponse:
        answer = routes.get(url, MockHttpResponse(404))
        if isinstance(answer, Exception):
            raise answer
        assert isinstance(answer, MockHttpResponse)
        return answer

    mock_http_client.get.side_effect = fake_get
    resolver = ArtworkSourceResolver(
        mock_http_client,
        primary_template=PRIMARY,
        secondary_template=SECONDARY,
        search_template=SEARCH,
    )
    return resolver, mock_http_client


def requested_urls(mock_http_client: AsyncMock) -> list[str]:
    return [call.args[0] for call in mock_http_client.get.call_args_list]


@pytest.mark.asyncio
async def test_primary_source_short_circuits() -> None:
    resolver, client = create_resolver({
        "https://primary.test/440/header.jpg": MockHttpResponse(200, b"primary"),
        "https://secondary.test/440/header.jpg": MockHttpResponse(200, b"secondary"),
    })

    result = await resolver.resolve("440", "Team Fortress 2")

    assert result is not None
    assert result.data == b"primary"
    assert result.source is ArtworkSource.PRIMARY_CDN
    assert result.low_confidence is False
    assert requested_urls(client) == ["https://primary.test/440/header.jpg"]


@pytest.mark.asyncio
async def test_secondary_used_after_404_and_search_never_invoked() -> None:
    resolver, client = create_resolver({
        "https://secondary.test/440/header.jpg": MockHttpResponse(200, b"secondary"),
    })

    result = await resolver.resolve("440", "Team Fortress 2")

    assert result is not None
    assert result.data == b"secondary"
    assert result.source is ArtworkSource.SECONDARY_CDN
    assert result.low_confidence is False
    assert not any(url.startswith("https://search.test") for url in requested_urls(client))


@pytest.mark.asyncio
async def test_connection_error_falls_through_to_next_source() -> None:
    resolver, _ = create_resolver({
        "https://primary.test/70/header.jpg": httpx.ConnectError("name resolution failed"),
        "https://secondary.test/70/header.jpg": MockHttpResponse(200, b"secondary"),
    })

    result = await resolver.resolve("70", "Half-Life")

    assert result is not None
    assert result.source is ArtworkSource.SECONDARY_CDN


@pytest.mark.asyncio
async def test_timeout_falls_through_to_next_source() -> None:
    resolver, _ = create_resolver({
        "https://primary.test/70/header.jpg": httpx.ReadTimeout("too slow"),
        "https://secondary.test/70/header.jpg": MockHttpResponse(200, b"secondary"),
    })

    result = await resolver.resolve("70", "Half-Life")

    assert result is not None
    assert result.data == b"secondary"


@pytest.mark.asyncio
async def test_server_error_aborts_resolution() -> None:
    resolver, client = create_resolver({
        "https://primary.test/440/header.jpg": MockHttpResponse(500),
        "https://secondary.test/440/header.jpg": MockHttpResponse(200, b"secondary"),
    })

    with pytest.raises(SourceError) as exc_info:
        await resolver.resolve("440", "Team Fortress 2")

    assert exc_info.value.status_code == 500
    assert exc_info.value.url == "https://primary.test/440/header.jpg"
    assert requested_urls(client) == ["https://primary.test/440/header.jpg"]


@pytest.mark.asyncio
async def test_forbidden_on_secondary_is_a_hard_error() -> None:
    resolver, _ = create_resolver({
        "https://secondary.test/440/header.jpg": MockHttpResponse(403),
    })

    with pytest.raises(SourceError):
        await resolver.resolve("440", "Team Fortress 2")


@pytest.mark.asyncio
async def test_search_result_is_low_confidence() -> None:
    query_url = SEARCH.format(query="steam+grid+OR+header+Obscure+Game")
    resolver, client = create_resolver({
        query_url: MockHttpResponse(200, text=SEARCH_JSON),
        "https://images.test/found.jpg": MockHttpResponse(200, b"searched"),
    })

    result = await resolver.resolve("123", "Obscure Game")

    assert result is not None
    assert result.data == b"searched"
    assert result.source is ArtworkSource.SEARCH
    assert result.low_confidence is True
    assert requested_urls(client)[-2:] == [query_url, "https://images.test/found.jpg"]


@pytest.mark.asyncio
async def test_empty_name_skips_search() -> None:
    resolver, client = create_resolver({})

    result = await resolver.resolve("123", "")

    assert result is None
    assert len(requested_urls(client)) == 2


@pytest.mark.asyncio
async def test_nothing_found_anywhere_is_not_an_error() -> None:
    query_url = SEARCH.format(query="steam+grid+OR+header+Nothing")
    resolver, _ = create_resolver({
        query_url: MockHttpResponse(200, text="<html><body>No results</body></html>"),
    })

    assert await resolver.resolve("999", "Nothing") is None


@pytest.mark.asyncio
async def test_search_candidate_404_is_not_found() -> None:
    query_url = SEARCH.format(query="steam+grid+OR+header+Gone")
    resolver, _ = create_resolver({
        query_url: MockHttpResponse(200, text=SEARCH_JSON),
    })

    assert await resolver.resolve("999", "Gone") is None


@pytest.mark.asyncio
async def test_malformed_search_candidate_is_not_found() -> None:
    query_url = SEARCH.format(query="steam+grid+OR+header+Odd")
    resolver, client = create_resolver({
        query_url: MockHttpResponse(200, text=SEARCH_JSON),
        "https://images.test/found.jpg": httpx.InvalidURL("Invalid port: 'x'"),
    })

    assert await resolver.resolve("999", "Odd") is None
    assert requested_urls(client)[-1] == "https://images.test/found.jpg"


@pytest.mark.asyncio
async def test_search_endpoint_error_propagates() -> None:
    query_url = SEARCH.format(query="steam+grid+OR+header+Broken")
    resolver, _ = create_resolver({query_url: MockHttpResponse(503)})

    with pytest.raises(SourceError) as exc_info:
        await resolver.resolve("999", "Broken")

    assert exc_info.value.status_code == 503


@pytest.mark.asyncio
async def test_bytes_are_not_validated() -> None:
    resolver, _ = create_resolver({
        "https://primary.test/1/header.jpg": MockHttpResponse(200, b"definitely not an image"),
    })

    result = await resolver.resolve("1")

    assert result is not None
    assert result.data == b"definitely not an image"


def test_extract_candidate_from_json_text() -> None:
    assert extract_search_candidate(SEARCH_JSON) == "https://images.test/found.jpg"


def test_extract_candidate_ignores_other_sizes() -> None:
    text = '{"width":"100","height":"100","unescapedUrl":"https://images.test/thumb.jpg"}'

    assert extract_search_candidate(text) is None


def test_extract_candidate_from_html() -> None:
    html = """
    <html><body>
        <img src="/static/header.png" width="460" height="215">
        <img src="https://search.test/logo.png" width="272" height="92">
        <img src="https://search.test/sprite.png">
        <img src="https://images.test/first.jpg" width="460" height="215">
        <img src="https://images.test/second.jpg" width="920" height="430">
    </body></html>
    """

    assert extract_search_candidate(html) == "https://images.test/first.jpg"


@pytest.mark.parametrize("width, height", [("920", "430"), ("300", "140"), ("460", "216")])
def test_extract_candidate_accepts_header_shapes(width: str, height: str) -> None:
    html = f'<img src="https://images.test/x.jpg" width="{width}" height="{height}">'

    assert extract_search_candidate(html) == "https://images.test/x.jpg"


@pytest.mark.parametrize("width, height", [("460", "460"), ("120", "56"), ("460", "0"), ("wide", "215"), (None, None)])
def test_extract_candidate_rejects_other_shapes(width: str | None, height: str | None) -> None:
    size = f' width="{width}" height="{height}"' if width is not None else ""
    html = f'<img src="https://images.test/x.jpg"{size}>'

    assert extract_search_candidate(html) is None


@given(st.text())
def test_extract_candidate_never_raises(text: str) -> None:
    """Arbitrary search bodies either yield a URL or None."""
    candidate = extract_search_candidate(text)
    assert candidate is None or isinstance(candidate, str)
