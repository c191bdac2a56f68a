"""Unit tests for the AniList client."""

import json

import httpx
import pytest

from anifunnel.anilist.client import AniListClient
from anifunnel.anilist.errors import (
    AniListConnectionError,
    AniListErrorKind,
    AniListParsingError,
    InvalidTokenError,
    RequestDataError,
)

from conftest import make_entry

API_URL = "https://graphql.anilist.test/"


def media_list_payload(id, title, progress):
    return {
        "id": id,
        "progress": progress,
        "media": {
            "id": id + 1000,
            "title": {"romaji": title, "english": None, "native": None, "userPreferred": title},
        },
    }


def make_client(handler, user_id=42):
    """Create a client whose requests are answered by ``handler``."""
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return AniListClient("secret-token", user_id, api_url=API_URL, http_client=http_client)


class TestAniListClient:
    """Test AniListClient requests and response parsing."""

    @pytest.mark.asyncio
    async def test_get_user(self):
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(200, json={"data": {"Viewer": {"id": 42, "name": "anilist-user"}}})

        client = make_client(handler, user_id=0)
        user = await client.get_user()
        await client.close()

        assert user.id == 42
        assert user.name == "anilist-user"
        assert requests[0].headers["Authorization"] == "Bearer secret-token"
        assert str(requests[0].url) == API_URL
        assert "Viewer" in json.loads(requests[0].content)["query"]

    @pytest.mark.asyncio
    async def test_get_watching_list_flattens_groups(self):
        bodies = []

        def handler(request):
            bodies.append(json.loads(request.content))
            return httpx.Response(
                200,
                json={
                    "data": {
                        "MediaListCollection": {
                            "lists": [
                                {"entries": [media_list_payload(1, "Sousou no Frieren", 3)]},
                                {
                                    "entries": [
                                        media_list_payload(2, "Oshi no Ko", 0),
                                        media_list_payload(3, "Kanojo, Okarishimasu", 7),
                                    ]
                                },
                            ]
                        }
                    }
                },
            )

        client = make_client(handler)
        watch_list = await client.get_watching_list()
        await client.close()

        assert [entry.id for entry in watch_list.entries] == [1, 2, 3]
        assert watch_list.find_by_id(3).progress == 7
        assert bodies[0]["variables"] == {"user_id": 42}

    @pytest.mark.asyncio
    async def test_update_progress_confirmed(self):
        bodies = []

        def handler(request):
            bodies.append(json.loads(request.content))
            return httpx.Response(200, json={"data": {"SaveMediaListEntry": {"progress": 4}}})

        client = make_client(handler)
        confirmed = await client.update_progress(make_entry(7, "Oshi no Ko", progress=3))
        await client.close()

        assert confirmed is True
        assert bodies[0]["variables"] == {"id": 7, "progress": 4}

    @pytest.mark.asyncio
    async def test_update_progress_not_confirmed(self):
        def handler(request):
            return httpx.Response(200, json={"data": {"SaveMediaListEntry": {"progress": 3}}})

        client = make_client(handler)
        confirmed = await client.update_progress(make_entry(7, "Oshi no Ko", progress=3), 4)
        await client.close()

        assert confirmed is False

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status_code", [400, 401])
    async def test_invalid_token(self, status_code):
        def handler(request):
            return httpx.Response(
                status_code,
                json={"errors": [{"message": "Invalid token", "status": 400}], "data": None},
            )

        client = make_client(handler)
        with pytest.raises(InvalidTokenError) as exc_info:
            await client.get_user()
        await client.close()

        assert exc_info.value.kind == AniListErrorKind.INVALID_AUTH

    @pytest.mark.asyncio
    async def test_other_graphql_error_is_parsing_error(self):
        def handler(request):
            return httpx.Response(
                400, json={"errors": [{"message": "Validation error"}], "data": None}
            )

        client = make_client(handler)
        with pytest.raises(AniListParsingError):
            await client.get_watching_list()
        await client.close()

    @pytest.mark.asyncio
    async def test_non_json_response(self):
        def handler(request):
            return httpx.Response(502, text="<html>Bad Gateway</html>")

        client = make_client(handler)
        with pytest.raises(AniListParsingError) as exc_info:
            await client.get_watching_list()
        await client.close()

        assert exc_info.value.kind == AniListErrorKind.PARSING

    @pytest.mark.asyncio
    async def test_unexpected_shape(self):
        def handler(request):
            return httpx.Response(200, json={"data": {"Viewer": {"id": "not-a-number"}}})

        client = make_client(handler)
        with pytest.raises(AniListParsingError):
            await client.get_user()
        await client.close()

    @pytest.mark.asyncio
    async def test_connection_error(self):
        def handler(request):
            raise httpx.ConnectError("Connection refused", request=request)

        client = make_client(handler)
        with pytest.raises(AniListConnectionError) as exc_info:
            await client.get_user()
        await client.close()

        assert exc_info.value.kind == AniListErrorKind.CONNECTION
        assert "Connection refused" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_unserialisable_variables(self):
        def handler(request):
            pytest.fail("No request should be sent")

        client = make_client(handler)
        with pytest.raises(RequestDataError) as exc_info:
            await client._send_query("query { Viewer { id } }", {"id": object()})
        await client.close()

        assert exc_info.value.kind == AniListErrorKind.REQUEST_DATA


class TestAniListErrors:
    """Test AniList error messages."""

    def test_default_message(self):
        assert str(InvalidTokenError()) == "Invalid token"

    def test_custom_message(self):
        assert str(AniListConnectionError("timed out")) == "timed out"


class TestClosedClient:
    """Test requests on a client that has been closed."""

    @pytest.mark.asyncio
    async def test_closed_client_raises_connection_error(self):
        def handler(request):
            pytest.fail("No request should be sent")

        client = make_client(handler)
        await client.close()

        with pytest.raises(AniListConnectionError) as exc_info:
            await client.get_watching_list()

        assert exc_info.value.kind == AniListErrorKind.CONNECTION
