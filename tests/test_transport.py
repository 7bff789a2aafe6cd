"""Unit tests for GoogleSheetsTransport using a mocked HTTP layer."""

import json
from collections.abc import Callable

import httpx
import pytest
from google.auth.exceptions import RefreshError

from funfull_server.transport import (
    APIError,
    AuthenticationError,
    GoogleSheetsTransport,
    NotFoundError,
    TransportError,
)
from tests.fakes import FakeCredentials

Handler = Callable[[httpx.Request], httpx.Response]


def make_transport(handler: Handler, credentials: FakeCredentials | None = None) -> GoogleSheetsTransport:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return GoogleSheetsTransport(credentials or FakeCredentials(), client=client)


class TestRequests:
    """Requests are shaped the way the Sheets values API expects."""

    @pytest.mark.asyncio
    async def test_list_values(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"range": "Orders!A1:B2", "values": [["a", "b"], ["c"]]})

        transport = make_transport(handler)
        rows = await transport.list_values("sheet-id", "Orders")

        assert rows == [["a", "b"], ["c"]]
        assert seen[0].method == "GET"
        assert seen[0].url.path == "/v4/spreadsheets/sheet-id/values/Orders"
        assert seen[0].headers["Authorization"] == "Bearer fake-token"

    @pytest.mark.asyncio
    async def test_list_values_without_values_key(self) -> None:
        """An empty sheet comes back without a values key."""
        transport = make_transport(lambda _request: httpx.Response(200, json={"range": "Orders!A1:Z1000"}))
        assert await transport.list_values("sheet-id", "Orders") == []

    @pytest.mark.asyncio
    async def test_write_range(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"updatedRows": 1})

        transport = make_transport(handler)
        await transport.write_range("sheet-id", "Orders!A3", [["s1", "paid"]])

        request = seen[0]
        assert request.method == "PUT"
        assert request.url.path == "/v4/spreadsheets/sheet-id/values/Orders!A3"
        assert request.url.params["valueInputOption"] == "RAW"
        assert json.loads(request.content) == {"values": [["s1", "paid"]]}

    @pytest.mark.asyncio
    async def test_append_rows(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"updates": {"updatedRows": 1}})

        transport = make_transport(handler)
        await transport.append_rows("sheet-id", "My Orders", [["s1"]])

        request = seen[0]
        assert request.method == "POST"
        assert request.url.path == "/v4/spreadsheets/sheet-id/values/'My Orders':append"
        assert request.url.params["valueInputOption"] == "RAW"
        assert request.url.params["insertDataOption"] == "INSERT_ROWS"
        assert json.loads(request.content) == {"values": [["s1"]]}


class TestErrorMapping:
    """HTTP failures map to TransportError subclasses."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [401, 403])
    async def test_auth_errors(self, status: int) -> None:
        transport = make_transport(lambda _request: httpx.Response(status, text="denied"))
        with pytest.raises(AuthenticationError):
            await transport.list_values("sheet-id", "Orders")

    @pytest.mark.asyncio
    async def test_missing_spreadsheet(self) -> None:
        transport = make_transport(lambda _request: httpx.Response(404, text="not found"))
        with pytest.raises(NotFoundError):
            await transport.list_values("sheet-id", "Orders")

    @pytest.mark.asyncio
    async def test_missing_sheet(self) -> None:
        body = {"error": {"code": 400, "message": "Unable to parse range: Nope"}}
        transport = make_transport(lambda _request: httpx.Response(400, json=body))
        with pytest.raises(NotFoundError):
            await transport.list_values("sheet-id", "Nope")

    @pytest.mark.asyncio
    async def test_server_error(self) -> None:
        transport = make_transport(lambda _request: httpx.Response(503, text="unavailable"))
        with pytest.raises(APIError) as exc_info:
            await transport.write_range("sheet-id", "Orders!A2", [["x"]])
        assert exc_info.value.status_code == 503

    @pytest.mark.asyncio
    async def test_network_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        transport = make_transport(handler)
        with pytest.raises(TransportError):
            await transport.list_values("sheet-id", "Orders")


class TestCredentials:
    """Token handling."""

    @pytest.mark.asyncio
    async def test_valid_token_not_refreshed(self) -> None:
        credentials = FakeCredentials()
        transport = make_transport(lambda _request: httpx.Response(200, json={}), credentials)
        await transport.list_values("sheet-id", "Orders")
        assert credentials.refresh_count == 0

    @pytest.mark.asyncio
    async def test_expired_token_refreshed(self) -> None:
        credentials = FakeCredentials(valid=False, token="fresh-token")
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={})

        transport = make_transport(handler, credentials)
        await transport.list_values("sheet-id", "Orders")

        assert credentials.refresh_count == 1
        assert seen[0].headers["Authorization"] == "Bearer fresh-token"

    @pytest.mark.asyncio
    async def test_refresh_failure(self) -> None:
        credentials = FakeCredentials(valid=False, fail_with=RefreshError("invalid_grant"))
        transport = make_transport(lambda _request: httpx.Response(200, json={}), credentials)
        with pytest.raises(AuthenticationError):
            await transport.list_values("sheet-id", "Orders")

    @pytest.mark.asyncio
    async def test_close(self) -> None:
        client = httpx.AsyncClient(transport=httpx.MockTransport(lambda _request: httpx.Response(200)))
        transport = GoogleSheetsTransport(FakeCredentials(), client=client)
        await transport.close()
        assert client.is_closed
