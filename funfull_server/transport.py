"""Transport layer for reading and writing spreadsheet values.

Defines the SheetsTransport protocol and its production implementation:
- GoogleSheetsTransport: Google Sheets REST API (values.get/update/append)

Every call is a remote round-trip and the only suspension point of a
repository operation. Nothing is retried here; failures surface as
TransportError subclasses.
"""

from __future__ import annotations

import asyncio
import ssl
import urllib.parse
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Protocol

import certifi
import httpx
from google.auth.exceptions import GoogleAuthError
from google.auth.transport import requests as google_requests
from google.oauth2 import service_account
from loguru import logger

from funfull_server.utils import escape_sheet_title

if TYPE_CHECKING:
    from funfull_server.config import Settings

# API constants
API_BASE = "https://sheets.googleapis.com/v4/spreadsheets"
DEFAULT_TIMEOUT = 60
SHEETS_SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]

Rows = list[list[str]]


class TransportError(Exception):
    """Base exception for transport errors (backend unavailable)."""


class AuthenticationError(TransportError):
    """Raised when authentication fails (401/403 or token refresh failure)."""


class NotFoundError(TransportError):
    """Raised when the spreadsheet or addressed range does not exist."""


class APIError(TransportError):
    """Raised when the API returns an error."""

    def __init__(self, message: str, status_code: int) -> None:
        super().__init__(message)
        self.status_code = status_code


class CredentialsProtocol(Protocol):
    """The subset of google-auth credentials used by the transport."""

    token: str | None

    @property
    def valid(self) -> bool: ...

    def refresh(self, request: Any) -> None: ...


class SheetsTransport(ABC):
    """Abstract base class for spreadsheet value access.

    Cells are addressed by sheet name (whole used range) or A1 notation.
    """

    @abstractmethod
    async def list_values(self, spreadsheet_id: str, selector: str) -> Rows:
        """Read the rows of a sheet or A1 range.

        Rows may be ragged: trailing empty cells are omitted by the backend.
        Returns an empty list when the range has no rows.
        """
        ...

    @abstractmethod
    async def write_range(self, spreadsheet_id: str, a1_range: str, rows: Rows) -> dict[str, Any]:
        """Overwrite the region starting at `a1_range` with `rows`."""
        ...

    @abstractmethod
    async def append_rows(self, spreadsheet_id: str, sheet_name: str, rows: Rows) -> dict[str, Any]:
        """Insert `rows` after the last populated row of `sheet_name`."""
        ...

    @abstractmethod
    async def close(self) -> None:
        """Close any open connections."""
        ...


class GoogleSheetsTransport(SheetsTransport):
    """Production transport backed by the Google Sheets REST API.

    Handles authentication, SSL, and HTTP communication. Values are written
    with valueInputOption=RAW so cells are stored exactly as given.
    """

    def __init__(
        self,
        credentials: CredentialsProtocol,
        timeout: int = DEFAULT_TIMEOUT,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the transport.

        Args:
            credentials: google-auth credentials with the spreadsheets scope
            timeout: Request timeout in seconds
            client: Optional preconfigured HTTP client (injectable for testing)
        """
        self._credentials = credentials
        self._timeout = timeout
        self._refresh_lock = asyncio.Lock()
        if client is None:
            ssl_context = ssl.create_default_context(cafile=certifi.where())
            client = httpx.AsyncClient(
                timeout=timeout,
                verify=ssl_context,
                headers={"Accept": "application/json"},
            )
        self._client = client

    @classmethod
    def from_settings(cls, settings: Settings) -> GoogleSheetsTransport:
        """Build a transport from service account settings.

        Credentials from GOOGLE_CREDENTIALS_* variables take precedence over
        the key file.
        """
        info = settings.google_service_account_info()
        if info is not None:
            credentials = service_account.Credentials.from_service_account_info(
                info, scopes=SHEETS_SCOPES
            )
            source = "environment"
        else:
            credentials = service_account.Credentials.from_service_account_file(
                settings.google_credentials_file, scopes=SHEETS_SCOPES
            )
            source = settings.google_credentials_file
        logger.info(
            "Loaded Google service account credentials",
            extra={"source": source, "account": credentials.service_account_email},
        )
        return cls(credentials, timeout=settings.sheets_timeout)

    async def list_values(self, spreadsheet_id: str, selector: str) -> Rows:
        """Fetch values with values.get."""
        url = _values_url(spreadsheet_id, selector)
        response = await self._request("GET", url)
        values: Rows = response.get("values", [])
        return values

    async def write_range(self, spreadsheet_id: str, a1_range: str, rows: Rows) -> dict[str, Any]:
        """Overwrite a range with values.update."""
        url = _values_url(spreadsheet_id, a1_range)
        return await self._request(
            "PUT",
            url,
            params={"valueInputOption": "RAW"},
            body={"values": rows},
        )

    async def append_rows(self, spreadsheet_id: str, sheet_name: str, rows: Rows) -> dict[str, Any]:
        """Append rows with values.append, inserting new rows."""
        url = _values_url(spreadsheet_id, escape_sheet_title(sheet_name)) + ":append"
        return await self._request(
            "POST",
            url,
            params={"valueInputOption": "RAW", "insertDataOption": "INSERT_ROWS"},
            body={"values": rows},
        )

    async def _authorization_header(self) -> dict[str, str]:
        """Return a bearer header, refreshing the token when it has expired.

        google-auth refreshes synchronously, so the refresh runs in a worker
        thread.
        """
        if not self._credentials.valid:
            async with self._refresh_lock:
                if not self._credentials.valid:
                    try:
                        await asyncio.to_thread(
                            self._credentials.refresh, google_requests.Request()
                        )
                    except GoogleAuthError as e:
                        raise AuthenticationError(f"Token refresh failed: {e}") from e
        return {"Authorization": f"Bearer {self._credentials.token}"}

    async def _request(
        self,
        method: str,
        url: str,
        *,
        params: dict[str, str] | None = None,
        body: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Make an authenticated request and decode the JSON response."""
        headers = await self._authorization_header()
        try:
            response = await self._client.request(
                method, url, params=params, json=body, headers=headers
            )
            response.raise_for_status()
            result: dict[str, Any] = response.json()
            return result
        except httpx.HTTPStatusError as e:
            raise self._handle_http_error(e) from e
        except httpx.RequestError as e:
            raise TransportError(f"Network error: {e}") from e

    def _handle_http_error(self, e: httpx.HTTPStatusError) -> TransportError:
        """Convert HTTP errors to appropriate transport exceptions."""
        status = e.response.status_code
        body = e.response.text
        if status == 401:
            return AuthenticationError("Invalid or expired access token")
        if status == 403:
            return AuthenticationError("Access denied. Check your scopes and permissions.")
        if status == 404:
            return NotFoundError("Spreadsheet not found. Check the ID and sharing permissions.")
        if status == 400 and "Unable to parse range" in body:
            return NotFoundError(f"Range not found: {body}")
        return APIError(f"API error ({status}): {body}", status_code=status)

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()


def _values_url(spreadsheet_id: str, selector: str) -> str:
    """Build the values endpoint URL for a spreadsheet and range."""
    return f"{API_BASE}/{spreadsheet_id}/values/{urllib.parse.quote(selector, safe='')}"
