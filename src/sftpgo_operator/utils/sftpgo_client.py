"""
SFTPGo REST API client.

This module provides the transport used by every resource adapter to talk
to the SFTPGo REST API (``/api/v2``).

The client handles:
- Authentication with an API key or with admin credentials (bearer token)
- Token refresh before expiry
- Extra headers sent on every request
- Retry of requests that failed because of a data provider deadlock
- Pagination of list endpoints
"""

import asyncio
import logging
import random
import time
from datetime import datetime
from typing import Any
from urllib.parse import quote

import httpx

from sftpgo_operator.constants import (
    API_KEY_HEADER,
    API_PREFIX,
    DEADLOCK_MARKERS,
    DEFAULT_REQUEST_TIMEOUT,
    DEFAULT_SFTPGO_HOST,
    EDITION_ENTERPRISE,
    EDITION_OPEN_SOURCE,
    MAX_RETRIES,
    PAGE_SIZE,
    RETRY_BASE_DELAY_MS,
    RETRY_JITTER_PERCENT,
    RETRY_MAX_DELAY_MS,
    TOKEN_EXPIRY_MARGIN,
)
from sftpgo_operator.errors import SFTPGoAPIError
from sftpgo_operator.observability.metrics import metrics_collector

logger = logging.getLogger(__name__)


def escape_path(segment: str | int) -> str:
    """Percent-escape a single URL path segment."""
    return quote(str(segment), safe="")


def is_deadlock(error: Exception) -> bool:
    """Check whether an error reports a database deadlock."""
    text = str(error)
    body = getattr(error, "response_body", None)
    if body:
        text = f"{text} {body}"
    text = text.lower()
    return any(marker in text for marker in DEADLOCK_MARKERS)


def calculate_retry_delay(attempt: int) -> float:
    """
    Delay in seconds before retrying after the given (zero based) attempt.

    The base delay doubles per attempt up to the cap, plus random jitter.
    """
    base = min(RETRY_BASE_DELAY_MS * 2**attempt, RETRY_MAX_DELAY_MS)
    jitter = random.randrange(base * RETRY_JITTER_PERCENT // 100)
    return (base + jitter) / 1000


def _parse_expiry(value: str | None) -> float | None:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value).timestamp()
    except ValueError:
        logger.warning(f"Unable to parse token expiry {value!r}")
        return None


class SFTPGoClient:
    """
    Client for the SFTPGo REST API.

    One instance is built at operator startup and shared by all handlers.
    Callers receive ``SFTPGoAPIError`` for every failure; a missing object
    is reported with status code 404 and left to the caller to interpret.
    """

    def __init__(
        self,
        host: str = DEFAULT_SFTPGO_HOST,
        username: str = "",
        password: str = "",
        api_key: str = "",
        headers: dict[str, str] | None = None,
        edition: int = EDITION_OPEN_SOURCE,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Initialize the SFTPGo client.

        Args:
            host: Base URL of the SFTPGo instance
            username: Admin username, used when no API key is set
            password: Admin password, used when no API key is set
            api_key: API key sent in the X-SFTPGO-API-KEY header
            headers: Extra headers added to every request
            edition: 0 for the open source edition, 1 for enterprise
            timeout: Request timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        self.host = (host or DEFAULT_SFTPGO_HOST).rstrip("/")
        self.username = username
        self.password = password
        self.api_key = api_key
        self.headers = dict(headers or {})
        self.edition = edition
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

        # Authentication state
        self.access_token: str | None = None
        self.token_expires_at: float | None = None

        logger.info(f"Initialized SFTPGo client for {self.host}")

    @property
    def is_enterprise_edition(self) -> bool:
        return self.edition == EDITION_ENTERPRISE

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create the underlying httpx client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout),
                limits=httpx.Limits(
                    max_connections=100,
                    max_keepalive_connections=20,
                ),
                follow_redirects=False,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the underlying httpx client and forget the token."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
        self.access_token = None
        self.token_expires_at = None

    async def __aenter__(self) -> "SFTPGoClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    def _url(self, endpoint: str) -> str:
        return f"{self.host}{API_PREFIX}/{endpoint.lstrip('/')}"

    def _token_valid(self) -> bool:
        if not self.access_token:
            return False
        if self.token_expires_at is None:
            return False
        return time.time() < self.token_expires_at - TOKEN_EXPIRY_MARGIN

    async def authenticate(self) -> None:
        """
        Obtain an access token with HTTP basic auth.

        Raises:
            SFTPGoAPIError: If credentials are missing or the request fails
        """
        if not self.username or not self.password:
            raise SFTPGoAPIError("define username and password")

        response = await self._send(
            "GET",
            self._url("token"),
            auth=(self.username, self.password),
        )
        token_data = response.json()

        self.access_token = token_data["access_token"]
        self.token_expires_at = _parse_expiry(token_data.get("expires_at"))

        logger.debug("Successfully authenticated with SFTPGo")

    async def _auth_headers(self) -> dict[str, str]:
        if self.api_key:
            return {API_KEY_HEADER: self.api_key}

        if not self._token_valid():
            await self.authenticate()

        return {"Authorization": f"Bearer {self.access_token}"}

    async def _send(
        self,
        method: str,
        url: str,
        json: Any = None,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        auth: tuple[str, str] | None = None,
        expected_status: int = 200,
    ) -> httpx.Response:
        """Send a single request and map failures to ``SFTPGoAPIError``."""
        request_headers = dict(self.headers)
        if headers:
            request_headers.update(headers)

        client = self._get_client()
        start = time.time()
        try:
            response = await client.request(
                method=method,
                url=url,
                json=json,
                params=params,
                headers=request_headers,
                auth=auth,
            )
        except httpx.HTTPError as e:
            metrics_collector.record_api_request(method, None, time.time() - start)
            logger.error(f"Request failed: {method} {url} - {e}")
            raise SFTPGoAPIError(
                f"API request failed: {e}",
                status_code=None,
            ) from e

        metrics_collector.record_api_request(
            method, response.status_code, time.time() - start
        )

        if response.status_code != expected_status:
            response_body = response.text or "<no content>"
            error = SFTPGoAPIError(
                f"unexpected status for {method} {url}, body: {response_body}",
                status_code=response.status_code,
                response_body=response_body,
            )
            if not error.is_not_found:
                logger.error(
                    f"Request failed: {method} {url} - status {response.status_code}",
                    extra={
                        "http_status": response.status_code,
                        "response_body": error.body_preview(1024),
                    },
                )
            raise error

        return response

    async def _make_request(
        self,
        method: str,
        endpoint: str,
        json: Any = None,
        params: dict[str, Any] | None = None,
        expected_status: int = 200,
    ) -> httpx.Response:
        """
        Make an authenticated request to the SFTPGo API.

        Requests failing because of a data provider deadlock are retried
        with exponential backoff; every other error is raised immediately.

        Args:
            method: HTTP method (GET, POST, PUT, DELETE)
            endpoint: API endpoint relative to /api/v2
            json: JSON request body
            params: Query parameters
            expected_status: Status code that marks success

        Returns:
            The response with the expected status code

        Raises:
            SFTPGoAPIError: On API errors
        """
        url = self._url(endpoint)

        for attempt in range(MAX_RETRIES + 1):
            headers = await self._auth_headers()
            try:
                return await self._send(
                    method,
                    url,
                    json=json,
                    params=params,
                    headers=headers,
                    expected_status=expected_status,
                )
            except SFTPGoAPIError as e:
                # Token might have been revoked server side
                if e.status_code == 401 and not self.api_key and attempt == 0:
                    logger.warning("Received 401, attempting re-authentication")
                    self.access_token = None
                    continue

                if not is_deadlock(e) or attempt == MAX_RETRIES:
                    raise

                delay = calculate_retry_delay(attempt)
                metrics_collector.record_deadlock_retry(method)
                logger.warning(
                    f"Deadlock reported for {method} {endpoint}, retrying in {delay:.3f}s",
                    extra={"method": method, "endpoint": endpoint, "attempt": attempt + 1},
                )
                await asyncio.sleep(delay)

        raise SFTPGoAPIError(f"{method} {endpoint} failed after re-authentication")

    async def get(self, endpoint: str, params: dict[str, Any] | None = None) -> Any:
        """GET an endpoint and return the decoded JSON body."""
        response = await self._make_request("GET", endpoint, params=params)
        return response.json()

    async def create(
        self,
        endpoint: str,
        payload: Any,
        params: dict[str, Any] | None = None,
        expected_status: int = 201,
    ) -> None:
        await self._make_request(
            "POST", endpoint, json=payload, params=params, expected_status=expected_status
        )

    async def update(
        self, endpoint: str, payload: Any, params: dict[str, Any] | None = None
    ) -> None:
        await self._make_request("PUT", endpoint, json=payload, params=params)

    async def delete(self, endpoint: str) -> None:
        await self._make_request("DELETE", endpoint)

    async def list_paged(self, endpoint: str) -> list[dict[str, Any]]:
        """
        Fetch every item of an offset paginated list endpoint.

        Pages are requested with ``limit`` and ``offset`` until a page shorter
        than the limit is returned; an exactly full last page costs one
        extra, empty request.
        """
        result: list[dict[str, Any]] = []
        while True:
            page = await self.get(
                endpoint, params={"limit": PAGE_SIZE, "offset": len(result)}
            )
            page = page or []
            result.extend(page)
            if len(page) < PAGE_SIZE:
                break
        return result

    async def list_ip_entries(self, list_type: int) -> list[dict[str, Any]]:
        """
        Fetch every entry of an IP list.

        IP lists paginate with a cursor: the ``from`` parameter carries the
        last ``ipornet`` of the previous page.
        """
        result: list[dict[str, Any]] = []
        cursor = ""
        while True:
            page = await self.get(
                f"iplists/{list_type}", params={"limit": PAGE_SIZE, "from": cursor}
            )
            page = page or []
            result.extend(page)
            if len(page) < PAGE_SIZE:
                break
            cursor = result[-1]["ipornet"]
        return result

    async def dump_data(self, scope: str) -> dict[str, Any]:
        """Return the backup document restricted to a single scope."""
        return await self.get("dumpdata", params={"output-data": 1, "scopes": scope})
