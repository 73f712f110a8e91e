"""Transport gateway for the clinical-records service.

A thin wrapper over ``httpx.AsyncClient`` that:

- prefixes every path with the configured base address
- sends JSON with ``Content-Type: application/json``
- attaches ``Authorization: Bearer <token>`` whenever the session has a token
- normalizes every failure into one of three ``TransportError`` subclasses:
  ``HTTPResponseError`` (the server answered with an error status),
  ``NoResponseError`` (the request went out but nothing came back) and
  ``RequestSetupError`` (the request could not be built or sent at all)

Requests are never retried.
"""

from collections.abc import Callable
from dataclasses import dataclass
import json
import logging
from types import TracebackType
from typing import Any, Self

import httpx

from clinirec.core.decorators import measure_execution_time
from clinirec.core.exceptions import (
    HTTPResponseError,
    InvalidConfigurationError,
    NoResponseError,
    RequestSetupError,
)

logger = logging.getLogger(__name__)

TokenProvider = Callable[[], str | None]
UnauthorizedHandler = Callable[[], None]

DEFAULT_HEADERS = {
    "Content-Type": "application/json",
    "Accept": "application/json",
}


@dataclass(frozen=True)
class GatewayResponse:
    """Status and decoded body of a successful response."""

    status: int
    body: Any


def _decode_body(response: httpx.Response) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return response.text


class TransportGateway:
    """Async HTTP gateway shared by the session manager and every entity cache."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 10.0,
        token_provider: TokenProvider | None = None,
        on_unauthorized: UnauthorizedHandler | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the gateway.

        Args:
            base_url: Records service base address, e.g. ``http://host/api``
            timeout: Per-request timeout in seconds
            token_provider: Returns the current bearer token, if any
            on_unauthorized: Called when a request that carried a token gets a 401
            transport: Optional httpx transport, used by tests to fake the server
        """
        if not base_url or not base_url.strip():
            raise InvalidConfigurationError(
                "base_url", base_url, "the records service address is required"
            )
        self.base_url = base_url.strip().rstrip("/")
        self.token_provider = token_provider
        self.on_unauthorized = on_unauthorized
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(timeout),
            headers=DEFAULT_HEADERS,
            transport=transport,
        )

        logger.debug("TransportGateway initialized for %s", self.base_url)

    @property
    def is_closed(self) -> bool:
        return self._client.is_closed

    def _auth_headers(self) -> dict[str, str]:
        token = self.token_provider() if self.token_provider else None
        if token:
            return {"Authorization": f"Bearer {token}"}
        return {}

    @measure_execution_time(threshold_ms=1000.0)
    async def send(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json_body: Any = None,
    ) -> GatewayResponse:
        """Send a request and return its status with the decoded body.

        The body is None when empty and the raw text when not JSON.

        Raises:
            HTTPResponseError: The server answered with status >= 400
            NoResponseError: Timeout or connection failure
            RequestSetupError: The request could not be built or sent
        """
        headers = self._auth_headers()
        if params:
            params = {k: v for k, v in params.items() if v is not None}

        try:
            request = self._client.build_request(
                method, path, params=params, json=json_body, headers=headers
            )
        except (TypeError, ValueError, httpx.InvalidURL) as e:
            logger.error("Could not build %s %s: %s", method, path, e)
            raise RequestSetupError(f"Could not build {method} {path}: {e}") from e

        try:
            response = await self._client.send(request)
        except (httpx.UnsupportedProtocol, httpx.LocalProtocolError) as e:
            logger.error("Could not send %s %s: %s", method, path, e)
            raise RequestSetupError(f"Could not send {method} {path}: {e}") from e
        except httpx.TimeoutException as e:
            logger.warning("Timeout waiting for %s %s", method, path)
            raise NoResponseError(f"Timeout waiting for {method} {path}") from e
        except httpx.RequestError as e:
            logger.warning("No response for %s %s: %s", method, path, e)
            raise NoResponseError(f"No response for {method} {path}: {e}") from e
        except RuntimeError as e:
            # httpx raises RuntimeError once the client has been closed
            logger.error("Could not send %s %s: %s", method, path, e)
            raise RequestSetupError(f"Could not send {method} {path}: {e}") from e

        body = _decode_body(response)

        if response.is_error:
            logger.warning(
                "Error response for %s %s: status=%s",
                method,
                path,
                response.status_code,
            )
            error = HTTPResponseError(
                response.status_code, body, method=method, url=path
            )
            if error.is_unauthorized and headers and self.on_unauthorized:
                self.on_unauthorized()
            raise error

        return GatewayResponse(response.status_code, body)

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json_body: Any = None,
    ) -> Any:
        """Send a request and return only the decoded body."""
        response = await self.send(method, path, params=params, json_body=json_body)
        return response.body

    async def get(self, path: str, *, params: dict[str, Any] | None = None) -> Any:
        return await self.request("GET", path, params=params)

    async def post(
        self, path: str, json_body: Any = None, *, params: dict[str, Any] | None = None
    ) -> Any:
        return await self.request("POST", path, params=params, json_body=json_body)

    async def put(
        self, path: str, json_body: Any = None, *, params: dict[str, Any] | None = None
    ) -> Any:
        return await self.request("PUT", path, params=params, json_body=json_body)

    async def delete(self, path: str, *, params: dict[str, Any] | None = None) -> Any:
        return await self.request("DELETE", path, params=params)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()
