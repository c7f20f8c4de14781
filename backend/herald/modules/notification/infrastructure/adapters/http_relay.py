"""JSON-over-HTTP relay client used by the outbound channel senders."""

from typing import Any

import httpx

from herald.core.logging import get_logger
from herald.modules.notification.domain.errors import TransportError

logger = get_logger(__name__)


class HttpRelayClient:
    """Thin httpx wrapper that classifies every failure as a ``TransportError``.

    Timeouts, network errors, 429 and 5xx responses are retryable; every other
    non-2xx response is permanent.
    """

    def __init__(
        self,
        channel: str,
        base_url: str | None = None,
        api_key: str | None = None,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize relay client.

        Args:
            channel: Channel name used in errors and logs
            base_url: Relay base URL; requests may also use absolute URLs
            api_key: Bearer token sent with every request
            timeout: Per-request timeout in seconds
            transport: Optional httpx transport, e.g. ``httpx.MockTransport``
        """
        self.channel = channel
        self.base_url = base_url or ""
        self.api_key = api_key
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "HttpRelayClient":
        self._ensure_client()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            headers = {
                "Accept": "application/json",
                "User-Agent": "Herald-Dispatch/1.0",
            }
            if self.api_key:
                headers["Authorization"] = f"Bearer {self.api_key}"

            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers=headers,
                timeout=httpx.Timeout(self.timeout),
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def post(
        self,
        url: str,
        json: dict[str, Any] | None = None,
        content: bytes | None = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        """
        POST to the relay and return the successful response.

        Raises:
            TransportError: On timeout, network error or non-2xx status
        """
        client = self._ensure_client()
        try:
            response = await client.post(url, json=json, content=content, headers=headers)
        except httpx.TimeoutException as e:
            raise TransportError(self.channel, f"request timed out: {e}", is_retryable=True) from e
        except httpx.HTTPError as e:
            raise TransportError(self.channel, f"network error: {e}", is_retryable=True) from e

        if not response.is_success:
            logger.debug(
                "Relay rejected request",
                channel=self.channel,
                status_code=response.status_code,
            )
            raise TransportError.from_status(self.channel, response.status_code, response.text)

        return response

    @staticmethod
    def message_id(response: httpx.Response) -> str | None:
        """Provider message id from a JSON response body, if present."""
        try:
            data = response.json()
        except ValueError:
            return None
        if isinstance(data, dict):
            value = data.get("id") or data.get("message_id")
            return str(value) if value else None
        return None
