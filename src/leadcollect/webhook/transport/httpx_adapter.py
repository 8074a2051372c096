"""httpx webhook transport — the production adapter."""

import httpx
import structlog

from leadcollect.errors import TransportError
from leadcollect.webhook.transport.port import TransportResponse, WebhookTransport

logger = structlog.get_logger(__name__)

CONNECT_TIMEOUT = 5.0


class HttpxWebhookTransport(WebhookTransport):
    """Sends webhooks with a shared ``httpx.Client``."""

    def __init__(self, client: httpx.Client | None = None):
        self._client = client or httpx.Client()

    def post(self, url: str, body: bytes, headers: dict[str, str], timeout: float) -> TransportResponse:
        try:
            response = self._client.post(
                url,
                content=body,
                headers=headers,
                timeout=httpx.Timeout(timeout, connect=min(CONNECT_TIMEOUT, timeout)),
            )
        # InvalidURL and UnicodeError (over-long host labels) are not HTTPErrors
        except (httpx.HTTPError, httpx.InvalidURL, ValueError) as exc:
            raise TransportError(f"{type(exc).__name__}: {exc}") from exc

        return TransportResponse(status_code=response.status_code, body=response.text[:500])

    def close(self) -> None:
        self._client.close()
