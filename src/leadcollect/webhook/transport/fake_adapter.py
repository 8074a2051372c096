"""Fake webhook transport — records requests and replays scripted outcomes."""

import json

from leadcollect.errors import TransportError
from leadcollect.webhook.transport.port import TransportResponse, WebhookTransport


class FakeWebhookTransport(WebhookTransport):
    """Transport that records requests in memory for test assertions.

    Outcomes are consumed in order; each is an HTTP status code or an
    exception instance to raise. Once the script is exhausted every request
    gets ``default_status``.
    """

    def __init__(self):
        self.requests: list[dict] = []
        self.outcomes: list[int | Exception] = []
        self.default_status = 200

    def configure(self, outcomes: list[int | Exception] | None = None, default_status: int = 200) -> None:
        """Script the upcoming responses."""
        self.outcomes = list(outcomes or [])
        self.default_status = default_status

    def post(self, url: str, body: bytes, headers: dict[str, str], timeout: float) -> TransportResponse:
        self.requests.append(
            {
                "url": url,
                "body": json.loads(body),
                "headers": dict(headers),
                "timeout": timeout,
            }
        )

        outcome = self.outcomes.pop(0) if self.outcomes else self.default_status
        if isinstance(outcome, Exception):
            if isinstance(outcome, TransportError):
                raise outcome
            raise TransportError(str(outcome)) from outcome
        return TransportResponse(status_code=outcome)

    def sent_events(self, event_type: str) -> list[dict]:
        return [r["body"] for r in self.requests if r["headers"].get("X-LeadCollect-Event") == event_type]

    def reset(self):
        """Clear recorded requests (useful between tests)."""
        self.requests.clear()
        self.outcomes.clear()
        self.default_status = 200
