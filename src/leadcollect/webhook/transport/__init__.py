"""Webhook transport registry.

Uses httpx by default. Set ``LEADCOLLECT_WEBHOOK_TRANSPORT=fake`` to record
requests in memory instead (local development without a LeadCollect endpoint).
"""

import os

from leadcollect.webhook.transport.port import WebhookTransport

_transport: WebhookTransport | None = None


def get_transport() -> WebhookTransport:
    """Return the configured webhook transport (singleton)."""
    global _transport
    if _transport is None:
        adapter = os.environ.get("LEADCOLLECT_WEBHOOK_TRANSPORT", "http")
        if adapter == "http":
            from leadcollect.webhook.transport.httpx_adapter import HttpxWebhookTransport

            _transport = HttpxWebhookTransport()
        elif adapter == "fake":
            from leadcollect.webhook.transport.fake_adapter import FakeWebhookTransport

            _transport = FakeWebhookTransport()
        else:
            raise ValueError(f"Unknown webhook transport: {adapter}")
    return _transport


def set_transport(transport: WebhookTransport) -> None:
    """Override the active transport (useful for tests)."""
    global _transport
    _transport = transport


def reset_transport() -> None:
    """Reset the transport singleton."""
    global _transport
    _transport = None
