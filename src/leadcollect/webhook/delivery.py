"""Webhook delivery engine — one event, one endpoint, bounded retries.

State Machine (per delivery):
    PENDING → SENDING → DELIVERED
    PENDING → SENDING → FAILED → (retry, attempts remaining) → PENDING

A delivery makes at most ``MAX_RETRIES`` attempts. Between attempts the
engine sleeps ``attempt × RETRY_DELAY_MS`` (linear, no jitter). Nothing is
queued: after the last failed attempt the event is logged and dropped.
"""

import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

import structlog
from protean.exceptions import ValidationError

from leadcollect.config import LeadCollectSettings, SettingsStore, get_settings_store
from leadcollect.domain import __version__
from leadcollect.errors import ConfigError, TransportError
from leadcollect.webhook.payloads import WebhookEvent
from leadcollect.webhook.transport import get_transport
from leadcollect.webhook.transport.port import WebhookTransport

logger = structlog.get_logger(__name__)

MAX_RETRIES = 3
RETRY_DELAY_MS = 1000

USER_AGENT = f"Shopware6-LeadCollect-Plugin/{__version__}"


class DeliveryStatus(Enum):
    PENDING = "Pending"
    SENDING = "Sending"
    DELIVERED = "Delivered"
    FAILED = "Failed"
    NOT_ENABLED = "NotEnabled"


_VALID_TRANSITIONS = {
    DeliveryStatus.PENDING: {DeliveryStatus.SENDING},
    DeliveryStatus.SENDING: {DeliveryStatus.DELIVERED, DeliveryStatus.FAILED},
    DeliveryStatus.FAILED: {DeliveryStatus.PENDING},  # Via retry
    DeliveryStatus.DELIVERED: set(),  # Terminal
    DeliveryStatus.NOT_ENABLED: set(),  # Terminal
}


class WebhookDelivery:
    """Tracks the lifecycle of a single event delivery."""

    def __init__(self, event: WebhookEvent, max_attempts: int = MAX_RETRIES):
        self.event = event
        self.max_attempts = max_attempts
        self.status = DeliveryStatus.PENDING
        self.attempts = 0
        self.last_status_code: int | None = None
        self.failure_reason: str | None = None

    @property
    def attempts_remaining(self) -> bool:
        return self.attempts < self.max_attempts

    def _assert_can_transition(self, target: DeliveryStatus) -> None:
        if target not in _VALID_TRANSITIONS[self.status]:
            raise ValidationError({"status": [f"Cannot transition from {self.status.value} to {target.value}"]})

    def start_attempt(self) -> None:
        self._assert_can_transition(DeliveryStatus.SENDING)
        self.status = DeliveryStatus.SENDING
        self.attempts += 1

    def mark_delivered(self, status_code: int) -> None:
        self._assert_can_transition(DeliveryStatus.DELIVERED)
        self.status = DeliveryStatus.DELIVERED
        self.last_status_code = status_code
        self.failure_reason = None

    def mark_failed(self, reason: str, status_code: int | None = None) -> None:
        self._assert_can_transition(DeliveryStatus.FAILED)
        self.status = DeliveryStatus.FAILED
        self.last_status_code = status_code
        self.failure_reason = reason

    def retry(self) -> None:
        """Return a failed delivery to PENDING for another attempt."""
        self._assert_can_transition(DeliveryStatus.PENDING)
        if not self.attempts_remaining:
            raise ValidationError({"attempts": ["Maximum delivery attempts exceeded"]})
        self.status = DeliveryStatus.PENDING


@dataclass(frozen=True)
class DeliveryResult:
    success: bool
    status: DeliveryStatus
    attempts: int = 0
    status_code: int | None = None
    failure_reason: str | None = None

    @classmethod
    def from_delivery(cls, delivery: WebhookDelivery) -> "DeliveryResult":
        return cls(
            success=delivery.status == DeliveryStatus.DELIVERED,
            status=delivery.status,
            attempts=delivery.attempts,
            status_code=delivery.last_status_code,
            failure_reason=delivery.failure_reason,
        )

    @classmethod
    def not_enabled(cls, reason: str) -> "DeliveryResult":
        return cls(success=False, status=DeliveryStatus.NOT_ENABLED, failure_reason=reason)


def backoff_schedule(max_attempts: int = MAX_RETRIES, base_delay_ms: int = RETRY_DELAY_MS) -> list[float]:
    """Delays in seconds slept between consecutive attempts."""
    return [attempt * base_delay_ms / 1000 for attempt in range(1, max_attempts)]


def resolve_endpoint(settings: LeadCollectSettings) -> str:
    """Full webhook URL with the shared secret appended as the last path segment.

    Raises:
        ConfigError: the webhook is disabled or the URL or secret is missing.
    """
    if not settings.webhook_enabled:
        raise ConfigError("LeadCollect webhook is disabled")
    if not settings.webhook_url:
        raise ConfigError("LeadCollect webhook URL is not configured")
    if not settings.webhook_secret:
        raise ConfigError("LeadCollect webhook secret is not configured")
    return f"{settings.webhook_url.rstrip('/')}/{settings.webhook_secret}"


class WebhookDeliveryEngine:
    """Delivers webhook events with bounded retries and linear backoff.

    The engine never touches cart or order state; its only side effects are
    the HTTP requests and log lines.
    """

    def __init__(
        self,
        transport: WebhookTransport | None = None,
        settings: SettingsStore | None = None,
        sleep: Callable[[float], None] | None = None,
        max_attempts: int = MAX_RETRIES,
        base_delay_ms: int = RETRY_DELAY_MS,
    ):
        self._transport = transport
        self._settings = settings
        self._sleep = sleep or time.sleep
        self.max_attempts = max_attempts
        self.base_delay_ms = base_delay_ms

    @property
    def transport(self) -> WebhookTransport:
        return self._transport or get_transport()

    @property
    def settings(self) -> SettingsStore:
        return self._settings or get_settings_store()

    def deliver(self, event: WebhookEvent) -> DeliveryResult:
        """Send ``event`` to the endpoint configured for its sales channel."""
        settings = self.settings.for_sales_channel(event.sales_channel_id)
        try:
            url = resolve_endpoint(settings)
        except ConfigError as exc:
            logger.debug(
                "LeadCollect webhook not enabled, skipping delivery",
                event_type=event.event_type.value,
                sales_channel_id=event.sales_channel_id,
                reason=str(exc),
            )
            return DeliveryResult.not_enabled(str(exc))

        body = event.to_json()
        headers = {
            "Content-Type": "application/json",
            "User-Agent": USER_AGENT,
            "X-LeadCollect-Event": event.event_type.value,
        }

        delivery = WebhookDelivery(event, max_attempts=self.max_attempts)
        delays = backoff_schedule(self.max_attempts, self.base_delay_ms)

        while True:
            delivery.start_attempt()
            self._attempt(delivery, url, body, headers, settings.request_timeout)

            if delivery.status == DeliveryStatus.DELIVERED:
                logger.info(
                    "LeadCollect webhook sent successfully",
                    event_type=event.event_type.value,
                    status_code=delivery.last_status_code,
                    attempt=delivery.attempts,
                )
                break

            if not delivery.attempts_remaining:
                logger.error(
                    "LeadCollect webhook delivery failed, giving up",
                    event_type=event.event_type.value,
                    attempts=delivery.attempts,
                    status_code=delivery.last_status_code,
                    error=delivery.failure_reason,
                )
                break

            self._sleep(delays[delivery.attempts - 1])
            delivery.retry()

        return DeliveryResult.from_delivery(delivery)

    def _attempt(self, delivery: WebhookDelivery, url: str, body: bytes, headers: dict, timeout: float) -> None:
        event_type = delivery.event.event_type.value
        try:
            response = self.transport.post(url, body, headers, timeout)
        except TransportError as exc:
            logger.warning(
                "LeadCollect webhook request failed",
                event_type=event_type,
                attempt=delivery.attempts,
                error=str(exc),
            )
            delivery.mark_failed(str(exc))
            return

        if response.is_success:
            delivery.mark_delivered(response.status_code)
            return

        logger.warning(
            "LeadCollect webhook returned non-success status",
            event_type=event_type,
            status_code=response.status_code,
            attempt=delivery.attempts,
        )
        delivery.mark_failed(f"HTTP {response.status_code}", status_code=response.status_code)
