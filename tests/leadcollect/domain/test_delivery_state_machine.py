"""Tests for the WebhookDelivery state machine — valid transitions and guards."""

import pytest
from protean.exceptions import ValidationError

from leadcollect.webhook.delivery import DeliveryResult, DeliveryStatus, WebhookDelivery, backoff_schedule
from leadcollect.webhook.payloads import EventType, WebhookEvent


def _delivery(max_attempts=3):
    return WebhookDelivery(WebhookEvent(event_type=EventType.ORDER_PLACED), max_attempts=max_attempts)


class TestValidTransitions:
    def test_starts_pending(self):
        delivery = _delivery()
        assert delivery.status == DeliveryStatus.PENDING
        assert delivery.attempts == 0

    def test_pending_to_sending_counts_attempt(self):
        delivery = _delivery()
        delivery.start_attempt()
        assert delivery.status == DeliveryStatus.SENDING
        assert delivery.attempts == 1

    def test_sending_to_delivered(self):
        delivery = _delivery()
        delivery.start_attempt()
        delivery.mark_delivered(204)
        assert delivery.status == DeliveryStatus.DELIVERED
        assert delivery.last_status_code == 204

    def test_sending_to_failed_then_retry(self):
        delivery = _delivery()
        delivery.start_attempt()
        delivery.mark_failed("HTTP 503", status_code=503)
        assert delivery.status == DeliveryStatus.FAILED
        assert delivery.failure_reason == "HTTP 503"

        delivery.retry()
        assert delivery.status == DeliveryStatus.PENDING


class TestInvalidTransitions:
    def test_cannot_deliver_without_sending(self):
        with pytest.raises(ValidationError):
            _delivery().mark_delivered(200)

    def test_cannot_fail_from_pending(self):
        with pytest.raises(ValidationError):
            _delivery().mark_failed("boom")

    def test_delivered_is_terminal(self):
        delivery = _delivery()
        delivery.start_attempt()
        delivery.mark_delivered(200)
        with pytest.raises(ValidationError):
            delivery.start_attempt()

    def test_retry_only_from_failed(self):
        delivery = _delivery()
        with pytest.raises(ValidationError):
            delivery.retry()

    def test_no_retry_after_last_attempt(self):
        delivery = _delivery(max_attempts=1)
        delivery.start_attempt()
        delivery.mark_failed("boom")
        with pytest.raises(ValidationError):
            delivery.retry()


class TestDeliveryResult:
    def test_from_delivered(self):
        delivery = _delivery()
        delivery.start_attempt()
        delivery.mark_delivered(200)
        result = DeliveryResult.from_delivery(delivery)
        assert result.success is True
        assert result.attempts == 1

    def test_not_enabled(self):
        result = DeliveryResult.not_enabled("disabled")
        assert result.success is False
        assert result.status == DeliveryStatus.NOT_ENABLED
        assert result.attempts == 0


class TestBackoffSchedule:
    def test_linear_schedule_between_attempts(self):
        assert backoff_schedule() == [1.0, 2.0]

    def test_custom_schedule(self):
        assert backoff_schedule(max_attempts=4, base_delay_ms=500) == [0.5, 1.0, 1.5]

    def test_schedule_is_non_decreasing(self):
        schedule = backoff_schedule(max_attempts=6)
        assert schedule == sorted(schedule)
