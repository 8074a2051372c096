"""Durable idempotency markers — at most one side effect per (cart token, event type).

A marker is claimed *before* the side effect runs. A second claim for the
same key fails, whichever session, device or duplicate handler registration
triggered it.
"""

from datetime import UTC, datetime

from protean.exceptions import ObjectNotFoundError
from protean.fields import DateTime, String
from protean.utils.globals import current_domain

from leadcollect.domain import leadcollect


@leadcollect.aggregate
class ProcessedEvent:
    key: String(identifier=True, max_length=600)
    cart_token: String(required=True, max_length=255)
    event_type: String(required=True, max_length=50)
    processed_at: DateTime()


def marker_key(cart_token: str, event_type: str) -> str:
    return f"{cart_token}:{event_type}"


def claim_event(cart_token: str, event_type: str) -> bool:
    """Claim the marker for ``(cart_token, event_type)``.

    Returns True when this caller owns the side effect, False when it was
    already processed.
    """
    repo = current_domain.repository_for(ProcessedEvent)
    key = marker_key(cart_token, event_type)

    try:
        repo.get(key)
        return False
    except ObjectNotFoundError:
        pass

    repo.add(
        ProcessedEvent(
            key=key,
            cart_token=cart_token,
            event_type=event_type,
            processed_at=datetime.now(UTC),
        )
    )
    return True


def is_processed(cart_token: str, event_type: str) -> bool:
    try:
        current_domain.repository_for(ProcessedEvent).get(marker_key(cart_token, event_type))
    except ObjectNotFoundError:
        return False
    return True
