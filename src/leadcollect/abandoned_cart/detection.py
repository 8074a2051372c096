"""Idle-cart detection — command and handler for recording abandoned carts.

Designed to be triggered periodically by an external scheduler (cron, K8s
CronJob). Reads idle host carts through the cart source, normalizes them
and records each recoverable cart as an AbandonedCart. The first sighting
raises AbandonedCartMarked, which the routing handlers turn into a coupon
and a ``cart_abandoned`` webhook; later sightings only refresh the snapshot.
"""

from datetime import UTC, datetime, timedelta

import structlog
from protean import handle
from protean.fields import DateTime, Integer
from protean.utils.globals import current_domain

from leadcollect.abandoned_cart.abandoned_cart import AbandonedCart, find_by_cart_token
from leadcollect.cart.canonical import CanonicalCart
from leadcollect.cart.normalizer import CartNormalizer
from leadcollect.cart.source import get_cart_source
from leadcollect.domain import leadcollect
from leadcollect.errors import DecodeError

logger = structlog.get_logger(__name__)

DEFAULT_MIN_AGE_SECONDS = 3600
DEFAULT_LIMIT = 100
MAX_LIMIT = 500


def collect_idle_carts(
    min_age_seconds: int = DEFAULT_MIN_AGE_SECONDS,
    limit: int = DEFAULT_LIMIT,
    as_of: datetime | None = None,
) -> list[CanonicalCart]:
    """Read and normalize host carts created more than ``min_age_seconds`` ago.

    Carts with unreadable payloads or without product line items are skipped.
    """
    as_of = as_of or datetime.now(UTC)
    limit = max(1, min(limit, MAX_LIMIT))
    created_before = (as_of - timedelta(seconds=max(0, min_age_seconds))).replace(tzinfo=None)

    source = get_cart_source()
    normalizer = CartNormalizer(source.variant)

    carts = []
    for row in source.fetch_idle_carts(created_before=created_before, limit=limit):
        try:
            cart = normalizer.normalize_row(row)
        except DecodeError as exc:
            logger.warning(
                "Skipping cart with unreadable payload",
                cart_token=row.get("cart_token"),
                error=str(exc),
            )
            continue

        if not cart.line_items:
            continue
        carts.append(cart)

    return carts


@leadcollect.command(part_of="AbandonedCart")
class DetectAbandonedCarts:
    """Record host carts idle beyond the threshold as abandoned."""

    min_age_seconds: Integer(default=DEFAULT_MIN_AGE_SECONDS)
    limit: Integer(default=DEFAULT_LIMIT)
    as_of: DateTime()  # Optional: defaults to now


@leadcollect.command_handler(part_of=AbandonedCart)
class DetectAbandonedCartsHandler:
    @handle(DetectAbandonedCarts)
    def detect_abandoned_carts(self, command):
        min_age = command.min_age_seconds if command.min_age_seconds is not None else DEFAULT_MIN_AGE_SECONDS

        logger.info(
            "Checking for abandoned carts",
            min_age_seconds=min_age,
            limit=command.limit,
        )

        carts = collect_idle_carts(min_age, command.limit or DEFAULT_LIMIT, command.as_of)

        repo = current_domain.repository_for(AbandonedCart)
        summary = {"marked": 0, "refreshed": 0, "skipped": 0}
        for cart in carts:
            if not cart.is_recoverable:
                summary["skipped"] += 1
                continue

            existing = find_by_cart_token(cart.cart_token)
            if existing is None:
                repo.add(AbandonedCart.mark(cart))
                summary["marked"] += 1
                logger.info(
                    "Marked cart as abandoned",
                    cart_token=cart.cart_token,
                    customer_id=cart.customer_id,
                    line_items=cart.line_item_count,
                )
            else:
                existing.refresh(cart)
                repo.add(existing)
                summary["refreshed"] += 1

        logger.info("Abandoned cart detection complete", **summary)
        return summary
