"""Cleanup of stale abandoned carts once the customer has ordered."""

import structlog
from protean.utils.globals import current_domain

from leadcollect.abandoned_cart.abandoned_cart import AbandonedCart
from leadcollect.cart.canonical import GUEST_CUSTOMER_ID

logger = structlog.get_logger(__name__)


def remove_abandoned_carts_for_customer(customer_id: str) -> int:
    """Delete every abandoned cart recorded for ``customer_id``. Returns how many were removed."""
    if not customer_id or customer_id == GUEST_CUSTOMER_ID:
        return 0

    repo = current_domain.repository_for(AbandonedCart)
    records = repo._dao.query.filter(customer_id=customer_id).all().items
    for record in records:
        repo._dao.delete(record)

    if records:
        logger.info(
            "Removed abandoned carts after order",
            customer_id=customer_id,
            removed=len(records),
        )
    return len(records)
