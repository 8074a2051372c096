"""Cart restore — puts an abandoned cart back into the shopper's storefront cart.

Three entry points, all used by recovery links:

    restore_from_token  — ``?token=<cart token>&coupon=<code>`` from emails
    restore_from_skus   — ``?sku=A,B&q=1,2&c=<code>`` from postcard QR codes
    restore_from_code   — ``?lc_restore=<recovery code or cart token>`` on the cart page

Products are restored at most once per cart token, whichever device follows
the link. The promotion code is applied on every visit because it goes into
the shopper's current storefront cart.
"""

from dataclasses import dataclass

import structlog
from protean.utils.globals import current_domain

from leadcollect.abandoned_cart.abandoned_cart import AbandonedCart, find_by_cart_token
from leadcollect.abandoned_cart.processed_event import claim_event
from leadcollect.cart.normalizer import coerce_quantity
from leadcollect.coupon import get_coupon_gateway
from leadcollect.coupon.codes import is_recovery_code
from leadcollect.coupon.port import CouponGateway
from leadcollect.errors import LeadCollectError, ReferenceNotFound
from leadcollect.storefront import get_storefront
from leadcollect.storefront.port import StorefrontCart

logger = structlog.get_logger(__name__)

RESTORED_EVENT = "cart_restored"


@dataclass(frozen=True)
class RestoreResult:
    restored: bool = False
    products_added: int = 0
    coupon_applied: bool = False
    already_restored: bool = False


def restore_from_token(
    context_token: str,
    cart_token: str | None,
    coupon_code: str | None = None,
    storefront: StorefrontCart | None = None,
) -> RestoreResult:
    """Restore the abandoned cart recorded under ``cart_token``."""
    storefront = storefront or get_storefront()
    logger.info("Cart restore requested", cart_token=cart_token, coupon_code=coupon_code)

    restored = False
    already_restored = False
    added = 0

    if cart_token:
        abandoned = find_by_cart_token(cart_token)
        if abandoned is None:
            logger.warning("Could not restore cart, no abandoned cart recorded", cart_token=cart_token)
        elif not claim_event(cart_token, RESTORED_EVENT):
            already_restored = True
            logger.info("Cart already restored, not adding products again", cart_token=cart_token)
        else:
            added = _add_products(
                storefront,
                context_token,
                [(item.product_id, item.quantity) for item in abandoned.to_canonical().line_items],
            )
            restored = True
            _track_restore(abandoned, coupon_code)

    coupon_applied = _apply_coupon(storefront, context_token, coupon_code)

    return RestoreResult(
        restored=restored,
        products_added=added,
        coupon_applied=coupon_applied,
        already_restored=already_restored,
    )


def restore_from_code(
    context_token: str,
    restore_code: str | None,
    storefront: StorefrontCart | None = None,
    coupons: CouponGateway | None = None,
) -> RestoreResult:
    """Restore the cart behind a recovery code, or behind a bare cart token.

    A recovery code is looked up in the promotion engine and applied to the
    restored cart. Anything the engine does not know is tried as a cart token.
    """
    if not restore_code:
        return RestoreResult()

    coupons = coupons or get_coupon_gateway()
    cart_token, coupon_code = restore_code, None
    if is_recovery_code(restore_code):
        try:
            cart_token, coupon_code = coupons.cart_token_for_code(restore_code), restore_code
        except ReferenceNotFound:
            logger.info("Restore code not issued by the connector, trying it as cart token", restore_code=restore_code)

    return restore_from_token(context_token, cart_token, coupon_code, storefront=storefront)


def restore_from_skus(
    context_token: str,
    skus: str | None,
    quantities: str | None = None,
    coupon_code: str | None = None,
    sales_channel_id: str | None = None,
    storefront: StorefrontCart | None = None,
) -> RestoreResult:
    """Add products by product number, e.g. ``skus="A,B"`` with ``quantities="2,1"``.

    Missing or invalid quantities become 1; unknown SKUs are skipped.
    """
    storefront = storefront or get_storefront()
    logger.info("SKU-based cart restore requested", skus=skus, quantities=quantities, coupon_code=coupon_code)

    sku_list = [sku.strip() for sku in (skus or "").split(",")]
    qty_list = [qty.strip() for qty in (quantities or "").split(",")]

    lines = []
    for index, sku in enumerate(sku_list):
        if not sku:
            continue
        quantity = coerce_quantity(qty_list[index]) if index < len(qty_list) else 1
        try:
            product_id = storefront.find_product_id_by_sku(sku, sales_channel_id)
        except ReferenceNotFound:
            logger.warning("Product not found by SKU", sku=sku)
            continue
        lines.append((product_id, quantity))

    added = _add_products(storefront, context_token, lines)
    coupon_applied = _apply_coupon(storefront, context_token, coupon_code)

    return RestoreResult(restored=added > 0, products_added=added, coupon_applied=coupon_applied)


def _add_products(storefront: StorefrontCart, context_token: str, lines: list[tuple[str, int]]) -> int:
    added = 0
    for product_id, quantity in lines:
        try:
            storefront.add_product(context_token, product_id, quantity)
        except LeadCollectError as exc:
            logger.warning("Could not add product to cart", product_id=product_id, error=str(exc))
            continue
        added += 1
    return added


def _apply_coupon(storefront: StorefrontCart, context_token: str, coupon_code: str | None) -> bool:
    if not coupon_code:
        return False
    try:
        storefront.apply_promotion_code(context_token, coupon_code)
    except LeadCollectError as exc:
        logger.warning("Could not apply coupon code", coupon_code=coupon_code, error=str(exc))
        return False
    logger.info("Coupon code applied", coupon_code=coupon_code)
    return True


def _track_restore(abandoned: AbandonedCart, coupon_code: str | None) -> None:
    abandoned.record_restore(coupon_code)
    current_domain.repository_for(AbandonedCart).add(abandoned)
