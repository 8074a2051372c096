"""Cart payload normalizer — raw host cart in, ``CanonicalCart`` out.

The normalizer is built once per process with the detected schema variant,
so callers never need to know which layout or encoding a cart came from.

Line items:
    - only ``type == "product"`` survives
    - price from ``price.unitPrice`` / ``price.totalPrice`` or a flat number, else 0
    - image from ``cover.url`` or ``cover.media.url``
    - quantity coerced to an integer >= 1
    - items without any product reference are dropped

Customer:
    - relational row columns (legacy polling query) win when present
    - otherwise the payload's ``customer`` object, preferring
      ``activeBillingAddress`` over ``defaultBillingAddress``
"""

from collections.abc import Mapping
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any

import structlog

from leadcollect.cart.canonical import (
    DEFAULT_CURRENCY,
    DEFAULT_ITEM_NAME,
    GUEST_CUSTOMER_ID,
    Address,
    CanonicalCart,
    CartLineItem,
    CustomerSnapshot,
)
from leadcollect.cart.decoding import decode_payload
from leadcollect.cart.schema import SchemaVariant
from leadcollect.errors import ReferenceNotFound

logger = structlog.get_logger(__name__)

PRODUCT_LINE_ITEM = "product"

_ROW_CUSTOMER_COLUMNS = ("first_name", "last_name", "email", "street")


class CartNormalizer:
    """Normalizes host cart payloads for one schema variant."""

    def __init__(self, variant: SchemaVariant):
        self.variant = variant

    def normalize_row(self, row: Mapping[str, Any]) -> CanonicalCart:
        """Normalize a host cart row, reading the payload column of this variant."""
        return self.normalize(row.get(self.variant.payload_column), row=row)

    def normalize(self, raw: bytes | str | None, row: Mapping[str, Any] | None = None) -> CanonicalCart:
        """Decode ``raw`` and build the canonical cart.

        Raises:
            DecodeError: the payload is unreadable in every known format.
        """
        row = row or {}
        decoded = decode_payload(raw)
        data = decoded.data

        line_items = tuple(extract_line_items(data))
        customer = _customer_from_row(row) or _customer_from_payload(data.get("customer"))

        cart_token = _first(row.get("cart_token"), data.get("token"), data.get("cartToken")) or ""
        customer_id = _first(row.get("customer_id"), _nested(data, "customer", "id"), data.get("customerId"))

        logger.debug(
            "Normalized cart payload",
            cart_token=cart_token,
            variant=self.variant.value,
            format=decoded.format.value,
            compressed=decoded.compressed,
            line_items=len(line_items),
        )

        return CanonicalCart(
            cart_token=str(cart_token),
            customer_id=str(customer_id) if customer_id else GUEST_CUSTOMER_ID,
            sales_channel_id=_first(row.get("sales_channel_id"), data.get("salesChannelId")),
            total_price=_cart_total(row, data, line_items),
            currency=_first(row.get("currency"), data.get("currency")) or DEFAULT_CURRENCY,
            line_items=line_items,
            customer=customer,
            created_at=_timestamp(row.get("cart_created_at") or row.get("created_at")),
            updated_at=_timestamp(row.get("cart_updated_at") or row.get("updated_at")),
        )


def extract_line_items(data: Mapping[str, Any]) -> list[CartLineItem]:
    """Pull product line items out of a decoded cart mapping."""
    raw_items = data.get("lineItems")
    if raw_items is None:
        raw_items = data.get("line_items")
    if isinstance(raw_items, Mapping):
        raw_items = list(raw_items.values())
    if not isinstance(raw_items, list):
        return []

    items = []
    for raw in raw_items:
        if not isinstance(raw, Mapping) or raw.get("type") != PRODUCT_LINE_ITEM:
            continue
        try:
            items.append(_line_item(raw))
        except ReferenceNotFound:
            logger.debug("Dropping line item without product reference", label=raw.get("label"))
    return items


def _line_item(raw: Mapping[str, Any]) -> CartLineItem:
    product_id = _first(raw.get("referencedId"), raw.get("id"), raw.get("productId"))
    if not product_id:
        raise ReferenceNotFound("Line item has no product reference")

    return CartLineItem(
        product_id=str(product_id),
        sku=_first(_nested(raw, "payload", "productNumber"), raw.get("referencedId")),
        name=_first(raw.get("label"), raw.get("name")) or DEFAULT_ITEM_NAME,
        quantity=coerce_quantity(raw.get("quantity")),
        unit_price=resolve_unit_price(raw.get("price")),
        image_url=_first(_nested(raw, "cover", "url"), _nested(raw, "cover", "media", "url")),
    )


def coerce_quantity(value: Any) -> int:
    """Quantities that are missing, non-numeric or below 1 become 1."""
    if isinstance(value, bool):
        return 1
    try:
        quantity = int(float(value))
    except (TypeError, ValueError, OverflowError):
        return 1
    return quantity if quantity >= 1 else 1


def resolve_unit_price(price: Any) -> Decimal:
    """Unit price from a nested price structure or a flat number; 0 when absent."""
    if isinstance(price, Mapping):
        price = _first(price.get("unitPrice"), price.get("totalPrice"))
    amount = _decimal(price)
    if amount is None or amount < 0:
        return Decimal("0")
    return amount


def _cart_total(row: Mapping[str, Any], data: Mapping[str, Any], line_items: tuple[CartLineItem, ...]) -> Decimal:
    total = _decimal(row.get("cart_total"))
    if total is None:
        price = data.get("price")
        total = _decimal(price.get("totalPrice")) if isinstance(price, Mapping) else _decimal(price)
    if total is None:
        total = sum((item.unit_price * item.quantity for item in line_items), Decimal("0"))
    return total


def _customer_from_row(row: Mapping[str, Any]) -> CustomerSnapshot | None:
    if not any(row.get(column) for column in _ROW_CUSTOMER_COLUMNS):
        return None
    return CustomerSnapshot(
        first_name=row.get("first_name"),
        last_name=row.get("last_name"),
        email=row.get("email"),
        address=Address(
            street=row.get("street") or "",
            zipcode=row.get("zipcode") or "",
            city=row.get("city") or "",
            country_iso=row.get("country_iso"),
        ),
    )


def _customer_from_payload(customer: Any) -> CustomerSnapshot | None:
    if not isinstance(customer, Mapping):
        return None

    address = customer.get("activeBillingAddress") or customer.get("defaultBillingAddress") or {}
    if not isinstance(address, Mapping):
        address = {}

    return CustomerSnapshot(
        first_name=customer.get("firstName"),
        last_name=customer.get("lastName"),
        email=customer.get("email"),
        address=Address(
            street=address.get("street") or "",
            zipcode=address.get("zipcode") or "",
            city=address.get("city") or "",
            country_iso=_first(_nested(address, "country", "iso"), address.get("countryIso")),
        ),
    )


def _timestamp(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str) and value:
        try:
            return datetime.fromisoformat(value)
        except ValueError:
            return None
    return None


def _decimal(value: Any) -> Decimal | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        amount = Decimal(str(value))
    except InvalidOperation:
        return None
    return amount if amount.is_finite() else None


def _nested(data: Any, *keys: str) -> Any:
    for key in keys:
        if not isinstance(data, Mapping):
            return None
        data = data.get(key)
    return data


def _first(*values: Any) -> Any:
    for value in values:
        if value not in (None, ""):
            return value
    return None
