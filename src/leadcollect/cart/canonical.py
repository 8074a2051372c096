"""Canonical cart model — the format-independent shape every consumer reads."""

import json
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

GUEST_CUSTOMER_ID = "guest"
DEFAULT_CURRENCY = "EUR"
DEFAULT_ITEM_NAME = "Produkt"
DEFAULT_FIRST_NAME = "Kunde"
DEFAULT_COUNTRY = "DE"


@dataclass(frozen=True)
class Address:
    street: str = ""
    zipcode: str = ""
    city: str = ""
    country_iso: str | None = None

    def to_dict(self) -> dict:
        return {
            "street": self.street,
            "zipcode": self.zipcode,
            "city": self.city,
            "country": self.country_iso or DEFAULT_COUNTRY,
        }


@dataclass(frozen=True)
class CustomerSnapshot:
    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None
    address: Address = field(default_factory=Address)

    def to_dict(self) -> dict:
        return {
            "firstName": self.first_name,
            "lastName": self.last_name,
            "email": self.email,
            "address": self.address.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "CustomerSnapshot":
        address = data.get("address") or {}
        return cls(
            first_name=data.get("firstName"),
            last_name=data.get("lastName"),
            email=data.get("email"),
            address=Address(
                street=address.get("street") or "",
                zipcode=address.get("zipcode") or "",
                city=address.get("city") or "",
                country_iso=address.get("country"),
            ),
        )


@dataclass(frozen=True)
class CartLineItem:
    product_id: str
    quantity: int
    unit_price: Decimal
    sku: str | None = None
    name: str = DEFAULT_ITEM_NAME
    image_url: str | None = None

    def to_dict(self) -> dict:
        return {
            "productId": self.product_id,
            "sku": self.sku,
            "name": self.name,
            "quantity": self.quantity,
            "price": float(self.unit_price),
            "imageUrl": self.image_url,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "CartLineItem":
        return cls(
            product_id=data["productId"],
            quantity=int(data.get("quantity") or 1),
            unit_price=Decimal(str(data.get("price") or 0)),
            sku=data.get("sku"),
            name=data.get("name") or DEFAULT_ITEM_NAME,
            image_url=data.get("imageUrl"),
        )


@dataclass(frozen=True)
class CanonicalCart:
    """One cart in canonical form.

    Serialization is deterministic: ``to_json()`` of two carts with the same
    logical content is byte-identical, whatever encoding they were read from.
    """

    cart_token: str
    customer_id: str = GUEST_CUSTOMER_ID
    sales_channel_id: str | None = None
    total_price: Decimal = Decimal("0")
    currency: str = DEFAULT_CURRENCY
    line_items: tuple[CartLineItem, ...] = ()
    customer: CustomerSnapshot | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def is_guest(self) -> bool:
        return self.customer_id == GUEST_CUSTOMER_ID

    @property
    def is_recoverable(self) -> bool:
        """A cart qualifies for recovery when it has products and a deliverable address."""
        return bool(self.line_items) and self.customer is not None and bool(self.customer.address.street.strip())

    @property
    def line_item_count(self) -> int:
        return len(self.line_items)

    def to_dict(self) -> dict:
        return {
            "cartToken": self.cart_token,
            "customerId": self.customer_id,
            "salesChannelId": self.sales_channel_id,
            "totalPrice": float(self.total_price),
            "currency": self.currency,
            "lineItems": [item.to_dict() for item in self.line_items],
            "customer": self.customer.to_dict() if self.customer else None,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), sort_keys=True, separators=(",", ":"))
