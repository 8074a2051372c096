"""Pydantic response models for the LeadCollect API.

LeadCollect expects camelCase keys; the models use snake_case attributes
with a camelCase alias generator.
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Polling
# ---------------------------------------------------------------------------
class AddressResponse(_CamelModel):
    street: str
    zipcode: str
    city: str
    country: str


class CustomerResponse(_CamelModel):
    id: str
    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None
    address: AddressResponse


class LineItemResponse(_CamelModel):
    name: str
    sku: str | None = None
    product_id: str
    quantity: int
    price: float
    image_url: str | None = None


class CartResponse(_CamelModel):
    cart_token: str
    cart_total: float
    line_item_count: int
    created_at: str | None = None
    updated_at: str | None = None
    sales_channel_id: str | None = None
    customer: CustomerResponse
    line_items: list[LineItemResponse]


class CartListResponse(_CamelModel):
    success: bool = True
    count: int
    carts: list[CartResponse]
    queried_at: str
    min_age_seconds: int


class ErrorResponse(_CamelModel):
    success: bool = False
    error: str


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------
class HealthResponse(_CamelModel):
    status: str = "ok"
    plugin: str
    version: str
    timestamp: str
