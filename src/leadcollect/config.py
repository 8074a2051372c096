"""Connector settings — global defaults with optional per-sales-channel overrides.

Settings are loaded from ``LEADCOLLECT_*`` environment variables. A sales
channel override only carries the keys it changes; everything else falls
back to the global defaults, mirroring how the host's system configuration
inherits values.

Environment variables:
    LEADCOLLECT_WEBHOOK_URL, LEADCOLLECT_WEBHOOK_SECRET, LEADCOLLECT_WEBHOOK_ENABLED,
    LEADCOLLECT_COUPON_TYPE, LEADCOLLECT_COUPON_VALUE, LEADCOLLECT_COUPON_VALID_DAYS,
    LEADCOLLECT_COUPON_MIN_ORDER, LEADCOLLECT_BASE_PROMOTION_ID,
    LEADCOLLECT_STOREFRONT_CART_URL, LEADCOLLECT_REQUEST_TIMEOUT,
    LEADCOLLECT_SALES_CHANNEL_OVERRIDES (JSON object: sales channel id -> settings)
"""

import json
import os
from collections.abc import Mapping
from enum import Enum

from pydantic import BaseModel, Field


class CouponType(Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


class LeadCollectSettings(BaseModel):
    webhook_url: str | None = None
    webhook_secret: str | None = None
    webhook_enabled: bool = False

    coupon_type: CouponType = CouponType.PERCENTAGE
    coupon_value: float = Field(default=10.0, ge=0)
    coupon_valid_days: int = Field(default=30, ge=1)
    coupon_min_order: float = Field(default=0.0, ge=0)
    base_promotion_id: str | None = None

    storefront_cart_url: str = "/checkout/cart"
    request_timeout: float = Field(default=10.0, gt=0)

    @property
    def webhook_configured(self) -> bool:
        """True when the webhook is switched on and has both URL and secret."""
        return bool(self.webhook_enabled and self.webhook_url and self.webhook_secret)


_ENV_KEYS = {
    "webhook_url": "LEADCOLLECT_WEBHOOK_URL",
    "webhook_secret": "LEADCOLLECT_WEBHOOK_SECRET",
    "webhook_enabled": "LEADCOLLECT_WEBHOOK_ENABLED",
    "coupon_type": "LEADCOLLECT_COUPON_TYPE",
    "coupon_value": "LEADCOLLECT_COUPON_VALUE",
    "coupon_valid_days": "LEADCOLLECT_COUPON_VALID_DAYS",
    "coupon_min_order": "LEADCOLLECT_COUPON_MIN_ORDER",
    "base_promotion_id": "LEADCOLLECT_BASE_PROMOTION_ID",
    "storefront_cart_url": "LEADCOLLECT_STOREFRONT_CART_URL",
    "request_timeout": "LEADCOLLECT_REQUEST_TIMEOUT",
}


class SettingsStore:
    """Resolves effective settings for a sales channel."""

    def __init__(
        self,
        defaults: LeadCollectSettings | None = None,
        overrides: Mapping[str, Mapping] | None = None,
    ):
        self.defaults = defaults or LeadCollectSettings()
        self._overrides: dict[str, dict] = {key: dict(value) for key, value in (overrides or {}).items()}

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "SettingsStore":
        environ = os.environ if environ is None else environ

        values = {field: environ[key] for field, key in _ENV_KEYS.items() if environ.get(key) not in (None, "")}
        defaults = LeadCollectSettings.model_validate(values)

        raw_overrides = environ.get("LEADCOLLECT_SALES_CHANNEL_OVERRIDES")
        overrides = json.loads(raw_overrides) if raw_overrides else {}

        return cls(defaults=defaults, overrides=overrides)

    def for_sales_channel(self, sales_channel_id: str | None = None) -> LeadCollectSettings:
        """Return the settings in effect for ``sales_channel_id`` (global when None)."""
        override = self._overrides.get(sales_channel_id) if sales_channel_id else None
        if not override:
            return self.defaults
        return LeadCollectSettings.model_validate({**self.defaults.model_dump(), **override})

    def set_override(self, sales_channel_id: str, **values) -> None:
        """Override individual settings for one sales channel."""
        merged = {**self._overrides.get(sales_channel_id, {}), **values}
        # Validate eagerly so a bad override fails at configuration time
        LeadCollectSettings.model_validate({**self.defaults.model_dump(), **merged})
        self._overrides[sales_channel_id] = merged


_settings_store: SettingsStore | None = None


def get_settings_store() -> SettingsStore:
    """Return the active settings store. Loaded from the environment on first use."""
    global _settings_store
    if _settings_store is None:
        _settings_store = SettingsStore.from_env()
    return _settings_store


def set_settings_store(store: SettingsStore) -> None:
    """Override the active settings store (useful for tests)."""
    global _settings_store
    _settings_store = store


def reset_settings_store() -> None:
    """Forget the active settings store; the next access reloads from the environment."""
    global _settings_store
    _settings_store = None
