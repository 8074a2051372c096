"""In-memory coupon gateway for development and testing.

Behaves like the host's individual promotion codes: one base promotion per
sales-channel scope (or a global one), one individual code per issue call.
Codes are not bound to a customer.
"""

from datetime import UTC, datetime, timedelta
from uuid import uuid4

from leadcollect.config import SettingsStore, get_settings_store
from leadcollect.coupon.codes import generate_recovery_code
from leadcollect.coupon.port import CouponGateway, CouponGrant
from leadcollect.errors import CouponIssuanceError, ReferenceNotFound

_GLOBAL_SCOPE = "*"


class InMemoryCouponGateway(CouponGateway):
    """Configurable in-memory promotion engine."""

    def __init__(self, settings: SettingsStore | None = None, code_generator=generate_recovery_code):
        self._settings = settings
        self._generate = code_generator
        self.should_succeed = True
        self.failure_reason = "Promotion engine unavailable"
        self.base_promotions: dict[str, str] = {}
        self.codes: dict[str, dict] = {}
        self.calls: list[dict] = []

    @property
    def settings(self) -> SettingsStore:
        return self._settings or get_settings_store()

    def configure(self, should_succeed: bool = True, failure_reason: str = "Promotion engine unavailable") -> None:
        """Configure gateway behavior at runtime."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def issue(self, customer_id: str, cart_token: str, sales_channel_id: str | None = None) -> CouponGrant:
        self.calls.append(
            {
                "method": "issue",
                "customer_id": customer_id,
                "cart_token": cart_token,
                "sales_channel_id": sales_channel_id,
            }
        )
        if not self.should_succeed:
            raise CouponIssuanceError(self.failure_reason)

        settings = self.settings.for_sales_channel(sales_channel_id)
        promotion_id = self._base_promotion(sales_channel_id, settings.base_promotion_id)

        code = self._generate()
        while any(record["code"] == code for record in self.codes.values()):
            code = self._generate()

        code_id = uuid4().hex
        valid_until = datetime.now(UTC) + timedelta(days=settings.coupon_valid_days)
        self.codes[code_id] = {
            "code": code,
            "promotion_id": promotion_id,
            "cart_token": cart_token,
            "min_order": settings.coupon_min_order,
        }

        return CouponGrant(
            code=code,
            type=settings.coupon_type,
            value=settings.coupon_value,
            valid_until=valid_until,
            code_id=code_id,
            promotion_id=promotion_id,
        )

    def resolve_code(self, promotion_ref: str) -> str | None:
        record = self.codes.get(promotion_ref)
        if record is None:
            raise ReferenceNotFound(f"Unknown promotion reference: {promotion_ref}")
        return record["code"]

    def cart_token_for_code(self, code: str) -> str:
        for record in self.codes.values():
            if record["code"].upper() == code.strip().upper() and record.get("cart_token"):
                return record["cart_token"]
        raise ReferenceNotFound(f"Unknown recovery code: {code}")

    def _base_promotion(self, sales_channel_id: str | None, configured_id: str | None) -> str:
        scope = sales_channel_id or _GLOBAL_SCOPE
        if scope not in self.base_promotions:
            self.base_promotions[scope] = configured_id or uuid4().hex
        return self.base_promotions[scope]

    def reset(self) -> None:
        """Clear issued codes (useful between tests)."""
        self.base_promotions.clear()
        self.codes.clear()
        self.calls.clear()
        self.should_succeed = True
        self.failure_reason = "Promotion engine unavailable"
