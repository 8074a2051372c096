"""Coupon gateway port (abstract interface).

The host promotion engine owns promotions; the connector only asks it for
one individual recovery code per abandoned cart and, when an order comes
back, for the code behind a promotion reference.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime

from leadcollect.config import CouponType


@dataclass(frozen=True)
class CouponGrant:
    """An issued recovery code. Redeemable by whoever presents it."""

    code: str
    type: CouponType
    value: float
    valid_until: datetime
    code_id: str | None = None
    promotion_id: str | None = None

    def to_payload(self) -> dict:
        return {
            "code": self.code,
            "type": self.type.value,
            "value": self.value,
            "validUntil": self.valid_until.isoformat(),
        }


class CouponGateway(ABC):
    """Abstract interface to the host promotion engine."""

    @abstractmethod
    def issue(self, customer_id: str, cart_token: str, sales_channel_id: str | None = None) -> CouponGrant:
        """Issue one recovery code for an abandoned cart.

        Raises:
            CouponIssuanceError: the promotion engine could not create the code.
        """
        ...

    @abstractmethod
    def resolve_code(self, promotion_ref: str) -> str | None:
        """Return the code behind an individual-code or promotion reference.

        Raises:
            ReferenceNotFound: nothing is known under ``promotion_ref``.
        """
        ...

    @abstractmethod
    def cart_token_for_code(self, code: str) -> str:
        """Return the cart token an individual recovery code was issued for.

        Raises:
            ReferenceNotFound: no issued code matches ``code``.
        """
        ...
