"""Coupon gateway factory.

Provides get_coupon_gateway() / set_coupon_gateway() to swap implementations.
Defaults to the in-memory gateway; a host-backed adapter is installed by the
embedding application.
"""

from leadcollect.coupon.fake_adapter import InMemoryCouponGateway
from leadcollect.coupon.port import CouponGateway

_current_gateway: CouponGateway | None = None


def get_coupon_gateway() -> CouponGateway:
    """Return the current coupon gateway. Defaults to InMemoryCouponGateway."""
    global _current_gateway
    if _current_gateway is None:
        _current_gateway = InMemoryCouponGateway()
    return _current_gateway


def set_coupon_gateway(gateway: CouponGateway) -> None:
    """Override the active coupon gateway (useful for tests)."""
    global _current_gateway
    _current_gateway = gateway


def reset_coupon_gateway() -> None:
    """Reset to default gateway."""
    global _current_gateway
    _current_gateway = None
