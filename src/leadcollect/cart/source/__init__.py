"""Cart source registry — where idle host carts are read from.

Uses the SQL adapter when ``LEADCOLLECT_CART_SOURCE_URL`` points at the host
database; otherwise an empty in-memory source.
"""

import os

from leadcollect.cart.source.port import CartSource

_cart_source: CartSource | None = None


def get_cart_source() -> CartSource:
    """Return the configured cart source (singleton)."""
    global _cart_source
    if _cart_source is None:
        database_url = os.environ.get("LEADCOLLECT_CART_SOURCE_URL")
        if database_url:
            from leadcollect.cart.source.sql_adapter import SqlCartSource

            _cart_source = SqlCartSource.from_url(database_url)
        else:
            from leadcollect.cart.source.fake_adapter import InMemoryCartSource

            _cart_source = InMemoryCartSource()
    return _cart_source


def set_cart_source(source: CartSource) -> None:
    """Override the active cart source (useful for tests)."""
    global _cart_source
    _cart_source = source


def reset_cart_source() -> None:
    """Reset the cart source singleton."""
    global _cart_source
    _cart_source = None
