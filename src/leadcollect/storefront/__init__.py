"""Storefront cart adapter registry.

The host storefront owns the shopper's cart; the in-memory adapter stands in
for it during development and testing.
"""

from leadcollect.storefront.port import StorefrontCart

_storefront: StorefrontCart | None = None


def get_storefront() -> StorefrontCart:
    """Return the configured storefront cart adapter (singleton)."""
    global _storefront
    if _storefront is None:
        from leadcollect.storefront.fake_adapter import InMemoryStorefrontCart

        _storefront = InMemoryStorefrontCart()
    return _storefront


def set_storefront(storefront: StorefrontCart) -> None:
    """Override the active storefront adapter (useful for tests)."""
    global _storefront
    _storefront = storefront


def reset_storefront() -> None:
    """Reset the storefront singleton."""
    global _storefront
    _storefront = None
