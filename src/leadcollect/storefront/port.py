"""Storefront cart port (abstract interface).

A restore puts products and a promotion code into the shopper's *current*
storefront cart, identified by the storefront context token.
"""

from abc import ABC, abstractmethod


class StorefrontCart(ABC):
    """Abstract interface to the host storefront cart service."""

    @abstractmethod
    def add_product(self, context_token: str, product_id: str, quantity: int) -> None:
        """Add a stackable, removable product line item.

        Raises:
            ReferenceNotFound: the product does not exist or is not sellable.
        """
        ...

    @abstractmethod
    def apply_promotion_code(self, context_token: str, code: str) -> None:
        """Add a promotion placeholder for ``code``; the host validates it at checkout."""
        ...

    @abstractmethod
    def find_product_id_by_sku(self, sku: str, sales_channel_id: str | None = None) -> str:
        """Look up an active product visible in the sales channel by product number.

        Raises:
            ReferenceNotFound: no such product.
        """
        ...
