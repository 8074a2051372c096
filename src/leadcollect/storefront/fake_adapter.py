"""In-memory storefront cart — records restored items and promotion codes."""

from collections import defaultdict

from leadcollect.errors import ReferenceNotFound
from leadcollect.storefront.port import StorefrontCart


class InMemoryStorefrontCart(StorefrontCart):
    """Storefront adapter that keeps carts in memory for test assertions."""

    def __init__(self):
        self.products: dict[str, dict] = {}
        self.carts: dict[str, dict[str, int]] = defaultdict(dict)
        self.promotion_codes: dict[str, list[str]] = defaultdict(list)

    def add_catalogue_product(self, product_id: str, sku: str, sales_channel_id: str | None = None) -> None:
        """Make a product known to the fake storefront."""
        self.products[product_id] = {"sku": sku, "sales_channel_id": sales_channel_id}

    def add_product(self, context_token: str, product_id: str, quantity: int) -> None:
        if product_id not in self.products:
            raise ReferenceNotFound(f"Product not found: {product_id}")
        cart = self.carts[context_token]
        # Stackable: adding an existing product raises its quantity
        cart[product_id] = cart.get(product_id, 0) + quantity

    def apply_promotion_code(self, context_token: str, code: str) -> None:
        if code not in self.promotion_codes[context_token]:
            self.promotion_codes[context_token].append(code)

    def find_product_id_by_sku(self, sku: str, sales_channel_id: str | None = None) -> str:
        for product_id, product in self.products.items():
            if product["sku"] != sku:
                continue
            if sales_channel_id and product["sales_channel_id"] not in (None, sales_channel_id):
                continue
            return product_id
        raise ReferenceNotFound(f"Product not found by SKU: {sku}")

    def reset(self) -> None:
        self.products.clear()
        self.carts.clear()
        self.promotion_codes.clear()
