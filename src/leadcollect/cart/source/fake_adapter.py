"""In-memory cart source — holds host cart rows for development and tests."""

from datetime import datetime

from leadcollect.cart.schema import SchemaVariant
from leadcollect.cart.source.port import CartSource


class InMemoryCartSource(CartSource):
    """Cart source backed by a list of row dicts."""

    def __init__(self, rows: list[dict] | None = None, variant: SchemaVariant = SchemaVariant.MODERN):
        self.variant = variant
        self.rows: list[dict] = list(rows or [])
        self.ordered_tokens: set[str] = set()

    def add_row(self, **row) -> None:
        self.rows.append(row)

    def mark_ordered(self, cart_token: str) -> None:
        """Simulate an order placed from the cart."""
        self.ordered_tokens.add(cart_token)

    def fetch_idle_carts(self, created_before: datetime, limit: int) -> list[dict]:
        idle = [
            row
            for row in self.rows
            if row.get("cart_created_at") is not None
            and row["cart_created_at"] < created_before
            and (row.get("line_item_count") or 0) > 0
            and (row.get("street") or "").strip()
            and row.get("cart_token") not in self.ordered_tokens
        ]
        idle.sort(key=lambda row: row["cart_created_at"], reverse=True)
        return [dict(row) for row in idle[:limit]]

    def reset(self) -> None:
        self.rows.clear()
        self.ordered_tokens.clear()
