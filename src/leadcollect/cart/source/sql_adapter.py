"""SQL cart source — reads idle carts from the host database with SQLAlchemy."""

from datetime import datetime

import structlog
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine

from leadcollect.cart.schema import SchemaVariant, inspect_schema_variant
from leadcollect.cart.source.port import CartSource

logger = structlog.get_logger(__name__)

_IDLE_CARTS_SQL = """
    SELECT
        LOWER(HEX(c.token)) AS cart_token,
        c.price AS cart_total,
        c.line_item_count,
        c.created_at AS cart_created_at,
        c.updated_at AS cart_updated_at,
        c.{payload_column} AS {payload_column},
        {compressed_column}
        LOWER(HEX(cu.id)) AS customer_id,
        cu.first_name,
        cu.last_name,
        cu.email,
        ca.street,
        ca.zipcode,
        ca.city,
        co.iso AS country_iso,
        LOWER(HEX(c.sales_channel_id)) AS sales_channel_id
    FROM cart c
    INNER JOIN customer cu ON c.customer_id = cu.id
    INNER JOIN customer_address ca ON cu.default_billing_address_id = ca.id
    INNER JOIN country co ON ca.country_id = co.id
    LEFT JOIN `order` o ON c.token = o.cart_token
    WHERE c.created_at < :threshold
      AND c.line_item_count > 0
      AND ca.street IS NOT NULL
      AND ca.street != ''
      AND o.id IS NULL
    ORDER BY c.created_at DESC
    LIMIT :limit
"""


class SqlCartSource(CartSource):
    """Cart source over the host's ``cart`` table."""

    def __init__(self, engine: Engine, variant: SchemaVariant):
        self.engine = engine
        self.variant = variant
        self._query = text(
            _IDLE_CARTS_SQL.format(
                payload_column=variant.payload_column,
                compressed_column="c.compressed AS compressed," if variant is SchemaVariant.MODERN else "",
            )
        )

    @classmethod
    def from_url(cls, database_url: str) -> "SqlCartSource":
        """Connect and inspect the schema variant once."""
        engine = create_engine(database_url, pool_pre_ping=True)
        return cls(engine, inspect_schema_variant(engine))

    def fetch_idle_carts(self, created_before: datetime, limit: int) -> list[dict]:
        with self.engine.connect() as connection:
            result = connection.execute(
                self._query,
                {"threshold": created_before.strftime("%Y-%m-%d %H:%M:%S"), "limit": limit},
            )
            rows = [dict(row._mapping) for row in result]

        logger.debug("Fetched idle host carts", count=len(rows), variant=self.variant.value)
        return rows
