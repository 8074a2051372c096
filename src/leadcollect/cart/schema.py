"""Host cart table layout detection.

Shopware 6.5 stores the serialized cart in the ``cart`` column; 6.6 moved it
to a ``payload`` blob with a ``compressed`` flag. The layout is inspected once
at startup and the resulting variant is handed to every component that
reads cart rows.
"""

from collections.abc import Iterable
from enum import Enum

import structlog
from sqlalchemy import inspect
from sqlalchemy.engine import Engine

logger = structlog.get_logger(__name__)

CART_TABLE = "cart"


class SchemaVariant(Enum):
    LEGACY = "legacy"  # Shopware 6.5
    MODERN = "modern"  # Shopware 6.6+

    @property
    def payload_column(self) -> str:
        """Name of the column holding the persisted cart payload."""
        return "payload" if self is SchemaVariant.MODERN else "cart"


def detect_schema_variant(columns: Iterable[str]) -> SchemaVariant:
    """Decide the layout from the cart table's column names."""
    names = {column.lower() for column in columns}
    if "payload" in names:
        return SchemaVariant.MODERN
    return SchemaVariant.LEGACY


def inspect_schema_variant(engine: Engine, table: str = CART_TABLE) -> SchemaVariant:
    """Inspect the host database once and return its cart table layout."""
    columns = [column["name"] for column in inspect(engine).get_columns(table)]
    variant = detect_schema_variant(columns)
    logger.info("Detected host cart schema", variant=variant.value, table=table)
    return variant
