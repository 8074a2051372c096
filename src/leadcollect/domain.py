"""LeadCollect bounded context — abandoned-cart recovery bridge to the LeadCollect CRM.

Normalizes persisted host carts, records abandoned carts, issues recovery
coupons and notifies LeadCollect through webhooks. Exposes a polling API
so LeadCollect can also pull idle carts on its own schedule.
"""

from protean.domain import Domain

from leadcollect.utils.logging import configure_logging, get_logger

__version__ = "1.3.0"

# Configure logging for the application
configure_logging()

logger = get_logger(__name__)

# Domain Composition Root
leadcollect = Domain(name="leadcollect")
