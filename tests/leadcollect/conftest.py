import pytest
from protean import current_domain
from protean.integrations.pytest import DomainFixture

from leadcollect.cart.schema import SchemaVariant
from leadcollect.cart.source import reset_cart_source, set_cart_source
from leadcollect.cart.source.fake_adapter import InMemoryCartSource
from leadcollect.config import LeadCollectSettings, SettingsStore, reset_settings_store, set_settings_store
from leadcollect.coupon import reset_coupon_gateway, set_coupon_gateway
from leadcollect.coupon.fake_adapter import InMemoryCouponGateway
from leadcollect.storefront import reset_storefront, set_storefront
from leadcollect.storefront.fake_adapter import InMemoryStorefrontCart
from leadcollect.webhook.transport import reset_transport, set_transport
from leadcollect.webhook.transport.fake_adapter import FakeWebhookTransport

WEBHOOK_URL = "https://hooks.leadcollect.test/shopware/"
WEBHOOK_SECRET = "s3cr3t"


@pytest.fixture(scope="session")
def leadcollect_bed():
    from leadcollect.domain import leadcollect

    bed = DomainFixture(leadcollect)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(leadcollect_bed):
    with leadcollect_bed.domain_context():
        yield


@pytest.fixture(autouse=True)
def _clean_stores(_ctx):
    """Cleanup repositories and the event store after every test."""
    yield

    for _, provider in current_domain.providers.items():
        provider._data_reset()

    for _, broker in current_domain.brokers.items():
        broker._data_reset()

    current_domain.event_store.store._data_reset()


@pytest.fixture(autouse=True)
def settings():
    """Webhook switched on and fully configured."""
    store = SettingsStore(
        defaults=LeadCollectSettings(
            webhook_url=WEBHOOK_URL,
            webhook_secret=WEBHOOK_SECRET,
            webhook_enabled=True,
        )
    )
    set_settings_store(store)
    yield store
    reset_settings_store()


@pytest.fixture(autouse=True)
def transport():
    fake = FakeWebhookTransport()
    set_transport(fake)
    yield fake
    reset_transport()


@pytest.fixture(autouse=True)
def no_sleep(monkeypatch):
    """Record backoff delays instead of sleeping."""
    delays = []
    monkeypatch.setattr("leadcollect.webhook.delivery.time.sleep", delays.append)
    return delays


@pytest.fixture(autouse=True)
def coupons():
    gateway = InMemoryCouponGateway()
    set_coupon_gateway(gateway)
    yield gateway
    reset_coupon_gateway()


@pytest.fixture(autouse=True)
def cart_source():
    source = InMemoryCartSource(variant=SchemaVariant.MODERN)
    set_cart_source(source)
    yield source
    reset_cart_source()


@pytest.fixture(autouse=True)
def storefront():
    fake = InMemoryStorefrontCart()
    set_storefront(fake)
    yield fake
    reset_storefront()
