from protean.domain import Domain
from sqlalchemy import create_engine

_RDBMS_PROVIDERS = ("sqlite", "postgresql")


def setup_db(domain: Domain):
    """Create tables for the connector's aggregates (abandoned carts, processed-event markers)"""
    with domain.domain_context():
        for _, provider in domain.providers.items():
            if provider.conn_info["provider"] not in _RDBMS_PROVIDERS:
                continue

            engine = create_engine(provider.conn_info["database_uri"])

            # Accessing _dao registers the aggregate's table with the provider's metadata
            for _, aggregate_record in domain.registry.aggregates.items():
                if aggregate_record.cls.meta_.provider == provider.name:
                    domain.repository_for(aggregate_record.cls)._dao  # noqa: B018

            provider._metadata.create_all(engine)


def drop_db(domain: Domain):
    """Drop the connector's tables"""
    with domain.domain_context():
        for _, provider in domain.providers.items():
            if provider.conn_info["provider"] not in _RDBMS_PROVIDERS:
                continue

            engine = create_engine(provider.conn_info["database_uri"])
            provider._metadata.drop_all(engine)
