import pytest
from protean.integrations.pytest import DomainFixture


@pytest.fixture(scope="session")
def feed_bed():
    from feed.domain import feed

    bed = DomainFixture(feed)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(feed_bed):
    from feed.channel import reset_push_gateway
    from protean import current_domain

    reset_push_gateway()
    with feed_bed.domain_context():
        yield

        # Clear all databases and drain the event store
        for _, provider in current_domain.providers.items():
            provider._data_reset()
        current_domain.event_store.store._data_reset()
    reset_push_gateway()
