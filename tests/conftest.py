import pytest
import pytest_asyncio

from docmodel import (
    ApplicationConfig, Connection, Environment, InProcessEventBus, MemoryDocumentStore,
)

from .models import Account, CascadeChild, CascadeParent, SubChild


@pytest.fixture
def config():
    config = ApplicationConfig.for_environment(Environment.TESTING)
    config.cascade.await_propagation = False
    config.cascade.operation_timeout = 2.0
    return config


@pytest.fixture
def bus():
    return InProcessEventBus()


@pytest_asyncio.fixture
async def connection(config, bus):
    connection = Connection(config, store=MemoryDocumentStore(), bus=bus)
    connection.register(CascadeParent, CascadeChild, SubChild, Account)
    await connection.connect()
    yield connection
    await connection.close()


@pytest.fixture
def recorded_events(bus):
    events = []

    async def record(event):
        events.append(event)

    bus.subscribe(record)
    return events
