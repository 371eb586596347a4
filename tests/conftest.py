import os

os.environ["DATABASE_URL"] = "sqlite+pysqlite:///:memory:"
for _key in ("DB_HOST", "DB_USER", "DB_PWD", "DB_NAME"):
    os.environ.pop(_key, None)

import pytest
from fastapi.encoders import jsonable_encoder
from fastapi.testclient import TestClient

from app.api.v1.socket import get_connection_manager
from app.client.queue.waiting_queue import InMemoryWaitingQueue
from app.client.realtime.connection_manager import ConnectionManager
from app.client.realtime.notifier import Notifier
from app.db.session import Base, engine
from app.main import app
from app.model.auth.principal import Principal, Role
from app.service.support.support import SupportService, get_support_service


class RecordingNotifier(Notifier):
    def __init__(self):
        self.events = []

    async def emit(self, event, data, audience):
        self.events.append((event, jsonable_encoder(data), audience))

    def named(self, event):
        return [(data, audience) for (name, data, audience) in self.events if name == event]


class FakeOrders:
    def __init__(self):
        self.owners = {}

    def add(self, order_id, user_id):
        self.owners[order_id] = user_id

    async def lookup(self, order_id, user_id):
        return self.owners.get(order_id) == user_id


def customer(user_id="user-1"):
    return Principal(id=user_id, role=Role.CUSTOMER)


def agent(agent_id="agent-a"):
    return Principal(id=agent_id, role=Role.SERVICE)


def admin(admin_id="admin-1"):
    return Principal(id=admin_id, role=Role.ADMIN)


def headers(principal):
    return {"x-user-id": principal.id, "x-user-role": principal.role.value}


#scope : function < class < module < package < session
@pytest.fixture(autouse=True)
def database():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def notifier():
    return RecordingNotifier()


@pytest.fixture(scope="function")
def waiting_queue():
    return InMemoryWaitingQueue()


@pytest.fixture(scope="function")
def orders():
    fake = FakeOrders()
    for n in range(1, 10):
        fake.add(f"order-{n}", "user-1")
    fake.add("order-other", "user-2")
    return fake


@pytest.fixture(scope="function")
def support(notifier, waiting_queue, orders):
    return SupportService(notifier=notifier, waiting_queue=waiting_queue, order_lookup=orders.lookup)


@pytest.fixture(scope="function")
def client(support):
    app.dependency_overrides[get_support_service] = lambda: support
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
def socket_client(waiting_queue, orders):
    manager = ConnectionManager()
    service = SupportService(notifier=manager, waiting_queue=waiting_queue, order_lookup=orders.lookup)
    app.dependency_overrides[get_support_service] = lambda: service
    app.dependency_overrides[get_connection_manager] = lambda: manager
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
