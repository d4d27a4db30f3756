import inspect
import logging

import pytest
from conftest import InMemoryStore
from fastapi.testclient import TestClient

from visitbox.main import create_app, main
from visitbox.routers.info import LIVENESS_MESSAGE


@pytest.fixture
def client(store):
    with TestClient(create_app(store=store)) as client:
        yield client


def test_info(client, store):
    response = client.get("/info")

    assert response.status_code == 200
    assert response.text == LIVENESS_MESSAGE
    # Only the startup SET reached the store
    assert store.calls == ["set"]


def test_counter_initialised_on_startup(client, store):
    assert store.data["visits"] == "0"


def test_visits_count_up(client, store):
    for expected in range(3):
        response = client.get("/visits")
        assert response.status_code == 200
        assert response.text == f"Number of Visits {expected}"

    assert store.data["visits"] == "3"


def test_visits_store_down_is_server_error(client, store):
    store.broken = True

    response = client.get("/visits")

    assert response.status_code == 500
    assert "Number of Visits" not in response.text
    assert "visits" in response.json()["detail"]


def test_visits_recover_after_outage(client, store):
    store.broken = True
    assert client.get("/visits").status_code == 500

    store.broken = False
    response = client.get("/visits")

    assert response.status_code == 200
    assert response.text == "Number of Visits 0"


def test_restart_resets_counter():
    store = InMemoryStore()

    with TestClient(create_app(store=store)) as client:
        client.get("/visits")
        client.get("/visits")

    with TestClient(create_app(store=store)) as client:
        assert client.get("/visits").text == "Number of Visits 0"


def test_unknown_route(client):
    assert client.get("/nope").status_code == 404


class ExplodingCounter:
    async def record_visit(self):
        raise RuntimeError("counter exploded")


def test_store_outage_logged_as_warning(client, store, caplog):
    store.broken = True

    with caplog.at_level(logging.DEBUG, logger="visitbox.shared.http.__http"):
        client.get("/visits")

    records = [r for r in caplog.records if r.name == "visitbox.shared.http.__http"]
    assert [r.levelno for r in records] == [logging.WARNING]
    assert records[0].exc_info is None


def test_unexpected_error_logged_with_traceback(client, caplog):
    client.app.state.counter = ExplodingCounter()

    with caplog.at_level(logging.DEBUG, logger="visitbox.shared.http.__http"):
        response = client.get("/visits")

    assert response.status_code == 500
    assert response.json()["detail"] == "counter exploded"

    records = [r for r in caplog.records if r.name == "visitbox.shared.http.__http"]
    assert [r.levelno for r in records] == [logging.ERROR]
    assert records[0].exc_info is not None


def test_main_takes_no_arguments():
    assert len(inspect.signature(main).parameters) == 0
