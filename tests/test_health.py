# tests/test_health.py
from fastapi import status
from fastapi.testclient import TestClient

from quadvote import main


def test_health(client) -> None:
    response = client.get("/health")
    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"status": "ok"}


def test_root_describes_api(client) -> None:
    body = client.get("/").json()
    assert body["name"] == "QuadVote API"
    assert body["docs"] == "/docs"


def test_replenish_worker_disabled_by_default(app, client) -> None:
    assert app.state.replenish_worker is None


def test_lifespan_starts_and_stops_replenish_worker(app, mocker) -> None:
    worker = mocker.AsyncMock()
    worker_cls = mocker.patch.object(main, "ReplenishWorker", return_value=worker)
    mocker.patch.object(main.settings, "replenish_worker_enabled", True)

    with TestClient(app) as client:
        assert client.get("/health").status_code == status.HTTP_200_OK
        assert app.state.replenish_worker is worker
        worker.stop.assert_not_awaited()

    worker_cls.assert_called_once_with()
    worker.start.assert_awaited_once()
    worker.stop.assert_awaited_once()
