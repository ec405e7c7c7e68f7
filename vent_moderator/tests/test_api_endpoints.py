"""
Unit tests for the HTTP endpoints.

The TestClient is used without its context manager, so the lifespan (and
with it the polling worker) never starts.
"""

from unittest.mock import AsyncMock

from fastapi.testclient import TestClient
from pytest_mock import MockerFixture

from vent_moderator.api.main import app

client = TestClient(app)


def test_root_is_alive():
    response = client.get("/")

    assert response.status_code == 200
    assert response.text == "Vent bot is alive!"


def test_health_with_database(mocker: MockerFixture):
    mocker.patch("vent_moderator.api.main.check_db_connection", new=AsyncMock(return_value=True))

    response = client.get("/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "healthy"
    assert body["database"] == "ok"
    assert body["bot"] == "disabled"
    assert body["service"] == "VentModerator"


def test_health_without_database(mocker: MockerFixture):
    mocker.patch("vent_moderator.api.main.check_db_connection", new=AsyncMock(return_value=False))

    response = client.get("/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "degraded"
    assert body["database"] == "unreachable"
