import json
import logging
from datetime import datetime
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from crud_app.core.config import Settings
from crud_app.core.errors import LivenessError
from crud_app.main import create_app


def test_health_endpoint_reports_ok(client: TestClient) -> None:
    response = client.get("/health")

    assert response.status_code == 200
    payload = response.json()
    assert payload["status"] == "OK"
    assert payload["version"] == "9.9.9"
    assert payload["services"] == {
        "api": "OK",
        "database": {"status": "OK", "message": "Connexion réussie"},
    }
    assert datetime.fromisoformat(payload["timestamp"])


def test_health_endpoint_hides_database_failure(client: TestClient, monkeypatch, caplog) -> None:
    async def failing_ping() -> None:
        raise LivenessError("could not connect to server at 10.0.0.7:5432")

    monkeypatch.setattr(client.app.state.database, "ping", failing_ping)
    caplog.set_level(logging.INFO)

    response = client.get("/health")

    assert response.status_code == 503
    payload = response.json()
    assert payload["status"] == "ERROR"
    assert payload["services"]["api"] == "OK"
    assert payload["services"]["database"]["status"] == "ERROR"
    assert "10.0.0.7" not in response.text
    error_records = [record for record in caplog.records if record.levelname == "ERROR"]
    assert [record.getMessage() for record in error_records] == ["Database ping failed"]
    assert error_records[0].context["error"] == "could not connect to server at 10.0.0.7:5432"


def test_health_endpoint_answers_500_on_unexpected_failure(client: TestClient, monkeypatch) -> None:
    async def broken_ping() -> None:
        raise KeyError("internal state")

    monkeypatch.setattr(client.app.state.database, "ping", broken_ping)

    response = client.get("/health")

    assert response.status_code == 500
    assert response.json()["message"] == "Erreur interne du serveur"
    assert "internal state" not in response.text


@pytest.mark.parametrize(
    ("method", "path"),
    [("GET", "/api/unknown"), ("POST", "/nowhere"), ("PATCH", "/api/users")],
)
def test_unmatched_route_returns_not_found_envelope(client: TestClient, method: str, path: str) -> None:
    response = client.request(method, path)

    assert response.status_code == 404
    assert response.json() == {"success": False, "error": "Route non trouvée"}


def test_startup_writes_structured_log_file(settings: Settings) -> None:
    with TestClient(create_app(settings)) as client:
        client.get("/api/users")

    log_path = Path(settings.log_dir) / settings.log_file_name
    entries = [json.loads(line) for line in log_path.read_text(encoding="utf-8").splitlines()]
    messages = [entry["message"] for entry in entries]
    assert "Server started" in messages
    assert "Fetching all users" in messages
    started = next(entry for entry in entries if entry["message"] == "Server started")
    assert started["level"] == "INFO"
    assert started["context"]["port"] == settings.port


def test_startup_creates_users_table(client: TestClient) -> None:
    response = client.get("/api/users")

    assert response.status_code == 200
    assert response.json() == {"success": True, "data": [], "count": 0}


def test_startup_fails_when_database_is_unreachable(tmp_path: Path) -> None:
    settings = Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'missing' / 'nowhere.db'}",
        log_dir=str(tmp_path / "logs"),
    )

    with pytest.raises(LivenessError):
        with TestClient(create_app(settings)):
            pass


def test_shutdown_logs_and_closes_the_pool(settings: Settings, caplog) -> None:
    app = create_app(settings)
    caplog.set_level(logging.INFO)

    with TestClient(app) as client:
        assert client.get("/health").status_code == 200
        database = app.state.database
        assert database._engine is not None

    assert database._engine is None
    messages = [record.getMessage() for record in caplog.records]
    assert messages.index("Server shutting down") < messages.index("Connection pool closed")

    log_path = Path(settings.log_dir) / settings.log_file_name
    entries = [json.loads(line) for line in log_path.read_text(encoding="utf-8").splitlines()]
    assert entries[-1]["message"] == "Connection pool closed"
    assert "Server shutting down" in [entry["message"] for entry in entries]
