import os
import sys
from collections.abc import Iterator
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# Tests run against a local sqlite file instead of the PostgreSQL server
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./test.db")
os.environ.setdefault("LOG_DIR", "./test-logs")
os.environ.setdefault("DB_ECHO", "false")

from crud_app.core.config import Settings  # noqa: E402
from crud_app.core.logging import reset_logging  # noqa: E402
from crud_app.main import create_app  # noqa: E402


def sqlite_url(path: Path) -> str:
    return f"sqlite+aiosqlite:///{path}"


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    return Settings(
        database_url=sqlite_url(tmp_path / "test.db"),
        log_dir=str(tmp_path / "logs"),
        app_version="9.9.9",
        migrate_max_retries=3,
        migrate_retry_delay_seconds=0,
    )


@pytest.fixture()
def client(settings: Settings) -> Iterator[TestClient]:
    with TestClient(create_app(settings)) as test_client:
        yield test_client


@pytest.fixture(autouse=True)
def detach_log_handlers() -> Iterator[None]:
    yield
    reset_logging()
