import pytest
from fastapi.testclient import TestClient

import database
import main


@pytest.fixture
def db_file(tmp_path, monkeypatch):
    path = tmp_path / "test.db"
    monkeypatch.setattr(database, "DATABASE_FILE", str(path))
    database.init_db()
    return path


@pytest.fixture
def client(db_file, monkeypatch):
    monkeypatch.setattr(main, "AUTH_TOKEN", "test-token")
    main.recent_window.clear()
    c = TestClient(main.app)
    c.headers.update({"Authorization": "Bearer test-token"})
    return c
