import os
import tempfile

import pytest

# app.py creates its database on import, so point it somewhere disposable first.
os.environ.setdefault("LAB_REPORT_DATABASE", os.path.join(tempfile.mkdtemp(), "reports.db"))


@pytest.fixture
def database(tmp_path):
    from history import init_db

    path = str(tmp_path / "reports.db")
    init_db(path)
    return path


@pytest.fixture
def client(database, monkeypatch):
    from app import app

    monkeypatch.setitem(app.config, "TESTING", True)
    monkeypatch.setitem(app.config, "DATABASE", database)
    with app.test_client() as client:
        yield client
