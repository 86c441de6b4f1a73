from __future__ import annotations

import pytest

import roster.db as roster_db
import roster.models  # noqa: F401


@pytest.fixture(autouse=True)
def reset_database(tmp_path, monkeypatch):
    db_file = tmp_path / "test_roster.db"
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{db_file}")

    # Every test gets its own writable SQLite file.
    engine = roster_db.configure()
    roster_db.Base.metadata.drop_all(bind=engine)
    roster_db.Base.metadata.create_all(bind=engine)
    yield
    roster_db.Base.metadata.drop_all(bind=engine)
    engine.dispose()
