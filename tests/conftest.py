import itertools
import os
from datetime import date

# must be set before scorecard.config is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["API_KEY"] = "test-key"

import pytest
from fastapi.testclient import TestClient

from scorecard import models
from scorecard.deps import SessionLocal, engine
from scorecard.services import catalog, directory


@pytest.fixture(autouse=True)
def _schema():
    models.Base.metadata.create_all(bind=engine)
    yield
    models.Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    from scorecard.main import app
    with TestClient(app, headers={"X-API-Key": "test-key"}) as c:
        yield c


@pytest.fixture
def make_salesperson(db):
    counter = itertools.count(1)

    def _make(name=None, active=True):
        n = next(counter)
        return directory.create_salesperson(db, name or f"Rep {n}", f"rep{n}@example.com", active)

    return _make


@pytest.fixture
def make_objective(db):
    def _make(**overrides):
        data = {
            "name": "Revenue",
            "kind": "currency",
            "company_target": 1000.0,
            "start_date": date(2025, 1, 1),
            "end_date": date(2025, 12, 31),
            "is_global": False,
        }
        data.update(overrides)
        return catalog.create_objective(db, data)

    return _make
