import pytest
from fastapi.testclient import TestClient

import legacy_api
import main
from local_store import LocalLedger
from tests.helpers.store import InMemoryStore

USER = "user-1"


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def client(store):
    main.app.dependency_overrides[main.get_store] = lambda: store
    with TestClient(main.app, headers={"X-User-Id": USER}) as c:
        yield c
    main.app.dependency_overrides.clear()


@pytest.fixture
def legacy_client(tmp_path, monkeypatch):
    legacy_api.store.reset()
    monkeypatch.setattr(legacy_api, "ledger", LocalLedger(tmp_path / "ledger.json"))
    with TestClient(legacy_api.app) as c:
        yield c
