"""
Pytest configuration and shared fixtures.
"""

import os
import sys

import pytest

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import db
from models import Client, Status
from storage import LocalClientStore, LocalPlanStore, SqliteClientStore, SqlitePlanStore


# ============================================================================
# DOMAIN FACTORIES
# ============================================================================

@pytest.fixture
def make_client():
    def _make(id="c1", name="Ana", contact="5511999990000", plan="1 TELA",
              monthly_value=25.0, due_date=10, status=Status.ACTIVE):
        return Client(id, name, contact, plan, monthly_value, due_date, status)
    return _make


@pytest.fixture
def valid_record():
    """A backup-file record that passes every import rule."""
    return {
        "id": "1",
        "name": "A",
        "contact": "5585999998888",
        "plan": "X",
        "monthlyValue": 10,
        "dueDate": 5,
        "status": "Ativo",
    }


# ============================================================================
# STORAGE
# ============================================================================

@pytest.fixture
def temp_db(tmp_path, monkeypatch):
    """Point db.py at a throwaway SQLite file."""
    path = tmp_path / "test.db"
    monkeypatch.setattr(db, "DB_FILE", path)
    return path


@pytest.fixture(params=["local", "sqlite"])
def stores(request, tmp_path, temp_db):
    """(client_store, plan_store) for each file-backed backend."""
    if request.param == "local":
        return LocalClientStore(tmp_path / "clients.json"), LocalPlanStore(tmp_path / "plans.json")
    return SqliteClientStore(), SqlitePlanStore()


# ============================================================================
# FIRESTORE FAKE
# ============================================================================

class FakeSnapshot:
    def __init__(self, ref, data):
        self.id = ref.id
        self.reference = ref
        self._data = dict(data)

    def to_dict(self):
        return dict(self._data)


class FakeDocRef:
    def __init__(self, collection, doc_id):
        self.collection = collection
        self.id = doc_id

    def update(self, data):
        if self.id not in self.collection.docs:
            raise KeyError(self.id)
        self.collection.docs[self.id].update(data)

    def delete(self):
        self.collection.docs.pop(self.id, None)


class FakeCollection:
    def __init__(self):
        self.docs = {}
        self._next = 0
        self.fail_with = None

    def stream(self):
        if self.fail_with:
            raise self.fail_with
        return iter([FakeSnapshot(FakeDocRef(self, k), v) for k, v in self.docs.items()])

    def add(self, data):
        self._next += 1
        doc_id = f"doc{self._next}"
        self.docs[doc_id] = dict(data)
        return None, FakeDocRef(self, doc_id)

    def document(self, doc_id):
        return FakeDocRef(self, doc_id)


class FakeBatch:
    def __init__(self, db):
        self.db = db
        self.refs = []

    def delete(self, ref):
        self.refs.append(ref)

    def commit(self):
        self.db.commits.append(len(self.refs))
        for ref in self.refs:
            ref.delete()


class FakeFirestore:
    def __init__(self):
        self.collections = {}
        self.commits = []

    def collection(self, name):
        return self.collections.setdefault(name, FakeCollection())

    def batch(self):
        return FakeBatch(self)


@pytest.fixture
def fake_firestore():
    return FakeFirestore()
