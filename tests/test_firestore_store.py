"""
Firestore backend against an in-memory stand-in for the Firestore client.
"""

import pytest
from google.api_core.exceptions import ServiceUnavailable

import firestore_store
from firestore_store import FirestoreClientStore, FirestorePlanStore
from models import Status
from storage import StorageError


def test_create_uses_document_id(fake_firestore, make_client):
    store = FirestoreClientStore(fake_firestore)
    new_id = store.create(make_client(id="ignored"))
    assert new_id == "doc1"
    docs = fake_firestore.collection("clients").docs
    assert "id" not in docs["doc1"]
    assert docs["doc1"]["status"] == "Ativo"
    assert store.get_all()[0].id == "doc1"


def test_update_and_delete(fake_firestore, make_client):
    store = FirestoreClientStore(fake_firestore)
    doc_id = store.create(make_client())
    store.update(doc_id, status=Status.INACTIVE, monthly_value=30.0)
    stored = store.get_all()[0]
    assert stored.status is Status.INACTIVE
    assert stored.monthly_value == 30.0
    store.delete(doc_id)
    assert store.get_all() == []


def test_replace_all_assigns_new_ids(fake_firestore, make_client):
    store = FirestoreClientStore(fake_firestore)
    store.create(make_client(name="Old"))
    stored = store.replace_all([make_client(id="a", name="A"), make_client(id="b", name="B")])
    assert [c.id for c in stored] == ["doc2", "doc3"]
    assert sorted(c.name for c in store.get_all()) == ["A", "B"]


def test_replace_all_batches_deletes(fake_firestore, make_client, monkeypatch):
    monkeypatch.setattr(firestore_store, "BATCH_LIMIT", 2)
    store = FirestoreClientStore(fake_firestore)
    for i in range(5):
        store.create(make_client(name=f"c{i}"))
    store.replace_all([])
    assert fake_firestore.commits == [2, 2, 1]
    assert store.get_all() == []


def test_api_errors_become_storage_errors(fake_firestore):
    fake_firestore.collection("clients").fail_with = ServiceUnavailable("down")
    with pytest.raises(StorageError):
        FirestoreClientStore(fake_firestore).get_all()


def test_plan_store(fake_firestore):
    plans = FirestorePlanStore(fake_firestore)
    plan_id = plans.create("2 TELAS", 35)
    plans.update(plan_id, name="2 TELAS HD")
    assert [(p.id, p.name, p.price) for p in plans.get_all()] == [(plan_id, "2 TELAS HD", 35.0)]
    with pytest.raises(ValueError):
        plans.update(plan_id, colour="blue")
    plans.delete(plan_id)
    assert plans.get_all() == []
