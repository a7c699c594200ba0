"""
firestore_store.py
Firestore backend (firebase-admin). Documents hold the client/plan fields;
the document id is the record id. Firestore has no bulk replace, so
replace_all deletes every document and adds the records again, which
assigns new ids.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Iterable, Optional

import firebase_admin
from firebase_admin import credentials, firestore
from google.api_core.exceptions import GoogleAPICallError

from models import Client, Plan
from storage import PLAN_FIELDS, StorageError, check_fields, client_document

logger = logging.getLogger(__name__)

CLIENTS_COLLECTION = "clients"
PLANS_COLLECTION = "plans"

# Firestore rejects batches above 500 writes
BATCH_LIMIT = 500


def connect(credentials_path: Optional[str] = None):
    """Return a Firestore client, initializing the default app once."""
    try:
        firebase_admin.get_app()
    except ValueError:
        cred = credentials.Certificate(credentials_path) if credentials_path else None
        firebase_admin.initialize_app(cred)
    return firestore.client()


def _call(action: str, fn, *args):
    try:
        return fn(*args)
    except GoogleAPICallError as e:
        logger.error("Error %s: %s", action, e)
        raise StorageError(f"Error {action}: {e}") from e


class _Collection:
    def __init__(self, db, name: str):
        self.db = db
        self.name = name

    @property
    def ref(self):
        return self.db.collection(self.name)

    def documents(self) -> list[dict]:
        docs = _call(f"reading {self.name}", lambda: list(self.ref.stream()))
        return [{**d.to_dict(), "id": d.id} for d in docs]

    def add(self, data: dict) -> str:
        _, doc_ref = _call(f"creating in {self.name}", self.ref.add, data)
        return doc_ref.id

    def update(self, doc_id: str, data: dict) -> None:
        if data:
            _call(f"updating {self.name}/{doc_id}", self.ref.document(doc_id).update, data)

    def delete(self, doc_id: str) -> None:
        _call(f"deleting {self.name}/{doc_id}", self.ref.document(doc_id).delete)

    def delete_all(self) -> int:
        refs = _call(f"listing {self.name}", lambda: [d.reference for d in self.ref.stream()])
        for start in range(0, len(refs), BATCH_LIMIT):
            batch = self.db.batch()
            for ref in refs[start:start + BATCH_LIMIT]:
                batch.delete(ref)
            _call(f"clearing {self.name}", batch.commit)
        return len(refs)


class FirestoreClientStore:
    def __init__(self, db):
        self._col = _Collection(db, CLIENTS_COLLECTION)

    def get_all(self) -> list[Client]:
        return [Client.from_dict(d) for d in self._col.documents()]

    def create(self, client: Client) -> str:
        data = client.to_dict()
        data.pop("id")
        return self._col.add(data)

    def update(self, client_id: str, **fields) -> None:
        self._col.update(client_id, client_document(fields))

    def delete(self, client_id: str) -> None:
        self._col.delete(client_id)

    def replace_all(self, clients: Iterable[Client]) -> list[Client]:
        removed = self._col.delete_all()
        stored = [replace(c, id=self.create(c)) for c in clients]
        logger.info("Replaced %d client document(s) with %d", removed, len(stored))
        return stored


class FirestorePlanStore:
    def __init__(self, db):
        self._col = _Collection(db, PLANS_COLLECTION)

    def get_all(self) -> list[Plan]:
        return [Plan.from_dict(d) for d in self._col.documents()]

    def create(self, name: str, price: float) -> str:
        return self._col.add({"name": name, "price": float(price)})

    def update(self, plan_id: str, **fields) -> None:
        check_fields(fields, PLAN_FIELDS)
        self._col.update(plan_id, fields)

    def delete(self, plan_id: str) -> None:
        self._col.delete(plan_id)
