"""
storage.py
Client/plan persistence behind one contract, with swappable backends:
- local: JSON files in the data directory
- sqlite: tables managed by db.py
- firestore: see firestore_store.py
The backend is chosen once by build_stores(); nothing else branches on it.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import uuid
from dataclasses import replace
from pathlib import Path
from typing import Iterable, Protocol

import db
from config import Settings
from models import DEFAULT_PLANS, Client, Plan, Status

logger = logging.getLogger(__name__)

CLIENT_COLUMNS = ("id", "name", "contact", "plan", "monthly_value", "due_date", "status")

# Form field name -> file/document key
CLIENT_FIELD_KEYS = {
    "name": "name",
    "contact": "contact",
    "plan": "plan",
    "monthly_value": "monthlyValue",
    "due_date": "dueDate",
    "status": "status",
}
PLAN_FIELDS = ("name", "price")


class StorageError(RuntimeError):
    pass


class ClientStore(Protocol):
    def get_all(self) -> list[Client]: ...

    def create(self, client: Client) -> str: ...

    def update(self, client_id: str, **fields) -> None: ...

    def delete(self, client_id: str) -> None: ...

    def replace_all(self, clients: Iterable[Client]) -> list[Client]: ...


class PlanStore(Protocol):
    def get_all(self) -> list[Plan]: ...

    def create(self, name: str, price: float) -> str: ...

    def update(self, plan_id: str, **fields) -> None: ...

    def delete(self, plan_id: str) -> None: ...


def new_id() -> str:
    return uuid.uuid4().hex


def check_fields(fields: dict, allowed) -> None:
    unknown = set(fields) - set(allowed)
    if unknown:
        raise ValueError(f"Unknown field(s): {', '.join(sorted(unknown))}")


def client_document(fields: dict) -> dict:
    """Translate client field names to stored keys; Status becomes its literal."""
    check_fields(fields, CLIENT_FIELD_KEYS)
    doc = {}
    for k, v in fields.items():
        doc[CLIENT_FIELD_KEYS[k]] = v.value if isinstance(v, Status) else v
    return doc


# ---------- Local (JSON file) backend ----------

class _JsonFile:
    def __init__(self, path: Path):
        self.path = Path(path)

    def read(self) -> list[dict]:
        if not self.path.exists():
            return []
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.error("Could not read local store %s: %s", self.path, e)
            raise StorageError(f"Could not read local store {self.path.name}") from e
        if not isinstance(data, list):
            logger.error("Local store %s does not hold a list", self.path)
            raise StorageError(f"Local store {self.path.name} is not a list")
        return data

    def write(self, records: list[dict]) -> None:
        tmp = self.path.with_suffix(".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_text(json.dumps(records, ensure_ascii=False, indent=2), encoding="utf-8")
            tmp.replace(self.path)
        except OSError as e:
            logger.error("Could not write local store %s: %s", self.path, e)
            raise StorageError(f"Could not write local store {self.path.name}") from e
        finally:
            tmp.unlink(missing_ok=True)


class LocalClientStore:
    def __init__(self, path: Path):
        self._file = _JsonFile(path)

    def get_all(self) -> list[Client]:
        return [Client.from_dict(r) for r in self._file.read()]

    def create(self, client: Client) -> str:
        records = self._file.read()
        client_id = client.id or new_id()
        records.append(replace(client, id=client_id).to_dict())
        self._file.write(records)
        return client_id

    def update(self, client_id: str, **fields) -> None:
        doc = client_document(fields)
        records = self._file.read()
        for r in records:
            if r.get("id") == client_id:
                r.update(doc)
                self._file.write(records)
                return
        logger.warning("Update skipped: client %s not found", client_id)

    def delete(self, client_id: str) -> None:
        records = self._file.read()
        self._file.write([r for r in records if r.get("id") != client_id])

    def replace_all(self, clients: Iterable[Client]) -> list[Client]:
        stored = [c if c.id else replace(c, id=new_id()) for c in clients]
        self._file.write([c.to_dict() for c in stored])
        return stored


class LocalPlanStore:
    def __init__(self, path: Path):
        self._file = _JsonFile(path)

    def get_all(self) -> list[Plan]:
        return [Plan.from_dict(r) for r in self._file.read()]

    def create(self, name: str, price: float) -> str:
        records = self._file.read()
        plan = Plan(id=new_id(), name=name, price=float(price))
        records.append(plan.to_dict())
        self._file.write(records)
        return plan.id

    def update(self, plan_id: str, **fields) -> None:
        check_fields(fields, PLAN_FIELDS)
        records = self._file.read()
        for r in records:
            if r.get("id") == plan_id:
                r.update(fields)
                self._file.write(records)
                return
        logger.warning("Update skipped: plan %s not found", plan_id)

    def delete(self, plan_id: str) -> None:
        records = self._file.read()
        self._file.write([r for r in records if r.get("id") != plan_id])


# ---------- SQLite backend ----------

def _client_from_row(r: sqlite3.Row) -> Client:
    return Client(
        id=r["id"],
        name=r["name"],
        contact=r["contact"],
        plan=r["plan"],
        monthly_value=r["monthly_value"],
        due_date=r["due_date"],
        status=Status(r["status"]),
    )


def _client_params(c: Client) -> tuple:
    return (c.id, c.name, c.contact, c.plan, c.monthly_value, c.due_date, c.status.value)


def _sqlite(fn, *args):
    try:
        return fn(*args)
    except sqlite3.Error as e:
        logger.error("SQLite store error: %s", e)
        raise StorageError(str(e)) from e


class SqliteClientStore:
    def __init__(self):
        _sqlite(db.create_data_tables)

    def get_all(self) -> list[Client]:
        rows = _sqlite(db.fetch_all, "SELECT * FROM clients ORDER BY rowid ASC")
        return [_client_from_row(r) for r in rows]

    def create(self, client: Client) -> str:
        client = replace(client, id=client.id or new_id())
        _sqlite(
            db.execute,
            f"INSERT INTO clients({','.join(CLIENT_COLUMNS)}) VALUES(?,?,?,?,?,?,?)",
            _client_params(client),
        )
        return client.id

    def update(self, client_id: str, **fields) -> None:
        check_fields(fields, CLIENT_FIELD_KEYS)
        if not fields:
            return
        values = [v.value if isinstance(v, Status) else v for v in fields.values()]
        assignments = ", ".join(f"{k}=?" for k in fields)
        _sqlite(db.execute, f"UPDATE clients SET {assignments} WHERE id=?", (*values, client_id))

    def delete(self, client_id: str) -> None:
        _sqlite(db.execute, "DELETE FROM clients WHERE id = ?", (client_id,))

    def replace_all(self, clients: Iterable[Client]) -> list[Client]:
        stored = [c if c.id else replace(c, id=new_id()) for c in clients]
        _sqlite(db.replace_table, "clients", CLIENT_COLUMNS, [_client_params(c) for c in stored])
        return stored


class SqlitePlanStore:
    def __init__(self):
        _sqlite(db.create_data_tables)

    def get_all(self) -> list[Plan]:
        rows = _sqlite(db.fetch_all, "SELECT * FROM plans ORDER BY rowid ASC")
        return [Plan(id=r["id"], name=r["name"], price=r["price"]) for r in rows]

    def create(self, name: str, price: float) -> str:
        plan_id = new_id()
        _sqlite(db.execute, "INSERT INTO plans(id, name, price) VALUES(?,?,?)", (plan_id, name, float(price)))
        return plan_id

    def update(self, plan_id: str, **fields) -> None:
        check_fields(fields, PLAN_FIELDS)
        if not fields:
            return
        assignments = ", ".join(f"{k}=?" for k in fields)
        _sqlite(db.execute, f"UPDATE plans SET {assignments} WHERE id=?", (*fields.values(), plan_id))

    def delete(self, plan_id: str) -> None:
        _sqlite(db.execute, "DELETE FROM plans WHERE id = ?", (plan_id,))


# ---------- Wiring ----------

def build_stores(settings: Settings) -> tuple[ClientStore, PlanStore]:
    backend = settings.STORAGE_BACKEND
    logger.info("Using %s storage backend", backend)
    if backend == "local":
        data_dir = Path(settings.DATA_DIR)
        return LocalClientStore(data_dir / "clients.json"), LocalPlanStore(data_dir / "plans.json")
    if backend == "sqlite":
        return SqliteClientStore(), SqlitePlanStore()
    if backend == "firestore":
        import firestore_store

        client = firestore_store.connect(settings.FIRESTORE_CREDENTIALS)
        return firestore_store.FirestoreClientStore(client), firestore_store.FirestorePlanStore(client)
    raise ValueError(f"Unknown storage backend: {backend}")


def create_all(client_store: ClientStore, clients: Iterable[Client]) -> list[str]:
    """
    Create each client in turn. A failure part way reports how many were
    already saved, since earlier creates are not undone.
    """
    clients = list(clients)
    created: list[str] = []
    for c in clients:
        try:
            created.append(client_store.create(c))
        except StorageError as e:
            logger.error("Bulk create stopped after %d of %d client(s): %s", len(created), len(clients), e)
            raise StorageError(
                f"{len(created)} of {len(clients)} client(s) were saved before the failure: {e}"
            ) from e
    return created


def ensure_default_plans(plan_store: PlanStore) -> list[Plan]:
    """Seed the default catalog when the plan store is empty."""
    plans = plan_store.get_all()
    if plans:
        return plans
    logger.info("Plan catalog empty, inserting %d default plans", len(DEFAULT_PLANS))
    for name, price in DEFAULT_PLANS:
        plan_store.create(name, price)
    return plan_store.get_all()
