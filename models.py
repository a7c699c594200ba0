"""
models.py
Lightweight domain helpers (status, clients, plans).
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum


class Status(str, Enum):
    ACTIVE = "Ativo"
    INACTIVE = "Inativo"


def parse_status(value) -> Status | None:
    """
    Exact match against the Status literals. Returns None for anything else
    (wrong case, non-strings, missing).
    """
    if not isinstance(value, str):
        return None
    try:
        return Status(value)
    except ValueError:
        return None


# Catalog seeded into an empty plan store
DEFAULT_PLANS = [
    ("1 TELA", 25.0),
    ("2 TELAS", 35.0),
    ("1 TELA + YouTube_P", 45.0),
    ("2 TELAS + YouTube_P", 55.0),
]


@dataclass(frozen=True)
class Client:
    id: str
    name: str
    contact: str
    plan: str  # plan name, may no longer exist in the catalog
    monthly_value: float
    due_date: int  # day of month, 1..31
    status: Status

    @property
    def is_active(self) -> bool:
        return self.status is Status.ACTIVE

    def to_dict(self) -> dict:
        """Record in the backup/import file layout (camelCase keys)."""
        return {
            "id": self.id,
            "name": self.name,
            "contact": self.contact,
            "plan": self.plan,
            "monthlyValue": self.monthly_value,
            "dueDate": self.due_date,
            "status": self.status.value,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Client":
        return cls(
            id=str(data.get("id") or ""),
            name=data["name"],
            contact=data.get("contact") or "",
            plan=data["plan"],
            monthly_value=data["monthlyValue"],
            due_date=data["dueDate"],
            status=Status(data["status"]),
        )


@dataclass(frozen=True)
class Plan:
    id: str
    name: str
    price: float

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "price": self.price}

    @classmethod
    def from_dict(cls, data: dict) -> "Plan":
        return cls(id=str(data.get("id") or ""), name=data["name"], price=float(data["price"]))
