"""
utils.py
Validation, aggregates, exports, reminder messages, sample data.
"""

from __future__ import annotations

import json
from datetime import date, timedelta
from typing import Iterable
from urllib.parse import quote

import pandas as pd

from config import Settings
from models import Client, Status

CLIENT_EXPORT_COLUMNS = ["id", "name", "contact", "plan", "monthlyValue", "dueDate", "status"]


def today() -> date:
    # Local wall-clock date; due days are compared without timezone conversion
    return date.today()


# ---------- Aggregates ----------

def dashboard_stats(clients: list[Client]) -> dict:
    active = [c for c in clients if c.is_active]
    return {
        "total": len(clients),
        "active": len(active),
        "inactive": len(clients) - len(active),
        "monthly_revenue": float(sum(c.monthly_value for c in active)),
    }


def revenue_summary(clients: list[Client]) -> pd.DataFrame:
    monthly = dashboard_stats(clients)["monthly_revenue"]
    return pd.DataFrame([{"period": "Revenue", "monthly": monthly, "annual": monthly * 12}])


def status_breakdown(clients: list[Client]) -> pd.DataFrame:
    stats = dashboard_stats(clients)
    return pd.DataFrame(
        [
            {"status": Status.ACTIVE.value, "count": stats["active"]},
            {"status": Status.INACTIVE.value, "count": stats["inactive"]},
        ]
    )


def plan_popularity(clients: list[Client]) -> pd.DataFrame:
    """
    Subscribers per plan name across all clients, most popular first.
    Plans missing from the catalog (archived) are counted like any other.
    """
    if not clients:
        return pd.DataFrame(columns=["plan", "count"])
    counts = pd.Series([c.plan for c in clients]).value_counts(sort=False)
    df = counts.rename_axis("plan").reset_index(name="count")
    return df.sort_values("count", ascending=False, kind="stable").reset_index(drop=True)


def archived_plans(clients: Iterable[Client], plan_names: Iterable[str]) -> list[str]:
    catalog = set(plan_names)
    return sorted({c.plan for c in clients if c.plan not in catalog})


# ---------- Filters ----------

def filter_clients(
    clients: list[Client],
    search: str = "",
    status: Status | None = None,
    plan: str | None = None,
) -> list[Client]:
    term = search.strip().lower()
    return [
        c
        for c in clients
        if term in c.name.lower()
        and (status is None or c.status is status)
        and (plan is None or c.plan == plan)
    ]


# ---------- Exports ----------

def clients_to_frame(clients: list[Client]) -> pd.DataFrame:
    return pd.DataFrame([c.to_dict() for c in clients], columns=CLIENT_EXPORT_COLUMNS)


def clients_to_json_bytes(clients: list[Client]) -> bytes:
    return json.dumps([c.to_dict() for c in clients], ensure_ascii=False, indent=2).encode("utf-8")


def clients_to_csv_bytes(clients: list[Client]) -> bytes:
    return clients_to_frame(clients).to_csv(index=False).encode("utf-8")


# ---------- Reminders ----------

def reminder_message(settings: Settings) -> str:
    lines = [
        "🔔 IPTV Payment Reminder",
        "Hello! Your IPTV plan is about to expire.",
        "",
        "💰 Payment method: Pix",
    ]
    if settings.PIX_KEY:
        lines.append(f"📱 Pix key: {settings.PIX_KEY}")
    if settings.PIX_NAME:
        lines.append(f"👤 Name: {settings.PIX_NAME}")
    if settings.PIX_BANK:
        lines.append(f"🏦 Bank: {settings.PIX_BANK}")
    lines += ["", "After paying, send the receipt to confirm and renew your subscription. ✅"]
    return "\n".join(lines)


def whatsapp_url(contact: str, message: str) -> str | None:
    """wa.me deep link with a pre-filled message; None when there is no contact."""
    if not contact:
        return None
    return f"https://wa.me/{contact}?text={quote(message, safe='')}"


# ---------- Form validation ----------

def _parse_amount(value) -> float | None:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def validate_client_inputs(name: str, plan: str, monthly_value, due_date) -> list[str]:
    errors: list[str] = []
    if not name.strip():
        errors.append("Name is required.")
    if not plan.strip():
        errors.append("Plan is required.")
    amount = _parse_amount(monthly_value)
    if amount is None:
        errors.append("Monthly value must be numeric.")
    elif amount < 0:
        errors.append("Monthly value cannot be negative.")
    if not isinstance(due_date, int) or not 1 <= due_date <= 31:
        errors.append("Due day must be a whole number between 1 and 31.")
    return errors


def validate_plan_inputs(name: str, price) -> list[str]:
    errors: list[str] = []
    if not name.strip():
        errors.append("Plan name is required.")
    amount = _parse_amount(price)
    if amount is None:
        errors.append("Price must be a valid number.")
    elif amount < 0:
        errors.append("Price cannot be negative.")
    return errors


# ---------- Sample data ----------

def sample_clients(on: date) -> list[Client]:
    """
    Five demo clients (ids left empty for the store to assign): one due
    today, one due tomorrow, one inactive.
    """
    tomorrow = (on + timedelta(days=1)).day
    return [
        Client("", "João Silva", "5511987654321", "2 TELAS", 35.0, 10, Status.ACTIVE),
        Client("", "Maria Oliveira", "5521912345678", "1 TELA", 25.0, 15, Status.ACTIVE),
        Client("", "Pedro Souza", "", "1 TELA + YouTube_P", 45.0, 20, Status.INACTIVE),
        Client("", "Ana Costa", "5541933332222", "2 TELAS + YouTube_P", 55.0, tomorrow, Status.ACTIVE),
        Client("", "Carlos Pereira", "5585999998888", "1 TELA", 25.0, on.day, Status.ACTIVE),
    ]
