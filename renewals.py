"""
renewals.py
Days-until-due arithmetic for monthly due days, plus the alert and
upcoming-renewal views built on it.
"""

from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date
from typing import Iterable

from models import Client


@dataclass(frozen=True)
class Renewal:
    client: Client
    days_until_due: int


@dataclass(frozen=True)
class DueAlert:
    id: str
    client_id: str
    message: str


def days_in_month(today: date) -> int:
    return calendar.monthrange(today.year, today.month)[1]


def days_until_due(due_day: int, today: date) -> int:
    """
    Days from `today` to the next occurrence of `due_day`.

    A due day already past this month wraps using the length of the
    *current* month. Due days beyond the month length are not clamped
    (day 30 on Feb 28 gives 2).
    """
    diff = due_day - today.day
    if diff < 0:
        diff += days_in_month(today)
    return diff


def renewals_within(clients: Iterable[Client], today: date, window: int) -> list[Renewal]:
    """Active clients due within `window` days, soonest first."""
    result = []
    for c in clients:
        if not c.is_active:
            continue
        days = days_until_due(c.due_date, today)
        if days <= window:
            result.append(Renewal(client=c, days_until_due=days))
    return sorted(result, key=lambda r: r.days_until_due)


def upcoming_renewals(clients: Iterable[Client], today: date, window: int = 7) -> list[Renewal]:
    return renewals_within(clients, today, window)


def due_alerts(clients: Iterable[Client], today: date, window: int = 1) -> list[DueAlert]:
    alerts = []
    for r in renewals_within(clients, today, window):
        if r.days_until_due == 0:
            message = f"{r.client.name}'s payment is due TODAY."
        elif r.days_until_due == 1:
            message = f"{r.client.name}'s payment is due TOMORROW."
        else:
            message = f"{r.client.name}'s payment is due in {r.days_until_due} days."
        alerts.append(DueAlert(id=f"{r.client.id}-notification", client_id=r.client.id, message=message))
    return alerts


def renewal_label(days: int) -> str:
    if days == 0:
        return "Due today"
    if days == 1:
        return "Due tomorrow"
    return f"Due in {days} days"
