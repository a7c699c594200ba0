"""
importer.py
Validation of backup files before they replace the whole client list.

reconcile() splits an untrusted JSON value into accepted clients and
rejected records. Only a non-list top level is fatal; every per-record
problem is collected and returned as data so the operator can decide.
"""

from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable

from models import Client, parse_status

logger = logging.getLogger(__name__)


class ErrorKind(Enum):
    MALFORMED_INPUT = "malformed_input"
    RECORD_VALIDATION_FAILURE = "record_validation_failure"


class MalformedInputError(ValueError):
    kind = ErrorKind.MALFORMED_INPUT


@dataclass(frozen=True)
class RejectedRecord:
    index: int  # 0-based position in the input array
    identifier: str
    reasons: list[str]
    is_record: bool = True
    kind: ErrorKind = ErrorKind.RECORD_VALIDATION_FAILURE

    @property
    def line(self) -> int:
        return self.index + 1

    @property
    def message(self) -> str:
        if not self.is_record:
            return f"Entry on line {self.line} is not a valid client record."
        return f"Client #{self.line} ({self.identifier}) has errors: {', '.join(self.reasons)}."


@dataclass
class ImportResult:
    accepted: list[Client] = field(default_factory=list)
    rejected: list[RejectedRecord] = field(default_factory=list)

    @property
    def needs_confirmation(self) -> bool:
        return bool(self.rejected)

    @property
    def can_import(self) -> bool:
        return bool(self.accepted)

    def summary_lines(self, limit: int = 5) -> list[str]:
        lines = [r.message for r in self.rejected[:limit]]
        remaining = len(self.rejected) - limit
        if remaining > 0:
            lines.append(f"...and {remaining} more error(s).")
        return lines


def _is_number(value) -> bool:
    # JSON true/false must not pass as numbers; json.loads also yields NaN/Infinity
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def _display(value) -> str:
    """Render an invalid status the way it appeared in the file."""
    if isinstance(value, str):
        return value or "undefined"
    if value is None or value is False or value == 0:
        return "undefined"
    return json.dumps(value)


def _non_empty_str(value) -> bool:
    return isinstance(value, str) and value != ""


def validate_record(item: dict) -> list[str]:
    """Every rule violated by one record (empty list = valid)."""
    reasons: list[str] = []
    if not _non_empty_str(item.get("id")):
        reasons.append("missing or invalid ID")
    if not _non_empty_str(item.get("name")):
        reasons.append("missing or invalid name")
    if not _is_number(item.get("monthlyValue")):
        reasons.append("missing or invalid monthly value")
    due = item.get("dueDate")
    if not _is_number(due) or due < 1 or due > 31:
        reasons.append("due date must be a number between 1 and 31")
    # Unknown (archived) plan names are accepted on purpose
    if not _non_empty_str(item.get("plan")):
        reasons.append("invalid plan")
    if parse_status(item.get("status")) is None:
        reasons.append(f"status '{_display(item.get('status'))}' is invalid")
    return reasons


def _normalize(item: dict) -> Client:
    contact = item.get("contact")
    return Client(
        id=item["id"],
        name=item["name"],
        contact=contact if isinstance(contact, str) else "",
        plan=item["plan"],
        monthly_value=item["monthlyValue"],
        due_date=item["dueDate"],
        status=parse_status(item["status"]),
    )


def reconcile(raw: Any, known_plan_names: Iterable[str] = ()) -> ImportResult:
    """
    Partition `raw` into accepted clients and rejected records.

    `known_plan_names` is the current catalog snapshot. It is not used to
    reject anything: clients on archived plans stay importable.
    Raises MalformedInputError when `raw` is not a list.
    """
    if not isinstance(raw, list):
        raise MalformedInputError("The file does not contain a list (array) of clients.")

    catalog = frozenset(known_plan_names)
    result = ImportResult()
    for index, item in enumerate(raw):
        if not isinstance(item, dict):
            result.rejected.append(
                RejectedRecord(index=index, identifier="", reasons=["not a valid client record"], is_record=False)
            )
            continue

        reasons = validate_record(item)
        if reasons:
            name = item.get("name")
            identifier = name if _non_empty_str(name) else "unknown name"
            result.rejected.append(RejectedRecord(index=index, identifier=identifier, reasons=reasons))
        else:
            result.accepted.append(_normalize(item))

    archived = {c.plan for c in result.accepted if c.plan not in catalog}
    logger.info(
        "Import reconciled: %d accepted, %d rejected, %d archived plan name(s)",
        len(result.accepted),
        len(result.rejected),
        len(archived),
    )
    return result


def load_import_text(text: str) -> Any:
    """Parse the uploaded backup; JSON syntax errors count as malformed input."""
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise MalformedInputError(
            f"JSON syntax error in the file (line {e.lineno}, column {e.colno}). "
            "Check that the file is formatted correctly."
        ) from e
