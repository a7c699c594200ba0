"""
Backup import validation: structural failure, per-record rules, normalization.
"""

import pytest

from importer import (
    ErrorKind,
    MalformedInputError,
    load_import_text,
    reconcile,
    validate_record,
)
from models import Client, Status


# ============================================================================
# Structure
# ============================================================================

@pytest.mark.parametrize("raw", ["not an array", {"id": "1"}, None, 42])
def test_non_list_is_malformed_input(raw):
    with pytest.raises(MalformedInputError) as exc:
        reconcile(raw, set())
    assert exc.value.kind is ErrorKind.MALFORMED_INPUT


def test_empty_list_is_not_an_error():
    result = reconcile([], set())
    assert result.accepted == []
    assert result.rejected == []
    assert not result.can_import


def test_json_syntax_error_is_malformed_input():
    with pytest.raises(MalformedInputError, match="JSON syntax error"):
        load_import_text("[{'id': 1,}]")


def test_load_import_text_parses_json():
    assert load_import_text('[{"id": "1"}]') == [{"id": "1"}]


# ============================================================================
# Records
# ============================================================================

def test_valid_record_without_contact_defaults_to_empty():
    raw = [{"id": "1", "name": "A", "plan": "X", "monthlyValue": 10, "dueDate": 5, "status": "Ativo"}]
    result = reconcile(raw, set())
    assert result.rejected == []
    assert result.accepted == [Client("1", "A", "", "X", 10, 5, Status.ACTIVE)]


def test_non_string_contact_defaults_to_empty(valid_record):
    valid_record["contact"] = 5511999
    assert reconcile([valid_record]).accepted[0].contact == ""


def test_three_violations_reported_together():
    raw = [{"id": "1", "name": "", "plan": "X", "monthlyValue": 10, "dueDate": 40, "status": "Bogus"}]
    result = reconcile(raw, set())
    assert result.accepted == []
    assert len(result.rejected) == 1
    rejected = result.rejected[0]
    assert rejected.index == 0
    assert rejected.kind is ErrorKind.RECORD_VALIDATION_FAILURE
    assert rejected.reasons == [
        "missing or invalid name",
        "due date must be a number between 1 and 31",
        "status 'Bogus' is invalid",
    ]


def test_every_rule_on_empty_record():
    assert validate_record({}) == [
        "missing or invalid ID",
        "missing or invalid name",
        "missing or invalid monthly value",
        "due date must be a number between 1 and 31",
        "invalid plan",
        "status 'undefined' is invalid",
    ]


@pytest.mark.parametrize("value", [True, "10", None, [10]])
def test_monthly_value_must_be_numeric(valid_record, value):
    valid_record["monthlyValue"] = value
    assert validate_record(valid_record) == ["missing or invalid monthly value"]


@pytest.mark.parametrize("value", [0, 32, -1, "5", False])
def test_due_date_bounds(valid_record, value):
    valid_record["dueDate"] = value
    assert validate_record(valid_record) == ["due date must be a number between 1 and 31"]


@pytest.mark.parametrize("value", [1, 31, 28.0])
def test_due_date_accepted_values(valid_record, value):
    valid_record["dueDate"] = value
    assert validate_record(valid_record) == []


@pytest.mark.parametrize("value", ["ativo", "Active", "ATIVO", 1])
def test_status_must_match_literal_exactly(valid_record, value):
    valid_record["status"] = value
    assert validate_record(valid_record) == [f"status '{value}' is invalid"]


def test_inactive_status_accepted(valid_record):
    valid_record["status"] = "Inativo"
    assert reconcile([valid_record]).accepted[0].status is Status.INACTIVE


@pytest.mark.parametrize("value", [1, ""])
def test_id_must_be_non_empty_string(valid_record, value):
    valid_record["id"] = value
    assert validate_record(valid_record) == ["missing or invalid ID"]


def test_unknown_plan_name_is_accepted(valid_record):
    valid_record["plan"] = "OLD PLAN"
    result = reconcile([valid_record], {"1 TELA", "2 TELAS"})
    assert result.rejected == []
    assert result.accepted[0].plan == "OLD PLAN"


def test_non_object_entries_rejected_without_field_extraction(valid_record):
    raw = [valid_record, "text", ["id", "name"], None, 3]
    result = reconcile(raw, set())
    assert len(result.accepted) == 1
    assert [r.index for r in result.rejected] == [1, 2, 3, 4]
    for r in result.rejected:
        assert r.reasons == ["not a valid client record"]
        assert r.identifier == ""
    assert result.rejected[0].message == "Entry on line 2 is not a valid client record."


def test_mixed_input_keeps_order_of_accepted(valid_record):
    second = dict(valid_record, id="2", name="B")
    bad = dict(valid_record, id="")
    result = reconcile([valid_record, bad, second], set())
    assert [c.id for c in result.accepted] == ["1", "2"]
    assert result.rejected[0].message == "Client #2 (A) has errors: missing or invalid ID."


def test_rejected_without_name_uses_placeholder(valid_record):
    valid_record["name"] = None
    assert reconcile([valid_record]).rejected[0].identifier == "unknown name"


def test_reconcile_is_idempotent(valid_record):
    raw = [valid_record, dict(valid_record, id="2")]
    assert reconcile(raw).accepted == reconcile(raw).accepted


def test_fields_copied_without_coercion(valid_record):
    valid_record["monthlyValue"] = 19.9
    client = reconcile([valid_record]).accepted[0]
    assert client.monthly_value == 19.9
    assert client.due_date == 5
    assert client.contact == "5585999998888"


# ============================================================================
# Operator summary
# ============================================================================

def test_summary_lines_caps_at_limit(valid_record):
    raw = [dict(valid_record, id="")] * 8 + [valid_record]
    result = reconcile(raw)
    lines = result.summary_lines(limit=5)
    assert len(lines) == 6
    assert lines[-1] == "...and 3 more error(s)."
    assert result.needs_confirmation
    assert result.can_import


def test_summary_lines_without_remainder(valid_record):
    result = reconcile([dict(valid_record, name="")])
    assert result.summary_lines() == ["Client #1 (unknown name) has errors: missing or invalid name."]
    assert not result.can_import


# ============================================================================
# Non-finite numbers
# ============================================================================

@pytest.mark.parametrize("literal", ["NaN", "Infinity", "-Infinity"])
def test_non_finite_due_date_rejected(literal):
    raw = load_import_text(
        f'[{{"id":"1","name":"A","plan":"X","monthlyValue":10,"dueDate":{literal},"status":"Ativo"}}]'
    )
    result = reconcile(raw)
    assert result.accepted == []
    assert result.rejected[0].reasons == ["due date must be a number between 1 and 31"]


@pytest.mark.parametrize("literal", ["NaN", "Infinity", "-Infinity"])
def test_non_finite_monthly_value_rejected(literal):
    raw = load_import_text(
        f'[{{"id":"1","name":"A","plan":"X","monthlyValue":{literal},"dueDate":5,"status":"Ativo"}}]'
    )
    result = reconcile(raw)
    assert result.accepted == []
    assert result.rejected[0].reasons == ["missing or invalid monthly value"]


def test_nan_in_both_fields_reports_both():
    raw = load_import_text('[{"id":"1","name":"A","plan":"X","monthlyValue":NaN,"dueDate":NaN,"status":"Ativo"}]')
    assert reconcile(raw).rejected[0].reasons == [
        "missing or invalid monthly value",
        "due date must be a number between 1 and 31",
    ]


# ============================================================================
# Invalid status wording
# ============================================================================

@pytest.mark.parametrize(
    "value, shown",
    [
        (True, "true"),
        ([], "[]"),
        ({"a": 1}, '{"a": 1}'),
        (2.5, "2.5"),
        (None, "undefined"),
        ("", "undefined"),
        (0, "undefined"),
        (False, "undefined"),
    ],
)
def test_invalid_status_rendered_as_in_file(valid_record, value, shown):
    valid_record["status"] = value
    assert validate_record(valid_record) == [f"status '{shown}' is invalid"]
