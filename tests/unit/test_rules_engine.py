# tests/unit/test_rules_engine.py
from datetime import datetime, timezone

import pytest

from fleetcomply.schemas.template_schemas import (
    AutoRequirement, DefaultValueRule, FeeSuggestion, RuleCondition
)
from fleetcomply.services import rules_engine
from fleetcomply.services.template_service import default_fee_suggestions, preset_auto_requirements


def cond(field, operator, value, logic=None):
    return RuleCondition(field=field, operator=operator, value=value, logic=logic)


# --- Conditions ---

@pytest.mark.parametrize("data, condition, expected", [
    ({"status": "Good"}, cond("status", "equals", "Good"), True),
    ({"status": "good"}, cond("status", "equals", "Good"), False),
    ({"damaged": 1}, cond("damaged", "equals", True), False),
    ({"damaged": True}, cond("damaged", "equals", True), True),
    ({"status": "Good"}, cond("status", "not_equals", "Damaged"), True),
    ({}, cond("status", "not_equals", "Damaged"), True),
    ({"blue_used": 20}, cond("blue_used", "greater_than", 16), True),
    ({"blue_used": "20"}, cond("blue_used", "greater_than", 16), True),
    ({"blue_used": 16}, cond("blue_used", "greater_than", 16), False),
    ({"blue_used": "lots"}, cond("blue_used", "greater_than", 16), False),
    ({}, cond("blue_used", "less_than", 16), False),
    ({"hour": 5}, cond("hour", "less_than", 7), True),
    ({"notes": "door hinge broken"}, cond("notes", "contains", "hinge"), True),
    ({}, cond("notes", "contains", "hinge"), False),
    ({"unit_type": "ADA"}, cond("unit_type", "in_list", ["ADA", "VIP"]), True),
    ({"unit_type": "Standard"}, cond("unit_type", "in_list", ["ADA", "VIP"]), False),
    ({"unit_type": "ADA"}, cond("unit_type", "in_list", "ADA"), False),
])
def test_evaluate_condition(data, condition, expected):
    assert rules_engine.evaluate_condition(condition, data) is expected


def test_empty_condition_list_never_fires():
    assert rules_engine.evaluate_conditions([], {"anything": 1}) is False


def test_conditions_default_to_and():
    conditions = [cond("a", "equals", 1), cond("b", "equals", 2)]
    assert rules_engine.evaluate_conditions(conditions, {"a": 1, "b": 2}) is True
    assert rules_engine.evaluate_conditions(conditions, {"a": 1, "b": 3}) is False


def test_any_or_flag_switches_to_any_match():
    conditions = [cond("a", "equals", 1), cond("b", "equals", 2, logic="OR")]
    assert rules_engine.evaluate_conditions(conditions, {"a": 0, "b": 2}) is True
    assert rules_engine.evaluate_conditions(conditions, {"a": 0, "b": 0}) is False


# --- Auto requirements ---

def test_auto_requirements_collects_fields_and_evidence():
    rules = preset_auto_requirements()
    result = rules_engine.evaluate_auto_requirements({"unit_status": "Not Serviced"}, rules)

    assert [r.id for r in result["triggered_rules"]] == ["preset_not_serviced"]
    assert result["required_fields"] == ["not_serviced_reason", "not_serviced_photo"]
    assert result["evidence_requirements"]["preset_not_serviced"].gps_required is True


def test_auto_requirements_skip_inactive_rules():
    rule = AutoRequirement(
        id="r1", name="Inactive", conditions=[cond("x", "equals", 1)],
        required_fields=["y"], is_active=False,
    )
    result = rules_engine.evaluate_auto_requirements({"x": 1}, [rule])
    assert result["triggered_rules"] == []
    assert result["required_fields"] == []


def test_unit_data_takes_precedence_over_form():
    rules = preset_auto_requirements()
    result = rules_engine.evaluate_auto_requirements(
        {"unit_type": "Standard"}, rules, unit_data={"unit_type": "ADA"}
    )
    assert [r.id for r in result["triggered_rules"]] == ["preset_ada_units"]


# --- Fees ---

def test_per_unit_fee_recommended_for_each_matching_unit():
    units = [
        {"unit_id": "U1", "unit_status": "Not Serviced", "not_serviced_reason": "Blocked Access"},
        {"unit_id": "U2", "unit_status": "Good"},
        {"unit_status": "Not Serviced", "not_serviced_reason": "Blocked Access"},
    ]
    fees = rules_engine.evaluate_fee_suggestions({}, default_fee_suggestions(), units)
    blocked = [f for f in fees if f["fee_id"] == "fee_blocked_access"]

    assert len(blocked) == 2
    assert blocked[0]["reason"] == "From unit U1: unit_status equals Not Serviced"
    assert blocked[0]["unit_id"] == "U1"
    assert blocked[0]["auto_added"] is True
    assert blocked[1]["reason"].startswith("From unit #3:")


def test_prevent_duplicates_keeps_first_unit_only():
    rule = FeeSuggestion(
        id="f1", fee_id="fee_x", fee_name="X", fee_amount=10,
        conditions=[cond("flag", "equals", True)], scope="per_unit", prevent_duplicates=True,
    )
    units = [{"unit_id": "A", "flag": True}, {"unit_id": "B", "flag": True}]
    fees = rules_engine.evaluate_fee_suggestions({}, [rule], units)
    assert [f["unit_id"] for f in fees] == ["A"]


def test_per_unit_fee_ignored_without_units():
    fees = rules_engine.evaluate_fee_suggestions({"blue_used": 30}, default_fee_suggestions(), None)
    assert all(f["fee_id"] != "fee_extra_blue" for f in fees)


def test_per_job_after_hours_fee():
    fees = rules_engine.evaluate_fee_suggestions({"service_hour": 5}, default_fee_suggestions(), [])
    assert len(fees) == 1
    assert fees[0]["fee_id"] == "fee_after_hours"
    assert fees[0]["fee_amount"] == 40.0
    assert fees[0]["reason"] == "service_hour less than 7"

    assert rules_engine.evaluate_fee_suggestions({"service_hour": 12}, default_fee_suggestions()) == []


def test_negative_fee_amount_rejected():
    with pytest.raises(ValueError):
        FeeSuggestion(id="f", fee_id="f", fee_name="F", fee_amount=-1)


# --- Default values ---

NOW = datetime(2025, 6, 15, 14, 30, 5, tzinfo=timezone.utc)


def test_default_value_sources():
    rules = [
        DefaultValueRule(field_id="site_contact", source="job_data", source_field="contact_name"),
        DefaultValueRule(field_id="units_expected", source="static", static_value=4),
        DefaultValueRule(field_id="service_date", source="system", source_field="current_date"),
        DefaultValueRule(field_id="service_time", source="system", source_field="current_time"),
        DefaultValueRule(field_id="est_fee", source="formula", formula="{unit_count} * 15 + 5"),
        DefaultValueRule(field_id="unknown", source="system", source_field="current_user"),
    ]
    job = {"contact_name": "Dana", "unit_count": 3}
    defaults = rules_engine.evaluate_default_values(job, rules, now=NOW)

    assert defaults == {
        "site_contact": "Dana",
        "units_expected": 4,
        "service_date": "2025-06-15",
        "service_time": "14:30:05",
        "est_fee": 50,
    }


def test_last_visit_respects_days_threshold():
    rule = DefaultValueRule(field_id="gate_code", source="last_visit", source_field="gate_code", days_threshold=30)
    recent = {"date": "2025-06-01", "gate_code": "1234"}
    stale = {"date": "2025-04-01", "gate_code": "9999"}

    assert rules_engine.evaluate_default_values({}, [rule], recent, now=NOW) == {"gate_code": "1234"}
    assert rules_engine.evaluate_default_values({}, [rule], stale, now=NOW) == {}
    assert rules_engine.evaluate_default_values({}, [rule], None, now=NOW) == {}


def test_default_value_conditions_gate_the_rule():
    rule = DefaultValueRule(
        field_id="ada_note", source="static", static_value="Check ramp",
        conditions=[cond("unit_type", "equals", "ADA")],
    )
    assert rules_engine.evaluate_default_values({"unit_type": "ADA"}, [rule], now=NOW) == {"ada_note": "Check ramp"}
    assert rules_engine.evaluate_default_values({"unit_type": "VIP"}, [rule], now=NOW) == {}


@pytest.mark.parametrize("formula, data", [
    ("__import__('os').getcwd()", {}),
    ("{name} * 2", {"name": "abc"}),
    ("{missing} + 1", {}),
    ("1 / 0", {}),
    ("2 ** 8", {}),
])
def test_formula_rejects_unsafe_or_invalid_input(formula, data):
    assert rules_engine.evaluate_formula(formula, data) is None


def test_formula_keeps_fractions():
    assert rules_engine.evaluate_formula("{hours} / 2", {"hours": 3}) == 1.5


# --- Submit validation ---

def test_validate_submit_per_unit_reports_fields_and_evidence():
    units = [{"unit_id": "U1", "unit_status": "Not Serviced"}]
    issues = rules_engine.validate_submit({}, preset_auto_requirements(), units, per_unit_loop=True)

    kinds = [(i["issue_type"], i["field_id"]) for i in issues]
    assert ("required_field", "not_serviced_reason") in kinds
    assert ("required_field", "not_serviced_photo") in kinds
    assert ("missing_evidence", "photos") in kinds
    assert ("missing_evidence", "gps_location") in kinds
    assert all(i["unit_id"] == "U1" and i["unit_index"] == 0 for i in issues)

    photo_issue = next(i for i in issues if i["field_id"] == "photos")
    assert photo_issue["message"] == "Requires at least 1 photo(s), found 0"


def test_validate_submit_passes_when_evidence_present():
    units = [{
        "unit_id": "U1",
        "unit_status": "Not Serviced",
        "not_serviced_reason": "Blocked Access",
        "not_serviced_photo": ["gate.jpg"],
        "gps_location": "45.1,-93.2",
    }]
    assert rules_engine.validate_submit({}, preset_auto_requirements(), units, per_unit_loop=True) == []


def test_validate_submit_whole_form():
    rules = preset_auto_requirements()
    issues = rules_engine.validate_submit({"template_type": "pickup", "area_clean_checkbox": []}, rules)
    assert [i["field_id"] for i in issues] == ["area_clean_checkbox", "final_area_photo"]
    assert issues[0]["field_label"] == "area clean checkbox"


def test_automation_audit_shape():
    audit = rules_engine.create_automation_audit(
        {"template_type": "event", "service_hour": 20},
        preset_auto_requirements(),
        default_fee_suggestions(),
    )
    triggered = [r["rule_id"] for r in audit["rules_evaluated"] if r["triggered"]]
    assert triggered == ["preset_event_service"]
    assert audit["auto_requirements_triggered"][0]["fields_required"] == [
        "zone_selection", "bank_selection", "units_expected", "units_serviced"
    ]
    assert [f["fee_id"] for f in audit["fees_suggested"]] == ["fee_after_hours"]
    assert len(audit["validation_results"]["blocking_issues"]) == 4
    assert audit["tasks_created"] == []
