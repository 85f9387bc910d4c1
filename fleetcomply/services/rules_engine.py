# fleetcomply/services/rules_engine.py
"""
Interpreter for the rule tables stored on a service-report template.

Rules are plain data (RuleCondition / AutoRequirement / FeeSuggestion /
DefaultValueRule). Everything here is a pure function over those models and
the submitted form payload, so the same evaluator backs the API endpoint and
the unit tests.
"""
import ast
import logging
import operator
import re
from datetime import date, datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from fleetcomply.schemas.template_schemas import (
    AutoRequirement, DefaultValueRule, FeeSuggestion, RuleCondition
)

logger = logging.getLogger(__name__)


def _is_bool(v: Any) -> bool:
    return isinstance(v, bool)


def _strict_equals(a: Any, b: Any) -> bool:
    # True == 1 in Python; a checkbox answer must not match a count
    if _is_bool(a) != _is_bool(b):
        return False
    return a == b


def _to_number(v: Any) -> Optional[float]:
    if v is None or _is_bool(v):
        return None
    if isinstance(v, (int, float)):
        return float(v)
    try:
        return float(str(v).strip())
    except ValueError:
        return None


def _as_text(v: Any) -> str:
    if v is None or v == "":
        return ""
    if isinstance(v, (list, tuple)):
        return ",".join(str(x) for x in v)
    return str(v)


def evaluate_condition(condition: RuleCondition, data: Dict[str, Any]) -> bool:
    """Evaluate one condition against a flat dict of answers."""
    field_value = data.get(condition.field)
    op = condition.operator

    if op == "equals":
        return _strict_equals(field_value, condition.value)
    if op == "not_equals":
        return not _strict_equals(field_value, condition.value)
    if op in ("greater_than", "less_than"):
        left, right = _to_number(field_value), _to_number(condition.value)
        if left is None or right is None:
            return False
        return left > right if op == "greater_than" else left < right
    if op == "contains":
        return _as_text(condition.value) in _as_text(field_value)
    if op == "in_list":
        if not isinstance(condition.value, list):
            return False
        return any(_strict_equals(field_value, v) for v in condition.value)
    return False


def evaluate_conditions(conditions: List[RuleCondition], data: Dict[str, Any]) -> bool:
    """
    Combine conditions. A rule with no conditions never fires.
    If any condition carries logic="OR" the whole list is OR-ed, otherwise AND-ed.
    """
    if not conditions:
        return False
    if any(c.logic == "OR" for c in conditions):
        return any(evaluate_condition(c, data) for c in conditions)
    return all(evaluate_condition(c, data) for c in conditions)


def evaluate_auto_requirements(
    form_data: Dict[str, Any],
    rules: Iterable[AutoRequirement],
    unit_data: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    data = unit_data if unit_data is not None else form_data
    required_fields: List[str] = []
    evidence = {}
    triggered: List[AutoRequirement] = []

    for rule in rules:
        if not rule.is_active:
            continue
        if not evaluate_conditions(rule.conditions, data):
            continue
        triggered.append(rule)
        for field_id in rule.required_fields:
            if field_id not in required_fields:
                required_fields.append(field_id)
        if rule.evidence_requirements:
            evidence[rule.id] = rule.evidence_requirements

    return {
        "required_fields": required_fields,
        "evidence_requirements": evidence,
        "triggered_rules": triggered,
    }


def _reason(conditions: List[RuleCondition], data: Dict[str, Any]) -> str:
    hit = next((c for c in conditions if evaluate_condition(c, data)), None)
    if hit is None:
        return "Condition met"
    return f"{hit.field} {hit.operator.replace('_', ' ')} {hit.value}"


def evaluate_fee_suggestions(
    form_data: Dict[str, Any],
    fee_rules: Iterable[FeeSuggestion],
    units: Optional[List[Dict[str, Any]]] = None,
) -> List[Dict[str, Any]]:
    recommendations = []
    seen = set()

    for rule in fee_rules:
        if not rule.is_active:
            continue

        if rule.scope == "per_unit" and units:
            for index, unit in enumerate(units):
                if not evaluate_conditions(rule.conditions, unit):
                    continue
                unit_id = unit.get("unit_id")
                key = rule.fee_id if rule.prevent_duplicates else f"{rule.fee_id}-{unit_id or index}"
                if key in seen:
                    continue
                label = unit_id or f"#{index + 1}"
                recommendations.append({
                    "fee_id": rule.fee_id,
                    "fee_name": rule.fee_name,
                    "fee_amount": rule.fee_amount,
                    "reason": f"From unit {label}: {_reason(rule.conditions, unit)}",
                    "unit_id": unit_id,
                    "auto_added": rule.auto_add,
                    "rule_id": rule.id,
                })
                if rule.prevent_duplicates:
                    seen.add(key)

        elif rule.scope == "per_job":
            if not evaluate_conditions(rule.conditions, form_data):
                continue
            if rule.prevent_duplicates and rule.fee_id in seen:
                continue
            recommendations.append({
                "fee_id": rule.fee_id,
                "fee_name": rule.fee_name,
                "fee_amount": rule.fee_amount,
                "reason": _reason(rule.conditions, form_data),
                "unit_id": None,
                "auto_added": rule.auto_add,
                "rule_id": rule.id,
            })
            if rule.prevent_duplicates:
                seen.add(rule.fee_id)

    return recommendations


# --- Default values ---

_BIN_OPS = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.Mod: operator.mod,
}
_UNARY_OPS = {ast.UAdd: operator.pos, ast.USub: operator.neg}
_PLACEHOLDER = re.compile(r"\{(\w+)\}")


def _eval_node(node):
    if isinstance(node, ast.Expression):
        return _eval_node(node.body)
    if isinstance(node, ast.Constant) and isinstance(node.value, (int, float)) and not _is_bool(node.value):
        return node.value
    if isinstance(node, ast.BinOp) and type(node.op) in _BIN_OPS:
        return _BIN_OPS[type(node.op)](_eval_node(node.left), _eval_node(node.right))
    if isinstance(node, ast.UnaryOp) and type(node.op) in _UNARY_OPS:
        return _UNARY_OPS[type(node.op)](_eval_node(node.operand))
    raise ValueError(f"Unsupported expression: {ast.dump(node)}")


def evaluate_formula(formula: str, data: Dict[str, Any]) -> Optional[float]:
    """
    Arithmetic over {field} placeholders, e.g. "{units_count} * 15".
    Only numbers and + - * / % are accepted. Returns None when the formula
    references a non-numeric value or cannot be parsed.
    """
    def substitute(match):
        value = _to_number(data.get(match.group(1)))
        if value is None:
            raise ValueError(f"Field '{match.group(1)}' is not numeric")
        return repr(value)

    try:
        expression = _PLACEHOLDER.sub(substitute, formula)
        result = _eval_node(ast.parse(expression, mode="eval"))
    except (ValueError, SyntaxError, ZeroDivisionError) as e:
        logger.warning("Formula '%s' could not be evaluated: %s", formula, e)
        return None

    if isinstance(result, float) and result.is_integer():
        return int(result)
    return result


def _system_value(name: str, now: datetime):
    if name == "current_date":
        return now.date().isoformat()
    if name == "current_time":
        return now.strftime("%H:%M:%S")
    if name == "current_datetime":
        return now.isoformat()
    return None


def _history_date(value) -> Optional[date]:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value:
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00")).date()
        except ValueError:
            return None
    return None


def evaluate_default_values(
    job_data: Dict[str, Any],
    rules: Iterable[DefaultValueRule],
    history: Optional[Dict[str, Any]] = None,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Prefill values for a new report. Rules whose value resolves to None are skipped."""
    now = now or datetime.now(timezone.utc)
    defaults = {}

    for rule in rules:
        if rule.conditions and not evaluate_conditions(rule.conditions, job_data):
            continue

        value = None
        if rule.source == "job_data":
            value = job_data.get(rule.source_field) if rule.source_field else None
        elif rule.source == "last_visit":
            if history and rule.source_field and rule.days_threshold:
                visited = _history_date(history.get("date"))
                if visited is not None and (now.date() - visited).days <= rule.days_threshold:
                    value = history.get(rule.source_field)
        elif rule.source == "static":
            value = rule.static_value
        elif rule.source == "system":
            value = _system_value(rule.source_field or "", now)
        elif rule.source == "formula":
            value = evaluate_formula(rule.formula or "", job_data)

        if value is not None:
            defaults[rule.field_id] = value

    return defaults


# --- Submit validation & audit ---

def _is_blank(value) -> bool:
    if isinstance(value, (list, tuple)):
        return len(value) == 0
    return not value


def _count_photos(unit: Dict[str, Any]) -> int:
    return sum(len(v) for k, v in unit.items() if "photo" in k and isinstance(v, list))


def validate_submit(
    form_data: Dict[str, Any],
    auto_requirements: List[AutoRequirement],
    units: Optional[List[Dict[str, Any]]] = None,
    per_unit_loop: bool = False,
) -> List[Dict[str, Any]]:
    """Return the blocking issues for a report. An empty list means it can be submitted."""
    issues = []

    if per_unit_loop and units:
        for index, unit in enumerate(units):
            result = evaluate_auto_requirements(form_data, auto_requirements, unit)
            unit_id = unit.get("unit_id")
            base = {"unit_id": unit_id, "unit_index": index}

            for field_id in result["required_fields"]:
                if _is_blank(unit.get(field_id)):
                    issues.append({
                        **base,
                        "field_id": field_id,
                        "field_label": field_id.replace("_", " "),
                        "issue_type": "required_field",
                        "message": "Required field missing",
                    })

            for evidence in result["evidence_requirements"].values():
                if evidence.min_photos:
                    found = _count_photos(unit)
                    if found < evidence.min_photos:
                        issues.append({
                            **base,
                            "field_id": "photos",
                            "field_label": "Photos",
                            "issue_type": "missing_evidence",
                            "message": f"Requires at least {evidence.min_photos} photo(s), found {found}",
                        })
                if evidence.gps_required and not unit.get("gps_location"):
                    issues.append({
                        **base,
                        "field_id": "gps_location",
                        "field_label": "GPS Location",
                        "issue_type": "missing_evidence",
                        "message": "GPS lock required",
                    })
                if evidence.signature_required and not unit.get("signature"):
                    issues.append({
                        **base,
                        "field_id": "signature",
                        "field_label": "Signature",
                        "issue_type": "missing_evidence",
                        "message": "Signature required",
                    })
    else:
        result = evaluate_auto_requirements(form_data, auto_requirements)
        for field_id in result["required_fields"]:
            if _is_blank(form_data.get(field_id)):
                issues.append({
                    "unit_id": None,
                    "unit_index": None,
                    "field_id": field_id,
                    "field_label": field_id.replace("_", " "),
                    "issue_type": "required_field",
                    "message": "Required field missing",
                })

    return issues


def create_automation_audit(
    form_data: Dict[str, Any],
    auto_requirements: List[AutoRequirement],
    fee_rules: List[FeeSuggestion],
    units: Optional[List[Dict[str, Any]]] = None,
    per_unit_loop: bool = False,
) -> Dict[str, Any]:
    timestamp = datetime.now(timezone.utc).isoformat()
    requirements = evaluate_auto_requirements(form_data, auto_requirements)
    triggered_ids = {r.id for r in requirements["triggered_rules"]}
    fees = evaluate_fee_suggestions(form_data, fee_rules, units)
    issues = validate_submit(form_data, auto_requirements, units, per_unit_loop)

    return {
        "rules_evaluated": [
            {"rule_id": r.id, "rule_name": r.name, "triggered": r.id in triggered_ids, "timestamp": timestamp}
            for r in auto_requirements
        ],
        "auto_requirements_triggered": [
            {"rule_id": r.id, "rule_name": r.name, "fields_required": list(r.required_fields)}
            for r in requirements["triggered_rules"]
        ],
        "fees_suggested": [
            {k: fee[k] for k in ("fee_id", "fee_name", "fee_amount", "reason", "auto_added")}
            for fee in fees
        ],
        "tasks_created": [],
        "notifications_sent": [],
        "validation_results": {"blocking_issues": issues, "warnings": []},
    }
