# fleetcomply/services/template_service.py
import enum
import logging
import uuid
from typing import Any, Dict, List, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from fleetcomply.models.domain import ServiceReportTemplate
from fleetcomply.schemas.template_schemas import (
    AutoRequirement, EvaluationRequest, FeeSuggestion, FieldConfig,
    Permissions, Section, SectionBlockType, TemplateBase, TemplateCreate, TemplateDraft,
    TemplateRead, TemplateUpdate,
)
from fleetcomply.services import rules_engine
from fleetcomply.utils.block_fields import GENERIC_BLOCK_FIELDS, INDUSTRY_BLOCK_FEATURES
from fleetcomply.utils.default_template_rules import (
    DEFAULT_FEE_SUGGESTIONS, DEFAULT_PERMISSIONS, PRESET_AUTO_REQUIREMENTS
)

logger = logging.getLogger(__name__)

# Keys supplied by the job itself rather than by a section field
JOB_CONTEXT_KEYS = {"template_type", "unit_type", "unit_status", "unit_id"}


# --- Builder wizard ---

class WizardStep(int, enum.Enum):
    BASICS = 1
    SECTIONS = 2
    LOGIC = 3
    PERMISSIONS = 4
    OUTPUT = 5
    REVIEW = 6


def can_advance(step: int, draft: TemplateDraft) -> bool:
    if step == WizardStep.BASICS:
        return bool(draft.name.strip()) and draft.template_type is not None
    if step == WizardStep.SECTIONS:
        return len(draft.sections) > 0
    return True


def next_step(step: int) -> int:
    return min(step + 1, WizardStep.REVIEW.value)


def previous_step(step: int) -> int:
    return max(step - 1, WizardStep.BASICS.value)


# --- Sections & fields ---

def block_features(block_type: SectionBlockType) -> List[str]:
    return list(INDUSTRY_BLOCK_FEATURES.get(block_type.value, {}).keys())


def generate_fields_for_block(block_type: SectionBlockType, features: Optional[List[str]] = None) -> List[FieldConfig]:
    """
    Generic blocks get their single placeholder field. Industry blocks get the
    fields of the chosen features, or of every feature when none are chosen.
    Unknown feature names are ignored.
    """
    key = block_type.value if isinstance(block_type, SectionBlockType) else str(block_type)

    if key in GENERIC_BLOCK_FIELDS:
        return [FieldConfig(**GENERIC_BLOCK_FIELDS[key])]

    generators = INDUSTRY_BLOCK_FEATURES.get(key)
    if not generators:
        return []

    chosen = features or list(generators.keys())
    fields = []
    for feature in chosen:
        for field_def in generators.get(feature, []):
            fields.append(FieldConfig(**field_def))
    return fields


def section_title(block_type: SectionBlockType) -> str:
    return block_type.value.replace("_", " ").title()


def new_section(block_type: SectionBlockType, features: Optional[List[str]] = None) -> Section:
    return Section(
        id=f"section-{uuid.uuid4().hex[:12]}",
        type=block_type,
        title=section_title(block_type),
        repeat_for_each=block_type == SectionBlockType.PER_UNIT_LOOP,
        fields=generate_fields_for_block(block_type, features),
    )


# --- Presets ---

def preset_auto_requirements() -> List[AutoRequirement]:
    return [
        AutoRequirement(id=f"preset_{p['preset_type']}", **p)
        for p in PRESET_AUTO_REQUIREMENTS
    ]


def default_fee_suggestions() -> List[FeeSuggestion]:
    return [FeeSuggestion(id=f["fee_id"], **f) for f in DEFAULT_FEE_SUGGESTIONS]


def default_permissions() -> Permissions:
    return Permissions(**DEFAULT_PERMISSIONS)


# --- Static checks ---

def section_field_ids(template: TemplateBase) -> List[str]:
    ids = []
    for section in template.sections:
        for f in section.fields:
            if f.id not in ids:
                ids.append(f.id)
    return ids


def find_dangling_references(template: TemplateBase) -> List[str]:
    """Field ids referenced by rules, permissions or output lists that no section defines."""
    defined = set(section_field_ids(template))
    rules = template.logic_rules
    referenced = []

    for req in rules.auto_requirements:
        referenced.extend(c.field for c in req.conditions)
        referenced.extend(req.required_fields)
    for fee in rules.fee_suggestions:
        referenced.extend(c.field for c in fee.conditions)
    for key, rule in rules.default_values.items():
        referenced.append(rule.field_id)

    perms = template.permissions
    referenced.extend(perms.tech_editable_fields)
    referenced.extend(perms.office_editable_fields)
    referenced.extend(perms.internal_only_fields)

    out = template.output_config
    referenced.extend(out.customer_pdf_fields)
    referenced.extend(out.internal_pdf_fields)

    dangling = []
    for field_id in referenced:
        if field_id == "*" or field_id in JOB_CONTEXT_KEYS or field_id in defined:
            continue
        if field_id not in dangling:
            dangling.append(field_id)
    return dangling


def template_warnings(template: TemplateBase) -> List[str]:
    return [
        f"Field '{field_id}' is referenced but not defined in any section"
        for field_id in find_dangling_references(template)
    ]


def customer_visible_fields(template: TemplateBase) -> List[str]:
    all_fields = section_field_ids(template)
    allow = template.output_config.customer_pdf_fields
    internal = set(template.permissions.internal_only_fields)

    if not allow or "*" in allow:
        candidates = all_fields
    else:
        candidates = allow
    return [f for f in candidates if f not in internal]


# --- Persistence ---

def to_read(template: ServiceReportTemplate) -> TemplateRead:
    read = TemplateRead.model_validate(template)
    read.warnings = template_warnings(read)
    return read


async def _clear_other_defaults(session: AsyncSession, template_type: str, keep_id: int):
    await session.execute(
        update(ServiceReportTemplate)
        .where(ServiceReportTemplate.template_type == template_type)
        .where(ServiceReportTemplate.id != keep_id)
        .values(is_default_for_type=False)
    )


async def list_templates(
    session: AsyncSession,
    template_type: Optional[str] = None,
    is_active: Optional[bool] = None,
) -> List[ServiceReportTemplate]:
    query = select(ServiceReportTemplate).order_by(ServiceReportTemplate.name)
    if template_type:
        query = query.where(ServiceReportTemplate.template_type == template_type)
    if is_active is not None:
        query = query.where(ServiceReportTemplate.is_active == is_active)
    result = await session.execute(query)
    return result.scalars().all()


async def get_template(session: AsyncSession, template_id: int) -> ServiceReportTemplate:
    template = await session.get(ServiceReportTemplate, template_id)
    if not template:
        raise LookupError("Template not found")
    return template


async def create_template(session: AsyncSession, payload: TemplateCreate) -> ServiceReportTemplate:
    data = payload.model_dump(mode="json")
    template = ServiceReportTemplate(**data)
    session.add(template)
    await session.flush()

    if template.is_default_for_type:
        await _clear_other_defaults(session, template.template_type, template.id)

    await session.commit()
    await session.refresh(template)
    logger.info("Created template %s (%s)", template.id, template.name)
    return template


async def update_template(session: AsyncSession, template_id: int, payload: TemplateUpdate) -> ServiceReportTemplate:
    template = await get_template(session, template_id)
    changes = payload.model_dump(mode="json", exclude_unset=True)

    if "name" in changes:
        if changes["name"] is None or not changes["name"].strip():
            raise ValueError("Template name is required")
        changes["name"] = changes["name"].strip()

    for key, value in changes.items():
        if value is None and key != "description":
            continue
        setattr(template, key, value)

    if template.is_default_for_type:
        await _clear_other_defaults(session, template.template_type, template.id)

    await session.commit()
    await session.refresh(template)
    logger.info("Updated template %s", template.id)
    return template


async def clone_template(session: AsyncSession, template_id: int) -> ServiceReportTemplate:
    source = await get_template(session, template_id)
    clone = ServiceReportTemplate(
        name=f"{source.name} (Copy)",
        description=source.description,
        template_type=source.template_type,
        version=source.version,
        is_default_for_type=False,
        sections=source.sections,
        logic_rules=source.logic_rules,
        permissions=source.permissions,
        output_config=source.output_config,
        is_active=source.is_active,
    )
    session.add(clone)
    await session.commit()
    await session.refresh(clone)
    logger.info("Cloned template %s -> %s", source.id, clone.id)
    return clone


async def delete_template(session: AsyncSession, template_id: int):
    template = await get_template(session, template_id)
    await session.delete(template)
    await session.commit()
    logger.info("Deleted template %s", template_id)


# --- Evaluation ---

def evaluate_template(template: TemplateBase, request: EvaluationRequest) -> Dict[str, Any]:
    """Run every rule table of a template against a submitted form."""
    rules = template.logic_rules
    form = dict(request.form_data)
    form.setdefault("template_type", template.template_type.value)
    units = request.units

    requirements = rules_engine.evaluate_auto_requirements(form, rules.auto_requirements)
    fees = rules_engine.evaluate_fee_suggestions(form, rules.fee_suggestions, units)
    defaults = rules_engine.evaluate_default_values(form, rules.default_values.values(), request.history)
    issues = rules_engine.validate_submit(form, rules.auto_requirements, units, rules.per_unit_loop)
    audit = rules_engine.create_automation_audit(
        form, rules.auto_requirements, rules.fee_suggestions, units, rules.per_unit_loop
    )

    return {
        "required_fields": requirements["required_fields"],
        "evidence_requirements": {
            rule_id: ev.model_dump() for rule_id, ev in requirements["evidence_requirements"].items()
        },
        "triggered_rules": [r.id for r in requirements["triggered_rules"]],
        "fee_suggestions": fees,
        "default_values": defaults,
        "issues": issues,
        "can_submit": not issues,
        "audit": audit,
    }
