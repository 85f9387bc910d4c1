# fleetcomply/schemas/template_schemas.py
"""
Configuration schema for service-report templates.

A template is pure data: sections of fields, plus rule tables (auto
requirements, fee suggestions, default values), role permissions and PDF
output preferences. Rules are interpreted by services.rules_engine.
"""
import enum
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator


class TemplateType(str, enum.Enum):
    DELIVERY = "delivery"
    SERVICE = "service"
    PICKUP = "pickup"
    REPAIR = "repair"
    INSPECTION = "inspection"
    EVENT = "event"


class SectionBlockType(str, enum.Enum):
    # Generic input blocks
    TEXT_INPUT = "text_input"
    TEXT_AREA = "text_area"
    DATE_TIME = "date_time"
    NUMBER = "number"
    DROPDOWN = "dropdown"
    MULTI_SELECT = "multi_select"
    CHECKLIST = "checklist"
    PHOTO = "photo"
    SIGNATURE = "signature"
    FILE_UPLOAD = "file_upload"
    PARTS_USED = "parts_used"
    # Industry composite blocks
    PER_UNIT_LOOP = "per_unit_loop"
    DELIVERY_SETUP = "delivery_setup"
    PICKUP_REMOVAL = "pickup_removal"
    EVENT_SERVICE = "event_service"
    REPAIR_DAMAGE = "repair_damage"
    COMPLIANCE_SAFETY = "compliance_safety"
    CUSTOMER_SIGNOFF = "customer_signoff"


class FieldType(str, enum.Enum):
    TEXT = "text"
    TEXT_AREA = "text_area"
    NUMBER = "number"
    DATE = "date"
    DATETIME = "datetime"
    TIMESTAMP = "timestamp"
    PHONE = "phone"
    DROPDOWN = "dropdown"
    MULTI_SELECT = "multi_select"
    CHECKLIST = "checklist"
    QUICK_TAP = "quick_tap"
    PHOTO_CAPTURE = "photo_capture"
    SIGNATURE = "signature"
    GPS = "gps"
    QR_SCANNER = "qr_scanner"
    FILE_UPLOAD = "file_upload"
    PARTS_SELECTOR = "parts_selector"


class FieldConfig(BaseModel):
    id: str
    type: FieldType
    label: str
    required: bool = False
    options: Optional[List[str]] = None
    placeholder: Optional[str] = None
    rows: Optional[int] = None
    auto: bool = False


class Section(BaseModel):
    id: str
    type: SectionBlockType
    title: str
    description: Optional[str] = None
    repeat_for_each: bool = False
    fields: List[FieldConfig] = Field(default_factory=list)


# --- Logic rules ---

Operator = Literal["equals", "not_equals", "greater_than", "less_than", "contains", "in_list"]


class RuleCondition(BaseModel):
    field: str
    operator: Operator
    value: Any = None
    logic: Optional[Literal["AND", "OR"]] = None


class EvidenceRequirements(BaseModel):
    min_photos: Optional[int] = None
    gps_required: bool = False
    gps_accuracy: Optional[int] = None
    signature_required: bool = False
    photo_types: List[str] = Field(default_factory=list)


class AutoActions(BaseModel):
    create_task: bool = False
    task_template: Optional[str] = None
    notify: List[str] = Field(default_factory=list)
    due_days: Optional[int] = None
    validate_reconciliation: bool = False


class AutoRequirement(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    preset_type: Optional[str] = None
    conditions: List[RuleCondition] = Field(default_factory=list)
    required_fields: List[str] = Field(default_factory=list)
    evidence_requirements: Optional[EvidenceRequirements] = None
    auto_actions: Optional[AutoActions] = None
    is_active: bool = True


class FeeSuggestion(BaseModel):
    id: str
    fee_id: str
    fee_name: str
    fee_amount: float
    conditions: List[RuleCondition] = Field(default_factory=list)
    scope: Literal["per_unit", "per_job"] = "per_unit"
    auto_add: bool = False
    prevent_duplicates: bool = False
    is_active: bool = True

    @field_validator("fee_amount")
    @classmethod
    def non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError("fee_amount cannot be negative")
        return v


class DefaultValueRule(BaseModel):
    field_id: str
    source: Literal["job_data", "last_visit", "static", "system", "formula"]
    source_field: Optional[str] = None
    static_value: Any = None
    formula: Optional[str] = None
    days_threshold: Optional[int] = None
    conditions: List[RuleCondition] = Field(default_factory=list)


class LogicRules(BaseModel):
    per_unit_loop: bool = False
    auto_requirements: List[AutoRequirement] = Field(default_factory=list)
    default_values: Dict[str, DefaultValueRule] = Field(default_factory=dict)
    fee_suggestions: List[FeeSuggestion] = Field(default_factory=list)


# --- Permissions ---

class FeeEditingPolicy(BaseModel):
    tech_can_add: bool = True
    tech_can_edit_amount: bool = False
    requires_approval_over: Optional[float] = None


class ReportLockPolicy(BaseModel):
    lock_on_submit: bool = True
    office_can_unlock: bool = True


class Permissions(BaseModel):
    tech_editable_fields: List[str] = Field(default_factory=lambda: ["*"])
    office_editable_fields: List[str] = Field(default_factory=lambda: ["*"])
    internal_only_fields: List[str] = Field(default_factory=list)
    fee_editing: FeeEditingPolicy = Field(default_factory=FeeEditingPolicy)
    report_lock: ReportLockPolicy = Field(default_factory=ReportLockPolicy)


# --- Output ---

class OutputConfig(BaseModel):
    pdf_layout: Literal["summary_first", "per_unit_first"] = "summary_first"
    customer_pdf_fields: List[str] = Field(default_factory=list)
    internal_pdf_fields: List[str] = Field(default_factory=lambda: ["*"])
    photo_grid_columns: int = Field(default=2, ge=1, le=3)
    watermark: Optional[str] = None
    show_brand_header: bool = True


# --- Template ---

class TemplateBase(BaseModel):
    name: str
    description: Optional[str] = None
    template_type: TemplateType = TemplateType.SERVICE
    version: str = "1.0"
    is_default_for_type: bool = False
    sections: List[Section] = Field(default_factory=list)
    logic_rules: LogicRules = Field(default_factory=LogicRules)
    permissions: Permissions = Field(default_factory=Permissions)
    output_config: OutputConfig = Field(default_factory=OutputConfig)
    is_active: bool = True


class TemplateCreate(TemplateBase):
    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Template name is required")
        return v.strip()


class TemplateUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    template_type: Optional[TemplateType] = None
    version: Optional[str] = None
    is_default_for_type: Optional[bool] = None
    sections: Optional[List[Section]] = None
    logic_rules: Optional[LogicRules] = None
    permissions: Optional[Permissions] = None
    output_config: Optional[OutputConfig] = None
    is_active: Optional[bool] = None


class TemplateRead(TemplateBase):
    id: int
    created_at: datetime
    updated_at: datetime
    warnings: List[str] = Field(default_factory=list)

    class Config:
        from_attributes = True


# --- Wizard / evaluation payloads ---

class TemplateDraft(BaseModel):
    """Partially filled template as held by the builder between steps."""
    name: str = ""
    template_type: Optional[TemplateType] = None
    sections: List[Section] = Field(default_factory=list)


class StepCheck(BaseModel):
    step: int
    draft: TemplateDraft


class NewSectionRequest(BaseModel):
    block_type: SectionBlockType
    features: Optional[List[str]] = None


class EvaluationRequest(BaseModel):
    form_data: Dict[str, Any] = Field(default_factory=dict)
    units: Optional[List[Dict[str, Any]]] = None
    # Previous visit for this customer/unit, e.g. {"date": "2025-05-20", "supply_quantity": 6}
    history: Optional[Dict[str, Any]] = None
