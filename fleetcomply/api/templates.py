# fleetcomply/api/templates.py
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional

from fleetcomply.core.dependencies import get_db, get_current_user, require_roles
from fleetcomply.models.domain import User, UserRole
from fleetcomply.schemas.template_schemas import (
    AutoRequirement, EvaluationRequest, FeeSuggestion, FieldConfig, NewSectionRequest, Permissions,
    Section, SectionBlockType, StepCheck, TemplateCreate, TemplateRead, TemplateType, TemplateUpdate,
)
from fleetcomply.services import template_service

router = APIRouter()

editors = require_roles(UserRole.ADMIN, UserRole.OFFICE)

# --- Builder helpers (no persistence) ---

@router.post("/wizard/check")
async def check_wizard_step(payload: StepCheck, current_user: User = Depends(get_current_user)):
    if payload.step < 1 or payload.step > 6:
        raise HTTPException(status_code=400, detail="Step must be between 1 and 6")
    ok = template_service.can_advance(payload.step, payload.draft)
    return {
        "step": payload.step,
        "step_name": template_service.WizardStep(payload.step).name.title(),
        "can_advance": ok,
        "next_step": template_service.next_step(payload.step) if ok else payload.step,
        "previous_step": template_service.previous_step(payload.step),
    }

@router.get("/blocks/{block_type}/features", response_model=List[str])
async def block_features(block_type: SectionBlockType, current_user: User = Depends(get_current_user)):
    return template_service.block_features(block_type)

@router.get("/blocks/{block_type}/fields", response_model=List[FieldConfig])
async def block_fields(
    block_type: SectionBlockType,
    features: Optional[str] = None,
    current_user: User = Depends(get_current_user)
):
    selected = [f.strip() for f in features.split(",") if f.strip()] if features else None
    return template_service.generate_fields_for_block(block_type, selected)

@router.post("/sections", response_model=Section)
async def new_section(payload: NewSectionRequest, current_user: User = Depends(get_current_user)):
    return template_service.new_section(payload.block_type, payload.features)

@router.get("/presets/auto-requirements", response_model=List[AutoRequirement])
async def preset_auto_requirements(current_user: User = Depends(get_current_user)):
    return template_service.preset_auto_requirements()

@router.get("/presets/fee-suggestions", response_model=List[FeeSuggestion])
async def preset_fee_suggestions(current_user: User = Depends(get_current_user)):
    return template_service.default_fee_suggestions()

@router.get("/presets/permissions", response_model=Permissions)
async def preset_permissions(current_user: User = Depends(get_current_user)):
    return template_service.default_permissions()

@router.post("/validate")
async def validate_template(payload: TemplateCreate, current_user: User = Depends(get_current_user)):
    return {
        "warnings": template_service.template_warnings(payload),
        "customer_visible_fields": template_service.customer_visible_fields(payload),
    }

# --- CRUD ---

@router.post("/", response_model=TemplateRead)
async def create_template(
    payload: TemplateCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(editors)
):
    template = await template_service.create_template(db, payload)
    return template_service.to_read(template)

@router.get("/", response_model=List[TemplateRead])
async def list_templates(
    template_type: Optional[TemplateType] = None,
    is_active: Optional[bool] = None,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    templates = await template_service.list_templates(
        db, template_type.value if template_type else None, is_active
    )
    return [template_service.to_read(t) for t in templates]

@router.get("/{template_id}", response_model=TemplateRead)
async def get_template(
    template_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    try:
        return template_service.to_read(await template_service.get_template(db, template_id))
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))

@router.patch("/{template_id}", response_model=TemplateRead)
async def update_template(
    template_id: int,
    payload: TemplateUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(editors)
):
    try:
        template = await template_service.update_template(db, template_id, payload)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return template_service.to_read(template)

@router.post("/{template_id}/clone", response_model=TemplateRead)
async def clone_template(
    template_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(editors)
):
    try:
        return template_service.to_read(await template_service.clone_template(db, template_id))
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))

@router.delete("/{template_id}")
async def delete_template(
    template_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(editors)
):
    try:
        await template_service.delete_template(db, template_id)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"status": "deleted", "id": template_id}

@router.get("/{template_id}/customer-fields", response_model=List[str])
async def customer_fields(
    template_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    try:
        template = template_service.to_read(await template_service.get_template(db, template_id))
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return template_service.customer_visible_fields(template)

@router.post("/{template_id}/evaluate")
async def evaluate_template(
    template_id: int,
    payload: EvaluationRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    try:
        template = template_service.to_read(await template_service.get_template(db, template_id))
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return template_service.evaluate_template(template, payload)
