# fleetcomply/schemas/spill_kit_schemas.py
from datetime import date, datetime
from decimal import Decimal
from pydantic import BaseModel, Field
from typing import Dict, List, Optional

from fleetcomply.models.domain import (
    IncidentSeverity, IncidentStatus, ItemConditionStatus, PostInspectionStatus
)

# --- Inventory ---

class InventoryItemCreate(BaseModel):
    item_name: str
    item_type: Optional[str] = None
    current_stock: int = Field(default=0, ge=0)
    minimum_threshold: int = Field(default=0, ge=0)
    required_quantity: int = Field(default=1, ge=1)
    unit_cost: Optional[Decimal] = None
    expiration_date: Optional[date] = None
    is_critical: bool = False
    storage_location: Optional[str] = None
    notes: Optional[str] = None

class InventoryItemRead(InventoryItemCreate):
    id: int

    class Config:
        from_attributes = True

class StockAdjustment(BaseModel):
    delta: int
    reason: Optional[str] = None

# --- Kit checks ---

class ItemCondition(BaseModel):
    status: ItemConditionStatus
    actual_quantity: Optional[int] = None
    expiration_date: Optional[date] = None
    item_name: Optional[str] = None
    item_category: Optional[str] = None
    notes: Optional[str] = None

class SpillKitCheckCreate(BaseModel):
    vehicle_id: int
    item_conditions: Dict[str, ItemCondition]
    photos: List[str] = Field(default_factory=list)
    notes: Optional[str] = None
    weather_conditions: Optional[str] = None
    inspection_duration_minutes: Optional[int] = None

class SpillKitCheckRead(BaseModel):
    id: int
    vehicle_id: int
    has_kit: bool
    item_conditions: dict
    missing_items: list
    photos: list
    notes: Optional[str] = None
    weather_conditions: Optional[str] = None
    inspection_duration_minutes: Optional[int] = None
    completion_status: str
    next_check_due: date
    checked_at: datetime

    class Config:
        from_attributes = True

# --- Incidents ---

class IncidentCreate(BaseModel):
    vehicle_id: int
    spill_type: str
    location_description: str
    cause_description: str
    immediate_action_taken: Optional[str] = None
    severity: IncidentSeverity = IncidentSeverity.MINOR
    volume_estimate: Optional[float] = None
    volume_unit: str = "gallons"
    weather_conditions: Optional[str] = None
    cleanup_actions: List[str] = Field(default_factory=list)
    regulatory_notification_required: bool = False

class IncidentRead(BaseModel):
    id: int
    vehicle_id: int
    spill_type: str
    location_description: str
    cause_description: str
    immediate_action_taken: Optional[str] = None
    severity: str
    volume_estimate: Optional[float] = None
    volume_unit: str
    weather_conditions: Optional[str] = None
    cleanup_actions: list
    regulatory_notification_required: bool
    authorities_notified: bool
    status: str
    incident_date: datetime

    class Config:
        from_attributes = True

class IncidentStatusUpdate(BaseModel):
    status: IncidentStatus

# --- Decon ---

class DeconLogCreate(BaseModel):
    vehicle_id: int
    incident_id: Optional[int] = None
    vehicle_areas: List[str] = Field(default_factory=list)
    location_type: Optional[str] = None
    weather_conditions: Optional[str] = None
    ppe_items: List[str] = Field(default_factory=list)
    ppe_compliance_status: bool = True
    decon_methods: List[str] = Field(default_factory=list)
    post_inspection_status: PostInspectionStatus
    inspector_signature: str
    follow_up_required: bool = False
    photos: List[str] = Field(default_factory=list)
    notes: Optional[str] = None

class DeconLogRead(BaseModel):
    id: int
    vehicle_id: int
    incident_id: Optional[int] = None
    vehicle_areas: list
    location_type: Optional[str] = None
    weather_conditions: Optional[str] = None
    ppe_items: list
    ppe_compliance_status: bool
    decon_methods: list
    post_inspection_status: str
    inspector_signature: str
    inspector_role: Optional[str] = None
    follow_up_required: bool
    photos: list
    notes: Optional[str] = None
    verification_timestamp: datetime

    class Config:
        from_attributes = True
