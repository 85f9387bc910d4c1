# fleetcomply/schemas/maintenance_schemas.py
from datetime import date, datetime
from decimal import Decimal
from pydantic import BaseModel, Field
from typing import List, Optional

from fleetcomply.models.domain import MaintenancePriority, UpdateType

class ProductItemCreate(BaseModel):
    item_code: str
    product_name: str
    tool_number: Optional[str] = None
    condition: Optional[str] = None

class ProductItemRead(ProductItemCreate):
    id: int
    status: str
    maintenance_start_date: Optional[date] = None
    maintenance_reason: Optional[str] = None
    expected_return_date: Optional[date] = None
    maintenance_notes: Optional[str] = None
    maintenance_priority: str

    class Config:
        from_attributes = True

class MaintenanceItemRead(ProductItemRead):
    days_in_maintenance: int = 0
    overdue: bool = False

class SendToMaintenance(BaseModel):
    maintenance_reason: str
    expected_return_date: Optional[date] = None
    maintenance_priority: MaintenancePriority = MaintenancePriority.NORMAL
    maintenance_notes: Optional[str] = None
    primary_technician: Optional[str] = None

class MaintenanceDetailsUpdate(BaseModel):
    maintenance_reason: Optional[str] = None
    maintenance_notes: Optional[str] = None
    expected_return_date: Optional[date] = None
    maintenance_priority: Optional[MaintenancePriority] = None
    condition: Optional[str] = None

class MaintenanceUpdateCreate(BaseModel):
    update_type: UpdateType = UpdateType.PROGRESS
    title: str
    description: Optional[str] = None
    labor_hours: float = Field(default=0, ge=0)
    labor_cost: Decimal = Field(default=Decimal("0"), ge=0)
    parts_cost: Decimal = Field(default=Decimal("0"), ge=0)
    parts_used: Optional[str] = None  # comma separated
    technician_name: Optional[str] = None

class MaintenanceUpdateRead(BaseModel):
    id: int
    item_id: int
    session_id: Optional[int] = None
    update_type: str
    title: str
    description: Optional[str] = None
    labor_hours: float
    cost_amount: Decimal
    parts_used: list
    technician_name: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True

class ReturnToService(BaseModel):
    item_ids: List[int]
    session_summary: Optional[str] = None

class MaintenanceSessionRead(BaseModel):
    id: int
    item_id: int
    session_number: int
    status: str
    started_at: datetime
    completed_at: Optional[datetime] = None
    total_cost: Decimal
    total_labor_hours: float
    session_summary: Optional[str] = None
    primary_technician: Optional[str] = None

    class Config:
        from_attributes = True

class PhotoRead(BaseModel):
    id: int
    item_id: int
    photo_url: str
    storage_path: str
    caption: Optional[str] = None
    photo_type: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True
