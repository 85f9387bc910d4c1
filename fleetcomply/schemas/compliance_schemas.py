# fleetcomply/schemas/compliance_schemas.py
from datetime import date, datetime
from pydantic import BaseModel
from typing import List, Optional

class DocumentTypeCreate(BaseModel):
    name: str
    description: Optional[str] = None
    default_reminder_days: int = 30

class DocumentTypeRead(DocumentTypeCreate):
    id: int
    is_active: bool

    class Config:
        from_attributes = True

class DocumentUpdate(BaseModel):
    document_type_id: Optional[int] = None
    document_number: Optional[str] = None
    expiration_date: Optional[date] = None
    notes: Optional[str] = None

class DocumentRead(BaseModel):
    id: int
    vehicle_id: int
    document_type_id: int
    document_number: Optional[str] = None
    expiration_date: Optional[date] = None
    notes: Optional[str] = None
    file_name: Optional[str] = None
    file_path: Optional[str] = None
    file_size: Optional[int] = None
    file_url: Optional[str] = None
    created_at: datetime
    # Derived
    days_until_expiry: Optional[int] = None
    status: str

class ExpirationRow(BaseModel):
    document_id: int
    vehicle_id: int
    license_plate: str
    document_type: str
    expiration_date: Optional[date] = None
    days_until_expiry: Optional[int] = None
    status: str

class VehicleExpirationCount(BaseModel):
    vehicle_id: int
    license_plate: str
    expired: int
    expiring_soon: int

class ExpirationReport(BaseModel):
    report_date: date
    window_days: int
    rows: List[ExpirationRow]
    summary: dict
    by_vehicle: List[VehicleExpirationCount]
