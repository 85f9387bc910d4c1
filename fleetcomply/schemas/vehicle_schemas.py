# fleetcomply/schemas/vehicle_schemas.py
from datetime import datetime
from pydantic import BaseModel
from typing import Optional

from fleetcomply.models.domain import VehicleStatus

class VehicleCreate(BaseModel):
    license_plate: str
    vehicle_type: Optional[str] = None
    make: Optional[str] = None
    model: Optional[str] = None
    year: Optional[int] = None
    nickname: Optional[str] = None
    status: VehicleStatus = VehicleStatus.ACTIVE

class VehicleUpdate(BaseModel):
    vehicle_type: Optional[str] = None
    make: Optional[str] = None
    model: Optional[str] = None
    year: Optional[int] = None
    nickname: Optional[str] = None
    status: Optional[VehicleStatus] = None

class VehicleRead(VehicleCreate):
    id: int
    status: str
    created_at: datetime

    class Config:
        from_attributes = True
