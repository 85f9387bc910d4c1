# fleetcomply/api/vehicles.py
from fastapi import APIRouter, HTTPException, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from typing import List, Optional

from fleetcomply.core.dependencies import get_db, get_current_user, require_roles
from fleetcomply.models.domain import User, UserRole, Vehicle
from fleetcomply.schemas.vehicle_schemas import VehicleCreate, VehicleRead, VehicleUpdate
from fleetcomply.utils.validators import normalize_plate

router = APIRouter()

@router.post("/", response_model=VehicleRead)
async def create_vehicle(
    payload: VehicleCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_roles(UserRole.ADMIN, UserRole.OFFICE))
):
    try:
        plate = normalize_plate(payload.license_plate)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    existing = await db.execute(select(Vehicle).where(Vehicle.license_plate == plate))
    if existing.scalars().first():
        raise HTTPException(status_code=400, detail="Vehicle with this license plate already exists")

    vehicle = Vehicle(**payload.model_dump(mode="json", exclude={"license_plate"}), license_plate=plate)
    db.add(vehicle)
    await db.commit()
    await db.refresh(vehicle)
    return vehicle

@router.get("/", response_model=List[VehicleRead])
async def list_vehicles(
    status: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    query = select(Vehicle).order_by(Vehicle.license_plate)
    if status:
        query = query.where(Vehicle.status == status)
    result = await db.execute(query)
    return result.scalars().all()

@router.get("/{vehicle_id}", response_model=VehicleRead)
async def get_vehicle(
    vehicle_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    vehicle = await db.get(Vehicle, vehicle_id)
    if not vehicle:
        raise HTTPException(status_code=404, detail="Vehicle not found")
    return vehicle

@router.patch("/{vehicle_id}", response_model=VehicleRead)
async def update_vehicle(
    vehicle_id: int,
    payload: VehicleUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_roles(UserRole.ADMIN, UserRole.OFFICE))
):
    vehicle = await db.get(Vehicle, vehicle_id)
    if not vehicle:
        raise HTTPException(status_code=404, detail="Vehicle not found")

    for key, value in payload.model_dump(mode="json", exclude_unset=True).items():
        setattr(vehicle, key, value)
    await db.commit()
    await db.refresh(vehicle)
    return vehicle
