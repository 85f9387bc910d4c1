# fleetcomply/api/spill_kits.py
from datetime import date, timedelta
from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional

from fleetcomply.core.config import settings
from fleetcomply.core.dependencies import get_db, get_current_user, require_roles
from fleetcomply.models.domain import User, UserRole
from fleetcomply.schemas.spill_kit_schemas import (
    DeconLogCreate, DeconLogRead, IncidentCreate, IncidentRead, IncidentStatusUpdate,
    InventoryItemCreate, InventoryItemRead, SpillKitCheckCreate, SpillKitCheckRead, StockAdjustment,
)
from fleetcomply.services import export_service, spill_kit_service

router = APIRouter()

# --- Kit checks ---

@router.post("/checks", response_model=SpillKitCheckRead)
async def record_check(
    payload: SpillKitCheckCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    try:
        return await spill_kit_service.record_check(db, payload, checked_by=current_user.id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

@router.get("/checks", response_model=List[SpillKitCheckRead])
async def list_checks(
    vehicle_id: Optional[int] = None,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return await spill_kit_service.list_checks(db, vehicle_id)

@router.get("/checks/overdue")
async def overdue_checks(
    as_of: Optional[date] = None,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return await spill_kit_service.overdue_checks(db, as_of or date.today())

# --- Inventory ---

@router.get("/inventory", response_model=List[InventoryItemRead])
async def list_inventory(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return await spill_kit_service.list_inventory(db)

@router.post("/inventory", response_model=InventoryItemRead)
async def create_inventory_item(
    payload: InventoryItemCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_roles(UserRole.ADMIN, UserRole.OFFICE))
):
    return await spill_kit_service.create_inventory_item(db, payload)

@router.put("/inventory/{item_id}", response_model=InventoryItemRead)
async def update_inventory_item(
    item_id: int,
    payload: InventoryItemCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_roles(UserRole.ADMIN, UserRole.OFFICE))
):
    try:
        return await spill_kit_service.update_inventory_item(db, item_id, payload)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))

@router.post("/inventory/{item_id}/adjust", response_model=InventoryItemRead)
async def adjust_stock(
    item_id: int,
    payload: StockAdjustment,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    try:
        return await spill_kit_service.adjust_stock(db, item_id, payload.delta, payload.reason)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))

@router.get("/inventory/low-stock", response_model=List[InventoryItemRead])
async def low_stock(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return await spill_kit_service.low_stock_items(db)

@router.get("/inventory/expiration")
async def inventory_expiration(
    as_of: Optional[date] = None,
    window: Optional[int] = Query(None, ge=0),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return await spill_kit_service.inventory_expiration(
        db, as_of or date.today(), settings.EXPIRING_SOON_DAYS if window is None else window
    )

# --- Expiration analytics ---

async def _expiration_report(db, start, end, as_of, window):
    today = as_of or date.today()
    end = end or today
    start = start or (end - timedelta(days=180))
    if start > end:
        raise HTTPException(status_code=400, detail="start must be on or before end")
    return await spill_kit_service.spill_kit_expiration_report(
        db, start, end, today, settings.EXPIRING_SOON_DAYS if window is None else window
    )

@router.get("/reports/expiration")
async def spill_kit_expiration_report(
    start: Optional[date] = None,
    end: Optional[date] = None,
    as_of: Optional[date] = None,
    window: Optional[int] = Query(None, ge=0),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return await _expiration_report(db, start, end, as_of, window)

@router.get("/reports/expiration/csv")
async def spill_kit_expiration_report_csv(
    start: Optional[date] = None,
    end: Optional[date] = None,
    as_of: Optional[date] = None,
    window: Optional[int] = Query(None, ge=0),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    report = await _expiration_report(db, start, end, as_of, window)
    return Response(
        content=export_service.spill_kit_report_csv(report),
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename=spill-kit-expiration-{date.today()}.csv"}
    )

# --- Incidents ---

@router.post("/incidents", response_model=IncidentRead)
async def create_incident(
    payload: IncidentCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    try:
        return await spill_kit_service.create_incident(db, payload, reported_by=current_user.id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

@router.get("/incidents", response_model=List[IncidentRead])
async def list_incidents(
    vehicle_id: Optional[int] = None,
    status: Optional[str] = None,
    severity: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return await spill_kit_service.list_incidents(db, vehicle_id, status, severity)

@router.patch("/incidents/{incident_id}/status", response_model=IncidentRead)
async def update_incident_status(
    incident_id: int,
    payload: IncidentStatusUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    try:
        return await spill_kit_service.update_incident_status(db, incident_id, payload.status)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

# --- Decontamination ---

@router.post("/decon", response_model=DeconLogRead)
async def create_decon_log(
    payload: DeconLogCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    try:
        return await spill_kit_service.create_decon_log(
            db, payload, performed_by=current_user.id, inspector_role=current_user.role
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

@router.get("/decon", response_model=List[DeconLogRead])
async def list_decon_logs(
    vehicle_id: Optional[int] = None,
    incident_id: Optional[int] = None,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return await spill_kit_service.list_decon_logs(db, vehicle_id, incident_id)
