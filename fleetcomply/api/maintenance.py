# fleetcomply/api/maintenance.py
from datetime import date
from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from typing import List, Optional

from fleetcomply.core.dependencies import get_db, get_current_user, require_roles
from fleetcomply.models.domain import ProductItem, User, UserRole
from fleetcomply.schemas.maintenance_schemas import (
    MaintenanceDetailsUpdate, MaintenanceItemRead, MaintenanceSessionRead, MaintenanceUpdateCreate,
    MaintenanceUpdateRead, PhotoRead, ProductItemCreate, ProductItemRead, ReturnToService, SendToMaintenance,
)
from fleetcomply.services import export_service, maintenance_service

router = APIRouter()

@router.post("/items", response_model=ProductItemRead)
async def create_item(
    payload: ProductItemCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_roles(UserRole.ADMIN, UserRole.OFFICE))
):
    try:
        return await maintenance_service.create_item(db, payload)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

@router.get("/items", response_model=List[ProductItemRead])
async def list_items(
    status: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return await maintenance_service.list_items(db, status)

@router.get("/in-maintenance", response_model=List[MaintenanceItemRead])
async def list_in_maintenance(
    search: Optional[str] = None,
    as_of: Optional[date] = None,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return await maintenance_service.list_in_maintenance(db, as_of or date.today(), search)

@router.post("/items/{item_id}/send", response_model=ProductItemRead)
async def send_to_maintenance(
    item_id: int,
    payload: SendToMaintenance,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    try:
        return await maintenance_service.send_to_maintenance(db, item_id, payload)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

@router.patch("/items/{item_id}", response_model=ProductItemRead)
async def update_maintenance_details(
    item_id: int,
    payload: MaintenanceDetailsUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    try:
        return await maintenance_service.update_maintenance_details(db, item_id, payload)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

@router.post("/return", response_model=List[ProductItemRead])
async def return_to_service(
    payload: ReturnToService,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    if not payload.item_ids:
        raise HTTPException(status_code=400, detail="Select at least one item")
    try:
        return await maintenance_service.return_to_service(db, payload.item_ids, payload.session_summary)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

# --- Updates ---

@router.post("/items/{item_id}/updates", response_model=MaintenanceUpdateRead)
async def add_update(
    item_id: int,
    payload: MaintenanceUpdateCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    try:
        return await maintenance_service.add_update(db, item_id, payload)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

@router.get("/items/{item_id}/updates", response_model=List[MaintenanceUpdateRead])
async def list_updates(
    item_id: int,
    session_id: Optional[int] = None,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return await maintenance_service.list_updates(db, item_id, session_id)

@router.delete("/updates/{update_id}")
async def delete_update(
    update_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    try:
        await maintenance_service.delete_update(db, update_id)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"status": "deleted", "id": update_id}

# --- History ---

@router.get("/history")
async def maintenance_history(
    item_id: Optional[int] = None,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    history = await maintenance_service.maintenance_history(db, item_id)
    return {
        "sessions": [MaintenanceSessionRead.model_validate(s) for s in history["sessions"]],
        "stats": history["stats"],
    }

@router.get("/history/xlsx")
async def maintenance_history_xlsx(
    item_id: Optional[int] = None,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_roles(UserRole.ADMIN, UserRole.OFFICE))
):
    history = await maintenance_service.maintenance_history(db, item_id)
    codes = {i.id: i.item_code for i in (await db.execute(select(ProductItem))).scalars().all()}
    return Response(
        content=export_service.maintenance_history_xlsx(history, codes),
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers={"Content-Disposition": f"attachment; filename=maintenance-history-{date.today()}.xlsx"}
    )

# --- Photos ---

@router.post("/items/{item_id}/photos", response_model=PhotoRead)
async def upload_photo(
    item_id: int,
    file: UploadFile = File(...),
    caption: Optional[str] = Form(None),
    photo_type: Optional[str] = Form(None),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    content = await file.read()
    if not content:
        raise HTTPException(status_code=400, detail="Empty file")
    try:
        return await maintenance_service.add_photo(db, item_id, file.filename, content, caption, photo_type)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))

@router.get("/items/{item_id}/photos", response_model=List[PhotoRead])
async def list_photos(
    item_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return await maintenance_service.list_photos(db, item_id)

@router.delete("/photos/{photo_id}")
async def delete_photo(
    photo_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    try:
        await maintenance_service.delete_photo(db, photo_id)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"status": "deleted", "id": photo_id}
