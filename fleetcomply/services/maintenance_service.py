# fleetcomply/services/maintenance_service.py
import logging
import time
import uuid
from datetime import date
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from fleetcomply.models.domain import (
    ItemStatus, MaintenanceSession, MaintenanceUpdate, ProductItem, ProductItemPhoto, SessionStatus, utcnow,
)
from fleetcomply.schemas.maintenance_schemas import (
    MaintenanceDetailsUpdate, MaintenanceUpdateCreate, ProductItemCreate, SendToMaintenance
)
from fleetcomply.services import storage_service
from fleetcomply.utils.dates import days_between
from fleetcomply.utils.validators import parse_parts_list, require_text

logger = logging.getLogger(__name__)


async def create_item(session: AsyncSession, payload: ProductItemCreate) -> ProductItem:
    existing = await session.execute(select(ProductItem).where(ProductItem.item_code == payload.item_code))
    if existing.scalars().first():
        raise ValueError("Item code already exists")
    item = ProductItem(**payload.model_dump())
    session.add(item)
    await session.commit()
    await session.refresh(item)
    return item


async def get_item(session: AsyncSession, item_id: int) -> ProductItem:
    item = await session.get(ProductItem, item_id)
    if not item:
        raise LookupError("Item not found")
    return item


async def list_items(session: AsyncSession, status: Optional[str] = None):
    query = select(ProductItem).order_by(ProductItem.item_code)
    if status:
        query = query.where(ProductItem.status == status)
    result = await session.execute(query)
    return result.scalars().all()


async def active_session(session: AsyncSession, item_id: int) -> Optional[MaintenanceSession]:
    result = await session.execute(
        select(MaintenanceSession)
        .where(MaintenanceSession.item_id == item_id)
        .where(MaintenanceSession.status == SessionStatus.ACTIVE.value)
        .order_by(MaintenanceSession.session_number.desc())
    )
    return result.scalars().first()


async def send_to_maintenance(
    session: AsyncSession, item_id: int, payload: SendToMaintenance, today: Optional[date] = None
) -> ProductItem:
    item = await get_item(session, item_id)
    if item.status != ItemStatus.AVAILABLE.value:
        logger.warning("Item %s cannot enter maintenance from status %s", item.item_code, item.status)
        raise ValueError(f"Only available items can be sent to maintenance (current status: {item.status})")

    reason = require_text(payload.maintenance_reason, "Maintenance reason")

    last_number = (await session.execute(
        select(func.max(MaintenanceSession.session_number)).where(MaintenanceSession.item_id == item.id)
    )).scalar()

    item.status = ItemStatus.MAINTENANCE.value
    item.maintenance_start_date = today or date.today()
    item.maintenance_reason = reason
    item.expected_return_date = payload.expected_return_date
    item.maintenance_notes = payload.maintenance_notes
    item.maintenance_priority = payload.maintenance_priority.value

    session.add(MaintenanceSession(
        item_id=item.id,
        session_number=(last_number or 0) + 1,
        status=SessionStatus.ACTIVE.value,
        primary_technician=payload.primary_technician,
    ))
    await session.commit()
    await session.refresh(item)
    logger.info("Item %s sent to maintenance (session %d)", item.item_code, (last_number or 0) + 1)
    return item


async def update_maintenance_details(session: AsyncSession, item_id: int, payload: MaintenanceDetailsUpdate) -> ProductItem:
    item = await get_item(session, item_id)
    if item.status != ItemStatus.MAINTENANCE.value:
        raise ValueError("Item is not in maintenance")

    changes = payload.model_dump(exclude_unset=True)
    if "condition" in changes and changes["condition"] != item.condition:
        raise ValueError("Condition cannot be changed while the item is in maintenance")
    changes.pop("condition", None)
    if "maintenance_reason" in changes:
        changes["maintenance_reason"] = require_text(changes["maintenance_reason"], "Maintenance reason")
    if changes.get("maintenance_priority") is not None:
        changes["maintenance_priority"] = changes["maintenance_priority"].value

    for key, value in changes.items():
        setattr(item, key, value)
    await session.commit()
    await session.refresh(item)
    return item


async def add_update(session: AsyncSession, item_id: int, payload: MaintenanceUpdateCreate) -> MaintenanceUpdate:
    item = await get_item(session, item_id)
    if item.status != ItemStatus.MAINTENANCE.value:
        raise ValueError("Updates can only be logged for items in maintenance")

    current = await active_session(session, item.id)
    update = MaintenanceUpdate(
        item_id=item.id,
        session_id=current.id if current else None,
        update_type=payload.update_type.value,
        title=require_text(payload.title, "Title"),
        description=payload.description,
        labor_hours=payload.labor_hours,
        cost_amount=payload.labor_cost + payload.parts_cost,
        parts_used=parse_parts_list(payload.parts_used),
        technician_name=payload.technician_name,
    )
    session.add(update)
    await session.commit()
    await session.refresh(update)
    return update


async def list_updates(session: AsyncSession, item_id: int, session_id: Optional[int] = None):
    query = select(MaintenanceUpdate).where(MaintenanceUpdate.item_id == item_id)
    if session_id:
        query = query.where(MaintenanceUpdate.session_id == session_id)
    result = await session.execute(query.order_by(MaintenanceUpdate.created_at.desc(), MaintenanceUpdate.id.desc()))
    return result.scalars().all()


async def delete_update(session: AsyncSession, update_id: int):
    update = await session.get(MaintenanceUpdate, update_id)
    if not update:
        raise LookupError("Update not found")
    await session.delete(update)
    await session.commit()


async def return_to_service(session: AsyncSession, item_ids: List[int], summary: Optional[str] = None) -> List[ProductItem]:
    """
    Close out maintenance for every item. All items are checked before any is
    changed, so one bad id leaves the batch untouched.
    """
    items = [await get_item(session, item_id) for item_id in item_ids]
    for item in items:
        if item.status != ItemStatus.MAINTENANCE.value:
            raise ValueError(f"Item {item.item_code} is not in maintenance")

    for item in items:
        current = await active_session(session, item.id)
        if current is not None:
            totals = (await session.execute(
                select(
                    func.coalesce(func.sum(MaintenanceUpdate.cost_amount), 0),
                    func.coalesce(func.sum(MaintenanceUpdate.labor_hours), 0),
                ).where(MaintenanceUpdate.session_id == current.id)
            )).one()
            current.status = SessionStatus.COMPLETED.value
            current.completed_at = utcnow()
            current.total_cost = Decimal(str(totals[0]))
            current.total_labor_hours = float(totals[1])
            current.session_summary = summary

        item.status = ItemStatus.AVAILABLE.value
        item.maintenance_start_date = None
        item.maintenance_reason = None
        item.expected_return_date = None
        item.maintenance_notes = None
        logger.info("Item %s returned to service", item.item_code)

    await session.commit()
    for item in items:
        await session.refresh(item)
    return items


def maintenance_view(item: ProductItem, today: date) -> dict:
    started = item.maintenance_start_date
    return {
        "id": item.id,
        "item_code": item.item_code,
        "product_name": item.product_name,
        "tool_number": item.tool_number,
        "condition": item.condition,
        "status": item.status,
        "maintenance_start_date": started,
        "maintenance_reason": item.maintenance_reason,
        "expected_return_date": item.expected_return_date,
        "maintenance_notes": item.maintenance_notes,
        "maintenance_priority": item.maintenance_priority,
        "days_in_maintenance": days_between(started, today) if started else 0,
        "overdue": bool(item.expected_return_date and item.expected_return_date < today),
    }


async def list_in_maintenance(session: AsyncSession, today: date, search: Optional[str] = None) -> List[dict]:
    query = select(ProductItem).where(ProductItem.status == ItemStatus.MAINTENANCE.value)
    if search:
        term = f"%{search.lower()}%"
        query = query.where(or_(
            func.lower(ProductItem.item_code).like(term),
            func.lower(func.coalesce(ProductItem.tool_number, "")).like(term),
            func.lower(func.coalesce(ProductItem.maintenance_notes, "")).like(term),
            func.lower(func.coalesce(ProductItem.maintenance_reason, "")).like(term),
        ))
    result = await session.execute(query.order_by(ProductItem.maintenance_start_date))
    return [maintenance_view(i, today) for i in result.scalars().all()]


async def maintenance_history(session: AsyncSession, item_id: Optional[int] = None) -> dict:
    query = select(MaintenanceSession).where(MaintenanceSession.status == SessionStatus.COMPLETED.value)
    if item_id:
        query = query.where(MaintenanceSession.item_id == item_id)
    result = await session.execute(query.order_by(MaintenanceSession.completed_at.desc()))
    sessions = result.scalars().all()

    durations = [(s.completed_at - s.started_at).total_seconds() / 86400 for s in sessions if s.completed_at]
    total_cost = sum((Decimal(str(s.total_cost or 0)) for s in sessions), Decimal("0"))

    return {
        "sessions": sessions,
        "stats": {
            "total_sessions": len(sessions),
            "total_cost": total_cost,
            "total_labor_hours": sum(s.total_labor_hours or 0 for s in sessions),
            "average_duration_days": round(sum(durations) / len(durations), 1) if durations else 0,
        },
    }


# --- Photos ---

async def add_photo(
    session: AsyncSession,
    item_id: int,
    filename: str,
    content: bytes,
    caption: Optional[str] = None,
    photo_type: Optional[str] = None,
) -> ProductItemPhoto:
    item = await get_item(session, item_id)
    ext = storage_service.file_extension(filename, default="jpg")
    path = f"{item.id}/{int(time.time() * 1000)}-{uuid.uuid4().hex[:6]}.{ext}"
    storage_service.upload(storage_service.UNIT_PHOTOS, path, content)

    photo = ProductItemPhoto(
        item_id=item.id,
        storage_path=path,
        photo_url=storage_service.public_url(storage_service.UNIT_PHOTOS, path),
        caption=caption,
        photo_type=photo_type,
    )
    session.add(photo)
    await session.commit()
    await session.refresh(photo)
    return photo


async def list_photos(session: AsyncSession, item_id: int):
    result = await session.execute(
        select(ProductItemPhoto).where(ProductItemPhoto.item_id == item_id).order_by(ProductItemPhoto.created_at.desc())
    )
    return result.scalars().all()


async def delete_photo(session: AsyncSession, photo_id: int):
    photo = await session.get(ProductItemPhoto, photo_id)
    if not photo:
        raise LookupError("Photo not found")
    storage_service.remove(storage_service.UNIT_PHOTOS, photo.storage_path)
    await session.delete(photo)
    await session.commit()
