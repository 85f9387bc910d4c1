# fleetcomply/services/spill_kit_service.py
import logging
from datetime import date, datetime, timedelta
from typing import Dict, List, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from fleetcomply.core.config import settings
from fleetcomply.models.domain import (
    DeconLog, DocumentStatus, IncidentStatus, ItemConditionStatus, KitStatus, PostInspectionStatus,
    SpillIncident, SpillKitInventory, Vehicle, VehicleSpillKitCheck, VehicleStatus, utcnow,
)
from fleetcomply.schemas.spill_kit_schemas import (
    DeconLogCreate, IncidentCreate, InventoryItemCreate, SpillKitCheckCreate
)
from fleetcomply.utils.dates import classify_expiration, days_between, month_label
from fleetcomply.utils.validators import require_text

logger = logging.getLogger(__name__)

# Allowed incident status moves; closed is terminal
INCIDENT_TRANSITIONS = {
    IncidentStatus.OPEN.value: {IncidentStatus.INVESTIGATING.value, IncidentStatus.CLOSED.value},
    IncidentStatus.INVESTIGATING.value: {IncidentStatus.CLOSED.value},
    IncidentStatus.CLOSED.value: set(),
}

FOLLOW_UP_STATUSES = {PostInspectionStatus.FAIL.value, PostInspectionStatus.CONDITIONAL.value}


def _status_of(condition) -> str:
    value = condition.get("status") if isinstance(condition, dict) else condition.status
    return value.value if isinstance(value, ItemConditionStatus) else value


def kit_status(catalogue: Dict[str, SpillKitInventory], conditions: Dict[str, dict]) -> KitStatus:
    """
    Overall result of a kit inspection.
    A missing critical item fails the kit; anything else missing or expired is
    partial; low stock is a warning.
    """
    statuses = {}
    for item_id, condition in conditions.items():
        statuses[item_id] = _status_of(condition)

    for item_id, status in statuses.items():
        item = catalogue.get(str(item_id))
        if status == ItemConditionStatus.MISSING.value and item is not None and item.is_critical:
            return KitStatus.FAILED

    values = set(statuses.values())
    if ItemConditionStatus.MISSING.value in values or ItemConditionStatus.EXPIRED.value in values:
        return KitStatus.PARTIAL
    if ItemConditionStatus.LOW.value in values:
        return KitStatus.WARNING
    return KitStatus.COMPLIANT


async def _catalogue(session: AsyncSession) -> Dict[str, SpillKitInventory]:
    result = await session.execute(select(SpillKitInventory))
    return {str(item.id): item for item in result.scalars().all()}


async def record_check(
    session: AsyncSession,
    payload: SpillKitCheckCreate,
    checked_by: Optional[int] = None,
    checked_at: Optional[datetime] = None,
) -> VehicleSpillKitCheck:
    if not await session.get(Vehicle, payload.vehicle_id):
        raise ValueError("Vehicle not found")

    catalogue = await _catalogue(session)
    checked_at = checked_at or utcnow()

    conditions = {}
    missing = []
    for item_id, condition in payload.item_conditions.items():
        entry = condition.model_dump(mode="json")
        item = catalogue.get(str(item_id))
        if item is not None:
            entry["item_name"] = entry.get("item_name") or item.item_name
            entry["item_category"] = entry.get("item_category") or item.item_type
        conditions[str(item_id)] = entry

        if condition.status == ItemConditionStatus.MISSING:
            missing.append({
                "item_id": str(item_id),
                "name": entry.get("item_name") or str(item_id),
                "quantity": item.required_quantity if item is not None else 1,
            })

    status = kit_status(catalogue, conditions)

    check = VehicleSpillKitCheck(
        vehicle_id=payload.vehicle_id,
        has_kit=status != KitStatus.FAILED,
        item_conditions=conditions,
        missing_items=missing,
        photos=payload.photos,
        notes=payload.notes,
        weather_conditions=payload.weather_conditions,
        inspection_duration_minutes=payload.inspection_duration_minutes,
        completion_status=status.value,
        next_check_due=checked_at.date() + timedelta(days=settings.SPILL_KIT_CHECK_INTERVAL_DAYS),
        checked_at=checked_at,
        checked_by=checked_by,
    )
    session.add(check)
    await session.commit()
    await session.refresh(check)

    if status == KitStatus.FAILED:
        logger.warning("Spill kit check %s failed for vehicle %s", check.id, payload.vehicle_id)
    else:
        logger.info("Spill kit check %s recorded for vehicle %s: %s", check.id, payload.vehicle_id, status.value)
    return check


async def list_checks(session: AsyncSession, vehicle_id: Optional[int] = None):
    query = select(VehicleSpillKitCheck).order_by(VehicleSpillKitCheck.checked_at.desc())
    if vehicle_id:
        query = query.where(VehicleSpillKitCheck.vehicle_id == vehicle_id)
    result = await session.execute(query)
    return result.scalars().all()


async def latest_checks(session: AsyncSession) -> Dict[int, VehicleSpillKitCheck]:
    latest = (
        select(VehicleSpillKitCheck.vehicle_id, func.max(VehicleSpillKitCheck.id).label("last_id"))
        .group_by(VehicleSpillKitCheck.vehicle_id)
        .subquery()
    )
    result = await session.execute(
        select(VehicleSpillKitCheck).join(latest, VehicleSpillKitCheck.id == latest.c.last_id)
    )
    return {c.vehicle_id: c for c in result.scalars().all()}


async def overdue_checks(session: AsyncSession, today: date) -> List[dict]:
    vehicles = (await session.execute(
        select(Vehicle).where(Vehicle.status == VehicleStatus.ACTIVE.value).order_by(Vehicle.license_plate)
    )).scalars().all()
    latest = await latest_checks(session)

    overdue = []
    for v in vehicles:
        check = latest.get(v.id)
        if check is None:
            overdue.append({
                "vehicle_id": v.id,
                "license_plate": v.license_plate,
                "last_checked": None,
                "next_check_due": None,
                "days_overdue": None,
            })
        elif check.next_check_due < today:
            overdue.append({
                "vehicle_id": v.id,
                "license_plate": v.license_plate,
                "last_checked": check.checked_at,
                "next_check_due": check.next_check_due,
                "days_overdue": days_between(check.next_check_due, today),
            })
    return overdue


# --- Inventory ---

async def list_inventory(session: AsyncSession):
    result = await session.execute(select(SpillKitInventory).order_by(SpillKitInventory.item_name))
    return result.scalars().all()


async def get_inventory_item(session: AsyncSession, item_id: int) -> SpillKitInventory:
    item = await session.get(SpillKitInventory, item_id)
    if not item:
        raise LookupError("Inventory item not found")
    return item


async def create_inventory_item(session: AsyncSession, payload: InventoryItemCreate) -> SpillKitInventory:
    item = SpillKitInventory(**payload.model_dump())
    session.add(item)
    await session.commit()
    await session.refresh(item)
    return item


async def update_inventory_item(session: AsyncSession, item_id: int, payload: InventoryItemCreate) -> SpillKitInventory:
    item = await get_inventory_item(session, item_id)
    for key, value in payload.model_dump().items():
        setattr(item, key, value)
    await session.commit()
    await session.refresh(item)
    return item


async def adjust_stock(session: AsyncSession, item_id: int, delta: int, reason: Optional[str] = None) -> SpillKitInventory:
    item = await get_inventory_item(session, item_id)
    new_stock = item.current_stock + delta
    if new_stock < 0:
        logger.warning("Stock adjustment for %s clamped at 0 (requested %d)", item.item_name, delta)
        new_stock = 0
    item.current_stock = new_stock
    await session.commit()
    await session.refresh(item)
    logger.info("Adjusted stock of %s by %d (%s)", item.item_name, delta, reason or "no reason")
    return item


async def low_stock_items(session: AsyncSession) -> List[SpillKitInventory]:
    result = await session.execute(
        select(SpillKitInventory)
        .where(SpillKitInventory.current_stock <= SpillKitInventory.minimum_threshold)
        .order_by(SpillKitInventory.item_name)
    )
    return result.scalars().all()


async def inventory_expiration(session: AsyncSession, today: date, window: int) -> dict:
    buckets = {DocumentStatus.EXPIRED.value: [], DocumentStatus.EXPIRING_SOON.value: [], DocumentStatus.VALID.value: []}
    for item in await list_inventory(session):
        if item.expiration_date is None:
            continue
        status = classify_expiration(item.expiration_date, today, window)
        buckets[status.value].append({
            "id": item.id,
            "item_name": item.item_name,
            "expiration_date": item.expiration_date,
            "current_stock": item.current_stock,
        })
    return buckets


# --- Expiration analytics over inspections ---

def _parse_date(value) -> Optional[date]:
    if not value:
        return None
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        return None


def summarize_check_expirations(checks: List[VehicleSpillKitCheck], today: date, window: int) -> dict:
    """Monthly trend, category breakdown and top replacements over a set of inspections."""
    monthly = {}
    categories = {}
    replacements = {}
    totals = {"expired": 0, "expiring_soon": 0, "ok": 0, "inspections": len(checks)}

    for check in sorted(checks, key=lambda c: c.checked_at):
        stats = monthly.setdefault(
            month_label(check.checked_at),
            {"inspections": 0, "expired": 0, "expiring_soon": 0, "ok": 0},
        )
        stats["inspections"] += 1

        for item_id, condition in (check.item_conditions or {}).items():
            expiry = _parse_date(condition.get("expiration_date"))
            if expiry is None:
                continue

            category = condition.get("item_category") or "Uncategorized"
            categories[category] = categories.get(category, 0) + 1

            status = classify_expiration(expiry, today, window)
            if status == DocumentStatus.EXPIRED:
                stats["expired"] += 1
                totals["expired"] += 1
                name = condition.get("item_name") or item_id
                replacements[name] = replacements.get(name, 0) + 1
            elif status == DocumentStatus.EXPIRING_SOON:
                stats["expiring_soon"] += 1
                totals["expiring_soon"] += 1
            else:
                stats["ok"] += 1
                totals["ok"] += 1

    top = sorted(replacements.items(), key=lambda kv: kv[1], reverse=True)[:10]
    return {
        "trend": [{"month": month, **stats} for month, stats in monthly.items()],
        "categories": [{"name": name, "value": value} for name, value in categories.items()],
        "replacements": [{"name": name, "count": count} for name, count in top],
        "summary": totals,
    }


async def spill_kit_expiration_report(
    session: AsyncSession, start: date, end: date, today: date, window: int
) -> dict:
    result = await session.execute(
        select(VehicleSpillKitCheck)
        .where(VehicleSpillKitCheck.has_kit == True)  # noqa: E712
        .where(VehicleSpillKitCheck.checked_at >= datetime.combine(start, datetime.min.time()))
        .where(VehicleSpillKitCheck.checked_at <= datetime.combine(end, datetime.max.time()))
        .order_by(VehicleSpillKitCheck.checked_at)
    )
    report = summarize_check_expirations(result.scalars().all(), today, window)
    report["period"] = {"start": start, "end": end}
    return report


# --- Incidents ---

async def create_incident(session: AsyncSession, payload: IncidentCreate, reported_by: Optional[int] = None) -> SpillIncident:
    spill_type = require_text(payload.spill_type, "Spill type")
    location = require_text(payload.location_description, "Location")
    cause = require_text(payload.cause_description, "Cause")

    if not await session.get(Vehicle, payload.vehicle_id):
        raise ValueError("Vehicle not found")

    data = payload.model_dump(mode="json")
    data.update(spill_type=spill_type, location_description=location, cause_description=cause)
    incident = SpillIncident(**data, status=IncidentStatus.OPEN.value, reported_by=reported_by)
    session.add(incident)
    await session.commit()
    await session.refresh(incident)
    logger.info("Spill incident %s reported for vehicle %s (%s)", incident.id, incident.vehicle_id, incident.severity)
    return incident


async def list_incidents(
    session: AsyncSession,
    vehicle_id: Optional[int] = None,
    status: Optional[str] = None,
    severity: Optional[str] = None,
):
    query = select(SpillIncident).order_by(SpillIncident.incident_date.desc())
    if vehicle_id:
        query = query.where(SpillIncident.vehicle_id == vehicle_id)
    if status:
        query = query.where(SpillIncident.status == status)
    if severity:
        query = query.where(SpillIncident.severity == severity)
    result = await session.execute(query)
    return result.scalars().all()


async def update_incident_status(session: AsyncSession, incident_id: int, new_status: IncidentStatus) -> SpillIncident:
    incident = await session.get(SpillIncident, incident_id)
    if not incident:
        raise LookupError("Incident not found")

    if new_status.value not in INCIDENT_TRANSITIONS[incident.status]:
        logger.warning("Refused incident %s transition %s -> %s", incident_id, incident.status, new_status.value)
        raise ValueError(f"Cannot move incident from {incident.status} to {new_status.value}")

    incident.status = new_status.value
    await session.commit()
    await session.refresh(incident)
    return incident


# --- Decontamination ---

async def create_decon_log(
    session: AsyncSession,
    payload: DeconLogCreate,
    performed_by: Optional[int] = None,
    inspector_role: Optional[str] = None,
) -> DeconLog:
    if not await session.get(Vehicle, payload.vehicle_id):
        raise ValueError("Vehicle not found")
    if payload.incident_id is not None and not await session.get(SpillIncident, payload.incident_id):
        raise ValueError("Incident not found")

    data = payload.model_dump(mode="json")
    data["inspector_signature"] = require_text(payload.inspector_signature, "Inspector signature")
    data["follow_up_required"] = (
        payload.follow_up_required and payload.post_inspection_status.value in FOLLOW_UP_STATUSES
    )

    log = DeconLog(**data, inspector_role=inspector_role, performed_by=performed_by)
    session.add(log)
    await session.commit()
    await session.refresh(log)
    logger.info("Decon log %s recorded for vehicle %s", log.id, log.vehicle_id)
    return log


async def list_decon_logs(session: AsyncSession, vehicle_id: Optional[int] = None, incident_id: Optional[int] = None):
    query = select(DeconLog).order_by(DeconLog.verification_timestamp.desc())
    if vehicle_id:
        query = query.where(DeconLog.vehicle_id == vehicle_id)
    if incident_id:
        query = query.where(DeconLog.incident_id == incident_id)
    result = await session.execute(query)
    return result.scalars().all()
