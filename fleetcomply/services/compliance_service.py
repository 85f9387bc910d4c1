# fleetcomply/services/compliance_service.py
import logging
import time
from datetime import date
from typing import List, Optional, Tuple

from jinja2 import Environment, BaseLoader
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload

from fleetcomply.core.config import settings
from fleetcomply.models.domain import (
    ComplianceDocumentType, DocumentStatus, IncidentSeverity, IncidentStatus, SpillIncident,
    Vehicle, VehicleComplianceDocument,
)
from fleetcomply.services import spill_kit_service, storage_service
from fleetcomply.utils.dates import classify_expiration, days_until_expiry

logger = logging.getLogger(__name__)

PRIORITY_ORDER = {"high": 0, "medium": 1, "low": 2}


def score_band(score: int) -> str:
    if score >= 90:
        return "Excellent"
    if score >= 70:
        return "Good"
    return "Needs Attention"


def file_bucket(doc: VehicleComplianceDocument) -> str:
    return doc.file_bucket or storage_service.COMPLIANCE_DOCUMENTS


def document_view(doc: VehicleComplianceDocument, today: date, window: int) -> dict:
    """Flatten a document row with its derived expiry fields."""
    return {
        "id": doc.id,
        "vehicle_id": doc.vehicle_id,
        "document_type_id": doc.document_type_id,
        "document_number": doc.document_number,
        "expiration_date": doc.expiration_date,
        "notes": doc.notes,
        "file_name": doc.file_name,
        "file_path": doc.file_path,
        "file_size": doc.file_size,
        "file_url": storage_service.public_url(file_bucket(doc), doc.file_path) if doc.file_path else None,
        "created_at": doc.created_at,
        "days_until_expiry": days_until_expiry(doc.expiration_date, today),
        "status": classify_expiration(doc.expiration_date, today, window).value,
    }


# --- Document types ---

async def list_document_types(session: AsyncSession, include_inactive: bool = False):
    query = select(ComplianceDocumentType).order_by(ComplianceDocumentType.name)
    if not include_inactive:
        query = query.where(ComplianceDocumentType.is_active == True)  # noqa: E712
    result = await session.execute(query)
    return result.scalars().all()


async def create_document_type(session: AsyncSession, name: str, description: Optional[str], reminder_days: int):
    existing = await session.execute(select(ComplianceDocumentType).where(ComplianceDocumentType.name == name))
    if existing.scalars().first():
        raise ValueError("Document type with this name already exists")

    doc_type = ComplianceDocumentType(name=name, description=description, default_reminder_days=reminder_days)
    session.add(doc_type)
    await session.commit()
    await session.refresh(doc_type)
    logger.info("Created document type %s", name)
    return doc_type


async def deactivate_document_type(session: AsyncSession, type_id: int):
    doc_type = await session.get(ComplianceDocumentType, type_id)
    if not doc_type:
        raise LookupError("Document type not found")
    doc_type.is_active = False
    await session.commit()
    await session.refresh(doc_type)
    return doc_type


# --- Documents ---

async def add_document(
    session: AsyncSession,
    vehicle_id: Optional[int],
    document_type_id: Optional[int],
    expiration_date: Optional[date] = None,
    document_number: Optional[str] = None,
    notes: Optional[str] = None,
    upload: Optional[Tuple[str, bytes]] = None,
) -> VehicleComplianceDocument:
    """
    Attach a compliance document to a vehicle.
    Both vehicle and document type must be chosen and exist; the upload, when
    given, is a (filename, content) pair stored under <vehicle_id>/<timestamp>.<ext>.
    """
    if not vehicle_id or not document_type_id:
        logger.warning("Rejected document without vehicle/type (vehicle=%s, type=%s)", vehicle_id, document_type_id)
        raise ValueError("Please select both a vehicle and a document type")

    if not await session.get(Vehicle, vehicle_id):
        raise ValueError("Vehicle not found")
    if not await session.get(ComplianceDocumentType, document_type_id):
        raise ValueError("Document type not found")

    doc = VehicleComplianceDocument(
        vehicle_id=vehicle_id,
        document_type_id=document_type_id,
        document_number=document_number,
        expiration_date=expiration_date,
        notes=notes,
    )

    if upload is not None:
        filename, content = upload
        ext = storage_service.file_extension(filename)
        path = f"{vehicle_id}/{int(time.time() * 1000)}.{ext}"
        storage_service.upload(storage_service.COMPLIANCE_DOCUMENTS, path, content)
        doc.file_name = filename
        doc.file_path = path
        doc.file_size = len(content)
        doc.file_bucket = storage_service.COMPLIANCE_DOCUMENTS

    session.add(doc)
    await session.commit()
    await session.refresh(doc)
    logger.info("Added compliance document %s for vehicle %s", doc.id, vehicle_id)
    return doc


async def get_document(session: AsyncSession, document_id: int) -> VehicleComplianceDocument:
    doc = await session.get(VehicleComplianceDocument, document_id)
    if not doc:
        raise LookupError("Document not found")
    return doc


async def update_document(session: AsyncSession, document_id: int, changes: dict) -> VehicleComplianceDocument:
    doc = await get_document(session, document_id)
    if "document_type_id" in changes:
        if changes["document_type_id"] is None:
            raise ValueError("Please select both a vehicle and a document type")
        if not await session.get(ComplianceDocumentType, changes["document_type_id"]):
            raise ValueError("Document type not found")
    for key, value in changes.items():
        setattr(doc, key, value)
    await session.commit()
    await session.refresh(doc)
    return doc


async def replace_document_file(
    session: AsyncSession, document_id: int, filename: str, content: bytes
) -> VehicleComplianceDocument:
    """Swap the attached file for a new upload, dropping the previous object."""
    doc = await get_document(session, document_id)
    if not content:
        raise ValueError("Uploaded file is empty")

    ext = storage_service.file_extension(filename)
    path = f"compliance-documents/{doc.id}_{int(time.time() * 1000)}.{ext}"
    storage_service.upload(storage_service.DOCUMENTS, path, content)
    if doc.file_path:
        storage_service.remove(file_bucket(doc), doc.file_path)

    doc.file_name = filename
    doc.file_path = path
    doc.file_size = len(content)
    doc.file_bucket = storage_service.DOCUMENTS
    await session.commit()
    await session.refresh(doc)
    logger.info("Replaced file on compliance document %s", doc.id)
    return doc


async def delete_document(session: AsyncSession, document_id: int):
    doc = await get_document(session, document_id)
    if doc.file_path:
        storage_service.remove(file_bucket(doc), doc.file_path)
    await session.delete(doc)
    await session.commit()
    logger.info("Deleted compliance document %s", document_id)


async def list_documents(
    session: AsyncSession,
    today: date,
    window: int,
    vehicle_id: Optional[int] = None,
    document_type_id: Optional[int] = None,
    status: Optional[str] = None,
) -> List[dict]:
    query = select(VehicleComplianceDocument).order_by(VehicleComplianceDocument.expiration_date)
    if vehicle_id:
        query = query.where(VehicleComplianceDocument.vehicle_id == vehicle_id)
    if document_type_id:
        query = query.where(VehicleComplianceDocument.document_type_id == document_type_id)
    result = await session.execute(query)

    rows = [document_view(d, today, window) for d in result.scalars().all()]
    if status:
        rows = [r for r in rows if r["status"] == status]
    return rows


# --- Reports ---

async def _documents_with_context(session: AsyncSession):
    result = await session.execute(
        select(VehicleComplianceDocument).options(
            joinedload(VehicleComplianceDocument.vehicle),
            joinedload(VehicleComplianceDocument.document_type),
        )
    )
    return result.scalars().all()


async def expiration_report(session: AsyncSession, today: date, window: int) -> dict:
    docs = await _documents_with_context(session)

    rows = []
    summary = {s.value: 0 for s in DocumentStatus}
    by_vehicle = {}

    for doc in docs:
        status = classify_expiration(doc.expiration_date, today, window)
        summary[status.value] += 1
        rows.append({
            "document_id": doc.id,
            "vehicle_id": doc.vehicle_id,
            "license_plate": doc.vehicle.license_plate,
            "document_type": doc.document_type.name,
            "expiration_date": doc.expiration_date,
            "days_until_expiry": days_until_expiry(doc.expiration_date, today),
            "status": status.value,
        })

        counts = by_vehicle.setdefault(doc.vehicle_id, {
            "vehicle_id": doc.vehicle_id,
            "license_plate": doc.vehicle.license_plate,
            "expired": 0,
            "expiring_soon": 0,
        })
        if status == DocumentStatus.EXPIRED:
            counts["expired"] += 1
        elif status == DocumentStatus.EXPIRING_SOON:
            counts["expiring_soon"] += 1

    # Soonest first, undated last
    rows.sort(key=lambda r: (r["days_until_expiry"] is None, r["days_until_expiry"] or 0))
    summary["total"] = len(rows)

    return {
        "report_date": today,
        "window_days": window,
        "rows": rows,
        "summary": summary,
        "by_vehicle": sorted(by_vehicle.values(), key=lambda v: v["license_plate"]),
    }


async def fleet_compliance_summary(session: AsyncSession, today: date, window: int) -> dict:
    vehicles = (await session.execute(select(Vehicle))).scalars().all()
    docs = await _documents_with_context(session)

    expired, expiring = [], []
    vehicles_with_expired = set()
    for doc in docs:
        days = days_until_expiry(doc.expiration_date, today)
        status = classify_expiration(doc.expiration_date, today, window)
        entry = {
            "document_id": doc.id,
            "vehicle_id": doc.vehicle_id,
            "license_plate": doc.vehicle.license_plate,
            "document_type": doc.document_type.name,
            "expiration_date": doc.expiration_date,
        }
        if status == DocumentStatus.EXPIRED:
            vehicles_with_expired.add(doc.vehicle_id)
            expired.append({**entry, "days_overdue": -days})
        elif status == DocumentStatus.EXPIRING_SOON:
            expiring.append({**entry, "days_until_expiry": days})

    expired.sort(key=lambda e: -e["days_overdue"])
    expiring.sort(key=lambda e: e["days_until_expiry"])

    total = len(vehicles)
    compliant = total - len(vehicles_with_expired)
    score = round(100 * compliant / total) if total else 100

    incidents = (await session.execute(
        select(SpillIncident).where(SpillIncident.status != IncidentStatus.CLOSED.value)
    )).scalars().all()
    overdue = await spill_kit_service.overdue_checks(session, today)
    low_stock = await spill_kit_service.low_stock_items(session)

    actions = []
    for e in expired:
        actions.append({
            "priority": "high",
            "category": "documents",
            "message": f"Renew {e['document_type']} for {e['license_plate']} (expired {e['days_overdue']} days ago)",
        })
    for inc in incidents:
        actions.append({
            "priority": "high" if inc.severity == IncidentSeverity.MAJOR.value else "medium",
            "category": "incidents",
            "message": f"Resolve {inc.severity} {inc.spill_type} incident #{inc.id} ({inc.status})",
        })
    for o in overdue:
        actions.append({
            "priority": "medium",
            "category": "spill_kits",
            "message": f"Spill kit check overdue for {o['license_plate']}",
        })
    for e in expiring:
        actions.append({
            "priority": "medium",
            "category": "documents",
            "message": f"{e['document_type']} for {e['license_plate']} expires in {e['days_until_expiry']} days",
        })
    for item in low_stock:
        actions.append({
            "priority": "low",
            "category": "inventory",
            "message": f"Restock {item.item_name} ({item.current_stock} left, minimum {item.minimum_threshold})",
        })
    actions.sort(key=lambda a: PRIORITY_ORDER[a["priority"]])

    return {
        "report_date": today,
        "total_vehicles": total,
        "compliant_vehicles": compliant,
        "vehicles_with_expired": len(vehicles_with_expired),
        "health_score": score,
        "score_band": score_band(score),
        "expired_documents": expired,
        "expiring_soon": expiring,
        "open_incidents": [
            {"id": i.id, "vehicle_id": i.vehicle_id, "spill_type": i.spill_type,
             "severity": i.severity, "status": i.status}
            for i in incidents
        ],
        "overdue_spill_kit_checks": overdue,
        "low_stock_items": [
            {"id": i.id, "item_name": i.item_name, "current_stock": i.current_stock,
             "minimum_threshold": i.minimum_threshold}
            for i in low_stock
        ],
        "action_items": actions,
    }


# --- PDF ---

SUMMARY_HTML_TEMPLATE = """
<!DOCTYPE html>
<html>
<head>
    <style>
        @page { size: A4; margin: 1.5cm; }
        body { font-family: Helvetica, Arial, sans-serif; font-size: 11px; line-height: 1.4; }
        h1 { font-size: 18px; margin-bottom: 2px; }
        h2 { font-size: 14px; border-bottom: 1px solid #999; margin-top: 18px; }
        .score { font-size: 28px; font-weight: bold; }
        table { width: 100%; border-collapse: collapse; margin-top: 6px; }
        td, th { border: 1px solid #ccc; padding: 4px; text-align: left; }
        .high { color: #b00020; }
        .medium { color: #a05a00; }
    </style>
</head>
<body>
    <h1>{{ company_name }} - Fleet Compliance Summary</h1>
    <p>Generated {{ summary.report_date }}</p>

    <p class="score">{{ summary.health_score }}% <small>{{ summary.score_band }}</small></p>
    <p>{{ summary.compliant_vehicles }} of {{ summary.total_vehicles }} vehicles fully compliant.</p>

    <h2>Action Items</h2>
    {% if summary.action_items %}
    <ul>
        {% for a in summary.action_items %}
        <li class="{{ a.priority }}">[{{ a.priority|upper }}] {{ a.message }}</li>
        {% endfor %}
    </ul>
    {% else %}
    <p>No outstanding actions.</p>
    {% endif %}

    <h2>Expired Documents</h2>
    <table>
        <tr><th>Vehicle</th><th>Document</th><th>Expired</th><th>Days Overdue</th></tr>
        {% for e in summary.expired_documents %}
        <tr><td>{{ e.license_plate }}</td><td>{{ e.document_type }}</td><td>{{ e.expiration_date }}</td><td>{{ e.days_overdue }}</td></tr>
        {% endfor %}
    </table>

    <h2>Expiring Soon</h2>
    <table>
        <tr><th>Vehicle</th><th>Document</th><th>Expires</th><th>Days Left</th></tr>
        {% for e in summary.expiring_soon %}
        <tr><td>{{ e.license_plate }}</td><td>{{ e.document_type }}</td><td>{{ e.expiration_date }}</td><td>{{ e.days_until_expiry }}</td></tr>
        {% endfor %}
    </table>
</body>
</html>
"""


def render_summary_html(summary: dict, company_name: Optional[str] = None) -> str:
    env = Environment(loader=BaseLoader(), autoescape=True)
    template = env.from_string(SUMMARY_HTML_TEMPLATE)
    return template.render(summary=summary, company_name=company_name or settings.COMPANY_NAME)


def html_to_pdf(html_content: str) -> bytes:
    # weasyprint pulls in native libraries; load it only when a PDF is requested
    from weasyprint import HTML
    return HTML(string=html_content).write_pdf()
