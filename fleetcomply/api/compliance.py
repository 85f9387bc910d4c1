# fleetcomply/api/compliance.py
from datetime import date
from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional

from fleetcomply.core.config import settings
from fleetcomply.core.dependencies import get_db, get_current_user, require_roles
from fleetcomply.models.domain import User, UserRole
from fleetcomply.schemas.compliance_schemas import (
    DocumentRead, DocumentTypeCreate, DocumentTypeRead, DocumentUpdate, ExpirationReport
)
from fleetcomply.services import compliance_service, export_service, storage_service

router = APIRouter()

def _window(window: Optional[int]) -> int:
    return settings.EXPIRING_SOON_DAYS if window is None else window

# --- Document types ---

@router.get("/document-types", response_model=List[DocumentTypeRead])
async def list_document_types(
    include_inactive: bool = False,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return await compliance_service.list_document_types(db, include_inactive)

@router.post("/document-types", response_model=DocumentTypeRead)
async def create_document_type(
    payload: DocumentTypeCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_roles(UserRole.ADMIN, UserRole.OFFICE))
):
    try:
        return await compliance_service.create_document_type(
            db, payload.name, payload.description, payload.default_reminder_days
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

@router.delete("/document-types/{type_id}", response_model=DocumentTypeRead)
async def deactivate_document_type(
    type_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_roles(UserRole.ADMIN, UserRole.OFFICE))
):
    try:
        return await compliance_service.deactivate_document_type(db, type_id)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))

# --- Documents ---

@router.post("/documents", response_model=DocumentRead)
async def add_document(
    vehicle_id: Optional[int] = Form(None),
    document_type_id: Optional[int] = Form(None),
    expiration_date: Optional[date] = Form(None),
    document_number: Optional[str] = Form(None),
    notes: Optional[str] = Form(None),
    file: Optional[UploadFile] = File(None),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    upload = None
    if file is not None and file.filename:
        upload = (file.filename, await file.read())

    try:
        doc = await compliance_service.add_document(
            db, vehicle_id, document_type_id,
            expiration_date=expiration_date,
            document_number=document_number,
            notes=notes,
            upload=upload,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return compliance_service.document_view(doc, date.today(), settings.EXPIRING_SOON_DAYS)

@router.get("/documents", response_model=List[DocumentRead])
async def list_documents(
    vehicle_id: Optional[int] = None,
    document_type_id: Optional[int] = None,
    status: Optional[str] = None,
    as_of: Optional[date] = None,
    window: Optional[int] = None,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return await compliance_service.list_documents(
        db, as_of or date.today(), _window(window),
        vehicle_id=vehicle_id, document_type_id=document_type_id, status=status
    )

@router.patch("/documents/{document_id}", response_model=DocumentRead)
async def update_document(
    document_id: int,
    payload: DocumentUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    try:
        doc = await compliance_service.update_document(db, document_id, payload.model_dump(exclude_unset=True))
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return compliance_service.document_view(doc, date.today(), settings.EXPIRING_SOON_DAYS)

@router.put("/documents/{document_id}/file", response_model=DocumentRead)
async def replace_document_file(
    document_id: int,
    file: UploadFile = File(...),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    content = await file.read()
    try:
        doc = await compliance_service.replace_document_file(db, document_id, file.filename, content)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return compliance_service.document_view(doc, date.today(), settings.EXPIRING_SOON_DAYS)

@router.delete("/documents/{document_id}")
async def delete_document(
    document_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_roles(UserRole.ADMIN, UserRole.OFFICE))
):
    try:
        await compliance_service.delete_document(db, document_id)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"status": "deleted", "id": document_id}

@router.get("/documents/{document_id}/file")
async def download_document_file(
    document_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    try:
        doc = await compliance_service.get_document(db, document_id)
        if not doc.file_path:
            raise LookupError("Document has no attached file")
        content = storage_service.read(compliance_service.file_bucket(doc), doc.file_path)
    except (LookupError, ValueError) as e:
        raise HTTPException(status_code=404, detail=str(e))

    return Response(
        content=content,
        media_type="application/octet-stream",
        headers={"Content-Disposition": f"attachment; filename={doc.file_name or 'document'}"}
    )

# --- Reports ---

@router.get("/reports/expiration", response_model=ExpirationReport)
async def expiration_report(
    as_of: Optional[date] = None,
    window: Optional[int] = Query(None, ge=0),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return await compliance_service.expiration_report(db, as_of or date.today(), _window(window))

@router.get("/reports/expiration/csv")
async def expiration_report_csv(
    as_of: Optional[date] = None,
    window: Optional[int] = Query(None, ge=0),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    today = as_of or date.today()
    report = await compliance_service.expiration_report(db, today, _window(window))
    return Response(
        content=export_service.expiration_report_csv(report),
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename=compliance-expirations-{today}.csv"}
    )

@router.get("/summary")
async def compliance_summary(
    as_of: Optional[date] = None,
    window: Optional[int] = Query(None, ge=0),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return await compliance_service.fleet_compliance_summary(db, as_of or date.today(), _window(window))

@router.get("/summary/pdf")
async def compliance_summary_pdf(
    as_of: Optional[date] = None,
    window: Optional[int] = Query(None, ge=0),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_roles(UserRole.ADMIN, UserRole.OFFICE))
):
    today = as_of or date.today()
    summary = await compliance_service.fleet_compliance_summary(db, today, _window(window))
    html = compliance_service.render_summary_html(summary)
    pdf_bytes = compliance_service.html_to_pdf(html)
    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": f"attachment; filename=fleet-compliance-{today}.pdf"}
    )
