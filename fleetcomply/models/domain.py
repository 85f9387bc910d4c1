# fleetcomply/models/domain.py
import enum
from datetime import datetime, timezone

from sqlalchemy import (
    Column, Integer, String, ForeignKey, Numeric, Date, DateTime, Text, Boolean, Float, JSON
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


def utcnow() -> datetime:
    # SQLite stores naive datetimes; keep everything in UTC
    return datetime.now(timezone.utc).replace(tzinfo=None)

# --- Enums ---

class UserRole(str, enum.Enum):
    ADMIN = "admin"
    OFFICE = "office"
    TECH = "tech"

class VehicleStatus(str, enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    MAINTENANCE = "maintenance"

class DocumentStatus(str, enum.Enum):
    EXPIRED = "expired"
    EXPIRING_SOON = "expiring_soon"
    VALID = "valid"
    NO_EXPIRATION = "no_expiration"

class ItemConditionStatus(str, enum.Enum):
    PRESENT = "present"
    MISSING = "missing"
    LOW = "low"
    EXPIRED = "expired"

class KitStatus(str, enum.Enum):
    COMPLIANT = "compliant"
    WARNING = "warning"
    PARTIAL = "partial"
    FAILED = "failed"

class IncidentSeverity(str, enum.Enum):
    MINOR = "minor"
    MODERATE = "moderate"
    MAJOR = "major"

class IncidentStatus(str, enum.Enum):
    OPEN = "open"
    INVESTIGATING = "investigating"
    CLOSED = "closed"

class PostInspectionStatus(str, enum.Enum):
    PASS = "pass"
    FAIL = "fail"
    CONDITIONAL = "conditional"
    NOT_APPLICABLE = "not_applicable"

class ItemStatus(str, enum.Enum):
    AVAILABLE = "available"
    MAINTENANCE = "maintenance"
    ASSIGNED = "assigned"
    RETIRED = "retired"

class MaintenancePriority(str, enum.Enum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    CRITICAL = "critical"

class SessionStatus(str, enum.Enum):
    ACTIVE = "active"
    COMPLETED = "completed"

class UpdateType(str, enum.Enum):
    PROGRESS = "progress"
    PARTS = "parts"
    LABOR = "labor"
    INSPECTION = "inspection"
    COMPLETION = "completion"

# --- Auth Entities ---

class User(Base):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True, index=True)
    username = Column(String, unique=True, index=True, nullable=False)
    full_name = Column(String, nullable=True)
    hashed_password = Column(String, nullable=False)
    role = Column(String, default=UserRole.TECH.value, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

# --- Fleet ---

class Vehicle(Base):
    __tablename__ = "vehicles"
    id = Column(Integer, primary_key=True, index=True)
    license_plate = Column(String, unique=True, nullable=False, index=True)
    vehicle_type = Column(String, nullable=True)
    make = Column(String, nullable=True)
    model = Column(String, nullable=True)
    year = Column(Integer, nullable=True)
    nickname = Column(String, nullable=True)
    status = Column(String, default=VehicleStatus.ACTIVE.value, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    documents = relationship("VehicleComplianceDocument", back_populates="vehicle", cascade="all, delete-orphan")
    spill_kit_checks = relationship("VehicleSpillKitCheck", back_populates="vehicle", cascade="all, delete-orphan")

class ComplianceDocumentType(Base):
    __tablename__ = "compliance_document_types"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, unique=True, nullable=False)
    description = Column(Text, nullable=True)
    default_reminder_days = Column(Integer, default=30, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

class VehicleComplianceDocument(Base):
    __tablename__ = "vehicle_compliance_documents"
    id = Column(Integer, primary_key=True, index=True)
    vehicle_id = Column(Integer, ForeignKey("vehicles.id"), nullable=False, index=True)
    document_type_id = Column(Integer, ForeignKey("compliance_document_types.id"), nullable=False)

    document_number = Column(String, nullable=True)
    expiration_date = Column(Date, nullable=True)
    notes = Column(Text, nullable=True)

    # Stored file; replacements go to the documents bucket
    file_name = Column(String, nullable=True)
    file_path = Column(String, nullable=True)
    file_size = Column(Integer, nullable=True)
    file_bucket = Column(String, nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    vehicle = relationship("Vehicle", back_populates="documents")
    document_type = relationship("ComplianceDocumentType")

# --- Spill kits & incidents ---

class SpillKitInventory(Base):
    """Catalogue + stock of spill-kit contents. Checks reference these rows by id."""
    __tablename__ = "spill_kit_inventory"
    id = Column(Integer, primary_key=True, index=True)
    item_name = Column(String, nullable=False)
    item_type = Column(String, nullable=True)  # category, e.g. "Absorbents"
    current_stock = Column(Integer, default=0, nullable=False)
    minimum_threshold = Column(Integer, default=0, nullable=False)
    required_quantity = Column(Integer, default=1, nullable=False)  # per kit
    unit_cost = Column(Numeric(10, 2), nullable=True)
    expiration_date = Column(Date, nullable=True)
    is_critical = Column(Boolean, default=False, nullable=False)
    storage_location = Column(String, nullable=True)
    notes = Column(Text, nullable=True)

class VehicleSpillKitCheck(Base):
    __tablename__ = "vehicle_spill_kit_checks"
    id = Column(Integer, primary_key=True, index=True)
    vehicle_id = Column(Integer, ForeignKey("vehicles.id"), nullable=False, index=True)

    has_kit = Column(Boolean, default=True, nullable=False)
    # {"<inventory id>": {"status": "present", "expiration_date": "2025-01-01", ...}}
    item_conditions = Column(JSON, default=dict, nullable=False)
    missing_items = Column(JSON, default=list, nullable=False)
    photos = Column(JSON, default=list, nullable=False)
    notes = Column(Text, nullable=True)
    weather_conditions = Column(String, nullable=True)
    inspection_duration_minutes = Column(Integer, nullable=True)

    completion_status = Column(String, nullable=False)
    next_check_due = Column(Date, nullable=False)
    checked_at = Column(DateTime, default=utcnow, nullable=False)
    checked_by = Column(Integer, ForeignKey("users.id"), nullable=True)

    vehicle = relationship("Vehicle", back_populates="spill_kit_checks")

class SpillIncident(Base):
    __tablename__ = "spill_incidents"
    id = Column(Integer, primary_key=True, index=True)
    vehicle_id = Column(Integer, ForeignKey("vehicles.id"), nullable=False, index=True)

    spill_type = Column(String, nullable=False)
    location_description = Column(Text, nullable=False)
    cause_description = Column(Text, nullable=False)
    immediate_action_taken = Column(Text, nullable=True)
    severity = Column(String, default=IncidentSeverity.MINOR.value, nullable=False)
    volume_estimate = Column(Float, nullable=True)
    volume_unit = Column(String, default="gallons", nullable=False)
    weather_conditions = Column(String, nullable=True)
    cleanup_actions = Column(JSON, default=list, nullable=False)
    regulatory_notification_required = Column(Boolean, default=False, nullable=False)
    authorities_notified = Column(Boolean, default=False, nullable=False)

    status = Column(String, default=IncidentStatus.OPEN.value, nullable=False)
    incident_date = Column(DateTime, default=utcnow, nullable=False)
    reported_by = Column(Integer, ForeignKey("users.id"), nullable=True)

    vehicle = relationship("Vehicle")

class DeconLog(Base):
    __tablename__ = "decon_logs"
    id = Column(Integer, primary_key=True, index=True)
    incident_id = Column(Integer, ForeignKey("spill_incidents.id"), nullable=True)
    vehicle_id = Column(Integer, ForeignKey("vehicles.id"), nullable=False, index=True)

    vehicle_areas = Column(JSON, default=list, nullable=False)
    location_type = Column(String, nullable=True)
    weather_conditions = Column(String, nullable=True)
    ppe_items = Column(JSON, default=list, nullable=False)
    ppe_compliance_status = Column(Boolean, default=True, nullable=False)
    decon_methods = Column(JSON, default=list, nullable=False)
    post_inspection_status = Column(String, nullable=False)
    inspector_signature = Column(String, nullable=False)
    inspector_role = Column(String, nullable=True)
    follow_up_required = Column(Boolean, default=False, nullable=False)
    photos = Column(JSON, default=list, nullable=False)
    notes = Column(Text, nullable=True)
    verification_timestamp = Column(DateTime, default=utcnow, nullable=False)
    performed_by = Column(Integer, ForeignKey("users.id"), nullable=True)

    incident = relationship("SpillIncident")
    vehicle = relationship("Vehicle")

# --- Equipment maintenance ---

class ProductItem(Base):
    __tablename__ = "product_items"
    id = Column(Integer, primary_key=True, index=True)
    item_code = Column(String, unique=True, nullable=False, index=True)
    product_name = Column(String, nullable=False)
    tool_number = Column(String, nullable=True)
    status = Column(String, default=ItemStatus.AVAILABLE.value, nullable=False)
    condition = Column(String, nullable=True)

    maintenance_start_date = Column(Date, nullable=True)
    maintenance_reason = Column(Text, nullable=True)
    expected_return_date = Column(Date, nullable=True)
    maintenance_notes = Column(Text, nullable=True)
    maintenance_priority = Column(String, default=MaintenancePriority.NORMAL.value, nullable=False)

    sessions = relationship("MaintenanceSession", back_populates="item", cascade="all, delete-orphan")
    updates = relationship("MaintenanceUpdate", back_populates="item", cascade="all, delete-orphan")
    photos = relationship("ProductItemPhoto", back_populates="item", cascade="all, delete-orphan")

class MaintenanceSession(Base):
    __tablename__ = "maintenance_sessions"
    id = Column(Integer, primary_key=True, index=True)
    item_id = Column(Integer, ForeignKey("product_items.id"), nullable=False, index=True)
    session_number = Column(Integer, nullable=False)
    status = Column(String, default=SessionStatus.ACTIVE.value, nullable=False)
    started_at = Column(DateTime, default=utcnow, nullable=False)
    completed_at = Column(DateTime, nullable=True)
    total_cost = Column(Numeric(12, 2), default=0, nullable=False)
    total_labor_hours = Column(Float, default=0, nullable=False)
    session_summary = Column(Text, nullable=True)
    primary_technician = Column(String, nullable=True)

    item = relationship("ProductItem", back_populates="sessions")
    updates = relationship("MaintenanceUpdate", back_populates="session")

class MaintenanceUpdate(Base):
    __tablename__ = "maintenance_updates"
    id = Column(Integer, primary_key=True, index=True)
    item_id = Column(Integer, ForeignKey("product_items.id"), nullable=False, index=True)
    session_id = Column(Integer, ForeignKey("maintenance_sessions.id"), nullable=True)
    update_type = Column(String, default=UpdateType.PROGRESS.value, nullable=False)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    labor_hours = Column(Float, default=0, nullable=False)
    cost_amount = Column(Numeric(12, 2), default=0, nullable=False)
    parts_used = Column(JSON, default=list, nullable=False)
    technician_name = Column(String, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    item = relationship("ProductItem", back_populates="updates")
    session = relationship("MaintenanceSession", back_populates="updates")

class ProductItemPhoto(Base):
    __tablename__ = "product_item_photos"
    id = Column(Integer, primary_key=True, index=True)
    item_id = Column(Integer, ForeignKey("product_items.id"), nullable=False, index=True)
    storage_path = Column(String, nullable=False)
    photo_url = Column(String, nullable=False)
    caption = Column(String, nullable=True)
    photo_type = Column(String, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    item = relationship("ProductItem", back_populates="photos")

# --- Service report templates ---

class ServiceReportTemplate(Base):
    __tablename__ = "service_report_templates"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    template_type = Column(String, nullable=False, index=True)
    version = Column(String, default="1.0", nullable=False)
    is_default_for_type = Column(Boolean, default=False, nullable=False)

    # Rule model is stored as JSON documents, validated by schemas.template_schemas
    sections = Column(JSON, default=list, nullable=False)
    logic_rules = Column(JSON, default=dict, nullable=False)
    permissions = Column(JSON, default=dict, nullable=False)
    output_config = Column(JSON, default=dict, nullable=False)

    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)
