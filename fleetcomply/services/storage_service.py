# fleetcomply/services/storage_service.py
import logging
from pathlib import Path, PurePosixPath

from fleetcomply.core.config import settings

logger = logging.getLogger(__name__)

COMPLIANCE_DOCUMENTS = "compliance-documents"
DOCUMENTS = "documents"
UNIT_PHOTOS = "unit-photos"

BUCKETS = {COMPLIANCE_DOCUMENTS, DOCUMENTS, UNIT_PHOTOS}


def _object_path(bucket: str, path: str) -> Path:
    if bucket not in BUCKETS:
        raise ValueError(f"Unknown storage bucket '{bucket}'")

    rel = PurePosixPath(path)
    if not path or rel.is_absolute() or ".." in rel.parts:
        raise ValueError(f"Invalid object path '{path}'")

    return Path(settings.STORAGE_ROOT) / bucket / Path(*rel.parts)


def upload(bucket: str, path: str, content: bytes) -> str:
    """Store bytes at bucket/path, replacing any existing object. Returns the object path."""
    target = _object_path(bucket, path)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_bytes(content)
    logger.info("Stored %s/%s (%d bytes)", bucket, path, len(content))
    return path


def remove(bucket: str, path: str) -> bool:
    target = _object_path(bucket, path)
    if not target.exists():
        logger.warning("Asked to remove missing object %s/%s", bucket, path)
        return False
    target.unlink()
    logger.info("Removed %s/%s", bucket, path)
    return True


def read(bucket: str, path: str) -> bytes:
    target = _object_path(bucket, path)
    if not target.exists():
        raise ValueError("File not found")
    return target.read_bytes()


def public_url(bucket: str, path: str) -> str:
    _object_path(bucket, path)
    return f"{settings.PUBLIC_BASE_URL.rstrip('/')}/{bucket}/{path}"


def file_extension(filename: str, default: str = "bin") -> str:
    suffix = PurePosixPath(filename or "").suffix.lstrip(".").lower()
    return suffix or default
