# fleetcomply/utils/validators.py
import re
from typing import List, Optional

PLATE_PATTERN = r"^[A-Z0-9][A-Z0-9 -]{0,11}$"


def normalize_plate(plate: str) -> str:
    """Upper-case, single-spaced licence plate. Raises ValueError on junk input."""
    value = re.sub(r"\s+", " ", (plate or "").strip().upper())
    if not re.match(PLATE_PATTERN, value):
        raise ValueError(f"Invalid license plate '{plate}'")
    return value


def require_text(value: Optional[str], label: str) -> str:
    if value is None or not str(value).strip():
        raise ValueError(f"{label} is required")
    return str(value).strip()


def parse_parts_list(raw: Optional[str]) -> List[str]:
    """'filter, gasket,, seal ' -> ['filter', 'gasket', 'seal']"""
    if not raw:
        return []
    return [p.strip() for p in raw.split(",") if p.strip()]
