# refurb/attribution.py
import re
from typing import Iterable, Optional

from .settings import KNOWN_TECHNICIANS

# Legacy rows carry the technician inside the free-text description,
# e.g. "Teknisyen: Hasan | ekran degisti". Only used when Defect.technician is empty.
TECHNICIAN_PATTERN = re.compile(r"Teknisyen:\s*(\w+)")

SEVERITY_PRECEDENCE = ("high", "medium", "low")


def technician_from_description(description: Optional[str], known: Iterable[str] | None = None) -> Optional[str]:
    if not description:
        return None
    m = TECHNICIAN_PATTERN.search(description)
    if not m:
        return None
    name = m.group(1)
    known = list(KNOWN_TECHNICIANS if known is None else known)
    return name if name in known else None


def attribute_technician(defect, known: Iterable[str] | None = None) -> Optional[str]:
    """Structured field first, description convention as a fallback."""
    technician = (getattr(defect, "technician", None) or "").strip()
    if technician:
        return technician
    return technician_from_description(getattr(defect, "description", None), known)


def aggregate_severity(severities: Iterable[str]) -> Optional[str]:
    present = set(severities)
    for level in SEVERITY_PRECEDENCE:
        if level in present:
            return level
    return None
