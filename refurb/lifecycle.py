# refurb/lifecycle.py
"""Device status state machine.

Statuses only walk forward through ``DEVICE_STATUSES``. Every workflow step
asks :func:`next_status` for the target status before writing anything, so a
request that would skip or rewind a device is rejected up front.
"""
from .errors import InvalidTransition, ValidationError
from .models import DEVICE_STATUSES

INTAKE = "intake"
RECORD_DEFECTS = "record_defects"
SEND_TO_SERVICE = "send_to_service"
COMPLETE_SERVICE = "complete_service"
MARK_FOR_SALE = "mark_for_sale"

# action -> (allowed source statuses, target status)
TRANSITIONS = {
    RECORD_DEFECTS: (("pending_inspection", "inspected"), "inspected"),
    SEND_TO_SERVICE: (("inspected",), "in_service"),
    COMPLETE_SERVICE: (("in_service",), "repaired"),
    MARK_FOR_SALE: (("repaired",), "completed"),
}

INITIAL_STATUS = DEVICE_STATUSES[0]

STATUS_LABELS = {
    "pending_inspection": "Awaiting inspection",
    "inspected": "Inspected",
    "in_service": "In service",
    "repaired": "Repaired",
    "completed": "Ready for sale",
}


def rank(status: str) -> int:
    try:
        return DEVICE_STATUSES.index(status)
    except ValueError:
        raise ValidationError(f"Unknown device status: {status}") from None


def next_status(current: str | None, action: str) -> str:
    """Return the status a device moves to when ``action`` is applied."""
    if action == INTAKE:
        if current is not None:
            raise InvalidTransition("Device already exists")
        return INITIAL_STATUS
    if action not in TRANSITIONS:
        raise ValidationError(f"Unknown action: {action}")
    sources, target = TRANSITIONS[action]
    rank(current)
    if current not in sources:
        raise InvalidTransition(
            f"Cannot {action.replace('_', ' ')} a device that is {STATUS_LABELS[current].lower()}"
        )
    return target


def allowed_actions(current: str) -> list[str]:
    return [action for action, (sources, _) in TRANSITIONS.items() if current in sources]
