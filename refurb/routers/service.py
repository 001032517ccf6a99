# refurb/routers/service.py
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from .. import models, workflow
from ..attribution import aggregate_severity
from ..deps import get_db, get_current_user
from ..errors import ValidationError
from ..schemas import ServiceSend, ServiceComplete
from ..serializers import device_dict, service_request_dict

router = APIRouter()

VIEWS = {
    "pending": ("sent", "in_progress"),
    "completed": ("completed",),
    "all": models.SERVICE_STATUSES,
}


def _severity_by_device(db: Session, device_ids) -> dict:
    if not device_ids:
        return {}
    found: dict[str, list[str]] = {}
    rows = db.query(models.Defect.device_id, models.Defect.severity).filter(models.Defect.device_id.in_(device_ids)).all()
    for device_id, severity in rows:
        found.setdefault(device_id, []).append(severity)
    return {k: aggregate_severity(v) for k, v in found.items()}


@router.get("/service/devices")
def sendable_devices(db: Session = Depends(get_db), _: models.User = Depends(get_current_user)):
    rows = (
        db.query(models.Device)
        .filter(models.Device.status == "inspected")
        .order_by(models.Device.created_at.desc())
        .all()
    )
    severity = _severity_by_device(db, [d.id for d in rows])
    return [{**device_dict(d), "severity": severity.get(d.id)} for d in rows]


@router.get("/service-requests")
def list_service_requests(
    view: str = Query("pending", description="pending | completed | all"),
    db: Session = Depends(get_db),
    _: models.User = Depends(get_current_user),
):
    if view not in VIEWS:
        raise ValidationError(f"View must be one of: {', '.join(VIEWS)}")
    rows = (
        db.query(models.ServiceRequest, models.Device)
        .join(models.Device, models.Device.id == models.ServiceRequest.device_id)
        .filter(models.ServiceRequest.status.in_(VIEWS[view]))
        .order_by(models.ServiceRequest.sent_at.desc())
        .all()
    )
    severity = _severity_by_device(db, list({d.id for _, d in rows}))
    return [
        {**service_request_dict(sr), "device": device_dict(d), "severity": severity.get(d.id)}
        for sr, d in rows
    ]


@router.post("/service-requests", status_code=status.HTTP_201_CREATED)
def send_to_service(payload: ServiceSend, db: Session = Depends(get_db), user: models.User = Depends(get_current_user)):
    sr = workflow.send_to_service(db, user, payload.device_id, payload.notes)
    return {"message": "Device sent to service", "service_request": service_request_dict(sr)}


@router.post("/service-requests/{request_id}/start")
def start_service(request_id: str, db: Session = Depends(get_db), _: models.User = Depends(get_current_user)):
    sr = workflow.start_service(db, request_id)
    return {"message": "Service started", "service_request": service_request_dict(sr)}


@router.post("/service-requests/{request_id}/complete")
def complete_service(
    request_id: str,
    payload: ServiceComplete,
    db: Session = Depends(get_db),
    _: models.User = Depends(get_current_user),
):
    sr, warning = workflow.complete_service(db, request_id, payload.service_cost)
    device = workflow.get_device(db, sr.device_id)
    return {
        "message": "Service completed, device marked as repaired",
        "warning": warning,
        "service_request": service_request_dict(sr),
        "device": device_dict(device),
    }


@router.get("/service-costs")
def service_costs(db: Session = Depends(get_db), _: models.User = Depends(get_current_user)):
    rows = (
        db.query(models.ServiceRequest, models.Device)
        .join(models.Device, models.Device.id == models.ServiceRequest.device_id)
        .filter(models.ServiceRequest.status == "completed", models.ServiceRequest.service_cost > 0)
        .order_by(models.ServiceRequest.completed_at.desc())
        .all()
    )
    total = sum(sr.service_cost for sr, _ in rows)
    return {
        "items": [{**service_request_dict(sr), "device": device_dict(d)} for sr, d in rows],
        "count": len(rows),
        "total_cost": total,
        "average_cost": total / len(rows) if rows else 0,
    }
