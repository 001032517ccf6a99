from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..deps import get_db, get_current_user
from ..performance import technician_performance
from ..serializers import device_dict
from .. import models

router = APIRouter()


@router.get("/dashboard/summary")
def dashboard_summary(
    db: Session = Depends(get_db),
    _: models.User = Depends(get_current_user),
):
    total_devices = db.query(models.Device).count()
    total_defects = db.query(models.Defect).count()
    sent = db.query(models.ServiceRequest).filter(models.ServiceRequest.status == "sent").count()
    in_progress = db.query(models.ServiceRequest).filter(models.ServiceRequest.status == "in_progress").count()

    by_status = {s: 0 for s in models.DEVICE_STATUSES}
    for (s,) in db.query(models.Device.status).all():
        if s in by_status:
            by_status[s] += 1

    recent = db.query(models.Device).order_by(models.Device.created_at.desc()).limit(5).all()
    return {
        "totals": {
            "devices": total_devices,
            "defects": total_defects,
            "in_service": sent + in_progress,
            "completed": by_status["completed"],
        },
        "devices_by_status": by_status,
        "recent_devices": [device_dict(d) for d in recent],
    }


@router.get("/dashboard/technicians")
def technicians(
    db: Session = Depends(get_db),
    _: models.User = Depends(get_current_user),
):
    defects = db.query(models.Defect).all()
    requests = db.query(models.ServiceRequest).all()
    return technician_performance(defects, requests)
