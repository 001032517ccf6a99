# refurb/routers/defects.py
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from .. import models, workflow
from ..deps import get_db, get_current_user
from ..labels import DEFECT_TYPE_LABELS, SEVERITY_LABELS
from ..schemas import DefectBatchCreate
from ..serializers import defect_dict, device_dict
from ..settings import KNOWN_TECHNICIANS

router = APIRouter()


@router.get("/defects/options")
def defect_options(_: models.User = Depends(get_current_user)):
    return {
        "defect_types": [{"value": k, "label": v} for k, v in DEFECT_TYPE_LABELS.items()],
        "severities": [{"value": k, "label": v} for k, v in SEVERITY_LABELS.items()],
        "technicians": list(KNOWN_TECHNICIANS),
    }


@router.get("/defects/devices")
def inspectable_devices(db: Session = Depends(get_db), _: models.User = Depends(get_current_user)):
    rows = (
        db.query(models.Device)
        .filter(models.Device.status.in_(("pending_inspection", "inspected")))
        .order_by(models.Device.created_at.desc())
        .all()
    )
    return [device_dict(d) for d in rows]


@router.get("/defects")
def list_defects(
    device_id: str | None = Query(None),
    db: Session = Depends(get_db),
    _: models.User = Depends(get_current_user),
):
    if device_id:
        workflow.get_device(db, device_id)
        rows = workflow.device_defects(db, device_id)
    else:
        rows = db.query(models.Defect).order_by(models.Defect.detected_at.desc()).all()
    return [defect_dict(x) for x in rows]


@router.post("/defects", status_code=status.HTTP_201_CREATED)
def record_defects(payload: DefectBatchCreate, db: Session = Depends(get_db), user: models.User = Depends(get_current_user)):
    rows = workflow.record_defects(
        db, user, payload.device_id, payload.defect_types,
        description=payload.description, severity=payload.severity, technician=payload.technician,
    )
    return {
        "message": f"{len(rows)} defect(s) recorded",
        "defects": [defect_dict(x) for x in rows],
        "device": device_dict(workflow.get_device(db, payload.device_id)),
    }


@router.delete("/defects/{defect_id}")
def delete_defect(defect_id: str, db: Session = Depends(get_db), _: models.User = Depends(get_current_user)):
    workflow.delete_defect(db, defect_id)
    return {"message": "Defect deleted"}
