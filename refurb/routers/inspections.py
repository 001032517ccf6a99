# refurb/routers/inspections.py
from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.orm import Session

from ..deps import get_db, get_current_user
from ..errors import NotFound
from .. import models, workflow
from ..schemas import InitialInspectionCreate
from ..serializers import device_dict, inspection_dict

router = APIRouter()


@router.post("/inspections", status_code=status.HTTP_201_CREATED)
def create_inspection(
    payload: InitialInspectionCreate,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    checks = {k: getattr(payload, k) for k in workflow.INSPECTION_CHECKS}
    device, inspection = workflow.record_initial_inspection(
        db, user, payload.imei, payload.brand, payload.model, checks, payload.battery_level,
    )
    return {
        "message": "Initial inspection saved, device added to defect inspection",
        "device": device_dict(device),
        "inspection": inspection_dict(inspection),
        "label_url": f"/labels/inspections/{inspection.id}",
    }


@router.get("/inspections")
def list_inspections(
    db: Session = Depends(get_db),
    _: models.User = Depends(get_current_user),
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    device_id: str | None = Query(None),
):
    q = db.query(models.InitialInspection)
    if device_id:
        q = q.filter(models.InitialInspection.device_id == device_id)
    items = q.order_by(models.InitialInspection.inspected_at.desc()).offset(offset).limit(limit).all()
    return [inspection_dict(x) for x in items]


@router.get("/inspections/{inspection_id}")
def get_inspection(
    inspection_id: str = Path(..., min_length=1),
    db: Session = Depends(get_db),
    _: models.User = Depends(get_current_user),
):
    x = db.query(models.InitialInspection).filter(models.InitialInspection.id == inspection_id).first()
    if not x:
        raise NotFound("Inspection not found")
    return inspection_dict(x)
