# refurb/routers/devices.py
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import or_
from sqlalchemy.orm import Session

from .. import models, workflow
from ..deps import get_db, get_current_user
from ..errors import ValidationError
from ..schemas import DeviceCreate
from ..serializers import device_dict, defect_dict, service_request_dict

router = APIRouter()


@router.get("/devices")
def list_devices(
    q: str | None = Query(None, description="Search IMEI/brand/model"),
    status_filter: str | None = Query(None, alias="status"),
    limit: int = Query(500, ge=1, le=2000),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    _: models.User = Depends(get_current_user),
):
    qs = db.query(models.Device)
    if status_filter and status_filter != "all":
        if status_filter not in models.DEVICE_STATUSES:
            raise ValidationError(f"Unknown device status: {status_filter}")
        qs = qs.filter(models.Device.status == status_filter)
    if q and q.strip():
        qq = f"%{q.strip()}%"
        qs = qs.filter(
            or_(
                models.Device.imei.ilike(qq),
                models.Device.brand.ilike(qq),
                models.Device.model.ilike(qq),
            )
        )
    rows = qs.order_by(models.Device.created_at.desc()).offset(offset).limit(limit).all()
    return [device_dict(d) for d in rows]


@router.post("/devices", status_code=status.HTTP_201_CREATED)
def create_device(payload: DeviceCreate, db: Session = Depends(get_db), user: models.User = Depends(get_current_user)):
    d = workflow.intake_device(db, user, payload.imei, payload.brand, payload.model, payload.entry_date)
    return device_dict(d)


@router.get("/devices/{device_id}")
def get_device(device_id: str, db: Session = Depends(get_db), _: models.User = Depends(get_current_user)):
    d = workflow.get_device(db, device_id)
    defects = workflow.device_defects(db, device_id)
    sr = workflow.latest_service_request(db, device_id)
    return {
        **device_dict(d),
        "defects": [defect_dict(x) for x in defects],
        "severity": workflow.device_severity(db, device_id),
        "service_request": service_request_dict(sr) if sr else None,
    }


@router.delete("/devices/{device_id}")
def delete_device(device_id: str, db: Session = Depends(get_db), _: models.User = Depends(get_current_user)):
    d = workflow.get_device(db, device_id)
    imei = d.imei
    db.delete(d)
    db.commit()
    return {"message": f"Device ({imei}) deleted"}
