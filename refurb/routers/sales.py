# refurb/routers/sales.py
from fastapi import APIRouter, Depends, Query
from sqlalchemy import or_
from sqlalchemy.orm import Session

from .. import models, workflow
from ..deps import get_db, get_current_user
from ..serializers import device_dict

router = APIRouter()


@router.get("/sales")
def sale_candidates(
    q: str | None = Query(None, description="Search IMEI/brand/model"),
    db: Session = Depends(get_db),
    _: models.User = Depends(get_current_user),
):
    qs = db.query(models.Device).filter(models.Device.status.in_(("repaired", "completed")))
    if q and q.strip():
        qq = f"%{q.strip()}%"
        qs = qs.filter(or_(models.Device.imei.ilike(qq), models.Device.brand.ilike(qq), models.Device.model.ilike(qq)))
    out = []
    for d in qs.order_by(models.Device.created_at.desc()).all():
        sr = workflow.latest_service_request(db, d.id)
        out.append({
            **device_dict(d),
            "service_cost": sr.service_cost if sr else 0,
            "label_url": f"/labels/devices/{d.id}/sale",
        })
    return out


@router.post("/sales/{device_id}/mark")
def mark_for_sale(device_id: str, db: Session = Depends(get_db), _: models.User = Depends(get_current_user)):
    d = workflow.mark_for_sale(db, device_id)
    return {"message": "Device is ready for sale", "device": device_dict(d)}
