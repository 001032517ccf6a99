# refurb/routers/labels.py
from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse
from sqlalchemy.orm import Session

from .. import labels, models, workflow
from ..deps import get_db, get_current_user
from ..errors import NotFound
from ..schemas import LabelScan
from ..serializers import device_dict
from ..settings import SHOP_NAME, templates

# printable pages, mounted without the /api prefix
router_pages = APIRouter()
router = APIRouter()


def _render(request: Request, template: str, device: models.Device, payload: dict, **extra):
    text = labels.encode_payload(payload)
    return templates.TemplateResponse(
        request,
        template,
        {
            "shop_name": SHOP_NAME,
            "device": device,
            "payload": text,
            "qr_url": labels.qr_data_url(text),
            "defect_labels": labels.DEFECT_TYPE_LABELS,
            **extra,
        },
    )


@router_pages.get("/labels/devices/{device_id}/defects", response_class=HTMLResponse, include_in_schema=False)
def defect_label(request: Request, device_id: str, db: Session = Depends(get_db), _: models.User = Depends(get_current_user)):
    device = workflow.get_device(db, device_id)
    defects = workflow.device_defects(db, device_id)
    payload = labels.defect_label_payload(device, defects)
    return _render(request, "label_defects.html", device, payload, defects=defects)


@router_pages.get("/labels/devices/{device_id}/sale", response_class=HTMLResponse, include_in_schema=False)
def sale_label(request: Request, device_id: str, db: Session = Depends(get_db), _: models.User = Depends(get_current_user)):
    device = workflow.get_device(db, device_id)
    defects = workflow.device_defects(db, device_id)
    total = sum(
        sr.service_cost or 0
        for sr in db.query(models.ServiceRequest)
        .filter(models.ServiceRequest.device_id == device_id, models.ServiceRequest.status == "completed")
        .all()
    )
    payload = labels.sale_label_payload(device, defects, total)
    return _render(request, "label_sale.html", device, payload, defects=defects, total_cost=total)


@router_pages.get("/labels/inspections/{inspection_id}", response_class=HTMLResponse, include_in_schema=False)
def inspection_label(request: Request, inspection_id: str, db: Session = Depends(get_db), _: models.User = Depends(get_current_user)):
    inspection = db.query(models.InitialInspection).filter(models.InitialInspection.id == inspection_id).first()
    if not inspection:
        raise NotFound("Inspection not found")
    device = workflow.get_device(db, inspection.device_id)
    payload = labels.inspection_label_payload(device, inspection)
    return _render(request, "label_inspection.html", device, payload, inspection=inspection)


@router.post("/labels/decode")
def decode_label(payload: LabelScan, db: Session = Depends(get_db), _: models.User = Depends(get_current_user)):
    data = labels.decode_payload(payload.payload)
    devices = (
        db.query(models.Device)
        .filter(models.Device.imei == data["imei"])
        .order_by(models.Device.created_at.desc())
        .all()
    )
    return {"payload": data, "devices": [device_dict(d) for d in devices]}
