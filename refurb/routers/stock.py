# refurb/routers/stock.py
import logging

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import or_
from sqlalchemy.orm import Session

from .. import models, workflow
from ..deps import get_db, get_current_user
from ..errors import NotFound, ValidationError
from ..schemas import StockCreate
from ..serializers import stock_dict, device_dict

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/stock")
def list_stock(
    q: str | None = Query(None, description="Search brand/model/IMEI"),
    db: Session = Depends(get_db),
    _: models.User = Depends(get_current_user),
):
    everything = db.query(models.DeviceStock)
    qs = everything
    if q and q.strip():
        qq = f"%{q.strip()}%"
        qs = qs.filter(
            or_(
                models.DeviceStock.brand.ilike(qq),
                models.DeviceStock.model.ilike(qq),
                models.DeviceStock.imei.ilike(qq),
            )
        )
    rows = qs.order_by(models.DeviceStock.created_at.desc()).all()
    # totals cover the whole stock, not just the search hits
    total_value = sum(s.purchase_price * s.stock_quantity for s in everything.all())
    return {
        "items": [stock_dict(s) for s in rows],
        "count": len(rows),
        "total_stock_value": total_value,
    }


@router.post("/stock", status_code=status.HTTP_201_CREATED)
def create_stock(payload: StockCreate, db: Session = Depends(get_db), user: models.User = Depends(get_current_user)):
    brand, model, imei = payload.brand.strip(), payload.model.strip(), payload.imei.strip()
    if not brand or not model or not imei:
        raise ValidationError("Brand, model and IMEI are required")
    row = models.DeviceStock(
        brand=brand,
        model=model,
        imei=imei,
        stock_quantity=payload.stock_quantity,
        purchase_price=payload.purchase_price,
        created_by=user.id,
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    logger.info("Stock %s %s (%s) x%d added", brand, model, imei, row.stock_quantity)
    return stock_dict(row)


@router.delete("/stock/{stock_id}")
def delete_stock(stock_id: str, db: Session = Depends(get_db), _: models.User = Depends(get_current_user)):
    row = db.query(models.DeviceStock).filter(models.DeviceStock.id == stock_id).first()
    if not row:
        raise NotFound("Stock item not found")
    label = f"{row.brand} {row.model}"
    db.delete(row)
    db.commit()
    return {"message": f"{label} removed from stock"}


@router.post("/stock/{stock_id}/release", status_code=status.HTTP_201_CREATED)
def release_to_inspection(stock_id: str, db: Session = Depends(get_db), user: models.User = Depends(get_current_user)):
    device = workflow.release_from_stock(db, user, stock_id)
    return {
        "message": f"{device.brand} {device.model} sent to defect inspection, stock kept",
        "device": device_dict(device),
    }
