# refurb/reports.py
import io
from datetime import date, datetime, time
from typing import Optional

import pandas as pd
from sqlalchemy.orm import Session

from . import models

REPORTS = {
    "pending": {"title": "Pending_Devices", "sheet": "Pending devices"},
    "stock": {"title": "Stock_Devices", "sheet": "Stock devices"},
    "service-fees": {"title": "Service_Fees", "sheet": "Service fees"},
}

DATE_FMT = "%d/%m/%Y %H:%M"


def _bounds(start: Optional[date], end: Optional[date]) -> tuple[Optional[datetime], Optional[datetime]]:
    lo = datetime.combine(start, time.min) if start else None
    hi = datetime.combine(end, time.max) if end else None
    return lo, hi


def _between(q, column, start, end):
    lo, hi = _bounds(start, end)
    if lo:
        q = q.filter(column >= lo)
    if hi:
        q = q.filter(column <= hi)
    return q


def _fmt(dt: Optional[datetime]) -> str:
    return dt.strftime(DATE_FMT) if dt else ""


def pending_rows(db: Session, start: Optional[date] = None, end: Optional[date] = None) -> list[dict]:
    q = (
        db.query(models.ServiceRequest, models.Device)
        .join(models.Device, models.Device.id == models.ServiceRequest.device_id)
        .filter(models.ServiceRequest.status.in_(("sent", "in_progress")))
    )
    q = _between(q, models.ServiceRequest.sent_at, start, end)
    return [
        {
            "IMEI": d.imei,
            "Brand": d.brand,
            "Model": d.model,
            "Notes": sr.notes or "",
            "Sent": _fmt(sr.sent_at),
            "Status": "In progress" if sr.status == "in_progress" else "Sent",
        }
        for sr, d in q.order_by(models.ServiceRequest.sent_at.asc()).all()
    ]


def stock_rows(db: Session, start: Optional[date] = None, end: Optional[date] = None) -> list[dict]:
    q = _between(db.query(models.DeviceStock), models.DeviceStock.created_at, start, end)
    rows = [
        {
            "IMEI": s.imei,
            "Brand": s.brand,
            "Model": s.model,
            "Quantity": s.stock_quantity,
            "Purchase price": s.purchase_price,
            "Stock value": s.purchase_price * s.stock_quantity,
            "Service cost": s.service_cost or 0,
            "Added": _fmt(s.created_at),
        }
        for s in q.order_by(models.DeviceStock.created_at.asc()).all()
    ]
    rows.append({
        "IMEI": "", "Brand": "", "Model": "",
        "Quantity": sum(r["Quantity"] for r in rows),
        "Purchase price": sum(r["Purchase price"] for r in rows),
        "Stock value": sum(r["Stock value"] for r in rows),
        "Service cost": sum(r["Service cost"] for r in rows),
        "Added": "TOTAL",
    })
    return rows


def service_fee_rows(db: Session, start: Optional[date] = None, end: Optional[date] = None) -> list[dict]:
    q = (
        db.query(models.ServiceRequest, models.Device)
        .join(models.Device, models.Device.id == models.ServiceRequest.device_id)
        .filter(models.ServiceRequest.status == "completed")
    )
    q = _between(q, models.ServiceRequest.completed_at, start, end)
    rows = [
        {
            "IMEI": d.imei,
            "Brand": d.brand,
            "Model": d.model,
            "Notes": sr.notes or "",
            "Service fee": sr.service_cost or 0,
            "Sent": _fmt(sr.sent_at),
            "Completed": _fmt(sr.completed_at),
        }
        for sr, d in q.order_by(models.ServiceRequest.completed_at.asc()).all()
    ]
    rows.append({
        "IMEI": "", "Brand": "", "Model": "", "Notes": "",
        "Service fee": sum(r["Service fee"] for r in rows),
        "Sent": "", "Completed": "TOTAL",
    })
    return rows


BUILDERS = {
    "pending": pending_rows,
    "stock": stock_rows,
    "service-fees": service_fee_rows,
}


def to_xlsx(rows: list[dict], sheet_name: str) -> bytes:
    buf = io.BytesIO()
    df = pd.DataFrame(rows)
    with pd.ExcelWriter(buf, engine="openpyxl") as writer:
        df.to_excel(writer, sheet_name=sheet_name, index=False)
    return buf.getvalue()


def export_filename(kind: str, start: Optional[date] = None, end: Optional[date] = None) -> str:
    name = REPORTS[kind]["title"]
    if start and end:
        name += f"_{start.strftime('%d-%m-%Y')}_{end.strftime('%d-%m-%Y')}"
    return name + ".xlsx"
