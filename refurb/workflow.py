# refurb/workflow.py
"""Shop-floor mutations: intake, inspection, service dispatch, completion, sale.

Each step is committed on its own, in the order the floor performs them. When a
later step fails the earlier commits stay in place and only the failing step is
reported.
"""
import logging
import math
from datetime import date
from typing import Iterable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from . import models
from .attribution import aggregate_severity
from .errors import NotFound, RemoteFailure, ValidationError
from .lifecycle import (
    COMPLETE_SERVICE,
    INTAKE,
    MARK_FOR_SALE,
    RECORD_DEFECTS,
    SEND_TO_SERVICE,
    next_status,
)
from .settings import KNOWN_TECHNICIANS

logger = logging.getLogger(__name__)

STOCK_WRITEBACK_WARNING = "Service completed, but the cost could not be written to stock"
INSPECTION_CHECKS = ("screen_broken", "camera_defect", "sound_defect", "back_cover_broken", "body_damage")


def _commit(db: Session, step: str) -> None:
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Step '%s' failed", step)
        raise RemoteFailure(f"{step} failed") from e


def _required(value: Optional[str], field: str) -> str:
    v = (value or "").strip()
    if not v:
        raise ValidationError(f"{field} is required")
    return v


def get_device(db: Session, device_id: str) -> models.Device:
    device = db.query(models.Device).filter(models.Device.id == device_id).first()
    if not device:
        raise NotFound("Device not found")
    return device


def get_service_request(db: Session, request_id: str) -> models.ServiceRequest:
    sr = db.query(models.ServiceRequest).filter(models.ServiceRequest.id == request_id).first()
    if not sr:
        raise NotFound("Service request not found")
    return sr


def latest_service_request(db: Session, device_id: str) -> Optional[models.ServiceRequest]:
    return (
        db.query(models.ServiceRequest)
        .filter(models.ServiceRequest.device_id == device_id)
        .order_by(models.ServiceRequest.sent_at.desc())
        .first()
    )


def device_defects(db: Session, device_id: str) -> list[models.Defect]:
    return (
        db.query(models.Defect)
        .filter(models.Defect.device_id == device_id)
        .order_by(models.Defect.detected_at.desc())
        .all()
    )


def device_severity(db: Session, device_id: str) -> Optional[str]:
    return aggregate_severity(d.severity for d in device_defects(db, device_id))


# ----- intake -----

def intake_device(db: Session, actor: models.User, imei: str, brand: str, model: str,
                  entry_date: Optional[date] = None) -> models.Device:
    device = models.Device(
        imei=_required(imei, "IMEI"),
        brand=_required(brand, "Brand"),
        model=_required(model, "Model"),
        entry_date=entry_date or date.today(),
        status=next_status(None, INTAKE),
        created_by=actor.id,
    )
    db.add(device)
    _commit(db, "device intake")
    db.refresh(device)
    logger.info("Device %s (%s %s) taken in by %s", device.imei, device.brand, device.model, actor.email)
    return device


def release_from_stock(db: Session, actor: models.User, stock_id: str) -> models.Device:
    """Send a stock unit to inspection; the stock row itself is kept."""
    item = db.query(models.DeviceStock).filter(models.DeviceStock.id == stock_id).first()
    if not item:
        raise NotFound("Stock item not found")
    return intake_device(db, actor, item.imei, item.brand, item.model)


def record_initial_inspection(db: Session, actor: models.User, imei: str, brand: str, model: str,
                              checks: dict, battery_level) -> tuple[models.Device, models.InitialInspection]:
    imei = _required(imei, "IMEI")
    brand = _required(brand, "Brand")
    model = _required(model, "Model")
    missing = [k for k in INSPECTION_CHECKS if checks.get(k) is None]
    if missing:
        raise ValidationError(f"All inspection questions must be answered: {', '.join(missing)}")
    try:
        battery = int(battery_level)
    except (TypeError, ValueError):
        raise ValidationError("Battery level must be a number between 0 and 100") from None
    if battery < 0 or battery > 100:
        raise ValidationError("Battery level must be a number between 0 and 100")

    device = intake_device(db, actor, imei, brand, model)
    inspection = models.InitialInspection(
        device_id=device.id,
        imei=device.imei,
        battery_level=battery,
        inspected_by=actor.id,
        **{k: bool(checks[k]) for k in INSPECTION_CHECKS},
    )
    db.add(inspection)
    _commit(db, "initial inspection")
    db.refresh(inspection)
    return device, inspection


# ----- defects -----

def record_defects(db: Session, actor: models.User, device_id: str, defect_types: Iterable[str],
                   description: str = "", severity: str = "medium",
                   technician: Optional[str] = None) -> list[models.Defect]:
    """One row per selected defect type, then the device moves to inspected."""
    types: list[str] = []
    for t in defect_types or []:
        t = (t or "").strip()
        if t and t not in types:
            types.append(t)
    if not types:
        raise ValidationError("Select at least one defect type")
    unknown = [t for t in types if t not in models.DEFECT_TYPES]
    if unknown:
        raise ValidationError(f"Unknown defect type: {', '.join(unknown)}")
    if severity not in models.SEVERITIES:
        raise ValidationError(f"Severity must be one of: {', '.join(models.SEVERITIES)}")
    technician = (technician or "").strip() or None
    if technician and technician not in KNOWN_TECHNICIANS:
        raise ValidationError(f"Unknown technician: {technician}")

    device = get_device(db, device_id)
    target = next_status(device.status, RECORD_DEFECTS)

    rows = []
    for t in types:
        row = models.Defect(
            device_id=device.id,
            defect_type=t,
            description=(description or "").strip(),
            severity=severity,
            technician=technician,
            detected_by=actor.id,
        )
        db.add(row)
        rows.append(row)
    _commit(db, "record defects")

    device.status = target
    _commit(db, "update device status")
    for row in rows:
        db.refresh(row)
    logger.info("%d defect(s) recorded for device %s", len(rows), device.imei)
    return rows


def delete_defect(db: Session, defect_id: str) -> None:
    row = db.query(models.Defect).filter(models.Defect.id == defect_id).first()
    if not row:
        raise NotFound("Defect not found")
    db.delete(row)
    _commit(db, "delete defect")


# ----- service -----

def send_to_service(db: Session, actor: models.User, device_id: str, notes: Optional[str] = None) -> models.ServiceRequest:
    device = get_device(db, device_id)
    target = next_status(device.status, SEND_TO_SERVICE)

    sr = models.ServiceRequest(
        device_id=device.id,
        status="sent",
        notes=(notes or "").strip() or None,
        service_cost=0,
        sent_by=actor.id,
    )
    db.add(sr)
    _commit(db, "create service request")

    device.status = target
    _commit(db, "update device status")
    db.refresh(sr)
    logger.info("Device %s sent to service (request %s)", device.imei, sr.id)
    return sr


def start_service(db: Session, request_id: str) -> models.ServiceRequest:
    sr = get_service_request(db, request_id)
    if sr.status != "sent":
        raise ValidationError("Only requests that were just sent can be started")
    sr.status = "in_progress"
    _commit(db, "start service request")
    db.refresh(sr)
    return sr


def writeback_stock_cost(db: Session, imei: str, cost: float) -> int:
    """Write the repair cost to every stock row with this IMEI; returns rows touched."""
    rows = db.query(models.DeviceStock).filter(models.DeviceStock.imei == imei).all()
    for row in rows:
        row.service_cost = cost
    db.commit()
    return len(rows)


def complete_service(db: Session, request_id: str, cost) -> tuple[models.ServiceRequest, Optional[str]]:
    """Returns the request and a warning when the stock write-back failed."""
    try:
        cost = float(cost)
    except (TypeError, ValueError):
        raise ValidationError("Enter a valid service cost") from None
    if not math.isfinite(cost):
        raise ValidationError("Enter a valid service cost")
    if cost < 0:
        raise ValidationError("Service cost cannot be negative")

    sr = get_service_request(db, request_id)
    if sr.status == "completed":
        raise ValidationError("Service request is already completed")
    device = get_device(db, sr.device_id)
    target = next_status(device.status, COMPLETE_SERVICE)

    sr.status = "completed"
    sr.service_cost = cost
    sr.completed_at = models.utcnow()
    _commit(db, "complete service request")

    device.status = target
    _commit(db, "update device status")

    warning = None
    try:
        touched = writeback_stock_cost(db, device.imei, cost)
        logger.info("Service cost %.2f written to %d stock row(s) for IMEI %s", cost, touched, device.imei)
    except SQLAlchemyError:
        db.rollback()
        logger.warning("Stock cost write-back failed for IMEI %s", device.imei, exc_info=True)
        warning = STOCK_WRITEBACK_WARNING

    db.refresh(sr)
    return sr, warning


# ----- sales -----

def mark_for_sale(db: Session, device_id: str) -> models.Device:
    device = get_device(db, device_id)
    device.status = next_status(device.status, MARK_FOR_SALE)
    _commit(db, "mark device for sale")
    db.refresh(device)
    logger.info("Device %s marked ready for sale", device.imei)
    return device
