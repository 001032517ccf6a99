# refurb/models.py
import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, DateTime, Date, ForeignKey, Boolean, CheckConstraint, Float, Text
from sqlalchemy.orm import relationship

from .database import Base

ROLES = ("operator", "technician", "admin")
DEVICE_STATUSES = ("pending_inspection", "inspected", "in_service", "repaired", "completed")
DEFECT_TYPES = (
    "screen", "battery", "camera", "software", "speaker",
    "microphone", "charging_port", "refurbishment", "other",
)
SEVERITIES = ("low", "medium", "high")
SERVICE_STATUSES = ("sent", "in_progress", "completed")


def _new_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    # naive UTC, sqlite drops tzinfo anyway
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _in(column: str, values: tuple) -> str:
    quoted = ",".join(f"'{v}'" for v in values)
    return f"{column} IN ({quoted})"


class User(Base):
    __tablename__ = "users"
    id            = Column(String(36), primary_key=True, default=_new_id)
    email         = Column(String(255), unique=True, index=True, nullable=False)
    full_name     = Column(String(255), nullable=False)
    role          = Column(String(20), nullable=False, default="operator")
    is_approved   = Column(Boolean, nullable=False, default=False)
    password_hash = Column(String(255), nullable=False)
    created_at    = Column(DateTime, nullable=False, default=utcnow)
    __table_args__ = (
        CheckConstraint(_in("role", ROLES), name="ck_users_role"),
    )


class Device(Base):
    __tablename__ = "devices"
    id         = Column(String(36), primary_key=True, default=_new_id)
    imei       = Column(String(32), index=True, nullable=False)
    brand      = Column(String(100), nullable=False)
    model      = Column(String(100), nullable=False)
    entry_date = Column(Date, nullable=False)
    status     = Column(String(32), nullable=False, default="pending_inspection")
    created_by = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow, index=True)

    defects = relationship("Defect", back_populates="device", cascade="all, delete-orphan")
    service_requests = relationship("ServiceRequest", back_populates="device", cascade="all, delete-orphan")
    inspections = relationship("InitialInspection", back_populates="device", cascade="all, delete-orphan")

    __table_args__ = (
        CheckConstraint(_in("status", DEVICE_STATUSES), name="ck_devices_status"),
    )


class DeviceStock(Base):
    # no FK to devices: reconciled by IMEI only
    __tablename__ = "device_stock"
    id             = Column(String(36), primary_key=True, default=_new_id)
    brand          = Column(String(100), nullable=False)
    model          = Column(String(100), nullable=False)
    imei           = Column(String(32), index=True, nullable=False)
    stock_quantity = Column(Integer, nullable=False, default=1)
    purchase_price = Column(Float, nullable=False, default=0)
    service_cost   = Column(Float, nullable=True)
    created_by     = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at     = Column(DateTime, nullable=False, default=utcnow, index=True)
    __table_args__ = (
        CheckConstraint("stock_quantity >= 1", name="ck_device_stock_quantity"),
        CheckConstraint("purchase_price >= 0", name="ck_device_stock_price"),
    )


class Defect(Base):
    __tablename__ = "defects"
    id          = Column(String(36), primary_key=True, default=_new_id)
    device_id   = Column(String(36), ForeignKey("devices.id", ondelete="CASCADE"), nullable=False, index=True)
    defect_type = Column(String(32), nullable=False)
    description = Column(Text, nullable=False, default="")
    severity    = Column(String(10), nullable=False, default="medium")
    technician  = Column(String(100), nullable=True)
    detected_by = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    detected_at = Column(DateTime, nullable=False, default=utcnow, index=True)

    device = relationship("Device", back_populates="defects")

    __table_args__ = (
        CheckConstraint(_in("defect_type", DEFECT_TYPES), name="ck_defects_type"),
        CheckConstraint(_in("severity", SEVERITIES), name="ck_defects_severity"),
    )


class ServiceRequest(Base):
    __tablename__ = "service_requests"
    id           = Column(String(36), primary_key=True, default=_new_id)
    device_id    = Column(String(36), ForeignKey("devices.id", ondelete="CASCADE"), nullable=False, index=True)
    status       = Column(String(16), nullable=False, default="sent")
    notes        = Column(Text, nullable=True)
    service_cost = Column(Float, nullable=False, default=0)
    sent_by      = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    sent_at      = Column(DateTime, nullable=False, default=utcnow, index=True)
    completed_at = Column(DateTime, nullable=True)

    device = relationship("Device", back_populates="service_requests")

    __table_args__ = (
        CheckConstraint(_in("status", SERVICE_STATUSES), name="ck_service_requests_status"),
    )


class InitialInspection(Base):
    __tablename__ = "initial_inspections"
    id                = Column(String(36), primary_key=True, default=_new_id)
    device_id         = Column(String(36), ForeignKey("devices.id", ondelete="CASCADE"), nullable=False, index=True)
    imei              = Column(String(32), nullable=False)
    screen_broken     = Column(Boolean, nullable=False)
    camera_defect     = Column(Boolean, nullable=False)
    sound_defect      = Column(Boolean, nullable=False)
    back_cover_broken = Column(Boolean, nullable=False)
    body_damage       = Column(Boolean, nullable=False)
    battery_level     = Column(Integer, nullable=False)
    inspected_by      = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    inspected_at      = Column(DateTime, nullable=False, default=utcnow)

    device = relationship("Device", back_populates="inspections")

    __table_args__ = (
        CheckConstraint("battery_level BETWEEN 0 AND 100", name="ck_initial_inspections_battery"),
    )
