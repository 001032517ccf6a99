# refurb/serializers.py
from . import models
from .lifecycle import STATUS_LABELS, allowed_actions


def _iso(value):
    return value.isoformat() if value else None


def user_dict(u: models.User) -> dict:
    return {
        "id": u.id,
        "email": u.email,
        "full_name": u.full_name,
        "role": u.role,
        "is_approved": bool(u.is_approved),
        "created_at": _iso(u.created_at),
    }


def device_dict(d: models.Device) -> dict:
    return {
        "id": d.id,
        "imei": d.imei,
        "brand": d.brand,
        "model": d.model,
        "entry_date": _iso(d.entry_date),
        "status": d.status,
        "status_label": STATUS_LABELS.get(d.status, d.status),
        "next_actions": allowed_actions(d.status),
        "created_by": d.created_by,
        "created_at": _iso(d.created_at),
    }


def stock_dict(s: models.DeviceStock) -> dict:
    return {
        "id": s.id,
        "brand": s.brand,
        "model": s.model,
        "imei": s.imei,
        "stock_quantity": s.stock_quantity,
        "purchase_price": s.purchase_price,
        "service_cost": s.service_cost,
        "created_by": s.created_by,
        "created_at": _iso(s.created_at),
    }


def defect_dict(x: models.Defect) -> dict:
    return {
        "id": x.id,
        "device_id": x.device_id,
        "defect_type": x.defect_type,
        "description": x.description,
        "severity": x.severity,
        "technician": x.technician,
        "detected_by": x.detected_by,
        "detected_at": _iso(x.detected_at),
    }


def service_request_dict(sr: models.ServiceRequest) -> dict:
    return {
        "id": sr.id,
        "device_id": sr.device_id,
        "status": sr.status,
        "notes": sr.notes,
        "service_cost": sr.service_cost,
        "sent_by": sr.sent_by,
        "sent_at": _iso(sr.sent_at),
        "completed_at": _iso(sr.completed_at),
    }


def inspection_dict(i: models.InitialInspection) -> dict:
    return {
        "id": i.id,
        "device_id": i.device_id,
        "imei": i.imei,
        "screen_broken": i.screen_broken,
        "camera_defect": i.camera_defect,
        "sound_defect": i.sound_defect,
        "back_cover_broken": i.back_cover_broken,
        "body_damage": i.body_damage,
        "battery_level": i.battery_level,
        "inspected_by": i.inspected_by,
        "inspected_at": _iso(i.inspected_at),
    }
