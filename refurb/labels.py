# refurb/labels.py
"""QR payloads for the printed labels.

The payload is compact JSON. Whatever a scanner reads back from the code goes
through :func:`decode_payload`, which must return the dict that was encoded.
"""
import base64
import json
from io import BytesIO
from typing import Iterable, Optional

import qrcode

from .errors import ValidationError

DEFECT_TYPE_LABELS = {
    "screen": "Screen",
    "battery": "Battery",
    "camera": "Camera",
    "software": "Software",
    "speaker": "Speaker",
    "microphone": "Microphone",
    "charging_port": "Charging port",
    "refurbishment": "Refurbishment",
    "other": "Other",
}

SEVERITY_LABELS = {"low": "Low", "medium": "Medium", "high": "High"}


def encode_payload(payload: dict) -> str:
    return json.dumps(payload, ensure_ascii=False, separators=(",", ":"))


def decode_payload(text: str) -> dict:
    try:
        data = json.loads(text)
    except (TypeError, ValueError):
        raise ValidationError("Scanned code is not a valid label payload") from None
    if not isinstance(data, dict) or not isinstance(data.get("imei"), str):
        raise ValidationError("Scanned code has no IMEI")
    return data


def _device_part(device) -> dict:
    return {"imei": device.imei, "brand": device.brand, "model": device.model}


def defect_label_payload(device, defects: Iterable) -> dict:
    return {**_device_part(device), "defects": [d.defect_type for d in defects]}


def sale_label_payload(device, defects: Iterable, total_cost: Optional[float]) -> dict:
    return {
        **_device_part(device),
        "defects": [d.defect_type for d in defects],
        "totalCost": float(total_cost or 0),
    }


def inspection_label_payload(device, inspection) -> dict:
    return {
        **_device_part(device),
        "inspection": {
            "screenBroken": inspection.screen_broken,
            "cameraDefect": inspection.camera_defect,
            "soundDefect": inspection.sound_defect,
            "backCoverBroken": inspection.back_cover_broken,
            "bodyDamage": inspection.body_damage,
            "batteryLevel": inspection.battery_level,
        },
        "date": inspection.inspected_at.isoformat(),
    }


def qr_png(text: str, box_size: int = 10, border: int = 1) -> bytes:
    qr = qrcode.QRCode(box_size=box_size, border=border)
    qr.add_data(text)
    qr.make(fit=True)
    buf = BytesIO()
    qr.make_image().save(buf, format="PNG")
    return buf.getvalue()


def qr_data_url(text: str) -> str:
    return "data:image/png;base64," + base64.b64encode(qr_png(text)).decode("ascii")
