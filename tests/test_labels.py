import base64
from datetime import datetime
from types import SimpleNamespace

import pytest

from refurb import labels
from refurb.errors import ValidationError

DEVICE = SimpleNamespace(imei="356789012345678", brand="Xiaomi", model="Redmi Note 9")


def test_payload_key_order_and_decode():
    defects = [SimpleNamespace(defect_type="screen"), SimpleNamespace(defect_type="charging_port")]
    payload = labels.sale_label_payload(DEVICE, defects, 120)
    text = labels.encode_payload(payload)
    assert text.startswith('{"imei":"356789012345678","brand":"Xiaomi","model":"Redmi Note 9","defects"')
    assert " " not in text.replace("Redmi Note 9", "")
    assert labels.decode_payload(text) == {
        "imei": "356789012345678",
        "brand": "Xiaomi",
        "model": "Redmi Note 9",
        "defects": ["screen", "charging_port"],
        "totalCost": 120.0,
    }


def test_non_ascii_survives():
    device = SimpleNamespace(imei="1", brand="Türk Telekom", model="Çağ")
    text = labels.encode_payload(labels.defect_label_payload(device, []))
    assert "Türk" in text
    assert labels.decode_payload(text)["model"] == "Çağ"


def test_inspection_payload():
    inspection = SimpleNamespace(
        screen_broken=True, camera_defect=False, sound_defect=False,
        back_cover_broken=True, body_damage=False, battery_level=87,
        inspected_at=datetime(2024, 5, 1, 10, 30),
    )
    payload = labels.inspection_label_payload(DEVICE, inspection)
    assert list(payload) == ["imei", "brand", "model", "inspection", "date"]
    assert payload["inspection"]["batteryLevel"] == 87
    assert payload["date"] == "2024-05-01T10:30:00"


@pytest.mark.parametrize("text", ["not json", "[1, 2]", '{"brand": "x"}', '{"imei": 5}'])
def test_decode_rejects_garbage(text):
    with pytest.raises(ValidationError):
        labels.decode_payload(text)


def test_qr_data_url_is_png():
    url = labels.qr_data_url('{"imei":"1"}')
    prefix = "data:image/png;base64,"
    assert url.startswith(prefix)
    assert base64.b64decode(url[len(prefix):])[:8] == b"\x89PNG\r\n\x1a\n"
