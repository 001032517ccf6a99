# refurb/schemas.py
from datetime import date
from pydantic import BaseModel, Field, EmailStr
from typing import Optional, List, Literal

Role = Literal["operator", "technician", "admin"]
Severity = Literal["low", "medium", "high"]


class SignupRequest(BaseModel):
    email: EmailStr
    password: str
    full_name: str
    role: Role = "operator"


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class UserCreate(BaseModel):
    email: EmailStr
    password: str = Field(min_length=6)
    full_name: str
    role: Role = "operator"


class UserUpdate(BaseModel):
    is_approved: Optional[bool] = None
    role: Optional[Role] = None


class DeviceCreate(BaseModel):
    imei: str
    brand: str
    model: str
    entry_date: Optional[date] = None


class StockCreate(BaseModel):
    brand: str
    model: str
    imei: str
    stock_quantity: int = Field(default=1, ge=1)
    purchase_price: float = Field(default=0, ge=0)


class DefectBatchCreate(BaseModel):
    device_id: str
    defect_types: List[str]
    description: str = ""
    severity: Severity = "medium"
    technician: Optional[str] = None


class InitialInspectionCreate(BaseModel):
    imei: str
    brand: str
    model: str
    screen_broken: Optional[bool] = None
    camera_defect: Optional[bool] = None
    sound_defect: Optional[bool] = None
    back_cover_broken: Optional[bool] = None
    body_damage: Optional[bool] = None
    # range checked in the workflow so the error matches the rest of the floor rules
    battery_level: Optional[int] = None


class ServiceSend(BaseModel):
    device_id: str
    notes: Optional[str] = None


class ServiceComplete(BaseModel):
    # sign checked in the workflow (negative cost -> ValidationError)
    service_cost: float = Field(allow_inf_nan=False)


class LabelScan(BaseModel):
    payload: str
