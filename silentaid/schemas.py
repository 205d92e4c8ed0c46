from typing import Optional

from pydantic import BaseModel, field_validator


class InvalidPayload(Exception):
    """Request body failed validation; rendered as 400 {"error": message}."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


def is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def require(payload, fields, message):
    if not isinstance(payload, dict) or not all(payload.get(f) for f in fields):
        raise InvalidPayload(message)


class ContactCreate(BaseModel):
    userId: str
    name: str
    phone: str
    isEmergency: bool = False
    photo: Optional[str] = None

    @field_validator("userId", "name", "phone", mode="before")
    @classmethod
    def as_text(cls, v):
        return str(v)

    @field_validator("isEmergency", mode="before")
    @classmethod
    def truthy(cls, v):
        return bool(v)

    @field_validator("photo", mode="before")
    @classmethod
    def photo_or_none(cls, v):
        return str(v) if v else None

    @classmethod
    def parse(cls, payload):
        require(payload, ("userId", "name", "phone"), "userId, name, and phone are required")
        return cls.model_validate(payload)


class SOSCreate(BaseModel):
    userId: str
    userName: str = ""
    phone: str = ""
    lat: Optional[float] = None
    lng: Optional[float] = None
    accuracy: Optional[float] = None
    emergencyType: str = "GENERAL"
    extraMessage: str = ""

    @field_validator("userId", mode="before")
    @classmethod
    def as_text(cls, v):
        return str(v)

    @field_validator("userName", "phone", "extraMessage", mode="before")
    @classmethod
    def blank_default(cls, v):
        return str(v) if v else ""

    @field_validator("emergencyType", mode="before")
    @classmethod
    def type_default(cls, v):
        return str(v) if v else "GENERAL"

    @field_validator("lat", "lng", "accuracy", mode="before")
    @classmethod
    def number_or_none(cls, v):
        # numeric strings and booleans are not coordinates
        return v if is_number(v) else None

    @classmethod
    def parse(cls, payload):
        require(payload, ("userId",), "userId is required")
        return cls.model_validate(payload)
