import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, Float, Integer, String

from silentaid.database import Base


class AlertStatus(str, enum.Enum):
    NEW = "NEW"
    # reserved, nothing moves an alert past NEW yet
    ACKNOWLEDGED = "ACKNOWLEDGED"
    RESOLVED = "RESOLVED"


def new_document_id():
    return uuid.uuid4().hex


def utcnow():
    return datetime.now(timezone.utc)


class Contact(Base):
    __tablename__ = "contacts"

    # pk keeps insertion order for rows sharing a timestamp
    pk = Column(Integer, primary_key=True, autoincrement=True)
    id = Column(String(32), unique=True, index=True, nullable=False, default=new_document_id)
    user_id = Column(String, index=True, nullable=False)
    name = Column(String, nullable=False)
    phone = Column(String, nullable=False)
    is_emergency = Column(Boolean, nullable=False, default=False)
    photo = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    FIELDS = {
        "userId": "user_id",
        "name": "name",
        "phone": "phone",
        "isEmergency": "is_emergency",
        "photo": "photo",
        "createdAt": "created_at",
    }


class SOSAlert(Base):
    __tablename__ = "sos_alerts"

    pk = Column(Integer, primary_key=True, autoincrement=True)
    id = Column(String(32), unique=True, index=True, nullable=False, default=new_document_id)
    user_id = Column(String, index=True, nullable=False)
    user_name = Column(String, nullable=False, default="")
    phone = Column(String, nullable=False, default="")
    lat = Column(Float, nullable=True)
    lng = Column(Float, nullable=True)
    accuracy = Column(Float, nullable=True)
    emergency_type = Column(String, nullable=False, default="GENERAL")
    extra_message = Column(String, nullable=False, default="")
    status = Column(String, nullable=False, default=AlertStatus.NEW.value)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    FIELDS = {
        "userId": "user_id",
        "userName": "user_name",
        "phone": "phone",
        "lat": "lat",
        "lng": "lng",
        "accuracy": "accuracy",
        "emergencyType": "emergency_type",
        "extraMessage": "extra_message",
        "status": "status",
        "createdAt": "created_at",
    }


def to_document(row) -> dict:
    doc = {"id": row.id}
    for field, attr in row.FIELDS.items():
        doc[field] = getattr(row, attr)
    created = doc.get("createdAt")
    if created is not None and created.tzinfo is None:
        # sqlite drops the offset; stored values are always UTC
        doc["createdAt"] = created.replace(tzinfo=timezone.utc)
    return doc


def from_document(model, data: dict):
    return model(**{attr: data[field] for field, attr in model.FIELDS.items() if field in data})
