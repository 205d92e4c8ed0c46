import time
from datetime import datetime, timezone
from typing import List, Optional

import structlog
from pydantic import BaseModel, ValidationError

from silentaid.client.api import AlertDelivery
from silentaid.client.location import format_sample
from silentaid.client.storage import LocalContact, LocationSample, ProfileStore, UserProfile
from silentaid.config import DEMO_USER_ID
from silentaid.models import AlertStatus

logger = structlog.get_logger(__name__)

DEFAULT_EMERGENCY_TYPE = "MEDICAL"
DEFAULT_MESSAGE = "SilentAid SOS triggered from web app"


class AlertRecord(BaseModel):
    id: str
    time: str
    userId: str
    user: Optional[UserProfile] = None
    location: Optional[LocationSample] = None
    contacts: List[LocalContact] = []
    emergencyType: str = DEFAULT_EMERGENCY_TYPE
    extraMessage: str = DEFAULT_MESSAGE
    status: str = AlertStatus.NEW.value

    def summary(self) -> str:
        if self.contacts:
            return f"SOS sent to {len(self.contacts)} contact(s)."
        return "SOS created (no contacts to notify)."

    def to_sos_payload(self) -> dict:
        """Body for ``POST /api/sos``."""
        loc = self.location
        return {
            "userId": self.userId,
            "userName": self.user.name if self.user else "",
            "phone": self.user.phone if self.user else "",
            "lat": loc.lat if loc else None,
            "lng": loc.lng if loc else None,
            "accuracy": loc.accuracy if loc else None,
            "emergencyType": self.emergencyType,
            "extraMessage": self.extraMessage,
        }


class AlertAssembler:
    """
    Builds an SOS alert from the current profile, location and contacts.

    The record is written to local storage before the delivery is handed the
    payload, so the alert survives whatever happens on the network.
    """

    def __init__(
        self,
        profile_store: ProfileStore,
        delivery: AlertDelivery,
        user_id: str = DEMO_USER_ID,
        emergency_type: str = DEFAULT_EMERGENCY_TYPE,
        clock=time.time,
    ):
        self.profile_store = profile_store
        self.delivery = delivery
        self.user_id = user_id
        self.emergency_type = emergency_type
        self.clock = clock

    def assemble_and_trigger(
        self,
        profile: Optional[UserProfile],
        location: Optional[LocationSample],
        contacts: List[LocalContact],
    ) -> AlertRecord:
        now = self.clock()
        record = AlertRecord(
            id=f"ALERT-{int(now * 1000)}",
            time=datetime.fromtimestamp(now, tz=timezone.utc).isoformat(),
            userId=(profile.id if profile and profile.id else self.user_id),
            user=profile,
            location=location,
            contacts=list(contacts),
            emergencyType=self.emergency_type,
        )

        self.profile_store.save_last_alert(record)
        logger.info("sos_alert_assembled", alert_id=record.id, contacts=len(record.contacts))

        self.delivery.send(record.to_sos_payload())
        return record

    def trigger_from_store(self) -> AlertRecord:
        """Assemble from whatever is currently in local storage."""
        return self.assemble_and_trigger(
            self.profile_store.load_user(),
            self.profile_store.load_last_location(),
            self.profile_store.load_contacts(),
        )


def load_alert(profile_store: ProfileStore) -> Optional[AlertRecord]:
    raw = profile_store.load_last_alert()
    if raw is None:
        return None
    try:
        return AlertRecord.model_validate(raw)
    except ValidationError:
        logger.warning("last_alert_unreadable")
        return None


def describe_last_alert(record: Optional[AlertRecord]) -> List[str]:
    """Lines for the follow-up screen shown after an SOS."""
    if record is None:
        return ["No SOS alert found. Trigger an SOS first."]

    name = record.user.name if record.user else "Unknown user"
    lines = [f"Active SOS from {name} at {record.time}"]
    if record.location:
        lines.append(format_sample(record.location))
    else:
        lines.append("Location not available.")
    return lines
