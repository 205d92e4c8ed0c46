"""
Client-side persistent state: the user's profile, emergency contacts, the last
alert and the last location sample.

Each value lives under its own key as an independent JSON blob. There is no
schema versioning; unreadable data reads as the caller's fallback.
"""
import json
import os
import tempfile
import time
from typing import List, Optional

import structlog
from pydantic import BaseModel, ValidationError

logger = structlog.get_logger(__name__)


class StorageKeys:
    USER = "sa_user"
    CONTACTS = "sa_contacts"
    LAST_ALERT = "sa_lastAlert"
    LAST_LOCATION = "sa_lastLocation"


class ProfileError(ValueError):
    """Input rejected by the profile or contact forms."""


# ---------------- KEY-VALUE BACKENDS ----------------

class LocalStore:
    def get(self, key: str, fallback=None):
        raise NotImplementedError

    def put(self, key: str, value) -> None:
        raise NotImplementedError

    def delete(self, key: str) -> None:
        raise NotImplementedError


class MemoryStore(LocalStore):
    """Values are kept serialised so callers never share mutable state."""

    def __init__(self):
        self._items = {}

    def get(self, key, fallback=None):
        raw = self._items.get(key)
        if raw is None:
            return fallback
        try:
            return json.loads(raw)
        except ValueError:
            return fallback

    def put(self, key, value):
        self._items[key] = json.dumps(value)

    def delete(self, key):
        self._items.pop(key, None)


class JsonFileStore(LocalStore):
    def __init__(self, path: str):
        self.path = path

    def _read_all(self) -> dict:
        try:
            with open(self.path, encoding="utf-8") as fh:
                data = json.load(fh)
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as exc:
            logger.warning("local_store_unreadable", path=self.path, error=str(exc))
            return {}
        return data if isinstance(data, dict) else {}

    def _write_all(self, data: dict):
        directory = os.path.dirname(os.path.abspath(self.path))
        os.makedirs(directory, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=directory, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(data, fh)
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

    def get(self, key, fallback=None):
        return self._read_all().get(key, fallback)

    def put(self, key, value):
        data = self._read_all()
        data[key] = value
        self._write_all(data)

    def delete(self, key):
        data = self._read_all()
        if key in data:
            del data[key]
            self._write_all(data)


# ---------------- RECORDS ----------------

class UserProfile(BaseModel):
    name: str
    phone: str
    bloodGroup: str = ""
    id: Optional[str] = None


class LocalContact(BaseModel):
    id: str
    name: str
    phone: str
    isPrimary: bool = False


class LocationSample(BaseModel):
    lat: float
    lng: float
    accuracy: Optional[float] = None
    updatedAt: str


# ---------------- PROFILE STORE ----------------

class ProfileStore:
    """Typed access to the client keys on top of a ``LocalStore``."""

    def __init__(self, store: LocalStore, clock=time.time):
        self.store = store
        self.clock = clock

    # --- user ---

    def save_user(self, name: str, phone: str, blood_group: str = "", user_id: Optional[str] = None) -> UserProfile:
        name = (name or "").strip()
        phone = (phone or "").strip()
        if not name or not phone:
            raise ProfileError("Name and phone are required.")
        user = UserProfile(name=name, phone=phone, bloodGroup=(blood_group or "").strip(), id=user_id)
        self.store.put(StorageKeys.USER, user.model_dump())
        return user

    def load_user(self) -> Optional[UserProfile]:
        return self._load(StorageKeys.USER, UserProfile)

    # --- contacts ---

    def load_contacts(self) -> List[LocalContact]:
        raw = self.store.get(StorageKeys.CONTACTS, [])
        if not isinstance(raw, list):
            return []
        contacts = []
        for item in raw:
            try:
                contacts.append(LocalContact.model_validate(item))
            except ValidationError:
                logger.warning("local_contact_skipped", item=item)
        return contacts

    def save_contacts(self, contacts: List[LocalContact]):
        self.store.put(StorageKeys.CONTACTS, [c.model_dump() for c in contacts])

    def add_contact(self, name: str, phone: str, is_primary: bool = False) -> LocalContact:
        name = (name or "").strip()
        phone = (phone or "").strip()
        if not name or not phone:
            raise ProfileError("Please enter both name and phone.")

        contacts = self.load_contacts()
        taken = {c.id for c in contacts}
        stamp = int(self.clock() * 1000)
        while str(stamp) in taken:
            stamp += 1

        contact = LocalContact(id=str(stamp), name=name, phone=phone, isPrimary=is_primary)
        contacts.append(contact)
        self.save_contacts(contacts)
        return contact

    def delete_contact_at(self, index: int) -> Optional[LocalContact]:
        contacts = self.load_contacts()
        if not 0 <= index < len(contacts):
            return None
        removed = contacts.pop(index)
        self.save_contacts(contacts)
        return removed

    def delete_contact(self, contact_id: str) -> Optional[LocalContact]:
        contacts = self.load_contacts()
        for index, contact in enumerate(contacts):
            if contact.id == contact_id:
                del contacts[index]
                self.save_contacts(contacts)
                return contact
        return None

    # --- last alert / location ---

    def save_last_alert(self, alert):
        self.store.put(StorageKeys.LAST_ALERT, alert.model_dump() if isinstance(alert, BaseModel) else alert)

    def load_last_alert(self) -> Optional[dict]:
        alert = self.store.get(StorageKeys.LAST_ALERT)
        return alert if isinstance(alert, dict) else None

    def save_last_location(self, sample: LocationSample):
        self.store.put(StorageKeys.LAST_LOCATION, sample.model_dump())

    def load_last_location(self) -> Optional[LocationSample]:
        return self._load(StorageKeys.LAST_LOCATION, LocationSample)

    def _load(self, key, model):
        raw = self.store.get(key)
        if raw is None:
            return None
        try:
            return model.model_validate(raw)
        except ValidationError:
            logger.warning("local_value_unreadable", key=key)
            return None
