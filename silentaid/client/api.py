"""
Outbound calls from the client to the Alert Service.

Delivery is best-effort, at-most-once and non-blocking: an alert or contact is
already committed to local storage before it is sent, a single request is
made, and failures are logged and reported but never retried or raised.
"""
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Optional

import requests
import structlog

from silentaid.client.storage import LocalContact
from silentaid.config import get_settings

logger = structlog.get_logger(__name__)

REQUEST_TIMEOUT = 5.0

CONTACT_SYNCED_TEXT = "Contact synced with server ✔"
CONTACT_SYNC_FAILED_TEXT = "Saved on device, but failed to sync to server (check backend)."


class BackendClient:
    def __init__(self, base_url: Optional[str] = None, session=None, timeout: float = REQUEST_TIMEOUT):
        self.base_url = (base_url or get_settings().backend_url).rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout

    def _post(self, path: str, payload: dict) -> dict:
        resp = self.session.post(f"{self.base_url}{path}", json=payload, timeout=self.timeout)
        resp.raise_for_status()
        return resp.json()

    def post_alert(self, payload: dict) -> dict:
        return self._post("/api/sos", payload)

    def post_contact(self, payload: dict) -> dict:
        return self._post("/api/contacts", payload)


class AlertDelivery:
    """Hands an SOS payload to the backend. ``send`` must not block or raise."""

    def send(self, payload: dict):
        raise NotImplementedError


class BackgroundDelivery(AlertDelivery):
    def __init__(self, client: BackendClient, executor: Optional[ThreadPoolExecutor] = None):
        self.client = client
        self.executor = executor or ThreadPoolExecutor(max_workers=1, thread_name_prefix="sos-delivery")

    def send(self, payload: dict) -> Future:
        return self.executor.submit(self._deliver, payload)

    def _deliver(self, payload: dict) -> Optional[dict]:
        try:
            result = self.client.post_alert(payload)
        except requests.RequestException as exc:
            logger.warning("alert_delivery_failed", user_id=payload.get("userId"), error=str(exc))
            return None
        logger.info("alert_delivered", alert_id=result.get("alertId"), user_id=payload.get("userId"))
        return result

    def shutdown(self, wait: bool = True):
        self.executor.shutdown(wait=wait)


class ContactSync:
    """Copies a locally saved contact to the server collection."""

    def __init__(self, client: BackendClient, user_id: str):
        self.client = client
        self.user_id = user_id

    def push(self, contact: LocalContact) -> str:
        payload = {
            "userId": self.user_id,
            "name": contact.name,
            "phone": contact.phone,
            "isEmergency": True,
            "photo": None,
        }
        try:
            result = self.client.post_contact(payload)
        except requests.RequestException as exc:
            logger.warning("contact_sync_failed", contact_id=contact.id, error=str(exc))
            return CONTACT_SYNC_FAILED_TEXT
        logger.info("contact_synced", contact_id=contact.id, server_id=result.get("contactId"))
        return CONTACT_SYNCED_TEXT
