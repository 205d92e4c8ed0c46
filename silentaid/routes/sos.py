from typing import Any

import structlog
from fastapi import APIRouter, Body, Depends, HTTPException

from silentaid.models import AlertStatus
from silentaid.schemas import SOSCreate
from silentaid.store import ALERTS_COLLECTION, DocumentStore, get_store

router = APIRouter(prefix="/api", tags=["sos"])

logger = structlog.get_logger(__name__)

RECENT_ALERTS_LIMIT = 50


# -------------------
# Trigger SOS
# -------------------
@router.post("/sos", status_code=201)
def create_sos(payload: Any = Body(None), store: DocumentStore = Depends(get_store)):
    sos = SOSCreate.parse(payload)

    alert = sos.model_dump()
    alert["status"] = AlertStatus.NEW.value
    alert_id = store.collection(ALERTS_COLLECTION).put(alert)

    logger.info(
        "sos_alert_saved",
        alert_id=alert_id,
        user_id=sos.userId,
        emergency_type=sos.emergencyType,
        has_location=sos.lat is not None and sos.lng is not None,
    )
    return {"message": "SOS alert stored successfully", "alertId": alert_id}


# -------------------
# Latest SOS alerts
# -------------------
@router.get("/alerts")
def list_alerts(store: DocumentStore = Depends(get_store)):
    return store.collection(ALERTS_COLLECTION).list(limit=RECENT_ALERTS_LIMIT)


@router.get("/alerts/{alert_id}")
def get_alert(alert_id: str, store: DocumentStore = Depends(get_store)):
    alert = store.collection(ALERTS_COLLECTION).get(alert_id)
    if alert is None:
        raise HTTPException(status_code=404, detail="Alert not found")
    return alert
