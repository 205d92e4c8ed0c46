"""
Read-only HTML view of the most recent SOS alerts, for operators.
"""
import os
from datetime import datetime

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates

from silentaid.routes.sos import RECENT_ALERTS_LIMIT
from silentaid.store import ALERTS_COLLECTION, DocumentStore, get_store

router = APIRouter(tags=["dashboard"])

TEMPLATES_DIR = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "templates")
templates = Jinja2Templates(directory=TEMPLATES_DIR)


def format_location(alert: dict) -> str:
    lat, lng = alert.get("lat"), alert.get("lng")
    if lat is None or lng is None:
        return "Not provided"
    text = f"Lat: {lat:.4f}, Lng: {lng:.4f}"
    if alert.get("accuracy") is not None:
        text += f" (±{round(alert['accuracy'])} m)"
    return text


def dashboard_row(alert: dict) -> dict:
    user = alert.get("userName") or alert.get("userId")
    if alert.get("phone"):
        user = f"{user} ({alert['phone']})"
    created = alert.get("createdAt")
    return {
        "alert": alert,
        "user": user,
        "time": created.isoformat() if isinstance(created, datetime) else (created or "-"),
        "location": format_location(alert),
    }


@router.get("/dashboard", response_class=HTMLResponse)
def dashboard(request: Request, store: DocumentStore = Depends(get_store)):
    alerts = store.collection(ALERTS_COLLECTION).list(limit=RECENT_ALERTS_LIMIT)
    return templates.TemplateResponse(
        request,
        "dashboard.html",
        {"rows": [dashboard_row(a) for a in alerts], "limit": RECENT_ALERTS_LIMIT},
    )
