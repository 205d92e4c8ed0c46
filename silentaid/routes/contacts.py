from typing import Any, Optional

import structlog
from fastapi import APIRouter, Body, Depends, Query

from silentaid.schemas import ContactCreate, InvalidPayload
from silentaid.store import CONTACTS_COLLECTION, DocumentStore, get_store

router = APIRouter(prefix="/api", tags=["contacts"])

logger = structlog.get_logger(__name__)


@router.post("/contacts", status_code=201)
def create_contact(payload: Any = Body(None), store: DocumentStore = Depends(get_store)):
    contact = ContactCreate.parse(payload)
    contact_id = store.collection(CONTACTS_COLLECTION).put(contact.model_dump())
    logger.info("contact_saved", contact_id=contact_id, user_id=contact.userId)
    return {"message": "Contact saved successfully", "contactId": contact_id}


@router.get("/contacts")
def list_contacts(
    userId: Optional[str] = Query(default=None, description="Owner of the contacts"),
    store: DocumentStore = Depends(get_store),
):
    if not userId:
        raise InvalidPayload("userId query param is required")
    return store.collection(CONTACTS_COLLECTION).list(where={"userId": userId})
