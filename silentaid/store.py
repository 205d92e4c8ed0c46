"""
Document store used by the Alert Service.

A store hands out named collections. Every collection supports the same three
operations: ``put`` a new document (the store assigns ``id`` and
``createdAt``), ``get`` one by id, and ``list`` documents newest first,
optionally filtered by field equality and capped by a limit.

Two backends exist: ``MemoryDocumentStore`` (tests, demos) and
``SqlDocumentStore`` (SQLAlchemy models, the default).
"""
import copy
import itertools
import threading
from typing import Dict, List, Optional

import structlog
from fastapi import Request
from sqlalchemy.exc import SQLAlchemyError

from silentaid.database import make_engine, make_session_factory
from silentaid.models import Contact, SOSAlert, from_document, new_document_id, to_document, utcnow

CONTACTS_COLLECTION = "contacts"
ALERTS_COLLECTION = "alerts"

logger = structlog.get_logger(__name__)


class StoreError(Exception):
    """Raised when the underlying storage backend fails."""


class Collection:
    def put(self, data: dict) -> str:
        raise NotImplementedError

    def get(self, doc_id: str) -> Optional[dict]:
        raise NotImplementedError

    def list(self, where: Optional[dict] = None, limit: Optional[int] = None) -> List[dict]:
        raise NotImplementedError


class DocumentStore:
    def collection(self, name: str) -> Collection:
        raise NotImplementedError


# ---------------- MEMORY ----------------

class MemoryCollection(Collection):
    def __init__(self):
        self._lock = threading.Lock()
        self._docs: Dict[str, dict] = {}
        self._seq: Dict[str, int] = {}
        self._counter = itertools.count()

    def put(self, data: dict) -> str:
        doc = copy.deepcopy(data)
        doc_id = new_document_id()
        doc["id"] = doc_id
        doc["createdAt"] = utcnow()
        with self._lock:
            self._docs[doc_id] = doc
            self._seq[doc_id] = next(self._counter)
        return doc_id

    def get(self, doc_id: str) -> Optional[dict]:
        with self._lock:
            doc = self._docs.get(doc_id)
            return copy.deepcopy(doc) if doc is not None else None

    def list(self, where: Optional[dict] = None, limit: Optional[int] = None) -> List[dict]:
        where = where or {}
        with self._lock:
            docs = [
                d for d in self._docs.values()
                if all(d.get(k) == v for k, v in where.items())
            ]
            docs.sort(key=lambda d: (d["createdAt"], self._seq[d["id"]]), reverse=True)
            if limit is not None:
                docs = docs[:limit]
            return copy.deepcopy(docs)


class MemoryDocumentStore(DocumentStore):
    def __init__(self):
        self._collections: Dict[str, MemoryCollection] = {}
        self._lock = threading.Lock()

    def collection(self, name: str) -> Collection:
        with self._lock:
            if name not in self._collections:
                self._collections[name] = MemoryCollection()
            return self._collections[name]


# ---------------- SQL ----------------

class SqlCollection(Collection):
    def __init__(self, session_factory, model):
        self.session_factory = session_factory
        self.model = model

    def put(self, data: dict) -> str:
        row = from_document(self.model, data)
        db = self.session_factory()
        try:
            db.add(row)
            db.commit()
            db.refresh(row)
            return row.id
        except SQLAlchemyError as exc:
            db.rollback()
            raise StoreError(f"insert into {self.model.__tablename__} failed") from exc
        finally:
            db.close()

    def get(self, doc_id: str) -> Optional[dict]:
        db = self.session_factory()
        try:
            row = db.query(self.model).filter(self.model.id == doc_id).first()
            return to_document(row) if row else None
        except SQLAlchemyError as exc:
            raise StoreError(f"lookup in {self.model.__tablename__} failed") from exc
        finally:
            db.close()

    def list(self, where: Optional[dict] = None, limit: Optional[int] = None) -> List[dict]:
        db = self.session_factory()
        try:
            query = db.query(self.model)
            for field, value in (where or {}).items():
                query = query.filter(getattr(self.model, self.model.FIELDS[field]) == value)
            query = query.order_by(self.model.created_at.desc(), self.model.pk.desc())
            if limit is not None:
                query = query.limit(limit)
            return [to_document(row) for row in query.all()]
        except SQLAlchemyError as exc:
            raise StoreError(f"query on {self.model.__tablename__} failed") from exc
        finally:
            db.close()


class SqlDocumentStore(DocumentStore):
    MODELS = {
        CONTACTS_COLLECTION: Contact,
        ALERTS_COLLECTION: SOSAlert,
    }

    def __init__(self, session_factory):
        self.session_factory = session_factory

    @classmethod
    def from_url(cls, database_url: str):
        return cls(make_session_factory(make_engine(database_url)))

    def collection(self, name: str) -> Collection:
        try:
            model = self.MODELS[name]
        except KeyError:
            raise StoreError(f"unknown collection: {name}") from None
        return SqlCollection(self.session_factory, model)


def build_store(settings) -> DocumentStore:
    if settings.storage_backend == "memory":
        logger.info("store_selected", backend="memory")
        return MemoryDocumentStore()
    if settings.storage_backend != "sql":
        raise ValueError(f"Unsupported STORAGE_BACKEND: {settings.storage_backend}")
    logger.info("store_selected", backend="sql")
    return SqlDocumentStore.from_url(settings.database_url)


# ---------------- FASTAPI DEPENDENCY ----------------

def get_store(request: Request) -> DocumentStore:
    return request.app.state.store
