"""
Thin document-store layer over the Firestore client.

Everything the services need from Firestore goes through `DocumentStore`, so the
services can be exercised against an in-memory store in tests.
"""
import logging
from typing import Any, Callable, Dict, Iterable, List, NamedTuple, Optional, Tuple

from google.cloud.firestore_v1 import SERVER_TIMESTAMP
from google.cloud.firestore_v1.base_query import FieldFilter

logger = logging.getLogger("storefront.store")

ADMINS = "admins"
USERS = "users"
BOOKINGS = "bookings"

__all__ = ["ADMINS", "USERS", "BOOKINGS", "SERVER_TIMESTAMP", "Document", "DocumentStore"]


class Document(NamedTuple):
    id: str
    data: Dict[str, Any]


SnapshotCallback = Callable[[List[Document]], None]
ErrorCallback = Callable[[Exception], None]


class DocumentStore:
    """Firestore-backed implementation of the document-store operations."""

    def __init__(self, db):
        self._db = db

    def get_document(self, collection: str, doc_id: str) -> Optional[Document]:
        snap = self._db.collection(collection).document(doc_id).get()
        if not snap.exists:
            return None
        return Document(snap.id, snap.to_dict() or {})

    def list_documents(self, collection: str) -> List[Document]:
        return [Document(d.id, d.to_dict() or {}) for d in self._db.collection(collection).stream()]

    def query_documents(self, collection: str, field: str, op: str, value: Any) -> List[Document]:
        return self.query_where(collection, [(field, op, value)])

    def query_where(self, collection: str, filters: Iterable[Tuple[str, str, Any]]) -> List[Document]:
        query = self._db.collection(collection)
        for field, op, value in filters:
            query = query.where(filter=FieldFilter(field, op, value))
        return [Document(d.id, d.to_dict() or {}) for d in query.stream()]

    def subscribe(
        self,
        collection: str,
        on_snapshot: SnapshotCallback,
        on_error: Optional[ErrorCallback] = None,
    ) -> Callable[[], None]:
        """
        Live-listen to a whole collection. Every push delivers the full document list.
        Returns the unsubscribe callable.
        """
        def _callback(col_snapshot, changes, read_time):
            try:
                docs = [Document(d.id, d.to_dict() or {}) for d in col_snapshot]
            except Exception as exc:
                logger.exception("Snapshot decode failed for %s", collection)
                if on_error:
                    on_error(exc)
                return
            on_snapshot(docs)

        try:
            watch = self._db.collection(collection).on_snapshot(_callback)
        except Exception as exc:
            logger.exception("Listener registration failed for %s", collection)
            if on_error:
                on_error(exc)
            return lambda: None
        return watch.unsubscribe

    def update_document(self, collection: str, doc_id: str, fields: Dict[str, Any]) -> None:
        self._db.collection(collection).document(doc_id).update(fields)

    def set_document(self, collection: str, doc_id: str, fields: Dict[str, Any], merge: bool = True) -> None:
        self._db.collection(collection).document(doc_id).set(fields, merge=merge)
