"""
DocumentStore against a mocked Firestore client.
"""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import MagicMock

from storefront.repositories.documents import DocumentStore


def snap(doc_id: str, data: dict, exists: bool = True):
    return SimpleNamespace(id=doc_id, exists=exists, to_dict=lambda: data)


class TestReads:
    def test_get_document(self):
        db = MagicMock()
        db.collection.return_value.document.return_value.get.return_value = snap("a1", {"active": True})
        doc = DocumentStore(db).get_document("admins", "a1")

        assert doc.id == "a1"
        assert doc.data == {"active": True}
        db.collection.assert_called_with("admins")
        db.collection.return_value.document.assert_called_with("a1")

    def test_missing_document(self):
        db = MagicMock()
        db.collection.return_value.document.return_value.get.return_value = snap("a1", None, exists=False)
        assert DocumentStore(db).get_document("admins", "a1") is None

    def test_query_where_chains_filters(self):
        db = MagicMock()
        query = db.collection.return_value
        query.where.return_value = query
        query.stream.return_value = [snap("a1", {"email": "x@example.com"})]

        docs = DocumentStore(db).query_where("admins", [("email", "==", "x@example.com"), ("active", "==", True)])
        assert [d.id for d in docs] == ["a1"]
        assert query.where.call_count == 2


class TestSubscribe:
    def test_delivers_documents_and_returns_unsubscribe(self):
        db = MagicMock()
        watch = MagicMock()
        db.collection.return_value.on_snapshot.return_value = watch
        received = []

        unsubscribe = DocumentStore(db).subscribe("bookings", received.append)
        callback = db.collection.return_value.on_snapshot.call_args[0][0]
        callback([snap("b1", {"shop": "Downtown"}), snap("b2", None)], [], None)

        assert [[(d.id, d.data) for d in docs] for docs in received] == [[("b1", {"shop": "Downtown"}), ("b2", {})]]
        assert unsubscribe is watch.unsubscribe

    def test_registration_failure_reports_error(self):
        db = MagicMock()
        db.collection.return_value.on_snapshot.side_effect = RuntimeError("offline")
        errors = []

        unsubscribe = DocumentStore(db).subscribe("bookings", lambda docs: None, errors.append)
        unsubscribe()
        assert [str(e) for e in errors] == ["offline"]

    def test_decode_failure_reports_error(self):
        db = MagicMock()
        errors, received = [], []
        DocumentStore(db).subscribe("bookings", received.append, errors.append)
        callback = db.collection.return_value.on_snapshot.call_args[0][0]

        def _boom():
            raise ValueError("corrupt")

        callback([SimpleNamespace(id="b1", to_dict=_boom)], [], None)
        assert received == []
        assert len(errors) == 1


class TestWrites:
    def test_update_and_set(self):
        db = MagicMock()
        store = DocumentStore(db)
        store.update_document("bookings", "b1", {"status": "Cancelled"})
        store.set_document("users", "u1", {"name": "Asha"})

        doc_ref = db.collection.return_value.document.return_value
        doc_ref.update.assert_called_once_with({"status": "Cancelled"})
        doc_ref.set.assert_called_once_with({"name": "Asha"}, merge=True)
