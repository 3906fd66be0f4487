"""Shared document collection with snapshot subscriptions.

Documents live in one SQL table (``models.Document``). Every subscriber of a
collection path receives the full current snapshot, a list of ``(id, body)``
pairs, once when it subscribes and again after every successful append.
"""
import threading

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError

from errors import StoreError
from models import Document


class DocumentStore:

    def __init__(self, db):
        self.db = db
        self._lock = threading.Lock()
        self._subscribers = {}
        self._next_token = 0

    def snapshot(self, path):
        try:
            rows = (
                self.db.session.query(Document)
                .filter(Document.collection == path)
                .order_by(Document.id)
                .all()
            )
        except SQLAlchemyError as e:
            raise StoreError(f"Reading {path} failed: {e}") from e
        return [(str(row.id), dict(row.body, createdAt=row.created_at)) for row in rows]

    def append(self, path, body, owner_uid=None):
        """Insert a document and return its id. The creation time is assigned here."""
        doc = Document(collection=path, body=dict(body), owner_uid=owner_uid)
        try:
            self.db.session.add(doc)
            self.db.session.commit()
        except SQLAlchemyError as e:
            self.db.session.rollback()
            raise StoreError(f"Appending to {path} failed: {e}") from e
        doc_id = str(doc.id)
        logger.debug(f"Appended document {doc_id} to {path}")
        self._publish(path)
        return doc_id

    def subscribe(self, path, on_snapshot, on_error=None):
        """Register for snapshots of ``path``. Returns a callable that unsubscribes."""
        with self._lock:
            token = self._next_token
            self._next_token += 1
            self._subscribers.setdefault(path, {})[token] = (on_snapshot, on_error)

        self._deliver(path, on_snapshot, on_error)

        def unsubscribe():
            with self._lock:
                listeners = self._subscribers.get(path, {})
                listeners.pop(token, None)
                if not listeners:
                    self._subscribers.pop(path, None)

        return unsubscribe

    def subscriber_count(self, path):
        with self._lock:
            return len(self._subscribers.get(path, {}))

    def _publish(self, path):
        with self._lock:
            listeners = list(self._subscribers.get(path, {}).values())
        if not listeners:
            return
        try:
            docs = self.snapshot(path)
        except StoreError as e:
            for _, on_error in listeners:
                self._fail(on_error, e)
            return
        for on_snapshot, on_error in listeners:
            self._call(on_snapshot, on_error, docs)

    def _deliver(self, path, on_snapshot, on_error):
        try:
            docs = self.snapshot(path)
        except StoreError as e:
            self._fail(on_error, e)
            return
        self._call(on_snapshot, on_error, docs)

    def _call(self, on_snapshot, on_error, docs):
        try:
            on_snapshot(list(docs))
        except Exception as e:
            logger.exception("Snapshot listener raised")
            self._fail(on_error, e)

    @staticmethod
    def _fail(on_error, error):
        if on_error is None:
            logger.error(f"Subscription error: {error}")
            return
        on_error(error)
