from datetime import datetime

from loguru import logger

from risk import SearchRecord, demo_searches

FEED_LIMIT = 5


def _timestamp(value):
    if isinstance(value, datetime):
        return value.timestamp()
    return float(value)


def order_feed(records, limit=FEED_LIMIT):
    """Newest first by ``created_at``; records without a timestamp sort as the oldest."""
    ordered = sorted(
        records,
        key=lambda r: (r.created_at is not None, _timestamp(r.created_at) if r.created_at is not None else 0.0),
        reverse=True,
    )
    return ordered[:limit]


class LiveFeed:
    """Recent searches view model, kept current from store snapshots.

    ``on_change`` is called with the new record list every time the view is replaced.
    """

    def __init__(self, store, path, session=None, backend_configured=True, on_change=None, limit=FEED_LIMIT):
        self.store = store
        self.path = path
        self.session = session
        self.backend_configured = backend_configured
        self.on_change = on_change
        self.limit = limit
        self.records = []
        self.demo = False
        self._unsubscribe = None

    def start(self):
        if self.store is None or self.session is None or not self.backend_configured:
            self.demo = True
            self._replace(demo_searches())
            return self
        self._unsubscribe = self.store.subscribe(self.path, self._on_snapshot, self._on_error)
        return self

    def stop(self):
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def _on_snapshot(self, docs):
        records = [SearchRecord.from_document(doc_id, body) for doc_id, body in docs]
        self._replace(order_feed(records, self.limit))

    def _on_error(self, error):
        logger.error(f"Veri çekme hatası: {error}")

    def _replace(self, records):
        self.records = records
        if self.on_change is not None:
            self.on_change(records)

    def __enter__(self):
        return self.start()

    def __exit__(self, exc_type, exc, tb):
        self.stop()
