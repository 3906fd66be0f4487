"""Tests for the SQL-backed document store and its snapshot subscriptions."""
from unittest.mock import Mock

import pytest
from sqlalchemy.exc import OperationalError

from errors import StoreError
from models import Document, db
from store import DocumentStore

PATH = 'artifacts/bullying-analyzer-v1/public/data/searches'


class TestDocumentStore:

    def test_append_assigns_id_and_timestamp(self, app, store):
        with app.app_context():
            doc_id = store.append(PATH, {'title': 'X', 'riskScore': 45}, owner_uid='anon-1')

            docs = store.snapshot(PATH)
            assert [d[0] for d in docs] == [doc_id]
            assert docs[0][1]['title'] == 'X'
            assert docs[0][1]['createdAt'] is not None
            assert db.session.get(Document, int(doc_id)).owner_uid == 'anon-1'

    def test_collections_are_separate(self, app, store):
        with app.app_context():
            store.append(PATH, {'title': 'X'})
            store.append('artifacts/other/public/data/searches', {'title': 'Y'})

            assert [body['title'] for _, body in store.snapshot(PATH)] == ['X']

    def test_subscribe_delivers_snapshot_now_and_after_append(self, app, store):
        with app.app_context():
            store.append(PATH, {'title': 'A'})
            snapshots = []

            unsubscribe = store.subscribe(PATH, snapshots.append)
            store.append(PATH, {'title': 'B'})

            assert [[body['title'] for _, body in snap] for snap in snapshots] == [['A'], ['A', 'B']]

            unsubscribe()
            store.append(PATH, {'title': 'C'})
            assert len(snapshots) == 2
            assert store.subscriber_count(PATH) == 0

    def test_listener_failure_goes_to_on_error(self, app, store):
        with app.app_context():
            on_error = Mock()
            store.subscribe(PATH, Mock(side_effect=ValueError('boom')), on_error)

            assert isinstance(on_error.call_args.args[0], ValueError)

    def test_append_failure_raises_store_error(self):
        fake_db = Mock()
        fake_db.session.commit.side_effect = OperationalError('INSERT', {}, Exception('disk full'))
        store = DocumentStore(fake_db)

        with pytest.raises(StoreError):
            store.append(PATH, {'title': 'X'})
        fake_db.session.rollback.assert_called_once_with()

    def test_read_failure_reaches_on_error(self):
        fake_db = Mock()
        fake_db.session.query.side_effect = OperationalError('SELECT', {}, Exception('gone'))
        store = DocumentStore(fake_db)
        on_snapshot, on_error = Mock(), Mock()

        store.subscribe(PATH, on_snapshot, on_error)

        on_snapshot.assert_not_called()
        assert isinstance(on_error.call_args.args[0], StoreError)
