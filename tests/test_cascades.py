"""
Tests for the multi-collection delete runner.
"""

from unittest.mock import AsyncMock, MagicMock, patch

from utils.cascade_helper import CascadeStep, run_cascade


class FakeSession:
    """Stands in for a Motor client session and its transaction context."""

    def __init__(self):
        self.transactions_started = 0

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        return False

    def start_transaction(self):
        self.transactions_started += 1
        return self


def mock_collection(deleted=0, inserted=0):
    collection = MagicMock()
    collection.delete_many = AsyncMock(return_value=MagicMock(deleted_count=deleted))
    collection.delete_one = AsyncMock(return_value=MagicMock(deleted_count=deleted))
    collection.insert_many = AsyncMock(return_value=MagicMock(inserted_ids=list(range(inserted))))
    return collection


class TestRunCascade:
    """run_cascade"""

    async def test_transaction_wraps_every_step(self):
        session = FakeSession()
        client = MagicMock(start_session=AsyncMock(return_value=session))
        children = mock_collection(deleted=3)
        parent = mock_collection(deleted=1)
        notices = mock_collection(inserted=2)
        steps = [
            CascadeStep('children', children, 'delete_many', {'parent_id': 1}),
            CascadeStep('parent', parent, 'delete_one', {'_id': 1}),
            CascadeStep('notices', notices, 'insert_many', [{'n': 1}, {'n': 2}]),
        ]

        with patch('utils.cascade_helper.settings.USE_TRANSACTIONS', True), \
                patch('utils.cascade_helper.client', client):
            counts = await run_cascade(steps)

        assert counts == {'children': 3, 'parent': 1, 'notices': 2}
        assert session.transactions_started == 1
        children.delete_many.assert_awaited_once_with({'parent_id': 1}, session=session)
        parent.delete_one.assert_awaited_once_with({'_id': 1}, session=session)
        notices.insert_many.assert_awaited_once_with([{'n': 1}, {'n': 2}], session=session)

    async def test_without_transactions_no_session_is_opened(self):
        client = MagicMock(start_session=AsyncMock())
        children = mock_collection(deleted=2)
        empty_notices = mock_collection()
        steps = [
            CascadeStep('children', children, 'delete_many', {'parent_id': 1}),
            CascadeStep('notices', empty_notices, 'insert_many', []),
        ]

        with patch('utils.cascade_helper.settings.USE_TRANSACTIONS', False), \
                patch('utils.cascade_helper.client', client):
            counts = await run_cascade(steps)

        assert counts == {'children': 2, 'notices': 0}
        client.start_session.assert_not_called()
        children.delete_many.assert_awaited_once_with({'parent_id': 1})
        empty_notices.insert_many.assert_not_called()
