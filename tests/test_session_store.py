"""Tests for the session registry."""
import pytest

from core.exceptions import NotFoundError
from review.store import SessionStore


class TestSessionStore:

    def test_create_and_get(self):
        # Arrange
        store = SessionStore(review_threshold=0.9)

        # Act
        session = store.create(location="Bar", period="2024-03")

        # Assert
        assert store.get(session.session_id) is session
        assert session.review_threshold == 0.9
        assert session.location == "Bar"
        assert session.session_id in store
        assert len(store) == 1

    def test_sessions_are_independent(self):
        store = SessionStore()
        first, second = store.create(), store.create()
        assert first.session_id != second.session_id
        assert store.session_ids() == [first.session_id, second.session_id]

    def test_unknown_session(self):
        with pytest.raises(NotFoundError):
            SessionStore().get("missing")

    def test_discard(self):
        # Arrange
        store = SessionStore()
        session = store.create()

        # Act
        store.discard(session.session_id)
        store.discard("missing")

        # Assert
        assert len(store) == 0
        with pytest.raises(NotFoundError):
            store.get(session.session_id)
