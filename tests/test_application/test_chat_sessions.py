"""
Tests for the conversational session store
"""
from datetime import datetime, timedelta

import pytest

from finsight.application.chat_sessions import ChatSessionStore, derive_session_title
from finsight.application.errors import NotFoundError, ValidationError
from finsight.infrastructure.db.models import ChatSession


class FrozenClock:
    """Clock that only moves when told to"""

    def __init__(self, start=datetime(2026, 5, 1, 9, 0)):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def store(db_session, clock):
    return ChatSessionStore(db_session, clock)


class TestTitle:
    def test_short_message_kept(self):
        assert derive_session_title("  How do ETFs work?  ") == "How do ETFs work?"

    def test_exactly_fifty_characters_kept(self):
        text = "x" * 50
        assert derive_session_title(text) == text

    def test_long_message_truncated(self):
        text = "Should I rebalance my portfolio toward bonds given the current rate outlook?"
        title = derive_session_title(text)
        assert title.endswith("...")
        assert title == text[:50].rstrip() + "..."


class TestCreateAndAppend:
    def test_create_starts_history(self, store, customer):
        session = store.create_session(customer.user_id, "Hello there")

        assert session.session_title == "Hello there"
        assert len(session.conversation_history) == 1
        assert session.conversation_history[0]["role"] == "user"
        assert session.conversation_history[0]["timestamp"] == "2026-05-01T09:00:00Z"

    def test_timestamps_strictly_increase_with_frozen_clock(self, store, customer):
        session = store.create_session(customer.user_id, "First")
        store.append_message(session.session_id, customer.user_id, {"role": "assistant", "content": "Second"})
        store.append_message(session.session_id, customer.user_id, {"role": "user", "content": "Third"})

        history = store.get_history(session.session_id, customer.user_id)
        stamps = [datetime.fromisoformat(m["timestamp"].rstrip("Z")) for m in history]
        assert [m["content"] for m in history] == ["First", "Second", "Third"]
        assert stamps[0] < stamps[1] < stamps[2]

    def test_append_updates_last_updated(self, store, customer, clock):
        session = store.create_session(customer.user_id, "First")
        clock.advance(minutes=5)
        store.append_message(session.session_id, customer.user_id, {"role": "assistant", "content": "Reply"})
        assert session.last_updated_at == datetime(2026, 5, 1, 9, 5)

    def test_append_persists(self, db_session, store, customer):
        session = store.create_session(customer.user_id, "First")
        store.append_message(session.session_id, customer.user_id, {"role": "assistant", "content": "Reply"})

        db_session.expire_all()
        reloaded = db_session.get(ChatSession, session.session_id)
        assert len(reloaded.conversation_history) == 2

    def test_non_owner_append_fails_like_missing_session(self, store, customer, analyst):
        session = store.create_session(customer.user_id, "Private")

        with pytest.raises(NotFoundError) as foreign:
            store.append_message(session.session_id, analyst.user_id, {"role": "user", "content": "hi"})
        with pytest.raises(NotFoundError) as missing:
            store.append_message("no-such-session", analyst.user_id, {"role": "user", "content": "hi"})

        assert str(foreign.value) == str(missing.value) == "Session not found"
        assert len(store.get_history(session.session_id, customer.user_id)) == 1

    def test_invalid_role(self, store, customer):
        session = store.create_session(customer.user_id, "First")
        with pytest.raises(ValidationError):
            store.append_message(session.session_id, customer.user_id, {"role": "system", "content": "x"})


class TestListRenameDelete:
    def test_list_is_owner_scoped_newest_first(self, store, customer, analyst, clock):
        first = store.create_session(customer.user_id, "Older")
        clock.advance(minutes=1)
        second = store.create_session(customer.user_id, "Newer")
        store.create_session(analyst.user_id, "Not mine")

        summaries, total, messages = store.list_sessions(customer.user_id)

        assert total == 2
        assert messages == 2
        assert [s["sessionId"] for s in summaries] == [second.session_id, first.session_id]

    def test_last_message_preview_capped(self, store, customer):
        session = store.create_session(customer.user_id, "Q")
        store.append_message(session.session_id, customer.user_id, {"role": "assistant", "content": "a" * 300})
        summary = ChatSessionStore.summarize(session)
        assert len(summary["lastMessage"]) == 100
        assert summary["messageCount"] == 2

    def test_rename(self, store, customer):
        session = store.create_session(customer.user_id, "Q")
        store.rename_session(session.session_id, customer.user_id, "Retirement planning")
        assert store.get_session(session.session_id, customer.user_id).session_title == "Retirement planning"

    def test_rename_too_long(self, store, customer):
        session = store.create_session(customer.user_id, "Q")
        with pytest.raises(ValidationError):
            store.rename_session(session.session_id, customer.user_id, "t" * 101)

    def test_delete_is_owner_gated(self, store, customer, analyst):
        session = store.create_session(customer.user_id, "Q")
        with pytest.raises(NotFoundError):
            store.delete_session(session.session_id, analyst.user_id)
        store.delete_session(session.session_id, customer.user_id)
        with pytest.raises(NotFoundError):
            store.get_session(session.session_id, customer.user_id)
