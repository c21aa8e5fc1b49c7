"""
Conversational session store.

One row per session; messages live in the conversation_history JSON array.
History is append-only and timestamps strictly increase within a session.
Every lookup is keyed by (session_id, owner): a session owned by someone
else is indistinguishable from one that does not exist.
"""
from datetime import datetime, timedelta
from typing import Any, Dict, List, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from finsight.application.errors import NotFoundError, ValidationError
from finsight.infrastructure.db.models import ChatSession
from finsight.utils.dates import isoformat, utcnow

MESSAGE_ROLES = ("user", "assistant")
TITLE_MAX_DERIVED = 50
TITLE_MAX_LENGTH = 100
PREVIEW_LENGTH = 100

SESSION_NOT_FOUND = "Session not found"


def derive_session_title(message: str) -> str:
    """First message, trimmed; cut at 50 characters with '...' when longer"""
    text = (message or "").strip()
    if len(text) <= TITLE_MAX_DERIVED:
        return text
    return text[:TITLE_MAX_DERIVED].rstrip() + "..."


def _parse_timestamp(value: str) -> datetime:
    return datetime.fromisoformat(value.rstrip("Z"))


class ChatSessionStore:
    def __init__(self, db: Session, clock=utcnow):
        self.db = db
        self.clock = clock

    # ── Lookup ──

    def get_session(self, session_id: str, owner_id: str) -> ChatSession:
        session = None
        if session_id:
            session = (
                self.db.query(ChatSession)
                .filter(ChatSession.session_id == session_id, ChatSession.user_id == owner_id)
                .first()
            )
        if session is None:
            raise NotFoundError(SESSION_NOT_FOUND)
        return session

    def get_history(self, session_id: str, owner_id: str) -> List[Dict[str, Any]]:
        return list(self.get_session(session_id, owner_id).conversation_history or [])

    def list_sessions(self, owner_id: str, limit: int = 20, offset: int = 0) -> Tuple[List[dict], int, int]:
        """
        Owner's sessions, most recently updated first

        Returns:
            (summaries, total_sessions, total_messages_on_page)
        """
        base = self.db.query(ChatSession).filter(ChatSession.user_id == owner_id)
        total = base.with_entities(func.count(ChatSession.session_id)).scalar() or 0
        rows = (
            base.order_by(ChatSession.last_updated_at.desc(), ChatSession.created_at.desc())
            .limit(limit)
            .offset(offset)
            .all()
        )
        summaries = [self.summarize(row) for row in rows]
        return summaries, total, sum(s["messageCount"] for s in summaries)

    @staticmethod
    def summarize(session: ChatSession) -> dict:
        history = session.conversation_history or []
        last = history[-1].get("content", "") if history else None
        return {
            "sessionId": session.session_id,
            "sessionTitle": session.session_title,
            "createdAt": isoformat(session.created_at),
            "lastUpdatedAt": isoformat(session.last_updated_at),
            "messageCount": len(history),
            "lastMessage": last[:PREVIEW_LENGTH] if last is not None else None,
        }

    @staticmethod
    def detail(session: ChatSession) -> dict:
        return {
            "sessionId": session.session_id,
            "sessionTitle": session.session_title,
            "createdAt": isoformat(session.created_at),
            "lastUpdatedAt": isoformat(session.last_updated_at),
            "conversationHistory": list(session.conversation_history or []),
        }

    # ── Mutation ──

    def create_session(
        self,
        owner_id: str,
        first_message: str,
        organization_id: str | None = None,
        attachments: list | None = None,
    ) -> ChatSession:
        """Open a session whose history starts with the user's first message"""
        now = self.clock()
        message = {
            "role": "user",
            "content": first_message,
            "timestamp": isoformat(now),
            "attachments": attachments or [],
        }
        session = ChatSession(
            user_id=owner_id,
            organization_id=organization_id,
            session_title=derive_session_title(first_message),
            created_at=now,
            last_updated_at=now,
            conversation_history=[message],
        )
        self.db.add(session)
        self.db.commit()
        return session

    def append_message(self, session_id: str, owner_id: str, message: Dict[str, Any]) -> Dict[str, Any]:
        """
        Append one message; returns the stored copy with its timestamp

        Raises:
            NotFoundError: missing session or not owned by owner_id
            ValidationError: unknown role
        """
        if message.get("role") not in MESSAGE_ROLES:
            raise ValidationError(f"Invalid message role: {message.get('role')}")

        session = self.get_session(session_id, owner_id)
        history = list(session.conversation_history or [])

        now = self.clock()
        if history:
            previous = _parse_timestamp(history[-1]["timestamp"])
            if now <= previous:
                now = previous + timedelta(microseconds=1)

        stored = {k: v for k, v in message.items() if v is not None}
        stored["timestamp"] = isoformat(now)
        history.append(stored)

        # New list object so the JSON column is flagged dirty
        session.conversation_history = history
        session.last_updated_at = now
        self.db.commit()
        return stored

    def rename_session(self, session_id: str, owner_id: str, title: str) -> ChatSession:
        title = (title or "").strip()
        if not session_id or not title:
            raise ValidationError("Session ID and title are required")
        if len(title) > TITLE_MAX_LENGTH:
            raise ValidationError("Session title is too long (max 100 characters)")

        session = self.get_session(session_id, owner_id)
        session.session_title = title
        session.last_updated_at = max(self.clock(), session.last_updated_at)
        self.db.commit()
        return session

    def delete_session(self, session_id: str, owner_id: str) -> None:
        session = self.get_session(session_id, owner_id)
        self.db.delete(session)
        self.db.commit()
