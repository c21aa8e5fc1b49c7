"""
AI chat turn: persist the user message, ask the AI service, persist the
reply. The user message is stored before the upstream call so it survives
an AI outage; the fallback answer is stored like any other reply.
"""
import logging
import time

from sqlalchemy.orm import Session

from finsight.application.access import AuthenticatedUser
from finsight.application.chat_sessions import ChatSessionStore
from finsight.application.errors import ValidationError
from finsight.application.news import NewsService
from finsight.application.portfolio import get_portfolio_categories
from finsight.infrastructure.ai_gateway.client import AIGatewayClient
from finsight.infrastructure.db.models import Document
from finsight.utils.dates import utcnow

logger = logging.getLogger(__name__)

MAX_MESSAGE_LENGTH = 4000
HISTORY_CONTEXT_MESSAGES = 10
NO_ANSWER = "Unable to process request"


class ChatValidationError(ValidationError):
    pass


class ChatUseCase:
    def __init__(
        self,
        db: Session,
        gateway: AIGatewayClient,
        news: NewsService | None = None,
        clock=utcnow,
    ):
        self.db = db
        self.gateway = gateway
        self.news = news
        self.sessions = ChatSessionStore(db, clock)

    def execute(
        self,
        user: AuthenticatedUser,
        message: str,
        session_id: str | None = None,
        context: dict | None = None,
    ) -> tuple[dict, dict]:
        """
        Returns:
            (data, meta) for the response envelope

        Raises:
            ChatValidationError: empty or oversized message, malformed documentIds
            NotFoundError: session_id unknown or owned by someone else
        """
        started = time.monotonic()
        if not message or not message.strip():
            raise ChatValidationError("Message is required")
        if len(message) > MAX_MESSAGE_LENGTH:
            raise ChatValidationError("Message is too long (max 4000 characters)")

        context = dict(context or {})
        document_ids = context.get("documentIds") or []
        if not isinstance(document_ids, list) or not all(isinstance(d, str) and d for d in document_ids):
            raise ChatValidationError("context.documentIds must be a list of document IDs")
        attachments = self._attachments(user, document_ids)

        if session_id:
            session = self.sessions.get_session(session_id, user.user_id)
            history = list(session.conversation_history or [])
            self.sessions.append_message(session.session_id, user.user_id, {
                "role": "user",
                "content": message,
                "attachments": attachments,
            })
            is_new = False
        else:
            history = []
            session = self.sessions.create_session(
                user.user_id, message, organization_id=user.organization_id, attachments=attachments,
            )
            is_new = True

        payload = {
            "message": message,
            "sessionId": session.session_id,
            "userId": user.user_id,
            "organizationId": user.organization_id,
            "context": {
                **context,
                "conversationHistory": history[-HISTORY_CONTEXT_MESSAGES:],
                "recentFinancialNews": self._news_context(user),
            },
        }
        ai = self.gateway.chat(payload)

        answer = ai.get("final_report") or ai.get("response") or NO_ANSWER
        analysis = None
        if ai.get("success") and ai.get("final_report"):
            analysis = {
                "final_report": ai["final_report"],
                "companies": ai.get("companies") or [],
                "analysis_messages": ai.get("messages") or [],
                "success": ai["success"],
                "query": ai.get("query"),
            }

        self.sessions.append_message(session.session_id, user.user_id, {
            "role": "assistant",
            "content": answer,
            "citations": ai.get("citations") or [],
            "financial_analysis": analysis,
        })

        data = {
            "response": answer,
            "sessionId": session.session_id,
            "citations": ai.get("citations") or [],
            "confidence": ai.get("confidence", 0),
        }
        if is_new:
            data["sessionTitle"] = session.session_title
        if analysis is not None:
            data.update({
                "success": analysis["success"],
                "final_report": analysis["final_report"],
                "companies": analysis["companies"],
                "messages": analysis["analysis_messages"],
                "query": analysis["query"],
            })

        meta = {
            "processingTimeMs": int((time.monotonic() - started) * 1000),
            "isNewSession": is_new,
            "messageCount": len(session.conversation_history or []),
        }
        return data, meta

    def _attachments(self, user: AuthenticatedUser, document_ids: list) -> list:
        if not document_ids:
            return []
        names = {}
        if user.organization_id is not None:
            rows = (
                self.db.query(Document.id, Document.file_name)
                .filter(Document.id.in_(document_ids), Document.organization_id == user.organization_id)
                .all()
            )
            names = dict(rows)
        return [
            {"documentId": doc_id, "fileName": names.get(doc_id, f"Document {doc_id}")}
            for doc_id in document_ids
        ]

    def _news_context(self, user: AuthenticatedUser) -> list:
        if self.news is None:
            return []
        portfolio = get_portfolio_categories(self.db, user.user_id)
        return self.news.context_for_chat(portfolio)
