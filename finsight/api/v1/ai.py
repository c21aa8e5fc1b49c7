"""
AI endpoints: chat, chat sessions, document analysis, investment tips
"""
from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from finsight.api.deps import get_current_user, get_db, get_gateway, get_news, get_queue
from finsight.api.responses import ok
from finsight.application.access import AuthenticatedUser
from finsight.application.analysis_queue import (
    AnalysisQueue, TriggerAnalysisUseCase, get_analysis_status,
)
from finsight.application.chat import ChatUseCase
from finsight.application.chat_sessions import ChatSessionStore
from finsight.application.errors import ValidationError
from finsight.application.investment_tips import GenerateTipsUseCase, ListTipsQuery
from finsight.application.news import NewsService
from finsight.infrastructure.ai_gateway.client import AIGatewayClient


router = APIRouter(prefix="/api/ai", tags=["ai"])


# === Request models ===

class ChatRequest(BaseModel):
    message: str | None = None
    sessionId: str | None = None
    context: dict | None = None  # documentIds, analysisType


class RenameSessionRequest(BaseModel):
    sessionId: str | None = None
    sessionTitle: str | None = None


class AnalyzeDocumentRequest(BaseModel):
    documentId: str | None = None
    analysisType: str | None = None


class GenerateTipsRequest(BaseModel):
    riskAppetite: str | None = None
    categories: list[str] | None = None
    marketConditions: str | None = None


# === Chat ===

@router.post("/chat")
def chat(
    req: ChatRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
    gateway: AIGatewayClient = Depends(get_gateway),
    news: NewsService = Depends(get_news),
):
    data, meta = ChatUseCase(db, gateway, news).execute(
        user, req.message, session_id=req.sessionId, context=req.context,
    )
    return ok(data, meta=meta)


@router.get("/chat")
def chat_history(
    sessionId: str | None = None,
    user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if not sessionId:
        raise ValidationError("Session ID is required")
    session = ChatSessionStore(db).get_session(sessionId, user.user_id)
    return ok(ChatSessionStore.detail(session))


# === Sessions ===

@router.get("/sessions")
def list_sessions(
    sessionId: str | None = None,
    limit: int = 20,
    offset: int = 0,
    user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    store = ChatSessionStore(db)
    if sessionId:
        return ok(ChatSessionStore.detail(store.get_session(sessionId, user.user_id)))

    limit = max(1, limit)
    offset = max(0, offset)
    sessions, total, messages = store.list_sessions(user.user_id, limit=limit, offset=offset)
    return ok({
        "sessions": sessions,
        "pagination": {
            "total": total,
            "limit": limit,
            "offset": offset,
            "hasMore": offset + limit < total,
        },
        "summary": {"totalSessions": total, "totalMessages": messages},
    })


@router.put("/sessions")
def rename_session(
    req: RenameSessionRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    session = ChatSessionStore(db).rename_session(req.sessionId, user.user_id, req.sessionTitle)
    return ok(ChatSessionStore.summarize(session), message="Session updated successfully")


@router.delete("/sessions")
def delete_session(
    sessionId: str | None = None,
    user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if not sessionId:
        raise ValidationError("Session ID is required")
    ChatSessionStore(db).delete_session(sessionId, user.user_id)
    return ok(message="Session deleted successfully")


# === Document analysis ===

@router.post("/analyze-document", status_code=202)
def analyze_document(
    req: AnalyzeDocumentRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
    queue: AnalysisQueue = Depends(get_queue),
):
    return ok(TriggerAnalysisUseCase(db, queue).execute(user, req.documentId, req.analysisType))


@router.get("/analyze-document")
def analysis_status(
    documentId: str | None = None,
    user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return ok(get_analysis_status(db, user, documentId))


# === Investment tips ===

@router.get("/investment-tips")
def list_investment_tips(
    category: str | None = None,
    riskLevel: str | None = None,
    marketImpact: str | None = None,
    personalized: bool = False,
    limit: int = 10,
    offset: int = 0,
    user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
    gateway: AIGatewayClient = Depends(get_gateway),
):
    result = ListTipsQuery(db, gateway).execute(
        user,
        category=category,
        risk_level=riskLevel,
        market_impact=marketImpact,
        personalized=personalized,
        limit=max(1, limit),
        offset=max(0, offset),
    )
    return ok(result)


@router.post("/investment-tips", status_code=201)
def generate_investment_tips(
    req: GenerateTipsRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
    gateway: AIGatewayClient = Depends(get_gateway),
):
    result = GenerateTipsUseCase(db, gateway).execute(
        user,
        risk_appetite=req.riskAppetite,
        categories=req.categories,
        market_conditions=req.marketConditions,
    )
    return ok({"tipsGenerated": result["tipsGenerated"]}, message=result["message"])
