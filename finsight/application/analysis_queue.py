"""
Document analysis work queue.

Analysis runs off the request path: the trigger endpoint marks the document
PENDING and submits an AnalysisTask; the worker calls the AI service,
stores the result and reports the final status (ANALYZED or ERROR) through
a status callback.
"""
import logging
import time
from dataclasses import dataclass
from typing import Callable

from sqlalchemy.orm import Session

from finsight.application.access import (
    AuthenticatedUser, get_accessible_or_404, require_organization,
)
from finsight.application.documents import analysis_result_to_dict
from finsight.application.errors import ConflictError, ValidationError
from finsight.domain.document import (
    ANALYSIS_TYPES, ANALYZED, ERROR, PENDING, analysis_status_view,
)
from finsight.infrastructure.ai_gateway.client import AIGatewayClient, AIGatewayError
from finsight.infrastructure.db.models import Document, DocumentAnalysisResult
from finsight.infrastructure.db.session import session_scope
from finsight.utils.dates import utcnow

logger = logging.getLogger(__name__)

NOT_FOUND_MESSAGE = "Document not found or access denied"
ESTIMATED_TIME_MINUTES = 2
PROCESSING_PROGRESS = 50
PROCESSING_SECONDS_REMAINING = 60


@dataclass(frozen=True)
class AnalysisTask:
    document_id: str
    analysis_type: str
    organization_id: str


StatusCallback = Callable[[str, str], None]


def _pick(data: dict, *keys, default=None):
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return default


class AnalysisWorker:
    """Runs one task at a time, each with its own DB session"""

    def __init__(self, session_factory, gateway: AIGatewayClient, on_status: StatusCallback | None = None):
        self.session_factory = session_factory
        self.gateway = gateway
        self.on_status = on_status or self._write_status

    def run(self, task: AnalysisTask) -> str:
        """
        Any failure, upstream or while storing the result, is logged and
        reported as ERROR so the document never stays PENDING.
        """
        started = time.monotonic()
        try:
            data = self.gateway.analyze_document(task.document_id, task.analysis_type, task.organization_id)
            if not isinstance(data, dict):
                raise AIGatewayError(f"Unexpected analysis payload for {task.document_id}")
            elapsed_ms = int((time.monotonic() - started) * 1000)
            self._store_result(task, data, elapsed_ms)
        except Exception:
            logger.exception("Document analysis failed for %s", task.document_id)
            self.on_status(task.document_id, ERROR)
            return ERROR

        self.on_status(task.document_id, ANALYZED)
        return ANALYZED

    def _store_result(self, task: AnalysisTask, data: dict, elapsed_ms: int) -> None:
        with session_scope(self.session_factory) as db:
            result = (
                db.query(DocumentAnalysisResult)
                .filter(DocumentAnalysisResult.document_id == task.document_id)
                .first()
            )
            if result is None:
                result = DocumentAnalysisResult(document_id=task.document_id)
                db.add(result)

            # Re-analysis replaces the previous result
            result.analysis_type = task.analysis_type
            result.extracted_data = _pick(data, "extractedData", "extracted_data", default={})
            result.ai_summary = _pick(data, "aiSummary", "ai_summary", "summary", default="")
            result.key_findings = _pick(data, "keyFindings", "key_findings", default=[])
            result.risk_indicators = _pick(
                data, "riskIndicators", "risk_indicators", default={"level": "MEDIUM", "factors": []}
            )
            result.recommendations = _pick(data, "recommendations", default=[])
            result.confidence_score = float(_pick(data, "confidenceScore", "confidence_score", "confidence", default=0))
            result.processing_time_ms = int(_pick(data, "processingTimeMs", "processing_time_ms", default=elapsed_ms))
            result.processed_at = utcnow()
            db.commit()

    def _write_status(self, document_id: str, status: str) -> None:
        with session_scope(self.session_factory) as db:
            document = db.get(Document, document_id)
            if document is None:
                logger.warning("Document %s vanished before status %s could be stored", document_id, status)
                return
            document.status = status
            db.commit()


class AnalysisQueue:
    """
    Hands tasks to the background scheduler as one-off jobs.
    Without a running scheduler tasks run inline.
    """

    def __init__(self, worker: AnalysisWorker, scheduler=None):
        self.worker = worker
        self.scheduler = scheduler

    def submit(self, task: AnalysisTask) -> None:
        if self.scheduler is not None and self.scheduler.running:
            self.scheduler.add_job(
                self.worker.run,
                args=[task],
                id=f"document-analysis-{task.document_id}",
                replace_existing=True,
            )
            logger.info("Queued analysis of document %s", task.document_id)
            return
        self.worker.run(task)


# ── Use Cases ──

class TriggerAnalysisUseCase:
    def __init__(self, db: Session, queue: AnalysisQueue):
        self.db = db
        self.queue = queue

    def execute(self, user: AuthenticatedUser, document_id: str, analysis_type: str) -> dict:
        organization_id = require_organization(user)
        if not document_id or not analysis_type:
            raise ValidationError("Document ID and analysis type are required")
        if analysis_type not in ANALYSIS_TYPES:
            raise ValidationError("Invalid analysis type")

        document = get_accessible_or_404(self.db, Document, document_id, user, NOT_FOUND_MESSAGE)
        if document.status == ANALYZED:
            raise ConflictError("Document has already been analyzed")

        document.status = PENDING
        self.db.commit()

        self.queue.submit(AnalysisTask(document.id, analysis_type, organization_id))

        return {
            "documentId": document.id,
            "status": "PROCESSING",
            "message": "Document analysis started. Check status using the status endpoint.",
            "estimatedTimeMinutes": ESTIMATED_TIME_MINUTES,
        }


def get_analysis_status(db: Session, user: AuthenticatedUser, document_id: str) -> dict:
    require_organization(user)
    if not document_id:
        raise ValidationError("Document ID is required")

    document = get_accessible_or_404(db, Document, document_id, user, NOT_FOUND_MESSAGE)
    db.refresh(document)
    status = analysis_status_view(document.status)
    response = {"documentId": document.id, "status": status}

    if status == "COMPLETED":
        result = (
            db.query(DocumentAnalysisResult)
            .filter(DocumentAnalysisResult.document_id == document.id)
            .first()
        )
        if result is not None:
            response["analysisResult"] = analysis_result_to_dict(result)
    elif status == "PROCESSING":
        response["progress"] = PROCESSING_PROGRESS
        response["estimatedTimeRemaining"] = PROCESSING_SECONDS_REMAINING

    return response


def build_analysis_queue(scheduler=None) -> AnalysisQueue:
    from finsight.infrastructure.ai_gateway.client import get_ai_gateway
    from finsight.infrastructure.db.session import get_session_factory

    worker = AnalysisWorker(get_session_factory(), get_ai_gateway())
    return AnalysisQueue(worker, scheduler)
