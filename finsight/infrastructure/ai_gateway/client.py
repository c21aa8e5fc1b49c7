"""
External AI service client.

Bearer-keyed JSON over HTTP with a bounded timeout and no retries.
chat() and generate_investment_tips() degrade to canned fallback payloads;
analyze_document() and analyze_expenses() raise AIGatewayError so the
caller can record the failure.
"""
import logging
import uuid

import requests

logger = logging.getLogger(__name__)

FALLBACK_CHAT_RESPONSE = (
    "I'm currently unable to process your request. "
    "The AI service is temporarily unavailable. Please try again later."
)

FALLBACK_TIPS = [
    {
        "title": "Market Diversification Strategy",
        "category": "PORTFOLIO_OPTIMIZATION",
        "content": (
            "Consider diversifying your portfolio across different sectors and asset "
            "classes to reduce risk while maintaining growth potential."
        ),
        "aiConfidenceScore": 75,
        "marketImpact": "MEDIUM",
        "applicableRiskLevel": ["LOW", "MEDIUM", "HIGH"],
        "tags": ["diversification", "risk-management", "portfolio"],
    }
]


class AIGatewayError(Exception):
    """Upstream AI call failed (network, timeout, non-2xx, bad JSON)"""
    pass


class AIGatewayClient:
    def __init__(self, base_url: str, api_key: str, timeout: float = 30.0, http=requests):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self.http = http

    def _post(self, path: str, payload: dict) -> dict:
        url = f"{self.base_url}{path}"
        try:
            resp = self.http.post(
                url,
                json=payload,
                headers={
                    "Content-Type": "application/json",
                    "Authorization": f"Bearer {self.api_key}",
                },
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise AIGatewayError(f"AI service request to {path} failed: {e}") from e

        if not 200 <= resp.status_code < 300:
            raise AIGatewayError(f"AI service error on {path}: HTTP {resp.status_code}")

        try:
            data = resp.json()
        except ValueError as e:
            raise AIGatewayError(f"AI service returned invalid JSON on {path}") from e
        if not isinstance(data, dict):
            raise AIGatewayError(f"AI service returned unexpected payload on {path}")
        return data

    # ── Chat ──

    def chat(self, payload: dict) -> dict:
        """
        Forward a chat turn.

        payload: {message, sessionId, userId, organizationId?, context?}

        Never raises: any failure yields the fallback response with
        confidence 0.
        """
        try:
            return self._post("/chat", payload)
        except AIGatewayError:
            logger.exception("AI chat call failed, serving fallback response")
            return {
                "response": FALLBACK_CHAT_RESPONSE,
                "sessionId": payload.get("sessionId") or str(uuid.uuid4()),
                "confidence": 0,
                "processingTimeMs": 0,
            }

    # ── Document analysis ──

    def analyze_document(self, document_id: str, analysis_type: str, organization_id: str) -> dict:
        """
        Raises:
            AIGatewayError: on any upstream failure
        """
        return self._post("/analyze-document", {
            "documentId": document_id,
            "analysisType": analysis_type,
            "organizationId": organization_id,
        })

    # ── Expense analysis ──

    def analyze_expenses(self, payload: dict) -> dict:
        """
        payload: {userId, fileName, fileContent (base64), fileType, userContext}

        Raises:
            AIGatewayError: on any upstream failure, or when the service
                reports success: false
        """
        data = self._post("/analyze-expenses", payload)
        if data.get("success") is False:
            raise AIGatewayError(f"AI expense analysis failed: {data.get('error') or 'unknown error'}")
        return data

    # ── Investment tips ──

    def generate_investment_tips(
        self,
        user_id: str,
        organization_id: str | None = None,
        preferences: dict | None = None,
    ) -> dict:
        """Returns {"tips": [...]}; the single diversification tip on failure"""
        try:
            return self._post("/generate-investment-tips", {
                "userId": user_id,
                "organizationId": organization_id,
                "preferences": preferences or {},
            })
        except AIGatewayError:
            logger.exception("Investment tips generation failed, serving fallback tips")
            return {"tips": [dict(tip) for tip in FALLBACK_TIPS]}


def get_ai_gateway() -> AIGatewayClient:
    from finsight.config import get_settings

    settings = get_settings()
    return AIGatewayClient(
        settings.AI_SERVICE_URL,
        settings.AI_SERVICE_API_KEY,
        timeout=settings.AI_SERVICE_TIMEOUT,
    )
