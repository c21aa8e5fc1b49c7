"""
AI investment tips: listing with filters, on-demand generation
"""
import logging
from datetime import timedelta

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from finsight.application.access import AuthenticatedUser
from finsight.application.errors import ServiceUnavailableError
from finsight.infrastructure.ai_gateway.client import AIGatewayClient
from finsight.infrastructure.db.models import CustomerProfile, InvestmentTip
from finsight.utils.dates import isoformat, utcnow

logger = logging.getLogger(__name__)

TIP_CATEGORIES = ("MARKET_ANALYSIS", "RISK_MANAGEMENT", "PORTFOLIO_OPTIMIZATION", "SECTOR_INSIGHTS")
MARKET_IMPACTS = ("LOW", "MEDIUM", "HIGH")
TIP_LIFETIME = timedelta(days=7)
PERSONALIZED_MINIMUM = 5


def tip_to_dict(tip: InvestmentTip) -> dict:
    return {
        "id": str(tip.id),
        "title": tip.title,
        "category": tip.category,
        "content": tip.content,
        "aiConfidenceScore": tip.ai_confidence_score,
        "marketImpact": tip.market_impact,
        "applicableRiskLevel": tip.applicable_risk_levels or [],
        "tags": tip.tags or [],
        "publishedAt": isoformat(tip.published_at),
        "expiresAt": isoformat(tip.expires_at),
        "isPersonalized": tip.is_personalized,
    }


def _confidence(value) -> int:
    """0..100; upstream sends ints, floats or numeric strings, anything else counts as 0"""
    try:
        score = int(float(value))
    except (TypeError, ValueError, OverflowError):
        return 0
    return max(0, min(100, score))


def store_generated_tips(db: Session, tips: list, now) -> int:
    """Persist AI-generated tips (active for seven days); returns the count stored"""
    stored = 0
    for tip in tips if isinstance(tips, list) else []:
        if not isinstance(tip, dict) or not tip.get("title") or not tip.get("content"):
            continue
        db.add(InvestmentTip(
            title=str(tip["title"])[:255],
            category=tip.get("category") or "MARKET_ANALYSIS",
            content=tip["content"],
            ai_confidence_score=_confidence(tip.get("aiConfidenceScore")),
            market_impact=tip.get("marketImpact") or "MEDIUM",
            applicable_risk_levels=list(tip.get("applicableRiskLevel") or []),
            tags=list(tip.get("tags") or []),
            sources_used=["AI Generated"],
            is_active=True,
            is_personalized=True,
            published_at=now,
            expires_at=now + TIP_LIFETIME,
        ))
        stored += 1
    db.commit()
    return stored


class ListTipsQuery:
    def __init__(self, db: Session, gateway: AIGatewayClient, clock=utcnow):
        self.db = db
        self.gateway = gateway
        self.clock = clock

    def _matching(self, category, risk_level, market_impact) -> list:
        now = self.clock()
        query = self.db.query(InvestmentTip).filter(
            InvestmentTip.is_active.is_(True),
            or_(InvestmentTip.expires_at.is_(None), InvestmentTip.expires_at > now),
        )
        if category:
            query = query.filter(InvestmentTip.category == category)
        if market_impact:
            query = query.filter(InvestmentTip.market_impact == market_impact)
        tips = query.order_by(InvestmentTip.published_at.desc(), InvestmentTip.id.desc()).all()
        if risk_level:
            tips = [t for t in tips if risk_level in (t.applicable_risk_levels or [])]
        return tips

    def execute(
        self,
        user: AuthenticatedUser,
        category: str | None = None,
        risk_level: str | None = None,
        market_impact: str | None = None,
        personalized: bool = False,
        limit: int = 10,
        offset: int = 0,
    ) -> dict:
        tips = self._matching(category, risk_level, market_impact)
        page = tips[offset:offset + limit]

        if personalized and len(page) < PERSONALIZED_MINIMUM:
            self._top_up(user, category, risk_level)
            tips = self._matching(category, risk_level, market_impact)
            page = tips[offset:offset + limit]

        total = len(tips)
        items = [tip_to_dict(t) for t in page]
        return {
            "tips": items,
            "pagination": {
                "total": total,
                "limit": limit,
                "offset": offset,
                "hasMore": offset + limit < total,
            },
            "summary": {
                "totalActiveTips": total,
                "personalizedTips": sum(1 for t in items if t["isPersonalized"]),
                "categories": sorted({t["category"] for t in items}),
                "averageConfidence": (
                    round(sum(t["aiConfidenceScore"] for t in items) / len(items)) if items else 0
                ),
            },
        }

    def _top_up(self, user: AuthenticatedUser, category, risk_level) -> None:
        """Generate more tips; failures are logged and the listing continues"""
        profile = self.db.query(CustomerProfile).filter(CustomerProfile.user_id == user.user_id).first()
        preferences = {
            "riskAppetite": profile.risk_appetite if profile else risk_level,
            "categories": [category] if category else None,
        }
        generated = self.gateway.generate_investment_tips(user.user_id, user.organization_id, preferences)
        try:
            store_generated_tips(self.db, generated.get("tips") or [], self.clock())
        except (SQLAlchemyError, ValueError, TypeError):
            self.db.rollback()
            logger.exception("Failed to store personalized tips for user %s", user.user_id)


class GenerateTipsUseCase:
    def __init__(self, db: Session, gateway: AIGatewayClient, clock=utcnow):
        self.db = db
        self.gateway = gateway
        self.clock = clock

    def execute(
        self,
        user: AuthenticatedUser,
        risk_appetite: str | None = None,
        categories: list | None = None,
        market_conditions: str | None = None,
    ) -> dict:
        preferences = {
            "riskAppetite": risk_appetite,
            "categories": categories,
            "marketConditions": market_conditions,
        }
        generated = self.gateway.generate_investment_tips(user.user_id, user.organization_id, preferences)
        tips = generated.get("tips") or []
        if not tips:
            raise ServiceUnavailableError("No tips could be generated at this time")

        try:
            count = store_generated_tips(self.db, tips, self.clock())
        except (ValueError, TypeError) as e:
            self.db.rollback()
            logger.exception("Malformed tips from the AI service for user %s", user.user_id)
            raise ServiceUnavailableError("No tips could be generated at this time") from e
        if count == 0:
            raise ServiceUnavailableError("No tips could be generated at this time")
        return {
            "tipsGenerated": count,
            "message": f"{count} personalized investment tips generated successfully",
        }


def deactivate_expired_tips(db: Session, now=None) -> int:
    """Scheduler job: flag tips past their expiry as inactive"""
    now = now or utcnow()
    count = (
        db.query(InvestmentTip)
        .filter(InvestmentTip.is_active.is_(True), InvestmentTip.expires_at.isnot(None), InvestmentTip.expires_at <= now)
        .update({InvestmentTip.is_active: False}, synchronize_session=False)
    )
    db.commit()
    return count
