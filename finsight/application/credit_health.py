"""
Credit health dashboard.

On first access a credit profile with sample accounts, factors,
recommendations and a six-month score history is seeded for the user.
Seed data comes from a random generator seeded with the user id, so the
same account always sees the same numbers.
"""
import calendar
import logging
import random
from datetime import date, timedelta
from decimal import Decimal
from typing import Callable

from sqlalchemy import func
from sqlalchemy.orm import Session

from finsight.domain.credit import calculate_utilization, clamp_score, get_score_rating, score_trend
from finsight.infrastructure.db.models import (
    CreditAccount, CreditAlert, CreditFactor, CreditProfile, CreditRecommendation,
    CreditScoreHistory, FinancialGoal, InvestmentProduct,
)
from finsight.utils.dates import isoformat, utcnow

logger = logging.getLogger(__name__)

PRIORITY_RANK = {"low": 0, "medium": 1, "high": 2, "critical": 3}
TOP_RECOMMENDATIONS = 5
RECENT_ALERTS = 10
HISTORY_MONTHS = 12
SEED_HISTORY_MONTHS = 6


def default_rng(user_id: str) -> random.Random:
    return random.Random(user_id)


def _num(value) -> float | None:
    return float(value) if value is not None else None


class CreditHealthService:
    def __init__(self, db: Session, rng_factory: Callable[[str], random.Random] = default_rng, clock=utcnow):
        self.db = db
        self.rng_factory = rng_factory
        self.clock = clock

    # ── Seeding ──

    def ensure_profile(self, user_id: str) -> CreditProfile:
        profile = self.db.query(CreditProfile).filter(CreditProfile.user_id == user_id).first()
        if profile is not None:
            return profile
        try:
            profile = self._seed(user_id)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        logger.info("Seeded credit profile for user %s (score %s)", user_id, profile.current_score)
        return profile

    def _has_financial_activity(self, user_id: str) -> bool:
        goals = self.db.query(func.count(FinancialGoal.id)).filter(FinancialGoal.user_id == user_id).scalar()
        products = (
            self.db.query(func.count(InvestmentProduct.id))
            .filter(InvestmentProduct.user_id == user_id)
            .scalar()
        )
        return bool(goals) or bool(products)

    def _seed(self, user_id: str) -> CreditProfile:
        rng = self.rng_factory(user_id)
        now = self.clock()
        today = now.date()
        active = self._has_financial_activity(user_id)

        score = clamp_score((720 if active else 650) + rng.randint(-40, 39))
        change = rng.randint(-15, 14)

        profile = CreditProfile(
            user_id=user_id,
            current_score=score,
            score_rating=get_score_rating(score),
            score_change_30d=change,
            score_change_90d=change * 2,
            score_trend=score_trend(change),
            last_updated=now,
        )
        self.db.add(profile)

        accounts = [
            ("credit_card", "Chase Sapphire Reserve", "Chase",
             rng.randint(500, 3499), 10000, "18.99", 98 + rng.random() * 2),
            ("credit_card", "Bank of America Cash Rewards", "Bank of America",
             rng.randint(200, 1699), 5000, "22.99", 95 + rng.random() * 5),
        ]
        if active:
            accounts.append(
                ("auto_loan", "Auto Loan - Honda Civic", "Honda Financial",
                 rng.randint(10000, 29999), None, "4.50", 100.0)
            )
        for account_type, name, institution, balance, limit, rate, history in accounts:
            self.db.add(CreditAccount(
                user_id=user_id,
                account_type=account_type,
                account_name=name,
                institution_name=institution,
                current_balance=Decimal(balance),
                credit_limit=Decimal(limit) if limit else None,
                interest_rate=Decimal(rate),
                payment_history_score=Decimal(f"{history:.2f}"),
                account_status="active",
                opened_date=today - timedelta(days=rng.randint(1, 365)),
            ))

        factors = [
            ("Payment History", "positive", 25,
             "You have made most payments on time",
             "Continue making all payments on time to maintain good credit"),
            ("Credit Utilization", "positive" if score > 700 else "negative", 15 if score > 700 else -10,
             f"Your credit utilization is {rng.randint(10, 39)}%",
             "Keep credit utilization below 30% for optimal score"),
            ("Length of Credit History", "positive" if active else "neutral", 10 if active else 0,
             f"Average account age is {rng.randint(2, 6)} years",
             "Keep older accounts open to maintain credit history length"),
        ]
        for name, impact, impact_score, description, recommendation in factors:
            self.db.add(CreditFactor(
                user_id=user_id,
                factor_name=name,
                impact_type=impact,
                impact_score=impact_score,
                description=description,
                recommendation=recommendation,
            ))

        self.db.add(CreditRecommendation(
            user_id=user_id,
            recommendation_type="pay_down_debt",
            title="Pay Down Credit Card Balances",
            description="Reducing your credit card balances can improve your utilization ratio and boost your credit score.",
            priority="high",
            potential_impact=25,
            estimated_timeline="3-6 months",
            created_at=now,
        ))
        if score < 700:
            self.db.add(CreditRecommendation(
                user_id=user_id,
                recommendation_type="payment_reminder",
                title="Set Up Payment Reminders",
                description="Ensure you never miss a payment by setting up automatic reminders or autopay.",
                priority="critical",
                potential_impact=50,
                estimated_timeline="1-3 months",
                created_at=now,
            ))

        # Monthly history walking back from today's score
        point = score
        for months_back in range(SEED_HISTORY_MONTHS):
            self.db.add(CreditScoreHistory(
                user_id=user_id,
                score=point,
                score_date=today - timedelta(days=30 * months_back),
            ))
            point = clamp_score(point - rng.randint(-8, 8))

        self.db.flush()
        return profile

    # ── Read ──

    def get_dashboard(self, user_id: str) -> tuple[dict, dict]:
        """Returns (data, meta) for the response envelope"""
        profile = self.ensure_profile(user_id)
        today = self.clock().date()

        accounts = (
            self.db.query(CreditAccount)
            .filter(CreditAccount.user_id == user_id, CreditAccount.account_status != "closed")
            .order_by(CreditAccount.current_balance.desc())
            .all()
        )
        factors = (
            self.db.query(CreditFactor)
            .filter(CreditFactor.user_id == user_id, CreditFactor.is_active.is_(True))
            .order_by(CreditFactor.impact_score.desc())
            .all()
        )
        recommendations = (
            self.db.query(CreditRecommendation)
            .filter(CreditRecommendation.user_id == user_id, CreditRecommendation.status == "active")
            .all()
        )
        recommendations.sort(
            key=lambda r: (PRIORITY_RANK.get(r.priority, 0), r.potential_impact), reverse=True
        )
        history = (
            self.db.query(CreditScoreHistory)
            .filter(
                CreditScoreHistory.user_id == user_id,
                CreditScoreHistory.score_date >= _months_ago(today, HISTORY_MONTHS),
            )
            .order_by(CreditScoreHistory.score_date.asc())
            .all()
        )
        alerts = (
            self.db.query(CreditAlert)
            .filter(CreditAlert.user_id == user_id)
            .order_by(CreditAlert.created_at.desc())
            .limit(RECENT_ALERTS)
            .all()
        )

        data = {
            "creditScore": {
                "score": profile.current_score,
                "rating": profile.score_rating,
                "lastUpdated": profile.last_updated.date().isoformat(),
                "change": profile.score_change_30d,
                "trend": profile.score_trend,
            },
            "creditFactors": [
                {
                    "name": f.factor_name,
                    "impact": f.impact_type,
                    "impactScore": f.impact_score,
                    "description": f.description,
                    "recommendation": f.recommendation,
                }
                for f in factors
            ],
            "creditAccounts": [account_to_dict(a) for a in accounts],
            "recommendations": [
                {
                    "id": r.id,
                    "type": r.recommendation_type,
                    "title": r.title,
                    "description": r.description,
                    "priority": r.priority,
                    "potentialImpact": r.potential_impact,
                    "estimatedTimeline": r.estimated_timeline,
                    "status": r.status,
                }
                for r in recommendations[:TOP_RECOMMENDATIONS]
            ],
            "scoreHistory": [{"score": h.score, "date": h.score_date.isoformat()} for h in history],
            "alerts": [
                {
                    "id": a.id,
                    "type": a.alert_type,
                    "title": a.title,
                    "message": a.message,
                    "severity": a.severity,
                    "isRead": a.is_read,
                    "createdAt": isoformat(a.created_at),
                }
                for a in alerts
            ],
        }
        meta = {
            "totalAccounts": len(data["creditAccounts"]),
            "totalRecommendations": len(data["recommendations"]),
            "unreadAlerts": sum(1 for a in alerts if not a.is_read),
        }
        return data, meta


def account_to_dict(account: CreditAccount) -> dict:
    data = {
        "id": account.id,
        "type": account.account_type,
        "name": account.account_name,
        "institutionName": account.institution_name,
        "balance": float(account.current_balance),
        "status": account.account_status,
        "paymentHistory": float(account.payment_history_score),
        "interestRate": _num(account.interest_rate),
        "minimumPayment": _num(account.minimum_payment),
    }
    if account.credit_limit is not None:
        data["limit"] = float(account.credit_limit)
        data["utilization"] = calculate_utilization(account.current_balance, account.credit_limit)
    return data


def _months_ago(today: date, months: int) -> date:
    year, month = divmod(today.month - 1 - months, 12)
    year += today.year
    month += 1
    return date(year, month, min(today.day, calendar.monthrange(year, month)[1]))
