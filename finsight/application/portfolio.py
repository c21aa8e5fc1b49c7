"""
Customer investment portfolio (investment products)
"""
from decimal import Decimal, InvalidOperation
from typing import List

from sqlalchemy.orm import Session

from finsight.application.access import AuthenticatedUser, get_accessible_or_404
from finsight.application.errors import ValidationError
from finsight.infrastructure.db.models import InvestmentProduct
from finsight.utils.dates import isoformat, utcnow

PRODUCT_CATEGORIES = ("INDEX_FUND", "REAL_ESTATE", "SIP", "GOVERNMENT_BOND", "STOCKS", "GOLD")
RISK_LEVELS = ("LOW", "MEDIUM", "HIGH", "CONSERVATIVE", "MODERATE", "AGGRESSIVE")


class PortfolioValidationError(ValidationError):
    pass


def product_to_dict(product: InvestmentProduct) -> dict:
    return {
        "id": product.id,
        "product_name": product.product_name,
        "product_category": product.product_category,
        "risk_level": product.risk_level,
        "expected_return": str(product.expected_return) if product.expected_return is not None else None,
        "description": product.description,
        "created_at": isoformat(product.created_at),
    }


def list_portfolio(db: Session, user: AuthenticatedUser) -> List[dict]:
    rows = (
        db.query(InvestmentProduct)
        .filter(InvestmentProduct.user_id == user.user_id)
        .order_by(InvestmentProduct.created_at.desc(), InvestmentProduct.id.desc())
        .all()
    )
    return [product_to_dict(p) for p in rows]


def get_portfolio_categories(db: Session, user_id: str) -> List[str]:
    """Category (or name, when uncategorized) of each holding; drives news personalization"""
    rows = (
        db.query(InvestmentProduct.product_category, InvestmentProduct.product_name)
        .filter(InvestmentProduct.user_id == user_id)
        .order_by(InvestmentProduct.id.asc())
        .all()
    )
    return [category or name for category, name in rows]


class AddInvestmentUseCase:
    def __init__(self, db: Session, clock=utcnow):
        self.db = db
        self.clock = clock

    def execute(
        self,
        user: AuthenticatedUser,
        product_name: str,
        product_category: str,
        risk_level: str,
        expected_return=None,
        description: str | None = None,
    ) -> dict:
        product_name = (product_name or "").strip()
        if not product_name or not product_category or not risk_level:
            raise PortfolioValidationError(
                "Missing required fields: product_name, product_category, and risk_level are required"
            )
        if product_category not in PRODUCT_CATEGORIES:
            raise PortfolioValidationError(
                f"Invalid product category. Valid options: {', '.join(PRODUCT_CATEGORIES)}"
            )
        if risk_level not in RISK_LEVELS:
            raise PortfolioValidationError(
                f"Invalid risk level. Valid options: {', '.join(RISK_LEVELS)}"
            )

        parsed_return = None
        if expected_return not in (None, ""):
            try:
                parsed_return = Decimal(str(expected_return))
            except (InvalidOperation, ValueError) as e:
                raise PortfolioValidationError("Expected return must be a number") from e
            if not parsed_return.is_finite():
                raise PortfolioValidationError("Expected return must be a number")

        product = InvestmentProduct(
            user_id=user.user_id,
            product_name=product_name,
            product_category=product_category,
            risk_level=risk_level,
            expected_return=parsed_return,
            description=description or None,
            created_at=self.clock(),
        )
        self.db.add(product)
        self.db.commit()
        return product_to_dict(product)


class RemoveInvestmentUseCase:
    def __init__(self, db: Session):
        self.db = db

    def execute(self, user: AuthenticatedUser, product_id: int) -> None:
        product = get_accessible_or_404(self.db, InvestmentProduct, product_id, user, "Investment not found")
        self.db.delete(product)
        self.db.commit()
