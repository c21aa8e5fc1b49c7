"""
Financial news endpoint, personalized by the caller's portfolio
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from finsight.api.deps import get_current_user, get_db, get_news
from finsight.api.responses import ok
from finsight.application.access import AuthenticatedUser
from finsight.application.news import NewsService
from finsight.application.portfolio import get_portfolio_categories


router = APIRouter(prefix="/api/financial-news", tags=["news"])


@router.get("")
def financial_news(
    category: str = "general",
    search: str = "",
    page: int = 1,
    user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
    news: NewsService = Depends(get_news),
):
    portfolio = get_portfolio_categories(db, user.user_id)
    return ok(news.get_news(portfolio, category=category, search=search, page=max(1, page)))
