"""
Stock hub endpoints: quotes, search, history, comparison, market indices
"""
from fastapi import APIRouter, Depends

from finsight.api.deps import get_current_user, get_stocks
from finsight.api.responses import ok
from finsight.application.access import AuthenticatedUser
from finsight.application.stocks import StockService


router = APIRouter(prefix="/api/stocks", tags=["stocks"])


@router.get("/price")
def stock_price(
    ticker: str | None = None,
    user: AuthenticatedUser = Depends(get_current_user),
    stocks: StockService = Depends(get_stocks),
):
    quote, meta = stocks.price(ticker)
    return ok(quote, meta=meta)


@router.get("/search")
def search_stocks(
    q: str | None = None,
    user: AuthenticatedUser = Depends(get_current_user),
    stocks: StockService = Depends(get_stocks),
):
    return ok(stocks.search(user, q))


@router.get("/historical")
def historical_prices(
    ticker: str | None = None,
    period: str | None = None,
    user: AuthenticatedUser = Depends(get_current_user),
    stocks: StockService = Depends(get_stocks),
):
    history, meta = stocks.historical(ticker, period)
    return ok(history, meta=meta)


@router.get("/compare")
def compare_stocks(
    tickers: str | None = None,
    user: AuthenticatedUser = Depends(get_current_user),
    stocks: StockService = Depends(get_stocks),
):
    return ok(stocks.compare(tickers))


@router.get("/market-indices")
def market_indices(
    user: AuthenticatedUser = Depends(get_current_user),
    stocks: StockService = Depends(get_stocks),
):
    return ok(stocks.market_indices())
