"""
FastAPI application factory
"""
import logging
import traceback
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.responses import PlainTextResponse
from starlette.exceptions import HTTPException
from starlette.middleware.base import BaseHTTPMiddleware

from finsight.api.responses import error_response
from finsight.api.v1 import (
    ai, auth, credit_health, customer, documents, expenses, goals, knowledge_base, news, stocks, team,
    uploads, user,
)
from finsight.application.errors import AppError
from finsight.application.scheduler import shutdown_scheduler, start_scheduler
from finsight.config import get_settings
from finsight.infrastructure.db.session import check_db_connection

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

HTTP_ERROR_CODES = {
    400: "validation_error",
    401: "unauthenticated",
    403: "forbidden",
    404: "not_found",
    405: "method_not_allowed",
    409: "conflict",
    503: "service_unavailable",
}


class ErrorLoggingMiddleware(BaseHTTPMiddleware):
    """Catches everything the exception handlers did not; the client never sees internals"""

    async def dispatch(self, request, call_next):
        try:
            return await call_next(request)
        except Exception:
            tb_str = traceback.format_exc()
            logger.error(f"\n{'='*60}\nERROR on {request.method} {request.url.path}\n{tb_str}{'='*60}")
            return error_response(500, "Internal server error")


@asynccontextmanager
async def lifespan(app: FastAPI):
    start_scheduler()
    try:
        yield
    finally:
        shutdown_scheduler()


def create_app() -> FastAPI:
    """
    Application factory - builds and configures the FastAPI app

    Returns:
        Configured FastAPI app
    """
    settings = get_settings()

    app = FastAPI(
        title="FinSight",
        debug=settings.DEBUG,
        lifespan=lifespan,
    )

    app.add_middleware(ErrorLoggingMiddleware)

    # Error envelope
    @app.exception_handler(AppError)
    async def app_error_handler(request, exc: AppError):
        return error_response(exc.status_code, exc.message, exc.code)

    @app.exception_handler(HTTPException)
    async def http_error_handler(request, exc: HTTPException):
        return error_response(exc.status_code, str(exc.detail), HTTP_ERROR_CODES.get(exc.status_code))

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request, exc: RequestValidationError):
        errors = exc.errors()
        detail = "Invalid request"
        if errors:
            first = errors[0]
            field = ".".join(str(part) for part in first.get("loc", ())[1:])
            detail = f"{field}: {first.get('msg')}" if field else first.get("msg", detail)
        return error_response(400, detail, "validation_error")

    # Routers
    app.include_router(auth.router)
    app.include_router(user.router)
    app.include_router(goals.router)
    app.include_router(documents.router)
    app.include_router(ai.router)
    app.include_router(credit_health.router)
    app.include_router(customer.router)
    app.include_router(knowledge_base.router)
    app.include_router(team.router)
    app.include_router(news.router)
    app.include_router(stocks.router)
    app.include_router(expenses.router)
    app.include_router(uploads.router)

    # Health checks
    @app.get("/health", response_class=PlainTextResponse, tags=["system"])
    def health():
        """Health check endpoint"""
        return "ok"

    @app.get("/ready", response_class=PlainTextResponse, tags=["system"])
    def ready():
        """Readiness check endpoint (pings the database)"""
        check_db_connection()
        return "ok"

    return app


# Create app instance
app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "finsight.main:app",
        host="127.0.0.1",
        port=8000,
        reload=True,
    )
