"""
Pytest fixtures for testing
"""
import random
from unittest.mock import Mock

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, JSON
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from finsight.api import deps
from finsight.application.access import ADMIN_ROLE, AuthenticatedUser
from finsight.application.analysis_queue import AnalysisQueue, AnalysisWorker
from finsight.application.news import NewsCache, NewsService, RequestBudget
from finsight.application.stocks import StockService
from finsight.auth import hash_password
from finsight.infrastructure.ai_gateway.client import AIGatewayClient
from finsight.infrastructure.db.models import Organization, TeamMembership, User
from finsight.infrastructure.db.session import Base
from finsight.infrastructure.security.tokens import TokenService
from finsight.infrastructure.storage.files import FileStorage

TEST_PASSWORD = "secret123"


@pytest.fixture
def db_engine():
    """In-memory SQLite shared across threads (TestClient, analysis worker)"""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    # SQLite doesn't support JSONB, remap to JSON for tests
    for table in Base.metadata.tables.values():
        for col in table.columns:
            if isinstance(col.type, JSONB):
                col.type = JSON()
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return sessionmaker(bind=db_engine, autoflush=False)


@pytest.fixture
def db_session(session_factory) -> Session:
    """Create database session for tests"""
    session = session_factory()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def tokens():
    return TokenService("test-secret")


@pytest.fixture
def storage(tmp_path):
    return FileStorage(tmp_path / "uploads")


@pytest.fixture
def gateway():
    """AI gateway double; tests set return values per call"""
    return Mock(spec=AIGatewayClient)


@pytest.fixture
def stock_service(gateway):
    """Stocks without a market data service: generated figures from a fixed seed"""
    return StockService(None, gateway, rng=random.Random(7))


@pytest.fixture
def news_service():
    """News without an API key: placeholder articles, no network"""
    return NewsService(NewsCache(), RequestBudget(), client=None)


# ── Accounts ──

def make_user(db, email, full_name="Test User", password=TEST_PASSWORD, is_active=True) -> User:
    user = User(
        full_name=full_name,
        email=email,
        password_hash=hash_password(password),
        is_active=is_active,
        jwt_version=1,
    )
    db.add(user)
    db.commit()
    return user


def identity(user: User, membership: TeamMembership | None = None) -> AuthenticatedUser:
    return AuthenticatedUser(
        user_id=user.id,
        email=user.email,
        full_name=user.full_name,
        jwt_version=user.jwt_version,
        organization_id=membership.organization_id if membership else None,
        role=membership.role if membership else None,
    )


def add_member(db, organization: Organization, email: str, role: str, full_name="Member") -> tuple:
    user = make_user(db, email, full_name=full_name)
    membership = TeamMembership(organization_id=organization.id, user_id=user.id, role=role)
    db.add(membership)
    db.commit()
    return user, membership


@pytest.fixture
def customer_user(db_session) -> User:
    return make_user(db_session, "customer@example.com", full_name="Casey Customer")


@pytest.fixture
def customer(customer_user) -> AuthenticatedUser:
    return identity(customer_user)


@pytest.fixture
def organization(db_session) -> Organization:
    org = Organization(name="Acme Capital", type="INVESTMENT")
    db_session.add(org)
    db_session.commit()
    return org


@pytest.fixture
def admin_member(db_session, organization):
    """(User, TeamMembership) of the organization's admin"""
    return add_member(db_session, organization, "admin@acme.example", ADMIN_ROLE, full_name="Ada Admin")


@pytest.fixture
def analyst_member(db_session, organization):
    return add_member(db_session, organization, "analyst@acme.example", "ANALYST", full_name="Andy Analyst")


@pytest.fixture
def org_admin(admin_member) -> AuthenticatedUser:
    return identity(*admin_member)


@pytest.fixture
def analyst(analyst_member) -> AuthenticatedUser:
    return identity(*analyst_member)


@pytest.fixture
def other_organization_admin(db_session) -> AuthenticatedUser:
    org = Organization(name="Other Bank", type="BANK")
    db_session.add(org)
    db_session.commit()
    return identity(*add_member(db_session, org, "admin@other.example", ADMIN_ROLE))


# ── API ──

@pytest.fixture
def client(session_factory, tokens, storage, gateway, news_service, stock_service):
    """TestClient with the DB and every external service swapped for test doubles"""
    from finsight.main import app

    def _get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    queue = AnalysisQueue(AnalysisWorker(session_factory, gateway))

    app.dependency_overrides[deps.get_db] = _get_db
    app.dependency_overrides[deps.get_tokens] = lambda: tokens
    app.dependency_overrides[deps.get_storage] = lambda: storage
    app.dependency_overrides[deps.get_gateway] = lambda: gateway
    app.dependency_overrides[deps.get_news] = lambda: news_service
    app.dependency_overrides[deps.get_queue] = lambda: queue
    app.dependency_overrides[deps.get_stocks] = lambda: stock_service
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(tokens):
    """Build an Authorization header for an account (and optional membership)"""
    def _headers(user: User, membership: TeamMembership | None = None) -> dict:
        token = tokens.issue(
            user_id=user.id,
            email=user.email,
            jwt_version=user.jwt_version,
            organization_id=membership.organization_id if membership else None,
            role=membership.role if membership else None,
        )
        return {"Authorization": f"Bearer {token}"}
    return _headers
