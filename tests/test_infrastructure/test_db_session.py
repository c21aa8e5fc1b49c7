"""
Tests for session_scope (sessions opened outside a request)
"""
import pytest

from finsight.infrastructure.db.models import Organization
from finsight.infrastructure.db.session import session_scope


def test_committed_work_survives(session_factory):
    with session_scope(session_factory) as db:
        db.add(Organization(name="Kept", type="BANK"))
        db.commit()

    with session_scope(session_factory) as db:
        assert [o.name for o in db.query(Organization)] == ["Kept"]


def test_error_rolls_back_and_propagates(session_factory):
    with pytest.raises(RuntimeError):
        with session_scope(session_factory) as db:
            db.add(Organization(name="Lost", type="BANK"))
            db.flush()
            raise RuntimeError("boom")

    with session_scope(session_factory) as db:
        assert db.query(Organization).count() == 0
