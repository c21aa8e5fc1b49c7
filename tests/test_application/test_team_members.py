"""
Tests for organization team management
"""
import pytest

from finsight.application.errors import ConflictError, NotFoundError, PermissionDeniedError
from finsight.application.team import (
    AddTeamMemberUseCase, ListTeamQuery, RemoveTeamMemberUseCase, TeamValidationError,
    UpdateTeamMemberUseCase, get_team_member,
)
from finsight.auth import verify_password
from finsight.infrastructure.db.models import TeamMembership, User

from conftest import add_member, identity


class TestAddMember:
    def test_admin_adds_member(self, db_session, org_admin):
        member = AddTeamMemberUseCase(db_session).execute(
            org_admin, "Lena Lender", "Lena@Acme.example", "secret1", "LENDING_OFFICER",
        )

        user = db_session.get(User, member["id"])
        assert member["role"] == "LENDING_OFFICER"
        assert member["email"] == "lena@acme.example"
        assert verify_password("secret1", user.password_hash)
        assert db_session.query(TeamMembership).filter_by(user_id=user.id).one().organization_id == org_admin.organization_id

    def test_non_admin_refused(self, db_session, analyst):
        with pytest.raises(PermissionDeniedError):
            AddTeamMemberUseCase(db_session).execute(analyst, "X", "x@acme.example", "secret1", "ANALYST")

    @pytest.mark.parametrize("args, message", [
        (("", "x@acme.example", "secret1", "ANALYST"), "All fields are required"),
        (("X", "x@acme.example", "secret1", "INTERN"), "Invalid role"),
    ])
    def test_validation(self, db_session, org_admin, args, message):
        with pytest.raises(TeamValidationError, match=message):
            AddTeamMemberUseCase(db_session).execute(org_admin, *args)

    def test_duplicate_email(self, db_session, org_admin, analyst_member):
        with pytest.raises(ConflictError, match="Email already registered"):
            AddTeamMemberUseCase(db_session).execute(org_admin, "Dup", "analyst@acme.example", "secret1", "ANALYST")


class TestListAndGet:
    def test_list_with_summary(self, db_session, org_admin, analyst_member, other_organization_admin):
        result = ListTeamQuery(db_session).execute(org_admin)

        assert result["pagination"]["total"] == 2
        assert result["summary"]["activeMembers"] == 2
        assert result["summary"]["roleDistribution"] == {"ADMIN": 1, "ANALYST": 1}

    def test_role_filter(self, db_session, org_admin, analyst_member):
        result = ListTeamQuery(db_session).execute(org_admin, role="ANALYST")
        assert [m["email"] for m in result["teamMembers"]] == ["analyst@acme.example"]

    def test_member_of_other_organization_is_not_found(self, db_session, org_admin, other_organization_admin):
        with pytest.raises(NotFoundError, match="Team member not found"):
            get_team_member(db_session, org_admin, other_organization_admin.user_id)


class TestUpdateMember:
    def test_role_change_revokes_tokens(self, db_session, org_admin, analyst_member):
        user, _ = analyst_member
        result = UpdateTeamMemberUseCase(db_session).execute(org_admin, user.id, role="RISK_MANAGER")

        assert result["role"] == "RISK_MANAGER"
        assert user.jwt_version == 2

    def test_reactivation_keeps_tokens(self, db_session, org_admin, analyst_member):
        user, _ = analyst_member
        uc = UpdateTeamMemberUseCase(db_session)
        uc.execute(org_admin, user.id, is_active=False)
        uc.execute(org_admin, user.id, is_active=True)

        assert user.is_active is True
        assert user.jwt_version == 2

    def test_cannot_modify_self(self, db_session, org_admin):
        with pytest.raises(PermissionDeniedError, match="your own account"):
            UpdateTeamMemberUseCase(db_session).execute(org_admin, org_admin.user_id, role="ANALYST")

    def test_no_fields(self, db_session, org_admin, analyst_member):
        with pytest.raises(TeamValidationError, match="No valid fields"):
            UpdateTeamMemberUseCase(db_session).execute(org_admin, analyst_member[0].id)

    def test_last_admin_cannot_be_demoted(self, db_session, organization, org_admin):
        second = identity(*add_member(db_session, organization, "admin2@acme.example", "ADMIN"))
        UpdateTeamMemberUseCase(db_session).execute(second, org_admin.user_id, role="ANALYST")

        # org_admin still holds an ADMIN token; second is now the only admin
        with pytest.raises(PermissionDeniedError, match="last admin"):
            UpdateTeamMemberUseCase(db_session).execute(org_admin, second.user_id, is_active=False)
        assert db_session.get(User, second.user_id).is_active is True


class TestRemoveMember:
    def test_remove_drops_membership_and_revokes(self, db_session, org_admin, analyst_member):
        user, _ = analyst_member
        RemoveTeamMemberUseCase(db_session).execute(org_admin, user.id)

        assert db_session.query(TeamMembership).filter_by(user_id=user.id).count() == 0
        assert db_session.get(User, user.id) is not None
        assert user.jwt_version == 2

    def test_cannot_remove_self(self, db_session, org_admin):
        with pytest.raises(PermissionDeniedError, match="remove yourself"):
            RemoveTeamMemberUseCase(db_session).execute(org_admin, org_admin.user_id)

    def test_last_admin_cannot_be_removed(self, db_session, organization, org_admin):
        second = identity(*add_member(db_session, organization, "admin2@acme.example", "ADMIN"))
        RemoveTeamMemberUseCase(db_session).execute(org_admin, second.user_id)

        with pytest.raises(PermissionDeniedError, match="last admin"):
            RemoveTeamMemberUseCase(db_session).execute(second, org_admin.user_id)
