import pytest

from oncoshare.authorization import AccessLevel, Decision, authorize, has_admin_rights
from oncoshare.enums import Role
from oncoshare.sessions import Session


def make_session(role: Role) -> Session:
    return Session(id=7, username="casey", email="casey@example.com", role=role, token="t")


class TestAuthorize:
    def test_loading_is_pending_for_every_level(self):
        for level in AccessLevel:
            assert authorize(None, level, loading=True).decision is Decision.PENDING

    def test_anonymous_ok_allows_everyone(self):
        assert authorize(None, AccessLevel.ANONYMOUS_OK).allowed
        assert authorize(make_session(Role.USER), AccessLevel.ANONYMOUS_OK).allowed

    def test_sign_in_carries_destination(self):
        result = authorize(None, AccessLevel.ADMIN, destination="/admin/comments")
        assert result.decision is Decision.SIGN_IN
        assert result.redirect_to == "/admin/comments"

    def test_signed_in_level(self):
        assert authorize(None, AccessLevel.SIGNED_IN).decision is Decision.SIGN_IN
        assert authorize(make_session(Role.DOCTOR), AccessLevel.SIGNED_IN).allowed

    @pytest.mark.parametrize("role", [Role.USER, Role.DOCTOR])
    def test_non_admin_is_denied_with_roles(self, role):
        result = authorize(make_session(role), AccessLevel.ADMIN)
        assert result.decision is Decision.ACCESS_DENIED
        assert result.current_role is role
        assert result.required_role is Role.ADMIN

    def test_admin_is_allowed(self):
        assert authorize(make_session(Role.ADMIN), AccessLevel.ADMIN).allowed


class TestHasAdminRights:
    def test_every_role_is_handled(self):
        assert {role: has_admin_rights(role) for role in Role} == {
            Role.USER: False,
            Role.DOCTOR: False,
            Role.ADMIN: True,
        }

    def test_unknown_role_raises(self):
        with pytest.raises(ValueError):
            has_admin_rights("superuser")
