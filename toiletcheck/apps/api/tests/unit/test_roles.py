"""Role levels: access is granted iff actual >= required."""

import pytest

from toiletcheck_api.auth.roles import RoleLevel, get_user_role, has_level, is_admin, is_super_admin
from toiletcheck_api.db.models import UserRole


@pytest.mark.parametrize("level", list(RoleLevel))
def test_equal_level_grants(level):
    assert has_level(level, level)


@pytest.mark.parametrize(
    "actual,required,granted",
    [
        (0, 80, False),
        (79, 80, False),
        (80, 80, True),
        (81, 80, True),
        (90, 100, False),
        (100, 90, True),
    ],
)
def test_has_level_boundary(actual, required, granted):
    assert has_level(actual, required) is granted


def test_admin_helpers():
    assert is_admin(RoleLevel.ADMIN)
    assert not is_admin(RoleLevel.SUPERVISOR)
    assert is_super_admin(RoleLevel.SUPER_ADMIN)
    assert not is_super_admin(RoleLevel.ADMIN)


def test_user_without_assignment_gets_default_role(make_user, db_session):
    user = make_user(role=None)

    assert get_user_role(db_session, user.id) == ("user", 0)


def test_assigned_role_is_resolved(make_user, db_session):
    user = make_user(role="super_admin")

    assert get_user_role(db_session, user.id) == ("super_admin", 90)


def test_inactive_role_falls_back_to_default(make_user, db_session, roles):
    user = make_user(role="admin")
    roles["admin"].is_active = False
    db_session.commit()

    assert get_user_role(db_session, user.id) == ("user", 0)
    assert db_session.query(UserRole).filter_by(user_id=user.id).count() == 1
