from __future__ import annotations

from datetime import datetime, timedelta

from backoffice.session import (
    NO_BRANCH,
    SESSION_TTL,
    SUPER_ADMIN,
    branch_scope,
    dashboard_branch,
    is_valid,
    start_session,
)

NOW = datetime(2024, 6, 1, 9, 0)


def test_session_expires_after_ttl() -> None:
    session = start_session(" asha ", "Dighi", "BRANCH_ADMIN", now=NOW)

    assert session.user_name == "asha"
    assert session.expires_at == NOW + SESSION_TTL
    assert is_valid(session, NOW + timedelta(hours=23, minutes=59))
    assert not is_valid(session, NOW + SESSION_TTL)
    assert not is_valid(None, NOW)


def test_blank_user_name_is_never_valid() -> None:
    assert not is_valid(start_session("  ", "Dighi", "BRANCH_ADMIN", now=NOW), NOW)


def test_branch_scope() -> None:
    admin = start_session("raj", "Moshi", SUPER_ADMIN, now=NOW)
    staff = start_session("asha", "Dighi", "BRANCH_ADMIN", now=NOW)
    unassigned = start_session("new", None, "BRANCH_ADMIN", now=NOW)

    assert branch_scope(admin) is None
    assert branch_scope(staff) == "Dighi"
    assert unassigned.branch_name == NO_BRANCH
    assert not unassigned.has_branch
    assert branch_scope(unassigned) == NO_BRANCH


def test_dashboard_branch_covers_all_branches_for_super_admin() -> None:
    assert dashboard_branch(start_session("raj", "Moshi", SUPER_ADMIN, now=NOW)) == ""
    assert dashboard_branch(start_session("asha", "Dighi", "BRANCH_ADMIN", now=NOW)) == "Dighi"
