"""Operator session with an explicit expiry.

Sessions are plain values held in ``st.session_state`` and handed to every
request-issuing collaborator; nothing here touches module-level state.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

SESSION_TTL = timedelta(hours=24)
SUPER_ADMIN = "SUPER_ADMIN"
NO_BRANCH = "NA"


@dataclass(frozen=True)
class Session:
    user_name: str
    branch_name: str
    role: str
    expires_at: datetime

    @property
    def is_super_admin(self) -> bool:
        return self.role == SUPER_ADMIN

    @property
    def has_branch(self) -> bool:
        return bool(self.branch_name) and self.branch_name != NO_BRANCH


def start_session(
    user_name: str,
    branch_name: str | None,
    role: str,
    *,
    now: datetime,
    ttl: timedelta = SESSION_TTL,
) -> Session:
    return Session(
        user_name=user_name.strip(),
        branch_name=(branch_name or "").strip() or NO_BRANCH,
        role=role,
        expires_at=now + ttl,
    )


def is_valid(session: Session | None, now: datetime) -> bool:
    """Return True while ``session`` exists and ``now`` is before its expiry."""

    return session is not None and bool(session.user_name) and now < session.expires_at


def branch_scope(session: Session) -> str | None:
    """Return the branch an operator is restricted to, or None for all branches."""

    if session.is_super_admin:
        return None
    return session.branch_name


def dashboard_branch(session: Session) -> str:
    """The ``branchName`` sent to the dashboard feeds; empty means every branch."""

    return branch_scope(session) or ""
