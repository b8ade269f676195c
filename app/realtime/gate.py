"""Per-event authorization against the rule table in :mod:`app.rbac`."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from app.rbac import FORBIDDEN_BY_ROLE, NO_ACTIVE_SESSION, UNKNOWN_EVENT, rule_for
from app.realtime.session import AttendanceSession
from app.realtime.stores import Identity


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: Optional[str] = None
    # Denied teacher event from someone other than the session owner.
    reset_session: bool = False


ALLOW = Decision(allowed=True)


def deny(reason: str, reset_session: bool = False) -> Decision:
    return Decision(allowed=False, reason=reason, reset_session=reset_session)


class AuthorizationGate:
    def __init__(self, class_store, reset_on_teacher_mismatch: bool = True):
        self.class_store = class_store
        self.reset_on_teacher_mismatch = reset_on_teacher_mismatch

    async def authorize(self, identity: Identity, event_name: str, session: AttendanceSession) -> Decision:
        rule = rule_for(event_name)
        if rule is None:
            return deny(UNKNOWN_EVENT)
        if identity.role != rule.role:
            return deny(FORBIDDEN_BY_ROLE[rule.role])

        if rule.check == "owner":
            if session.is_owned_by(identity.user_id):
                return ALLOW
            # Same message whether idle or owned by someone else.
            return deny(
                NO_ACTIVE_SESSION,
                reset_session=self.reset_on_teacher_mismatch and session.is_active(),
            )

        if not session.is_active():
            return deny(NO_ACTIVE_SESSION)
        roster = await self.class_store.get_roster(session.class_id)
        if roster is None or not roster.enrolls(identity.user_id):
            return deny(NO_ACTIVE_SESSION)
        return ALLOW
