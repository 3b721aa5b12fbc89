"""
pulse.engine.exclusion — Scoring exclusion policy
==================================================

Hard rule: bots, staff, and explicitly listed members/roles never appear on
the leaderboards.  Their activity is still forwarded to analytics.
"""

from __future__ import annotations

from dataclasses import dataclass

from pulse.constants import STAFF_PERMISSIONS
from pulse.engine.events import MemberInfo


@dataclass(frozen=True, slots=True)
class ExclusionConfig:
    """Excluded role and user ids, loaded once at startup."""

    role_ids: frozenset[int] = frozenset()
    user_ids: frozenset[int] = frozenset()


class ExclusionPolicy:
    """Decides whether a member is scoring-ineligible."""

    def __init__(
        self,
        config: ExclusionConfig | None = None,
        staff_permissions: frozenset[str] = STAFF_PERMISSIONS,
    ) -> None:
        self.config = config or ExclusionConfig()
        self.staff_permissions = staff_permissions

    def is_excluded(self, member: MemberInfo | None) -> bool:
        """Checks, in order: bot, explicit id, staff permission, excluded role.

        An unknown (``None``) member is never excluded.
        """
        if member is None:
            return False
        if member.bot:
            return True
        if member.id in self.config.user_ids:
            return True
        if not self.staff_permissions.isdisjoint(member.permissions):
            return True
        return not self.config.role_ids.isdisjoint(member.role_ids)
