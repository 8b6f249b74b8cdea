"""Daily login streak arithmetic (feeds the ``dailyStreak`` metric)."""

from __future__ import annotations

from datetime import datetime, timezone


def next_daily_streak(
    current_streak: int,
    last_login_at: datetime | None,
    now: datetime | None = None,
) -> int:
    """Streak after a login at ``now``.

    Calendar days are compared in UTC. A second login on the same day keeps
    the streak, a login on the following day extends it, and any longer gap
    starts over at 1.
    """
    now = now or datetime.now(timezone.utc)
    if last_login_at is None:
        return 1

    if last_login_at.tzinfo is None:
        last_login_at = last_login_at.replace(tzinfo=timezone.utc)
    gap_days = (now.astimezone(timezone.utc).date() - last_login_at.astimezone(timezone.utc).date()).days

    if gap_days <= 0:
        return max(current_streak, 1)
    if gap_days == 1:
        return current_streak + 1
    return 1
