"""Analytics service for leaderboards and progress statistics.

This module provides functions for:
- Ranking members by points earned from completed daily logs
- Current and longest completion streaks
- Per-challenge progress, calendar month summaries and admin dashboard totals

Key Concepts:
- Points: POINTS_PER_COMPLETION for every completed log, across all challenges.
- Completion rate: completed logs over all logs, as a rounded percentage (0 with no logs).
- Streak: consecutive days ending today with at least one completed log in any
  challenge, scanning back at most STREAK_LOOKBACK_DAYS days. A day without a
  completed log (today included) ends the streak.
- Achievements: First Step, Week Warrior, Consistency King and Challenge
  Champion, each earned from completed logs or the current streak crossing a
  threshold in Constants.
- Rank: 1-based position after a stable sort by points, so tied members keep
  their profile order.

Nothing here is cached; every call recomputes from current rows.
"""

import calendar
import logging
from collections.abc import Iterable
from datetime import UTC, date, datetime, timedelta

from src.core.config import Constants
from src.core.logging import span
from src.domain.challenge import Challenge
from src.domain.daily_log import DailyLog
from src.domain.user import User, UserRole
from src.models.service_models import (
    Achievement,
    AdminSummary,
    ChallengeProgress,
    LeaderboardEntry,
    MonthSummary,
    UserStatistics,
)
from src.services import challenge_service, log_service, user_service


logger = logging.getLogger(__name__)


def _today() -> date:
    return datetime.now(UTC).date()


def _percentage(part: int, whole: int) -> int:
    # Rounds halves up
    if whole <= 0:
        return 0
    return int(100 * part / whole + 0.5)


def calculate_streak(
    logs: Iterable[DailyLog],
    *,
    today: date,
    lookback_days: int = Constants.STREAK_LOOKBACK_DAYS,
) -> int:
    """Count consecutive completed days ending today, scanning back at most ``lookback_days``."""
    completed_days = {log.date for log in logs if log.completed}

    streak = 0
    for offset in range(lookback_days):
        if (today - timedelta(days=offset)).isoformat() not in completed_days:
            break
        streak += 1
    return streak


def calculate_longest_streak(logs: Iterable[DailyLog]) -> int:
    """Longest run of consecutive calendar days with a completed log."""
    days = sorted({date.fromisoformat(log.date) for log in logs if log.completed})

    longest = 0
    run = 0
    previous: date | None = None
    for day in days:
        run = run + 1 if previous is not None and day - previous == timedelta(days=1) else 1
        longest = max(longest, run)
        previous = day
    return longest


def build_leaderboard(users: Iterable[User], logs: Iterable[DailyLog], *, today: date) -> list[LeaderboardEntry]:
    """Rank members by points from completed logs.

    Args:
        users: All users; only members are ranked
        logs: All daily logs
        today: Day the streak is anchored to

    Returns:
        Entries sorted by points descending, ties in input order, with 1-based ranks
    """
    logs_by_user: dict[str, list[DailyLog]] = {}
    for log in logs:
        logs_by_user.setdefault(log.user_id, []).append(log)

    rows = []
    for user in users:
        if user.role != UserRole.MEMBER:
            continue
        user_logs = logs_by_user.get(user.id, [])
        completed = sum(1 for log in user_logs if log.completed)
        rows.append(
            {
                "user_id": user.id,
                "name": user.name,
                "avatar": user.avatar,
                "points": Constants.POINTS_PER_COMPLETION * completed,
                "completion_rate": _percentage(completed, len(user_logs)),
                "streak": calculate_streak(user_logs, today=today),
            }
        )

    # list.sort is stable: equal points keep input order
    rows.sort(key=lambda row: row["points"], reverse=True)
    return [LeaderboardEntry(**row, rank=index + 1) for index, row in enumerate(rows)]


async def get_leaderboard(*, today: date | None = None) -> list[LeaderboardEntry]:
    """Compute the leaderboard from current users and logs."""
    with span("analytics_service.get_leaderboard"):
        users = await user_service.list_users()
        logs = await log_service.list_logs()
        leaderboard = build_leaderboard(users, logs, today=today or _today())

        logger.info("Generated leaderboard: %d members", len(leaderboard))
        return leaderboard


def challenge_progress(logs: Iterable[DailyLog], challenge: Challenge, *, today: date) -> ChallengeProgress:
    """Progress of one user's logs through one challenge."""
    challenge_logs = [log for log in logs if log.challenge_id == challenge.id]
    completed = sum(1 for log in challenge_logs if log.completed)
    return ChallengeProgress(
        challenge_id=challenge.id,
        completed_days=completed,
        duration=challenge.duration,
        percentage=_percentage(completed, challenge.duration),
        logged_today=any(log.date == today.isoformat() for log in challenge_logs),
    )


async def get_challenge_progress(
    *,
    user_id: str,
    challenge_id: str,
    today: date | None = None,
) -> ChallengeProgress:
    """Completed days and percentage of duration for a user in a challenge.

    Raises:
        db_client.RecordNotFoundError: If challenge not found
    """
    challenge = await challenge_service.get_challenge(challenge_id=challenge_id)
    logs = await log_service.list_user_logs(user_id=user_id, challenge_id=challenge_id)
    return challenge_progress(logs, challenge, today=today or _today())


def month_summary(logs: Iterable[DailyLog], *, year: int, month: int) -> MonthSummary:
    """Completed logs within a calendar month, against the days in that month."""
    prefix = f"{year:04d}-{month:02d}-"
    completed = sum(1 for log in logs if log.completed and log.date.startswith(prefix))
    total_days = calendar.monthrange(year, month)[1]
    return MonthSummary(
        year=year,
        month=month,
        completed=completed,
        total_days=total_days,
        percentage=_percentage(completed, total_days),
    )


async def get_month_summary(*, user_id: str, year: int, month: int) -> MonthSummary:
    """Calendar month summary for a user across all challenges."""
    logs = await log_service.list_user_logs(user_id=user_id)
    return month_summary(logs, year=year, month=month)


def admin_summary(challenges: Iterable[Challenge], *, today: date) -> AdminSummary:
    """Catalog totals; a challenge is active while its end date is after today."""
    challenges = list(challenges)
    return AdminSummary(
        total_challenges=len(challenges),
        active_challenges=sum(1 for c in challenges if date.fromisoformat(c.end_date) > today),
        total_participants=sum(c.participants for c in challenges),
    )


async def get_admin_summary(*, today: date | None = None) -> AdminSummary:
    """Totals for the admin dashboard."""
    with span("analytics_service.get_admin_summary"):
        challenges = await challenge_service.list_challenges()
        return admin_summary(challenges, today=today or _today())


def achievements(*, completed: int, streak: int) -> list[Achievement]:
    """Profile badges in display order, each flagged as earned or not."""
    return [
        Achievement(
            title="First Step",
            description="Completed your first challenge day",
            earned=completed >= Constants.FIRST_STEP_COMPLETIONS,
        ),
        Achievement(
            title="Week Warrior",
            description=f"{Constants.WEEK_WARRIOR_STREAK}-day completion streak",
            earned=streak >= Constants.WEEK_WARRIOR_STREAK,
        ),
        Achievement(
            title="Consistency King",
            description=f"{Constants.CONSISTENCY_KING_COMPLETIONS} days completed",
            earned=completed >= Constants.CONSISTENCY_KING_COMPLETIONS,
        ),
        Achievement(
            title="Challenge Champion",
            description=f"{Constants.CHALLENGE_CHAMPION_COMPLETIONS} days completed",
            earned=completed >= Constants.CHALLENGE_CHAMPION_COMPLETIONS,
        ),
    ]


async def get_user_statistics(*, user_id: str, today: date | None = None) -> UserStatistics:
    """Profile statistics for a user.

    Raises:
        db_client.RecordNotFoundError: If user not found
    """
    with span("analytics_service.get_user_statistics"):
        user = await user_service.get_user_by_id(user_id=user_id)
        logs = await log_service.list_user_logs(user_id=user_id)
        completed = sum(1 for log in logs if log.completed)
        streak = calculate_streak(logs, today=today or _today())
        return UserStatistics(
            user_id=user.id,
            total_logs=len(logs),
            completed_logs=completed,
            completion_rate=_percentage(completed, len(logs)),
            current_streak=streak,
            longest_streak=calculate_longest_streak(logs),
            joined_challenges=len(user.joined_challenges),
            achievements=achievements(completed=completed, streak=streak),
        )
