"""Unit tests for analytics_service module."""

from datetime import date, timedelta

import pytest

from src.domain.challenge import Challenge
from src.domain.create_models import ChallengeCreate
from src.domain.daily_log import DailyLog
from src.domain.user import User, UserRole
from src.services import analytics_service, auth_service, challenge_service, log_service, user_service


TODAY = date(2025, 1, 10)


def _log(user_id: str, day: date, *, completed: bool = True, challenge_id: str = "c1") -> DailyLog:
    return DailyLog(
        id=f"{user_id}-{challenge_id}-{day.isoformat()}",
        user_id=user_id,
        challenge_id=challenge_id,
        date=day.isoformat(),
        completed=completed,
        timestamp="2025-01-10T08:00:00Z",
    )


def _user(user_id: str, name: str, role: UserRole = UserRole.MEMBER) -> User:
    return User(id=user_id, name=name, email=f"{user_id}@example.com", role=role, created="2025-01-01T00:00:00Z")


def _challenge(challenge_id: str, *, duration: int = 30, end_date: str = "2025-01-31", participants: int = 0):
    return Challenge(
        id=challenge_id,
        title=f"Challenge {challenge_id}",
        start_date="2025-01-01",
        end_date=end_date,
        duration=duration,
        difficulty="Beginner",
        participants=participants,
        created="2025-01-01T00:00:00Z",
    )


@pytest.mark.unit
class TestCalculateStreak:
    def test_three_consecutive_days_ending_today(self):
        logs = [_log("u1", TODAY - timedelta(days=offset)) for offset in range(3)]

        assert analytics_service.calculate_streak(logs, today=TODAY) == 3

    def test_gap_at_today_means_no_streak(self):
        logs = [_log("u1", TODAY - timedelta(days=1)), _log("u1", TODAY - timedelta(days=2))]

        assert analytics_service.calculate_streak(logs, today=TODAY) == 0

    def test_incomplete_day_breaks_streak(self):
        logs = [
            _log("u1", TODAY),
            _log("u1", TODAY - timedelta(days=1), completed=False),
            _log("u1", TODAY - timedelta(days=2)),
        ]

        assert analytics_service.calculate_streak(logs, today=TODAY) == 1

    def test_any_challenge_counts_for_a_day(self):
        logs = [_log("u1", TODAY, challenge_id="c1"), _log("u1", TODAY - timedelta(days=1), challenge_id="c2")]

        assert analytics_service.calculate_streak(logs, today=TODAY) == 2

    def test_streak_capped_by_lookback(self):
        logs = [_log("u1", TODAY - timedelta(days=offset)) for offset in range(45)]

        assert analytics_service.calculate_streak(logs, today=TODAY) == 30
        assert analytics_service.calculate_streak(logs, today=TODAY, lookback_days=7) == 7

    def test_longest_streak(self):
        days = [TODAY - timedelta(days=d) for d in (0, 1, 5, 6, 7, 8, 20)]

        assert analytics_service.calculate_longest_streak([_log("u1", d) for d in days]) == 4
        assert analytics_service.calculate_longest_streak([]) == 0


@pytest.mark.unit
class TestBuildLeaderboard:
    def test_points_and_completion_rate(self):
        logs = [_log("u1", TODAY), _log("u1", TODAY - timedelta(days=1), completed=False)]

        [entry] = analytics_service.build_leaderboard([_user("u1", "Jane")], logs, today=TODAY)

        assert entry.points == 10
        assert entry.completion_rate == 50
        assert entry.streak == 1
        assert entry.rank == 1

    def test_member_without_logs(self):
        [entry] = analytics_service.build_leaderboard([_user("u1", "Jane")], [], today=TODAY)

        assert entry.points == 0
        assert entry.completion_rate == 0
        assert entry.streak == 0

    def test_completion_rate_rounds_half_up(self):
        logs = [_log("u1", TODAY - timedelta(days=d), completed=d < 1) for d in range(8)]

        [entry] = analytics_service.build_leaderboard([_user("u1", "Jane")], logs, today=TODAY)

        assert entry.completion_rate == 13

    def test_admins_are_excluded(self):
        users = [_user("a1", "Admin", UserRole.ADMIN), _user("u1", "Jane")]
        logs = [_log("a1", TODAY), _log("u1", TODAY)]

        leaderboard = analytics_service.build_leaderboard(users, logs, today=TODAY)

        assert [entry.user_id for entry in leaderboard] == ["u1"]

    def test_ties_keep_profile_order(self):
        users = [_user("u1", "Low"), _user("u2", "First tie"), _user("u3", "Second tie")]
        logs = [_log("u1", TODAY)]
        for user_id in ("u2", "u3"):
            logs += [_log(user_id, TODAY - timedelta(days=d)) for d in range(3)]

        leaderboard = analytics_service.build_leaderboard(users, logs, today=TODAY)

        assert [(e.user_id, e.points, e.rank) for e in leaderboard] == [
            ("u2", 30, 1),
            ("u3", 30, 2),
            ("u1", 10, 3),
        ]


@pytest.mark.unit
class TestProgress:
    def test_challenge_progress(self):
        logs = [_log("u1", TODAY - timedelta(days=d)) for d in range(3)]
        logs.append(_log("u1", TODAY, challenge_id="c2"))

        progress = analytics_service.challenge_progress(logs, _challenge("c1", duration=30), today=TODAY)

        assert progress.completed_days == 3
        assert progress.percentage == 10
        assert progress.logged_today is True

    def test_month_summary(self):
        logs = [_log("u1", date(2025, 2, d)) for d in (1, 2, 3)] + [_log("u1", date(2025, 1, 31))]

        summary = analytics_service.month_summary(logs, year=2025, month=2)

        assert summary.completed == 3
        assert summary.total_days == 28
        assert summary.percentage == 11

    def test_admin_summary(self):
        challenges = [
            _challenge("c1", end_date="2025-01-31", participants=3),
            _challenge("c2", end_date="2025-01-10", participants=2),
        ]

        summary = analytics_service.admin_summary(challenges, today=TODAY)

        assert summary.total_challenges == 2
        assert summary.active_challenges == 1
        assert summary.total_participants == 5


@pytest.mark.unit
class TestEndToEnd:
    async def test_sign_up_log_twice_and_rank(self, patched_db, session, fast_hashing):
        assert await auth_service.sign_up(name="Jane", email="jane@x.com", password="secret1")
        jane = auth_service.get_current_user()
        admin = await user_service.create_profile(name="Admin", email="admin@x.com", role=UserRole.ADMIN)
        challenge = await challenge_service.create_challenge(
            created_by=admin.id,
            data=ChallengeCreate(title="Run", start_date="2025-01-01", end_date="2025-01-31"),
        )

        await log_service.save_daily_log(
            user_id=jane.id, challenge_id=challenge.id, date="2025-01-10", description="ran 5k", completed=True
        )
        await log_service.save_daily_log(
            user_id=jane.id, challenge_id=challenge.id, date="2025-01-10", description="ran 6k", completed=True
        )

        logs = await log_service.list_logs()
        assert [log.description for log in logs] == ["ran 6k"]

        leaderboard = await analytics_service.get_leaderboard(today=TODAY)
        assert len(leaderboard) == 1
        assert leaderboard[0].user_id == jane.id
        assert leaderboard[0].points == 10
        assert leaderboard[0].completion_rate == 100
        assert leaderboard[0].streak == 1

    async def test_user_statistics(self, patched_db):
        member = await user_service.create_profile(name="Jane", email="jane@x.com")
        for offset, completed in ((0, True), (1, True), (2, False)):
            await log_service.save_daily_log(
                user_id=member.id,
                challenge_id="1",
                date=TODAY - timedelta(days=offset),
                description="",
                completed=completed,
            )

        stats = await analytics_service.get_user_statistics(user_id=member.id, today=TODAY)

        assert stats.total_logs == 3
        assert stats.completed_logs == 2
        assert stats.current_streak == 2
        assert stats.longest_streak == 2
        assert stats.joined_challenges == 0
        assert stats.completion_rate == 67
        assert [a.earned for a in stats.achievements] == [True, False, False, False]

    async def test_month_summary_for_user(self, patched_db):
        member = await user_service.create_profile(name="Jane", email="jane@x.com")
        other = await user_service.create_profile(name="Ann", email="ann@x.com")
        for user_id, day, completed in (
            (member.id, "2025-02-01", True),
            (member.id, "2025-02-02", False),
            (member.id, "2025-01-31", True),
            (other.id, "2025-02-03", True),
        ):
            await log_service.save_daily_log(
                user_id=user_id, challenge_id="1", date=day, description="", completed=completed
            )

        summary = await analytics_service.get_month_summary(user_id=member.id, year=2025, month=2)

        assert summary.completed == 1
        assert summary.total_days == 28
        assert summary.percentage == 4


@pytest.mark.unit
class TestAchievements:
    def test_nothing_earned_without_completions(self):
        badges = analytics_service.achievements(completed=0, streak=0)

        assert [b.title for b in badges] == ["First Step", "Week Warrior", "Consistency King", "Challenge Champion"]
        assert not any(b.earned for b in badges)

    @pytest.mark.parametrize(
        ("completed", "streak", "expected"),
        [
            (1, 1, [True, False, False, False]),
            (7, 7, [True, True, False, False]),
            (15, 6, [True, False, True, False]),
            (30, 30, [True, True, True, True]),
            (29, 0, [True, False, True, False]),
        ],
    )
    def test_thresholds(self, completed, streak, expected):
        badges = analytics_service.achievements(completed=completed, streak=streak)

        assert [b.earned for b in badges] == expected
