"""Unit tests for challenge_service module."""

from datetime import date

import pytest
from pydantic import ValidationError

from src.core.db_client import RecordNotFoundError
from src.core.errors import NotSupportedError
from src.domain.challenge import Difficulty
from src.domain.create_models import ChallengeCreate
from src.domain.update_models import ChallengeUpdate
from src.domain.user import UserRole
from src.services import challenge_service, log_service, user_service


@pytest.fixture
async def admin(patched_db):
    return await user_service.create_profile(name="Admin", email="admin@example.com", role=UserRole.ADMIN)


@pytest.fixture
async def member(patched_db):
    return await user_service.create_profile(name="Jane Doe", email="jane@example.com")


@pytest.fixture
async def challenge(admin, sample_challenge_data):
    return await challenge_service.create_challenge(
        created_by=admin.id,
        data=ChallengeCreate(**sample_challenge_data),
    )


@pytest.mark.unit
class TestChallengeCreate:
    def test_duration_derived_from_dates(self, sample_challenge_data):
        data = ChallengeCreate(**sample_challenge_data)

        assert data.duration == 30

    def test_same_day_challenge_lasts_one_day(self, sample_challenge_data):
        data = ChallengeCreate(**{**sample_challenge_data, "end_date": "2024-01-01"})

        assert data.duration == 1

    def test_explicit_duration_kept(self, sample_challenge_data):
        assert ChallengeCreate(**sample_challenge_data, duration=21).duration == 21

    def test_unknown_difficulty_rejected(self, sample_challenge_data):
        with pytest.raises(ValidationError):
            ChallengeCreate(**{**sample_challenge_data, "difficulty": "Extreme"})

    def test_empty_title_rejected(self, sample_challenge_data):
        with pytest.raises(ValidationError):
            ChallengeCreate(**{**sample_challenge_data, "title": ""})


@pytest.mark.unit
class TestCatalog:
    async def test_create_challenge(self, challenge, admin):
        assert challenge.title == "30 Days of Discipline"
        assert challenge.participants == 0
        assert challenge.duration == 30
        assert challenge.difficulty == Difficulty.BEGINNER
        assert challenge.daily_prompts == ["Wake up early", "Read 10 pages"]
        assert challenge.created_by == admin.id
        assert challenge.start_date == "2024-01-01"

    async def test_list_challenges_in_creation_order(self, admin, sample_challenge_data):
        for title in ("First", "Second", "Third"):
            await challenge_service.create_challenge(
                created_by=admin.id,
                data=ChallengeCreate(**{**sample_challenge_data, "title": title}),
            )

        challenges = await challenge_service.list_challenges()

        assert [c.title for c in challenges] == ["First", "Second", "Third"]

    async def test_update_merges_only_set_fields(self, challenge):
        updated = await challenge_service.update_challenge(
            challenge_id=challenge.id,
            data=ChallengeUpdate(title="Renamed", end_date=date(2024, 2, 15)),
        )

        assert updated.title == "Renamed"
        assert updated.end_date == "2024-02-15"
        assert updated.description == challenge.description
        assert updated.daily_prompts == challenge.daily_prompts

    async def test_update_with_no_fields_returns_current(self, challenge):
        unchanged = await challenge_service.update_challenge(challenge_id=challenge.id, data=ChallengeUpdate())

        assert unchanged.title == challenge.title

    async def test_update_unknown_id_is_noop(self, patched_db, challenge):
        result = await challenge_service.update_challenge(challenge_id="9999", data=ChallengeUpdate(title="X"))

        assert result is None
        assert [c.title for c in await challenge_service.list_challenges()] == [challenge.title]

    async def test_delete_unknown_id_is_noop(self, patched_db, challenge):
        await challenge_service.delete_challenge(challenge_id="9999")

        assert len(await challenge_service.list_challenges()) == 1

    async def test_delete_cascades_to_logs_and_joins(self, challenge, member, admin, sample_challenge_data):
        other = await challenge_service.create_challenge(
            created_by=admin.id, data=ChallengeCreate(**sample_challenge_data)
        )
        await challenge_service.join_challenge(user_id=member.id, challenge_id=challenge.id)
        await challenge_service.join_challenge(user_id=member.id, challenge_id=other.id)
        await log_service.save_daily_log(
            user_id=member.id, challenge_id=challenge.id, date="2024-01-02", description="Day 1", completed=True
        )
        await log_service.save_daily_log(
            user_id=member.id, challenge_id=other.id, date="2024-01-02", description="Other", completed=True
        )

        await challenge_service.delete_challenge(challenge_id=challenge.id)

        with pytest.raises(RecordNotFoundError):
            await challenge_service.get_challenge(challenge_id=challenge.id)
        logs = await log_service.list_logs()
        assert [log.challenge_id for log in logs] == [other.id]
        user = await user_service.get_user_by_id(user_id=member.id)
        assert user.joined_challenges == [other.id]


@pytest.mark.unit
class TestJoinChallenge:
    async def test_join_adds_challenge_and_increments(self, challenge, member):
        user = await challenge_service.join_challenge(user_id=member.id, challenge_id=challenge.id)

        assert user.joined_challenges == [challenge.id]
        assert (await challenge_service.get_challenge(challenge_id=challenge.id)).participants == 1

    async def test_repeat_join_is_idempotent(self, challenge, member):
        await challenge_service.join_challenge(user_id=member.id, challenge_id=challenge.id)

        user = await challenge_service.join_challenge(user_id=member.id, challenge_id=challenge.id)

        assert user.joined_challenges == [challenge.id]
        assert (await challenge_service.get_challenge(challenge_id=challenge.id)).participants == 1

    async def test_participants_counts_distinct_users(self, challenge, member, admin):
        await challenge_service.join_challenge(user_id=member.id, challenge_id=challenge.id)
        await challenge_service.join_challenge(user_id=admin.id, challenge_id=challenge.id)

        assert (await challenge_service.get_challenge(challenge_id=challenge.id)).participants == 2

    async def test_join_unknown_challenge(self, member):
        with pytest.raises(RecordNotFoundError):
            await challenge_service.join_challenge(user_id=member.id, challenge_id="9999")

    async def test_join_unknown_user(self, challenge):
        with pytest.raises(RecordNotFoundError):
            await challenge_service.join_challenge(user_id="9999", challenge_id=challenge.id)

    async def test_joined_and_available_partition_catalog(self, admin, member, sample_challenge_data):
        first = await challenge_service.create_challenge(
            created_by=admin.id, data=ChallengeCreate(**sample_challenge_data)
        )
        second = await challenge_service.create_challenge(
            created_by=admin.id, data=ChallengeCreate(**sample_challenge_data)
        )
        user = await challenge_service.join_challenge(user_id=member.id, challenge_id=second.id)

        joined = await challenge_service.list_joined_challenges(user=user)
        available = await challenge_service.list_available_challenges(user=user)

        assert [c.id for c in joined] == [second.id]
        assert [c.id for c in available] == [first.id]

    async def test_leave_not_supported(self, challenge, member):
        with pytest.raises(NotSupportedError):
            await challenge_service.leave_challenge(user_id=member.id, challenge_id=challenge.id)


@pytest.mark.unit
class TestRequireAdmin:
    async def test_admin_passes(self, admin):
        assert (await user_service.require_admin(user_id=admin.id)).id == admin.id

    async def test_member_denied(self, member):
        with pytest.raises(PermissionError):
            await user_service.require_admin(user_id=member.id)
