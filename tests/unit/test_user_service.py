"""Unit tests for user_service module."""

import pytest

from src.core.db_client import RecordNotFoundError
from src.core.errors import PermissionDeniedError
from src.domain.user import UserRole
from src.services import user_service


@pytest.mark.unit
class TestProfiles:
    async def test_create_profile(self, patched_db):
        user = await user_service.create_profile(name="Jane Doe", email="jane@example.com")

        assert user.role == UserRole.MEMBER
        assert user.avatar == "JD"
        assert user.joined_challenges == []

        stored = await patched_db.get_record("profiles", user.id)
        assert stored["role"] == "member"

    async def test_get_user_by_id_not_found(self, patched_db):
        with pytest.raises(RecordNotFoundError):
            await user_service.get_user_by_id(user_id="9999")

    async def test_get_user_by_email_missing(self, patched_db):
        assert await user_service.get_user_by_email(email="ghost@example.com") is None

    async def test_joined_challenges_deduplicated(self, patched_db):
        user = await user_service.create_profile(name="Jane", email="jane@example.com")
        for challenge_id in ("7", "8", "7"):
            await patched_db.create_record("challenge_participants", {"user_id": user.id, "challenge_id": challenge_id})

        fetched = await user_service.get_user_by_id(user_id=user.id)

        assert fetched.joined_challenges == ["7", "8"]

    async def test_list_users_in_creation_order(self, patched_db):
        for name in ("Ann", "Bob", "Cy"):
            await user_service.create_profile(name=name, email=f"{name.lower()}@example.com")
        bob = await user_service.get_user_by_email(email="bob@example.com")
        await patched_db.create_record("challenge_participants", {"user_id": bob.id, "challenge_id": "7"})

        users = await user_service.list_users()

        assert [u.name for u in users] == ["Ann", "Bob", "Cy"]
        assert [u.joined_challenges for u in users] == [[], ["7"], []]


@pytest.mark.unit
class TestRequireAdmin:
    async def test_admin_allowed(self, patched_db):
        admin = await user_service.create_profile(name="Admin", email="admin@example.com", role=UserRole.ADMIN)

        assert (await user_service.require_admin(user_id=admin.id)).is_admin

    async def test_member_denied(self, patched_db):
        member = await user_service.create_profile(name="Jane", email="jane@example.com")

        with pytest.raises(PermissionDeniedError):
            await user_service.require_admin(user_id=member.id)
