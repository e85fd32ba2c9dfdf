"""User service for profile lookups and role checks."""

import logging
from typing import Any

from src.core import db_client
from src.core.db_client import sanitize_param
from src.core.errors import PermissionDeniedError
from src.core.logging import span
from src.domain.challenge import ChallengeParticipant
from src.domain.user import User, UserRole, initials_avatar


logger = logging.getLogger(__name__)


async def create_profile(*, name: str, email: str, role: UserRole = UserRole.MEMBER) -> User:
    """Create a profile row with an initials avatar placeholder.

    Raises:
        db_client.DatabaseError: If database operation fails
    """
    with span("user_service.create_profile"):
        record = await db_client.create_record(
            collection="profiles",
            data={
                "name": name,
                "email": email,
                "role": UserRole(role).value,
                "avatar": initials_avatar(name),
            },
        )
        logger.info("Created profile", extra={"user_id": record["id"], "role": str(role)})
        return _to_user(record, joined=[])


async def _joined_challenge_ids(user_id: str) -> list[str]:
    records = await db_client.list_all_records(
        collection="challenge_participants",
        filter_query=f'user_id = "{sanitize_param(user_id)}"',
    )
    joined: list[str] = []
    for participant in (ChallengeParticipant.model_validate(r) for r in records):
        if participant.challenge_id not in joined:
            joined.append(participant.challenge_id)
    return joined


def _to_user(record: dict[str, Any], *, joined: list[str]) -> User:
    return User(
        id=record["id"],
        name=record["name"],
        email=record["email"],
        role=record.get("role") or UserRole.MEMBER,
        joined_challenges=joined,
        created=record["created"],
        avatar=record.get("avatar"),
    )


async def get_user_by_id(*, user_id: str) -> User:
    """Get user by ID, including joined challenge IDs.

    Raises:
        db_client.RecordNotFoundError: If user not found
        db_client.DatabaseError: If database operation fails
    """
    record = await db_client.get_record(collection="profiles", record_id=user_id)
    return _to_user(record, joined=await _joined_challenge_ids(user_id))


async def get_user_by_email(*, email: str) -> User | None:
    """Get user by email, or None if no profile uses it."""
    record = await db_client.get_first_record(
        collection="profiles",
        filter_query=f'email = "{sanitize_param(email.strip().lower())}"',
    )
    if record is None:
        return None
    return _to_user(record, joined=await _joined_challenge_ids(record["id"]))


async def list_users() -> list[User]:
    """List every profile in creation order, with joined challenge IDs."""
    with span("user_service.list_users"):
        records = await db_client.list_all_records(collection="profiles")
        participants = await db_client.list_all_records(collection="challenge_participants")

        joined_by_user: dict[str, list[str]] = {}
        for participant in participants:
            joined = joined_by_user.setdefault(participant["user_id"], [])
            if participant["challenge_id"] not in joined:
                joined.append(participant["challenge_id"])

        return [_to_user(r, joined=joined_by_user.get(r["id"], [])) for r in records]


async def require_admin(*, user_id: str) -> User:
    """Return the user if they are an admin.

    Raises:
        PermissionDeniedError: If the user is not an admin
        db_client.RecordNotFoundError: If user not found
    """
    user = await get_user_by_id(user_id=user_id)
    if user.role != UserRole.ADMIN:
        msg = f"User {user_id} is not authorized to manage challenges"
        logger.warning(msg)
        raise PermissionDeniedError(msg)
    return user
