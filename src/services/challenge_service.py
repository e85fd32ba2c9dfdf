"""Challenge service for the challenge catalog and participation.

Update and delete are total: an unknown challenge id is a logged no-op.
Joining is idempotent per (user, challenge) and is the only thing that moves
the participant counter. There is no leave operation.
"""

import logging
from typing import Any

from src.core import db_client
from src.core.db_client import sanitize_param
from src.core.errors import NotSupportedError
from src.core.logging import log_with_user_context, span
from src.domain.challenge import Challenge
from src.domain.create_models import ChallengeCreate, ParticipantCreate
from src.domain.update_models import ChallengeUpdate
from src.domain.user import User
from src.services import user_service


logger = logging.getLogger(__name__)


def _to_challenge(record: dict[str, Any]) -> Challenge:
    return Challenge.model_validate(record)


async def create_challenge(*, created_by: str, data: ChallengeCreate) -> Challenge:
    """Create a challenge with zero participants.

    Args:
        created_by: ID of the creating user
        data: Validated challenge fields

    Returns:
        The created Challenge
    """
    with span("challenge_service.create_challenge"):
        record = await db_client.create_record(
            collection="challenges",
            data={
                **data.model_dump(mode="json"),
                "participants": 0,
                "created_by": created_by,
            },
        )
        log_with_user_context(logger, "info", "Created challenge", user_id=created_by, challenge_id=record["id"])
        return _to_challenge(record)


async def get_challenge(*, challenge_id: str) -> Challenge:
    """Get a challenge by ID.

    Raises:
        db_client.RecordNotFoundError: If challenge not found
    """
    record = await db_client.get_record(collection="challenges", record_id=challenge_id)
    return _to_challenge(record)


async def list_challenges() -> list[Challenge]:
    """List every challenge in creation order."""
    records = await db_client.list_all_records(collection="challenges")
    return [_to_challenge(r) for r in records]


async def list_joined_challenges(*, user: User) -> list[Challenge]:
    """Challenges the user has joined."""
    return [c for c in await list_challenges() if c.id in user.joined_challenges]


async def list_available_challenges(*, user: User) -> list[Challenge]:
    """Challenges the user has not joined yet."""
    return [c for c in await list_challenges() if c.id not in user.joined_challenges]


async def update_challenge(*, challenge_id: str, data: ChallengeUpdate) -> Challenge | None:
    """Merge the set fields of ``data`` into a challenge.

    Returns:
        The updated Challenge, or None if the id is unknown (nothing is changed)
    """
    with span("challenge_service.update_challenge"):
        changes = data.to_record()
        try:
            if not changes:
                return await get_challenge(challenge_id=challenge_id)
            record = await db_client.update_record(collection="challenges", record_id=challenge_id, data=changes)
        except db_client.RecordNotFoundError:
            logger.info("Ignoring update of unknown challenge", extra={"challenge_id": challenge_id})
            return None

        logger.info("Updated challenge", extra={"challenge_id": challenge_id, "fields": sorted(changes)})
        return _to_challenge(record)


async def delete_challenge(*, challenge_id: str) -> None:
    """Delete a challenge together with its daily logs and join records.

    Unknown ids are ignored.
    """
    with span("challenge_service.delete_challenge"):
        try:
            await db_client.get_record(collection="challenges", record_id=challenge_id)
        except db_client.RecordNotFoundError:
            logger.info("Ignoring delete of unknown challenge", extra={"challenge_id": challenge_id})
            return

        challenge_filter = f'challenge_id = "{sanitize_param(challenge_id)}"'
        removed: dict[str, int] = {}
        for collection in ("challenge_logs", "challenge_participants"):
            records = await db_client.list_all_records(collection=collection, filter_query=challenge_filter)
            for record in records:
                await db_client.delete_record(collection=collection, record_id=record["id"])
            removed[collection] = len(records)

        await db_client.delete_record(collection="challenges", record_id=challenge_id)
        logger.info(
            "Deleted challenge",
            extra={
                "challenge_id": challenge_id,
                "logs_removed": removed["challenge_logs"],
                "participants_removed": removed["challenge_participants"],
            },
        )


async def _count_participants(challenge_id: str) -> int:
    records = await db_client.list_all_records(
        collection="challenge_participants",
        filter_query=f'challenge_id = "{sanitize_param(challenge_id)}"',
    )
    return len({r["user_id"] for r in records})


async def join_challenge(*, user_id: str, challenge_id: str) -> User:
    """Join a challenge, incrementing its participant count on the first join only.

    The join row is upserted on (user, challenge), so a double-submitted join
    settles on one row and both callers see the challenge as joined.

    Returns:
        The user with an updated joined-challenge list

    Raises:
        db_client.RecordNotFoundError: If the user or challenge does not exist
    """
    with span("challenge_service.join_challenge"):
        await get_challenge(challenge_id=challenge_id)
        user = await user_service.get_user_by_id(user_id=user_id)

        if challenge_id in user.joined_challenges:
            log_with_user_context(
                logger, "info", "Already joined challenge", user_id=user_id, challenge_id=challenge_id
            )
            return user

        participant = ParticipantCreate(user_id=user_id, challenge_id=challenge_id)
        await db_client.upsert_record(
            collection="challenge_participants",
            data=participant.model_dump(),
            conflict_fields=("user_id", "challenge_id"),
        )
        await db_client.update_record(
            collection="challenges",
            record_id=challenge_id,
            data={"participants": await _count_participants(challenge_id)},
        )

        log_with_user_context(logger, "info", "Joined challenge", user_id=user_id, challenge_id=challenge_id)
        return user.model_copy(update={"joined_challenges": [*user.joined_challenges, challenge_id]})


async def leave_challenge(*, user_id: str, challenge_id: str) -> None:
    """Leaving a challenge is not supported.

    Raises:
        NotSupportedError: Always
    """
    msg = f"Leaving challenges is not supported (user {user_id}, challenge {challenge_id})"
    raise NotSupportedError(msg)
