"""Daily log service: upsert-by-day entries, the progress feed and reflections.

A daily log is keyed by (user_id, challenge_id, date). Saving the same day
again rewrites the existing row in place, so repeated or concurrent submits
never produce a second entry for that day.
"""

import logging
from datetime import UTC, date, datetime
from typing import Any

from src.core import db_client
from src.core.config import constants
from src.core.db_client import sanitize_param
from src.core.errors import NotSupportedError
from src.core.logging import log_with_user_context, span
from src.domain.daily_log import DailyLog
from src.models.service_models import FeedItem


logger = logging.getLogger(__name__)

LOG_KEY_FIELDS = ("user_id", "challenge_id", "date")


def _to_log(record: dict[str, Any]) -> DailyLog:
    return DailyLog.model_validate(record)


def _normalize_date(value: str | date) -> str:
    """Return an ISO calendar date string, rejecting anything else."""
    if isinstance(value, date):
        return value.isoformat()
    return date.fromisoformat(value).isoformat()


def _key_filter(user_id: str, challenge_id: str, day: str) -> str:
    return (
        f'user_id = "{sanitize_param(user_id)}" && '
        f'challenge_id = "{sanitize_param(challenge_id)}" && '
        f'date = "{sanitize_param(day)}"'
    )


async def save_daily_log(
    *,
    user_id: str,
    challenge_id: str,
    date: str | date,  # noqa: A002 - matches the stored column name
    description: str,
    completed: bool,
    photo_url: str | None = None,
) -> DailyLog:
    """Create or overwrite the user's log for a challenge day.

    An existing entry keeps its id; description, completed flag, photo and
    timestamp are replaced.

    Args:
        user_id: ID of the logging user
        challenge_id: ID of the challenge
        date: Calendar date being logged (ISO string or date)
        description: Free-text entry
        completed: Whether the day's task was done
        photo_url: Optional progress photo URL

    Returns:
        The stored DailyLog

    Raises:
        ValueError: If ``date`` is not an ISO calendar date
        db_client.DatabaseError: If database operation fails
    """
    with span("log_service.save_daily_log"):
        day = _normalize_date(date)
        record = await db_client.upsert_record(
            collection="challenge_logs",
            data={
                "user_id": user_id,
                "challenge_id": challenge_id,
                "date": day,
                "description": description,
                "completed": completed,
                "photo_url": photo_url,
                "timestamp": datetime.now(UTC).isoformat().replace("+00:00", "Z"),
            },
            conflict_fields=LOG_KEY_FIELDS,
        )
        log_with_user_context(
            logger,
            "info",
            "Saved daily log",
            user_id=user_id,
            challenge_id=challenge_id,
            date=day,
            log_id=record["id"],
        )
        return _to_log(record)


async def get_daily_log(*, user_id: str, challenge_id: str, date: str | date) -> DailyLog | None:  # noqa: A002
    """Return the user's log for a challenge day, or None."""
    record = await db_client.get_first_record(
        collection="challenge_logs",
        filter_query=_key_filter(user_id, challenge_id, _normalize_date(date)),
    )
    return _to_log(record) if record else None


async def list_logs() -> list[DailyLog]:
    """Every daily log, in insertion order."""
    records = await db_client.list_all_records(collection="challenge_logs")
    return [_to_log(r) for r in records]


async def list_user_logs(*, user_id: str, challenge_id: str | None = None) -> list[DailyLog]:
    """A user's logs, newest date first, optionally limited to one challenge."""
    filter_query = f'user_id = "{sanitize_param(user_id)}"'
    if challenge_id is not None:
        filter_query += f' && challenge_id = "{sanitize_param(challenge_id)}"'

    records = await db_client.list_all_records(collection="challenge_logs", filter_query=filter_query)
    logs = [_to_log(r) for r in records]
    logs.sort(key=lambda log: log.date, reverse=True)
    return logs


async def get_feed(*, limit: int = constants.DEFAULT_FEED_LIMIT) -> list[FeedItem]:
    """Social feed: entries with text, most recently written first."""
    with span("log_service.get_feed"):
        logs = [log for log in await list_logs() if log.description.strip()]
        logs.sort(key=lambda log: log.timestamp, reverse=True)
        logs = logs[:limit]

        users = {u["id"]: u for u in await db_client.list_all_records(collection="profiles")}
        challenges = {c["id"]: c for c in await db_client.list_all_records(collection="challenges")}

        feed = []
        for log in logs:
            author = users.get(log.user_id)
            if author is None:
                logger.warning("Skipping feed entry from unknown user", extra={"user_id": log.user_id})
                continue
            challenge = challenges.get(log.challenge_id)
            feed.append(
                FeedItem(
                    log_id=log.id,
                    user_id=log.user_id,
                    user_name=author["name"],
                    avatar=author.get("avatar"),
                    challenge_id=log.challenge_id,
                    challenge_title=challenge["title"] if challenge else None,
                    date=log.date,
                    description=log.description,
                    completed=log.completed,
                    photo_url=log.photo_url,
                    timestamp=log.timestamp,
                )
            )
        return feed


async def save_reflection(
    *,
    user_id: str,
    challenge_id: str,
    date: str | date,  # noqa: A002
    reflection: str,
) -> DailyLog:
    """Attach a journal reflection to an existing daily log.

    Raises:
        db_client.RecordNotFoundError: If the user has no log for that day
    """
    with span("log_service.save_reflection"):
        existing = await get_daily_log(user_id=user_id, challenge_id=challenge_id, date=date)
        if existing is None:
            msg = f"Daily log not found for user {user_id}, challenge {challenge_id} on {date}"
            raise db_client.RecordNotFoundError(msg)

        record = await db_client.update_record(
            collection="challenge_logs",
            record_id=existing.id,
            data={"reflection": reflection.strip()},
        )
        log_with_user_context(logger, "info", "Saved reflection", user_id=user_id, log_id=existing.id)
        return _to_log(record)


async def like_daily_log(*, log_id: str) -> None:
    """Liking a daily log is not supported.

    Raises:
        NotSupportedError: Always
    """
    msg = f"Liking daily logs is not supported (log {log_id})"
    raise NotSupportedError(msg)
