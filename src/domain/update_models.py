"""Update models for database operations."""

from datetime import date

from pydantic import BaseModel, Field

from src.domain.challenge import Difficulty


class ChallengeUpdate(BaseModel):
    """Partial update payload for a challenge. Only fields that are set get merged."""

    title: str | None = Field(default=None, min_length=1)
    description: str | None = None
    start_date: date | None = None
    end_date: date | None = None
    duration: int | None = Field(default=None, ge=1)
    difficulty: Difficulty | None = None
    cover_image: str | None = None
    daily_prompts: list[str] | None = None

    def to_record(self) -> dict:
        """Serialize the explicitly set fields for the database."""
        return self.model_dump(mode="json", exclude_unset=True)
