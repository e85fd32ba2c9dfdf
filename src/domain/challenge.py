"""Challenge domain models and enums."""

import json
from enum import StrEnum

from pydantic import BaseModel, Field, field_validator


class Difficulty(StrEnum):
    """How demanding a challenge is."""

    BEGINNER = "Beginner"
    INTERMEDIATE = "Intermediate"
    ADVANCED = "Advanced"


class Challenge(BaseModel):
    """Challenge data transfer object."""

    id: str = Field(..., description="Unique challenge ID from database")
    title: str = Field(..., description="Challenge title (e.g., '30 Days of Discipline')")
    description: str = Field(default="", description="Detailed challenge description")
    start_date: str = Field(..., description="First day of the challenge (ISO date)")
    end_date: str = Field(..., description="Last day of the challenge (ISO date)")
    duration: int = Field(..., description="Length of the challenge in days")
    difficulty: Difficulty = Field(..., description="Difficulty level")
    cover_image: str | None = Field(default=None, description="Cover image URL")
    daily_prompts: list[str] = Field(default_factory=list, description="Ordered daily prompt strings")
    participants: int = Field(default=0, description="Number of distinct users who joined")
    created_by: str | None = Field(default=None, description="User ID of the admin who created it")
    created: str = Field(..., description="Creation timestamp (ISO format)")

    @field_validator("daily_prompts", mode="before")
    @classmethod
    def decode_prompts(cls, v: object) -> object:
        """Decode daily prompts stored as a JSON string column."""
        if isinstance(v, str):
            return json.loads(v) if v else []
        return v


class ChallengeParticipant(BaseModel):
    """Join record linking a user to a challenge."""

    id: str
    user_id: str
    challenge_id: str
    created: str
