"""Pydantic models for creating records in database."""

import math
import re
from datetime import date

from pydantic import BaseModel, Field, field_validator, model_validator

from src.core.config import constants
from src.domain.challenge import Difficulty
from src.domain.user import MAX_NAME_LENGTH, NAME_PATTERN


EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class SignUpRequest(BaseModel):
    """Pydantic model for a sign-up form."""

    name: str = Field(..., description="Display name of the user")
    email: str = Field(..., description="Sign-in email address")
    password: str = Field(..., description="Plain-text password, hashed before storage")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Name cannot be empty")
        if len(v) > MAX_NAME_LENGTH:
            raise ValueError(f"Name too long (max {MAX_NAME_LENGTH} characters)")
        if not NAME_PATTERN.match(v):
            raise ValueError("Name can only contain letters, spaces, hyphens, and apostrophes")
        return v

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        """Normalize email and check it has a plausible shape."""
        v = v.strip().lower()
        if not EMAIL_PATTERN.match(v):
            raise ValueError("Invalid email address")
        return v

    @field_validator("password")
    @classmethod
    def validate_password_length(cls, v: str) -> str:
        if len(v) < constants.MIN_PASSWORD_LENGTH:
            msg = f"Password must be at least {constants.MIN_PASSWORD_LENGTH} characters"
            raise ValueError(msg)
        return v


class ChallengeCreate(BaseModel):
    """Pydantic model for creating a challenge record.

    When ``duration`` is omitted it is derived from the date range, rounded up to whole days.
    """

    title: str = Field(..., min_length=1, description="Challenge title")
    description: str = Field(default="", description="Detailed challenge description")
    start_date: date = Field(..., description="First day of the challenge")
    end_date: date = Field(..., description="Last day of the challenge")
    duration: int | None = Field(default=None, ge=1, description="Length in days")
    difficulty: Difficulty = Field(default=Difficulty.BEGINNER, description="Difficulty level")
    cover_image: str | None = Field(default=None, description="Cover image URL")
    daily_prompts: list[str] = Field(default_factory=list, description="Ordered daily prompt strings")

    @model_validator(mode="after")
    def derive_duration(self) -> "ChallengeCreate":
        if self.duration is None:
            days = (self.end_date - self.start_date).total_seconds() / 86400
            self.duration = max(math.ceil(days), 1)
        return self


class ParticipantCreate(BaseModel):
    """Pydantic model for a challenge join record."""

    user_id: str
    challenge_id: str
