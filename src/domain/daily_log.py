"""Daily log domain model."""

from pydantic import BaseModel, Field


class DailyLog(BaseModel):
    """One day's entry for a user in a challenge.

    At most one exists per (user_id, challenge_id, date).
    """

    id: str = Field(..., description="Unique log ID from database")
    user_id: str = Field(..., description="ID of the user who logged the day")
    challenge_id: str = Field(..., description="ID of the challenge being logged")
    date: str = Field(..., description="Calendar date (ISO format, YYYY-MM-DD)")
    description: str = Field(default="", description="Free-text entry")
    completed: bool = Field(default=False, description="Whether the day's task was done")
    photo_url: str | None = Field(default=None, description="Optional progress photo URL")
    reflection: str | None = Field(default=None, description="Optional journal reflection")
    timestamp: str = Field(..., description="Time of the last write (ISO format)")
