"""Pydantic models for service layer return types.

These models provide type safety at service boundaries, converting database
dictionaries into typed objects with validation.
"""

from pydantic import BaseModel, Field


class LeaderboardEntry(BaseModel):
    """Member entry in the points leaderboard."""

    user_id: str
    name: str
    avatar: str | None = None
    points: int
    completion_rate: int
    streak: int
    rank: int


class ChallengeProgress(BaseModel):
    """A user's progress through one challenge."""

    challenge_id: str
    completed_days: int
    duration: int
    percentage: int
    logged_today: bool


class MonthSummary(BaseModel):
    """Completed days for a user within a calendar month."""

    year: int
    month: int
    completed: int
    total_days: int
    percentage: int


class AdminSummary(BaseModel):
    """Catalog-wide statistics for the admin dashboard."""

    total_challenges: int
    active_challenges: int
    total_participants: int


class Achievement(BaseModel):
    """Profile badge and whether the user has earned it."""

    title: str
    description: str
    earned: bool


class UserStatistics(BaseModel):
    """Profile statistics for a user."""

    user_id: str
    total_logs: int
    completed_logs: int
    completion_rate: int = Field(..., description="Completed logs as a percentage of all logs")
    current_streak: int
    longest_streak: int
    joined_challenges: int
    achievements: list[Achievement] = Field(default_factory=list)


class FeedItem(BaseModel):
    """Daily log enriched with author details for the social feed."""

    log_id: str
    user_id: str
    user_name: str
    avatar: str | None = None
    challenge_id: str
    challenge_title: str | None = None
    date: str
    description: str
    completed: bool
    photo_url: str | None = None
    timestamp: str
