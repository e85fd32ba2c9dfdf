"""User domain models and enums."""

import re
from enum import StrEnum

from pydantic import BaseModel, Field, field_validator


# Constants for validation
MAX_NAME_LENGTH = 50
NAME_PATTERN = re.compile(r"^[\w\s'.-]+$", re.UNICODE)


class UserRole(StrEnum):
    """User role within the app."""

    ADMIN = "admin"
    MEMBER = "member"


class User(BaseModel):
    """User data transfer object (a row of ``profiles`` plus its joined challenges)."""

    id: str = Field(..., description="Unique user ID from database")
    name: str = Field(..., description="Display name of the user")
    email: str = Field(..., description="Sign-in email address")
    role: UserRole = Field(default=UserRole.MEMBER, description="User role, fixed at creation")
    joined_challenges: list[str] = Field(default_factory=list, description="IDs of joined challenges")
    created: str = Field(..., description="Creation timestamp (ISO format)")
    avatar: str | None = Field(default=None, description="Avatar URL or initials placeholder")

    @field_validator("name")
    @classmethod
    def validate_name_usable(cls, v: str) -> str:
        """Validate name is usable - allows Unicode letters, spaces, hyphens, apostrophes."""
        v = v.strip()

        if not v:
            raise ValueError("Name cannot be empty")

        if len(v) > MAX_NAME_LENGTH:
            raise ValueError(f"Name too long (max {MAX_NAME_LENGTH} characters)")

        if not NAME_PATTERN.match(v):
            raise ValueError("Name can only contain letters, spaces, hyphens, and apostrophes")

        return v

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


def initials_avatar(name: str) -> str:
    """Build an avatar placeholder from the first letters of up to two name parts."""
    parts = [p for p in name.split() if p]
    return "".join(p[0] for p in parts[:2]).upper() or "?"
