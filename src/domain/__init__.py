"""Domain models and DTOs."""

from src.domain.challenge import Challenge, ChallengeParticipant, Difficulty
from src.domain.create_models import ChallengeCreate, ParticipantCreate, SignUpRequest
from src.domain.daily_log import DailyLog
from src.domain.update_models import ChallengeUpdate
from src.domain.user import User, UserRole


__all__ = [
    "Challenge",
    "ChallengeCreate",
    "ChallengeParticipant",
    "ChallengeUpdate",
    "DailyLog",
    "Difficulty",
    "ParticipantCreate",
    "SignUpRequest",
    "User",
    "UserRole",
]
