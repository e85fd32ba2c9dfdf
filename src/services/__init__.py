from src.services import (
    analytics_service,
    auth_service,
    challenge_service,
    log_service,
    user_service,
)


__all__ = [
    "analytics_service",
    "auth_service",
    "challenge_service",
    "log_service",
    "user_service",
]
