"""JSON API router for the challenge tracker."""

import logging
from datetime import date
from typing import Annotated, Literal

from fastapi import APIRouter, Depends, Header, HTTPException, Path, Request, Response, status
from fastapi.responses import JSONResponse
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer
from pydantic import BaseModel, Field

from src.core import db_client
from src.core.config import constants, settings
from src.core.errors import ErrorCode, classify_error_with_response
from src.domain.challenge import Challenge
from src.domain.create_models import ChallengeCreate
from src.domain.daily_log import DailyLog
from src.domain.update_models import ChallengeUpdate
from src.domain.user import User, UserRole
from src.models.service_models import (
    AdminSummary,
    ChallengeProgress,
    FeedItem,
    LeaderboardEntry,
    MonthSummary,
    UserStatistics,
)
from src.services import analytics_service, auth_service, challenge_service, log_service, user_service


logger = logging.getLogger(__name__)

router = APIRouter(tags=["api"])

serializer = URLSafeTimedSerializer(str(settings.secret_key), salt="api-session")

_STATUS_BY_CODE = {
    ErrorCode.ERR_AUTHENTICATION_FAILED: status.HTTP_401_UNAUTHORIZED,
    ErrorCode.ERR_PERMISSION_DENIED: status.HTTP_403_FORBIDDEN,
    ErrorCode.ERR_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.ERR_VALIDATION: constants.HTTP_UNPROCESSABLE,
    ErrorCode.ERR_NOT_SUPPORTED: status.HTTP_501_NOT_IMPLEMENTED,
    ErrorCode.ERR_DATABASE_ERROR: status.HTTP_503_SERVICE_UNAVAILABLE,
    ErrorCode.ERR_NETWORK_ERROR: status.HTTP_503_SERVICE_UNAVAILABLE,
}


class SignUpBody(BaseModel):
    name: str
    email: str
    password: str


class LoginBody(BaseModel):
    email: str
    password: str


class DailyLogBody(BaseModel):
    description: str = ""
    completed: bool = False
    photo_url: str | None = None


class ReflectionBody(BaseModel):
    reflection: str = Field(..., min_length=1)


class SessionResponse(BaseModel):
    token: str
    user: User


def issue_token(user_id: str) -> str:
    """Sign a bearer token carrying the user id."""
    return serializer.dumps(user_id)


async def error_response(request: Request, exc: Exception) -> JSONResponse:
    """Render a service exception as a classified JSON error."""
    error = classify_error_with_response(exc)
    status_code = _STATUS_BY_CODE.get(error.code, constants.HTTP_SERVER_ERROR)
    logger.warning(
        "api_request_failed",
        extra={"path": request.url.path, "code": error.code, "error": str(exc)},
    )
    return JSONResponse(status_code=status_code, content=error.model_dump(mode="json"))


def _unauthorized(reason: str, request: Request) -> HTTPException:
    logger.warning(reason, extra={"path": request.url.path})
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Not authenticated",
        headers={"WWW-Authenticate": "Bearer"},
    )


async def require_user(request: Request, authorization: Annotated[str | None, Header()] = None) -> User:
    """Resolve the bearer token to the signed-in user."""
    scheme, _, token = (authorization or "").partition(" ")
    if scheme.lower() != "bearer" or not token:
        raise _unauthorized("api_auth_missing_token", request)

    try:
        user_id = serializer.loads(token, max_age=settings.session_max_age_seconds)
    except (BadSignature, SignatureExpired) as err:
        raise _unauthorized("api_auth_tampered_or_expired", request) from err

    try:
        return await user_service.get_user_by_id(user_id=str(user_id))
    except db_client.RecordNotFoundError as err:
        raise _unauthorized("api_auth_unknown_user", request) from err


async def require_admin(user: Annotated[User, Depends(require_user)]) -> User:
    """Allow only admins through."""
    if user.role != UserRole.ADMIN:
        logger.warning("api_admin_required", extra={"user_id": user.id})
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin role required")
    return user


CurrentUser = Annotated[User, Depends(require_user)]
AdminUser = Annotated[User, Depends(require_admin)]


# Session


@router.post("/auth/signup", status_code=status.HTTP_201_CREATED)
async def post_signup(body: SignUpBody) -> SessionResponse:
    """Create a member account and return a session token."""
    user = await auth_service.register(name=body.name, email=body.email, password=body.password)
    if user is None:
        raise HTTPException(status_code=constants.HTTP_BAD_REQUEST, detail="Sign-up failed")
    logger.info("api_signup_success", extra={"user_id": user.id})
    return SessionResponse(token=issue_token(user.id), user=user)


@router.post("/auth/login")
async def post_login(body: LoginBody) -> SessionResponse:
    """Exchange email and password for a session token."""
    user = await auth_service.authenticate(body.email, body.password)
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid email or password")
    return SessionResponse(token=issue_token(user.id), user=user)


@router.post("/auth/admin-login")
async def post_admin_login(body: LoginBody) -> SessionResponse:
    """Like login, but only admins get a token."""
    user = await auth_service.authenticate(body.email, body.password)
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid email or password")
    if user.role != UserRole.ADMIN:
        logger.warning("api_admin_login_non_admin", extra={"user_id": user.id})
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin role required")
    return SessionResponse(token=issue_token(user.id), user=user)


@router.post("/auth/logout", status_code=status.HTTP_204_NO_CONTENT)
async def post_logout(user: CurrentUser) -> Response:
    """Tokens are stateless; the client drops its copy."""
    logger.info("api_logout", extra={"user_id": user.id})
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/auth/me")
async def get_me(user: CurrentUser) -> User:
    return user


@router.get("/auth/me/statistics")
async def get_my_statistics(user: CurrentUser) -> UserStatistics:
    return await analytics_service.get_user_statistics(user_id=user.id)


@router.get("/calendar/{year}/{month}")
async def get_calendar_month(
    user: CurrentUser,
    year: Annotated[int, Path(ge=1, le=9999)],
    month: Annotated[int, Path(ge=1, le=12)],
) -> MonthSummary:
    """Completed days for the caller in one calendar month."""
    return await analytics_service.get_month_summary(user_id=user.id, year=year, month=month)


# Challenge catalog


@router.get("/challenges")
async def get_challenges(
    user: CurrentUser,
    scope: Literal["all", "joined", "available"] = "all",
) -> list[Challenge]:
    """List challenges, optionally only those the caller has or hasn't joined."""
    if scope == "joined":
        return await challenge_service.list_joined_challenges(user=user)
    if scope == "available":
        return await challenge_service.list_available_challenges(user=user)
    return await challenge_service.list_challenges()


@router.post("/challenges", status_code=status.HTTP_201_CREATED)
async def post_challenge(admin: AdminUser, body: ChallengeCreate) -> Challenge:
    return await challenge_service.create_challenge(created_by=admin.id, data=body)


@router.patch("/challenges/{challenge_id}")
async def patch_challenge(_admin: AdminUser, challenge_id: str, body: ChallengeUpdate) -> Challenge:
    """Merge the sent fields into a challenge."""
    challenge = await challenge_service.update_challenge(challenge_id=challenge_id, data=body)
    if challenge is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Challenge not found")
    return challenge


@router.delete("/challenges/{challenge_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_challenge(_admin: AdminUser, challenge_id: str) -> Response:
    """Delete a challenge with its logs. Unknown ids succeed as well."""
    await challenge_service.delete_challenge(challenge_id=challenge_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/challenges/{challenge_id}/join")
async def post_join(user: CurrentUser, challenge_id: str) -> User:
    return await challenge_service.join_challenge(user_id=user.id, challenge_id=challenge_id)


@router.post("/challenges/{challenge_id}/leave")
async def post_leave(user: CurrentUser, challenge_id: str) -> None:
    await challenge_service.leave_challenge(user_id=user.id, challenge_id=challenge_id)


@router.get("/challenges/{challenge_id}/progress")
async def get_progress(user: CurrentUser, challenge_id: str) -> ChallengeProgress:
    return await analytics_service.get_challenge_progress(user_id=user.id, challenge_id=challenge_id)


# Daily logs


def _parse_day(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError as err:
        raise HTTPException(
            status_code=constants.HTTP_UNPROCESSABLE,
            detail=f"Invalid date: {value}",
        ) from err


@router.put("/challenges/{challenge_id}/logs/{day}")
async def put_daily_log(user: CurrentUser, challenge_id: str, day: str, body: DailyLogBody) -> DailyLog:
    """Create or overwrite the caller's log for a challenge day."""
    log_date = _parse_day(day)
    await challenge_service.get_challenge(challenge_id=challenge_id)
    return await log_service.save_daily_log(
        user_id=user.id,
        challenge_id=challenge_id,
        date=log_date,
        description=body.description,
        completed=body.completed,
        photo_url=body.photo_url,
    )


@router.put("/challenges/{challenge_id}/logs/{day}/reflection")
async def put_reflection(user: CurrentUser, challenge_id: str, day: str, body: ReflectionBody) -> DailyLog:
    return await log_service.save_reflection(
        user_id=user.id,
        challenge_id=challenge_id,
        date=_parse_day(day),
        reflection=body.reflection,
    )


@router.post("/logs/{log_id}/like")
async def post_like(_user: CurrentUser, log_id: str) -> None:
    await log_service.like_daily_log(log_id=log_id)


@router.get("/feed")
async def get_feed(_user: CurrentUser, limit: int = constants.DEFAULT_FEED_LIMIT) -> list[FeedItem]:
    return await log_service.get_feed(limit=limit)


# Standings


@router.get("/leaderboard")
async def get_leaderboard(_user: CurrentUser) -> list[LeaderboardEntry]:
    return await analytics_service.get_leaderboard()


@router.get("/admin/summary")
async def get_admin_summary(_admin: AdminUser) -> AdminSummary:
    return await analytics_service.get_admin_summary()
