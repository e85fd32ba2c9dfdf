"""Authentication service: sign-up, sign-in, sign-out and session restore.

Credentials live in ``auth_credentials`` apart from ``profiles``, the way a
hosted auth provider keeps accounts apart from application rows. Failures are
reported as ``False`` and logged; they never raise to the caller.
"""

import logging
from collections.abc import Callable

from pydantic import ValidationError
from werkzeug.security import check_password_hash, generate_password_hash

from src.core import db_client
from src.core.config import constants
from src.core.db_client import sanitize_param
from src.core.logging import span
from src.core.session_store import AuthListener, session_store
from src.domain.create_models import SignUpRequest
from src.domain.user import User, UserRole
from src.services import user_service


logger = logging.getLogger(__name__)


async def _get_credential(email: str) -> dict | None:
    return await db_client.get_first_record(
        collection="auth_credentials",
        filter_query=f'email = "{sanitize_param(email.strip().lower())}"',
    )


def _start_session(user: User) -> None:
    session_store.set_user(user)
    session_store.persist(user.id)


async def register(
    *,
    name: str,
    email: str,
    password: str,
    role: UserRole = UserRole.MEMBER,
) -> User | None:
    """Create a profile and its credentials without touching the session.

    Returns:
        The new user, or None if the email is already registered or the form is invalid

    Raises:
        db_client.DatabaseError: If database operation fails
    """
    try:
        request = SignUpRequest(name=name, email=email, password=password)
    except ValidationError as e:
        logger.warning("Rejected sign-up form", extra={"errors": e.error_count()})
        return None

    if await _get_credential(request.email) is not None:
        logger.warning("Sign-up for an already registered email")
        return None

    user = await user_service.create_profile(name=request.name, email=request.email, role=role)
    await db_client.create_record(
        collection="auth_credentials",
        data={
            "email": request.email,
            "password_hash": generate_password_hash(request.password, method=constants.PASSWORD_HASH_METHOD),
            "user_id": user.id,
        },
    )
    return user


async def sign_up(*, name: str, email: str, password: str) -> bool:
    """Create a member account and sign it in.

    Returns:
        False if the email is already registered or the form is invalid, True otherwise

    Raises:
        db_client.DatabaseError: If database operation fails
    """
    with span("auth_service.sign_up"):
        user = await register(name=name, email=email, password=password)
        if user is None:
            return False

        _start_session(user)
        logger.info("Signed up new member", extra={"user_id": user.id})
        return True


async def authenticate(email: str, password: str) -> User | None:
    """Return the user owning matching credentials, or None."""
    credential = await _get_credential(email)
    if credential is None or not check_password_hash(credential["password_hash"], password):
        logger.warning("Failed sign-in attempt")
        return None

    try:
        return await user_service.get_user_by_id(user_id=credential["user_id"])
    except db_client.RecordNotFoundError:
        logger.warning("Credential points at a missing profile", extra={"user_id": credential["user_id"]})
        return None


async def sign_in(*, email: str, password: str) -> bool:
    """Sign in with email and password.

    Returns:
        True and a persisted session on success, False when credentials don't match
    """
    with span("auth_service.sign_in"):
        user = await authenticate(email, password)
        if user is None:
            return False

        _start_session(user)
        logger.info("Signed in", extra={"user_id": user.id})
        return True


async def sign_in_admin(*, email: str, password: str) -> bool:
    """Sign in, refusing accounts that are not admins."""
    with span("auth_service.sign_in_admin"):
        user = await authenticate(email, password)
        if user is None:
            return False
        if user.role != UserRole.ADMIN:
            logger.warning("Admin sign-in by non-admin", extra={"user_id": user.id})
            return False

        _start_session(user)
        logger.info("Admin signed in", extra={"user_id": user.id})
        return True


def sign_out() -> None:
    """Clear the session and its persisted marker."""
    user = session_store.current_user
    session_store.clear()
    session_store.set_user(None)
    logger.info("Signed out", extra={"user_id": user.id if user else None})


async def restore_session() -> User | None:
    """Restore the persisted session on startup.

    A stale or tampered marker leaves the session empty and is removed.
    """
    with span("auth_service.restore_session"):
        user_id = session_store.load()
        if user_id is None:
            return None

        try:
            user = await user_service.get_user_by_id(user_id=user_id)
        except db_client.RecordNotFoundError:
            logger.info("Persisted session no longer resolves to a user", extra={"user_id": user_id})
            session_store.clear()
            return None

        session_store.set_user(user)
        logger.info("Restored session", extra={"user_id": user.id})
        return user


def get_current_user() -> User | None:
    """Return the signed-in user, if any."""
    return session_store.current_user


async def refresh_current_user() -> User | None:
    """Reload the signed-in user's profile, e.g. after joining a challenge."""
    current = session_store.current_user
    if current is None:
        return None
    user = await user_service.get_user_by_id(user_id=current.id)
    session_store.current_user = user
    return user


def on_auth_state_change(callback: AuthListener) -> Callable[[], None]:
    """Subscribe to sign-in/sign-out events. Returns an unsubscribe function."""
    return session_store.subscribe(callback)
