"""Current-session holder with a signed marker persisted to a local file."""

import json
import logging
from collections.abc import Callable
from pathlib import Path
from typing import Literal

from itsdangerous import BadSignature, URLSafeSerializer

from src.core.config import settings
from src.domain.user import User


logger = logging.getLogger(__name__)

AuthEvent = Literal["SIGNED_IN", "SIGNED_OUT"]
AuthListener = Callable[[AuthEvent, User | None], None]


class SessionStore:
    """Holds the signed-in user and mirrors their id to disk.

    The file stores ``{"session": <signed user id>}``. A marker that fails
    signature checks is treated as absent.
    """

    def __init__(self, path: Path | None = None, secret_key: str | None = None):
        self._path = path
        self._secret_key = secret_key
        self._listeners: list[AuthListener] = []
        self.current_user: User | None = None

    @property
    def path(self) -> Path:
        return self._path or Path(settings.session_file_path)

    def _serializer(self) -> URLSafeSerializer:
        return URLSafeSerializer(self._secret_key or settings.secret_key, salt="local-session")

    def persist(self, user_id: str) -> None:
        """Write the signed session marker for ``user_id``."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        token = self._serializer().dumps(user_id)
        self.path.write_text(json.dumps({"session": token}), encoding="utf-8")
        logger.debug("Persisted session marker", extra={"path": str(self.path)})

    def load(self) -> str | None:
        """Return the persisted user id, or None when missing or tampered with."""
        try:
            payload = json.loads(self.path.read_text(encoding="utf-8"))
            return self._serializer().loads(payload["session"])
        except FileNotFoundError:
            return None
        except (json.JSONDecodeError, KeyError, TypeError, BadSignature) as e:
            logger.warning("Ignoring unreadable session marker", extra={"error": str(e)})
            return None

    def clear(self) -> None:
        """Forget the current user and remove the persisted marker."""
        self.current_user = None
        self.path.unlink(missing_ok=True)

    def set_user(self, user: User | None) -> None:
        """Set the current user and notify listeners."""
        self.current_user = user
        event: AuthEvent = "SIGNED_IN" if user else "SIGNED_OUT"
        for listener in list(self._listeners):
            listener(event, user)

    def subscribe(self, listener: AuthListener) -> Callable[[], None]:
        """Register an auth-state listener and return a function that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe


session_store = SessionStore()
