"""Session manager - who is logged in and with which role.

The session lives in memory and is mirrored into a ``StoragePort`` under
three keys so it survives restarts. ``is_logged_in`` is derived from the
token and can never disagree with it.

Tokens restored by ``initialize`` are not revalidated. A token the server
no longer accepts is discarded on the first 401 it produces (see
``handle_unauthorized``).
"""

from collections.abc import Callable
import logging
from typing import Any

from pydantic import ValidationError

from clinirec.core.exceptions import AuthenticationError, TransportError
from clinirec.models.auth import AuthResponse, LoginRequest, SessionSnapshot, UserRole
from clinirec.ports.storage import StoragePort
from clinirec.transport.gateway import TransportGateway

logger = logging.getLogger(__name__)

TOKEN_KEY = "jwtToken"
ROLE_KEY = "userRole"
USER_ID_KEY = "userId"
STORAGE_KEYS = (TOKEN_KEY, ROLE_KEY, USER_ID_KEY)

LOGIN_PATH = "/auth/login"
PROFILE_PATH = "/practitioners/{user_id}/profile"

LogoutListener = Callable[[], None]


class SessionManager:
    """Authentication state for one client."""

    def __init__(self, gateway: TransportGateway, storage: StoragePort) -> None:
        self.gateway = gateway
        self.storage = storage
        self._token = ""
        self._role = UserRole.UNASSIGNED
        self._user_id: str | None = None
        self._username = ""
        self._logout_listeners: list[LogoutListener] = []

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def token(self) -> str:
        return self._token

    @property
    def role(self) -> UserRole:
        return self._role

    @property
    def user_id(self) -> str | None:
        return self._user_id

    @property
    def username(self) -> str:
        return self._username

    @property
    def is_logged_in(self) -> bool:
        return bool(self._token)

    @property
    def is_admin(self) -> bool:
        return self._role is UserRole.ADMIN

    @property
    def is_practitioner(self) -> bool:
        return self._role is UserRole.PRACTITIONER

    def get_token(self) -> str | None:
        """Token provider for the transport gateway."""
        return self._token or None

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            is_logged_in=self.is_logged_in, role=self._role, user_id=self._user_id
        )

    def add_logout_listener(self, listener: LogoutListener) -> None:
        self._logout_listeners.append(listener)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def login(self, email: str, password: str) -> bool:
        """Authenticate against the records service.

        Never raises. Any failure clears the session and returns False.
        """
        request = LoginRequest(email=email, password=password)
        try:
            body = await self.gateway.post(LOGIN_PATH, request.model_dump())
            auth = self._parse_auth_response(body)
            self._persist(auth)
        except TransportError as e:
            logger.warning("Login failed for %s: %s", email, e)
            self.logout()
            return False
        except AuthenticationError as e:
            logger.error("Login response rejected for %s: %s", email, e.message)
            self.logout()
            return False
        except OSError as e:
            logger.error("Could not persist session for %s: %s", email, e)
            self.logout()
            return False

        self._token = auth.token or ""
        self._role = auth.role
        self._user_id = auth.user_id
        self._username = email
        logger.info("User %s logged in with role %s", email, self._role.value or "none")
        return True

    def logout(self) -> None:
        """Clear the session in memory and in storage. Idempotent, never raises."""
        was_logged_in = self.is_logged_in
        self._token = ""
        self._role = UserRole.UNASSIGNED
        self._user_id = None
        self._username = ""

        for key in STORAGE_KEYS:
            try:
                self.storage.remove_item(key)
            except OSError as e:
                logger.error("Could not clear %s from session storage: %s", key, e)

        if was_logged_in:
            logger.info("User logged out")
            for listener in self._logout_listeners:
                try:
                    listener()
                except Exception:
                    logger.exception("Logout listener %r failed", listener)

    def initialize(self) -> None:
        """Restore a persisted session without contacting the server."""
        token = self.storage.get_item(TOKEN_KEY)
        if not token:
            logger.debug("No persisted session found")
            return

        self._token = token
        self._role = UserRole.normalize(self.storage.get_item(ROLE_KEY))
        self._user_id = self.storage.get_item(USER_ID_KEY) or None
        logger.info("Restored persisted session with role %s", self._role.value or "none")

    def handle_unauthorized(self) -> None:
        """Discard a token the server rejected."""
        if self.is_logged_in:
            logger.warning("Session token rejected by the server, logging out")
            self.logout()

    async def check_practitioner_profile(self, user_id: str | None = None) -> bool:
        """Return True when the practitioner user already has a profile."""
        target = (user_id if user_id is not None else self._user_id) or ""
        if not target.strip():
            logger.warning("Cannot check practitioner profile without a user id")
            return False

        try:
            response = await self.gateway.send(
                "GET", PROFILE_PATH.format(user_id=target.strip())
            )
        except TransportError as e:
            logger.warning("Practitioner profile check failed: %s", e)
            return False

        if response.status != 200:
            logger.warning(
                "Practitioner profile check answered with status %s", response.status
            )
            return False
        return bool(response.body)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @staticmethod
    def _parse_auth_response(body: Any) -> AuthResponse:
        if not isinstance(body, dict):
            msg = "Login response is not a JSON object"
            raise AuthenticationError(msg)
        try:
            auth = AuthResponse.model_validate(body)
        except ValidationError as e:
            msg = "Login response is malformed"
            raise AuthenticationError(msg) from e
        if not auth.token:
            msg = "Login response carries no token"
            raise AuthenticationError(msg)
        return auth

    def _persist(self, auth: AuthResponse) -> None:
        self.storage.set_item(TOKEN_KEY, auth.token or "")
        self.storage.set_item(ROLE_KEY, auth.role.value)
        self.storage.set_item(USER_ID_KEY, auth.user_id or "")
