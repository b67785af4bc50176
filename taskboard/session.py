"""
Session lifecycle and authentication.

State machine:
  Unauthenticated → (login | signup success) → Authenticated(token)
  Authenticated   → (logout | expiry seen by check_auth) → Unauthenticated

Expiry is lazy: check_auth() runs once when the manager is built and again
only when a caller asks. Nothing polls the clock in the background.

Single-session model: the storage holds at most one user record and one
token, under the keys "user" and "sessionToken".
"""
import asyncio
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Optional

from .credentials import DEFAULT_ITERATIONS, hash_password, verify_password
from .errors import (
    ConflictError,
    InvalidCredentialError,
    MalformedDataError,
    NotFoundError,
    TaskboardError,
    ValidationError,
)
from .schema import SessionToken, User, utc_now
from .storage import PersistencePort, StoredValue

logger = logging.getLogger(__name__)

USER_KEY = "user"
SESSION_KEY = "sessionToken"

SESSION_TTL = timedelta(hours=24)
MIN_PASSWORD_LENGTH = 6


def issue_session(now: Optional[datetime] = None) -> SessionToken:
    """Fresh random token valid for SESSION_TTL."""
    now = now or utc_now()
    return SessionToken(token=str(uuid.uuid4()), expires=now + SESSION_TTL)


def is_valid(token: Optional[SessionToken], now: Optional[datetime] = None) -> bool:
    """A token is valid strictly before its expiry instant."""
    if token is None:
        return False
    return token.expires > (now or utc_now())


def validate_credentials(
    email: str,
    password: Optional[str] = None,
    name: Optional[str] = None,
    confirm_password: Optional[str] = None,
    mode: str = "login",
) -> None:
    """
    Boundary checks for the auth form. Raises ValidationError on the first problem.

    mode is "login", "signup" or "reset"; reset only needs an email.
    """
    if not email:
        raise ValidationError("Email is required")
    if "@" not in email:
        raise ValidationError("Please enter a valid email address")
    if mode != "reset":
        if not password:
            raise ValidationError("Password is required")
        if len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(
                f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"
            )
    if mode == "signup":
        if not name:
            raise ValidationError("Name is required")
        if password != confirm_password:
            raise ValidationError("Passwords do not match")


@dataclass
class AuthResult:
    """Outcome of an auth operation. Failures carry the error instead of raising it."""
    success: bool
    error: Optional[TaskboardError] = None
    token: Optional[str] = None

    @property
    def message(self) -> str:
        return str(self.error) if self.error else ""

    @classmethod
    def ok(cls, token: Optional[str] = None) -> "AuthResult":
        return cls(success=True, token=token)

    @classmethod
    def fail(cls, error: TaskboardError) -> "AuthResult":
        return cls(success=False, error=error)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"success": self.success}
        if self.error:
            data["error"] = self.message
        if self.token:
            data["token"] = self.token
        return data


class AuthManager:
    """
    Owns the stored user, its credential, and the session token.

    login/signup/reset_password are coroutines that wait `latency` seconds
    first. Each runs as its own task behind asyncio.shield, so a caller that
    times out or is cancelled stops waiting but the work still completes and
    writes its results.
    """

    def __init__(
        self,
        storage: PersistencePort,
        clock: Callable[[], datetime] = utc_now,
        latency: float = 1.0,
        iterations: int = DEFAULT_ITERATIONS,
    ):
        self.storage = storage
        self.clock = clock
        self.latency = latency
        self.iterations = iterations
        self._user = StoredValue(storage, USER_KEY, None)
        self._token = StoredValue(storage, SESSION_KEY, None)
        self.is_authenticated = False
        self.loading = True
        self.check_auth()

    # ── State ──

    @property
    def user(self) -> Optional[User]:
        if self._user.value is None:
            return None
        try:
            return User.from_dict(self._user.value)
        except MalformedDataError as e:
            logger.error(f"Ignoring stored user: {e}")
            return None

    @property
    def session_token(self) -> Optional[SessionToken]:
        if self._token.value is None:
            return None
        try:
            return SessionToken.from_dict(self._token.value)
        except MalformedDataError as e:
            logger.error(f"Ignoring stored session token: {e}")
            return None

    def is_session_valid(self) -> bool:
        """Validity of the stored token right now. Does not change state."""
        return is_valid(self.session_token, self.clock())

    def check_auth(self) -> bool:
        """Settle the auth state from storage; an expired or orphan token is cleared."""
        try:
            if self.user and self.is_session_valid():
                self.is_authenticated = True
            else:
                if self._token.value is not None:
                    logger.info("Session expired or invalid, clearing token")
                self._token.set(None)
                self.is_authenticated = False
        except Exception as e:
            logger.error(f"Auth check failed: {e}")
            self._token.set(None)
            self.is_authenticated = False
        finally:
            self.loading = False
        return self.is_authenticated

    def _start_session(self, user: User) -> SessionToken:
        token = issue_session(self.clock())
        self._user.set(user.to_dict())
        self._token.set(token.to_dict())
        self.is_authenticated = True
        return token

    # ── Operations ──

    @staticmethod
    async def _detached(coro) -> AuthResult:
        # Cancelling the caller leaves the inner task running to completion
        task = asyncio.ensure_future(coro)
        return await asyncio.shield(task)

    async def login(self, email: str, password: str) -> AuthResult:
        return await self._detached(self._run_login(email, password))

    async def _run_login(self, email: str, password: str) -> AuthResult:
        try:
            await asyncio.sleep(self.latency)
            token = self._login(email, password)
        except TaskboardError as e:
            logger.info(f"Login rejected: {e}")
            return AuthResult.fail(e)
        except Exception as e:
            logger.error(f"Login error: {e}")
            return AuthResult.fail(TaskboardError("Login failed"))
        logger.info(f"Login succeeded for {email}")
        return AuthResult.ok(token.token)

    def _login(self, email: str, password: str) -> SessionToken:
        # Read straight from the port, not the cache, to see the latest write
        raw = self.storage.get(USER_KEY)
        if not raw:
            raise NotFoundError()
        try:
            user = User.from_dict(raw)
        except MalformedDataError:
            raise MalformedDataError("Invalid user data")
        if user.email != email:
            raise NotFoundError()
        if not user.hashed_password or not verify_password(
            password, user.hashed_password, self.iterations
        ):
            raise InvalidCredentialError()
        return self._start_session(user)

    async def signup(self, name: str, email: str, password: str) -> AuthResult:
        return await self._detached(self._run_signup(name, email, password))

    async def _run_signup(self, name: str, email: str, password: str) -> AuthResult:
        try:
            await asyncio.sleep(self.latency)
            token = self._signup(name, email, password)
        except TaskboardError as e:
            logger.info(f"Signup rejected: {e}")
            return AuthResult.fail(e)
        except Exception as e:
            logger.error(f"Signup error: {e}")
            return AuthResult.fail(TaskboardError("Signup failed"))
        logger.info(f"Signup succeeded for {email}")
        return AuthResult.ok(token.token)

    def _signup(self, name: str, email: str, password: str) -> SessionToken:
        raw = self.storage.get(USER_KEY)
        if raw:
            try:
                if User.from_dict(raw).email == email:
                    raise ConflictError()
            except MalformedDataError as e:
                logger.error(f"Overwriting unreadable stored user: {e}")
        user = User(
            id=str(uuid.uuid4()),
            name=name,
            email=email,
            hashed_password=hash_password(password, self.iterations),
        )
        return self._start_session(user)

    def logout(self) -> None:
        """Drop the session. The user record stays so a later login works."""
        self._token.set(None)
        self.is_authenticated = False
        logger.info("Logged out")

    async def reset_password(self, email: str) -> AuthResult:
        """Always reports success. No credential is touched and no mail is sent."""
        return await self._detached(self._run_reset(email))

    async def _run_reset(self, email: str) -> AuthResult:
        try:
            await asyncio.sleep(self.latency)
        except Exception as e:
            logger.error(f"Reset password error: {e}")
            return AuthResult.fail(TaskboardError("Failed to send reset email"))
        logger.info(f"Password reset requested for {email}")
        return AuthResult.ok()
