"""Authentication, session context and the auth gate for PetAdopt."""

from __future__ import annotations

import logging
import threading
from dataclasses import asdict, dataclass
from typing import Callable, Optional

from diskcache import Cache

from .backend import BackendClient, BackendError, get_client
from .config import HOME_ROUTE, LOGIN_ROUTE, PASSWORD_MIN_LENGTH, SESSION_CACHE_DIR
from .email_utils import is_valid_email, is_valid_phone, normalize_email, normalize_phone
from .models import AuthSession, User
from .profile_store import create_default_profile

logger = logging.getLogger(__name__)

INITIAL_SESSION = "INITIAL_SESSION"
SIGNED_IN = "SIGNED_IN"
SIGNED_OUT = "SIGNED_OUT"
TOKEN_REFRESHED = "TOKEN_REFRESHED"


def email_error(email: str) -> str | None:
    """Return a validation error for email input, if any."""
    if not is_valid_email(normalize_email(email)):
        return "Enter a valid email address."
    return None


def password_error(password: str) -> str | None:
    """Return a validation error for password input, if any."""
    if len(password or "") < PASSWORD_MIN_LENGTH:
        return f"Password must be at least {PASSWORD_MIN_LENGTH} characters."
    return None


def phone_error(phone: str) -> str | None:
    if not is_valid_phone(normalize_phone(phone)):
        return "Enter a phone number in international format, e.g. +15551234567."
    return None


def otp_error(code: str) -> str | None:
    if not (code or "").strip().isdigit():
        return "Enter the code from the text message."
    return None


# ===========================
# Navigation
# ===========================


class Navigator:
    """Route changes requested by screens; the host app supplies the real one."""

    def push(self, route: str) -> None:
        raise NotImplementedError

    def replace(self, route: str) -> None:
        raise NotImplementedError

    def back(self) -> None:
        raise NotImplementedError


class LoggingNavigator(Navigator):
    def __init__(self) -> None:
        self.history: list[str] = []

    @property
    def current(self) -> str | None:
        return self.history[-1] if self.history else None

    def push(self, route: str) -> None:
        logger.info(f"Navigate to {route}")
        self.history.append(route)

    def replace(self, route: str) -> None:
        logger.info(f"Redirect to {route}")
        if self.history:
            self.history[-1] = route
        else:
            self.history.append(route)

    def back(self) -> None:
        if self.history:
            self.history.pop()


# ===========================
# Session context
# ===========================


class SessionStore:
    """Disk-backed storage for the current auth session."""

    KEY = "auth_session"

    def __init__(self, directory: str = SESSION_CACHE_DIR) -> None:
        self.cache = Cache(directory)

    def load(self) -> AuthSession | None:
        try:
            hit = self.cache.get(self.KEY)
        except Exception:
            self.cache.delete(self.KEY)
            hit = None
        if not isinstance(hit, dict):
            return None
        return AuthSession.from_payload(hit)

    def save(self, session: AuthSession) -> None:
        self.cache.set(self.KEY, asdict(session))

    def clear(self) -> None:
        self.cache.delete(self.KEY)


class Subscription:
    def __init__(self, unsubscribe: Callable[[], None]) -> None:
        self._unsubscribe = unsubscribe
        self.active = True

    def unsubscribe(self) -> None:
        if self.active:
            self.active = False
            self._unsubscribe()


SessionListener = Callable[[str, Optional[AuthSession]], None]


class SessionContext:
    """Holds the signed-in session and notifies subscribers of changes.

    Passed explicitly to screens; only AuthService should call
    ``set_session``.
    """

    def __init__(
        self,
        store: SessionStore | None = None,
        client_builder: Callable[..., BackendClient] = get_client,
    ) -> None:
        self.store = store
        self._client_builder = client_builder
        self._session: AuthSession | None = None
        self._listeners: list[SessionListener] = []
        self._lock = threading.Lock()

    @property
    def session(self) -> AuthSession | None:
        return self._session

    @property
    def user(self) -> User | None:
        return self._session.user if self._session else None

    @property
    def access_token(self) -> str | None:
        return self._session.access_token if self._session else None

    def client(self, anonymous: bool = False) -> BackendClient:
        """Build a backend client acting as the current user."""
        return self._client_builder(None if anonymous else self.access_token)

    def subscribe(self, listener: SessionListener) -> Subscription:
        with self._lock:
            self._listeners.append(listener)

        def _remove() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return Subscription(_remove)

    def set_session(self, session: AuthSession | None, event: str) -> None:
        with self._lock:
            self._session = session
            listeners = list(self._listeners)
        if self.store is not None:
            if session is None:
                self.store.clear()
            else:
                self.store.save(session)
        for listener in listeners:
            listener(event, session)


# ===========================
# Auth gate
# ===========================


@dataclass(frozen=True)
class AuthState:
    user: User | None
    loading: bool


class AuthGate:
    """Resolves the current user for a protected screen.

    Unauthenticated users are redirected to the login route, both on mount
    and whenever the session is cleared while mounted.
    """

    def __init__(self, context: SessionContext, navigator: Navigator) -> None:
        self.context = context
        self.navigator = navigator
        self.user: User | None = None
        self.loading = True
        self._subscription: Subscription | None = None

    @property
    def state(self) -> AuthState:
        return AuthState(user=self.user, loading=self.loading)

    def mount(self) -> AuthState:
        self.loading = True
        self._subscription = self.context.subscribe(self._on_change)
        user = None
        token = self.context.access_token
        if token:
            try:
                user = self.context.client().get_user(token)
            except BackendError as exc:
                logger.info(f"Auth check failed: {exc}")
        if user is None or not user.id:
            user = None
            self.navigator.replace(LOGIN_ROUTE)
        self.user = user
        self.loading = False
        return self.state

    def unmount(self) -> None:
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None

    def _on_change(self, event: str, session: AuthSession | None) -> None:
        logger.debug(f"Auth state changed: {event}")
        if session is None or not session.user.id:
            self.user = None
            self.navigator.replace(LOGIN_ROUTE)
        else:
            self.user = session.user


# ===========================
# Auth actions
# ===========================


class AuthService:
    def __init__(self, context: SessionContext, navigator: Navigator) -> None:
        self.context = context
        self.navigator = navigator

    def _start_session(self, session: AuthSession) -> AuthSession:
        self.context.set_session(session, SIGNED_IN)
        self.navigator.replace(HOME_ROUTE)
        return session

    def sign_in_with_password(self, email: str, password: str) -> AuthSession:
        """Sign in with email and password.

        Raises:
            ValueError: Invalid input; no request was sent.
            BackendError: The auth service rejected the credentials.
        """
        error = email_error(email) or password_error(password)
        if error:
            raise ValueError(error)
        session = self.context.client().sign_in_with_password(normalize_email(email), password)
        return self._start_session(session)

    def sign_up(self, email: str, password: str) -> tuple[User, AuthSession | None]:
        """Create an account and its empty profile row.

        Returns:
            The new user and, when no email confirmation is required, the
            session that is now active.
        """
        error = email_error(email) or password_error(password)
        if error:
            raise ValueError(error)
        user, session = self.context.client().sign_up(normalize_email(email), password)
        if session is not None:
            self._start_session(session)
        if user.id:
            try:
                create_default_profile(user.id, client_factory=self.context.client)
            except BackendError:
                logger.exception(f"Error creating profile for {user.id}.")
        return user, session

    def send_otp(self, phone: str) -> None:
        error = phone_error(phone)
        if error:
            raise ValueError(error)
        self.context.client().send_otp(normalize_phone(phone))

    def verify_otp(self, phone: str, code: str) -> AuthSession:
        error = phone_error(phone) or otp_error(code)
        if error:
            raise ValueError(error)
        session = self.context.client().verify_otp(normalize_phone(phone), code.strip())
        return self._start_session(session)

    def sign_out(self) -> None:
        """End the session and return to the login route.

        Raises:
            BackendError: The auth service refused the sign-out; the local
                session is kept unless the token was already invalid.
        """
        token = self.context.access_token
        try:
            self.context.client().sign_out(token)
        except BackendError as exc:
            if exc.status not in (401, 403):
                raise
            logger.info("Session already invalid on the server; clearing locally.")
        self.context.set_session(None, SIGNED_OUT)
        self.navigator.replace(LOGIN_ROUTE)

    def restore(self) -> AuthSession | None:
        """Load a persisted session, refreshing it when expired."""
        store = self.context.store
        session = store.load() if store is not None else None
        if session is None:
            return None
        if not session.is_expired():
            self.context.set_session(session, INITIAL_SESSION)
            return session
        try:
            refreshed = self.context.client(anonymous=True).refresh_session(session.refresh_token)
        except BackendError:
            logger.exception("Failed to refresh the stored session.")
            self.context.set_session(None, SIGNED_OUT)
            return None
        self.context.set_session(refreshed, TOKEN_REFRESHED)
        return refreshed
