"""HTTP client for the hosted row store and auth service.

The backend speaks the PostgREST dialect for rows (``col=eq.value``,
``order=col.desc``) and a GoTrue-style API for authentication. Every request
carries the public key; requests made on behalf of a signed-in user also carry
their access token so row-level policies apply.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import requests

from .config import REQUEST_TIMEOUT_SECONDS, get_backend_config
from .models import AuthSession, User

logger = logging.getLogger(__name__)

REST_PREFIX = "/rest/v1"
AUTH_PREFIX = "/auth/v1"


class BackendError(Exception):
    """Raised for any failed backend request."""

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        code: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status = status
        self.code = code


def _format_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _error_from_response(resp: requests.Response) -> BackendError:
    body: Any = None
    try:
        body = resp.json()
    except ValueError:
        pass
    message = ""
    code = None
    if isinstance(body, dict):
        message = (
            body.get("message")
            or body.get("msg")
            or body.get("error_description")
            or body.get("error")
            or ""
        )
        code = body.get("code") or body.get("error_code")
    if not message:
        message = resp.reason or f"HTTP {resp.status_code}"
    return BackendError(str(message), status=resp.status_code, code=code)


class TableQuery:
    """Chainable request builder for a single table."""

    def __init__(self, client: "BackendClient", table: str) -> None:
        self._client = client
        self._table = table
        self._columns = "*"
        self._filters: list[tuple[str, str]] = []
        self._order: Optional[str] = None
        self._limit: Optional[int] = None

    def select(self, columns: str = "*") -> "TableQuery":
        self._columns = columns
        return self

    def eq(self, column: str, value: Any) -> "TableQuery":
        if value is None:
            self._filters.append((column, "is.null"))
        else:
            self._filters.append((column, f"eq.{_format_value(value)}"))
        return self

    def ilike(self, column: str, pattern: str) -> "TableQuery":
        """Add a case-insensitive pattern predicate; ``*`` is the wildcard."""
        self._filters.append((column, f"ilike.{pattern}"))
        return self

    def order(self, column: str, desc: bool = True) -> "TableQuery":
        self._order = f"{column}.{'desc' if desc else 'asc'}"
        return self

    def limit(self, count: int) -> "TableQuery":
        self._limit = max(0, int(count))
        return self

    @property
    def path(self) -> str:
        return f"{REST_PREFIX}/{self._table}"

    def params(self, include_select: bool = True) -> list[tuple[str, str]]:
        """Return query-string pairs in a stable order."""
        pairs: list[tuple[str, str]] = []
        if include_select:
            pairs.append(("select", self._columns))
        pairs.extend(self._filters)
        if self._order:
            pairs.append(("order", self._order))
        if self._limit is not None:
            pairs.append(("limit", str(self._limit)))
        return pairs

    def execute(self) -> list[dict]:
        rows = self._client.request("GET", self.path, params=self.params())
        return list(rows or [])

    def maybe_single(self) -> dict | None:
        """Return the first matching row, or None when nothing matches."""
        self._limit = 1
        rows = self.execute()
        return rows[0] if rows else None

    def insert(self, rows: dict | list[dict]) -> list[dict]:
        payload = rows if isinstance(rows, list) else [rows]
        result = self._client.request(
            "POST",
            self.path,
            params=[("select", self._columns)],
            json=payload,
            headers={"Prefer": "return=representation"},
        )
        return list(result or [])

    def upsert(self, rows: dict | list[dict], on_conflict: str = "id") -> list[dict]:
        payload = rows if isinstance(rows, list) else [rows]
        result = self._client.request(
            "POST",
            self.path,
            params=[("select", self._columns), ("on_conflict", on_conflict)],
            json=payload,
            headers={"Prefer": "resolution=merge-duplicates,return=representation"},
        )
        return list(result or [])

    def update(self, values: dict) -> list[dict]:
        if not self._filters:
            raise BackendError("Refusing to update without a filter.")
        result = self._client.request(
            "PATCH",
            self.path,
            params=self.params(),
            json=values,
            headers={"Prefer": "return=representation"},
        )
        return list(result or [])

    def delete(self) -> None:
        if not self._filters:
            raise BackendError("Refusing to delete without a filter.")
        self._client.request("DELETE", self.path, params=self.params(include_select=False))


class BackendClient:
    """Thin wrapper over ``requests`` for the row and auth endpoints."""

    def __init__(
        self,
        url: str,
        public_key: str,
        access_token: Optional[str] = None,
        http: Optional[requests.Session] = None,
        timeout: int = REQUEST_TIMEOUT_SECONDS,
    ) -> None:
        self.url = (url or "").rstrip("/")
        self.public_key = public_key or ""
        self.access_token = access_token
        self.http = http or requests.Session()
        self.timeout = timeout

    @property
    def configured(self) -> bool:
        return bool(self.url and self.public_key)

    def _headers(self, token: Optional[str] = None, extra: dict | None = None) -> dict:
        bearer = token or self.access_token or self.public_key
        headers = {
            "apikey": self.public_key,
            "Authorization": f"Bearer {bearer}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        if extra:
            headers.update(extra)
        return headers

    def request(
        self,
        method: str,
        path: str,
        *,
        params: list[tuple[str, str]] | dict | None = None,
        json: Any = None,
        headers: dict | None = None,
        token: Optional[str] = None,
    ) -> Any:
        """Send a request and return the decoded JSON body (or None).

        Raises:
            BackendError: When unconfigured, on transport failure, or on a
                non-2xx status.
        """
        if not self.configured:
            raise BackendError(
                "Backend is not configured; set SUPABASE_URL and SUPABASE_ANON_KEY."
            )
        try:
            resp = self.http.request(
                method,
                f"{self.url}{path}",
                params=params,
                json=json,
                headers=self._headers(token, headers),
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise BackendError(f"Request to backend failed: {exc}") from exc

        if resp.status_code >= 400:
            raise _error_from_response(resp)
        if not resp.content:
            return None
        try:
            return resp.json()
        except ValueError as exc:
            raise BackendError(
                "Backend returned an invalid JSON response.", status=resp.status_code
            ) from exc

    def table(self, name: str) -> TableQuery:
        return TableQuery(self, name)

    # ===========================
    # Auth
    # ===========================

    def sign_in_with_password(self, email: str, password: str) -> AuthSession:
        payload = self.request(
            "POST",
            f"{AUTH_PREFIX}/token",
            params={"grant_type": "password"},
            json={"email": email, "password": password},
        )
        return AuthSession.from_payload(payload or {})

    def sign_up(self, email: str, password: str) -> tuple[User, AuthSession | None]:
        """Register an account.

        Returns:
            The created user and, when email confirmation is disabled, the
            session issued for it.
        """
        payload = self.request(
            "POST",
            f"{AUTH_PREFIX}/signup",
            json={"email": email, "password": password},
        ) or {}
        if payload.get("access_token"):
            session = AuthSession.from_payload(payload)
            return session.user, session
        user_payload = payload.get("user") or payload
        return User.from_payload(user_payload), None

    def send_otp(self, phone: str) -> None:
        self.request("POST", f"{AUTH_PREFIX}/otp", json={"phone": phone})

    def verify_otp(self, phone: str, token: str) -> AuthSession:
        payload = self.request(
            "POST",
            f"{AUTH_PREFIX}/verify",
            json={"type": "sms", "phone": phone, "token": token},
        )
        return AuthSession.from_payload(payload or {})

    def refresh_session(self, refresh_token: str) -> AuthSession:
        payload = self.request(
            "POST",
            f"{AUTH_PREFIX}/token",
            params={"grant_type": "refresh_token"},
            json={"refresh_token": refresh_token},
        )
        return AuthSession.from_payload(payload or {})

    def get_user(self, access_token: Optional[str] = None) -> User:
        token = access_token or self.access_token
        if not token:
            raise BackendError("Auth session missing.", status=401)
        payload = self.request("GET", f"{AUTH_PREFIX}/user", token=token)
        return User.from_payload(payload or {})

    def sign_out(self, access_token: Optional[str] = None) -> None:
        token = access_token or self.access_token
        if not token:
            return
        self.request("POST", f"{AUTH_PREFIX}/logout", token=token)


def get_client(access_token: Optional[str] = None) -> BackendClient:
    """Build a client from environment configuration."""
    url, key = get_backend_config()
    if not url or not key:
        logger.warning("Backend URL or public key is missing; requests will fail.")
    return BackendClient(url, key, access_token=access_token)
