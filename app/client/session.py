"""Client-side session handling for the blog API.

``SessionContext`` owns the current token and its durable copy,
``SessionAuth`` attaches it to outgoing requests and recovers once from an
expired token, and ``ApiClient`` wraps the account endpoints on top of an
``httpx.Client``.
"""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Callable, Dict, Generator, Optional, Union

import httpx

from app.errors.response_codes import ErrorMessage

logger = logging.getLogger(__name__)

TOKEN_KEY = "token"


def clean_token(raw: Optional[str]) -> Optional[str]:
    """Strip whitespace and stray JSON quoting; placeholder values mean no token."""
    if raw is None:
        return None
    token = str(raw).strip().strip('"').strip()
    if not token or token in ("undefined", "null"):
        return None
    return token


class TokenStore:
    """Durable key/value storage backed by a JSON file (the client's localStorage)."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def _load(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8") or "{}")
        except ValueError:
            logger.warning(f"[TokenStore] Ignoring unreadable storage file {self.path}")
            return {}
        return data if isinstance(data, dict) else {}

    def _save(self, data: Dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(data), encoding="utf-8")

    def get(self, key: str) -> Optional[str]:
        value = self._load().get(key)
        return None if value is None else str(value)

    def set(self, key: str, value: str) -> None:
        data = self._load()
        data[key] = value
        self._save(data)

    def remove(self, key: str) -> None:
        data = self._load()
        if data.pop(key, None) is not None:
            self._save(data)


def _log_session_expired(message: str) -> None:
    logger.warning(f"[Session] {message}")


class SessionContext:
    """
    Current session token, mirrored to a TokenStore.

    *on_expired* is called with a user-facing message once per failed refresh.
    """

    def __init__(
        self,
        store: Optional[TokenStore] = None,
        on_expired: Optional[Callable[[str], None]] = None,
    ):
        self.store = store
        self._on_expired = on_expired or _log_session_expired
        self._token = clean_token(store.get(TOKEN_KEY)) if store else None

    @property
    def token(self) -> Optional[str]:
        return self._token

    @property
    def is_authenticated(self) -> bool:
        return self._token is not None

    def set_token(self, token: Optional[str]) -> None:
        token = clean_token(token)
        if token is None:
            self.clear()
            return
        self._token = token
        if self.store:
            self.store.set(TOKEN_KEY, token)

    def clear(self) -> None:
        self._token = None
        if self.store:
            self.store.remove(TOKEN_KEY)

    def authorization_header(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self._token}"} if self._token else {}

    def notify_expired(self) -> None:
        self._on_expired(ErrorMessage.SESSION_EXPIRED)

    def expire(self) -> None:
        """Drop the session after a failed refresh and tell the user once."""
        self.clear()
        self.notify_expired()


def _read_token(response: httpx.Response) -> Optional[str]:
    if response.status_code != 200:
        return None
    try:
        data = response.json()
    except ValueError:
        return None
    if not isinstance(data, dict) or not data.get("success"):
        return None
    return clean_token(data.get("token"))


class SessionAuth(httpx.Auth):
    """
    Attach the session token at send time and renew it once on a 401.

    A request that went out without a token is not renewed (there is no
    session to recover). The retried request is sent exactly once; whatever
    it returns, including another 401, goes back to the caller. When renewal
    fails the session is cleared, the expiry notification fires and the
    refresh endpoint's failure response is returned.

    A transport error while the refresh request is out is raised by httpx
    outside this flow; ``refresh_pending`` stays set so the caller can expire
    the session (``ApiClient.request`` does).
    """

    requires_response_body = True

    def __init__(self, session: SessionContext, refresh_path: str = "/api/auth/refresh"):
        self.session = session
        self.refresh_path = refresh_path
        self.refresh_pending = False

    def _attach(self, request: httpx.Request) -> Optional[str]:
        token = self.session.token
        if token:
            request.headers["Authorization"] = f"Bearer {token}"
        return token

    def auth_flow(self, request: httpx.Request) -> Generator[httpx.Request, httpx.Response, None]:
        self.refresh_pending = False
        sent_token = self._attach(request)
        response = yield request

        if response.status_code != 401 or sent_token is None:
            return

        refresh_request = httpx.Request(
            "POST",
            request.url.join(self.refresh_path),
            headers={"Authorization": f"Bearer {sent_token}"},
        )
        self.refresh_pending = True
        refresh_response = yield refresh_request
        self.refresh_pending = False

        new_token = _read_token(refresh_response)
        if new_token is None:
            logger.info(f"[Session] Refresh failed with HTTP {refresh_response.status_code}")
            self.session.expire()
            return

        self.session.set_token(new_token)
        self._attach(request)
        yield request


class ApiError(Exception):
    """Final HTTP status >= 400 from the API"""

    def __init__(self, status_code: int, message: str, payload: Any = None):
        super().__init__(f"HTTP {status_code}: {message}")
        self.status_code = status_code
        self.message = message
        self.payload = payload


class ApiClient:
    """Account endpoints of the blog API with transparent session handling."""

    def __init__(
        self,
        base_url: str = "http://localhost:4000",
        session: Optional[SessionContext] = None,
        http_client: Optional[httpx.Client] = None,
        api_prefix: str = "/api",
        timeout: float = 30,
    ):
        self.session = session or SessionContext()
        self.api_prefix = api_prefix
        self.auth = SessionAuth(self.session, refresh_path=f"{api_prefix}/auth/refresh")
        self._client = http_client or httpx.Client(base_url=base_url, timeout=timeout)

    def __enter__(self) -> "ApiClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    # ── transport ─────────────────────────────────────────────────────────────

    def _url(self, path: str) -> str:
        return f"{self.api_prefix}{path}"

    @staticmethod
    def _handle(response: httpx.Response) -> Any:
        try:
            data = response.json() if response.content else None
        except ValueError:
            data = None

        if response.status_code >= 400:
            message = data.get("message") if isinstance(data, dict) else None
            raise ApiError(response.status_code, message or response.reason_phrase or "An error occurred", data)
        return data

    def request(self, method: str, path: str, **kwargs: Any) -> Any:
        """Send a request through the session interceptor and decode the JSON body."""
        try:
            response = self._client.request(method, self._url(path), auth=self.auth, **kwargs)
        except httpx.HTTPError as exc:
            if self.auth.refresh_pending:
                self.auth.refresh_pending = False
                logger.info(f"[Session] Refresh request failed: {exc}")
                self.session.expire()
            raise
        return self._handle(response)

    # ── account operations ────────────────────────────────────────────────────

    def register(self, name: str, lastname: str, email: str, password: str) -> Dict[str, Any]:
        return self.request(
            "POST", "/auth/register",
            json={"name": name, "lastname": lastname, "email": email, "password": password},
        )

    def verify_otp(self, user_id: str, otp: str) -> Dict[str, Any]:
        return self.request("POST", "/auth/verify-otp", json={"userId": user_id, "otp": otp})

    def login(self, email: str, password: str) -> Dict[str, Any]:
        data = self.request("POST", "/auth/login", json={"email": email, "password": password})
        self.session.set_token(data.get("token"))
        return data

    def refresh(self) -> str:
        """Explicitly renew the session; clears it and notifies on failure."""
        try:
            response = self._client.request(
                "POST", self._url("/auth/refresh"),
                headers=self.session.authorization_header(),
                auth=None,
            )
        except httpx.HTTPError as exc:
            logger.info(f"[Session] Refresh request failed: {exc}")
            self.session.expire()
            raise
        new_token = _read_token(response)
        if new_token is None:
            self.session.expire()
            self._handle(response)
            raise ApiError(response.status_code, "Token refresh failed")
        self.session.set_token(new_token)
        return new_token

    def me(self) -> Dict[str, Any]:
        return self.request("GET", "/auth/me")

    def logout(self) -> None:
        self.session.clear()
