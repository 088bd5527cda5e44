"""Client session manager tests: storage, interceptor and end-to-end flow."""

import json

import httpx
import pytest

from app.client.session import (
    TOKEN_KEY,
    ApiClient,
    ApiError,
    SessionAuth,
    SessionContext,
    TokenStore,
    clean_token,
)
from app.core.dependencies import get_db, get_mail_dispatcher
from app.main import app

BASE_URL = "http://blog.local"


class FakeServer:
    """MockTransport handler: one protected route plus the refresh endpoint."""

    def __init__(
        self,
        valid_tokens=("fresh",),
        refresh_to="fresh",
        protected_status=None,
        accept_refreshed=True,
        refresh_error=None,
    ):
        self.valid_tokens = set(valid_tokens)
        self.refresh_to = refresh_to
        self.protected_status = protected_status
        self.accept_refreshed = accept_refreshed
        self.refresh_error = refresh_error
        self.calls = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        auth = request.headers.get("Authorization")
        self.calls.append((request.url.path, auth))
        token = auth[7:] if auth and auth.startswith("Bearer ") else None

        if request.url.path == "/api/auth/refresh":
            if self.refresh_error is not None:
                raise self.refresh_error
            if self.refresh_to is None or token is None:
                return httpx.Response(401, json={"success": False, "message": "Token refresh failed"})
            if self.accept_refreshed:
                self.valid_tokens.add(self.refresh_to)
            return httpx.Response(200, json={"success": True, "token": self.refresh_to})

        if self.protected_status is not None:
            return httpx.Response(self.protected_status, json={"success": False, "message": "boom"})
        if token in self.valid_tokens:
            return httpx.Response(200, json={"ok": True, "token_seen": token})
        return httpx.Response(401, json={"success": False, "message": "Could not validate credentials"})

    def paths(self):
        return [path for path, _ in self.calls]


def _client(server, session):
    http = httpx.Client(transport=httpx.MockTransport(server), base_url=BASE_URL)
    return ApiClient(session=session, http_client=http)


# ── storage ───────────────────────────────────────────────────────────────────


def test_clean_token_strips_incidental_quoting():
    assert clean_token('"abc.def"') == "abc.def"
    assert clean_token('  ""abc""  ') == "abc"
    assert clean_token("undefined") is None
    assert clean_token("") is None
    assert clean_token(None) is None


def test_token_store_roundtrip_and_remove(tmp_path):
    store = TokenStore(tmp_path / "storage.json")
    assert store.get(TOKEN_KEY) is None

    store.set(TOKEN_KEY, "abc")
    assert json.loads((tmp_path / "storage.json").read_text()) == {"token": "abc"}
    assert TokenStore(tmp_path / "storage.json").get(TOKEN_KEY) == "abc"

    store.remove(TOKEN_KEY)
    assert store.get(TOKEN_KEY) is None


def test_token_store_ignores_corrupt_file(tmp_path):
    path = tmp_path / "storage.json"
    path.write_text("{not json")

    assert TokenStore(path).get(TOKEN_KEY) is None


def test_session_context_loads_and_cleans_stored_token(tmp_path):
    store = TokenStore(tmp_path / "storage.json")
    store.set(TOKEN_KEY, '"quoted-token"')

    session = SessionContext(store)

    assert session.token == "quoted-token"
    assert session.authorization_header() == {"Authorization": "Bearer quoted-token"}


def test_session_context_set_and_clear_persist(tmp_path):
    store = TokenStore(tmp_path / "storage.json")
    session = SessionContext(store)

    session.set_token("t1")
    assert store.get(TOKEN_KEY) == "t1"
    assert session.is_authenticated

    session.clear()
    assert store.get(TOKEN_KEY) is None
    assert session.token is None
    assert session.authorization_header() == {}


# ── interceptor ───────────────────────────────────────────────────────────────


def test_token_attached_at_send_time():
    """The header reflects the token current when the request is sent."""
    server = FakeServer(valid_tokens={"a", "b"})
    session = SessionContext()
    api = _client(server, session)

    session.set_token("a")
    assert api.request("GET", "/protected")["token_seen"] == "a"
    session.set_token("b")
    assert api.request("GET", "/protected")["token_seen"] == "b"


def test_401_triggers_single_refresh_and_retry():
    server = FakeServer(valid_tokens=set(), refresh_to="fresh")
    session = SessionContext()
    session.set_token("stale")
    api = _client(server, session)

    data = api.request("GET", "/protected")

    assert data["token_seen"] == "fresh"
    assert session.token == "fresh"
    assert server.paths() == ["/api/protected", "/api/auth/refresh", "/api/protected"]
    assert server.calls[1][1] == "Bearer stale"


def test_second_401_is_not_retried_again():
    """Refresh succeeds but the retried request is still refused: no loop."""
    server = FakeServer(valid_tokens=set(), refresh_to="fresh", accept_refreshed=False)
    session = SessionContext()
    session.set_token("stale")
    api = _client(server, session)

    with pytest.raises(ApiError) as exc_info:
        api.request("GET", "/protected")

    assert exc_info.value.status_code == 401
    assert server.paths() == ["/api/protected", "/api/auth/refresh", "/api/protected"]


def test_failed_refresh_clears_session_and_notifies_once(tmp_path):
    notices = []
    store = TokenStore(tmp_path / "storage.json")
    session = SessionContext(store, on_expired=notices.append)
    session.set_token("stale")
    server = FakeServer(valid_tokens=set(), refresh_to=None)
    api = _client(server, session)

    with pytest.raises(ApiError) as exc_info:
        api.request("GET", "/protected")

    assert exc_info.value.status_code == 401
    assert session.token is None
    assert store.get(TOKEN_KEY) is None
    assert notices == ["Session expired. Please login again."]
    assert server.paths() == ["/api/protected", "/api/auth/refresh"]


def test_unreachable_refresh_endpoint_clears_session(tmp_path):
    notices = []
    store = TokenStore(tmp_path / "storage.json")
    session = SessionContext(store, on_expired=notices.append)
    session.set_token("stale")
    server = FakeServer(valid_tokens=set(), refresh_error=httpx.ConnectError("connection refused"))
    api = _client(server, session)

    with pytest.raises(httpx.ConnectError):
        api.request("GET", "/protected")

    assert session.token is None
    assert store.get(TOKEN_KEY) is None
    assert notices == ["Session expired. Please login again."]
    assert api.auth.refresh_pending is False


def test_transport_error_outside_refresh_keeps_session():
    notices = []
    session = SessionContext(on_expired=notices.append)
    session.set_token("good")

    def handler(request):
        raise httpx.ConnectError("connection refused")

    http = httpx.Client(transport=httpx.MockTransport(handler), base_url=BASE_URL)
    api = ApiClient(session=session, http_client=http)

    with pytest.raises(httpx.ConnectError):
        api.request("GET", "/protected")

    assert session.token == "good"
    assert notices == []


def test_401_without_session_is_surfaced_without_refresh():
    notices = []
    server = FakeServer(valid_tokens=set())
    api = _client(server, SessionContext(on_expired=notices.append))

    with pytest.raises(ApiError) as exc_info:
        api.request("GET", "/protected")

    assert exc_info.value.status_code == 401
    assert server.paths() == ["/api/protected"]
    assert notices == []


@pytest.mark.parametrize("status", [400, 403, 404, 500])
def test_other_errors_surface_without_retry(status):
    server = FakeServer(valid_tokens={"t"}, protected_status=status)
    session = SessionContext()
    session.set_token("t")
    api = _client(server, session)

    with pytest.raises(ApiError) as exc_info:
        api.request("GET", "/protected")

    assert exc_info.value.status_code == status
    assert exc_info.value.message == "boom"
    assert server.paths() == ["/api/protected"]
    assert session.token == "t"


def test_concurrent_style_401s_each_refresh_independently():
    """No coalescing: two expired requests produce two refresh calls."""
    server = FakeServer(valid_tokens=set(), refresh_to="fresh")
    session = SessionContext()
    auth = SessionAuth(session)
    http = httpx.Client(transport=httpx.MockTransport(server), base_url=BASE_URL)

    session.set_token("stale")
    http.get("/api/protected", auth=auth)
    server.valid_tokens.clear()
    session.set_token("stale")
    http.get("/api/protected", auth=auth)

    assert server.paths().count("/api/auth/refresh") == 2


# ── end to end against the app ────────────────────────────────────────────────


def test_api_client_against_app(db, mailer, tmp_path):
    from fastapi.testclient import TestClient

    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_mail_dispatcher] = lambda: mailer
    try:
        with TestClient(app) as http:
            session = SessionContext(TokenStore(tmp_path / "storage.json"))
            api = ApiClient(session=session, http_client=http)

            user_id = api.register("Ann", "Lee", "ann@example.com", "Secret123!")["userId"]
            api.verify_otp(user_id, mailer.last_otp)
            login = api.login("ann@example.com", "Secret123!")

            assert session.token == login["token"]
            assert api.me()["email"] == "ann@example.com"

            old = session.token
            new = api.refresh()
            assert new != old
            assert session.token == new

            with pytest.raises(ApiError) as exc_info:
                api.login("ann@example.com", "wrong")
            assert exc_info.value.status_code == 401
            assert exc_info.value.message == "Incorrect password"

            api.logout()
            with pytest.raises(ApiError) as exc_info:
                api.me()
            assert exc_info.value.status_code == 401
    finally:
        app.dependency_overrides.clear()


def test_explicit_refresh_failure_clears_session():
    notices = []
    server = FakeServer(refresh_to=None)
    session = SessionContext(on_expired=notices.append)
    session.set_token("stale")
    api = _client(server, session)

    with pytest.raises(ApiError) as exc_info:
        api.refresh()

    assert exc_info.value.status_code == 401
    assert session.token is None
    assert notices == ["Session expired. Please login again."]


def test_explicit_refresh_transport_error_clears_session():
    notices = []
    server = FakeServer(refresh_error=httpx.ReadTimeout("timed out"))
    session = SessionContext(on_expired=notices.append)
    session.set_token("stale")
    api = _client(server, session)

    with pytest.raises(httpx.ReadTimeout):
        api.refresh()

    assert session.token is None
    assert notices == ["Session expired. Please login again."]
