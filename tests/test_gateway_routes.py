try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

import json
from urllib.parse import parse_qs, urlparse

import httpx
import pytest

from app.clients.spotify_api import SpotifyApiClient
from app.clients.spotify_auth import OAuthTokenExchangeError
from app.main import app
from app.models.credential import Credential, TokenGrant
from app.services.credential_manager import CredentialManager
from app.services.playback import PlaybackService

NOW = 1_700_000_000

pytestmark = pytest.mark.anyio


class MemoryCredentialStore:
    def __init__(self) -> None:
        self.credential: Credential | None = None
        self.writes: list[Credential] = []

    def get(self) -> Credential | None:
        return self.credential

    def put(self, credential: Credential) -> None:
        self.writes.append(credential)
        self.credential = credential


class DummyOAuthClient:
    def __init__(self) -> None:
        self.states: list[str] = []
        self.codes: list[str] = []
        self.refresh_calls = 0
        self.fail_refresh = False
        self.fail_exchange = False

    def build_authorization_url(self, state: str) -> str:
        self.states.append(state)
        return f"https://accounts.spotify.test/authorize?state={state}"

    async def exchange_authorization_code(self, code: str, redirect_uri: str) -> TokenGrant:
        self.codes.append(code)
        if self.fail_exchange:
            raise OAuthTokenExchangeError("Token request failed: 400 invalid_grant")
        return TokenGrant(access_token="access-token", refresh_token="refresh-token", expires_in=3600)

    async def refresh_access_token(self, refresh_token: str) -> TokenGrant:
        self.refresh_calls += 1
        if self.fail_refresh:
            raise OAuthTokenExchangeError("Token request failed: 400 invalid_grant")
        return TokenGrant(access_token=f"refreshed-{self.refresh_calls}", expires_in=3600)


class FakeSpotify:
    """Routes mock transport requests to queued responses per (method, path)."""

    def __init__(self) -> None:
        self.queues: dict[tuple[str, str], list[httpx.Response]] = {}
        self.requests: list[httpx.Request] = []

    def queue(self, method: str, path: str, *responses: httpx.Response) -> None:
        self.queues.setdefault((method, path), []).extend(responses)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path.removeprefix("/v1")
        queue = self.queues.get((request.method, path))
        if not queue:
            return httpx.Response(500, json={"error": {"status": 500, "message": "unexpected"}})
        return queue.pop(0)


async def _no_sleep(_: float) -> None:
    return None


@pytest.fixture()
def gateway():
    from app import dependencies
    from app.core.config import get_settings

    store = MemoryCredentialStore()
    oauth = DummyOAuthClient()
    spotify = FakeSpotify()
    settings = get_settings().model_copy(deep=True)

    manager = CredentialManager(store=store, oauth_client=oauth, clock=lambda: NOW)
    api_client = SpotifyApiClient(
        manager,
        base_url="https://api.spotify.test/v1",
        transport=httpx.MockTransport(spotify),
    )
    playback = PlaybackService(api_client, sleep=_no_sleep)

    app.dependency_overrides.update(
        {
            dependencies.get_app_settings: lambda: settings,
            dependencies.get_spotify_oauth_client: lambda: oauth,
            dependencies.get_credential_store: lambda: store,
            dependencies.get_credential_manager: lambda: manager,
            dependencies.get_playback_service: lambda: playback,
        }
    )

    yield store, oauth, spotify, settings

    app.dependency_overrides.clear()


def _client() -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://testserver")


def _api_headers(settings) -> dict[str, str]:
    return {"X-Automation-Key": settings.security.automation_key}


def _connect(store: MemoryCredentialStore, *, expires_at: int = NOW + 3600) -> None:
    store.credential = Credential(access_token="A1", refresh_token="R1", expires_at=expires_at)


async def test_health(gateway):
    async with _client() as client:
        response = await client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"ok": True}


async def test_login_redirects_and_sets_state_cookie(gateway):
    _, oauth, _, _ = gateway

    async with _client() as client:
        response = await client.get("/login")

    assert response.status_code == 302
    location = urlparse(response.headers["location"])
    assert parse_qs(location.query)["state"] == [oauth.states[-1]]
    cookie = response.headers["set-cookie"]
    assert cookie.startswith(f"oauth_state={oauth.states[-1]}")
    for attribute in ("HttpOnly", "Secure", "SameSite=lax", "Max-Age=600", "Path=/"):
        assert attribute.lower() in cookie.lower()


async def test_callback_exchanges_code_and_persists_credential(gateway):
    store, oauth, _, _ = gateway

    async with _client() as client:
        response = await client.get(
            "/callback",
            params={"code": "oauth-code", "state": "state-123"},
            headers={"Cookie": "oauth_state=state-123"},
        )

    assert response.status_code == 200
    assert "Successfully Connected" in response.text
    assert oauth.codes == ["oauth-code"]
    assert store.credential == Credential(
        access_token="access-token", refresh_token="refresh-token", expires_at=NOW + 3600
    )
    assert "oauth_state=" in response.headers["set-cookie"]
    assert "max-age=0" in response.headers["set-cookie"].lower()


@pytest.mark.parametrize(
    ("params", "cookie", "message"),
    [
        ({"error": "access_denied"}, None, "access_denied"),
        ({"state": "state-123"}, "oauth_state=state-123", "Missing authorization code"),
        ({"code": "c", "state": "state-123"}, "oauth_state=other", "Invalid state"),
        ({"code": "c", "state": "state-123"}, None, "Invalid state"),
    ],
)
async def test_callback_rejects_bad_requests(gateway, params, cookie, message):
    store, oauth, _, _ = gateway
    headers = {"Cookie": cookie} if cookie else {}

    async with _client() as client:
        response = await client.get("/callback", params=params, headers=headers)

    assert response.status_code == 400
    assert message in response.text
    assert oauth.codes == []
    assert store.writes == []


async def test_callback_exchange_failure_returns_error_page(gateway):
    store, oauth, _, _ = gateway
    oauth.fail_exchange = True

    async with _client() as client:
        response = await client.get(
            "/callback",
            params={"code": "oauth-code", "state": "s"},
            headers={"Cookie": "oauth_state=s"},
        )

    assert response.status_code == 500
    assert "Failed to exchange authorization code" in response.text
    assert store.writes == []


async def test_api_requires_automation_key(gateway):
    store, _, _, _ = gateway
    _connect(store)

    async with _client() as client:
        missing = await client.get("/api/devices")
        wrong = await client.get("/api/devices", headers={"X-Automation-Key": "nope"})

    for response in (missing, wrong):
        assert response.status_code == 401
        assert response.json() == {
            "ok": False,
            "error": {
                "code": "INVALID_AUTOMATION_KEY",
                "message": "Invalid or missing X-Automation-Key header",
            },
        }


async def test_api_without_login_is_not_authenticated(gateway):
    _, oauth, spotify, settings = gateway

    async with _client() as client:
        response = await client.get("/api/devices", headers=_api_headers(settings))

    assert response.status_code == 401
    assert response.json()["error"]["code"] == "NOT_AUTHENTICATED"
    assert oauth.refresh_calls == 0
    assert spotify.requests == []


async def test_api_with_failed_refresh_requires_reconnect(gateway):
    store, oauth, spotify, settings = gateway
    _connect(store, expires_at=NOW - 10)
    oauth.fail_refresh = True

    async with _client() as client:
        response = await client.get("/api/devices", headers=_api_headers(settings))

    assert response.status_code == 401
    assert response.json()["error"]["code"] == "TOKEN_REFRESH_FAILED"
    assert spotify.requests == []


async def test_devices_lists_spotify_devices(gateway):
    store, _, spotify, settings = gateway
    _connect(store)
    spotify.queue(
        "GET",
        "/me/player/devices",
        httpx.Response(
            200,
            json={
                "devices": [
                    {
                        "id": "d1",
                        "name": "Kitchen Echo",
                        "type": "Speaker",
                        "is_active": True,
                        "is_private_session": False,
                        "is_restricted": False,
                        "volume_percent": 35,
                    }
                ]
            },
        ),
    )

    async with _client() as client:
        response = await client.get("/api/devices", headers=_api_headers(settings))

    assert response.status_code == 200
    devices = response.json()["devices"]
    assert devices[0]["id"] == "d1"
    assert devices[0]["volume_percent"] == 35
    assert spotify.requests[0].headers["Authorization"] == "Bearer A1"


async def test_devices_recovers_from_revoked_token(gateway):
    store, oauth, spotify, settings = gateway
    _connect(store)
    spotify.queue(
        "GET",
        "/me/player/devices",
        httpx.Response(401, json={"error": {"status": 401, "message": "The access token expired"}}),
        httpx.Response(200, json={"devices": []}),
    )

    async with _client() as client:
        response = await client.get("/api/devices", headers=_api_headers(settings))

    assert response.status_code == 200
    assert response.json() == {"devices": []}
    assert oauth.refresh_calls == 1
    assert store.credential is not None
    assert store.credential.access_token == "refreshed-1"
    assert store.credential.refresh_token == "R1"


async def test_devices_premium_required(gateway):
    store, _, spotify, settings = gateway
    _connect(store)
    spotify.queue("GET", "/me/player/devices", httpx.Response(403))

    async with _client() as client:
        response = await client.get("/api/devices", headers=_api_headers(settings))

    assert response.status_code == 403
    assert response.json()["error"]["code"] == "PREMIUM_REQUIRED"


@pytest.mark.parametrize(
    "body",
    [b"", b"not json", json.dumps({}).encode(), json.dumps({"deviceId": 42}).encode(), b"[]"],
)
async def test_transfer_rejects_malformed_body(gateway, body):
    store, _, spotify, settings = gateway
    _connect(store)

    async with _client() as client:
        response = await client.post(
            "/api/transfer",
            content=body,
            headers={**_api_headers(settings), "Content-Type": "application/json"},
        )

    assert response.status_code == 400
    assert response.json()["error"] == {
        "code": "INVALID_REQUEST",
        "message": "deviceId is required",
    }
    assert spotify.requests == []


async def test_transfer_moves_playback(gateway):
    store, _, spotify, settings = gateway
    _connect(store)
    spotify.queue(
        "PUT",
        "/me/player",
        httpx.Response(429, headers={"Retry-After": "1"}),
        httpx.Response(204),
    )

    async with _client() as client:
        response = await client.post(
            "/api/transfer",
            json={"deviceId": "d1"},
            headers=_api_headers(settings),
        )

    assert response.status_code == 200
    assert response.json() == {"success": True, "message": "Playback transferred successfully"}
    assert len(spotify.requests) == 2
    assert json.loads(spotify.requests[-1].content) == {"device_ids": ["d1"], "play": True}


async def test_transfer_reports_no_active_device(gateway):
    store, _, spotify, settings = gateway
    _connect(store)
    spotify.queue("PUT", "/me/player", *(httpx.Response(404) for _ in range(3)))

    async with _client() as client:
        response = await client.post(
            "/api/transfer",
            json={"deviceId": "d1", "play": False},
            headers=_api_headers(settings),
        )

    assert response.status_code == 404
    assert response.json()["error"]["code"] == "NO_ACTIVE_DEVICE"
    assert len(spotify.requests) == 3


async def test_transfer_to_echo(gateway):
    store, _, spotify, settings = gateway
    _connect(store)
    spotify.queue(
        "GET",
        "/me/player/devices",
        httpx.Response(
            200,
            json={"devices": [{"id": "e1", "name": "Echo Dot"}, {"id": "p1", "name": "Phone"}]},
        ),
    )
    spotify.queue("PUT", "/me/player", httpx.Response(204))

    async with _client() as client:
        response = await client.post("/api/transfer/echo", headers=_api_headers(settings))

    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "message": "Playback transferred to Echo Dot",
        "device": {"id": "e1", "name": "Echo Dot"},
    }


async def test_transfer_to_echo_with_multiple_devices(gateway):
    store, _, spotify, settings = gateway
    _connect(store)
    spotify.queue(
        "GET",
        "/me/player/devices",
        httpx.Response(
            200,
            json={"devices": [{"id": "e1", "name": "Echo Dot"}, {"id": "e2", "name": "Echo Show"}]},
        ),
    )

    async with _client() as client:
        response = await client.post("/api/transfer/echo", headers=_api_headers(settings))

    assert response.status_code == 409
    payload = response.json()
    assert payload["error"]["code"] == "MULTIPLE_ECHO_DEVICES"
    assert payload["devices"] == [
        {"id": "e1", "name": "Echo Dot"},
        {"id": "e2", "name": "Echo Show"},
    ]


async def test_unknown_route_is_not_found(gateway):
    async with _client() as client:
        response = await client.get("/nope")

    assert response.status_code == 404
    assert response.json() == {"ok": False, "error": {"code": "NOT_FOUND", "message": "Not found"}}
