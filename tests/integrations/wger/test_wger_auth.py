import asyncio

import httpx
import pytest

from wger_routines.config.settings import Settings
from wger_routines.integrations.wger.auth import WgerAuthManager
from wger_routines.routines.errors import AuthenticationError, RemoteError

BASE_URL = "https://wger.test/api/v2"


def make_auth(handler=None, **credentials):
    handler = handler or (lambda request: httpx.Response(500))
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return WgerAuthManager(base_url=BASE_URL, http_client=http, **credentials)


@pytest.mark.parametrize(
    ("credentials", "method"),
    [
        ({"api_key": "k"}, "api_key"),
        ({"api_key": "k", "username": "u", "password": "p"}, "api_key"),
        ({"username": "u", "password": "p"}, "password"),
        ({"username": "u"}, "none"),
        ({}, "none"),
    ],
)
def test_method_prefers_api_key(credentials, method):
    auth = make_auth(**credentials)

    assert auth.method == method
    assert auth.has_credentials() is (method != "none")


@pytest.mark.asyncio
async def test_api_key_is_used_without_network():
    def handler(request):
        raise AssertionError("no request expected")

    auth = make_auth(handler, api_key="k")

    assert await auth.get_token() == "k"
    assert await auth.authorization_header() == {"Authorization": "Token k"}


@pytest.mark.asyncio
async def test_no_credentials_raises():
    with pytest.raises(AuthenticationError):
        await make_auth().get_token()


@pytest.mark.asyncio
async def test_password_login_happens_once_under_concurrency():
    logins = []

    async def handler(request):
        logins.append(request)
        await asyncio.sleep(0)
        return httpx.Response(200, json={"access": "jwt", "refresh": "r"})

    auth = make_auth(handler, username="lifter", password="pw")
    tokens = await asyncio.gather(*(auth.get_token() for _ in range(5)))

    assert tokens == ["jwt"] * 5
    assert len(logins) == 1
    assert logins[0].url.path == "/api/v2/token"
    assert await auth.authorization_header() == {"Authorization": "Bearer jwt"}


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [400, 401, 403])
async def test_rejected_login_is_an_authentication_error(status):
    auth = make_auth(lambda request: httpx.Response(status), username="lifter", password="wrong")

    with pytest.raises(AuthenticationError):
        await auth.get_token()


@pytest.mark.asyncio
async def test_token_endpoint_outage_is_a_remote_error():
    auth = make_auth(lambda request: httpx.Response(502), username="lifter", password="pw")

    with pytest.raises(RemoteError) as exc_info:
        await auth.get_token()

    assert exc_info.value.status_code == 502


@pytest.mark.asyncio
async def test_refresh_falls_back_to_login():
    paths = []

    def handler(request):
        paths.append(request.url.path)
        if request.url.path.endswith("/token/refresh"):
            return httpx.Response(401)
        return httpx.Response(200, json={"access": f"jwt-{len(paths)}", "refresh": "r"})

    auth = make_auth(handler, username="lifter", password="pw")
    assert await auth.get_token() == "jwt-1"

    await auth.refresh()

    assert paths == ["/api/v2/token", "/api/v2/token/refresh", "/api/v2/token"]
    assert await auth.get_token() == "jwt-3"


def test_from_settings_reads_credentials():
    settings = Settings(WGER_BASE_URL="https://example.org/api/v2/", WGER_API_KEY="abc")

    auth = WgerAuthManager.from_settings(settings)

    assert auth.method == "api_key"
    assert settings.wger_base_url == "https://example.org/api/v2"
