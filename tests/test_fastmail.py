# Tests for mail/fastmail.py
# Created: 2026-10-13

import json
from unittest.mock import AsyncMock

import httpx
import pytest

from maskbot.errors import UpstreamError
from maskbot.mail import FastmailClient, MaskingEmail, site_origin
from maskbot.models import Credential
from maskbot.oauth import OAuth2Config

API = "https://api.fastmail.test"
SESSION = {
    "apiUrl": f"{API}/jmap/api/",
    "primaryAccounts": {"https://www.fastmail.com/dev/maskedemail": "u123"},
}
CONFIG = OAuth2Config(
    client_id="c", auth_url="https://a", token_url="https://t", redirect_url="https://r"
)


class FakeJMAP:
    """Serves the JMAP session and records MaskedEmail/set calls."""

    def __init__(self, result=None, status_code=200):
        self.calls = []
        self.auth_headers = []
        self.result = result or {"created": {"new": {"id": "me-1", "email": "x1@fastmail.com"}}}
        self.status_code = status_code

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.auth_headers.append(request.headers.get("Authorization"))
        if self.status_code != 200:
            return httpx.Response(self.status_code, text="nope")
        if request.url.path == "/jmap/session":
            return httpx.Response(200, json=SESSION)
        body = json.loads(request.content)
        self.calls.append(body)
        return httpx.Response(
            200, json={"methodResponses": [["MaskedEmail/set", self.result, "0"]]}
        )


def _client(jmap: FakeJMAP) -> FastmailClient:
    http = httpx.AsyncClient(transport=httpx.MockTransport(jmap))
    return FastmailClient(CONFIG, api_url=API, description="Created by maskbot", http=http)


@pytest.fixture
def token_source():
    ts = AsyncMock()
    ts.token = AsyncMock(return_value=Credential(access_token="tok"))
    return ts


class TestSiteOrigin:
    def test_strips_path_and_query(self):
        assert site_origin("https://example.com/signup?ref=1") == "https://example.com"

    def test_keeps_port(self):
        assert site_origin("http://localhost:3000/x") == "http://localhost:3000"


class TestFastmailClient:
    def test_implements_protocol(self):
        assert isinstance(_client(FakeJMAP()), MaskingEmail)

    async def test_create_from_url(self, token_source):
        jmap = FakeJMAP()
        masked = await _client(jmap).create_masked_email_from_url(
            token_source, "https://shop.example.com/register"
        )

        assert masked.id == "me-1"
        assert masked.email == "x1@fastmail.com"
        assert masked.for_domain == "https://shop.example.com"
        assert jmap.auth_headers == ["Bearer tok", "Bearer tok"]

        call = jmap.calls[0]
        assert "https://www.fastmail.com/dev/maskedemail" in call["using"]
        name, args, _ = call["methodCalls"][0]
        assert name == "MaskedEmail/set"
        assert args["accountId"] == "u123"
        assert args["create"]["new"] == {
            "state": "pending",
            "forDomain": "https://shop.example.com",
            "description": "Created by maskbot",
        }

    async def test_create_with_prefix(self, token_source):
        jmap = FakeJMAP()
        masked = await _client(jmap).create_masked_email_with_prefix(token_source, "shopping")
        args = jmap.calls[0]["methodCalls"][0][1]
        assert args["create"]["new"]["emailPrefix"] == "shopping"
        assert masked.email_prefix == "shopping"

    async def test_enable(self, token_source):
        jmap = FakeJMAP(result={"updated": {"me-1": None}})
        await _client(jmap).enable_masked_email(token_source, "me-1")
        args = jmap.calls[0]["methodCalls"][0][1]
        assert args["update"] == {"me-1": {"state": "enabled"}}

    async def test_not_created(self, token_source):
        jmap = FakeJMAP(result={"notCreated": {"new": {"type": "invalidProperties"}}})
        with pytest.raises(UpstreamError, match="invalidProperties"):
            await _client(jmap).create_masked_email_with_prefix(token_source, "bad")

    async def test_not_updated(self, token_source):
        jmap = FakeJMAP(result={"notUpdated": {"me-1": {"type": "notFound"}}})
        with pytest.raises(UpstreamError, match="notFound"):
            await _client(jmap).enable_masked_email(token_source, "me-1")

    async def test_http_error(self, token_source):
        with pytest.raises(UpstreamError) as exc_info:
            await _client(FakeJMAP(status_code=401)).enable_masked_email(token_source, "me-1")
        assert exc_info.value.status_code == 401

    async def test_token_failure_skips_http(self, token_source):
        jmap = FakeJMAP()
        token_source.token.side_effect = UpstreamError("no refresh token")
        with pytest.raises(UpstreamError):
            await _client(jmap).create_masked_email_from_url(token_source, "https://a.example")
        assert jmap.auth_headers == []

    def test_oauth2_config(self):
        assert _client(FakeJMAP()).oauth2_config is CONFIG
