"""
Tests for nudge_studio/services/api_client.py -- requests and error mapping.

``urllib.request.urlopen`` is patched; no network access is needed.
"""

import io
import json
import socket
import urllib.error
from unittest.mock import MagicMock, patch

import pytest

from nudge_engine.autosave import SaveTicket
from nudge_studio.config import StudioSettings
from nudge_studio.services.api_client import ApiClient, ApiError

URLOPEN = "urllib.request.urlopen"


def _response(body=None, status=200, raw=None):
    resp = MagicMock()
    resp.status = status
    if raw is None:
        raw = json.dumps(body).encode("utf-8") if body is not None else b""
    resp.read.return_value = raw
    resp.__enter__.return_value = resp
    return resp


def _http_error(code, body=b""):
    return urllib.error.HTTPError("http://api/x", code, "error", {}, io.BytesIO(body))


@pytest.fixture
def client():
    return ApiClient("http://api.test/", api_key="secret", timeout=12)


# ------------------------------------------------------------------
# Transport
# ------------------------------------------------------------------


class TestRequest:
    def test_headers_and_url(self, client):
        with patch(URLOPEN, return_value=_response({"ok": True})) as urlopen:
            assert client.request("GET", "/v1/ping") == {"ok": True}
        req = urlopen.call_args.args[0]
        assert req.full_url == "http://api.test/v1/ping"
        assert req.get_header("Authorization") == "Bearer secret"
        assert req.get_header("X-api-key") == "secret"
        assert urlopen.call_args.kwargs["timeout"] == 12

    def test_body_encoded(self, client):
        with patch(URLOPEN, return_value=_response({})) as urlopen:
            client.request("POST", "/v1/x", {"name": "Promo"})
        req = urlopen.call_args.args[0]
        assert req.get_method() == "POST"
        assert json.loads(req.data) == {"name": "Promo"}

    def test_skip_auth(self, client):
        with patch(URLOPEN, return_value=_response({})) as urlopen:
            client.request("GET", "/v1/health", skip_auth=True)
        assert urlopen.call_args.args[0].get_header("Authorization") is None

    def test_no_content(self, client):
        with patch(URLOPEN, return_value=_response(status=204)):
            assert client.request("DELETE", "/v1/x") == {}

    def test_invalid_json(self, client):
        with patch(URLOPEN, return_value=_response(raw=b"<html>")):
            with pytest.raises(ApiError) as info:
                client.request("GET", "/v1/x")
        assert (info.value.status, info.value.code) == (500, "INVALID_JSON")


class TestErrors:
    def test_json_error_body(self, client):
        body = json.dumps({"message": "Name taken", "code": "CONFLICT", "details": {"field": "name"}})
        with patch(URLOPEN, side_effect=_http_error(409, body.encode())):
            with pytest.raises(ApiError) as info:
                client.request("POST", "/v1/x", {})
        error = info.value
        assert error.status == 409
        assert error.code == "CONFLICT"
        assert error.details == {"field": "name"}
        assert str(error) == "Name taken (HTTP 409)"

    def test_error_key_fallback(self, client):
        with patch(URLOPEN, side_effect=_http_error(401, b'{"error": "Unauthorized"}')):
            with pytest.raises(ApiError) as info:
                client.request("GET", "/v1/x")
        assert info.value.message == "Unauthorized"

    def test_empty_error_body(self, client):
        with patch(URLOPEN, side_effect=_http_error(502)):
            with pytest.raises(ApiError) as info:
                client.request("GET", "/v1/x")
        assert info.value.message == "HTTP 502"

    @pytest.mark.parametrize("exc", [
        socket.timeout("timed out"),
        TimeoutError(),
        urllib.error.URLError(socket.timeout("timed out")),
    ])
    def test_timeouts(self, client, exc):
        with patch(URLOPEN, side_effect=exc):
            with pytest.raises(ApiError) as info:
                client.request("GET", "/v1/x")
        assert (info.value.status, info.value.code) == (408, "TIMEOUT")

    def test_network_failure(self, client):
        with patch(URLOPEN, side_effect=urllib.error.URLError("Connection refused")):
            with pytest.raises(ApiError) as info:
                client.request("GET", "/v1/x")
        assert (info.value.status, info.value.code) == (0, "NETWORK")
        assert "(HTTP" not in str(info.value)


# ------------------------------------------------------------------
# Campaign operations
# ------------------------------------------------------------------


class TestCampaigns:
    def test_list(self, client):
        body = {"campaigns": [{"id": "a"}, {"id": "b"}], "total": 9}
        with patch(URLOPEN, return_value=_response(body)) as urlopen:
            campaigns, total = client.list_campaigns(limit=2, offset=4)
        assert [c["id"] for c in campaigns] == ["a", "b"]
        assert total == 9
        assert urlopen.call_args.args[0].full_url.endswith("/v1/admin/campaigns?limit=2&offset=4")

    def test_id_quoted(self, client):
        with patch(URLOPEN, return_value=_response({})) as urlopen:
            client.get_campaign("a/b c")
        assert urlopen.call_args.args[0].full_url.endswith("/v1/admin/campaigns/a%2Fb%20c")

    def test_load_campaign(self, client, sample_payload):
        with patch(URLOPEN, return_value=_response(sample_payload)):
            doc = client.load_campaign("campaign_sample")
        assert doc.name == "Spring promo"

    def test_update_and_delete(self, client):
        with patch(URLOPEN, return_value=_response({"id": "x"})) as urlopen:
            client.update_campaign("x", {"name": "n"})
            assert urlopen.call_args.args[0].get_method() == "PUT"
        with patch(URLOPEN, return_value=_response(status=204)) as urlopen:
            assert client.delete_campaign("x") is True
            assert urlopen.call_args.args[0].get_method() == "DELETE"

    def test_save_new_ticket_creates(self, client):
        ticket = SaveTicket("campaign_local", 1, {"name": "n"}, is_new=True)
        with patch(URLOPEN, return_value=_response({"_id": "srv-9"})) as urlopen:
            assert client.save_ticket(ticket) == "srv-9"
        req = urlopen.call_args.args[0]
        assert req.get_method() == "POST"
        assert req.full_url.endswith("/v1/admin/campaigns")

    def test_save_existing_ticket_updates(self, client):
        ticket = SaveTicket("srv-9", 2, {"name": "n"}, is_new=False)
        with patch(URLOPEN, return_value=_response({})) as urlopen:
            assert client.save_ticket(ticket) == "srv-9"
        assert urlopen.call_args.args[0].get_method() == "PUT"


class TestHealthAndKeys:
    def test_health_ok(self, client):
        with patch(URLOPEN, return_value=_response({"status": "ok"})) as urlopen:
            assert client.check_health() is True
        assert urlopen.call_args.kwargs["timeout"] == 5.0

    def test_health_down(self, client):
        with patch(URLOPEN, side_effect=urllib.error.URLError("refused")):
            assert client.check_health() is False

    def test_set_api_key(self, client):
        client.set_api_key("  fresh  ")
        assert client.api_key == "fresh"
        with pytest.raises(ValueError):
            client.set_api_key("   ")

    def test_from_settings(self):
        settings = StudioSettings(api_url="http://backend:9000/", api_key="k", timeout=3)
        client = ApiClient.from_settings(settings)
        assert (client.base_url, client.api_key, client.timeout) == ("http://backend:9000", "k", 3)

    def test_no_key_no_auth_header(self):
        client = ApiClient("http://api.test")
        with patch(URLOPEN, return_value=_response({})) as urlopen:
            client.request("GET", "/v1/x")
        assert urlopen.call_args.args[0].get_header("Authorization") is None
