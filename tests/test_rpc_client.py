import json

import httpx
import pytest

from app.core.errors import ConflictError, UpstreamError, ValidationError
from app.services.rpc import RpcClient


def client_for(handler):
    return RpcClient(base_url="https://rpc.example.com/", api_key="key-1", timeout=2,
                     transport=httpx.MockTransport(handler))


def test_success_returns_data():
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        seen["headers"] = request.headers
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"data": {"ok": 1}})

    result = client_for(handler).call("get_scheme_periods", {"p_scheme_id": "s1"}, user_token="tok")
    assert result == {"ok": 1}
    assert seen["url"] == "https://rpc.example.com/get_scheme_periods"
    assert seen["body"] == {"p_scheme_id": "s1"}
    assert seen["headers"]["X-Api-Key"] == "key-1"
    assert seen["headers"]["Authorization"] == "Bearer tok"


def test_business_rejection_is_validation_error():
    client = client_for(lambda request: httpx.Response(400, json={"error": {"message": "Invalid referral code"}}))
    with pytest.raises(ValidationError, match="Invalid referral code"):
        client.call("attach_user_referral_by_code", {})


def test_conflict():
    client = client_for(lambda request: httpx.Response(409, json={"error": "Profile already exists"}))
    with pytest.raises(ConflictError):
        client.call("ensure_profile2", {})


def test_error_body_on_200_is_upstream_error():
    client = client_for(lambda request: httpx.Response(200, json={"error": {"message": "boom"}}))
    with pytest.raises(UpstreamError):
        client.call("get_admin_overview")


def test_server_error_and_non_json():
    client = client_for(lambda request: httpx.Response(502, text="Bad Gateway"))
    with pytest.raises(UpstreamError):
        client.call("get_admin_overview")


def test_timeout_is_upstream_error():
    def handler(request):
        raise httpx.ReadTimeout("slow", request=request)

    with pytest.raises(UpstreamError, match="timed out"):
        client_for(handler).call("get_admin_overview")


def test_connection_failure_is_upstream_error():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(UpstreamError):
        client_for(handler).call("get_admin_overview")


def test_unconfigured_endpoint_fails_closed():
    with pytest.raises(UpstreamError):
        RpcClient(base_url="").call("validate_admin_access_key", {"access_key": "k"})
