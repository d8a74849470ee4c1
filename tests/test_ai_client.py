import json

import httpx
import pytest

from glrules.ai import SuggestionAPIError, SuggestionClient
from glrules.rules.types import LineItem

pytestmark = pytest.mark.anyio

LINE = LineItem(description="Adobe Creative Cloud subscription", vendor_name="Adobe Inc", amount=299.88)


def make_client(handler) -> SuggestionClient:
    client = SuggestionClient(transport=httpx.MockTransport(handler))
    client.base_url = "http://ai.test"
    client.api_token = "secret"
    return client


async def test_disabled_without_url():
    client = SuggestionClient()
    assert not client.enabled
    assert await client.suggest_gl_code(LINE) is None


async def test_suggestion_is_parsed():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["auth"] = request.headers.get("Authorization")
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"data": {"gl_code": "6500", "confidence": 0.72}})

    suggestion = await make_client(handler).suggest_gl_code(LINE)

    assert suggestion.gl_code == "6500"
    assert suggestion.confidence == 0.72
    assert seen["url"] == "http://ai.test/gl-suggestions"
    assert seen["auth"] == "Bearer secret"
    assert seen["body"]["vendor_name"] == "Adobe Inc"


async def test_confidence_is_clamped():
    def handler(request):
        return httpx.Response(200, json={"gl_code": "6500", "confidence": 7})

    suggestion = await make_client(handler).suggest_gl_code(LINE)
    assert suggestion.confidence == 1.0


async def test_no_gl_code_means_no_suggestion():
    def handler(request):
        return httpx.Response(200, json={"data": {}})

    assert await make_client(handler).suggest_gl_code(LINE) is None


async def test_http_error_raises():
    def handler(request):
        return httpx.Response(503, json={"error": {"detail": "model warming up"}})

    with pytest.raises(SuggestionAPIError) as exc_info:
        await make_client(handler).suggest_gl_code(LINE)

    assert exc_info.value.status_code == 503
    assert "model warming up" in str(exc_info.value)


async def test_transport_error_raises():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(SuggestionAPIError) as exc_info:
        await make_client(handler).suggest_gl_code(LINE)

    assert exc_info.value.status_code == 0


async def test_non_json_reply_raises():
    def handler(request):
        return httpx.Response(200, text="<html>gateway</html>")

    with pytest.raises(SuggestionAPIError) as exc_info:
        await make_client(handler).suggest_gl_code(LINE)

    assert "invalid JSON" in str(exc_info.value)


@pytest.mark.parametrize("body", [["6500"], {"data": None}, {"data": "6500"}])
async def test_unexpected_shape_means_no_suggestion(body):
    def handler(request):
        return httpx.Response(200, json=body)

    assert await make_client(handler).suggest_gl_code(LINE) is None


async def test_non_finite_confidence_becomes_zero():
    def handler(request):
        return httpx.Response(200, content=b'{"gl_code": "6500", "confidence": NaN}')

    suggestion = await make_client(handler).suggest_gl_code(LINE)
    assert suggestion.confidence == 0.0
