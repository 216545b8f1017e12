"""Tests for the client side of the relay exchange."""

import json

import httpx
import pytest

from routine_advisor.errors import ConfigurationError, RelayHTTPError, TransportError
from routine_advisor.models import Message, Product
from routine_advisor.relay_client import RelayClient, extract_error_message

RELAY_URL = "https://relay.test/"


def user_message(text):
    return Message(role="user", content=text, time="2024-01-01T00:00:00.000Z")


class TestRelayClient:
    @pytest.mark.asyncio
    async def test_payload_shape(self):
        seen = []

        def handler(request):
            seen.append(json.loads(request.content))
            return httpx.Response(200, json={"reply": "hello", "citations": [{"title": "Docs", "url": "https://x"}]})

        client = RelayClient(RELAY_URL, transport=httpx.MockTransport(handler))
        messages = [user_message(f"m{i}") for i in range(25)]
        product = Product(id=2, name="Serum", brand="Acme", description="d", category="skincare", image="i.png")

        reply = await client.send(messages, [product])

        assert reply.reply == "hello"
        assert reply.citations[0].url == "https://x"
        payload = seen[0]
        assert len(payload["messages"]) == 20
        assert payload["messages"][0] == {"role": "user", "content": "m5"}
        assert payload["messages"][-1] == {"role": "user", "content": "m24"}
        assert payload["products"] == [product.model_dump()]
        assert payload["now"].endswith("Z")

    @pytest.mark.asyncio
    async def test_absent_reply_is_none(self):
        client = RelayClient(RELAY_URL, transport=httpx.MockTransport(lambda r: httpx.Response(200, json={})))

        reply = await client.send([user_message("hi")], [])

        assert reply.reply is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("url", ["", "   ", "https://REPLACE_WITH_YOUR_RELAY"])
    async def test_unconfigured_url_fails_before_network(self, url):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(200, json={})

        client = RelayClient(url, transport=httpx.MockTransport(handler))

        with pytest.raises(ConfigurationError):
            await client.send([user_message("hi")], [])
        assert calls == []

    @pytest.mark.asyncio
    async def test_non_2xx_raises_with_extracted_message(self):
        client = RelayClient(
            RELAY_URL, transport=httpx.MockTransport(lambda r: httpx.Response(502, text="Upstream error: boom"))
        )

        with pytest.raises(RelayHTTPError) as info:
            await client.send([user_message("hi")], [])

        assert info.value.status_code == 502
        assert info.value.message == "Upstream error: boom"

    @pytest.mark.asyncio
    async def test_network_failure_raises_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("unreachable", request=request)

        client = RelayClient(RELAY_URL, transport=httpx.MockTransport(handler))

        with pytest.raises(TransportError, match="unreachable"):
            await client.send([user_message("hi")], [])

    @pytest.mark.asyncio
    async def test_malformed_success_body_raises_transport_error(self):
        client = RelayClient(RELAY_URL, transport=httpx.MockTransport(lambda r: httpx.Response(200, text="oops")))

        with pytest.raises(TransportError):
            await client.send([user_message("hi")], [])


class TestExtractErrorMessage:
    def test_string_error_body(self):
        body = {"error": {"body": "quota exceeded"}}

        assert extract_error_message(500, "Server Error", json.dumps(body), body) == "quota exceeded"

    def test_nested_error_message(self):
        body = {"error": {"body": {"error": {"message": "invalid key"}}}}

        assert extract_error_message(500, "", json.dumps(body), body) == "invalid key"

    def test_structured_error_without_message_is_dumped(self):
        body = {"error": {"code": 7}}

        assert extract_error_message(500, "", json.dumps(body), body) == '{"code": 7}'

    def test_top_level_message(self):
        body = {"message": "rate limited"}

        assert extract_error_message(429, "", json.dumps(body), body) == "rate limited"

    def test_raw_text(self):
        assert extract_error_message(502, "Bad Gateway", "Upstream error: boom", None) == "Upstream error: boom"

    def test_reason_phrase_then_status(self):
        assert extract_error_message(503, "Service Unavailable", "", None) == "Service Unavailable"
        assert extract_error_message(503, "", "", None) == "HTTP 503"
