import json

import httpx
import pytest

from src.core.exceptions import InvocationError, InvocationErrorKind
from src.dtos.detection_dto import ClassificationDTO
from src.services.capabilities import (
    CloudflareImageCapability,
    CloudflareTextCapability,
    CloudflareWorkersAIClient,
    parse_label_scores,
)

RUN_URL = "https://api.cloudflare.test/client/v4/accounts/acc-123/ai/run"


def _client(handler) -> tuple[CloudflareWorkersAIClient, httpx.AsyncClient]:
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return CloudflareWorkersAIClient(http, RUN_URL, api_token="secret-token"), http


@pytest.mark.asyncio
async def test_text_capability_posts_prompt_and_reads_response():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["auth"] = request.headers.get("authorization")
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"success": True, "result": {"response": '{"probability": 0.9}'}})

    client, http = _client(handler)
    async with http:
        raw = await CloudflareTextCapability(client, "@cf/meta/llama-2-7b-chat-int8", max_tokens=64).run("prompt text")

    assert "/accounts/acc-123/ai/run/" in seen["url"]
    assert seen["url"].endswith("/meta/llama-2-7b-chat-int8")
    assert seen["auth"] == "Bearer secret-token"
    assert seen["body"] == {"prompt": "prompt text", "max_tokens": 64}
    assert raw.model == "@cf/meta/llama-2-7b-chat-int8"
    assert raw.response == '{"probability": 0.9}'


@pytest.mark.asyncio
async def test_image_capability_sends_bytes_and_parses_labels():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["body"] = json.loads(request.content)
        return httpx.Response(
            200,
            json={"success": True, "result": [{"label": "cat", "score": 0.2}, {"label": "synthetic", "score": 0.8}]},
        )

    client, http = _client(handler)
    async with http:
        raw = await CloudflareImageCapability(client, "@cf/microsoft/resnet-50").run(b"\x01\x02\xff")

    assert seen["body"] == {"image": [1, 2, 255]}
    assert raw.items == [ClassificationDTO("cat", 0.2), ClassificationDTO("synthetic", 0.8)]


@pytest.mark.asyncio
@pytest.mark.parametrize("status_code", [401, 403, 429, 500, 503])
async def test_http_errors_mean_capability_unavailable(status_code):
    client, http = _client(lambda request: httpx.Response(status_code, json={"success": False}))

    async with http:
        with pytest.raises(InvocationError) as exc:
            await client.run("@cf/model", {"prompt": "x"})

    assert exc.value.kind is InvocationErrorKind.CAPABILITY_UNAVAILABLE
    assert exc.value.details["status_code"] == status_code


@pytest.mark.asyncio
async def test_unsuccessful_envelope_means_capability_unavailable():
    body = {"success": False, "errors": [{"code": 3036, "message": "quota exceeded"}], "result": None}
    client, http = _client(lambda request: httpx.Response(200, json=body))

    async with http:
        with pytest.raises(InvocationError) as exc:
            await client.run("@cf/model", {"prompt": "x"})

    assert exc.value.kind is InvocationErrorKind.CAPABILITY_UNAVAILABLE
    assert "quota" not in exc.value.message


@pytest.mark.asyncio
async def test_connection_error_means_capability_unavailable():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client, http = _client(handler)
    async with http:
        with pytest.raises(InvocationError) as exc:
            await client.run("@cf/model", {"prompt": "x"})

    assert exc.value.kind is InvocationErrorKind.CAPABILITY_UNAVAILABLE


@pytest.mark.asyncio
async def test_transport_timeout_means_timeout():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    client, http = _client(handler)
    async with http:
        with pytest.raises(InvocationError) as exc:
            await client.run("@cf/model", {"prompt": "x"})

    assert exc.value.kind is InvocationErrorKind.TIMEOUT


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(200, content=b"<html>gateway</html>"),
        httpx.Response(200, json=["not", "an", "object"]),
        httpx.Response(200, json={"success": True}),
        httpx.Response(200, json={"success": True, "result": {"text": "no response key"}}),
    ],
)
async def test_unexpected_shapes_are_malformed(response):
    client, http = _client(lambda request: response)

    async with http:
        with pytest.raises(InvocationError) as exc:
            await CloudflareTextCapability(client, "@cf/model").run("prompt")

    assert exc.value.kind is InvocationErrorKind.MALFORMED_RESPONSE


@pytest.mark.parametrize(
    "result",
    [
        {"label": "cat", "score": 0.5},
        [{"label": "cat"}],
        [{"label": 3, "score": 0.5}],
        [{"label": "cat", "score": True}],
        ["cat"],
    ],
)
def test_parse_label_scores_rejects_bad_shapes(result):
    with pytest.raises(InvocationError) as exc:
        parse_label_scores(result)

    assert exc.value.kind is InvocationErrorKind.MALFORMED_RESPONSE
