"""Inference capabilities: the external models the detector calls.

Each capability turns one input into a raw output DTO or raises
InvocationError. The Cloudflare Workers AI clients are the default backend;
local transformers pipelines live in ``src.services.local_models``.
"""
from typing import Any, Mapping, Protocol

import httpx

from src.core.exceptions import InvocationError, InvocationErrorKind
from src.core.logging import get_logger
from src.dtos.detection_dto import ClassificationDTO, RawImageOutputDTO, RawTextOutputDTO

logger = get_logger(__name__)


class TextCapability(Protocol):
    model: str

    async def load(self) -> None: ...

    async def run(self, prompt: str, params: Mapping[str, Any] | None = None) -> RawTextOutputDTO: ...


class ImageCapability(Protocol):
    model: str

    async def load(self) -> None: ...

    async def run(self, image: bytes, params: Mapping[str, Any] | None = None) -> RawImageOutputDTO: ...


def _malformed(reason: str, **details: Any) -> InvocationError:
    return InvocationError(InvocationErrorKind.MALFORMED_RESPONSE, {"reason": reason, **details})


def parse_label_scores(result: Any) -> list[ClassificationDTO]:
    """Convert ``[{"label": str, "score": number}, ...]`` into DTOs."""
    if not isinstance(result, list):
        raise _malformed("classification result is not a list", result_type=type(result).__name__)

    items: list[ClassificationDTO] = []
    for entry in result:
        if not isinstance(entry, Mapping):
            raise _malformed("classification entry is not an object")
        label = entry.get("label")
        score = entry.get("score")
        if not isinstance(label, str) or isinstance(score, bool) or not isinstance(score, (int, float)):
            raise _malformed("classification entry lacks label or score")
        items.append(ClassificationDTO(label=label, score=float(score)))
    return items


class CloudflareWorkersAIClient:
    """Calls ``POST {run_url}/{model}`` on the Workers AI REST API."""

    def __init__(self, http: httpx.AsyncClient, run_url: str, api_token: str) -> None:
        self._http = http
        self._run_url = run_url.rstrip("/")
        self._headers = {"Authorization": f"Bearer {api_token}"} if api_token else {}

    async def run(self, model: str, payload: dict[str, Any]) -> Any:
        url = f"{self._run_url}/{model}"
        try:
            response = await self._http.post(url, json=payload, headers=self._headers)
        except httpx.TimeoutException as e:
            raise InvocationError(
                InvocationErrorKind.TIMEOUT,
                {"model": model, "error_type": type(e).__name__},
            ) from e
        except httpx.HTTPError as e:
            logger.warning("cloudflare_request_failed", model=model, error_type=type(e).__name__)
            raise InvocationError(
                InvocationErrorKind.CAPABILITY_UNAVAILABLE,
                {"model": model, "error": str(e), "error_type": type(e).__name__},
            ) from e

        if response.status_code >= 400:
            logger.warning("cloudflare_http_error", model=model, status_code=response.status_code)
            raise InvocationError(
                InvocationErrorKind.CAPABILITY_UNAVAILABLE,
                {"model": model, "status_code": response.status_code},
            )

        try:
            body = response.json()
        except ValueError as e:
            raise _malformed("response body is not JSON", model=model) from e

        if not isinstance(body, dict):
            raise _malformed("response body is not an object", model=model)

        if body.get("success") is False:
            logger.warning("cloudflare_call_rejected", model=model, errors=body.get("errors"))
            raise InvocationError(
                InvocationErrorKind.CAPABILITY_UNAVAILABLE,
                {"model": model, "errors": body.get("errors")},
            )

        if "result" not in body:
            raise _malformed("response body has no result", model=model)
        return body["result"]


class CloudflareTextCapability:
    """Text generation, e.g. ``@cf/meta/llama-2-7b-chat-int8``."""

    def __init__(self, client: CloudflareWorkersAIClient, model: str, max_tokens: int = 256) -> None:
        self.model = model
        self._client = client
        self._max_tokens = max_tokens

    async def load(self) -> None:
        return None

    async def run(self, prompt: str, params: Mapping[str, Any] | None = None) -> RawTextOutputDTO:
        payload: dict[str, Any] = {"prompt": prompt, "max_tokens": self._max_tokens}
        if params:
            payload.update(params)

        result = await self._client.run(self.model, payload)
        response = result.get("response") if isinstance(result, Mapping) else None
        if not isinstance(response, str):
            raise _malformed("text result has no response string", model=self.model)
        return RawTextOutputDTO(model=self.model, response=response)


class CloudflareImageCapability:
    """Image classification, e.g. ``@cf/microsoft/resnet-50``."""

    def __init__(self, client: CloudflareWorkersAIClient, model: str) -> None:
        self.model = model
        self._client = client

    async def load(self) -> None:
        return None

    async def run(self, image: bytes, params: Mapping[str, Any] | None = None) -> RawImageOutputDTO:
        payload: dict[str, Any] = {"image": list(image)}
        if params:
            payload.update(params)

        result = await self._client.run(self.model, payload)
        return RawImageOutputDTO(model=self.model, items=parse_label_scores(result))
