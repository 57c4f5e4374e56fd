"""Uniform calling convention over the text and image capabilities."""
import asyncio
import time
from dataclasses import dataclass
from functools import partial
from typing import Any, Mapping

from src.core.exceptions import InvocationError, InvocationErrorKind
from src.core.logging import get_logger
from src.dtos.detection_dto import ContentKind, RawImageOutputDTO, RawTextOutputDTO
from src.services.capabilities import ImageCapability, TextCapability
from src.utils.prompt import build_detection_prompt

logger = get_logger(__name__)

RETRYABLE_KINDS = frozenset({
    InvocationErrorKind.TIMEOUT,
    InvocationErrorKind.CAPABILITY_UNAVAILABLE,
})


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded retry: ``max_attempts`` in total, only for ``retryable`` kinds."""
    max_attempts: int = 2
    retryable: frozenset[InvocationErrorKind] = RETRYABLE_KINDS
    backoff_seconds: float = 0.0

    def should_retry(self, attempt: int, error: InvocationError) -> bool:
        return attempt < self.max_attempts and error.kind in self.retryable


class ModelInvoker:
    """Calls a capability with a hard per-kind timeout and the retry policy.

    Only metadata is logged here, never the submitted content or the model output.
    """

    def __init__(
        self,
        text_capability: TextCapability,
        image_capability: ImageCapability,
        timeouts: Mapping[ContentKind, float],
        policy: RetryPolicy = RetryPolicy(),
    ) -> None:
        self._text = text_capability
        self._image = image_capability
        self._timeouts = dict(timeouts)
        self._policy = policy

    async def load(self) -> None:
        await self._text.load()
        await self._image.load()

    def model_for(self, kind: ContentKind) -> str:
        return self._text.model if kind is ContentKind.TEXT else self._image.model

    async def invoke(
        self,
        kind: ContentKind,
        payload: str | bytes,
        params: Mapping[str, Any] | None = None,
    ) -> RawTextOutputDTO | RawImageOutputDTO:
        if kind is ContentKind.TEXT:
            call = partial(self._text.run, build_detection_prompt(payload), params)
        else:
            call = partial(self._image.run, payload, params)

        timeout = self._timeouts[kind]
        attempt = 0
        while True:
            attempt += 1
            started = time.perf_counter()
            try:
                raw = await self._attempt(call, timeout)
            except InvocationError as e:
                elapsed_ms = round((time.perf_counter() - started) * 1000, 2)
                if not self._policy.should_retry(attempt, e):
                    logger.warning(
                        "capability_call_failed",
                        kind=kind.value,
                        attempt=attempt,
                        error_kind=e.kind.value,
                        elapsed_ms=elapsed_ms,
                    )
                    raise
                logger.info(
                    "capability_retry",
                    kind=kind.value,
                    attempt=attempt,
                    error_kind=e.kind.value,
                    elapsed_ms=elapsed_ms,
                )
                if self._policy.backoff_seconds:
                    await asyncio.sleep(self._policy.backoff_seconds)
                continue

            logger.debug(
                "capability_call_succeeded",
                kind=kind.value,
                attempt=attempt,
                elapsed_ms=round((time.perf_counter() - started) * 1000, 2),
            )
            return raw

    @staticmethod
    async def _attempt(call, timeout: float):
        try:
            return await asyncio.wait_for(call(), timeout=timeout)
        except asyncio.TimeoutError as e:
            raise InvocationError(
                InvocationErrorKind.TIMEOUT,
                {"timeout_seconds": timeout},
            ) from e
