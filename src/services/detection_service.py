"""Detection orchestration: validate, rate-check, invoke, normalize."""
import time
from enum import Enum

from src.core.exceptions import AppError, RateLimitedError
from src.core.logging import get_logger
from src.dtos.detection_dto import (
    ContentKind,
    DetectionResultDTO,
    ImageDetectionInputDTO,
    TextDetectionInputDTO,
)
from src.services.content_validator import ContentValidator
from src.services.model_invoker import ModelInvoker
from src.services.rate_limiter import RateLimiter
from src.services.result_normalizer import ResultNormalizer

logger = get_logger(__name__)


class RequestState(str, Enum):
    RECEIVED = "received"
    VALIDATED = "validated"
    RATE_CHECKED = "rate_checked"
    INVOKED = "invoked"
    NORMALIZED = "normalized"
    COMPLETED = "completed"
    ERRORED = "errored"


class _StateTracker:
    def __init__(self, kind: ContentKind) -> None:
        self.kind = kind
        self.state = RequestState.RECEIVED

    def advance(self, state: RequestState) -> None:
        logger.debug(
            "detection_state_transition",
            kind=self.kind.value,
            from_state=self.state.value,
            to_state=state.value,
        )
        self.state = state


class DetectionService:
    """Runs one detection request through the pipeline.

    Every failure is terminal for the request and surfaces as the AppError
    raised by the failing stage. Retries happen only inside ModelInvoker.
    """

    def __init__(
        self,
        validator: ContentValidator,
        rate_limiter: RateLimiter,
        invoker: ModelInvoker,
        normalizer: ResultNormalizer,
    ) -> None:
        self._validator = validator
        self._rate_limiter = rate_limiter
        self._invoker = invoker
        self._normalizer = normalizer

    async def load(self) -> None:
        await self._invoker.load()

    async def detect_text(self, dto: TextDetectionInputDTO, client_id: str) -> DetectionResultDTO:
        return await self._run(ContentKind.TEXT, dto, dto.text, client_id)

    async def detect_image(self, dto: ImageDetectionInputDTO, client_id: str) -> DetectionResultDTO:
        return await self._run(ContentKind.IMAGE, dto, dto.data, client_id)

    async def _run(
        self,
        kind: ContentKind,
        dto: TextDetectionInputDTO | ImageDetectionInputDTO,
        payload: str | bytes,
        client_id: str,
    ) -> DetectionResultDTO:
        tracker = _StateTracker(kind)
        started = time.perf_counter()
        try:
            self._validator.validate(dto)
            tracker.advance(RequestState.VALIDATED)

            decision = await self._rate_limiter.check(client_id)
            if not decision.allowed:
                raise RateLimitedError(decision.retry_after_seconds)
            tracker.advance(RequestState.RATE_CHECKED)

            raw = await self._invoker.invoke(kind, payload)
            tracker.advance(RequestState.INVOKED)

            result = self._normalizer.normalize(raw)
            tracker.advance(RequestState.NORMALIZED)
        except AppError as e:
            logger.info(
                "detection_errored",
                kind=kind.value,
                failed_in=tracker.state.value,
                error_code=e.code,
                error_kind=getattr(e.kind, "value", e.kind),
            )
            tracker.advance(RequestState.ERRORED)
            raise

        tracker.advance(RequestState.COMPLETED)
        logger.info(
            "detection_completed",
            kind=kind.value,
            model=result.model,
            is_ai_generated=result.is_ai_generated,
            confidence=round(result.confidence, 4),
            confidence_band=result.confidence_band.value,
            remaining_budget=decision.remaining,
            latency_ms=round((time.perf_counter() - started) * 1000, 2),
        )
        return result
