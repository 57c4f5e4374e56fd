import pytest

from src.core.exceptions import (
    ContentValidationError,
    InvocationError,
    InvocationErrorKind,
    RateLimitedError,
    ValidationErrorKind,
)
from src.dtos.detection_dto import (
    ClassificationDTO,
    ConfidenceBand,
    ContentKind,
    ImageDetectionInputDTO,
    TextDetectionInputDTO,
)
from src.services.content_validator import ContentValidator
from src.services.detection_service import DetectionService
from src.services.model_invoker import ModelInvoker, RetryPolicy
from src.services.rate_limiter import InMemoryRateLimiter
from src.services.result_normalizer import ResultNormalizer
from tests.fakes import FakeClock, FakeImageCapability, FakeTextCapability

SAMPLE_TEXT = "This is a short test message for analysis."


@pytest.fixture
def limiter() -> InMemoryRateLimiter:
    return InMemoryRateLimiter(capacity=10, window_seconds=60, clock=FakeClock())


def _service(limiter, text=None, image=None, timeout: float = 1.0) -> DetectionService:
    invoker = ModelInvoker(
        text or FakeTextCapability(),
        image or FakeImageCapability(),
        timeouts={ContentKind.TEXT: timeout, ContentKind.IMAGE: timeout},
        policy=RetryPolicy(),
    )
    return DetectionService(ContentValidator(), limiter, invoker, ResultNormalizer())


@pytest.mark.asyncio
async def test_text_detection_end_to_end(limiter):
    text = FakeTextCapability()

    result = await _service(limiter, text=text).detect_text(TextDetectionInputDTO(SAMPLE_TEXT), "client-a")

    assert result.success is True
    assert 0.0 <= result.confidence <= 1.0
    assert result.confidence == 0.82
    assert result.is_ai_generated is True
    assert result.confidence_band is ConfidenceBand.HIGH
    assert result.reasoning == "Uniform sentence rhythm and generic phrasing."
    assert result.model == FakeTextCapability.model
    assert text.calls == 1


@pytest.mark.asyncio
async def test_image_detection_end_to_end(limiter):
    result = await _service(limiter).detect_image(
        ImageDetectionInputDTO(data=b"\x89PNG\r\n", content_type="image/png"),
        "client-a",
    )

    assert result.content_type is ContentKind.IMAGE
    assert result.classifications[0] == ClassificationDTO("synthetic", 0.81)
    assert result.confidence == 0.81
    assert result.reasoning is None


@pytest.mark.asyncio
async def test_invalid_text_never_reaches_capability_or_budget(limiter):
    text = FakeTextCapability()

    with pytest.raises(ContentValidationError) as exc:
        await _service(limiter, text=text).detect_text(TextDetectionInputDTO("hello"), "client-a")

    assert exc.value.kind is ValidationErrorKind.TOO_SHORT
    assert text.calls == 0
    assert (await limiter.check("client-a")).remaining == 9


@pytest.mark.asyncio
async def test_rate_limited_request_never_reaches_capability(limiter):
    text = FakeTextCapability()
    service = _service(limiter, text=text)
    for _ in range(10):
        await service.detect_text(TextDetectionInputDTO(SAMPLE_TEXT), "client-a")

    with pytest.raises(RateLimitedError) as exc:
        await service.detect_text(TextDetectionInputDTO(SAMPLE_TEXT), "client-a")

    assert exc.value.retry_after_seconds > 0
    assert text.calls == 10


@pytest.mark.asyncio
async def test_invocation_failure_is_surfaced_not_replaced(limiter):
    text = FakeTextCapability(delay=5.0)

    with pytest.raises(InvocationError) as exc:
        await _service(limiter, text=text, timeout=0.02).detect_text(
            TextDetectionInputDTO(SAMPLE_TEXT), "client-a"
        )

    assert exc.value.kind is InvocationErrorKind.TIMEOUT
    assert text.calls == 2


@pytest.mark.asyncio
async def test_unparseable_output_is_malformed(limiter):
    text = FakeTextCapability(response="I am not able to judge this text.")

    with pytest.raises(InvocationError) as exc:
        await _service(limiter, text=text).detect_text(TextDetectionInputDTO(SAMPLE_TEXT), "client-a")

    assert exc.value.kind is InvocationErrorKind.MALFORMED_RESPONSE
    assert text.calls == 1
