from dataclasses import dataclass, field
from enum import Enum


class ContentKind(str, Enum):
    TEXT = "text"
    IMAGE = "image"


class ConfidenceBand(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


HIGH_CONFIDENCE_THRESHOLD = 0.7
MEDIUM_CONFIDENCE_THRESHOLD = 0.4


def confidence_band_for(confidence: float) -> ConfidenceBand:
    if confidence >= HIGH_CONFIDENCE_THRESHOLD:
        return ConfidenceBand.HIGH
    if confidence >= MEDIUM_CONFIDENCE_THRESHOLD:
        return ConfidenceBand.MEDIUM
    return ConfidenceBand.LOW


@dataclass(frozen=True)
class ClassificationDTO:
    label: str
    score: float


@dataclass
class TextDetectionInputDTO:
    text: str


@dataclass
class ImageDetectionInputDTO:
    data: bytes
    content_type: str
    filename: str | None = None


@dataclass(frozen=True)
class RawTextOutputDTO:
    model: str
    response: str


@dataclass(frozen=True)
class RawImageOutputDTO:
    model: str
    items: list[ClassificationDTO] = field(default_factory=list)


@dataclass(frozen=True)
class DetectionResultDTO:
    is_ai_generated: bool
    confidence: float
    content_type: ContentKind
    success: bool = True
    reasoning: str | None = None
    model: str | None = None
    classifications: list[ClassificationDTO] | None = None

    @property
    def confidence_band(self) -> ConfidenceBand:
        return confidence_band_for(self.confidence)


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    remaining: int
    retry_after_seconds: int = 0
