from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from src.dtos.detection_dto import ConfidenceBand, ContentKind, DetectionResultDTO


class TextDetectionRequest(BaseModel):
    # Length limits are enforced by ContentValidator so they map to TooShort/TooLong
    text: str


class LegacyDetectionRequest(BaseModel):
    content: str
    type: str = "text"


class Classification(BaseModel):
    label: str
    score: float = Field(ge=0.0, le=1.0)


class DetectionResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    success: bool = True
    is_ai_generated: bool
    confidence: float = Field(ge=0.0, le=1.0)
    confidence_band: ConfidenceBand
    type: ContentKind
    reasoning: str | None = None
    model: str | None = None
    classifications: list[Classification] | None = None

    @classmethod
    def from_dto(cls, result: DetectionResultDTO) -> "DetectionResponse":
        classifications = None
        if result.classifications is not None:
            classifications = [
                Classification(label=c.label, score=c.score) for c in result.classifications
            ]
        return cls(
            success=result.success,
            is_ai_generated=result.is_ai_generated,
            confidence=result.confidence,
            confidence_band=result.confidence_band,
            type=result.content_type,
            reasoning=result.reasoning,
            model=result.model,
            classifications=classifications,
        )


class ErrorResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    status: Literal["error"] = "error"
    code: int
    kind: str
    error: str
    retry_after_seconds: int | None = None
