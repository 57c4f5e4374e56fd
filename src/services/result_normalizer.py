"""Maps raw capability outputs onto the canonical DetectionResultDTO."""
import json
import re
from typing import Any

from src.core.exceptions import InvocationError, InvocationErrorKind
from src.dtos.detection_dto import (
    ClassificationDTO,
    ContentKind,
    DetectionResultDTO,
    RawImageOutputDTO,
    RawTextOutputDTO,
)

AI_DECISION_THRESHOLD = 0.5

_JSON_DECODER = json.JSONDecoder()
_PROBABILITY_RE = re.compile(
    r"probability[\"']?\s*[:=]\s*(-?\d+(?:\.\d+)?)\s*(%)?",
    re.IGNORECASE,
)
_LABEL_NORMALIZE_RE = re.compile(r"[^a-z0-9]+")

_PROBABILITY_KEYS = ("probability", "ai_probability", "aiProbability", "score", "confidence")
_REASONING_KEYS = ("reasoning", "rationale", "explanation")

AI_LABELS = frozenset({
    "ai",
    "ai_generated",
    "artificial",
    "synthetic",
    "fake",
    "generated",
    "machine_generated",
    "computer_generated",
    "deepfake",
})


def _malformed(reason: str) -> InvocationError:
    return InvocationError(InvocationErrorKind.MALFORMED_RESPONSE, {"reason": reason})


def normalize_label(label: str) -> str:
    return _LABEL_NORMALIZE_RE.sub("_", label.strip().lower()).strip("_")


def coerce_probability(value: Any, percent: bool = False) -> float | None:
    """Read a probability, accepting 0..1 or a 0..100 percentage."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        numeric = float(value)
    elif isinstance(value, str):
        try:
            numeric = float(value.strip().rstrip("%"))
        except ValueError:
            return None
        percent = percent or value.strip().endswith("%")
    else:
        return None

    if percent or 1.0 < numeric <= 100.0:
        numeric /= 100.0
    if not 0.0 <= numeric <= 1.0:
        return None
    return numeric


def _first_json_object(response: str) -> dict | None:
    index = response.find("{")
    while index != -1:
        try:
            candidate, _ = _JSON_DECODER.raw_decode(response, index)
        except json.JSONDecodeError:
            candidate = None
        if isinstance(candidate, dict):
            return candidate
        index = response.find("{", index + 1)
    return None


class ResultNormalizer:
    """Deterministic: the same raw output always yields an equal result."""

    def normalize(self, raw: RawTextOutputDTO | RawImageOutputDTO) -> DetectionResultDTO:
        if isinstance(raw, RawTextOutputDTO):
            return self.normalize_text(raw)
        if isinstance(raw, RawImageOutputDTO):
            return self.normalize_image(raw)
        raise _malformed(f"unknown raw output {type(raw).__name__}")

    def normalize_text(self, raw: RawTextOutputDTO) -> DetectionResultDTO:
        confidence: float | None = None
        reasoning: str | None = None

        payload = _first_json_object(raw.response)
        if payload is not None:
            for key in _PROBABILITY_KEYS:
                if key in payload:
                    confidence = coerce_probability(payload[key])
                    break
            for key in _REASONING_KEYS:
                if isinstance(payload.get(key), str):
                    reasoning = payload[key]
                    break

        if confidence is None:
            match = _PROBABILITY_RE.search(raw.response)
            if match:
                confidence = coerce_probability(float(match.group(1)), percent=bool(match.group(2)))

        if confidence is None:
            raise _malformed("text response carries no probability")

        return DetectionResultDTO(
            is_ai_generated=confidence >= AI_DECISION_THRESHOLD,
            confidence=confidence,
            content_type=ContentKind.TEXT,
            reasoning=reasoning,
            model=raw.model,
        )

    def normalize_image(self, raw: RawImageOutputDTO) -> DetectionResultDTO:
        if not raw.items:
            raise _malformed("image response has no classifications")
        if any(not 0.0 <= item.score <= 1.0 for item in raw.items):
            raise _malformed("classification score outside [0, 1]")

        # sorted() is stable, so ties keep the capability's order
        classifications = [
            ClassificationDTO(label=item.label, score=item.score)
            for item in sorted(raw.items, key=lambda item: item.score, reverse=True)
        ]
        top = classifications[0]

        return DetectionResultDTO(
            is_ai_generated=normalize_label(top.label) in AI_LABELS,
            confidence=top.score,
            content_type=ContentKind.IMAGE,
            model=raw.model,
            classifications=classifications,
        )
