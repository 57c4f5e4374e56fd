"""
Data Transfer Objects (DTOs) package.

DTOs are simple dataclasses used to transfer data between layers.
"""

from src.dtos.detection_dto import (
    ClassificationDTO,
    ConfidenceBand,
    ContentKind,
    DetectionResultDTO,
    ImageDetectionInputDTO,
    RateLimitDecision,
    RawImageOutputDTO,
    RawTextOutputDTO,
    TextDetectionInputDTO,
    confidence_band_for,
)

__all__ = [
    "ClassificationDTO",
    "ConfidenceBand",
    "ContentKind",
    "DetectionResultDTO",
    "ImageDetectionInputDTO",
    "RateLimitDecision",
    "RawImageOutputDTO",
    "RawTextOutputDTO",
    "TextDetectionInputDTO",
    "confidence_band_for",
]
