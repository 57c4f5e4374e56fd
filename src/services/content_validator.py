"""Structural checks on submitted content, run before any model call."""
from src.core.exceptions import ContentValidationError, ValidationErrorKind
from src.dtos.detection_dto import ImageDetectionInputDTO, TextDetectionInputDTO

MIN_TEXT_LENGTH = 10
MAX_TEXT_LENGTH = 10_000
MAX_IMAGE_BYTES = 5 * 1024 * 1024

ALLOWED_IMAGE_TYPES = frozenset({
    "image/jpeg",
    "image/jpg",
    "image/png",
    "image/gif",
    "image/webp",
    "image/bmp",
    "image/tiff",
})


def _normalize_mime(content_type: str | None) -> str:
    return (content_type or "").split(";", 1)[0].strip().lower()


class ContentValidator:
    """Pure validator: returns the input unchanged or raises ContentValidationError."""

    def __init__(
        self,
        min_text_length: int = MIN_TEXT_LENGTH,
        max_text_length: int = MAX_TEXT_LENGTH,
        max_image_bytes: int = MAX_IMAGE_BYTES,
        allowed_image_types: frozenset[str] = ALLOWED_IMAGE_TYPES,
    ) -> None:
        self.min_text_length = min_text_length
        self.max_text_length = max_text_length
        self.max_image_bytes = max_image_bytes
        self.allowed_image_types = allowed_image_types

    def validate_text(self, dto: TextDetectionInputDTO) -> TextDetectionInputDTO:
        length = len(dto.text)
        if not dto.text.strip():
            raise ContentValidationError(
                ValidationErrorKind.EMPTY,
                "Text is empty",
            )
        if length < self.min_text_length:
            raise ContentValidationError(
                ValidationErrorKind.TOO_SHORT,
                f"Text must be at least {self.min_text_length} characters",
                {"length": length},
            )
        if length > self.max_text_length:
            raise ContentValidationError(
                ValidationErrorKind.TOO_LONG,
                f"Text must be at most {self.max_text_length} characters",
                {"length": length},
            )
        return dto

    def validate_image(self, dto: ImageDetectionInputDTO) -> ImageDetectionInputDTO:
        size = len(dto.data)
        if size == 0:
            raise ContentValidationError(
                ValidationErrorKind.EMPTY,
                "Image file is empty",
            )
        mime = _normalize_mime(dto.content_type)
        if mime not in self.allowed_image_types:
            raise ContentValidationError(
                ValidationErrorKind.UNSUPPORTED_TYPE,
                "Unsupported image type",
                {"content_type": mime},
            )
        if size > self.max_image_bytes:
            raise ContentValidationError(
                ValidationErrorKind.TOO_LARGE,
                f"Image must be at most {self.max_image_bytes // (1024 * 1024)} MiB",
                {"size": size},
            )
        return dto

    def validate(
        self, dto: TextDetectionInputDTO | ImageDetectionInputDTO
    ) -> TextDetectionInputDTO | ImageDetectionInputDTO:
        if isinstance(dto, TextDetectionInputDTO):
            return self.validate_text(dto)
        return self.validate_image(dto)
