from dishka.integrations.fastapi import DishkaRoute, FromDishka
from fastapi import APIRouter, File, Request, UploadFile

from src.api.v1.schemas.detection import (
    DetectionResponse,
    ErrorResponse,
    LegacyDetectionRequest,
    TextDetectionRequest,
)
from src.core.config import Config
from src.core.exceptions import ContentValidationError, ValidationErrorKind
from src.core.logging import set_request_context
from src.dtos.detection_dto import ContentKind, ImageDetectionInputDTO, TextDetectionInputDTO
from src.services.content_validator import MAX_IMAGE_BYTES
from src.services.detection_service import DetectionService
from src.utils.client_identity import client_id_from_request
from src.utils.disconnect import run_until_disconnected

router = APIRouter(
    route_class=DishkaRoute,
    prefix="/api",
    tags=["Detection"],
    responses={
        413: {"model": ErrorResponse},
        415: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
        429: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
        504: {"model": ErrorResponse},
    },
)


def _client_id(request: Request, config: Config) -> str:
    client_id = client_id_from_request(request, config.trust_forwarded_for)
    set_request_context(client_id=client_id)
    return client_id


async def _detect_text(
    text: str,
    request: Request,
    service: DetectionService,
    config: Config,
) -> DetectionResponse:
    client_id = _client_id(request, config)
    result = await run_until_disconnected(
        request,
        service.detect_text(TextDetectionInputDTO(text=text), client_id),
        config.disconnect_poll_seconds,
    )
    return DetectionResponse.from_dto(result)


@router.post("/detect-text", response_model=DetectionResponse, response_model_exclude_none=True)
async def detect_text(
    body: TextDetectionRequest,
    request: Request,
    service: FromDishka[DetectionService],
    config: FromDishka[Config],
) -> DetectionResponse:
    """Estimate whether the submitted text was generated by an AI model."""
    return await _detect_text(body.text, request, service, config)


@router.post("/detect-image", response_model=DetectionResponse, response_model_exclude_none=True)
async def detect_image(
    request: Request,
    service: FromDishka[DetectionService],
    config: FromDishka[Config],
    image: UploadFile = File(...),
) -> DetectionResponse:
    """Estimate whether the uploaded image was generated by an AI model."""
    # One byte past the limit is enough for the validator to report TooLarge
    data = await image.read(MAX_IMAGE_BYTES + 1)
    dto = ImageDetectionInputDTO(
        data=data,
        content_type=image.content_type or "",
        filename=image.filename,
    )
    client_id = _client_id(request, config)
    result = await run_until_disconnected(
        request,
        service.detect_image(dto, client_id),
        config.disconnect_poll_seconds,
    )
    return DetectionResponse.from_dto(result)


@router.post("/detect", response_model=DetectionResponse, response_model_exclude_none=True)
async def detect_legacy(
    body: LegacyDetectionRequest,
    request: Request,
    service: FromDishka[DetectionService],
    config: FromDishka[Config],
) -> DetectionResponse:
    """Compatibility route taking ``{content, type}``; only text is supported."""
    if body.type != ContentKind.TEXT.value:
        raise ContentValidationError(
            ValidationErrorKind.UNSUPPORTED_TYPE,
            "Only text content is supported on this route",
            {"type": body.type},
        )
    return await _detect_text(body.content, request, service, config)
