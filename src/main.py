"""
Main FastAPI application with logging, dependency injection and middleware setup.
"""
from contextlib import asynccontextmanager
from typing import Sequence

from dishka import Provider, make_async_container
from dishka.integrations.fastapi import DishkaRoute, FromDishka
from dishka.integrations import fastapi as fastapi_integration
from fastapi import APIRouter, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.api.exceptions.exception_handlers import register_exception_handlers
from src.api.middlewares.request_context_middleware import RequestContextMiddleware
from src.api.v1.controllers.detection import router as detection_router
from src.api.v1.controllers.ui import router as ui_router
from src.core.config import Config, config
from src.core.logging import get_logger, set_service_context, setup_logging
from src.ioc import AppProvider, CapabilityProvider
from src.services.detection_service import DetectionService

setup_logging(
    level="DEBUG" if config.debug else "INFO",
    json_logs=not config.debug,
)
set_service_context(config.app_name, config.version, config.environment)

logger = get_logger(__name__)


def create_app(
    app_config: Config = config,
    providers: Sequence[Provider] | None = None,
) -> FastAPI:
    """
    Create and configure FastAPI application with Dishka DI container.
    """
    if providers is None:
        providers = (AppProvider(), CapabilityProvider())
    container = make_async_container(*providers, context={Config: app_config})

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(
            "application_startup",
            app_name=app_config.app_name,
            text_backend=app_config.text_backend,
            image_backend=app_config.image_backend,
            rate_limit_backend=app_config.rate_limit.backend,
        )
        if not app_config.image_detects_ai_origin:
            logger.warning(
                "image_model_without_ai_labels",
                image_model=app_config.image_model,
                hint="set IMAGE_BACKEND=local to use an AI-image detector",
            )
        detection_service = await container.get(DetectionService)
        await detection_service.load()
        logger.info("capabilities_loaded")
        yield
        logger.info("application_shutdown", app_name=app_config.app_name)
        await container.close()

    app = FastAPI(
        title=app_config.app_name,
        description="Estimates whether text or images were generated by an AI model",
        version=app_config.version,
        lifespan=lifespan,
    )

    fastapi_integration.setup_dishka(container, app)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_config.cors_allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["Retry-After", "X-Request-ID"],
    )
    app.add_middleware(RequestContextMiddleware)

    register_exception_handlers(app)

    app.include_router(health_router)
    app.include_router(detection_router)
    app.include_router(ui_router)

    return app


health_router = APIRouter(route_class=DishkaRoute, tags=["Health"])


@health_router.get("/health")
async def health_check(app_config: FromDishka[Config]):
    """
    Basic liveness check endpoint.
    """
    return {"status": "healthy", "service": app_config.app_name}


@health_router.get("/health/ready")
async def readiness_check(app_config: FromDishka[Config]):
    """
    Readiness check endpoint.
    """
    return {
        "status": "ready",
        "service": app_config.app_name,
        "backends": {
            "text": app_config.text_backend,
            "image": app_config.image_backend,
            "rate_limit": app_config.rate_limit.backend,
        },
        "models": {
            "text": app_config.text_model,
            "image": app_config.image_model,
        },
        "image_ai_detection": app_config.image_detects_ai_origin,
    }


app = create_app()
