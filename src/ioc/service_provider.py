"""
Service provider for dependency injection.

This module provides the detection pipeline and its collaborators.
"""

from typing import AsyncIterator

from dishka import Provider, Scope, from_context, provide
from redis.asyncio import Redis

from src.core.config import Config
from src.dtos.detection_dto import ContentKind
from src.services.capabilities import ImageCapability, TextCapability
from src.services.content_validator import ContentValidator
from src.services.detection_service import DetectionService
from src.services.model_invoker import ModelInvoker, RetryPolicy
from src.services.rate_limiter import InMemoryRateLimiter, RateLimiter, RedisRateLimiter
from src.services.result_normalizer import ResultNormalizer


class ServiceProvider(Provider):
    """
    Provider for service dependencies.

    All services are provided at APP scope (singleton).
    """

    config = from_context(provides=Config, scope=Scope.APP)

    @provide(scope=Scope.APP)
    def provide_content_validator(self) -> ContentValidator:
        return ContentValidator()

    @provide(scope=Scope.APP)
    async def provide_rate_limiter(self, config: Config) -> AsyncIterator[RateLimiter]:
        settings = config.rate_limit
        if settings.backend == "redis":
            redis = Redis.from_url(config.redis.redis_url)
            try:
                yield RedisRateLimiter(
                    redis,
                    capacity=settings.capacity,
                    window_seconds=settings.window_seconds,
                    key_prefix=settings.key_prefix,
                )
            finally:
                await redis.aclose()
        else:
            yield InMemoryRateLimiter(
                capacity=settings.capacity,
                window_seconds=settings.window_seconds,
            )

    @provide(scope=Scope.APP)
    def provide_result_normalizer(self) -> ResultNormalizer:
        return ResultNormalizer()

    @provide(scope=Scope.APP)
    def provide_model_invoker(
        self,
        config: Config,
        text_capability: TextCapability,
        image_capability: ImageCapability,
    ) -> ModelInvoker:
        settings = config.invocation
        return ModelInvoker(
            text_capability,
            image_capability,
            timeouts={
                ContentKind.TEXT: settings.text_timeout_seconds,
                ContentKind.IMAGE: settings.image_timeout_seconds,
            },
            policy=RetryPolicy(
                max_attempts=settings.max_attempts,
                backoff_seconds=settings.retry_backoff_seconds,
            ),
        )

    @provide(scope=Scope.APP)
    def provide_detection_service(
        self,
        validator: ContentValidator,
        rate_limiter: RateLimiter,
        invoker: ModelInvoker,
        normalizer: ResultNormalizer,
    ) -> DetectionService:
        return DetectionService(validator, rate_limiter, invoker, normalizer)
