"""
Capability provider for dependency injection.

This module provides the inference backends selected by configuration.
"""

from typing import AsyncIterator

import httpx
from dishka import Provider, Scope, provide

from src.core.config import Config
from src.services.capabilities import (
    CloudflareImageCapability,
    CloudflareTextCapability,
    CloudflareWorkersAIClient,
    ImageCapability,
    TextCapability,
)


class CapabilityProvider(Provider):
    """
    Provider for inference capabilities.

    The local backends import torch and transformers, so they are only
    imported when configured.
    """

    @provide(scope=Scope.APP)
    async def provide_http_client(self, config: Config) -> AsyncIterator[httpx.AsyncClient]:
        # The invoker enforces the hard per-call bound; this only guards the socket
        timeout = max(
            config.invocation.text_timeout_seconds,
            config.invocation.image_timeout_seconds,
        )
        async with httpx.AsyncClient(timeout=httpx.Timeout(timeout)) as client:
            yield client

    @provide(scope=Scope.APP)
    def provide_cloudflare_client(
        self,
        config: Config,
        http: httpx.AsyncClient,
    ) -> CloudflareWorkersAIClient:
        return CloudflareWorkersAIClient(
            http,
            run_url=config.cloudflare.run_url,
            api_token=config.cloudflare.api_token,
        )

    @provide(scope=Scope.APP)
    def provide_text_capability(
        self,
        config: Config,
        client: CloudflareWorkersAIClient,
    ) -> TextCapability:
        if config.text_backend == "local":
            from src.services.local_models import LocalTextCapability

            return LocalTextCapability(
                config.local_models.text_model,
                max_new_tokens=config.local_models.max_new_tokens,
            )
        return CloudflareTextCapability(
            client,
            config.cloudflare.text_model,
            max_tokens=config.cloudflare.max_tokens,
        )

    @provide(scope=Scope.APP)
    def provide_image_capability(
        self,
        config: Config,
        client: CloudflareWorkersAIClient,
    ) -> ImageCapability:
        if config.image_backend == "local":
            from src.services.local_models import LocalImageCapability

            return LocalImageCapability(config.local_models.image_model)
        return CloudflareImageCapability(client, config.cloudflare.image_model)
