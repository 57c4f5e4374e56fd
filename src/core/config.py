from pathlib import Path
from typing import Literal

from pydantic import Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict

BASE_DIR = Path(__file__).resolve().parent.parent.parent
ENV_FILE = BASE_DIR / '.env'

Backend = Literal['cloudflare', 'local']

# General-purpose classifiers whose labels never name an AI origin
GENERIC_IMAGE_CLASSIFIERS = frozenset({'@cf/microsoft/resnet-50'})


class RedisConfig(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix='REDIS_',
        env_file=ENV_FILE,
        extra='ignore',  # Ignore extra environment variables
    )
    host: str = 'localhost'
    port: int = 6379
    db: int = 0

    @computed_field
    @property
    def redis_url(self) -> str:
        return f"redis://{self.host}:{self.port}/{self.db}"


class RateLimitConfig(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix='RATE_LIMIT_',
        env_file=ENV_FILE,
        extra='ignore',
    )
    backend: Literal['memory', 'redis'] = 'memory'
    capacity: int = Field(default=10, ge=1)
    window_seconds: float = Field(default=60.0, gt=0)
    key_prefix: str = 'rl:detect:'


class InvocationConfig(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix='INVOCATION_',
        env_file=ENV_FILE,
        extra='ignore',
    )
    text_timeout_seconds: float = Field(default=30.0, gt=0)
    image_timeout_seconds: float = Field(default=15.0, gt=0)
    # One retry at most: two attempts in total
    max_attempts: int = Field(default=2, ge=2, le=2)
    retry_backoff_seconds: float = Field(default=0.25, ge=0)


class CloudflareConfig(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix='CLOUDFLARE_',
        env_file=ENV_FILE,
        extra='ignore',
    )
    account_id: str = ''
    api_token: str = ''
    base_url: str = 'https://api.cloudflare.com/client/v4'
    text_model: str = '@cf/meta/llama-2-7b-chat-int8'
    image_model: str = '@cf/microsoft/resnet-50'
    max_tokens: int = 256

    @computed_field
    @property
    def run_url(self) -> str:
        return f"{self.base_url.rstrip('/')}/accounts/{self.account_id}/ai/run"


class LocalModelConfig(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix='LOCAL_MODEL_',
        env_file=ENV_FILE,
        extra='ignore',
    )
    text_model: str = 'Qwen/Qwen2.5-0.5B-Instruct'
    image_model: str = 'umm-maybe/AI-image-detector'
    max_new_tokens: int = 256


class Config(BaseSettings):
    app_name: str = "AI Content Detector"
    version: str = "0.1.0"
    environment: str = "development"
    debug: bool = True

    text_backend: Backend = 'cloudflare'
    image_backend: Backend = 'cloudflare'

    # Only enable behind a proxy that overwrites X-Forwarded-For
    trust_forwarded_for: bool = False
    disconnect_poll_seconds: float = Field(default=0.5, gt=0)
    cors_allow_origins: list[str] = ["*"]

    # Nested configs
    rate_limit: RateLimitConfig = Field(default_factory=RateLimitConfig)
    invocation: InvocationConfig = Field(default_factory=InvocationConfig)
    cloudflare: CloudflareConfig = Field(default_factory=CloudflareConfig)
    local_models: LocalModelConfig = Field(default_factory=LocalModelConfig)
    redis: RedisConfig = Field(default_factory=RedisConfig)

    @property
    def text_model(self) -> str:
        if self.text_backend == 'local':
            return self.local_models.text_model
        return self.cloudflare.text_model

    @property
    def image_model(self) -> str:
        if self.image_backend == 'local':
            return self.local_models.image_model
        return self.cloudflare.image_model

    @property
    def image_detects_ai_origin(self) -> bool:
        """False when the image model only reports generic object labels."""
        return self.image_model not in GENERIC_IMAGE_CLASSIFIERS

    model_config = SettingsConfigDict(
        env_file=ENV_FILE,
        env_file_encoding='utf-8',
        case_sensitive=False,
        extra='ignore',
    )


config = Config()
