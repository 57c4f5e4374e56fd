import pytest
from fastapi.testclient import TestClient

from src.core.config import Config
from src.ioc import AppProvider
from src.main import create_app
from tests.fakes import FakeCapabilityProvider, FakeImageCapability, FakeTextCapability, make_config


@pytest.fixture
def text_capability() -> FakeTextCapability:
    return FakeTextCapability()


@pytest.fixture
def image_capability() -> FakeImageCapability:
    return FakeImageCapability()


@pytest.fixture
def app_config() -> Config:
    return make_config()


@pytest.fixture
def client(app_config, text_capability, image_capability):
    app = create_app(
        app_config,
        providers=[AppProvider(), FakeCapabilityProvider(text_capability, image_capability)],
    )
    with TestClient(app) as test_client:
        yield test_client
