import pytest

from src.core.exceptions import InvocationError, InvocationErrorKind
from src.services.content_validator import MAX_IMAGE_BYTES
from tests.fakes import FakeTextCapability, make_config

SAMPLE_TEXT = "This is a short test message for analysis."
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


def test_detect_text_returns_detection_result(client, text_capability):
    response = client.post("/api/detect-text", json={"text": SAMPLE_TEXT})

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["isAiGenerated"] is True
    assert body["confidence"] == 0.82
    assert body["confidenceBand"] == "high"
    assert body["type"] == "text"
    assert body["reasoning"] == "Uniform sentence rhythm and generic phrasing."
    assert body["model"] == "fake-text-model"
    assert "classifications" not in body
    assert response.headers["X-Request-ID"]
    assert text_capability.calls == 1


def test_request_id_is_echoed(client):
    response = client.post(
        "/api/detect-text",
        json={"text": SAMPLE_TEXT},
        headers={"X-Request-ID": "req-42"},
    )

    assert response.headers["X-Request-ID"] == "req-42"


def test_short_text_is_rejected_without_calling_model(client, text_capability):
    response = client.post("/api/detect-text", json={"text": "hello"})

    assert response.status_code == 422
    assert response.json() == {
        "status": "error",
        "code": 422,
        "kind": "TooShort",
        "error": "Text must be at least 10 characters",
    }
    assert text_capability.calls == 0


def test_missing_text_field_is_invalid_request(client):
    response = client.post("/api/detect-text", json={"content": SAMPLE_TEXT})

    assert response.status_code == 422
    assert response.json()["kind"] == "InvalidRequest"


def test_detect_image_returns_sorted_classifications(client, image_capability):
    response = client.post(
        "/api/detect-image",
        files={"image": ("photo.png", PNG_BYTES, "image/png")},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["type"] == "image"
    assert body["confidence"] == 0.81
    assert body["isAiGenerated"] is True
    assert body["classifications"] == [
        {"label": "synthetic", "score": 0.81},
        {"label": "cat", "score": 0.2},
        {"label": "dog", "score": 0.1},
    ]
    assert "reasoning" not in body
    assert image_capability.images == [PNG_BYTES]


@pytest.mark.parametrize(
    ("data", "content_type", "status_code", "kind"),
    [
        (b"%PDF-1.7", "application/pdf", 415, "UnsupportedType"),
        (b"\x00" * (MAX_IMAGE_BYTES + 1), "image/png", 413, "TooLarge"),
        (b"", "image/png", 422, "Empty"),
    ],
)
def test_invalid_image_is_rejected(client, image_capability, data, content_type, status_code, kind):
    response = client.post("/api/detect-image", files={"image": ("upload", data, content_type)})

    assert response.status_code == status_code
    assert response.json()["kind"] == kind
    assert image_capability.calls == 0


def test_eleventh_request_is_rate_limited(client, text_capability):
    for _ in range(10):
        assert client.post("/api/detect-text", json={"text": SAMPLE_TEXT}).status_code == 200

    response = client.post("/api/detect-text", json={"text": SAMPLE_TEXT})

    assert response.status_code == 429
    body = response.json()
    assert body["kind"] == "RateLimited"
    assert body["retryAfterSeconds"] > 0
    assert response.headers["Retry-After"] == str(body["retryAfterSeconds"])
    assert text_capability.calls == 10


@pytest.mark.parametrize(
    ("kind", "status_code"),
    [
        (InvocationErrorKind.CAPABILITY_UNAVAILABLE, 503),
        (InvocationErrorKind.MALFORMED_RESPONSE, 502),
    ],
)
def test_invocation_failures_map_to_server_errors(client, text_capability, kind, status_code):
    text_capability.errors = [
        InvocationError(kind, {"model": "internal-model-id"}),
        InvocationError(kind, {"model": "internal-model-id"}),
    ]

    response = client.post("/api/detect-text", json={"text": SAMPLE_TEXT})

    assert response.status_code == status_code
    body = response.json()
    assert body["kind"] == kind.value
    assert "internal-model-id" not in response.text


@pytest.mark.parametrize("app_config", [make_config(text_timeout_seconds=0.05)])
@pytest.mark.parametrize("text_capability", [FakeTextCapability(delay=5.0)])
def test_capability_timeout_is_gateway_timeout(client, text_capability):
    response = client.post("/api/detect-text", json={"text": SAMPLE_TEXT})

    assert response.status_code == 504
    assert response.json()["kind"] == "Timeout"
    assert text_capability.calls == 2


def test_legacy_detect_route_accepts_text(client):
    response = client.post("/api/detect", json={"content": SAMPLE_TEXT, "type": "text"})

    assert response.status_code == 200
    assert response.json()["type"] == "text"


def test_legacy_detect_route_rejects_other_types(client, text_capability):
    response = client.post("/api/detect", json={"content": SAMPLE_TEXT, "type": "video"})

    assert response.status_code == 415
    assert response.json()["kind"] == "UnsupportedType"
    assert text_capability.calls == 0


def test_capabilities_loaded_on_startup(client, text_capability, image_capability):
    assert text_capability.loaded and image_capability.loaded


def test_health_endpoints(client):
    assert client.get("/health").json()["status"] == "healthy"

    ready = client.get("/health/ready").json()
    assert ready["status"] == "ready"
    assert ready["backends"]["rate_limit"] == "memory"
    assert ready["models"]["image"] == "@cf/microsoft/resnet-50"
    assert ready["image_ai_detection"] is False


def test_index_page_is_served(client):
    response = client.get("/")

    assert response.status_code == 200
    assert "text/html" in response.headers["content-type"]
    assert "/api/detect-text" in response.text


def test_unexpected_error_is_sanitized_and_keeps_request_id(client, text_capability):
    text_capability.errors = [RuntimeError("driver state corrupted")]

    response = client.post(
        "/api/detect-text",
        json={"text": SAMPLE_TEXT},
        headers={"X-Request-ID": "req-500"},
    )

    assert response.status_code == 500
    assert response.json()["kind"] == "InternalError"
    assert "driver state" not in response.text
    assert response.headers["X-Request-ID"] == "req-500"
