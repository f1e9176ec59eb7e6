"""Tests for the HTTP surface."""

from __future__ import annotations

import pytest
import pytest_mock
from fastapi.testclient import TestClient

from damagesim.api.main import build_generation_service, create_app
from damagesim.cache.response_cache import ResponseCache
from damagesim.config.settings import Settings
from damagesim.imggen.generator_client import ContentPart, NetworkOrServiceError
from damagesim.imggen.types import AngleType, DamageType
from damagesim.imgproc.compression import ImageCompressor, PassthroughCodec
from damagesim.services.generation import DamageGenerationService

IMAGE = "data:image/png;base64,U09VUkNF"


@pytest.fixture
def editor(mocker: pytest_mock.MockerFixture):
    editor = mocker.Mock()
    editor.edit_image = mocker.AsyncMock(return_value=[ContentPart(image_data="T1VU", mime_type="image/png")])
    return editor


@pytest.fixture
def http(editor, clock):
    service = DamageGenerationService(editor, ResponseCache(clock=clock), ImageCompressor(PassthroughCodec()))
    with TestClient(create_app(service)) as client:
        yield client


def test_generate_then_cached(http, editor) -> None:
    body = {"image": IMAGE, "damage_type": "RUST", "instruction": "hinge", "angle": "SIDE"}

    first = http.post("/generate", json=body)
    second = http.post("/generate", json=body)

    assert first.status_code == 200
    assert first.json() == {"image": "data:image/png;base64,T1VU"}
    assert second.json() == first.json()
    assert editor.edit_image.await_count == 1
    assert http.get("/cache/stats").json()["hits"] == 1


def test_damage_type_accepts_label(http, editor) -> None:
    response = http.post("/generate", json={"image": IMAGE, "damage_type": "Rust on the product"})

    assert response.status_code == 200
    assert "Simulate Rust on the product damage" in editor.edit_image.await_args.args[2]


def test_unknown_damage_type_is_rejected(http) -> None:
    response = http.post("/generate", json={"image": IMAGE, "damage_type": "LAVA"})

    assert response.status_code == 422


def test_retry_calls_model_again(http, editor) -> None:
    body = {"image": IMAGE, "damage_type": "SCRATCHES"}
    http.post("/generate", json=body)

    response = http.post("/retry", json=body)

    assert response.status_code == 200
    assert editor.edit_image.await_count == 2


def test_refusal_maps_to_422_with_message(http, editor) -> None:
    editor.edit_image.return_value = [ContentPart(text="no")]

    response = http.post("/generate", json={"image": IMAGE, "damage_type": "RUST"})

    assert response.status_code == 422
    assert "refused" in response.json()["detail"]


def test_empty_response_maps_to_502(http, editor) -> None:
    editor.edit_image.return_value = []

    response = http.post("/generate", json={"image": IMAGE, "damage_type": "RUST"})

    assert response.status_code == 502


def test_network_error_detail_is_passed_through(http, editor) -> None:
    editor.edit_image.side_effect = NetworkOrServiceError("Image service returned 429: slow down", status_code=429)

    response = http.post("/generate", json={"image": IMAGE, "damage_type": "RUST"})

    assert response.status_code == 502
    assert response.json() == {"detail": "Image service returned 429: slow down"}


def test_clear_cache(http, editor) -> None:
    body = {"image": IMAGE, "damage_type": "RUST"}
    http.post("/generate", json=body)

    assert http.delete("/cache").status_code == 204
    assert http.get("/cache/stats").json()["size"] == 0
    http.post("/generate", json=body)
    assert editor.edit_image.await_count == 2


def test_catalog_endpoints(http) -> None:
    damage = http.get("/damage-types").json()
    angles = http.get("/angle-types").json()

    assert len(damage) == len(DamageType)
    assert {"name": "SCRATCHES", "label": "Scratches on the product"} in damage
    assert angles[0] == {"name": AngleType.ORIGINAL.name, "label": AngleType.ORIGINAL.value}


def test_metrics_endpoint(http) -> None:
    http.post("/generate", json={"image": IMAGE, "damage_type": "RUST"})

    response = http.get("/metrics")

    assert response.status_code == 200
    assert "damage_generation_total" in response.text


def test_build_generation_service_honours_settings(editor) -> None:
    settings = Settings(aitunnel_api_key="key", cache_ttl_seconds=60, cache_fingerprint="sha256", image_codec="disabled")

    service = build_generation_service(settings, client=editor)

    assert service.cache.ttl_seconds == 60
    assert service.client is editor
