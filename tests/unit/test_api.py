"""
Tests for the HTTP API, with a stubbed recognizer injected as a dependency.
"""

import cv2
import numpy as np
import pytest
from fastapi.testclient import TestClient

from app import api
from core.language_model import WeightedLanguageModel
from core.recognizer import TextRecognizer
from tests.conftest import StubClassifier


@pytest.fixture
def classifier():
    return StubClassifier(["t", "n"])


@pytest.fixture
def recognizer(classifier):
    return TextRecognizer(
        classifier,
        language_model=WeightedLanguageModel(
            {"in": 10, "the": 100, "ten": 1, "world": 5, "word": 4}
        )
    )


@pytest.fixture
def client(recognizer):
    api.app.dependency_overrides[api.get_recognizer] = lambda: recognizer
    api.result_cache.clear()
    yield TestClient(api.app)
    api.app.dependency_overrides.clear()
    api.result_cache.clear()


@pytest.fixture
def two_blob_png() -> bytes:
    image = np.full((20, 40), 255, dtype=np.uint8)
    image[2:12, 2:12] = 0
    image[2:12, 25:35] = 0
    ok, encoded = cv2.imencode(".png", image)
    assert ok
    return encoded.tobytes()


class TestInfoEndpoints:
    """Tests for informational endpoints."""

    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.json()["documentation"] == "/api/docs"

    def test_health(self, client):
        response = client.get("/api/health")
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "ok"
        assert body["versions"]["numpy"] == np.__version__

    def test_classifier(self, client):
        body = client.get("/api/classifier").json()
        assert body["name"] == "Stub"
        assert body["available"] is True
        assert body["info"]["input_size"] == 784


class TestRecognizeEndpoint:
    """Tests for image recognition uploads."""

    def test_recognize_upload(self, client, two_blob_png):
        response = client.post(
            "/api/recognize", files={"file": ("blobs.png", two_blob_png, "image/png")}
        )
        assert response.status_code == 200
        body = response.json()

        assert body["success"] is True
        assert body["cached"] is False
        assert body["result"]["raw_text"] == "tn"
        assert body["result"]["corrected_text"] == "in"
        assert body["result"]["classifier"] == "Stub"
        assert len(body["result"]["characters"]) == 2
        assert body["result"]["characters"][0]["region"]["x"] == 2

    def test_repeated_upload_is_cached(self, client, classifier, two_blob_png, monkeypatch):
        monkeypatch.setattr(api.config, "ENABLE_CACHE", True)
        files = {"file": ("blobs.png", two_blob_png, "image/png")}

        first = client.post("/api/recognize", files=files).json()
        second = client.post("/api/recognize", files=files).json()

        assert second["cached"] is True
        assert second["result"] == first["result"]
        assert classifier.calls == 2

    def test_unsupported_extension(self, client):
        response = client.post(
            "/api/recognize", files={"file": ("notes.txt", b"hello", "text/plain")}
        )
        body = response.json()
        assert body["success"] is False
        assert "Unsupported file format" in body["error"]

    def test_corrupt_image(self, client):
        response = client.post(
            "/api/recognize", files={"file": ("broken.png", b"not a png", "image/png")}
        )
        body = response.json()
        assert body["success"] is False
        assert body["error"]

    def test_blank_image(self, client):
        ok, encoded = cv2.imencode(".png", np.full((10, 10), 255, dtype=np.uint8))
        response = client.post(
            "/api/recognize", files={"file": ("blank.png", encoded.tobytes(), "image/png")}
        )
        body = response.json()
        assert body["success"] is True
        assert body["result"]["raw_text"] == ""
        assert body["result"]["characters"] == []


class TestCorrectionEndpoints:
    """Tests for correction and suggestion endpoints."""

    def test_correct(self, client):
        body = client.post("/api/correct", json={"text": "teh wrld"}).json()
        assert body["corrected"] == "the world"
        assert body["errors"] == [
            {"original_word": "teh", "suggested_correction": "the"},
            {"original_word": "wrld", "suggested_correction": "world"},
        ]

    def test_suggestions(self, client):
        body = client.get("/api/suggestions", params={"word": "wrld", "max_suggestions": 3}).json()
        assert body["valid"] is False
        assert body["suggestions"][0] == "world"

    def test_suggestions_require_word(self, client):
        assert client.get("/api/suggestions").status_code == 422


class TestDictionaryEndpoints:
    """Tests for dictionary management."""

    def test_dictionary_info(self, client):
        body = client.get("/api/dictionary").json()
        assert body["language_model"] == "WeightedLanguageModel"
        assert body["size"] == 5
        assert body["length_index"] == {"2": 1, "3": 2, "4": 1, "5": 1}

    def test_add_and_remove_word(self, client):
        added = client.post("/api/dictionary/words", json={"word": "Zebra", "frequency": 7})
        assert added.status_code == 200
        assert added.json() == {"word": "zebra", "success": True, "dictionary_size": 6}

        assert client.get("/api/suggestions", params={"word": "zebra"}).json()["valid"] is True

        removed = client.delete("/api/dictionary/words/zebra")
        assert removed.status_code == 200
        assert removed.json()["dictionary_size"] == 5

        assert client.delete("/api/dictionary/words/zebra").status_code == 404

    def test_frequency_affects_correction(self, client):
        client.post("/api/dictionary/words", json={"word": "ten", "frequency": 1000})
        assert client.post("/api/correct", json={"text": "teh"}).json()["corrected"] == "ten"

    def test_add_empty_word(self, client):
        assert client.post("/api/dictionary/words", json={"word": ""}).status_code == 400

    def test_dictionary_change_clears_cache(self, client, two_blob_png, monkeypatch):
        monkeypatch.setattr(api.config, "ENABLE_CACHE", True)
        client.post("/api/recognize", files={"file": ("blobs.png", two_blob_png, "image/png")})
        assert api.result_cache

        client.post("/api/dictionary/words", json={"word": "tn"})
        assert not api.result_cache
