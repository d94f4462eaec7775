"""
Tests for image loading, conversion and saving utilities.
"""

import cv2
import numpy as np
import pytest
import requests
from PIL import Image

from core.exceptions import UnsupportedFormatError
from core.preprocessing import to_pixel_buffer
from utils.image_utils import buffer_to_image, is_url, load_image, save_buffer, save_image


def png_bytes(image: np.ndarray) -> bytes:
    ok, encoded = cv2.imencode(".png", image)
    assert ok
    return encoded.tobytes()


class TestIsUrl:
    """Tests for URL detection."""

    @pytest.mark.parametrize("value,expected", [
        ("https://example.com/a.png", True),
        ("http://example.com", True),
        ("ftp://example.com/a.png", False),
        ("/tmp/a.png", False),
        ("example.com/a.png", False),
    ])
    def test_is_url(self, value, expected):
        assert is_url(value) is expected


class TestLoadImage:
    """Tests for loading images from different sources."""

    def test_array_passthrough(self):
        image = np.zeros((3, 4), dtype=np.uint8)
        assert load_image(image) is image

    def test_one_dimensional_array_rejected(self):
        with pytest.raises(UnsupportedFormatError):
            load_image(np.zeros(5))

    def test_from_bytes(self):
        image = np.full((5, 7), 128, dtype=np.uint8)
        loaded = load_image(png_bytes(image))
        assert loaded.shape == (5, 7)
        assert loaded[0, 0] == 128

    def test_pil_rgb_converted_to_bgr(self):
        pil_image = Image.new("RGB", (2, 2), (255, 0, 0))
        loaded = load_image(pil_image)
        assert loaded.shape == (2, 2, 3)
        assert loaded[0, 0].tolist() == [0, 0, 255]

    def test_palette_image_flattened(self):
        pil_image = Image.new("P", (2, 2))
        assert load_image(pil_image).shape == (2, 2, 3)

    def test_from_path(self, tmp_path):
        path = tmp_path / "img.png"
        cv2.imwrite(str(path), np.zeros((4, 4), dtype=np.uint8))
        assert load_image(path).shape == (4, 4)

    def test_missing_path(self, tmp_path):
        with pytest.raises(UnsupportedFormatError):
            load_image(tmp_path / "missing.png")

    def test_corrupt_bytes(self):
        with pytest.raises(UnsupportedFormatError):
            load_image(b"not an image")

    def test_unsupported_type(self):
        with pytest.raises(UnsupportedFormatError):
            load_image(3.14)

    def test_from_url(self, monkeypatch):
        content = png_bytes(np.zeros((6, 6), dtype=np.uint8))

        class FakeResponse:
            def __init__(self):
                self.content = content

            def raise_for_status(self):
                pass

        monkeypatch.setattr(requests, "get", lambda url, timeout: FakeResponse())
        assert load_image("https://example.com/ink.png").shape == (6, 6)

    def test_url_failure(self, monkeypatch):
        def fail(url, timeout):
            raise requests.ConnectionError("offline")

        monkeypatch.setattr(requests, "get", fail)
        with pytest.raises(UnsupportedFormatError):
            load_image("https://example.com/ink.png")


class TestBufferConversion:
    """Tests for converting buffers back to images."""

    def test_inverse_of_pixel_buffer(self):
        image = np.array([[0, 255], [255, 0]], dtype=np.uint8)
        buffer, width, height = to_pixel_buffer(image)
        np.testing.assert_array_equal(buffer_to_image(buffer, width, height), image)

    def test_values_clamped(self):
        image = buffer_to_image([-1.0, 2.0], 2, 1)
        assert image.tolist() == [[255, 0]]

    def test_save_buffer_round_trip(self, tmp_path):
        buffer = np.array([0.0, 1.0, 1.0, 0.0], dtype=np.float32)
        path = save_buffer(buffer, 2, 2, tmp_path / "out" / "buffer.png")

        loaded, width, height = to_pixel_buffer(load_image(path))
        assert (width, height) == (2, 2)
        np.testing.assert_allclose(loaded, buffer)

    def test_save_color_image(self, tmp_path):
        image = np.zeros((2, 2, 3), dtype=np.uint8)
        image[..., 2] = 255
        path = save_image(image, tmp_path / "red.jpg")

        with Image.open(path) as saved:
            red, green, blue = saved.convert("RGB").getpixel((0, 0))
        assert red > 200 and blue < 50
