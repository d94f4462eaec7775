"""
Tests for the command-line application.
"""

import json

import cv2
import numpy as np
import pytest

from app import main as cli
from core.exceptions import InvalidArgumentError, ResourceUnavailableError
from core.language_model import WeightedLanguageModel, create_language_model
from core.models import NetworkClassifier
from core.recognizer import TextRecognizer
from tests.conftest import StubClassifier


@pytest.fixture
def blob_image(tmp_path):
    image = np.full((20, 40), 255, dtype=np.uint8)
    image[2:12, 2:12] = 0
    image[2:12, 25:35] = 0
    path = tmp_path / "blobs.png"
    cv2.imwrite(str(path), image)
    return path


@pytest.fixture
def recognizer():
    return TextRecognizer(
        StubClassifier(["t", "n"]),
        language_model=WeightedLanguageModel({"in": 10})
    )


class TestBuildClassifier:
    """Tests for classifier selection."""

    def test_network_requires_model_path(self):
        with pytest.raises(InvalidArgumentError):
            cli.build_classifier("network")

    def test_network_missing_file(self, tmp_path):
        with pytest.raises(ResourceUnavailableError):
            cli.build_classifier("network", str(tmp_path / "missing.npz"))

    def test_network_from_file(self, tmp_path):
        path = tmp_path / "model.npz"
        np.savez(path, W0=np.zeros((784, 62), np.float32), b0=np.zeros(62, np.float32))
        classifier = cli.build_classifier("network", str(path))
        assert isinstance(classifier, NetworkClassifier)
        assert classifier.output_size == 62

    def test_unknown_classifier(self):
        with pytest.raises(InvalidArgumentError):
            cli.build_classifier("abacus")


class TestProcessImages:
    """Tests for batch image processing."""

    def test_outputs_written(self, blob_image, recognizer, tmp_path, capsys):
        output_dir = tmp_path / "results"
        results = cli.process_images(
            [str(blob_image)],
            recognizer,
            output_dir=str(output_dir),
            visualize=True,
            save_text=True,
            save_json=True,
            show_glyphs=True
        )

        result = results[str(blob_image)]
        assert result["raw_text"] == "tn"
        assert result["corrected_text"] == "in"

        text = (output_dir / "blobs_recognized.txt").read_text(encoding="utf-8")
        assert text.startswith("in")

        data = json.loads((output_dir / "blobs_result.json").read_text(encoding="utf-8"))
        assert data["file"] == "blobs.png"
        assert (data["width"], data["height"]) == (40, 20)
        assert len(data["characters"]) == 2

        for suffix in ("preprocessing", "regions", "glyphs"):
            assert (output_dir / f"blobs_{suffix}.png").exists()

        out = capsys.readouterr().out
        assert "Corrected text: in" in out
        assert "█" in out

    def test_missing_file_recorded(self, recognizer, tmp_path):
        missing = str(tmp_path / "missing.png")
        results = cli.process_images([missing], recognizer, output_dir=str(tmp_path))
        assert results[missing] == {"error": "File not found"}

    def test_undecodable_file_recorded(self, recognizer, tmp_path):
        path = tmp_path / "broken.png"
        path.write_bytes(b"garbage")
        results = cli.process_images([str(path)], recognizer, output_dir=str(tmp_path))
        assert "error" in results[str(path)]


class TestMain:
    """Tests for argument handling."""

    def test_correct_only(self, capsys):
        cli.main(["--correct", "teh wrld", "--language-model", "simple"])
        out = capsys.readouterr().out
        assert "Corrected: the world" in out
        assert "Found 2 error(s)" in out

    def test_correct_with_dictionary(self, dictionary_file, capsys):
        cli.main(["--correct", "cst", "--language-model", "simple", "--dictionary", str(dictionary_file)])
        assert "Corrected: cat" in capsys.readouterr().out

    def test_requires_images(self):
        with pytest.raises(SystemExit) as exc:
            cli.main([])
        assert exc.value.code == 1

    def test_processes_images(self, blob_image, recognizer, monkeypatch, tmp_path, capsys):
        monkeypatch.setattr(cli, "build_recognizer", lambda **kwargs: recognizer)
        cli.main([str(blob_image), "--output-dir", str(tmp_path / "out")])
        assert "Raw text:       tn" in capsys.readouterr().out

    def test_failed_image_sets_exit_code(self, recognizer, monkeypatch, tmp_path):
        monkeypatch.setattr(cli, "build_recognizer", lambda **kwargs: recognizer)
        with pytest.raises(SystemExit) as exc:
            cli.main([str(tmp_path / "missing.png"), "--output-dir", str(tmp_path)])
        assert exc.value.code == 2

    def test_correct_only_uses_model(self):
        model = create_language_model("weighted")
        assert cli.correct_only(model, "teh") == "the"
