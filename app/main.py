"""
Command-line application entry point for Handwriting Text Recognition
"""

import argparse
import sys
import os
import logging
import time
from pathlib import Path
from typing import List, Optional, Dict, Any
import json

from core.exceptions import InvalidArgumentError, RecognitionError
from core.language_model import LanguageModel, create_language_model, correct_text
from core.models import EasyOCRClassifier, GlyphClassifier, NetworkClassifier, TesseractClassifier
from core.preprocessing import preprocess_image, resize_if_needed, to_pixel_buffer
from core.recognizer import TextRecognizer
from core.segmentation import extract_glyphs
from utils.image_utils import load_image
from utils.visualization import (
    render_ascii,
    visualize_glyphs,
    visualize_preprocessing,
    visualize_regions,
)
from . import config

logger = logging.getLogger(__name__)

CLASSIFIERS = ["tesseract", "easyocr", "network"]
LANGUAGE_MODELS = ["weighted", "simple"]


def setup_logging(level: str = config.LOG_LEVEL) -> None:
    """Configure root logging for the application entry points"""
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


def build_classifier(name: str, model_path: Optional[str] = None) -> GlyphClassifier:
    """
    Create the glyph classifier selected by name.

    Args:
        name: One of tesseract, easyocr or network
        model_path: Weights file for the network classifier

    Returns:
        Glyph classifier instance
    """
    if name == "tesseract":
        return TesseractClassifier(tesseract_path=config.TESSERACT_PATH)
    if name == "easyocr":
        return EasyOCRClassifier(use_gpu=config.EASYOCR_GPU)
    if name == "network":
        if not model_path:
            raise InvalidArgumentError("The network classifier requires a model path")
        return NetworkClassifier.from_npz(model_path)

    raise InvalidArgumentError(f"Unknown classifier '{name}'. Must be one of {CLASSIFIERS}")


def build_recognizer(
    classifier: str = config.CLASSIFIER,
    model_path: Optional[str] = config.NETWORK_MODEL_PATH,
    language_model: str = config.LANGUAGE_MODEL,
    dictionary_path: Optional[str] = config.DICTIONARY_PATH,
    separate_characters: bool = config.SEPARATE_CHARACTERS,
    workers: int = config.MAX_WORKERS
) -> TextRecognizer:
    """Wire a classifier and a language model into a recognizer"""
    return TextRecognizer(
        classifier=build_classifier(classifier, model_path),
        language_model=create_language_model(language_model, dictionary_path),
        separate_characters=separate_characters,
        max_workers=workers
    )


def correct_only(model: LanguageModel, text: str) -> str:
    """Correct a text without recognition and report each misspelling"""
    corrected = correct_text(model, text)
    validation = model.validate_sentence(text)

    print(f"\nOriginal:  {text}")
    print(f"Corrected: {corrected}")
    print(validation)

    return corrected


def _save_visualizations(
    recognizer: TextRecognizer,
    buffer,
    width: int,
    height: int,
    result,
    output_path: Path,
    base_name: str
) -> None:
    steps = preprocess_image(
        buffer, width, height,
        separate_characters=recognizer.separate_characters,
        return_steps=True
    )
    visualize_preprocessing(
        steps, width, height,
        output_path=str(output_path / f"{base_name}_preprocessing.png")
    )
    visualize_regions(
        steps.processed, width, height, result.char_details,
        output_path=str(output_path / f"{base_name}_regions.png")
    )

    glyphs = [glyph for _, glyph in extract_glyphs(steps.processed, width, height)]
    visualize_glyphs(
        glyphs,
        labels=[detail.character for detail in result.char_details],
        output_path=str(output_path / f"{base_name}_glyphs.png")
    )


def process_images(
    image_paths: List[str],
    recognizer: TextRecognizer,
    output_dir: Optional[str] = None,
    visualize: bool = False,
    save_text: bool = False,
    save_json: bool = False,
    show_glyphs: bool = False,
    max_image_size: int = config.MAX_IMAGE_SIZE
) -> Dict[str, Any]:
    """
    Recognize handwritten text in a list of images

    Args:
        image_paths: List of paths to images
        recognizer: Configured text recognizer
        output_dir: Directory to save results
        visualize: Whether to generate visualizations
        save_text: Whether to save recognized text to file
        save_json: Whether to save JSON output
        show_glyphs: Whether to print each normalized glyph as ASCII art
        max_image_size: Images larger than this are downscaled first

    Returns:
        Dictionary with results for each image
    """
    # Set up output directory
    if output_dir:
        output_path = Path(output_dir)
        output_path.mkdir(parents=True, exist_ok=True)
    else:
        output_path = config.RESULT_DIR

    all_results = {}

    for image_path in image_paths:
        if not os.path.exists(image_path):
            logger.error(f"Image not found: {image_path}")
            all_results[image_path] = {"error": "File not found"}
            continue

        base_name = os.path.splitext(os.path.basename(image_path))[0]

        try:
            logger.info(f"Processing image: {image_path}")
            start_time = time.time()

            image = resize_if_needed(load_image(image_path), max_image_size)
            buffer, width, height = to_pixel_buffer(image)
            result = recognizer.recognize(buffer, width, height)

            processing_time = time.time() - start_time
            result_dict = result.to_dict()
            result_dict["processing_time"] = processing_time
            all_results[image_path] = result_dict

            print(f"\n=== Results for {os.path.basename(image_path)} ===")
            print(f"Processing time: {processing_time:.2f} seconds")
            print(f"Characters: {result.character_count}")
            print(f"Raw text:       {result.raw_text or 'No text detected'}")
            print(f"Corrected text: {result.corrected_text or 'No text detected'}")
            print(f"Confidence: {result.average_confidence:.2f}")

            if show_glyphs:
                processed = preprocess_image(
                    buffer, width, height,
                    separate_characters=recognizer.separate_characters
                )
                for (region, glyph), detail in zip(
                    extract_glyphs(processed, width, height), result.char_details
                ):
                    print(f"\n--- '{detail.character}' at {region} ---")
                    print(render_ascii(glyph, 28, 28))

            if visualize and result.char_details:
                _save_visualizations(
                    recognizer, buffer, width, height, result, output_path, base_name
                )

            if save_text:
                output_file = output_path / f"{base_name}_recognized.txt"
                with open(output_file, 'w', encoding='utf-8') as f:
                    f.write(result.corrected_text)
                    f.write(f"\n\nRaw: {result.raw_text}")
                    f.write(f"\nConfidence: {result.average_confidence:.2f}")
                logger.info(f"Saved recognized text to {output_file}")

            if save_json:
                json_file = output_path / f"{base_name}_result.json"
                json_result = {
                    "file": os.path.basename(image_path),
                    "width": width,
                    "height": height,
                    **result_dict
                }
                with open(json_file, 'w', encoding='utf-8') as f:
                    json.dump(json_result, f, ensure_ascii=False, indent=2)
                logger.info(f"Saved JSON results to {json_file}")

        except (RecognitionError, OSError) as e:
            logger.error(f"Error processing {image_path}: {e}")
            all_results[image_path] = {"error": str(e)}

    return all_results


def main(argv: Optional[List[str]] = None):
    """Main entry point for the command-line application"""
    parser = argparse.ArgumentParser(description="Handwriting Text Recognition System")

    parser.add_argument(
        "images",
        nargs="*",
        help="Paths to images containing handwritten text"
    )

    parser.add_argument(
        "--classifier",
        default=config.CLASSIFIER,
        choices=CLASSIFIERS,
        help="Glyph classifier to use"
    )

    parser.add_argument(
        "--model-path",
        default=config.NETWORK_MODEL_PATH,
        help="Weights file (.npz) for the network classifier"
    )

    parser.add_argument(
        "--language-model",
        default=config.LANGUAGE_MODEL,
        choices=LANGUAGE_MODELS,
        help="Language model used for correction"
    )

    parser.add_argument(
        "--dictionary",
        default=config.DICTIONARY_PATH,
        help="Word list file, one word (and optional frequency) per line"
    )

    parser.add_argument(
        "--separate-characters",
        action="store_true",
        default=config.SEPARATE_CHARACTERS,
        help="Erode the image to split touching characters before segmenting"
    )

    parser.add_argument(
        "--workers",
        type=int,
        default=config.MAX_WORKERS,
        help="Number of threads used to classify glyphs"
    )

    parser.add_argument(
        "--output-dir",
        help="Directory to save output files (defaults to ./static/results)"
    )

    parser.add_argument(
        "--visualize",
        action="store_true",
        help="Save preprocessing, region and glyph visualizations"
    )

    parser.add_argument(
        "--save-text",
        action="store_true",
        help="Save recognized text to file"
    )

    parser.add_argument(
        "--save-json",
        action="store_true",
        help="Save results as JSON"
    )

    parser.add_argument(
        "--show-glyphs",
        action="store_true",
        help="Print each normalized glyph as ASCII art"
    )

    parser.add_argument(
        "--correct",
        metavar="TEXT",
        help="Correct the given text with the language model and exit"
    )

    parser.add_argument(
        "--api",
        action="store_true",
        help="Start the API server instead of processing images"
    )

    parser.add_argument(
        "--host",
        default=config.API_HOST,
        help="Host for the API server (default: 0.0.0.0)"
    )

    parser.add_argument(
        "--port",
        type=int,
        default=config.API_PORT,
        help="Port for the API server (default: 8000)"
    )

    args = parser.parse_args(argv)
    setup_logging()

    # Handle API server option
    if args.api:
        import uvicorn

        logger.info(f"Starting API server at {args.host}:{args.port}...")
        uvicorn.run("app.api:app", host=args.host, port=args.port, reload=True)
        return

    if args.correct is not None:
        try:
            model = create_language_model(args.language_model, args.dictionary)
            correct_only(model, args.correct)
        except RecognitionError as e:
            logger.error(f"Correction failed: {e}")
            sys.exit(1)
        return

    # Ensure images are provided if not in API mode
    if not args.images:
        parser.print_help()
        print("\nError: At least one image path is required when not in API or correction mode.")
        sys.exit(1)

    try:
        logger.info("Initializing recognizer...")
        recognizer = build_recognizer(
            classifier=args.classifier,
            model_path=args.model_path,
            language_model=args.language_model,
            dictionary_path=args.dictionary,
            separate_characters=args.separate_characters,
            workers=args.workers
        )
        logger.info("Recognizer initialized successfully")
    except RecognitionError as e:
        logger.error(f"Failed to initialize recognizer: {e}")
        sys.exit(1)

    results = process_images(
        image_paths=args.images,
        recognizer=recognizer,
        output_dir=args.output_dir,
        visualize=args.visualize,
        save_text=args.save_text,
        save_json=args.save_json,
        show_glyphs=args.show_glyphs
    )

    if any("error" in result for result in results.values()):
        sys.exit(2)


if __name__ == "__main__":
    main()
