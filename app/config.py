"""
Configuration settings for the Handwriting Text Recognition System
"""

import os
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables from .env file if it exists
load_dotenv()


def _get_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ["true", "1", "yes"]


# Base paths
BASE_DIR = Path(__file__).resolve().parent.parent
STATIC_DIR = Path(os.getenv("STATIC_DIR", str(BASE_DIR / "static")))
UPLOAD_DIR = STATIC_DIR / "uploads"
RESULT_DIR = STATIC_DIR / "results"

# Create directories if they don't exist
STATIC_DIR.mkdir(parents=True, exist_ok=True)
UPLOAD_DIR.mkdir(exist_ok=True)
RESULT_DIR.mkdir(exist_ok=True)

# API settings
API_HOST = os.getenv("API_HOST", "0.0.0.0")
API_PORT = int(os.getenv("API_PORT", "8000"))
API_TITLE = os.getenv("API_TITLE", "Handwriting Text Recognition API")
API_DESCRIPTION = os.getenv(
    "API_DESCRIPTION", "API for recognizing and correcting handwritten text in images"
)
API_VERSION = os.getenv("API_VERSION", "0.1.0")

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Classifier settings
CLASSIFIER = os.getenv("CLASSIFIER", "tesseract")  # Options: tesseract, easyocr, network
TESSERACT_PATH = os.getenv("TESSERACT_PATH", None)  # Use system default if not specified
EASYOCR_GPU = _get_bool("EASYOCR_GPU", "False")
NETWORK_MODEL_PATH = os.getenv("NETWORK_MODEL_PATH", None)  # .npz with W0, b0, W1, b1, ...

# Language model settings
LANGUAGE_MODEL = os.getenv("LANGUAGE_MODEL", "weighted")  # Options: weighted, simple
DICTIONARY_PATH = os.getenv("DICTIONARY_PATH", None)  # Built-in word list if not specified

# Pipeline settings
SEPARATE_CHARACTERS = _get_bool("SEPARATE_CHARACTERS", "False")
MAX_WORKERS = int(os.getenv("MAX_WORKERS", "1"))

# Performance settings
MAX_IMAGE_SIZE = int(os.getenv("MAX_IMAGE_SIZE", "1920"))  # Max width/height in pixels

# Caching settings
ENABLE_CACHE = _get_bool("ENABLE_CACHE", "True")
CACHE_EXPIRATION = int(os.getenv("CACHE_EXPIRATION", "3600"))  # In seconds (1 hour default)
