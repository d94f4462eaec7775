"""
FastAPI implementation for Handwriting Text Recognition API
"""

import hashlib
import os
import logging
import time
from typing import Optional, List, Dict, Any

import cv2
import numpy as np
from fastapi import FastAPI, File, UploadFile, HTTPException, Query, Depends
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from core.exceptions import RecognitionError
from core.language_model import WeightedLanguageModel, correct_text
from core.preprocessing import resize_if_needed, to_pixel_buffer
from core.recognizer import TextRecognizer
from utils.image_utils import load_image
from . import config
from .main import build_recognizer, setup_logging

setup_logging()
logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = ['.jpg', '.jpeg', '.png', '.bmp', '.tif', '.tiff']


# Define response models
class RegionInfo(BaseModel):
    x: int
    y: int
    width: int
    height: int

class CharacterInfo(BaseModel):
    character: str
    confidence: float
    region: RegionInfo

class RecognitionData(BaseModel):
    raw_text: str
    corrected_text: str
    average_confidence: float
    characters: List[CharacterInfo]
    classifier: str
    processing_time: Optional[float] = None

class RecognitionResponse(BaseModel):
    success: bool
    result: Optional[RecognitionData] = None
    error: Optional[str] = None
    cached: bool = False

class HealthResponse(BaseModel):
    status: str
    versions: Dict[str, str]

class ClassifierResponse(BaseModel):
    name: str
    available: bool
    version: Optional[str] = None
    info: Dict[str, Any]

class CorrectionRequest(BaseModel):
    text: str

class WordError(BaseModel):
    original_word: str
    suggested_correction: str

class CorrectionResponse(BaseModel):
    original: str
    corrected: str
    errors: List[WordError]

class SuggestionsResponse(BaseModel):
    word: str
    valid: bool
    suggestions: List[str]

class WordRequest(BaseModel):
    word: str
    frequency: Optional[int] = None

class WordResponse(BaseModel):
    word: str
    success: bool
    dictionary_size: int

class DictionaryResponse(BaseModel):
    language_model: str
    size: int
    length_index: Dict[int, int]


# Initialize FastAPI app
app = FastAPI(
    title=config.API_TITLE,
    description=config.API_DESCRIPTION,
    version=config.API_VERSION,
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json",
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Create instance of recognizer to reuse across requests
recognizer = None

# Simple in-memory cache for results
result_cache: Dict[str, Dict[str, Any]] = {}


def get_cache_key(file_content: bytes, separate_characters: bool) -> str:
    """Generate a cache key based on file content and parameters"""
    content_hash = hashlib.md5(file_content).hexdigest()
    return f"{content_hash}_{int(separate_characters)}"


def get_recognizer() -> TextRecognizer:
    """Get or initialize the recognizer"""
    global recognizer
    if recognizer is None:
        try:
            logger.info("Initializing recognizer...")
            recognizer = build_recognizer()
            logger.info("Recognizer initialized successfully")
        except RecognitionError as e:
            logger.error(f"Failed to initialize recognizer: {e}")
            raise HTTPException(status_code=500, detail=f"Failed to initialize recognizer: {e}")
    return recognizer


def _require_dictionary(recognizer_instance: TextRecognizer):
    dictionary = getattr(recognizer_instance.language_model, 'dictionary', None)
    if dictionary is None:
        raise HTTPException(status_code=501, detail="Language model does not expose its dictionary")
    return dictionary


@app.get("/", response_model=Dict[str, Any])
async def root():
    """Root endpoint that returns API information"""
    return {
        "name": config.API_TITLE,
        "version": config.API_VERSION,
        "description": config.API_DESCRIPTION,
        "documentation": "/api/docs"
    }


@app.get("/api/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint"""
    return HealthResponse(
        status="ok",
        versions={
            "api": config.API_VERSION,
            "numpy": np.__version__,
            "opencv": cv2.__version__,
        }
    )


@app.get("/api/classifier", response_model=ClassifierResponse)
async def get_classifier_info(
    recognizer_instance: TextRecognizer = Depends(get_recognizer)
):
    """Get information about the configured glyph classifier"""
    classifier = recognizer_instance.classifier
    return ClassifierResponse(
        name=classifier.get_name(),
        available=classifier.is_available(),
        version=classifier.get_version(),
        info=classifier.get_model_info()
    )


@app.post("/api/recognize", response_model=RecognitionResponse)
async def recognize_text(
    file: UploadFile = File(...),
    recognizer_instance: TextRecognizer = Depends(get_recognizer)
):
    """
    Recognize handwritten text from an uploaded image

    - **file**: Image file containing handwritten text
    """
    file_extension = os.path.splitext(file.filename or "")[1].lower()
    if file_extension not in SUPPORTED_EXTENSIONS:
        return RecognitionResponse(
            success=False,
            error="Unsupported file format. Please upload JPG, PNG, BMP, or TIFF images."
        )

    file_content = await file.read()

    # Check for cached result if caching is enabled
    cache_key = get_cache_key(file_content, recognizer_instance.separate_characters)
    if config.ENABLE_CACHE:
        cached_result = result_cache.get(cache_key)
        if cached_result and (time.time() - cached_result['timestamp']) < config.CACHE_EXPIRATION:
            logger.info("Using cached result")
            return RecognitionResponse(success=True, result=cached_result['data'], cached=True)

    try:
        logger.info(f"Processing upload {file.filename} ({len(file_content)} bytes)")
        start_time = time.time()

        image = resize_if_needed(load_image(file_content), config.MAX_IMAGE_SIZE)
        buffer, width, height = to_pixel_buffer(image)
        result = recognizer_instance.recognize(buffer, width, height)
    except RecognitionError as e:
        logger.error(f"Error processing request: {e}")
        return RecognitionResponse(success=False, error=str(e))

    data = RecognitionData(
        **result.to_dict(),
        classifier=recognizer_instance.classifier.get_name(),
        processing_time=time.time() - start_time
    )

    # Cache the result if caching is enabled
    if config.ENABLE_CACHE:
        result_cache[cache_key] = {'timestamp': time.time(), 'data': data}

    return RecognitionResponse(success=True, result=data)


@app.post("/api/correct", response_model=CorrectionResponse)
async def correct(
    request: CorrectionRequest,
    recognizer_instance: TextRecognizer = Depends(get_recognizer)
):
    """Correct a text with the language model, listing each misspelled word"""
    model = recognizer_instance.language_model
    validation = model.validate_sentence(request.text)
    return CorrectionResponse(
        original=request.text,
        corrected=correct_text(model, request.text),
        errors=[
            WordError(
                original_word=error.original_word,
                suggested_correction=error.suggested_correction
            )
            for error in validation.errors
        ]
    )


@app.get("/api/suggestions", response_model=SuggestionsResponse)
async def get_suggestions(
    word: str = Query(..., min_length=1, description="Word to look up"),
    max_suggestions: int = Query(5, ge=1, le=50, description="Maximum number of suggestions"),
    recognizer_instance: TextRecognizer = Depends(get_recognizer)
):
    """Get ranked correction candidates for a word"""
    model = recognizer_instance.language_model
    return SuggestionsResponse(
        word=word,
        valid=model.is_valid_word(word),
        suggestions=model.get_suggestions(word, max_suggestions)
    )


@app.post("/api/dictionary/words", response_model=WordResponse)
async def add_word(
    request: WordRequest,
    recognizer_instance: TextRecognizer = Depends(get_recognizer)
):
    """Add a word to the dictionary"""
    model = recognizer_instance.language_model
    try:
        if request.frequency is not None and isinstance(model, WeightedLanguageModel):
            model.add_word_with_frequency(request.word, request.frequency)
        else:
            model.add_word(request.word)
    except RecognitionError as e:
        raise HTTPException(status_code=400, detail=str(e))

    # Corrections depend on the dictionary
    result_cache.clear()
    logger.info(f"Added '{request.word}' to dictionary")

    return WordResponse(
        word=request.word.lower(),
        success=True,
        dictionary_size=model.get_dictionary_size()
    )


@app.delete("/api/dictionary/words/{word}", response_model=WordResponse)
async def remove_word(
    word: str,
    recognizer_instance: TextRecognizer = Depends(get_recognizer)
):
    """Remove a word from the dictionary"""
    model = recognizer_instance.language_model
    if not model.remove_word(word):
        raise HTTPException(status_code=404, detail=f"Word not found: {word}")

    result_cache.clear()
    logger.info(f"Removed '{word}' from dictionary")

    return WordResponse(
        word=word.lower(),
        success=True,
        dictionary_size=model.get_dictionary_size()
    )


@app.get("/api/dictionary", response_model=DictionaryResponse)
async def get_dictionary_info(
    recognizer_instance: TextRecognizer = Depends(get_recognizer)
):
    """Get dictionary size and its distribution of word lengths"""
    dictionary = _require_dictionary(recognizer_instance)
    return DictionaryResponse(
        language_model=type(recognizer_instance.language_model).__name__,
        size=len(dictionary),
        length_index=dictionary.length_index_sizes()
    )
