"""
Utility functions for the handwriting text recognition system.

This package contains utilities for:
- Image loading, conversion and saving
- Visualization of preprocessing, segmentation and recognition results
"""

from .image_utils import *
from .visualization import *

__version__ = '0.1.0'
