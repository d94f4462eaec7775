"""
Core module for the handwriting text recognition system.

This module contains the morphological preprocessor, the glyph segmenter,
the lexical correction engine and the recognizer that ties them together.
"""

__version__ = '0.1.0'
