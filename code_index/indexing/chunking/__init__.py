"""
Chunking module for boundary-aware source code segmentation.
"""

from .languages import Language, BoundaryProfile, detect_language
from .base_detector import BoundaryDetector
from .detector_factory import DetectorFactory, detect_boundaries
from .chunker import chunk_source_code, chunk_file, estimate_tokens

__all__ = [
    'Language',
    'BoundaryProfile',
    'detect_language',
    'BoundaryDetector',
    'DetectorFactory',
    'detect_boundaries',
    'chunk_source_code',
    'chunk_file',
    'estimate_tokens'
]
