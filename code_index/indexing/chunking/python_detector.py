"""
Python boundary detector.
"""

from typing import Dict

from .base_detector import RegexBoundaryDetector


class PythonBoundaryDetector(RegexBoundaryDetector):
    """Top-level def, async def and class statements start a unit.

    Methods are kept with their class: only column-0 statements count.
    """

    RULES: Dict[str, str] = {
        'function_def': r'^def\s+\w+',
        'class_def': r'^class\s+\w+',
        'async_function_def': r'^async\s+def\s+\w+',
    }
