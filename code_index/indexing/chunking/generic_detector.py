"""
Fallback boundary detector for text without a dedicated profile.
"""

import re
from typing import Dict, List, Pattern, Sequence

from .base_detector import BoundaryDetector

MIN_INTERVAL_LINES = 10
INTERVAL_DIVISOR = 10


class GenericBoundaryDetector(BoundaryDetector):
    """Paragraph starts (a non-blank line after a blank one) are boundaries.

    Text without any paragraph break is cut at fixed intervals of
    max(10, total_lines // 10) lines so the assembler still gets segments.
    """

    _blank = re.compile(r'^\s*$')

    @property
    def patterns(self) -> Dict[str, Pattern]:
        return {'blank_line': self._blank}

    def detect_boundaries(self, lines: Sequence[str]) -> List[int]:
        boundaries = [0]

        for i in range(len(lines) - 1):
            if self._blank.match(lines[i]) and not self._blank.match(lines[i + 1]):
                boundaries.append(i + 1)

        if len(boundaries) == 1:
            interval = max(MIN_INTERVAL_LINES, len(lines) // INTERVAL_DIVISOR)
            boundaries.extend(range(interval, len(lines), interval))
            self.logger.debug(f"No paragraph breaks found, using {interval}-line intervals")

        return boundaries
