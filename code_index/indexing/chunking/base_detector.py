"""
Abstract base class for language-specific boundary detectors.
"""

import logging
import re
from abc import ABC, abstractmethod
from typing import Dict, List, Pattern, Sequence


class BoundaryDetector(ABC):
    """Finds the line offsets where semantically meaningful units start.

    Detection is a pure function of the lines: no state is kept between
    calls and no I/O is performed. Offsets are 0-based, ascending, unique
    and always start with 0.
    """

    def __init__(self):
        self.logger = logging.getLogger(self.__class__.__name__)

    @property
    @abstractmethod
    def patterns(self) -> Dict[str, Pattern]:
        """Ordered rule table; the first matching rule marks a boundary"""
        pass

    def detect_boundaries(self, lines: Sequence[str]) -> List[int]:
        """Return boundary offsets for the given lines"""
        boundaries = [0]

        for i, line in enumerate(lines):
            if i == 0:
                continue
            if self.matches_rule(line):
                boundaries.append(i)

        return boundaries

    def matches_rule(self, line: str) -> bool:
        """Check a line against the rule table in order"""
        for pattern in self.patterns.values():
            if pattern.match(line):
                return True
        return False


class RegexBoundaryDetector(BoundaryDetector):
    """Detector driven entirely by a static rule table"""

    RULES: Dict[str, str] = {}

    def __init__(self):
        super().__init__()
        self._patterns = {name: re.compile(rule) for name, rule in self.RULES.items()}

    @property
    def patterns(self) -> Dict[str, Pattern]:
        return self._patterns
