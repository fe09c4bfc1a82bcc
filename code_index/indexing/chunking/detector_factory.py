"""
Factory for selecting the boundary detector of a language profile.
"""

from typing import Dict, List, Sequence, Type, Union

from .base_detector import BoundaryDetector
from .generic_detector import GenericBoundaryDetector
from .languages import BoundaryProfile, Language, resolve_profile
from .python_detector import PythonBoundaryDetector
from .ts_detector import TsJsBoundaryDetector


class DetectorFactory:
    """Factory for profile-specific boundary detectors"""

    # Registry of available detectors
    _detectors: Dict[BoundaryProfile, Type[BoundaryDetector]] = {
        BoundaryProfile.TS_LIKE: TsJsBoundaryDetector,
        BoundaryProfile.PY_LIKE: PythonBoundaryDetector,
        BoundaryProfile.GENERIC: GenericBoundaryDetector,
    }

    @classmethod
    def register_detector(cls, profile: BoundaryProfile, detector_class: Type[BoundaryDetector]):
        """Register a detector for a profile"""
        cls._detectors[profile] = detector_class

    @classmethod
    def get_detector(cls, language: Union[Language, str, None]) -> BoundaryDetector:
        """Get the detector for a language; unknown tags get the generic profile"""
        profile = resolve_profile(language)
        detector_class = cls._detectors.get(profile, GenericBoundaryDetector)
        return detector_class()

    @classmethod
    def get_supported_profiles(cls) -> List[str]:
        return [profile.value for profile in cls._detectors]


def detect_boundaries(lines: Sequence[str], language: Union[Language, str, None]) -> List[int]:
    """Ordered 0-based line offsets of semantic starts, always including 0"""
    return DetectorFactory.get_detector(language).detect_boundaries(lines)
