"""
Language tags and their boundary-detection profiles.
"""

import os
from enum import Enum
from typing import Dict, Optional, Union


class BoundaryProfile(Enum):
    """Families of line rules used to find semantic starts"""
    TS_LIKE = "ts_like"
    PY_LIKE = "py_like"
    GENERIC = "generic"


class Language(Enum):
    """Closed set of languages with boundary-aware chunking"""
    TYPESCRIPT = "typescript"
    JAVASCRIPT = "javascript"
    PYTHON = "python"

    @property
    def profile(self) -> BoundaryProfile:
        return _LANGUAGE_PROFILES[self]


_LANGUAGE_PROFILES: Dict[Language, BoundaryProfile] = {
    Language.TYPESCRIPT: BoundaryProfile.TS_LIKE,
    Language.JAVASCRIPT: BoundaryProfile.TS_LIKE,
    Language.PYTHON: BoundaryProfile.PY_LIKE,
}

EXTENSION_LANGUAGES: Dict[str, Language] = {
    'ts': Language.TYPESCRIPT,
    'tsx': Language.TYPESCRIPT,
    'js': Language.JAVASCRIPT,
    'jsx': Language.JAVASCRIPT,
    'py': Language.PYTHON,
}


def detect_language(filename: str) -> Optional[Language]:
    """Map a file name to its language by extension, None when unsupported"""
    _, ext = os.path.splitext(filename)
    return EXTENSION_LANGUAGES.get(ext.lstrip('.').lower())


def resolve_profile(language: Union[Language, str, None]) -> BoundaryProfile:
    """Profile for a language tag; anything outside the closed set is generic"""
    if isinstance(language, Language):
        return language.profile
    try:
        return Language(str(language).lower()).profile
    except ValueError:
        return BoundaryProfile.GENERIC


def language_tag(language: Union[Language, str, None]) -> str:
    """String tag recorded on chunks"""
    if isinstance(language, Language):
        return language.value
    return str(language).lower() if language else BoundaryProfile.GENERIC.value
