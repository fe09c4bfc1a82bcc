import os
import hashlib
from pathlib import Path
from typing import List, Optional
import logging

import pathspec

from ..config import (
    DEFAULT_INCLUDE_PATTERNS, DEFAULT_EXCLUDED_DIRS, DEFAULT_EXCLUDED_FILE_PATTERNS,
    IGNORE_FILE_NAME, BINARY_SNIFF_BYTES
)


def compute_content_hash(content: str) -> str:
    """Fingerprint of a file's text, stored with each of its embedding records"""
    return hashlib.sha256(content.encode('utf-8')).hexdigest()


class FileProcessor:
    """Handles file discovery, filtering and content extraction"""

    def __init__(self, root_path: str, include_patterns: List[str] = None,
                 excluded_dirs: List[str] = None, excluded_file_patterns: List[str] = None,
                 ignore_file_name: str = IGNORE_FILE_NAME, sniff_bytes: int = BINARY_SNIFF_BYTES):
        self.root_path = Path(root_path).resolve()
        self.include_patterns = list(include_patterns or DEFAULT_INCLUDE_PATTERNS)
        self.excluded_dirs = set(excluded_dirs if excluded_dirs is not None else DEFAULT_EXCLUDED_DIRS)
        self.excluded_file_patterns = list(
            excluded_file_patterns if excluded_file_patterns is not None else DEFAULT_EXCLUDED_FILE_PATTERNS
        )
        self.ignore_file_name = ignore_file_name
        self.sniff_bytes = sniff_bytes
        self.logger = logging.getLogger(__name__)

        self._include_spec = pathspec.PathSpec.from_lines('gitwildmatch', self.include_patterns)
        self._exclude_spec = pathspec.PathSpec.from_lines('gitwildmatch', self.excluded_file_patterns)
        self._ignore_spec = self.load_ignore_spec()

    def load_ignore_spec(self) -> Optional[pathspec.PathSpec]:
        """Parse the root ignore file; a missing file means nothing is ignored"""
        ignore_path = self.root_path / self.ignore_file_name
        if not ignore_path.is_file():
            return None

        try:
            with open(ignore_path, 'r', encoding='utf-8', errors='replace') as f:
                spec = pathspec.PathSpec.from_lines('gitwildmatch', f)
        except OSError as e:
            self.logger.warning(f"Could not read {ignore_path}: {e}")
            return None

        self.logger.debug(f"Loaded {len(spec.patterns)} ignore rules from {ignore_path}")
        return spec

    def discover_files(self) -> List[Path]:
        """Recursively discover indexable files as sorted absolute paths"""
        discovered_files = []
        binary_count = 0

        for root, dirs, files in os.walk(self.root_path):
            rel_root = Path(root).relative_to(self.root_path)

            dirs[:] = sorted(
                d for d in dirs
                if d not in self.excluded_dirs
                and not d.startswith('.')
                and not self.is_ignored((rel_root / d).as_posix() + '/')
            )

            for file in sorted(files):
                if file.startswith('.'):
                    continue

                relative_path = (rel_root / file).as_posix()
                if not self.matches(relative_path):
                    continue

                file_path = Path(root) / file
                if self.is_binary_file(file_path):
                    binary_count += 1
                    self.logger.debug(f"Skipping binary file {relative_path}")
                    continue

                discovered_files.append(file_path)

        discovered_files.sort()
        self.logger.info(
            f"Discovered {len(discovered_files)} files under {self.root_path} "
            f"({binary_count} binary files excluded)"
        )
        return discovered_files

    def matches(self, relative_path: str) -> bool:
        """Whether a root-relative path passes inclusion, exclusion and ignore rules"""
        if not self._include_spec.match_file(relative_path):
            return False
        if self._exclude_spec.match_file(relative_path):
            return False
        return not self.is_ignored(relative_path)

    def is_ignored(self, relative_path: str) -> bool:
        return self._ignore_spec is not None and self._ignore_spec.match_file(relative_path)

    def is_binary_file(self, file_path: Path) -> bool:
        """A null byte in the leading bytes marks a file as binary; unreadable files count as binary"""
        try:
            with open(file_path, 'rb') as f:
                head = f.read(self.sniff_bytes)
        except OSError as e:
            self.logger.warning(f"Could not read {file_path}, treating as binary: {e}")
            return True
        return b'\x00' in head

    def read_file_content(self, file_path: Path) -> Optional[str]:
        """Read file content with encoding handling"""
        encodings = ['utf-8', 'latin-1']

        for encoding in encodings:
            try:
                with open(file_path, 'r', encoding=encoding) as f:
                    return f.read()
            except UnicodeDecodeError:
                continue
            except OSError as e:
                self.logger.error(f"Error reading {file_path}: {e}")
                return None

        self.logger.error(f"Could not decode {file_path} with any encoding")
        return None

    def relative_path(self, file_path: Path) -> str:
        """Root-relative POSIX path used as the stored file identity"""
        return Path(file_path).resolve().relative_to(self.root_path).as_posix()
