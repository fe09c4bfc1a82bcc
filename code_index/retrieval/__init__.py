"""
Retrieval components for searching indexed code.
"""

from .code_search import CodeSearch

__all__ = [
    'CodeSearch'
]
