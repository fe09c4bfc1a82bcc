"""
Persistent stores for embedding records and index status.
"""

from .base import IndexStore
from .store_factory import create_store

__all__ = ['IndexStore', 'create_store']
