"""
File Module - Local Storage for Downloaded Fragments
"""

from .storage import DEFAULT_DOWNLOAD_DIR, FragmentStorage, FragmentWriter

__all__ = [
    'DEFAULT_DOWNLOAD_DIR',
    'FragmentStorage',
    'FragmentWriter',
]
