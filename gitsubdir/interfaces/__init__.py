"""
User-facing interfaces: the Python API and the command line.
"""

from .api import GitSubdirDownloader

__all__ = [
    "GitSubdirDownloader",
]
