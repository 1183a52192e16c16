"""
git-subdir: download a single subdirectory of a GitHub repository.
"""

__version__ = "0.2.0"
