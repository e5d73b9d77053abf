"""
Media Processing Layer.

This package is responsible for fetching single items and validating the
fetched files before they are placed into a target directory.
"""

from .fetcher import Fetcher, YtDlpFetcher
from .integrity import FileIntegrityChecker

__all__ = ["Fetcher", "FileIntegrityChecker", "YtDlpFetcher"]
