"""
Remote Listing Layer.

This package handles all communication needed to list remote playlists.
"""

from .playlist import PlaylistClient
from .rate_limiter import AdaptiveRateLimiter

__all__ = ["AdaptiveRateLimiter", "PlaylistClient"]
