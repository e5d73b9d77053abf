"""
yt-sync: keep local directories mirrored with YouTube playlists.
"""

__version__ = "0.3.0"
