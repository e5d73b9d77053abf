"""
Storage Layer.

This package handles everything that touches the local disk: the TOML
configuration file, target directory snapshots and the playlist manifest.
"""

from .config_manager import ConfigManager, LoadedConfig
from .manifest import write_manifest
from .scanner import DirectorySnapshot, remove_artifact, scan_directory

__all__ = [
    "ConfigManager",
    "DirectorySnapshot",
    "LoadedConfig",
    "remove_artifact",
    "scan_directory",
    "write_manifest",
]
