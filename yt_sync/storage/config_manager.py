"""
Manages loading and validation of the TOML configuration file.
"""

import logging
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from yt_sync.exceptions import ConfigurationError
from yt_sync.models.config import SyncOptions, SyncTarget

log = logging.getLogger(__name__)

DEFAULT_CONFIG = """\
# yt-sync configuration
#
# Each [[items]] table mirrors one playlist into one directory.
#   id            playlist id (or a full playlist URL)
#   location      directory the playlist is mirrored into
#   format        "audio" (Opus) or "video" (MKV)
#   save_playlist write <location>.m3u next to the directory

[options]
max_attempts = 3
max_targets = 2
max_downloads = 3
prune = true
redownload_on_format_mismatch = true

[[items]]
id = "aaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaa"
location = "/home/user/Downloads/file_output"
format = "audio"
save_playlist = true

[[items]]
id = "bbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbb"
location = "/home/user/Downloads/file_output2"
format = "video"
save_playlist = false
"""


@dataclass
class LoadedConfig:
    """Targets that validated, run options, and per-target validation errors."""

    targets: list[SyncTarget] = field(default_factory=list)
    options: SyncOptions = field(default_factory=SyncOptions)
    errors: dict[str, str] = field(default_factory=dict)

    @property
    def total(self) -> int:
        return len(self.targets) + len(self.errors)


class ConfigManager:
    """Handles all operations related to the application's TOML config file."""

    def __init__(self, config_file_path: Path):
        self.config_file_path = config_file_path

    def read_document(self) -> dict[str, Any]:
        """
        Parses the configuration file into a plain dictionary.

        Raises:
            ConfigurationError: If the file is missing or is not valid TOML.
        """
        if not self.config_file_path.is_file():
            raise ConfigurationError(
                f"Configuration file not found at '{self.config_file_path}'. "
                "Please run 'yt-sync init' first."
            )
        try:
            with open(self.config_file_path, "rb") as f:
                return tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ConfigurationError(f"Error parsing configuration file: {e}") from e
        except OSError as e:
            raise ConfigurationError(f"Could not read configuration file: {e}") from e

    def load_config(self, cli_options: dict[str, Any] | None = None) -> LoadedConfig:
        """
        Loads targets and options, applying CLI overrides to the options.

        Each ``[[items]]`` table is validated on its own: an invalid one is
        reported in ``LoadedConfig.errors`` and the others are still loaded.

        Args:
            cli_options: Option overrides given on the command line; None values
                are ignored.

        Raises:
            ConfigurationError: If the file cannot be read, the options are
            invalid, or it defines no targets at all.
        """
        document = self.read_document()
        log.debug(f"Loaded config at '{self.config_file_path}'")

        options = self.build_options(document.get("options") or {}, cli_options)

        raw_items = document.get("items") or []
        if not isinstance(raw_items, list) or not raw_items:
            raise ConfigurationError(
                f"No [[items]] defined in '{self.config_file_path}'. "
                "Add at least one playlist to sync."
            )

        loaded = LoadedConfig(options=options)
        for index, raw in enumerate(raw_items):
            key = self._item_key(raw, index, loaded.errors)
            if not isinstance(raw, dict):
                loaded.errors[key] = "Item must be a table."
                continue
            try:
                loaded.targets.append(SyncTarget(**raw))
            except ValidationError as e:
                loaded.errors[key] = _summarize_validation_error(e)
                log.debug(f"Invalid target {key}: {e}")

        return loaded

    @staticmethod
    def build_options(
        file_options: dict[str, Any], cli_options: dict[str, Any] | None = None
    ) -> SyncOptions:
        """Merges the [options] table with CLI overrides into a SyncOptions."""
        known = SyncOptions.get_option_keys()
        merged = {}
        for key, value in file_options.items():
            if key in known:
                merged[key] = value
            else:
                log.warning(f"[yellow]Ignoring unknown option '{key}' in config.[/yellow]")

        if cli_options:
            merged.update({k: v for k, v in cli_options.items() if v is not None})

        try:
            return SyncOptions(**merged)
        except ValidationError as e:
            raise ConfigurationError(f"Configuration validation failed:\n{e}") from e

    def save_default_config(self, force: bool = False) -> bool:
        """
        Writes the default configuration file.

        Returns:
            True if the file was written, False if it already existed and
            *force* was not given.

        Raises:
            ConfigurationError: If the file cannot be written.
        """
        if self.config_file_path.exists() and not force:
            return False
        try:
            self.config_file_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.config_file_path, "w", encoding="utf-8") as f:
                f.write(DEFAULT_CONFIG)
        except OSError as e:
            raise ConfigurationError(f"Failed to save configuration file: {e}") from e
        log.info(f"Created default config at '{self.config_file_path}'")
        return True

    @staticmethod
    def _item_key(raw: Any, index: int, taken: dict[str, str]) -> str:
        key = f"items[{index}]"
        if isinstance(raw, dict) and isinstance(raw.get("id"), str) and raw["id"].strip():
            candidate = raw["id"].strip()
            if candidate not in taken:
                key = candidate
        return key


def _summarize_validation_error(error: ValidationError) -> str:
    """One line per invalid field, e.g. "format: Input should be 'audio' or 'video'"."""
    parts = []
    for err in error.errors():
        field_name = ".".join(str(p) for p in err.get("loc", ())) or "item"
        parts.append(f"{field_name}: {err.get('msg', 'invalid value')}")
    return "; ".join(parts)
