"""
JSON Schema validation for configuration files.
Allows external tools to validate configs and provides better error messages.
"""

import json
from pathlib import Path
from typing import Any

from jsonschema import Draft7Validator

# JSON Schema for the yt-sync TOML document, after parsing
CONFIG_SCHEMA = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "title": "yt-sync Configuration",
    "description": "Playlist-to-directory mappings and run options for yt-sync",
    "type": "object",
    "properties": {
        "options": {
            "type": "object",
            "properties": {
                "max_attempts": {
                    "type": "integer",
                    "minimum": 1,
                    "maximum": 10,
                    "description": "Attempts per item before it is reported failed",
                },
                "backoff_base": {
                    "type": "number",
                    "minimum": 0,
                    "description": "Seconds to wait before the first retry, doubled per attempt",
                },
                "max_targets": {
                    "type": "integer",
                    "minimum": 1,
                    "maximum": 16,
                    "description": "Playlists synced concurrently",
                },
                "max_downloads": {
                    "type": "integer",
                    "minimum": 1,
                    "maximum": 16,
                    "description": "Concurrent downloads per playlist",
                },
                "prune": {
                    "type": "boolean",
                    "description": "Delete local files no longer in the playlist",
                },
                "redownload_on_format_mismatch": {
                    "type": "boolean",
                    "description": "Replace files that exist in the other format",
                },
                "case_insensitive_ids": {
                    "type": "boolean",
                    "description": "Match ids without regard to case",
                },
            },
            "additionalProperties": False,
        },
        "items": {
            "type": "array",
            "minItems": 1,
            "items": {
                "type": "object",
                "properties": {
                    "id": {
                        "type": "string",
                        "minLength": 1,
                        "description": "Playlist id or playlist URL",
                    },
                    "location": {
                        "type": "string",
                        "minLength": 1,
                        "description": "Directory the playlist is mirrored into",
                    },
                    "format": {
                        "type": "string",
                        "enum": ["audio", "video"],
                        "description": "Artifact format (audio=Opus, video=MKV)",
                    },
                    "save_playlist": {
                        "type": ["boolean", "string"],
                        "enum": [True, False, "true", "false"],
                        "description": "Write an .m3u manifest next to the directory",
                    },
                },
                "required": ["id", "location"],
                "additionalProperties": False,
            },
        },
    },
    "required": ["items"],
    "additionalProperties": False,
}


def validate_config_schema(config_dict: dict[str, Any]) -> tuple[bool, list[str]]:
    """
    Validate configuration against JSON schema.

    Args:
        config_dict: Parsed configuration document

    Returns:
        Tuple of (is_valid, error_messages)
    """
    validator = Draft7Validator(CONFIG_SCHEMA)
    errors = sorted(
        validator.iter_errors(config_dict), key=lambda e: [str(p) for p in e.path]
    )

    if not errors:
        return True, []

    error_messages = []
    for error in errors:
        path = ".".join(str(p) for p in error.path) if error.path else "root"
        error_messages.append(f"{path}: {error.message}")

    return False, error_messages


def export_schema(output_path: Path) -> None:
    """
    Export JSON schema to file for external validation tools.

    Args:
        output_path: Path to save schema file
    """
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w", encoding="utf-8") as f:
        json.dump(CONFIG_SCHEMA, f, indent=2)


def validate_target_conflicts(items: list[dict[str, Any]]) -> tuple[bool, list[str]]:
    """
    Check for targets that would write into the same directory.

    Args:
        items: The raw ``[[items]]`` tables

    Returns:
        Tuple of (is_valid, error_messages)
    """
    errors = []
    seen: dict[str, int] = {}
    for index, item in enumerate(items):
        location = item.get("location") if isinstance(item, dict) else None
        if not isinstance(location, str) or not location.strip():
            continue
        key = str(Path(location).expanduser().resolve(strict=False))
        if key in seen:
            errors.append(
                f"items.{index}: location '{location}' is already used by items.{seen[key]}"
            )
        else:
            seen[key] = index

    return len(errors) == 0, errors
