# omp_deploy/config/settings.py
"""Loads, creates and saves the deployment settings file.

The settings file is a small JSON document describing where assets come from
(`source`), where the server lives (`target`), where the server release can be
downloaded (`url`) and which folders and files to copy (`structure`). If the
file does not exist, a default one is written and the run stops so the
operator can edit it.

Unlike a process-wide configuration object, a `Settings` value is created per
run and handed explicitly to whatever needs it.
"""

import copy
import json
import logging
import os
from typing import Any, Dict, List, Optional

from omp_deploy.config.const import DEFAULT_SERVER_URL
from omp_deploy.error import ConfigError, SettingsCreated

logger = logging.getLogger(__name__)

# Top-level keys every settings file must carry, in the order they are reported.
REQUIRED_FIELDS = ("source", "target", "url", "structure")

DEFAULT_STRUCTURE = [
    {"folder": "filterscripts", "includes": ["*.amx"]},
    {"folder": "gamemodes", "includes": ["*.amx"]},
    {"folder": "plugins", "includes": ["*.so"]},
    {"folder": "scriptfiles", "includes": ["*.ini"]},
]


class Rule:
    """One entry of the `structure` list: a folder and its include patterns."""

    def __init__(self, folder: str, includes: Optional[List[str]] = None):
        self.folder = folder
        self.includes = list(includes or [])

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Rule":
        if not isinstance(data, dict):
            raise ConfigError(
                f"Each structure rule must be an object, got {type(data).__name__}: {data!r}"
            )
        folder = data.get("folder", "")
        includes = data.get("includes", [])
        if not isinstance(folder, str):
            raise ConfigError(
                f"Rule 'folder' must be a string, got {type(folder).__name__}: {folder!r}"
            )
        if not isinstance(includes, list) or not all(
            isinstance(pattern, str) for pattern in includes
        ):
            raise ConfigError(
                f"Rule 'includes' for folder '{folder}' must be a list of strings, "
                f"got {includes!r}"
            )
        return cls(folder=folder, includes=includes)

    def to_dict(self) -> Dict[str, Any]:
        return {"folder": self.folder, "includes": list(self.includes)}

    def __eq__(self, other):
        if not isinstance(other, Rule):
            return NotImplemented
        return self.folder == other.folder and self.includes == other.includes

    def __repr__(self):
        return f"Rule(folder={self.folder!r}, includes={self.includes!r})"


class Settings:
    """The parsed contents of a settings file.

    Attributes:
        source: Root of the asset tree to copy from.
        target: Root of the server installation to copy into.
        url: Download URL of the server release archive.
        structure: Ordered list of `Rule` objects.
    """

    def __init__(
        self,
        source: Optional[str],
        target: Optional[str],
        url: Optional[str],
        structure: Optional[List[Rule]],
    ):
        self.source = source
        self.target = target
        self.url = url
        self.structure = structure

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Settings":
        """Builds a `Settings` value from a decoded settings document.

        Raises:
            ConfigError: If required fields are missing or `structure` is not a list.
        """
        missing = find_missing_fields(data)
        if missing:
            raise ConfigError(
                f"Settings are missing required field(s): {', '.join(missing)}",
                missing_fields=missing,
            )

        structure = data["structure"]
        if not isinstance(structure, list):
            raise ConfigError(
                f"'structure' must be a list of rules, got {type(structure).__name__}."
            )

        return cls(
            source=data["source"],
            target=data["target"],
            url=data["url"],
            structure=[Rule.from_dict(rule) for rule in structure],
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source": self.source,
            "target": self.target,
            "url": self.url,
            "structure": (
                None
                if self.structure is None
                else [rule.to_dict() for rule in self.structure]
            ),
        }


def find_missing_fields(data: Dict[str, Any]) -> List[str]:
    """Returns the required top-level fields absent (or null) in `data`."""
    return [field for field in REQUIRED_FIELDS if data.get(field) is None]


def default_settings() -> Dict[str, Any]:
    """Provides the document written on first run.

    Returns:
        A fresh dictionary with example paths, the open.mp release URL and
        one rule per standard asset folder.
    """
    return {
        "source": "./omp-assets",
        "target": "./omp-server",
        "url": DEFAULT_SERVER_URL,
        "structure": copy.deepcopy(DEFAULT_STRUCTURE),
    }


def _write_settings_file(data: Dict[str, Any], path: str) -> None:
    try:
        parent = os.path.dirname(os.path.abspath(path))
        os.makedirs(parent, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=4)
            f.write("\n")
    except (OSError, TypeError) as e:
        raise ConfigError(f"Failed to write settings file '{path}': {e}") from e


def save_settings(settings: Settings, path: str) -> None:
    """Writes `settings` to `path` as indented JSON.

    Raises:
        ConfigError: If the file cannot be written.
    """
    _write_settings_file(settings.to_dict(), path)
    logger.info(f"Settings saved to '{path}'.")


def load_settings(path: str) -> Settings:
    """Loads the settings file at `path`, creating a default one if absent.

    Args:
        path: Location of the JSON settings file.

    Returns:
        The parsed `Settings`.

    Raises:
        SettingsCreated: If the file did not exist and a default one was written.
        ConfigError: If the file cannot be read, is not valid JSON, is not a JSON
            object, or lacks any of the required fields.
    """
    if not os.path.exists(path):
        logger.info(
            f"Settings file not found at '{path}'. Creating with default settings."
        )
        _write_settings_file(default_settings(), path)
        raise SettingsCreated(path)

    logger.debug(f"Loading settings from '{path}'.")
    try:
        with open(path, "r", encoding="utf-8-sig") as f:
            data = json.load(f)
    except ValueError as e:
        raise ConfigError(f"Settings file '{path}' is not valid JSON: {e}") from e
    except OSError as e:
        raise ConfigError(f"Could not read settings file '{path}': {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(
            f"Settings file '{path}' must contain a JSON object at the top level."
        )

    settings = Settings.from_dict(data)
    logger.info(
        f"Loaded settings from '{path}' with {len(settings.structure)} structure rule(s)."
    )
    return settings
