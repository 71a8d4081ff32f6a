from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .config.settings import Settings


class AppContext:
    """
    Holds the state of a single deployment run.
    """

    def __init__(self, settings_path: str, settings: "Settings" | None = None):
        """
        Initializes the AppContext.

        Args:
            settings_path (str): Location of the settings file.
            settings (Settings, optional): Pre-loaded settings. When given,
                `load()` does not touch the file.
        """
        self.settings_path = settings_path
        self.settings: "Settings" | None = settings

    def load(self) -> "Settings":
        """
        Loads the settings file if it has not been loaded yet.

        Raises:
            SettingsCreated: If a default settings file was written instead.
            ConfigError: If the settings file is invalid.
        """
        from .config.settings import load_settings

        if self.settings is None:
            self.settings = load_settings(self.settings_path)
        return self.settings
