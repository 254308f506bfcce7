"""
Settings Manager for dockwire
Manages client settings stored in JSON file
"""

import json
import os
import logging
from typing import Any, Dict, Optional

from .docker_api.utils import default_docker_host

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS: Dict[str, Any] = {
    'docker_host': '',
    'log_level': 'INFO',
    'timeout': None,
    'log_tail': -1,
}


class SettingsManager:
    """Manager for client settings"""

    # User settings file location
    @staticmethod
    def get_user_settings_path() -> str:
        """Get path to user settings file"""
        if os.name == 'nt':  # Windows
            base_dir = os.environ.get('APPDATA', os.path.expanduser('~'))
            data_dir = os.path.join(base_dir, 'dockwire')
        else:  # macOS, Linux
            data_dir = os.path.join(
                os.environ.get('XDG_DATA_HOME', os.path.expanduser('~/.local/share')),
                'dockwire'
            )

        return os.path.join(data_dir, 'settings.json')

    def __init__(self, settings_file: Optional[str] = None):
        """
        Initialize settings manager

        Args:
            settings_file: Settings file path (default: per-user data dir)
        """
        self.settings_file = settings_file or self.get_user_settings_path()
        self.settings: Dict[str, Any] = {}

        # Load settings
        self.load()

    def load(self):
        """Load settings from user file, over the defaults"""
        self.settings = DEFAULT_SETTINGS.copy()

        if not os.path.exists(self.settings_file):
            logger.debug(f"No settings file at {self.settings_file}, using defaults")
            return

        try:
            with open(self.settings_file, 'r', encoding='utf-8') as f:
                loaded_settings = json.load(f)
        except (OSError, ValueError) as e:
            logger.error(f"Error loading settings: {e}")
            return

        if not isinstance(loaded_settings, dict):
            logger.error(f"Ignoring settings file {self.settings_file}: not a JSON object")
            return

        # User settings override defaults
        self.settings.update(loaded_settings)
        logger.debug(f"Settings loaded from {self.settings_file}")

    def save(self) -> bool:
        """Save settings to file"""
        try:
            os.makedirs(os.path.dirname(self.settings_file) or '.', exist_ok=True)
            with open(self.settings_file, 'w', encoding='utf-8') as f:
                json.dump(self.settings, f, indent=4, ensure_ascii=False)
        except OSError as e:
            logger.error(f"Error saving settings: {e}")
            return False

        logger.info(f"Settings saved to {self.settings_file}")
        return True

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get setting value

        Args:
            key: Setting key
            default: Default value if key not found

        Returns:
            Setting value
        """
        return self.settings.get(key, default)

    def set(self, key: str, value: Any, save: bool = True):
        """
        Set setting value

        Args:
            key: Setting key
            value: Setting value
            save: Save to file immediately
        """
        self.settings[key] = value

        if save:
            self.save()

    def update(self, settings_dict: Dict[str, Any], save: bool = True):
        """Update multiple settings"""
        self.settings.update(settings_dict)

        if save:
            self.save()

    def reset_to_defaults(self, save: bool = True):
        """Reset all settings to the built-in defaults"""
        self.settings = DEFAULT_SETTINGS.copy()

        if save:
            self.save()

    def get_all(self) -> Dict[str, Any]:
        """Get all settings"""
        return self.settings.copy()

    def docker_host(self) -> str:
        """Connection string: configured host, else $DOCKER_HOST, else the local socket"""
        return self.get('docker_host') or default_docker_host()
