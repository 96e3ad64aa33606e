from dataclasses import dataclass, fields
from pathlib import Path
import json
import os
from typing import Dict, Any

# Package defaults (bundled with code)
PACKAGE_CONFIG_DIR = Path(__file__).parent / "defaults"

# User configs (in project root, gitignored)
PROJECT_ROOT = Path(__file__).parent.parent.parent.parent
USER_CONFIG_DIR = PROJECT_ROOT / "config"

SETTINGS_FILE = "settings.json"
DB_PATH_ENV = "WALLET_TRACKER_DB"
LOG_LEVEL_ENV = "WALLET_TRACKER_LOG_LEVEL"


class ConfigLoader:
    """Load configuration with user overrides"""

    user_config_dir: Path = USER_CONFIG_DIR
    package_config_dir: Path = PACKAGE_CONFIG_DIR

    @classmethod
    def load_config(cls, config_name: str) -> Dict[str, Any]:
        """
        Load config with fallback: user config -> default config

        Args:
            config_name: Name of the config file (e.g., 'settings.json')

        Raises:
            FileNotFoundError: If no config file was found

        Returns:
            Parsed JSON configuration
        """
        user_config_path = cls.user_config_dir / config_name
        if user_config_path.exists():
            with open(user_config_path) as f:
                return json.load(f)

        default_config_path = cls.package_config_dir / config_name
        if default_config_path.exists():
            with open(default_config_path) as f:
                return json.load(f)

        raise FileNotFoundError(
            f"Config file '{config_name}' not found in:\n"
            f" - {user_config_path}\n"
            f" - {default_config_path}"
        )

    @classmethod
    def load_settings_config(cls) -> Dict[str, Any]:
        """Load application settings"""
        return cls.load_config(SETTINGS_FILE)


@dataclass
class Settings:
    """Runtime settings for the application"""
    db_path: str = "data/wallet.db"
    default_currency: str = "IDR"
    busy_timeout: float = 5.0
    log_level: str = "WARNING"
    recent_limit: int = 10

    @classmethod
    def load(cls) -> "Settings":
        """
        Build settings from settings.json, then apply environment overrides.

        Unknown keys in the file are ignored.
        """
        config = ConfigLoader.load_settings_config()
        known = {f.name for f in fields(cls)}
        settings = cls(**{key: value for key, value in config.items() if key in known})

        if os.getenv(DB_PATH_ENV):
            settings.db_path = os.environ[DB_PATH_ENV]
        if os.getenv(LOG_LEVEL_ENV):
            settings.log_level = os.environ[LOG_LEVEL_ENV]

        return settings
