import json
import logging

import pytest
from rich.console import Console
from rich.logging import RichHandler

from wallet_tracker.config.settings import ConfigLoader, Settings
from wallet_tracker.utils.logging import configure_logging


@pytest.fixture
def config_dirs(tmp_path, monkeypatch):
    """Point ConfigLoader at empty temporary directories"""
    user_dir = tmp_path / "user"
    package_dir = tmp_path / "package"
    user_dir.mkdir()
    package_dir.mkdir()
    monkeypatch.setattr(ConfigLoader, "user_config_dir", user_dir)
    monkeypatch.setattr(ConfigLoader, "package_config_dir", package_dir)
    monkeypatch.delenv("WALLET_TRACKER_DB", raising=False)
    monkeypatch.delenv("WALLET_TRACKER_LOG_LEVEL", raising=False)
    return user_dir, package_dir


def write_json(path, data):
    path.write_text(json.dumps(data))


@pytest.mark.unit
class TestConfigLoader:

    def test_user_config_overrides_package_default(self, config_dirs):
        # Arrange
        user_dir, package_dir = config_dirs
        write_json(package_dir / "settings.json", {"default_currency": "IDR"})
        write_json(user_dir / "settings.json", {"default_currency": "USD"})

        # Act
        config = ConfigLoader.load_settings_config()

        # Assert
        assert config == {"default_currency": "USD"}

    def test_falls_back_to_package_default(self, config_dirs):
        _, package_dir = config_dirs
        write_json(package_dir / "settings.json", {"recent_limit": 5})

        assert ConfigLoader.load_settings_config() == {"recent_limit": 5}

    def test_missing_everywhere(self, config_dirs):
        with pytest.raises(FileNotFoundError):
            ConfigLoader.load_config("nope.json")

    def test_bundled_defaults_match_dataclass(self):
        with open(ConfigLoader.package_config_dir / "settings.json") as f:
            bundled = json.load(f)

        assert Settings(**bundled) == Settings()


@pytest.mark.unit
class TestSettings:

    def test_load_ignores_unknown_keys(self, config_dirs):
        _, package_dir = config_dirs
        write_json(package_dir / "settings.json", {"db_path": "x.db", "theme": "dark"})

        settings = Settings.load()

        assert settings.db_path == "x.db"
        assert settings.default_currency == "IDR"

    def test_environment_overrides(self, config_dirs, monkeypatch):
        # Arrange
        _, package_dir = config_dirs
        write_json(package_dir / "settings.json", {"db_path": "x.db", "log_level": "ERROR"})
        monkeypatch.setenv("WALLET_TRACKER_DB", "/tmp/other.db")
        monkeypatch.setenv("WALLET_TRACKER_LOG_LEVEL", "DEBUG")

        # Act
        settings = Settings.load()

        # Assert
        assert settings.db_path == "/tmp/other.db"
        assert settings.log_level == "DEBUG"


@pytest.mark.unit
class TestConfigureLogging:

    @pytest.fixture(autouse=True)
    def restore_logger(self):
        logger = logging.getLogger("wallet_tracker")
        handlers, level, propagate = list(logger.handlers), logger.level, logger.propagate
        yield
        logger.handlers = handlers
        logger.setLevel(level)
        logger.propagate = propagate

    def test_installs_single_rich_handler(self):
        console = Console(record=True)

        configure_logging("info", console=console)
        logger = configure_logging("info", console=console)

        rich_handlers = [h for h in logger.handlers if isinstance(h, RichHandler)]
        assert len(rich_handlers) == 1
        assert logger.level == logging.INFO

    def test_records_are_rendered(self):
        console = Console(record=True, width=120)
        configure_logging("DEBUG", console=console)

        logging.getLogger("wallet_tracker.services.wallet_service").info("Created wallet w-1")

        assert "Created wallet w-1" in console.export_text()

    def test_level_from_environment(self, monkeypatch):
        monkeypatch.setenv("WALLET_TRACKER_LOG_LEVEL", "error")

        logger = configure_logging(console=Console(record=True))

        assert logger.level == logging.ERROR

    def test_unknown_level_falls_back_to_warning(self, monkeypatch):
        monkeypatch.delenv("WALLET_TRACKER_LOG_LEVEL", raising=False)

        logger = configure_logging("chatty", console=Console(record=True))

        assert logger.level == logging.WARNING
