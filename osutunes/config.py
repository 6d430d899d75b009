"""
Configuration management for osutunes.
"""
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Optional, Dict, Any, List

from osutunes.logging_config import get_logger

logger = get_logger('config')

DEFAULT_CONFIG: str = """# osutunes configuration
# Colors can be: black, red, green, yellow, blue, magenta, cyan, white,
# gray, bold, dim, reverse, default

[songs]
# Path to your osu! Songs folder
directory = "~/.local/share/osu-wine/osu!/Songs"
# Reuse the scanned catalog instead of rescanning on every start
use_cache = true
cache = "~/.cache/osutunes/songs.json"
scan_workers = 4

[playlists]
file = "~/.local/share/osutunes/playlists.json"

[audio]
player = "auto"
volume = 0.5

[ui]
tick_interval = 0.02

[colors]
header = "bold"
secondary = "gray"
selection = "reverse"
focus = "yellow"

[logging]
level = "INFO"
file = "~/.cache/osutunes/osutunes.log"
"""


@dataclass
class AppConfig:
    """Application configuration settings.

    Field names are ``<section>_<key>`` of the TOML file.
    """

    # Song catalog
    songs_directory: str = "~/.local/share/osu-wine/osu!/Songs"
    songs_use_cache: bool = True
    songs_cache: str = "~/.cache/osutunes/songs.json"
    songs_scan_workers: int = 4

    # Playlists
    playlists_file: str = "~/.local/share/osutunes/playlists.json"

    # Audio settings
    audio_player: str = "auto"  # auto, mpg123
    audio_volume: float = 0.5

    # UI settings
    ui_tick_interval: float = 0.02

    # Colors
    colors_header: str = "bold"
    colors_secondary: str = "gray"
    colors_selection: str = "reverse"
    colors_focus: str = "yellow"

    # Logging settings
    logging_level: str = "INFO"
    logging_file: Optional[str] = "~/.cache/osutunes/osutunes.log"


def _load_toml(path: Path) -> Dict[str, Any]:
    # Try Python 3.11+ tomllib first
    try:
        import tomllib
    except ImportError:
        import tomli as tomllib

    with open(path, "rb") as f:
        return tomllib.load(f)


class ConfigManager:
    """Manages configuration loading and validation."""

    def __init__(self, config_path: Optional[Path] = None):
        self.config_path = Path(config_path) if config_path else self._get_default_config_path()
        self.config: AppConfig = AppConfig()
        self.created: bool = False
        self._load_config()

    def _get_default_config_path(self) -> Path:
        """Get default configuration file path."""
        xdg_config = os.environ.get("XDG_CONFIG_HOME")
        if xdg_config:
            return Path(xdg_config) / "osutunes" / "osutunes.toml"
        return Path.home() / ".config" / "osutunes" / "osutunes.toml"

    def _load_config(self) -> None:
        """Load configuration from file."""
        if not self.config_path.exists():
            logger.info(f"Config file not found at {self.config_path}, using defaults")
            self._create_default_config()
            return

        try:
            data = _load_toml(self.config_path)
            self._apply_config_data(data)
            logger.info(f"Loaded configuration from {self.config_path}")
        except (ValueError, OSError) as e:
            # tomllib.TOMLDecodeError is a ValueError
            logger.error(f"Failed to load config: {e}")
            logger.info("Using default configuration")

    def _create_default_config(self) -> None:
        """Create a default configuration file."""
        try:
            self.config_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.config_path, "w") as f:
                f.write(DEFAULT_CONFIG)
            self.created = True
            logger.info(f"Created default config at {self.config_path}")
        except OSError as e:
            logger.warning(f"Failed to create default config: {e}")

    def _apply_config_data(self, data: Dict[str, Any]) -> None:
        """Apply ``[section] key`` values onto the AppConfig fields."""
        types = {f.name: f.type for f in fields(AppConfig)}
        for section, values in data.items():
            if not isinstance(values, dict):
                logger.warning(f"Ignoring non-table config entry: {section}")
                continue
            for key, value in values.items():
                name = f"{section}_{key}"
                if name not in types:
                    logger.warning(f"Unknown config key: [{section}] {key}")
                    continue
                try:
                    setattr(self.config, name, _coerce(value, getattr(self.config, name)))
                except (TypeError, ValueError) as e:
                    logger.warning(f"Invalid config value for [{section}] {key}: {value} ({e})")

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value."""
        return getattr(self.config, key, default)

    def set(self, key: str, value: Any) -> None:
        """Set configuration value."""
        if hasattr(self.config, key):
            setattr(self.config, key, value)
            logger.debug(f"Config updated: {key} = {value}")

    def validate_config(self) -> List[str]:
        """Validate current configuration and return the list of issues."""
        issues = []

        songs_dir = self.get_songs_directory_path()
        if not songs_dir.is_dir():
            issues.append(f"Songs directory does not exist: {songs_dir}")

        if self.config.audio_player not in ["auto", "mpg123"]:
            issues.append(f"Invalid audio player: {self.config.audio_player}")

        if not (0.0 <= self.config.audio_volume <= 2.0):
            issues.append(f"Volume must be 0.0-2.0, got {self.config.audio_volume}")

        if not (0.001 <= self.config.ui_tick_interval <= 1.0):
            issues.append(f"Tick interval must be 0.001-1.0, got {self.config.ui_tick_interval}")

        if not (1 <= self.config.songs_scan_workers <= 64):
            issues.append(f"Scan workers must be 1-64, got {self.config.songs_scan_workers}")

        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if self.config.logging_level.upper() not in valid_levels:
            issues.append(f"Invalid log level: {self.config.logging_level}")

        if issues:
            logger.warning(f"Configuration validation issues: {issues}")

        return issues

    def reset_to_defaults(self) -> None:
        """Reset configuration to defaults."""
        self.config = AppConfig()
        logger.info("Configuration reset to defaults")

    def get_songs_directory_path(self) -> Path:
        return Path(self.config.songs_directory).expanduser()

    def get_catalog_cache_path(self) -> Path:
        return Path(self.config.songs_cache).expanduser()

    def get_playlist_file_path(self) -> Path:
        return Path(self.config.playlists_file).expanduser()

    def get_log_file_path(self) -> Optional[Path]:
        if not self.config.logging_file:
            return None
        return Path(self.config.logging_file).expanduser()


def _coerce(value: Any, current: Any) -> Any:
    """Convert a TOML value to the type of the field's current value."""
    if isinstance(current, bool):
        if not isinstance(value, bool):
            raise TypeError("expected true or false")
        return value
    if isinstance(current, float):
        return float(value)
    if isinstance(current, int):
        if isinstance(value, bool):
            raise TypeError("expected an integer")
        return int(value)
    if value is not None and not isinstance(value, str):
        raise TypeError("expected a string")
    return value


def load_config(config_path: Optional[Path] = None) -> ConfigManager:
    """Load configuration and return manager."""
    return ConfigManager(config_path)
