"""
config.py - Process settings and persisted viewer preferences.

Settings come from the environment (INPUTLOG_ prefix) or a .env file.
Preferences are user choices persisted as JSON in the config directory.
"""

import logging
from pathlib import Path
from typing import List, Optional, Tuple

from pydantic import BaseModel, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from inputlog_replay.engine import DEFAULT_SPEED, clamp_speed

logger = logging.getLogger(__name__)

PREFERENCES_FILENAME = "config.json"


def _default_config_dir() -> Path:
    return Path.home() / ".config" / "input-log-viewer"


class Settings(BaseSettings):
    # Logging
    LOG_LEVEL: str = "INFO"

    # Playback defaults
    DEFAULT_SPEED: float = DEFAULT_SPEED
    LOOP_ENABLED: bool = False

    # Preferences storage
    CONFIG_DIR: Path = Field(default_factory=_default_config_dir)
    MAX_RECENT_FILES: int = 10
    REMEMBER_RECENT_FILES: bool = True

    model_config = SettingsConfigDict(
        env_prefix="INPUTLOG_",
        env_file=".env",
        extra="ignore",
    )

    @property
    def preferences_path(self) -> Path:
        return self.CONFIG_DIR / PREFERENCES_FILENAME


class ViewerPreferences(BaseModel):
    """User preferences restored between runs."""
    default_speed: float = DEFAULT_SPEED
    loop_enabled: bool = False
    recent_files: List[str] = Field(default_factory=list)
    window_size: Optional[Tuple[float, float]] = None

    @field_validator("default_speed")
    @classmethod
    def _clamp_default_speed(cls, value: float) -> float:
        return clamp_speed(value)

    @classmethod
    def from_settings(cls, settings: Settings) -> "ViewerPreferences":
        """Load persisted preferences, seeding defaults from settings when none exist."""
        path = settings.preferences_path
        if not path.exists():
            return cls(default_speed=settings.DEFAULT_SPEED, loop_enabled=settings.LOOP_ENABLED)
        return cls.load(path)

    @classmethod
    def load(cls, path: Path) -> "ViewerPreferences":
        """
        Read preferences from `path`.

        A missing, unreadable, non-UTF-8 or corrupt file yields defaults;
        preferences must never prevent the viewer from starting.
        """
        try:
            content = Path(path).read_text(encoding="utf-8")
        except FileNotFoundError:
            return cls()
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("Cannot read preferences %s: %s", path, e)
            return cls()

        try:
            return cls.model_validate_json(content)
        except ValidationError as e:
            logger.warning("Ignoring corrupt preferences %s: %d error(s)", path, e.error_count())
            return cls()

    def save(self, path: Path) -> None:
        """
        Write preferences to `path`, creating the parent directory.

        Raises:
            OSError: if the directory or file cannot be written.
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.model_dump_json(indent=2), encoding="utf-8")

    def add_recent_file(self, path: str, limit: int = 10) -> None:
        """Move `path` to the front of the recent list, capped at `limit` entries."""
        self.recent_files = [path] + [p for p in self.recent_files if p != path]
        del self.recent_files[limit:]

    def clear_recent_files(self) -> None:
        self.recent_files = []

    def set_default_speed(self, speed: float) -> None:
        self.default_speed = clamp_speed(speed)

    def reset(self) -> None:
        defaults = ViewerPreferences()
        self.default_speed = defaults.default_speed
        self.loop_enabled = defaults.loop_enabled
        self.recent_files = []
        self.window_size = None
