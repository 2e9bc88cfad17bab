"""
Configuration for the game and its profile store.

Gameplay and terminal values are plain constants. Where profiles are
stored can be changed from the environment (WAVE_SURVIVOR_STORE,
WAVE_SURVIVOR_SAVE_FILE, WAVE_SURVIVOR_API_URL, ...) through pydantic-settings.
"""

import os
from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Timing
TARGET_FPS = 60
FRAME_TIME = 1.0 / TARGET_FPS
MAX_FRAME_DT = 0.1  # Larger steps are clamped to avoid tunnelling through walls
MAX_TICKS_PER_FRAME = 4

# Terminal
MIN_WIDTH = 80
MIN_HEIGHT = 24
CELL_WIDTH = 16.0  # World units per terminal column
CELL_HEIGHT = 32.0  # World units per terminal row

# Simulation view (world units), used until the terminal size is known
VIEW_WIDTH = 1280
VIEW_HEIGHT = 720

# Profile store
DEFAULT_USERNAME = 'Guest'
SERVER_HOST = "localhost"
SERVER_PORT = 3000
DATA_DIR = os.path.join(os.path.expanduser('~'), '.wave_survivor')


class Settings(BaseSettings):
    """Profile store settings, overridable with WAVE_SURVIVOR_* variables."""

    store: Literal['file', 'http', 'memory'] = Field(
        default='file',
        description="Where profiles are kept"
    )
    save_file: str = Field(
        default=os.path.join(DATA_DIR, 'profiles.json'),
        description="JSON file used by the file store"
    )
    api_url: str = Field(
        default=f"http://{SERVER_HOST}:{SERVER_PORT}/api",
        description="Profile server base URL used by the http store"
    )
    request_timeout: float = Field(
        default=5.0,
        description="Seconds to wait for the profile server"
    )

    model_config = SettingsConfigDict(
        env_prefix='WAVE_SURVIVOR_',
        env_file='.env',
        env_file_encoding='utf-8',
        extra='ignore',
    )


@lru_cache()
def get_settings() -> Settings:
    """Cached settings instance; clear with get_settings.cache_clear()."""
    return Settings()


# Logging (the terminal belongs to the renderer, so logs go to a file)
LOG_FILE = os.path.join(DATA_DIR, 'game.log')
LOG_LEVEL = 'INFO'
