"""
Centralized configuration for the Big Two game server.

Configuration is loaded from (in order of precedence):
1. Environment variables
2. .env file (if exists)
3. Default values

Usage:
    from config import config
    print(config.PORT)
    print(config.game_rules.max_undo)
"""

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

env_path = Path(__file__).parent.parent / ".env"
if env_path.exists():
    load_dotenv(env_path)


def get_env(key: str, default: str = "") -> str:
    """Get environment variable with default."""
    return os.environ.get(key, default)


def get_env_bool(key: str, default: bool = False) -> bool:
    """Get boolean environment variable."""
    val = os.environ.get(key, "").lower()
    if val in ("true", "1", "yes", "on"):
        return True
    if val in ("false", "0", "no", "off"):
        return False
    return default


def get_env_int(key: str, default: int = 0) -> int:
    """Get integer environment variable."""
    try:
        return int(os.environ.get(key, str(default)))
    except ValueError:
        return default


def get_env_float(key: str, default: float = 0.0) -> float:
    """Get float environment variable."""
    try:
        return float(os.environ.get(key, str(default)))
    except ValueError:
        return default


def get_env_list(key: str, default: str = "") -> list[str]:
    """Get comma-separated environment variable as a list of stripped items."""
    raw = os.environ.get(key, default)
    return [item.strip() for item in raw.split(",") if item.strip()]


@dataclass
class GameRules:
    """Tunable rule settings for a table."""
    max_undo: int = 3
    max_history: int = 10
    turn_lock_seconds: float = 3.0
    turn_lock_enforced: bool = False  # reject the next seat while the lock is armed
    max_combo_options: int = 50


@dataclass
class ServerConfig:
    """Server configuration."""
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    ENVIRONMENT: str = "development"

    # CORS
    CORS_ORIGINS: list[str] = field(default_factory=lambda: ["http://localhost:5173"])
    CORS_ORIGIN_REGEX: str = r"https://naga-poker-.*\.vercel\.app"

    # Login allow-list (player names double as the shared credential)
    ALLOWED_PLAYERS: list[str] = field(default_factory=lambda: ["roy", "lomba", "gaal"])

    # Game rules
    game_rules: GameRules = field(default_factory=GameRules)

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """Load configuration from environment variables."""
        return cls(
            HOST=get_env("HOST", "0.0.0.0"),
            PORT=get_env_int("PORT", 8000),
            DEBUG=get_env_bool("DEBUG", False),
            LOG_LEVEL=get_env("LOG_LEVEL", "INFO"),
            ENVIRONMENT=get_env("ENVIRONMENT", "development"),
            CORS_ORIGINS=get_env_list("CORS_ORIGINS", "http://localhost:5173"),
            CORS_ORIGIN_REGEX=get_env("CORS_ORIGIN_REGEX", r"https://naga-poker-.*\.vercel\.app"),
            ALLOWED_PLAYERS=[p.lower() for p in get_env_list("ALLOWED_PLAYERS", "roy,lomba,gaal")],
            game_rules=GameRules(
                max_undo=get_env_int("MAX_UNDO", 3),
                max_history=get_env_int("MAX_HISTORY", 10),
                turn_lock_seconds=get_env_float("TURN_LOCK_SECONDS", 3.0),
                turn_lock_enforced=get_env_bool("TURN_LOCK_ENFORCED", False),
                max_combo_options=get_env_int("MAX_COMBO_OPTIONS", 50),
            ),
        )


# Global config instance - loaded once at module import
config = ServerConfig.from_env()


def reload_config() -> ServerConfig:
    """
    Reload configuration from environment (useful for testing).

    Modules that read `config` per call see the new values. Rule values
    copied into constants.py at import time keep their original values.
    """
    global config
    config = ServerConfig.from_env()
    return config
