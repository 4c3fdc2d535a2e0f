"""
Bot configuration.

Settings come from a YAML file (config/bot.yaml by default) and can be
overridden with environment variables.
"""

import logging
import os
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).parent / "config" / "bot.yaml"


class RewardSettings(BaseModel):
    """Gold paid out when games and tournaments end."""
    win_gold: int = 30
    loss_gold: int = 10
    draw_gold: int = 10
    ai_win_gold: int = 50           # Human beats the AI by checkmate
    tournament_winner_gold: int = 100


class AISettings(BaseModel):
    """AI opponent configuration."""
    player_id: str = "AI"
    move_delay: float = 1.5         # Seconds before the AI replies
    engine: str = "aggressive"      # "aggressive" or "random"
    seed: Optional[int] = None


class SelfPingSettings(BaseModel):
    """Keep-alive pings against the bot's own web endpoint."""
    url: Optional[str] = None
    interval: float = 300.0


class BotSettings(BaseModel):
    """Overall bot configuration."""
    data_dir: str = "data"
    owner_id: Optional[str] = None  # Server owner, always treated as admin
    archive_delay: float = 60.0
    use_firestore: Optional[bool] = None  # None = auto-detect
    ai: AISettings = Field(default_factory=AISettings)
    rewards: RewardSettings = Field(default_factory=RewardSettings)
    self_ping: SelfPingSettings = Field(default_factory=SelfPingSettings)

    @property
    def tournaments_path(self) -> Path:
        return Path(self.data_dir) / "tournaments.json"

    @property
    def profiles_path(self) -> Path:
        return Path(self.data_dir) / "profiles.json"

    @property
    def admins_path(self) -> Path:
        return Path(self.data_dir) / "admin_settings.json"


def load_config(config_path: str) -> dict:
    """Load configuration from YAML file."""
    with open(config_path) as f:
        return yaml.safe_load(f) or {}


def load_settings(config_path: Optional[str] = None) -> BotSettings:
    """
    Build settings from the YAML file and environment overrides.

    Args:
        config_path: Path to the YAML file. Defaults to CHESSBOT_CONFIG or
                     config/bot.yaml. A missing file means built-in defaults.

    Returns:
        BotSettings
    """
    path = Path(config_path or os.environ.get("CHESSBOT_CONFIG") or DEFAULT_CONFIG_PATH)
    data = {}
    if path.exists():
        data = load_config(str(path))
    else:
        logger.info(f"Config file {path} not found, using defaults")

    settings = BotSettings(**data)

    # Environment overrides
    if os.environ.get("CHESSBOT_DATA_DIR"):
        settings.data_dir = os.environ["CHESSBOT_DATA_DIR"]
    if os.environ.get("BOT_OWNER_ID"):
        settings.owner_id = os.environ["BOT_OWNER_ID"]
    if os.environ.get("SELF_URL"):
        settings.self_ping.url = os.environ["SELF_URL"]
    firebase_flag = os.environ.get("FIREBASE_ENABLED", "").lower()
    if firebase_flag in ("1", "true", "yes"):
        settings.use_firestore = True
    elif firebase_flag in ("0", "false", "no"):
        settings.use_firestore = False

    return settings
