"""
Engine Settings

Loads deployment settings from environment variables and provides defaults.
Supports loading from a .env file at the project root using python-dotenv.
Scoring thresholds and weights live in ScoringConfig (optionally loaded from
SCORING_CONFIG_PATH); this module only decides where things come from.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional

from dotenv import load_dotenv

from .judges.client import API_KEY_ENV_VARS, SUPPORTED_MODELS
from .models.config import DEFAULT_CONFIG, ScoringConfig

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parent.parent

root_env = PROJECT_ROOT / ".env"
if root_env.exists():
    load_dotenv(root_env)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@dataclass
class EngineSettings:
    """Engine deployment settings."""

    # Judge; None defers to the scoring config's judge.provider
    judge_provider: Optional[str] = None
    api_keys: Dict[str, Optional[str]] = field(default_factory=dict)

    # Paths
    scoring_config_path: Optional[Path] = None
    centroid_store_path: Optional[Path] = None

    # Logging
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "EngineSettings":
        """Load settings from environment variables."""

        def _path_env(key: str) -> Optional[Path]:
            v = os.getenv(key)
            if not v:
                return None
            p = Path(v)
            return p if p.is_absolute() else (PROJECT_ROOT / p).resolve()

        return cls(
            judge_provider=(os.getenv("JUDGE_PROVIDER") or "").strip().lower() or None,
            api_keys={p: os.getenv(env_var) for p, env_var in API_KEY_ENV_VARS.items()},
            scoring_config_path=_path_env("SCORING_CONFIG_PATH"),
            centroid_store_path=_path_env("CENTROID_STORE_PATH"),
            log_level=os.getenv("LOG_LEVEL", "INFO").strip().upper(),
        )

    def resolve_judge_provider(self, config: ScoringConfig = DEFAULT_CONFIG) -> str:
        """JUDGE_PROVIDER when set, else the scoring config's judge.provider."""
        return self.judge_provider or config.judge_provider

    def validate(self, config: ScoringConfig = DEFAULT_CONFIG) -> tuple[bool, list[str]]:
        """
        Validate the settings.

        Returns:
            (is_valid, list_of_errors)
        """
        errors = []
        provider = self.resolve_judge_provider(config)

        if provider not in SUPPORTED_MODELS:
            errors.append(
                f"Unsupported judge provider: {provider}. "
                f"Supported: {list(SUPPORTED_MODELS)}"
            )
        elif not self.api_keys.get(provider):
            # Missing key is not fatal: borderline chunks fall back to the neutral score.
            errors.append(f"No API key set ({API_KEY_ENV_VARS[provider]})")

        if self.scoring_config_path and not self.scoring_config_path.exists():
            errors.append(f"Scoring config not found: {self.scoring_config_path}")

        if logging.getLevelName(self.log_level) == f"Level {self.log_level}":
            errors.append(f"Unknown LOG_LEVEL: {self.log_level}")

        return len(errors) == 0, errors


def load_scoring_config(settings: "EngineSettings") -> ScoringConfig:
    """ScoringConfig from SCORING_CONFIG_PATH, or the defaults."""
    if settings.scoring_config_path is None:
        return DEFAULT_CONFIG
    config = ScoringConfig.from_json_file(settings.scoring_config_path)
    logger.info(
        "[settings] SCORING_CONFIG_LOADED path=%s version=%s",
        settings.scoring_config_path, config.config_version,
    )
    return config


def setup_logging(settings: Optional["EngineSettings"] = None) -> None:
    """Configure the root handler from LOG_LEVEL."""
    settings = settings or get_settings()
    level = logging.getLevelName(settings.log_level)
    if not isinstance(level, int):
        level = logging.INFO
    logging.basicConfig(level=level, format=LOG_FORMAT)
    # LiteLLM logs every request at INFO
    logging.getLogger("LiteLLM").setLevel(max(level, logging.WARNING))


# Global settings instance
_settings: Optional[EngineSettings] = None


def get_settings() -> EngineSettings:
    """Get the global settings instance."""
    global _settings
    if _settings is None:
        _settings = EngineSettings.from_env()
    return _settings


def reload_settings() -> EngineSettings:
    """Reload settings from environment."""
    global _settings
    _settings = None
    return get_settings()
