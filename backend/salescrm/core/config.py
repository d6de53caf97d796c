"""
Configuration Management
Loads settings from YAML files and environment variables
"""
import re
import yaml
import os
from pathlib import Path
from typing import Any, Dict, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict

from salescrm.domain.models.quality import ScoringConfig


class Settings(BaseSettings):
    """Application settings loaded from environment"""

    environment: str = "development"
    debug: bool = True

    # API Settings
    api_prefix: str = "/api/v1"
    cors_origins: list[str] = ["http://localhost:3000"]

    # Storage; empty means in-memory
    database_url: str = "sqlite+aiosqlite:///./salescrm.db"

    # AI quality assessment
    groq_api_key: Optional[str] = None
    llm_provider: str = "groq"
    llm_model: str = "llama-3.3-70b-versatile"
    ai_timeout_seconds: float = 15.0

    # Contacts and distribution
    default_phone_region: str = "MX"
    default_max_contacts: int = 50

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


_ENV_PATTERN = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")

CONFIG_DIR = Path(__file__).parent.parent.parent / "config"


def _expand_env(value: Any) -> Any:
    """Replace ${VAR} inside strings, recursing into dicts and lists; unknown vars stay as written"""
    if isinstance(value, dict):
        return {k: _expand_env(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_expand_env(v) for v in value]
    if isinstance(value, str):
        return _ENV_PATTERN.sub(lambda m: os.getenv(m.group(1), m.group(0)), value)
    return value


def _merged(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    result = dict(base)
    for key, value in override.items():
        if isinstance(result.get(key), dict) and isinstance(value, dict):
            result[key] = _merged(result[key], value)
        else:
            result[key] = value
    return result


class ConfigManager:
    """
    YAML configuration: default.yaml overlaid with {env}.yaml.

    Only sections read by the app are exposed as typed helpers
    (scoring weights, LLM provider options); `get` reaches anything else.
    """

    def __init__(self, env: str = "development", config_dir: Optional[Path] = None):
        self.env = env
        self.config_dir = Path(config_dir) if config_dir else CONFIG_DIR

        config: Dict[str, Any] = {}
        for name in ("default", env):
            path = self.config_dir / f"{name}.yaml"
            if path.exists():
                with open(path, "r") as f:
                    config = _merged(config, yaml.safe_load(f) or {})
        self._config = _expand_env(config)

    def get(self, key_path: str, default: Any = None) -> Any:
        """Dotted lookup, e.g. config.get("scoring.valid_phone_weight") -> 30"""
        value: Any = self._config
        for key in key_path.split("."):
            if not isinstance(value, dict) or key not in value:
                return default
            value = value[key]
        return value

    def get_scoring_config(self, default_phone_region: Optional[str] = None) -> ScoringConfig:
        """ScoringConfig from the `scoring:` section; unset keys keep their defaults"""
        values = dict(self.get("scoring", {}) or {})
        if default_phone_region:
            values.setdefault("default_phone_region", default_phone_region)
        return ScoringConfig(**values)

    def get_llm_config(self, provider: str) -> Dict[str, Any]:
        """Provider options from `llm.<provider>`"""
        return dict(self.get(f"llm.{provider}", {}) or {})


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Process-wide settings, read once"""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
