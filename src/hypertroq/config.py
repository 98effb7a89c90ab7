"""Application configuration.

Static settings come from ``config/hypertroq.yaml`` (or the file named by
``HYPERTROQ_CONFIG``) with environment overrides. Generation settings that an
admin tunes at runtime live in :class:`AIConfiguration`, persisted in the
database.

Usage:
    from hypertroq.config import load_app_config

    config = load_app_config()
    api_key = config.get_api_key()
"""

from __future__ import annotations

import os
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any

import structlog
import yaml

logger = structlog.get_logger(__name__)

CONFIG_FILE = Path("config/hypertroq.yaml")
DEFAULT_DATA_DIR = Path(__file__).parent.parent.parent / "data"


@dataclass
class AppConfig:
    """Process-wide settings."""

    data_dir: Path = DEFAULT_DATA_DIR
    database_name: str = "hypertroq.db"
    gemini_api_key_env: str = "GEMINI_API_KEY"
    embedding_model: str = "text-embedding-004"
    embedding_dimensions: int = 768
    log_level: str = "INFO"
    app_env: str = "local"
    tier_cache_ttl: int = 300  # seconds
    upload_max_bytes: int = 100 * 1024 * 1024

    def get_api_key(self) -> str | None:
        """Get the Gemini API key from the configured environment variable."""
        return os.environ.get(self.gemini_api_key_env)

    @property
    def db_path(self) -> Path:
        return self.data_dir / self.database_name


@dataclass
class AIConfiguration:
    """Admin-tunable generation and retrieval settings."""

    system_prompt: str = ""
    free_model_name: str = "gemini-2.5-flash"
    pro_model_name: str = "gemini-2.5-pro"
    temperature: float = 0.4
    top_p: float = 0.95
    top_k: int = 40
    max_tokens: int = 8192
    rag_max_chunks: int = 8
    rag_similarity_threshold: float = 0.05
    rag_high_relevance_threshold: float = 0.3
    strict_muscle_priority: bool = True
    use_knowledge_base: bool = True
    hypertrophy_instructions: str = ""

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> AIConfiguration:
        """Create from a dict, ignoring unknown keys and keeping defaults for missing ones."""
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known and v is not None})


# Module-level cache
_cached_config: AppConfig | None = None


def _apply_env_overrides(values: dict[str, Any]) -> dict[str, Any]:
    if data_dir := os.environ.get("HYPERTROQ_DATA_DIR"):
        values["data_dir"] = data_dir
    if log_level := os.environ.get("LOG_LEVEL"):
        values["log_level"] = log_level
    if app_env := os.environ.get("APP_ENV"):
        values["app_env"] = app_env
    return values


def load_app_config(config_path: Path | None = None, use_cache: bool = True) -> AppConfig:
    """Load application config from YAML with environment overrides."""
    global _cached_config

    if use_cache and config_path is None and _cached_config is not None:
        return _cached_config

    if config_path is None:
        env_path = os.environ.get("HYPERTROQ_CONFIG")
        config_path = Path(env_path) if env_path else CONFIG_FILE

    values: dict[str, Any] = {}
    if config_path.exists():
        with open(config_path, encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
        if not isinstance(raw, dict):
            logger.warning("config_not_a_mapping", path=str(config_path))
            raw = {}
        known = {f.name for f in fields(AppConfig)}
        unknown = set(raw) - known
        if unknown:
            logger.warning("config_unknown_keys", keys=sorted(unknown))
        values = {k: v for k, v in raw.items() if k in known}
        logger.debug("config_loaded", path=str(config_path))

    values = _apply_env_overrides(values)
    if "data_dir" in values:
        values["data_dir"] = Path(values["data_dir"])

    config = AppConfig(**values)
    if use_cache:
        _cached_config = config
    return config


def reset_config_cache() -> None:
    """Drop the cached config (tests and `config` commands use this)."""
    global _cached_config
    _cached_config = None
