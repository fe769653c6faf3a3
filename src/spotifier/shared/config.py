"""
Configuration Module - Load and validate client settings.
=========================================================

Loads configuration from:
1. config/settings.yaml (defaults)
2. Environment variables from .env file
3. Environment variables from system

Environment variables override YAML values, key by key.
"""

from functools import lru_cache
from pathlib import Path
from typing import Any, Optional
from urllib.parse import urlparse

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

# Load .env file early
load_dotenv()


def _find_project_root() -> Path:
    """Find the project root directory by looking for pyproject.toml."""
    current = Path(__file__).resolve()
    for parent in [current] + list(current.parents):
        if (parent / "pyproject.toml").exists():
            return parent
    return Path.cwd()


PROJECT_ROOT = _find_project_root()
CONFIG_DIR = PROJECT_ROOT / "config"
DEFAULT_CONFIG_FILE = CONFIG_DIR / "settings.yaml"

DEFAULT_USER_AGENTS = [
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:133.0) Gecko/20100101 Firefox/133.0",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/18.1 Safari/605.1.15",
]


# ─────────────────────────────────────────────────────────────────────────────
# Nested Configuration Models
# ─────────────────────────────────────────────────────────────────────────────


class PortalConfig(BaseModel):
    """Portal and identity provider endpoints."""

    base_url: str = "https://spot.upi.edu"
    login_url: str = "https://sso.upi.edu/cas/login?service=https://spot.upi.edu/beranda"
    identity_provider_url: str = "https://sso.upi.edu"
    timeout: int = 30
    user_agents: list[str] = Field(default_factory=lambda: list(DEFAULT_USER_AGENTS))

    @field_validator("base_url", "identity_provider_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @field_validator("user_agents")
    @classmethod
    def require_user_agents(cls, v: list[str]) -> list[str]:
        if not v:
            raise ValueError("user_agents must contain at least one entry")
        return v

    @property
    def portal_host(self) -> str:
        return urlparse(self.base_url).hostname or ""

    @property
    def identity_provider_host(self) -> str:
        return urlparse(self.identity_provider_url).hostname or ""


class PacingConfig(BaseModel):
    """Human-like delays between requests."""

    enabled: bool = True
    min_delay_ms: int = 1000
    max_delay_ms: int = 3000
    login_jitter_min_ms: int = 2000
    login_jitter_max_ms: int = 5000

    @model_validator(mode="after")
    def check_bounds(self) -> "PacingConfig":
        if self.min_delay_ms > self.max_delay_ms:
            raise ValueError("min_delay_ms must not exceed max_delay_ms")
        if self.login_jitter_min_ms > self.login_jitter_max_ms:
            raise ValueError("login_jitter_min_ms must not exceed login_jitter_max_ms")
        return self


class CacheConfig(BaseModel):
    """Response and session cache settings."""

    enabled: bool = True
    backend: str = "file"
    courses_ttl: int = 3600
    session_ttl: int = 86400
    prefix: Optional[str] = None


class PathsConfig(BaseModel):
    """Data paths configuration."""

    data_dir: str = "data"
    cache_dir: str = "data/cache"
    session_file: str = "data/session.json"
    diagnostics_dir: str = ""

    def resolve(self, base_path: Path) -> "ResolvedPaths":
        """Resolve paths relative to a base path."""
        return ResolvedPaths(
            data_dir=base_path / self.data_dir,
            cache_dir=base_path / self.cache_dir,
            session_file=base_path / self.session_file,
            diagnostics_dir=(base_path / self.diagnostics_dir) if self.diagnostics_dir else None,
        )


class ResolvedPaths(BaseModel):
    """Resolved absolute paths."""

    data_dir: Path
    cache_dir: Path
    session_file: Path
    diagnostics_dir: Optional[Path] = None

    model_config = {"arbitrary_types_allowed": True}


class LoggingConfig(BaseModel):
    """Logging settings."""

    level: str = "INFO"
    format: str = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
    rich_console: bool = True
    file: str = ""


# ─────────────────────────────────────────────────────────────────────────────
# Main Settings Class
# ─────────────────────────────────────────────────────────────────────────────


class Settings(BaseSettings):
    """
    Main application settings.

    Loads from:
    1. config/settings.yaml (passed as init arguments)
    2. Environment variables and .env

    Environment variables override YAML settings, including single nested
    keys such as PACING__ENABLED.
    """

    model_config = SettingsConfigDict(
        env_prefix="",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # Earlier sources win; init arguments carry the YAML file
        return env_settings, dotenv_settings, init_settings, file_secret_settings

    # Credentials (from environment only)
    nim: str = Field(default="", validation_alias="SPOT_NIM")
    password: str = Field(default="", validation_alias="SPOT_PASSWORD")

    # Top-level environment overrides
    log_level: Optional[str] = Field(default=None, validation_alias="LOG_LEVEL")
    cache_dir_override: Optional[str] = Field(default=None, validation_alias="SPOTIFIER_CACHE_DIR")

    # Nested configurations (from YAML)
    portal: PortalConfig = Field(default_factory=PortalConfig)
    pacing: PacingConfig = Field(default_factory=PacingConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    paths: PathsConfig = Field(default_factory=PathsConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    _project_root: Path = PROJECT_ROOT
    _resolved_paths: Optional[ResolvedPaths] = None

    @property
    def project_root(self) -> Path:
        """Get the project root directory."""
        return self._project_root

    @property
    def resolved_paths(self) -> ResolvedPaths:
        """Get resolved absolute paths."""
        if self._resolved_paths is None:
            resolved = self.paths.resolve(self._project_root)
            if self.cache_dir_override:
                resolved.cache_dir = Path(self.cache_dir_override)
            self._resolved_paths = resolved
        return self._resolved_paths

    def get_effective_log_level(self) -> str:
        """Get the effective log level (env override or config)."""
        if self.log_level:
            return self.log_level.upper()
        return self.logging.level.upper()


def _load_yaml_config(config_path: Path) -> dict[str, Any]:
    """Load configuration from YAML file."""
    if not config_path.exists():
        return {}

    with open(config_path, encoding="utf-8") as f:
        data = yaml.safe_load(f)
        return data if data else {}


def _create_settings(config_path: Optional[Path] = None) -> Settings:
    """Create settings instance by merging YAML defaults with environment."""
    if config_path is None:
        config_path = DEFAULT_CONFIG_FILE

    yaml_config = _load_yaml_config(config_path)
    return Settings(**yaml_config)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Get the singleton settings instance.

    Returns:
        Settings instance with merged configuration

    Example:
        >>> settings = get_settings()
        >>> print(settings.portal.base_url)
        https://spot.upi.edu
    """
    return _create_settings()


def reload_settings() -> Settings:
    """
    Force reload of settings (clears cache).

    Returns:
        Fresh Settings instance
    """
    get_settings.cache_clear()
    return get_settings()
