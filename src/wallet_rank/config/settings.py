"""Configuration management for wallet scoring and the referral network."""

from __future__ import annotations

import os
import tomllib
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, cast

from pydantic import AnyHttpUrl, BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..utils.constants import INVITE_CODE_ALPHABET, INVITE_CODE_LENGTH

DEFAULT_CONFIG_FILE = Path("config/app.toml")
CONFIG_FILE_ENV_VAR = "APP_CONFIG_FILE"
PROFILE_ENV_VAR = "WALLET_RANK_PROFILE"
DEFAULT_PROFILE = "default"


def _resolve_config_path() -> Path:
    env_value = os.getenv(CONFIG_FILE_ENV_VAR)
    if env_value:
        candidate = Path(env_value)
        if not candidate.is_absolute():
            candidate = Path.cwd() / candidate
        return candidate
    return Path.cwd() / DEFAULT_CONFIG_FILE


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    result: Dict[str, Any] = {**base}
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(cast(Dict[str, Any], result[key]), value)
        else:
            result[key] = value
    return result


def _select_profile(data: Dict[str, Any]) -> Dict[str, Any]:
    if not data:
        return {}
    base_section = cast(Dict[str, Any], data.get(DEFAULT_PROFILE, {}))
    requested = (os.getenv(PROFILE_ENV_VAR) or DEFAULT_PROFILE).lower()
    if requested != DEFAULT_PROFILE and requested in data:
        return _deep_merge(base_section, cast(Dict[str, Any], data[requested]))
    if base_section:
        return base_section
    return data


def _load_toml_config() -> Tuple[Dict[str, Any], Optional[Path]]:
    path = _resolve_config_path()
    if not path.exists():
        return {}, None
    with path.open("rb") as handle:
        payload = tomllib.load(handle)
    if not isinstance(payload, dict):
        return {}, path
    merged = _select_profile(payload)
    if not isinstance(merged, dict):
        return {}, path
    return dict(merged), path


class ScoringConfig(BaseModel):
    """Data sufficiency gate and eligibility cut-off."""

    min_swaps: int = Field(default=8, ge=0)
    min_closed_positions: int = Field(default=5, ge=0)
    min_wallet_age_days: int = Field(default=60, ge=0)
    min_distinct_assets: int = Field(default=3, ge=0)
    eligibility_score: int = Field(default=70, ge=0, le=100)


class CacheConfig(BaseModel):
    """Wallet dataset cache sizing."""

    dataset_ttl_seconds: int = Field(default=6 * 60 * 60, ge=0)
    max_entries: int = Field(default=4_096, ge=1)


class InviteConfig(BaseModel):
    """Invite code shape and allocation bounds."""

    code_length: int = Field(default=INVITE_CODE_LENGTH, ge=1, le=64)
    alphabet: str = Field(default=INVITE_CODE_ALPHABET)
    max_attempts: int = Field(default=1_000, ge=1)

    @field_validator("alphabet")
    @classmethod
    def _unique_uppercase(cls, value: str) -> str:
        value = value.upper()
        if len(set(value)) != len(value):
            raise ValueError("invite alphabet must not repeat characters")
        if len(value) < 2:
            raise ValueError("invite alphabet needs at least two characters")
        return value


class ReferralConfig(BaseModel):
    """Referral statistics options."""

    top_referrers_limit: int = Field(default=10, ge=0)


class ProviderConfig(BaseModel):
    """Wallet data provider (Nansen profiler API)."""

    nansen_base_url: AnyHttpUrl = Field(default="https://api.nansen.ai/api/v1")
    nansen_api_key: Optional[str] = None
    chain: str = Field(default="ethereum")
    request_timeout: float = Field(default=30.0, ge=1.0, le=120.0)
    page_size: int = Field(default=100, ge=1, le=1_000)
    max_pages: int = Field(default=10, ge=1)
    balance_max_pages: int = Field(default=5, ge=1)
    scoring_window_days: int = Field(default=180, ge=1)
    age_window_days: int = Field(default=365, ge=1)
    retry_attempts: int = Field(default=3, ge=1, le=10)

    @field_validator("request_timeout", mode="before")
    @classmethod
    def _parse_request_timeout(cls, value) -> float:
        if isinstance(value, str):
            return float(value)
        return value


class MonitoringConfig(BaseModel):
    """Logging configuration."""

    log_level: str = Field(default="INFO")


class AppConfig(BaseSettings):
    """Aggregated application configuration."""

    scoring: ScoringConfig = Field(default_factory=ScoringConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    invites: InviteConfig = Field(default_factory=InviteConfig)
    referrals: ReferralConfig = Field(default_factory=ReferralConfig)
    provider: ProviderConfig = Field(default_factory=ProviderConfig)
    monitoring: MonitoringConfig = Field(default_factory=MonitoringConfig)
    config_file: Optional[Path] = None

    model_config = SettingsConfigDict(
        env_file=".env",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        def file_settings(_: Optional[BaseSettings] = None) -> Dict[str, Any]:
            payload, path = _load_toml_config()
            if path is not None:
                payload.setdefault("config_file", str(path))
            return payload

        # Environment variables win over the static config file.
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            file_settings,
            file_secret_settings,
        )


@lru_cache(maxsize=1)
def get_app_config() -> AppConfig:
    """Create a cached application configuration object."""

    return AppConfig()


__all__ = [
    "AppConfig",
    "CacheConfig",
    "InviteConfig",
    "MonitoringConfig",
    "ProviderConfig",
    "ReferralConfig",
    "ScoringConfig",
    "get_app_config",
]
