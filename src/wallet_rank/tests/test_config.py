from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from wallet_rank.config import settings


def _isolate(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    # Keep a developer's .env out of the picture.
    monkeypatch.chdir(tmp_path)
    for name in (
        "SCORING__MIN_SWAPS",
        "SCORING__ELIGIBILITY_SCORE",
        "PROVIDER__NANSEN_API_KEY",
        "PROVIDER__CHAIN",
        "CACHE__DATASET_TTL_SECONDS",
        settings.PROFILE_ENV_VAR,
    ):
        monkeypatch.delenv(name, raising=False)


def test_app_config_loads_profiles_and_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    _isolate(monkeypatch, tmp_path)
    config_path = tmp_path / "app.toml"
    config_path.write_text(
        """
[default.scoring]
min_swaps = 10
eligibility_score = 72

[default.provider]
chain = "base"
page_size = 50

[strict.scoring]
eligibility_score = 85

[strict.cache]
dataset_ttl_seconds = 600
"""
    )

    monkeypatch.setenv("APP_CONFIG_FILE", str(config_path))
    monkeypatch.setenv(settings.PROFILE_ENV_VAR, "strict")
    monkeypatch.setenv("SCORING__MIN_SWAPS", "12")
    monkeypatch.setenv("PROVIDER__NANSEN_API_KEY", "from-env")

    settings.get_app_config.cache_clear()
    cfg = settings.get_app_config()

    assert cfg.config_file == config_path
    assert cfg.scoring.min_swaps == 12
    assert cfg.scoring.eligibility_score == 85
    assert cfg.scoring.min_closed_positions == 5
    assert cfg.cache.dataset_ttl_seconds == 600
    assert cfg.provider.chain == "base"
    assert cfg.provider.page_size == 50
    assert cfg.provider.nansen_api_key == "from-env"

    settings.get_app_config.cache_clear()


def test_defaults_without_config_file(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    _isolate(monkeypatch, tmp_path)
    monkeypatch.setenv("APP_CONFIG_FILE", str(tmp_path / "missing.toml"))

    settings.get_app_config.cache_clear()
    cfg = settings.get_app_config()

    assert cfg.config_file is None
    assert cfg.scoring.min_swaps == 8
    assert cfg.scoring.min_wallet_age_days == 60
    assert cfg.scoring.eligibility_score == 70
    assert cfg.cache.dataset_ttl_seconds == 21_600
    assert cfg.invites.alphabet == "ABCDEFGHJKLMNPQRSTUVWXYZ"
    assert cfg.invites.code_length == 8
    assert cfg.referrals.top_referrers_limit == 10
    assert cfg.provider.max_pages == 10
    assert cfg.provider.balance_max_pages == 5

    settings.get_app_config.cache_clear()


def test_invalid_values_are_rejected() -> None:
    with pytest.raises(ValidationError):
        settings.ScoringConfig(eligibility_score=101)
    with pytest.raises(ValidationError):
        settings.ProviderConfig(request_timeout="0.5")
