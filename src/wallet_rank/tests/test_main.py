from __future__ import annotations

import json
from pathlib import Path

import pytest

from wallet_rank import main as cli
from wallet_rank.exceptions import ProviderError
from wallet_rank.monitoring.metrics import METRICS


def test_score_command_prints_json(monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]) -> None:
    async def fake_score(address: str):
        return {"address": address.lower(), "rank": "SmartMoney", "score": 80}

    monkeypatch.setattr(cli, "score_wallet", fake_score)

    assert cli.main(["score", "0xABC"]) == 0
    assert json.loads(capsys.readouterr().out) == {"address": "0xabc", "rank": "SmartMoney", "score": 80}


def test_score_command_reports_provider_errors(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    async def failing(address: str):
        raise ProviderError("Nansen returned 401", provider="nansen", status_code=401)

    monkeypatch.setattr(cli, "score_wallet", failing)

    assert cli.main(["score", "0xabc", "--pretty"]) == 1
    error = json.loads(capsys.readouterr().err.strip().splitlines()[-1])
    assert error["error_type"] == "ProviderError"
    assert error["status_code"] == 401


def test_score_command_writes_prometheus_metrics(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str], tmp_path: Path
) -> None:
    async def fake_score(address: str):
        METRICS.increment("ranking.SmartMoney")
        return {"address": address, "rank": "SmartMoney", "score": 80}

    monkeypatch.setattr(cli, "score_wallet", fake_score)
    target = tmp_path / "wallet-rank.prom"

    assert cli.main(["score", "0xabc", "--metrics", str(target)]) == 0
    capsys.readouterr()
    assert "ranking_SmartMoney 1.0" in target.read_text(encoding="utf-8").splitlines()
