from __future__ import annotations

import pytest

from wallet_rank.datalake.schemas import WalletDataset
from wallet_rank.monitoring.metrics import METRICS
from wallet_rank.tests.factories import build_smart_wallet


@pytest.fixture
def smart_wallet() -> WalletDataset:
    return build_smart_wallet()


@pytest.fixture(autouse=True)
def _reset_metrics():
    METRICS.reset()
    yield
    METRICS.reset()
