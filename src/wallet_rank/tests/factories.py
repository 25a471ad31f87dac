from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Iterable

from wallet_rank.analysis.features import build_wallet_dataset
from wallet_rank.datalake.schemas import (
    ClosedPosition,
    PnlSummary,
    TokenTransfer,
    Transaction,
    WalletDataset,
)

T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)
USDC = "0xa0b86991c6218b36c1d19d4a2e9eb0ce3606eb48"


def at(days: float) -> datetime:
    return T0 + timedelta(days=days)


def tx(
    days: float,
    sent: Iterable[str] = (),
    received: Iterable[str] = (),
    source: str = "",
) -> Transaction:
    return Transaction(
        timestamp=at(days),
        tokens_sent=tuple(TokenTransfer(token_address=token, amount=1.0) for token in sent),
        tokens_received=tuple(TokenTransfer(token_address=token, amount=1.0) for token in received),
        source_type=source,
    )


def build_smart_wallet() -> WalletDataset:
    """Ten tokens bought every six days and each sold sixty days later.

    Expected sub-scores: holding 25, discipline 20, edge 28, behavior 7 (=80).
    """

    tokens = [f"0xtoken{index}" for index in range(10)]
    transactions = []
    for index, token in enumerate(tokens):
        transactions.append(tx(6 * index, sent=[USDC], received=[token]))
        transactions.append(tx(60 + 6 * index, sent=[token], received=[USDC]))
    pnl_rows = []
    for index, token in enumerate(tokens):
        winner = index < 8
        pnl_rows.append(
            ClosedPosition(
                token_address=token,
                realized_pnl_usd=400.0 if winner else -50.0,
                realized_roi_pct=80.0 if winner else -15.0,
                bought_usd=500.0,
                sold_usd=900.0 if winner else 450.0,
                sold_amount=10.0,
                buy_count=1,
                sell_count=1,
            )
        )
    return build_wallet_dataset(
        "0xSmartWallet",
        transactions,
        pnl_rows,
        pnl_summary=PnlSummary(win_rate=0.8, traded_times=20, traded_token_count=10),
        now=at(300),
    )
