"""Feature engineering utilities that turn wallet activity into scoring inputs."""

from __future__ import annotations

import math
from collections import defaultdict, deque
from datetime import datetime
from typing import Deque, Dict, Iterable, List, Optional, Sequence

from ..datalake.schemas import (
    ClosedPosition,
    PnlSummary,
    TokenBalance,
    Transaction,
    WalletDataset,
)
from ..utils.constants import SECONDS_PER_DAY, utc_now

SWAP_SOURCE_HINTS = ("dex", "swap")


def is_swap(transaction: Transaction) -> bool:
    """DEX-like trade: tagged as dex/swap by the provider or exchanging tokens both ways."""

    source = (transaction.source_type or "").lower()
    if any(hint in source for hint in SWAP_SOURCE_HINTS):
        return True
    return bool(transaction.tokens_sent) and bool(transaction.tokens_received)


def distinct_assets(transactions: Iterable[Transaction]) -> int:
    assets = set()
    for transaction in transactions:
        for transfer in (*transaction.tokens_sent, *transaction.tokens_received):
            if transfer.token_address:
                assets.add(transfer.token_address.lower())
    return len(assets)


def wallet_age_days(first_seen: Optional[datetime], now: datetime) -> int:
    if first_seen is None:
        return 0
    seconds = (now - first_seen).total_seconds()
    return max(int(seconds // SECONDS_PER_DAY), 0)


def build_wallet_dataset(
    address: str,
    transactions: Sequence[Transaction],
    pnl_details: Sequence[ClosedPosition] = (),
    balances: Sequence[TokenBalance] = (),
    pnl_summary: Optional[PnlSummary] = None,
    *,
    now: Optional[datetime] = None,
    first_transaction_at: Optional[datetime] = None,
) -> WalletDataset:
    """Derive swaps, closed positions, age and asset count from raw activity."""

    reference = now or utc_now()
    ordered = tuple(sorted(transactions, key=lambda tx: tx.timestamp))
    first_seen = first_transaction_at
    if first_seen is None and ordered:
        first_seen = ordered[0].timestamp
    return WalletDataset(
        address=address.lower(),
        transactions=ordered,
        swaps=tuple(tx for tx in ordered if is_swap(tx)),
        pnl_details=tuple(pnl_details),
        closed_positions=tuple(row for row in pnl_details if row.sold_amount > 0),
        pnl_summary=pnl_summary,
        balances=tuple(balances),
        wallet_age_days=wallet_age_days(first_seen, reference),
        distinct_asset_count=distinct_assets(ordered),
        first_transaction_at=first_seen,
    )


def holding_periods_days(transactions: Iterable[Transaction]) -> List[float]:
    """Match sends against the oldest outstanding receive of the same token (FIFO)."""

    inbound: Dict[str, Deque[datetime]] = defaultdict(deque)
    periods: List[float] = []
    for transaction in sorted(transactions, key=lambda tx: tx.timestamp):
        for transfer in transaction.tokens_received:
            inbound[transfer.token_address.lower()].append(transaction.timestamp)
        for transfer in transaction.tokens_sent:
            queue = inbound.get(transfer.token_address.lower())
            if not queue:
                continue
            received_at = queue.popleft()
            days = (transaction.timestamp - received_at).total_seconds() / SECONDS_PER_DAY
            if days > 0:
                periods.append(days)
    return periods


def trade_intervals_days(transactions: Iterable[Transaction]) -> List[float]:
    timestamps = sorted(tx.timestamp for tx in transactions)
    return [
        (later - earlier).total_seconds() / SECONDS_PER_DAY
        for earlier, later in zip(timestamps, timestamps[1:])
    ]


def active_span_days(transactions: Sequence[Transaction]) -> float:
    if len(transactions) < 2:
        return 0.0
    timestamps = [tx.timestamp for tx in transactions]
    return (max(timestamps) - min(timestamps)).total_seconds() / SECONDS_PER_DAY


def finite_values(values: Iterable[float]) -> List[float]:
    return [float(value) for value in values if value is not None and math.isfinite(value)]


def upper_median(values: Iterable[float]) -> Optional[float]:
    """Element at ``floor(n / 2)`` of the ascending sort; ``None`` when empty."""

    ordered = sorted(values)
    if not ordered:
        return None
    return ordered[len(ordered) // 2]


def coefficient_of_variation(values: Sequence[float]) -> Optional[float]:
    """Population standard deviation over mean; ``None`` when undefined."""

    if not values:
        return None
    average = sum(values) / len(values)
    if average <= 0:
        return None
    variance = sum((value - average) ** 2 for value in values) / len(values)
    return math.sqrt(variance) / average


def step_score(value: float, bands: Sequence[tuple[float, float]]) -> float:
    """Return the points of the first ``(threshold, points)`` band with ``value >= threshold``."""

    for threshold, points in bands:
        if value >= threshold:
            return points
    return 0.0


__all__ = [
    "active_span_days",
    "build_wallet_dataset",
    "coefficient_of_variation",
    "distinct_assets",
    "finite_values",
    "holding_periods_days",
    "is_swap",
    "step_score",
    "trade_intervals_days",
    "upper_median",
    "wallet_age_days",
]
