"""Data models shared by ingestion, scoring and referral analytics."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


@dataclass(frozen=True, slots=True)
class TokenTransfer:
    """A single token leg of a transaction."""

    token_address: str
    amount: float = 0.0
    value_usd: float = 0.0
    token_symbol: str = ""


@dataclass(frozen=True, slots=True)
class Transaction:
    """On-chain transaction as reported by the data provider."""

    timestamp: datetime
    tokens_sent: Tuple[TokenTransfer, ...] = ()
    tokens_received: Tuple[TokenTransfer, ...] = ()
    source_type: str = ""
    method: str = ""
    tx_hash: str = ""
    volume_usd: float = 0.0


@dataclass(frozen=True, slots=True)
class ClosedPosition:
    """Per-token realized PnL row.

    The provider returns one row per traded token; rows with a positive
    ``sold_amount`` are the wallet's closed positions.
    """

    token_address: str
    realized_pnl_usd: float = 0.0
    realized_roi_pct: float = 0.0
    bought_usd: float = 0.0
    sold_usd: float = 0.0
    sold_amount: float = 0.0
    buy_count: int = 0
    sell_count: int = 0
    holding_usd: float = 0.0
    token_symbol: str = ""


@dataclass(frozen=True, slots=True)
class PnlSummary:
    """Wallet-level realized PnL summary."""

    win_rate: float = 0.0
    realized_pnl_usd: float = 0.0
    realized_pnl_pct: float = 0.0
    traded_times: int = 0
    traded_token_count: int = 0


@dataclass(frozen=True, slots=True)
class TokenBalance:
    """Current holding of a token."""

    token_address: str
    amount: float = 0.0
    price_usd: float = 0.0
    value_usd: float = 0.0
    token_symbol: str = ""


@dataclass(frozen=True, slots=True)
class WalletDataset:
    """Normalized, read-only view of a wallet's activity."""

    address: str
    transactions: Tuple[Transaction, ...] = ()
    swaps: Tuple[Transaction, ...] = ()
    pnl_details: Tuple[ClosedPosition, ...] = ()
    closed_positions: Tuple[ClosedPosition, ...] = ()
    pnl_summary: Optional[PnlSummary] = None
    balances: Tuple[TokenBalance, ...] = ()
    wallet_age_days: int = 0
    distinct_asset_count: int = 0
    first_transaction_at: Optional[datetime] = None


@dataclass(frozen=True, slots=True)
class ScoreBreakdown:
    """Outcome of scoring one wallet dataset."""

    holding_conviction: float
    trading_discipline: float
    realized_edge: float
    behavior_quality: float
    composite_score: int
    meets_minimum_thresholds: bool
    insufficient_data: bool = False
    high_conviction: bool = False
    positive_edge: bool = False
    panic_selling: bool = False
    strong_edge: bool = False
    higher_churn: bool = False
    extreme_churn: bool = False
    poor_edge: bool = False

    def as_dict(self) -> Dict[str, Any]:
        return {
            "score": self.composite_score,
            "metrics": {
                "holding_conviction": self.holding_conviction,
                "trading_discipline": self.trading_discipline,
                "realized_edge": self.realized_edge,
                "behavior_quality": self.behavior_quality,
            },
            "meets_minimum_thresholds": self.meets_minimum_thresholds,
            "flags": {
                "insufficient_data": self.insufficient_data,
                "high_conviction": self.high_conviction,
                "positive_edge": self.positive_edge,
                "panic_selling": self.panic_selling,
                "strong_edge": self.strong_edge,
                "higher_churn": self.higher_churn,
                "extreme_churn": self.extreme_churn,
                "poor_edge": self.poor_edge,
            },
        }


class Rank(str, Enum):
    """Categorical wallet rank."""

    SMART_MONEY = "SmartMoney"
    DIAMOND_HANDS = "DiamondHands"
    DEGENERATE = "Degenerate"
    PAPER_HANDS = "PaperHands"
    JEETER = "Jeeter"
    INSUFFICIENT_DATA = "InsufficientData"


@dataclass(frozen=True, slots=True)
class ReferralNode:
    """A user as seen by the referral graph."""

    user_id: str
    invite_code_issued: Optional[str] = None
    referred_by_invite_code: Optional[str] = None
    rank: Optional[str] = None
    eligibility: bool = False


@dataclass(frozen=True, slots=True)
class TopReferrer:
    user_id: str
    referrals: int


@dataclass(slots=True)
class ReferralStats:
    """Aggregate statistics for the subtree below an invite code."""

    invite_code: str
    total_submissions: int = 0
    eligibility_rate: float = 0.0
    rank_distribution: Dict[str, int] = field(default_factory=dict)
    referral_depth: int = 0
    top_referrers: List[TopReferrer] = field(default_factory=list)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "invite_code": self.invite_code,
            "total_submissions": self.total_submissions,
            "eligibility_rate": self.eligibility_rate,
            "rank_distribution": dict(self.rank_distribution),
            "referral_depth": self.referral_depth,
            "top_referrers": [
                {"user_id": item.user_id, "referrals": item.referrals} for item in self.top_referrers
            ],
        }


@dataclass(slots=True)
class WalletAnalysis:
    """Result of analysing one wallet end to end."""

    address: str
    cache_key: str
    breakdown: ScoreBreakdown
    rank: Rank
    traits: List[str] = field(default_factory=list)
    eligibility: bool = False
    invite_code: Optional[str] = None
    from_cache: bool = False


__all__ = [
    "ClosedPosition",
    "PnlSummary",
    "Rank",
    "ReferralNode",
    "ReferralStats",
    "ScoreBreakdown",
    "TokenBalance",
    "TokenTransfer",
    "TopReferrer",
    "Transaction",
    "WalletAnalysis",
    "WalletDataset",
]
