"""Behavioral scoring of wallets from realized trading activity."""

from __future__ import annotations

from typing import Optional

from ..config.settings import ScoringConfig, get_app_config
from ..datalake.schemas import ScoreBreakdown, WalletDataset
from ..monitoring.logger import get_logger
from ..monitoring.metrics import METRICS
from ..utils.constants import (
    MAX_BEHAVIOR_QUALITY,
    MAX_HOLDING_CONVICTION,
    MAX_REALIZED_EDGE,
    MAX_TRADING_DISCIPLINE,
    round_half_up,
)
from .features import (
    active_span_days,
    coefficient_of_variation,
    finite_values,
    holding_periods_days,
    step_score,
    trade_intervals_days,
    upper_median,
)

# (threshold, points) bands, checked top-down with ``value >= threshold``.
MEDIAN_HOLD_BANDS = ((30.0, 15.0), (14.0, 10.0), (7.0, 5.0))
WIN_RATE_BANDS = ((0.7, 10.0), (0.6, 8.0), (0.5, 6.0), (0.4, 4.0), (0.3, 2.0))
MEDIAN_ROI_BANDS = ((50.0, 10.0), (30.0, 8.0), (20.0, 6.0), (10.0, 4.0), (0.0, 2.0))
PROFIT_FACTOR_BANDS = ((3.0, 5.0), (2.0, 4.0), (1.5, 3.0), (1.0, 2.0), (0.8, 1.0))
ASSET_DIVERSITY_BANDS = ((20, 5.0), (15, 4.0), (10, 3.0), (5, 2.0), (3, 1.0))
WALLET_AGE_BANDS = ((365, 5.0), (180, 4.0), (120, 3.0), (90, 2.0), (60, 1.0))

FALLBACK_HOLDING_DAYS = 30.0
PANIC_SELL_DAYS = 1.0
PANIC_SELL_TOLERANCE = 0.3
RUG_ROI_PCT = -80.0
RUG_MIN_SOLD_USD = 100.0
LOW_CONTINUITY_RATIO = 0.3


def _clamp(value: float, upper: float) -> float:
    return max(0.0, min(value, upper))


class ScoreEngine:
    """Deterministic wallet scoring engine.

    Produces four bounded sub-scores (holding conviction, trading discipline,
    realized edge, behavior quality) whose rounded sum is the composite score.
    Wallets failing the data sufficiency gate get an all-zero breakdown with
    ``insufficient_data`` set.
    """

    def __init__(self, scoring_config: ScoringConfig | None = None) -> None:
        self._config = scoring_config or get_app_config().scoring
        self._logger = get_logger(__name__)

    def meets_minimum_thresholds(self, dataset: WalletDataset) -> bool:
        cfg = self._config
        has_activity = (
            len(dataset.swaps) >= cfg.min_swaps
            or len(dataset.closed_positions) >= cfg.min_closed_positions
        )
        return (
            has_activity
            and dataset.wallet_age_days >= cfg.min_wallet_age_days
            and dataset.distinct_asset_count >= cfg.min_distinct_assets
        )

    def score(self, dataset: WalletDataset) -> ScoreBreakdown:
        if not self.meets_minimum_thresholds(dataset):
            METRICS.increment("scoring.insufficient_data")
            self._logger.info(
                "Wallet %s below data sufficiency thresholds",
                dataset.address,
                extra={
                    "swaps": len(dataset.swaps),
                    "closed_positions": len(dataset.closed_positions),
                    "wallet_age_days": dataset.wallet_age_days,
                    "distinct_assets": dataset.distinct_asset_count,
                },
            )
            return ScoreBreakdown(
                holding_conviction=0.0,
                trading_discipline=0.0,
                realized_edge=0.0,
                behavior_quality=0.0,
                composite_score=0,
                meets_minimum_thresholds=False,
                insufficient_data=True,
            )

        holding_conviction = self.holding_conviction(dataset)
        trading_discipline = self.trading_discipline(dataset)
        realized_edge = self.realized_edge(dataset)
        behavior_quality = self.behavior_quality(dataset)
        total = holding_conviction + trading_discipline + realized_edge + behavior_quality

        breakdown = ScoreBreakdown(
            holding_conviction=holding_conviction,
            trading_discipline=trading_discipline,
            realized_edge=realized_edge,
            behavior_quality=behavior_quality,
            composite_score=int(round_half_up(total)),
            meets_minimum_thresholds=True,
            insufficient_data=False,
            high_conviction=holding_conviction >= 25,
            positive_edge=realized_edge >= 25,
            panic_selling=holding_conviction < 15,
            strong_edge=realized_edge >= 20,
            higher_churn=trading_discipline < 15,
            extreme_churn=trading_discipline < 10,
            poor_edge=realized_edge < 10,
        )
        METRICS.increment("scoring.scored")
        METRICS.observe("scoring.composite", breakdown.composite_score)
        self._logger.info(
            "Scored wallet %s: %d",
            dataset.address,
            breakdown.composite_score,
            extra={
                "holding_conviction": holding_conviction,
                "trading_discipline": trading_discipline,
                "realized_edge": realized_edge,
                "behavior_quality": behavior_quality,
            },
        )
        return breakdown

    def holding_conviction(self, dataset: WalletDataset) -> float:
        if not any(position.realized_pnl_usd > 0 for position in dataset.closed_positions):
            return 0.0

        periods = holding_periods_days(dataset.transactions)
        if not periods:
            periods = [FALLBACK_HOLDING_DAYS]
        count = len(periods)

        score = step_score(upper_median(periods), MEDIAN_HOLD_BANDS)
        held_14 = sum(1 for days in periods if days >= 14) / count
        held_30 = sum(1 for days in periods if days >= 30) / count
        score += min(5.0, held_14 * 10)
        score += min(5.0, held_30 * 10)

        panic_fraction = sum(1 for days in periods if days < PANIC_SELL_DAYS) / count
        if panic_fraction > PANIC_SELL_TOLERANCE:
            score -= min(5.0, panic_fraction * 10)
        return _clamp(score, MAX_HOLDING_CONVICTION)

    def trading_discipline(self, dataset: WalletDataset) -> float:
        transactions = dataset.transactions
        if not transactions:
            return 0.0

        score = 0.0
        if len(transactions) >= 2:
            variation = coefficient_of_variation(trade_intervals_days(transactions))
            if variation is not None:
                if variation < 0.5:
                    score += 10
                elif variation < 1.0:
                    score += 7
                elif variation < 1.5:
                    score += 4

        addressed_rows = [row for row in dataset.pnl_details if row.token_address]
        traded_assets = {row.token_address.lower() for row in addressed_rows}
        if traded_assets:
            trade_count = sum(row.buy_count + row.sell_count for row in addressed_rows)
            churn = trade_count / len(traded_assets)
            if churn <= 2:
                score += 10
            elif churn <= 4:
                score += 7
            elif churn <= 6:
                score += 4

        if dataset.wallet_age_days > 0:
            trades_per_day = len(transactions) / dataset.wallet_age_days
            if trades_per_day > 5:
                score -= 5
            elif trades_per_day > 3:
                score -= 3
            elif trades_per_day > 2:
                score -= 1
        return _clamp(score, MAX_TRADING_DISCIPLINE)

    def realized_edge(self, dataset: WalletDataset) -> float:
        positions = dataset.closed_positions
        if not positions:
            return 0.0

        win_rate = dataset.pnl_summary.win_rate if dataset.pnl_summary else 0.0
        score = step_score(win_rate, WIN_RATE_BANDS)

        rois = finite_values(position.realized_roi_pct for position in positions)
        median_roi = upper_median(rois)
        if median_roi is not None:
            score += step_score(median_roi, MEDIAN_ROI_BANDS)
            score += self._tail_loss_points(rois)

        score += self._profit_factor_points(
            finite_values(position.realized_pnl_usd for position in positions)
        )
        return _clamp(score, MAX_REALIZED_EDGE)

    def _tail_loss_points(self, rois: list[float]) -> float:
        losses = [roi for roi in rois if roi < 0]
        if not losses:
            return 5.0
        worst = min(losses)
        average = sum(losses) / len(losses)
        if worst >= -20 and average >= -10:
            return 5.0
        if worst >= -40 and average >= -20:
            return 3.0
        if worst >= -60 and average >= -30:
            return 1.0
        return 0.0

    def _profit_factor_points(self, pnls: list[float]) -> float:
        total_profit = sum(pnl for pnl in pnls if pnl > 0)
        total_loss = abs(sum(pnl for pnl in pnls if pnl < 0))
        if total_loss == 0:
            return 5.0 if total_profit > 0 else 0.0
        return step_score(total_profit / total_loss, PROFIT_FACTOR_BANDS)

    def behavior_quality(self, dataset: WalletDataset) -> float:
        score = step_score(dataset.distinct_asset_count, ASSET_DIVERSITY_BANDS)

        details = dataset.pnl_details
        if details:
            rugged = sum(
                1
                for row in details
                if row.realized_roi_pct < RUG_ROI_PCT and row.sold_usd > RUG_MIN_SOLD_USD
            )
            rug_fraction = rugged / len(details)
            if rug_fraction > 0.2:
                score -= 5
            elif rug_fraction > 0.1:
                score -= 3
            elif rug_fraction > 0.05:
                score -= 1

        score += step_score(dataset.wallet_age_days, WALLET_AGE_BANDS)

        if len(dataset.transactions) >= 2 and dataset.wallet_age_days > 0:
            continuity = active_span_days(dataset.transactions) / dataset.wallet_age_days
            if continuity < LOW_CONTINUITY_RATIO:
                score -= 2
        return _clamp(score, MAX_BEHAVIOR_QUALITY)


__all__ = ["ScoreEngine"]
