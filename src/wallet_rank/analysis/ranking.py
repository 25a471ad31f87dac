"""Maps a score breakdown onto a categorical wallet rank."""

from __future__ import annotations

from typing import Dict, List, Optional, Tuple

from ..config.settings import ScoringConfig, get_app_config
from ..datalake.schemas import Rank, ScoreBreakdown
from ..monitoring.metrics import METRICS

RANK_TRAITS: Dict[Rank, Tuple[str, ...]] = {
    Rank.SMART_MONEY: ("Holds winners", "Trades with discipline", "Avoids rugs"),
    Rank.DIAMOND_HANDS: ("Holds winners", "High conviction"),
    Rank.DEGENERATE: ("Strong edge", "Higher churn"),
    Rank.PAPER_HANDS: ("Sells too early", "Low conviction"),
    Rank.JEETER: ("Overtrades", "Poor edge"),
    Rank.INSUFFICIENT_DATA: (),
}


def traits_for(rank: Rank) -> List[str]:
    return list(RANK_TRAITS.get(rank, ()))


class RankClassifier:
    """First-match decision list over the breakdown flags."""

    def __init__(self, scoring_config: Optional[ScoringConfig] = None) -> None:
        self._config = scoring_config or get_app_config().scoring

    def is_eligible(self, breakdown: ScoreBreakdown) -> bool:
        return (
            breakdown.meets_minimum_thresholds
            and breakdown.composite_score >= self._config.eligibility_score
        )

    def rank(self, breakdown: ScoreBreakdown) -> Rank:
        if not self.is_eligible(breakdown):
            if breakdown.insufficient_data:
                return Rank.INSUFFICIENT_DATA
            if breakdown.extreme_churn and breakdown.poor_edge:
                return Rank.JEETER
            return Rank.PAPER_HANDS
        if breakdown.high_conviction and breakdown.positive_edge and not breakdown.panic_selling:
            return Rank.SMART_MONEY
        if breakdown.high_conviction and breakdown.positive_edge:
            return Rank.DIAMOND_HANDS
        if breakdown.strong_edge and breakdown.higher_churn:
            return Rank.DEGENERATE
        return Rank.PAPER_HANDS

    def classify(self, breakdown: ScoreBreakdown) -> Tuple[Rank, List[str]]:
        rank = self.rank(breakdown)
        METRICS.increment(f"ranking.{rank.value}")
        return rank, traits_for(rank)


__all__ = ["RANK_TRAITS", "RankClassifier", "traits_for"]
