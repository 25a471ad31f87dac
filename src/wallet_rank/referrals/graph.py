"""Reconstruction and summary statistics of invite-code referral trees.

Users join with an invite code (``referred_by_invite_code``) and eligible users
are issued a code of their own, so every issued code roots a subtree. The tree
below a code is walked depth-first in the order the lookup capability returns
users; that order drives the tie-breaks of ``top_referrers``.
"""

from __future__ import annotations

from collections import Counter, defaultdict
from typing import Awaitable, Callable, Dict, FrozenSet, Iterator, List, Optional, Tuple

from ..config.settings import ReferralConfig, get_app_config
from ..datalake.schemas import ReferralNode, ReferralStats, TopReferrer
from ..exceptions import CyclicReferralGraph, ProviderError
from ..monitoring.logger import get_logger
from ..monitoring.metrics import METRICS
from ..utils.constants import round_half_up

FetchDirectReferrals = Callable[[str], Awaitable[List[ReferralNode]]]


def normalize_code(code: str) -> str:
    return code.strip().upper()


class ReferralGraphAnalyzer:
    """Computes :class:`ReferralStats` for the subtree below an invite code."""

    def __init__(self, config: Optional[ReferralConfig] = None) -> None:
        self._config = config or get_app_config().referrals
        self._logger = get_logger(__name__)

    async def _fetch(self, fetch: FetchDirectReferrals, code: str) -> List[ReferralNode]:
        try:
            return list(await fetch(code))
        except ProviderError:
            raise
        except Exception as exc:  # noqa: BLE001
            raise ProviderError(
                f"Referral lookup failed for {code}", provider="referrals"
            ) from exc

    async def collect_tree(self, root_code: str, fetch: FetchDirectReferrals) -> List[ReferralNode]:
        """Every user below ``root_code``, in depth-first pre-order.

        Users are not de-duplicated by id; an invite code reached a second
        time raises :class:`CyclicReferralGraph`.
        """

        root = normalize_code(root_code)
        visited = {root}
        direct = await self._fetch(fetch, root)
        tree: List[ReferralNode] = list(direct)
        stack: List[Iterator[ReferralNode]] = [iter(direct)]
        while stack:
            user = next(stack[-1], None)
            if user is None:
                stack.pop()
                continue
            if not user.invite_code_issued:
                continue
            code = normalize_code(user.invite_code_issued)
            if code in visited:
                raise CyclicReferralGraph(code, root)
            visited.add(code)
            children = await self._fetch(fetch, code)
            tree.extend(children)
            stack.append(iter(children))
        return tree

    async def compute_stats(self, root_code: str, fetch: FetchDirectReferrals) -> ReferralStats:
        root = normalize_code(root_code)
        tree = await self.collect_tree(root, fetch)

        total = len(tree)
        eligible = sum(1 for user in tree if user.eligibility)
        eligibility_rate = round_half_up(eligible / total, 2) if total else 0.0

        rank_distribution: Dict[str, int] = {}
        for user in tree:
            rank = user.rank or ""
            rank_distribution[rank] = rank_distribution.get(rank, 0) + 1

        stats = ReferralStats(
            invite_code=root,
            total_submissions=total,
            eligibility_rate=eligibility_rate,
            rank_distribution=rank_distribution,
            referral_depth=self.referral_depth(root, tree),
            top_referrers=self.top_referrers(tree),
        )
        METRICS.increment("referrals.stats_computed")
        self._logger.info(
            "Computed referral stats for %s",
            root,
            extra={"total_submissions": total, "referral_depth": stats.referral_depth},
        )
        return stats

    def referral_depth(self, root_code: str, tree: List[ReferralNode]) -> int:
        """Longest chain of code issuance starting at a direct referral of the root.

        A direct referral who issued a code counts as depth 1; every user who
        joined with a code on the chain adds one more, over all branches.
        """

        root = normalize_code(root_code)
        joiners: Dict[str, List[ReferralNode]] = defaultdict(list)
        for user in tree:
            if user.referred_by_invite_code:
                joiners[normalize_code(user.referred_by_invite_code)].append(user)

        max_depth = 0
        stack: List[Tuple[str, int, FrozenSet[str]]] = [
            (normalize_code(user.invite_code_issued), 1, frozenset({root}))
            for user in joiners.get(root, [])
            if user.invite_code_issued
        ]
        while stack:
            code, depth, seen = stack.pop()
            if code in seen:
                raise CyclicReferralGraph(code, root)
            max_depth = max(max_depth, depth)
            for child in joiners.get(code, []):
                max_depth = max(max_depth, depth + 1)
                if child.invite_code_issued:
                    stack.append((normalize_code(child.invite_code_issued), depth + 1, seen | {code}))
        return max_depth

    def top_referrers(self, tree: List[ReferralNode]) -> List[TopReferrer]:
        joins = Counter(
            normalize_code(user.referred_by_invite_code)
            for user in tree
            if user.referred_by_invite_code
        )
        counts: Dict[str, int] = {}
        for user in tree:
            if not user.invite_code_issued or user.user_id in counts:
                continue
            referrals = joins.get(normalize_code(user.invite_code_issued), 0)
            if referrals:
                counts[user.user_id] = referrals
        # sorted() is stable, so equal counts keep encounter order.
        ranked = sorted(counts.items(), key=lambda item: item[1], reverse=True)
        limit = self._config.top_referrers_limit
        return [TopReferrer(user_id=user_id, referrals=referrals) for user_id, referrals in ranked[:limit]]


__all__ = ["FetchDirectReferrals", "ReferralGraphAnalyzer", "normalize_code"]
