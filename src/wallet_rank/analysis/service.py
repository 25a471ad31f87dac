"""End-to-end wallet analysis: cached fetch, scoring, ranking and invite issuance."""

from __future__ import annotations

from typing import Awaitable, Callable, Optional

from ..config.settings import AppConfig, get_app_config
from ..datalake.schemas import ReferralStats, WalletAnalysis, WalletDataset
from ..exceptions import ProviderError
from ..ingestion.cache import WalletDatasetCache, wallet_cache_key
from ..monitoring.logger import correlation_scope, get_logger
from ..referrals.graph import FetchDirectReferrals, ReferralGraphAnalyzer
from ..referrals.invite_codes import ExistsCheck, InviteCodeAllocator
from .ranking import RankClassifier
from .scoring import ScoreEngine

FetchWalletDataset = Callable[[str], Awaitable[WalletDataset]]


class WalletAnalysisService:
    """Coordinates the scoring pipeline around injected capabilities.

    ``fetch_dataset`` is any coroutine function returning a
    :class:`WalletDataset` (for example ``NansenClient.fetch_wallet_dataset``).
    Persisting users, snapshots and events is left to the caller.
    """

    def __init__(
        self,
        fetch_dataset: FetchWalletDataset,
        *,
        cache: Optional[WalletDatasetCache] = None,
        score_engine: Optional[ScoreEngine] = None,
        classifier: Optional[RankClassifier] = None,
        allocator: Optional[InviteCodeAllocator] = None,
        code_exists: Optional[ExistsCheck] = None,
        referral_analyzer: Optional[ReferralGraphAnalyzer] = None,
        config: Optional[AppConfig] = None,
    ) -> None:
        app_config = config or get_app_config()
        self._fetch_dataset = fetch_dataset
        self._cache = cache or WalletDatasetCache(app_config.cache)
        self._engine = score_engine or ScoreEngine(app_config.scoring)
        self._classifier = classifier or RankClassifier(app_config.scoring)
        self._allocator = allocator
        self._code_exists = code_exists
        self._referrals = referral_analyzer or ReferralGraphAnalyzer(app_config.referrals)
        self._logger = get_logger(__name__)

    async def load_dataset(self, address: str) -> tuple[WalletDataset, bool]:
        key = wallet_cache_key(address)
        cached = self._cache.get(key)
        if cached is not None:
            return cached, True
        try:
            dataset = await self._fetch_dataset(address)
        except ProviderError:
            raise
        except Exception as exc:  # noqa: BLE001
            raise ProviderError(
                f"Wallet data fetch failed for {address}", provider="wallet_data"
            ) from exc
        self._cache.set(key, dataset)
        return dataset, False

    async def analyze(self, address: str) -> WalletAnalysis:
        key = wallet_cache_key(address)
        with correlation_scope(key[:16]):
            dataset, from_cache = await self.load_dataset(address)
            breakdown = self._engine.score(dataset)
            rank, traits = self._classifier.classify(breakdown)
            eligible = self._classifier.is_eligible(breakdown)

            invite_code: Optional[str] = None
            if eligible and self._allocator is not None and self._code_exists is not None:
                invite_code = await self._allocator.generate(self._code_exists)

            self._logger.info(
                "Analyzed wallet",
                extra={
                    "rank": rank.value,
                    "score": breakdown.composite_score,
                    "eligible": eligible,
                    "from_cache": from_cache,
                },
            )
            return WalletAnalysis(
                address=dataset.address,
                cache_key=key,
                breakdown=breakdown,
                rank=rank,
                traits=traits,
                eligibility=eligible,
                invite_code=invite_code,
                from_cache=from_cache,
            )

    async def invite_stats(self, invite_code: str, fetch: FetchDirectReferrals) -> ReferralStats:
        return await self._referrals.compute_stats(invite_code, fetch)


__all__ = ["FetchWalletDataset", "WalletAnalysisService"]
