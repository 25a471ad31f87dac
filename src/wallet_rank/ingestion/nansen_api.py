"""Nansen profiler API client producing normalized wallet datasets."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import httpx
from tenacity import (
    AsyncRetrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)
from tenacity.wait import wait_base

from ..analysis.features import build_wallet_dataset
from ..config.settings import ProviderConfig, get_app_config
from ..datalake.schemas import (
    ClosedPosition,
    PnlSummary,
    TokenBalance,
    TokenTransfer,
    Transaction,
    WalletDataset,
)
from ..exceptions import ProviderError
from ..monitoring.logger import get_logger
from ..utils.constants import utc_now

DEFAULT_HEADERS = {"User-Agent": "wallet-rank/1.0", "Content-Type": "application/json"}

TRANSACTIONS_PATH = "/profiler/address/transactions"
PNL_SUMMARY_PATH = "/profiler/address/pnl-summary"
PNL_PATH = "/profiler/address/pnl"
BALANCES_PATH = "/profiler/address/current-balance"


def _is_retryable(exc: BaseException) -> bool:
    if isinstance(exc, httpx.TransportError):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        return status == 429 or status >= 500
    return False


def _as_float(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def _as_int(value: Any) -> int:
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return 0


def _parse_timestamp(raw: Any) -> datetime:
    if not raw:
        raise ValueError("missing block_timestamp")
    parsed = datetime.fromisoformat(str(raw).replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _parse_transfer(item: Dict[str, Any]) -> TokenTransfer:
    return TokenTransfer(
        token_address=str(item.get("token_address") or "").lower(),
        amount=_as_float(item.get("token_amount")),
        value_usd=_as_float(item.get("value_usd")),
        token_symbol=str(item.get("token_symbol") or ""),
    )


def parse_transaction(item: Dict[str, Any]) -> Transaction:
    return Transaction(
        timestamp=_parse_timestamp(item.get("block_timestamp")),
        tokens_sent=tuple(_parse_transfer(leg) for leg in item.get("tokens_sent") or []),
        tokens_received=tuple(_parse_transfer(leg) for leg in item.get("tokens_received") or []),
        source_type=str(item.get("source_type") or ""),
        method=str(item.get("method") or ""),
        tx_hash=str(item.get("transaction_hash") or ""),
        volume_usd=_as_float(item.get("volume_usd")),
    )


def parse_pnl_row(item: Dict[str, Any]) -> ClosedPosition:
    return ClosedPosition(
        token_address=str(item.get("token_address") or "").lower(),
        realized_pnl_usd=_as_float(item.get("pnl_usd_realised")),
        realized_roi_pct=_as_float(item.get("roi_percent_realised")),
        bought_usd=_as_float(item.get("bought_usd")),
        sold_usd=_as_float(item.get("sold_usd")),
        sold_amount=_as_float(item.get("sold_amount")),
        buy_count=_as_int(item.get("nof_buys")),
        sell_count=_as_int(item.get("nof_sells")),
        holding_usd=_as_float(item.get("holding_usd")),
        token_symbol=str(item.get("token_symbol") or ""),
    )


def parse_pnl_summary(payload: Dict[str, Any]) -> PnlSummary:
    return PnlSummary(
        win_rate=_as_float(payload.get("win_rate")),
        realized_pnl_usd=_as_float(payload.get("realized_pnl_usd")),
        realized_pnl_pct=_as_float(payload.get("realized_pnl_percent")),
        traded_times=_as_int(payload.get("traded_times")),
        traded_token_count=_as_int(payload.get("traded_token_count")),
    )


def parse_balance(item: Dict[str, Any]) -> TokenBalance:
    return TokenBalance(
        token_address=str(item.get("token_address") or "").lower(),
        amount=_as_float(item.get("token_amount")),
        price_usd=_as_float(item.get("price_usd")),
        value_usd=_as_float(item.get("value_usd")),
        token_symbol=str(item.get("token_symbol") or ""),
    )


class NansenClient:
    """Async wrapper around the Nansen profiler endpoints with retries."""

    def __init__(
        self,
        config: Optional[ProviderConfig] = None,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        retry_wait: Optional[wait_base] = None,
    ) -> None:
        self._config = config or get_app_config().provider
        self._logger = get_logger(__name__)
        headers = dict(DEFAULT_HEADERS)
        if self._config.nansen_api_key:
            headers["apiKey"] = self._config.nansen_api_key
        else:
            self._logger.warning("Nansen API key not configured; profiler calls will be rejected")
        self._client = httpx.AsyncClient(
            base_url=str(self._config.nansen_base_url).rstrip("/"),
            headers=headers,
            timeout=self._config.request_timeout,
            transport=transport,
        )
        self._retry_wait = retry_wait or wait_exponential(multiplier=1, min=1, max=10)

    async def __aenter__(self) -> "NansenClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _post(self, path: str, body: Dict[str, Any]) -> Dict[str, Any]:
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self._config.retry_attempts),
            wait=self._retry_wait,
            retry=retry_if_exception(_is_retryable),
            reraise=True,
        ):
            with attempt:
                response = await self._client.post(path, json=body)
                response.raise_for_status()
                payload = response.json()
        if not isinstance(payload, dict):
            raise ValueError(f"Unexpected payload type from {path}")
        return payload

    async def _paginate(self, path: str, body: Dict[str, Any], max_pages: int) -> List[Dict[str, Any]]:
        rows: List[Dict[str, Any]] = []
        for page in range(1, max_pages + 1):
            payload = await self._post(
                path,
                {**body, "pagination": {"page": page, "per_page": self._config.page_size}},
            )
            rows.extend(payload.get("data") or [])
            pagination = payload.get("pagination") or {}
            if pagination.get("is_last_page", True):
                break
        return rows

    async def fetch_transactions(self, address: str, start: datetime, end: datetime) -> List[Transaction]:
        body = {
            "address": address,
            "chain": self._config.chain,
            "date": {"from": start.isoformat(), "to": end.isoformat()},
            "hide_spam_token": True,
        }
        rows = await self._paginate(TRANSACTIONS_PATH, body, self._config.max_pages)
        return [parse_transaction(row) for row in rows]

    async def fetch_pnl_summary(self, address: str, start: datetime, end: datetime) -> PnlSummary:
        body = {
            "address": address,
            "chain": self._config.chain,
            "date": {"from": start.isoformat(), "to": end.isoformat()},
        }
        return parse_pnl_summary(await self._post(PNL_SUMMARY_PATH, body))

    async def fetch_pnl(self, address: str, start: datetime, end: datetime) -> List[ClosedPosition]:
        body = {
            "address": address,
            "chain": self._config.chain,
            "date": {"from": start.date().isoformat(), "to": end.date().isoformat()},
        }
        rows = await self._paginate(PNL_PATH, body, self._config.max_pages)
        return [parse_pnl_row(row) for row in rows]

    async def fetch_balances(self, address: str) -> List[TokenBalance]:
        body = {"address": address, "chain": self._config.chain, "hide_spam_token": True}
        rows = await self._paginate(BALANCES_PATH, body, self._config.balance_max_pages)
        return [parse_balance(row) for row in rows]

    async def fetch_wallet_dataset(self, address: str) -> WalletDataset:
        now = utc_now()
        scoring_start = now - timedelta(days=self._config.scoring_window_days)
        age_start = now - timedelta(days=self._config.age_window_days)
        try:
            transactions = await self.fetch_transactions(address, scoring_start, now)
            summary = await self.fetch_pnl_summary(address, scoring_start, now)
            pnl_rows = await self.fetch_pnl(address, scoring_start, now)
            balances = await self.fetch_balances(address)
            history = await self.fetch_transactions(address, age_start, now)
        except httpx.HTTPStatusError as exc:
            self._logger.error(
                "Nansen request failed for %s",
                address,
                extra={"status_code": exc.response.status_code, "url": str(exc.request.url)},
            )
            raise ProviderError(
                f"Nansen returned {exc.response.status_code} for {address}",
                provider="nansen",
                status_code=exc.response.status_code,
            ) from exc
        except (httpx.HTTPError, ValueError) as exc:
            self._logger.error("Error fetching wallet data for %s: %s", address, exc)
            raise ProviderError(f"Nansen request failed for {address}", provider="nansen") from exc

        first_seen = min((tx.timestamp for tx in history), default=None)
        return build_wallet_dataset(
            address,
            transactions,
            pnl_rows,
            balances,
            summary,
            now=now,
            first_transaction_at=first_seen,
        )


__all__ = [
    "NansenClient",
    "parse_balance",
    "parse_pnl_row",
    "parse_pnl_summary",
    "parse_transaction",
]
