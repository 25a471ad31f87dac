"""Error hierarchy for wallet scoring and referral analytics.

Insufficient wallet data is not an error; it is a regular zero-score result.
Everything here signals a failure the caller has to decide about.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional


class WalletRankError(Exception):
    """Base exception for all wallet_rank errors."""

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None) -> None:
        self.message = message
        self.details = details or {}
        self.timestamp = datetime.now(timezone.utc)
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
            "timestamp": self.timestamp.isoformat(),
        }


class ProviderError(WalletRankError):
    """An external capability (data provider, referral lookup, code check) failed."""

    def __init__(
        self,
        message: str,
        provider: str = "",
        status_code: Optional[int] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, details)
        self.provider = provider
        self.status_code = status_code

    def to_dict(self) -> dict[str, Any]:
        payload = super().to_dict()
        payload["provider"] = self.provider
        payload["status_code"] = self.status_code
        return payload


class CyclicReferralGraph(WalletRankError):
    """An invite code was reached twice while walking a referral tree."""

    def __init__(self, invite_code: str, root_code: str) -> None:
        super().__init__(
            f"Invite code {invite_code} reached twice below {root_code}",
            {"invite_code": invite_code, "root_code": root_code},
        )
        self.invite_code = invite_code
        self.root_code = root_code


class InviteCodeExhausted(WalletRankError):
    """No free invite code was found within the configured number of draws."""

    def __init__(self, attempts: int) -> None:
        super().__init__(
            f"No unused invite code after {attempts} attempts",
            {"attempts": attempts},
        )
        self.attempts = attempts


__all__ = [
    "CyclicReferralGraph",
    "InviteCodeExhausted",
    "ProviderError",
    "WalletRankError",
]
