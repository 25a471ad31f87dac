"""Invite code allocation and referral tree analytics."""

from .graph import FetchDirectReferrals, ReferralGraphAnalyzer, normalize_code
from .invite_codes import ExistsCheck, InviteCodeAllocator

__all__ = [
    "ExistsCheck",
    "FetchDirectReferrals",
    "InviteCodeAllocator",
    "ReferralGraphAnalyzer",
    "normalize_code",
]
