from __future__ import annotations

import asyncio
from typing import Dict, List

import pytest

from wallet_rank.config.settings import ReferralConfig
from wallet_rank.datalake.schemas import ReferralNode, TopReferrer
from wallet_rank.exceptions import CyclicReferralGraph, ProviderError
from wallet_rank.monitoring.metrics import METRICS
from wallet_rank.referrals import ReferralGraphAnalyzer


class DirectoryStub:
    """In-memory stand-in for the user store, keyed by the joining invite code."""

    def __init__(self, users: List[ReferralNode]) -> None:
        self.users = users
        self.calls: List[str] = []

    async def __call__(self, code: str) -> List[ReferralNode]:
        self.calls.append(code)
        return [
            user
            for user in self.users
            if user.referred_by_invite_code and user.referred_by_invite_code.upper() == code
        ]


def _node(user_id: str, joined_with: str, issued: str | None = None, rank: str = "PaperHands") -> ReferralNode:
    return ReferralNode(
        user_id=user_id,
        invite_code_issued=issued,
        referred_by_invite_code=joined_with,
        rank=rank,
        eligibility=issued is not None,
    )


def _analyzer(limit: int = 10) -> ReferralGraphAnalyzer:
    return ReferralGraphAnalyzer(ReferralConfig(top_referrers_limit=limit))


def test_two_level_tree_stats() -> None:
    directory = DirectoryStub(
        [
            _node("u1", "ABC12345", issued="DEF67890", rank="SmartMoney"),
            _node("u2", "ABC12345"),
            _node("u3", "DEF67890"),
        ]
    )

    stats = asyncio.run(_analyzer().compute_stats("abc12345", directory))

    assert stats.invite_code == "ABC12345"
    assert stats.total_submissions == 3
    assert stats.referral_depth == 2
    assert stats.eligibility_rate == 0.33
    assert stats.rank_distribution == {"SmartMoney": 1, "PaperHands": 2}
    assert stats.top_referrers == [TopReferrer(user_id="u1", referrals=1)]
    assert directory.calls == ["ABC12345", "DEF67890"]
    assert METRICS.get("referrals.stats_computed") == 1


def test_empty_tree_returns_zeroes() -> None:
    stats = asyncio.run(_analyzer().compute_stats("NOBODYXX", DirectoryStub([])))

    assert stats.total_submissions == 0
    assert stats.eligibility_rate == 0.0
    assert stats.referral_depth == 0
    assert stats.rank_distribution == {}
    assert stats.top_referrers == []
    assert stats.as_dict()["top_referrers"] == []


def test_depth_first_order_drives_tie_breaks() -> None:
    directory = DirectoryStub(
        [
            _node("a", "ROOTCODE", issued="AAAAAAAA"),
            _node("b", "ROOTCODE", issued="BBBBBBBB"),
            _node("c", "AAAAAAAA", issued="CCCCCCCC"),
            _node("d", "BBBBBBBB"),
            _node("e", "CCCCCCCC"),
        ]
    )
    analyzer = _analyzer()

    tree = asyncio.run(analyzer.collect_tree("ROOTCODE", directory))
    assert [user.user_id for user in tree] == ["a", "b", "c", "e", "d"]

    stats = asyncio.run(analyzer.compute_stats("ROOTCODE", directory))
    assert [item.user_id for item in stats.top_referrers] == ["a", "b", "c"]
    assert stats.referral_depth == 3


def test_top_referrers_sorted_and_limited() -> None:
    users = [
        _node("quiet", "ROOTCODE", issued="QQQQQQQQ"),
        _node("busy", "ROOTCODE", issued="BUSYBUSY"),
        _node("mid", "ROOTCODE", issued="MIDMIDMI"),
        _node("q1", "QQQQQQQQ"),
    ]
    users += [_node(f"b{i}", "BUSYBUSY") for i in range(3)]
    users += [_node(f"m{i}", "MIDMIDMI") for i in range(2)]

    stats = asyncio.run(_analyzer(limit=2).compute_stats("ROOTCODE", DirectoryStub(users)))

    assert stats.top_referrers == [
        TopReferrer(user_id="busy", referrals=3),
        TopReferrer(user_id="mid", referrals=2),
    ]


def test_users_reachable_twice_are_counted_twice() -> None:
    class DuplicatingDirectory:
        async def __call__(self, code: str) -> List[ReferralNode]:
            children: Dict[str, List[ReferralNode]] = {
                "ROOTCODE": [_node("x", "ROOTCODE", issued="XXXXXXXX")],
                "XXXXXXXX": [_node("x", "XXXXXXXX"), _node("y", "XXXXXXXX")],
            }
            return children.get(code, [])

    stats = asyncio.run(_analyzer().compute_stats("ROOTCODE", DuplicatingDirectory()))
    assert stats.total_submissions == 3


def test_cycle_fails_fast() -> None:
    directory = DirectoryStub(
        [
            _node("x", "LOOPCODE", issued="XXXXXXXX"),
            _node("y", "XXXXXXXX", issued="LOOPCODE"),
        ]
    )

    with pytest.raises(CyclicReferralGraph) as excinfo:
        asyncio.run(_analyzer().compute_stats("LOOPCODE", directory))

    assert excinfo.value.invite_code == "LOOPCODE"
    assert excinfo.value.root_code == "LOOPCODE"


def test_lookup_failure_surfaces_as_provider_error() -> None:
    async def broken(code: str) -> List[ReferralNode]:
        raise ConnectionError("database unavailable")

    with pytest.raises(ProviderError) as excinfo:
        asyncio.run(_analyzer().compute_stats("ROOTCODE", broken))

    assert excinfo.value.provider == "referrals"
    assert isinstance(excinfo.value.__cause__, ConnectionError)


def test_depth_follows_later_joiners() -> None:
    directory = DirectoryStub(
        [
            _node("a", "ROOTCODE", issued="AAAAAAAA"),
            _node("b", "AAAAAAAA"),
            _node("c", "AAAAAAAA", issued="CCCCCCCC"),
            _node("d", "CCCCCCCC"),
        ]
    )

    stats = asyncio.run(_analyzer().compute_stats("ROOTCODE", directory))

    assert stats.total_submissions == 4
    assert stats.referral_depth == 3


def test_depth_guards_against_cycles_in_a_collected_tree() -> None:
    tree = [
        _node("x", "ROOTCODE", issued="XXXXXXXX"),
        _node("y", "XXXXXXXX", issued="YYYYYYYY"),
        _node("z", "YYYYYYYY", issued="XXXXXXXX"),
    ]

    with pytest.raises(CyclicReferralGraph):
        _analyzer().referral_depth("ROOTCODE", tree)
