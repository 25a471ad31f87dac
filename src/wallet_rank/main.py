"""Command line entrypoint for scoring a single wallet."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any, Dict, Optional, Sequence

from .analysis.service import WalletAnalysisService
from .config.settings import get_app_config
from .exceptions import WalletRankError
from .ingestion.nansen_api import NansenClient
from .monitoring import METRICS, bootstrap_observability
from .monitoring.logger import get_logger

logger = get_logger(__name__)


async def score_wallet(address: str) -> Dict[str, Any]:
    config = get_app_config()
    async with NansenClient(config.provider) as client:
        service = WalletAnalysisService(client.fetch_wallet_dataset, config=config)
        with METRICS.timer("cli.score.duration_seconds"):
            analysis = await service.analyze(address)
    return {
        "address": analysis.address,
        "rank": analysis.rank.value,
        "traits": analysis.traits,
        "eligible": analysis.eligibility,
        **analysis.breakdown.as_dict(),
    }


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Score wallets on realized trading behavior")
    subcommands = parser.add_subparsers(dest="command", required=True)
    score_parser = subcommands.add_parser("score", help="Fetch, score and rank a wallet")
    score_parser.add_argument("address", help="Wallet address to analyze")
    score_parser.add_argument("--pretty", action="store_true", help="Indent the JSON output")
    score_parser.add_argument(
        "--metrics",
        type=Path,
        default=None,
        help="Write the run's metrics in Prometheus text format to this file",
    )
    args = parser.parse_args(argv)

    bootstrap_observability()
    try:
        result = asyncio.run(score_wallet(args.address))
    except WalletRankError as exc:
        logger.error("Scoring failed: %s", exc.message, extra=exc.details)
        print(json.dumps(exc.to_dict()), file=sys.stderr)
        return 1
    finally:
        if args.metrics is not None:
            args.metrics.write_text(METRICS.export_prometheus(), encoding="utf-8")
    print(json.dumps(result, indent=2 if args.pretty else None))
    return 0


if __name__ == "__main__":
    sys.exit(main())
