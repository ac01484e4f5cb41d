#!/usr/bin/env python3
"""Detect chart patterns in candle CSV files.

Usage:
    python scripts/detect_patterns.py --instrument btc_jpy --timeframe 1day
    python scripts/detect_patterns.py --instrument btc_jpy --patterns double_top triangle
    python scripts/detect_patterns.py --instrument btc_jpy --forming --output forming.json
"""

import argparse
import json
from pathlib import Path

from chartscan.config import get_logger, get_settings, setup_logging
from chartscan.data import CsvCandleProvider
from chartscan.engine import detect_forming_patterns, detect_patterns

logger = get_logger("scripts.detect_patterns")


def main():
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Detect chart patterns in candle data")
    parser.add_argument("--instrument", required=True, help="Instrument identifier (e.g., btc_jpy)")
    parser.add_argument(
        "--timeframe", default=settings.DEFAULT_TIMEFRAME,
        help="Candle timeframe label"
    )
    parser.add_argument(
        "--limit", type=int, default=None,
        help="Number of most recent candles to analyze"
    )
    parser.add_argument(
        "--data-dir", type=Path, default=None,
        help="Directory holding <instrument>_<timeframe>.csv files"
    )
    parser.add_argument(
        "--patterns", nargs="+", default=[],
        help="Pattern types to detect (default: all)"
    )
    parser.add_argument(
        "--forming", action="store_true",
        help="Score forming patterns instead of running full detection"
    )
    parser.add_argument(
        "--output", type=Path, default=None,
        help="Output JSON file for the result"
    )
    parser.add_argument("--log-level", default=None, help="Logging level")
    args = parser.parse_args()

    setup_logging(args.log_level)
    provider = CsvCandleProvider(root=args.data_dir)
    options = {"patterns": args.patterns}

    if args.forming:
        result = detect_forming_patterns(provider, args.instrument, args.timeframe, args.limit, options)
    else:
        result = detect_patterns(provider, args.instrument, args.timeframe, args.limit, options)

    if not result.ok:
        logger.warning(result.summary)
    else:
        logger.info(result.summary)

    payload = result.model_dump(mode="json")
    if args.output:
        args.output.parent.mkdir(parents=True, exist_ok=True)
        with open(args.output, "w") as f:
            json.dump(payload, f, indent=2, default=str)
        logger.info(f"Result saved to {args.output}")
    else:
        print(json.dumps(payload, indent=2, default=str))


if __name__ == "__main__":
    main()
