#!/usr/bin/env python3
"""Command-line access to quotes, time-series bars and the market clock."""

from __future__ import annotations

import argparse
import json
import sys
from typing import Any, Iterable, Optional, Sequence

from loguru import logger
from pydantic import BaseModel

from tradier_client.client import TradierClient
from tradier_client.core.exceptions import TradierClientError
from tradier_client.core.timeutils import parse_timestamp
from tradier_client.dal.timesales import Interval
from tradier_client.logging_utils import setup_logging


def _emit(items: Iterable[Any], out=None) -> int:
    out = out or sys.stdout
    count = 0
    for item in items:
        if isinstance(item, BaseModel):
            line = item.model_dump_json(by_alias=True, exclude_none=True)
        else:
            line = json.dumps(item, default=str)
        out.write(line + "\n")
        count += 1
    return count


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tradier-client", description="Query the brokerage REST API."
    )
    parser.add_argument("--endpoint", default=None,
                        help="Override the REST base URL.")
    parser.add_argument("--retries", type=int, default=None,
                        help="Retry budget per request (default: TRADIER_RETRY_LIMIT).")
    sub = parser.add_subparsers(dest="command", required=True)

    quotes = sub.add_parser("quotes", help="Print quotes as JSON lines.")
    quotes.add_argument("symbols", nargs="+")

    ts = sub.add_parser("timesales", help="Print bars as JSON lines.")
    ts.add_argument("symbol")
    ts.add_argument(
        "--interval",
        default=Interval.MINUTE.value,
        choices=[i.value for i in Interval],
    )
    ts.add_argument("--start", type=parse_timestamp, default=None,
                    help="YYYY-MM-DD, YYYY-MM-DDTHH:MM:SS, HH:MM or unix ms.")
    ts.add_argument("--end", type=parse_timestamp, default=None)

    sub.add_parser("clock", help="Print the market clock.")
    return parser


def run(args: argparse.Namespace, client: TradierClient) -> int:
    if args.command == "quotes":
        _emit(client.get_quotes(args.symbols))
    elif args.command == "timesales":
        sales = client.get_time_sales(args.symbol, args.interval, args.start, args.end)
        logger.info("Fetched {} bar(s) for {}", _emit(sales), args.symbol)
    elif args.command == "clock":
        _emit([client.get_market_state()])
    return 0


def main(argv: Optional[Sequence[str]] = None, client: Optional[TradierClient] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging()
    try:
        client = client or TradierClient(endpoint=args.endpoint, retries=args.retries)
        return run(args, client)
    except TradierClientError as exc:
        logger.error("[cli] {} failed: {}", args.command, exc)
        sys.stderr.write(f"error: {exc}\n")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
