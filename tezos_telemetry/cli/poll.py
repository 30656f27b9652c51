"""
Poll Tezos network telemetry on an interval:
- aggregate every source into one snapshot (partial failures fall back per source)
- persist it with the visit marker (SQLite), print changes since the last visit

Usage: tezos-telemetry poll [--once] [--interval SEC] [--db PATH] [--log-level INFO] [--log-file PATH]
       tezos-telemetry poll --health
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import signal
import sys
from typing import List, Optional

from .. import config
from ..deltas import format_delta, time_ago
from ..providers import RequestsTransport
from ..service import PollLoop, RefreshOutcome, build_service
from ..sources import Endpoints, check_api_health
from ..timeutils import now_utc_iso

logger = logging.getLogger(__name__)


def _configure_logging(level: str, log_file: Optional[str]) -> None:
    handlers: List[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        handlers=handlers,
        force=True,
    )


def _print_outcome(outcome: RefreshOutcome) -> None:
    ts = now_utc_iso()
    if outcome.error:
        print(f"{ts}  ERR  {outcome.error}", flush=True)
        return
    if not outcome.applied or outcome.snapshot is None:
        print(f"{ts}  SKIP  stale refresh {outcome.generation}", flush=True)
        return
    degraded = f"  degraded={','.join(sorted(outcome.failed_sources))}" if outcome.failed_sources else ""
    print(f"{ts}  OK{degraded}", flush=True)
    print(json.dumps(outcome.snapshot.to_dict(), indent=2, sort_keys=True), flush=True)
    if outcome.deltas:
        since = f" ({time_ago(outcome.since_visit_s)})" if outcome.since_visit_s is not None else ""
        print(f"Since your last visit{since}:", flush=True)
        for metric in outcome.deltas:
            print(f"  {metric.label}: {format_delta(metric)}", flush=True)


async def _health() -> int:
    transport = RequestsTransport(timeout_s=config.http_timeout_s())
    try:
        status = await check_api_health(transport, Endpoints.from_config())
    finally:
        transport.close()
    for name, ok in sorted(status.items()):
        print(f"{name}: {'ok' if ok else 'DOWN'}")
    return 0 if all(status.values()) else 1


async def _run(args: argparse.Namespace) -> int:
    service = build_service(db_path=args.db)
    poller = PollLoop(
        service,
        args.interval,
        on_outcome=_print_outcome,
    )
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, poller.stop)
    except (NotImplementedError, RuntimeError):
        # No loop signal handlers on Windows; KeyboardInterrupt ends the run there.
        pass

    service.start()
    try:
        await poller.run(max_cycles=1 if args.once else None)
        await service.scheduler.join()
    finally:
        await service.close()
    if service.get_snapshot() is None:
        return 1
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(prog="tezos-telemetry poll", description="Poll Tezos network telemetry")
    parser.add_argument("--once", action="store_true", help="Run one refresh and exit")
    parser.add_argument(
        "--interval",
        type=float,
        default=None,
        help=f"Refresh interval in seconds (default: {config.refresh_interval_s():.0f})",
    )
    parser.add_argument("--db", default=None, help="SQLite path for snapshot cache (default from config)")
    parser.add_argument("--log-level", default="INFO", help="Logging level (default: INFO)")
    parser.add_argument("--log-file", default=None, help="Also append log output to this file")
    parser.add_argument("--health", action="store_true", help="Probe TzKT and Octez RPC and exit")
    args = parser.parse_args(argv)

    if args.interval is None:
        args.interval = config.refresh_interval_s()
    if args.interval <= 0:
        print("--interval must be positive", file=sys.stderr)
        return 2
    _configure_logging(args.log_level, args.log_file)

    try:
        if args.health:
            return asyncio.run(_health())
        return asyncio.run(_run(args))
    except KeyboardInterrupt:
        print("\nStopped.")
        return 0


if __name__ == "__main__":
    raise SystemExit(main())
