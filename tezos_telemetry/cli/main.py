"""
Top-level CLI dispatcher: tezos-telemetry <command> [args...].
"""

from __future__ import annotations

import argparse
import sys
from typing import List, Optional


def main(argv: Optional[List[str]] = None) -> int:
    if argv is None:
        argv = sys.argv[1:]
    parser = argparse.ArgumentParser(
        prog="tezos-telemetry",
        description="Tezos network telemetry poller",
    )
    subparsers = parser.add_subparsers(dest="command", help="command")
    subparsers.add_parser("poll", help="Run the poll loop (see poll --help)", add_help=False)
    subparsers.add_parser("health", help="Probe upstream APIs", add_help=False)

    args, rest = parser.parse_known_args(argv)
    if not args.command:
        parser.print_help()
        return 0

    from tezos_telemetry.cli import poll as poll_mod

    if args.command == "health":
        return poll_mod.main(["--health"] + rest)
    return poll_mod.main(rest)


if __name__ == "__main__":
    raise SystemExit(main())
