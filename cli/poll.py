#!/usr/bin/env python3
"""
Poll Tezos network telemetry into the local snapshot store.
Usage: python cli/poll.py [--once] [--interval SEC] [--db PATH] [--health]
"""

from __future__ import annotations

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from tezos_telemetry.cli.poll import main  # noqa: E402

if __name__ == "__main__":
    raise SystemExit(main())
