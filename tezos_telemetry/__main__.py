"""Allow python -m tezos_telemetry to print help."""
from __future__ import annotations

from ._version import __version__

_HELP = f"""\
tezos-telemetry {__version__}

Commands:
  tezos-telemetry poll             Refresh every 2h, print snapshot and deltas
  tezos-telemetry poll --once      Single refresh, then exit
  tezos-telemetry health           Probe TzKT and Octez RPC

Or directly:
  python cli/poll.py --once        Same as tezos-telemetry poll --once
  python -m pytest -q              Run test suite

Configuration: config.yaml at the repo root, or TEZOS_TELEMETRY_* environment variables.
"""


def main() -> int:
    print(_HELP)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
