#!/usr/bin/env python3

import sys

from bitcoin_average.cli.interface import run_cli


def main() -> None:
    """Entry point for Bitcoin Average CLI."""
    raise SystemExit(run_cli(sys.argv[1:]))


if __name__ == "__main__":
    main()
