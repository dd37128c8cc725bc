from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import List, Optional

from cannacore import __version__
from cannacore.app import default_save_path, run_headless, run_window


def _setup_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG
    logging.basicConfig(
        level=level,
        format="[%(asctime)s] %(levelname)s %(name)s: %(message)s",
    )


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="cannacore",
        description="CannaCore - clicker progression demo",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--headless", action="store_true", help="Run without a window")
    parser.add_argument("--save", type=Path, default=None, help="Save file (default ~/.cannacore/save.json)")
    parser.add_argument("--no-save", action="store_true", help="Do not load or write a save file")
    parser.add_argument("--max-steps", type=int, default=None, help="Stop after N ticks (for testing)")
    parser.add_argument("--tick-rate", type=float, default=10.0, help="Headless tick rate (Hz)")
    parser.add_argument("-v", "--verbose", action="count", default=0, help="Increase log verbosity (-v, -vv)")

    args = parser.parse_args(argv)
    _setup_logging(args.verbose)

    save_path = None if args.no_save else (args.save or default_save_path())
    if args.headless:
        return run_headless(save_path, max_steps=args.max_steps, tick_rate=args.tick_rate)
    return asyncio.run(run_window(save_path, max_steps=args.max_steps))


if __name__ == "__main__":
    sys.exit(main())
