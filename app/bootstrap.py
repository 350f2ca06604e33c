"""Command line parsing for the coprocessor entrypoint."""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import Sequence

from app.config import CONFIG_PATH


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="FRC AprilTag vision coprocessor")
    parser.add_argument(
        "config",
        nargs="?",
        type=Path,
        default=CONFIG_PATH,
        help=f"Path to the camera/network configuration (default: {CONFIG_PATH})",
    )
    parser.add_argument(
        "--log-level",
        default="info",
        choices=["debug", "info", "warning", "error"],
        help="Logging verbosity",
    )
    return parser


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = build_arg_parser()
    return parser.parse_args(argv)
