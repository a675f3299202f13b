from __future__ import annotations

import argparse
from pathlib import Path

from .stats_run import run_stats


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Aggregate lines-of-code stats across every repository you own on GitHub.")
    parser.add_argument("--config", type=Path, default=Path("config.json"), help="Path to config.json.")
    parser.add_argument("--jobs", type=int, default=None, help="Parallel clone/count workers (default: min(8, CPUs)).")
    parser.add_argument("--scratch-root", type=Path, default=None, help="Scratch directory for clones (wiped at start).")
    parser.add_argument("--output-dir", type=Path, default=None, help="Write the two reports into this directory.")
    parser.add_argument("--upload-url", type=str, default="", help="PUT the two reports under this base URL.")
    parser.add_argument(
        "--ca-bundle",
        type=str,
        default="",
        help="Path to a CA bundle file/dir for HTTPS uploads (overrides `storage.ca_bundle_path`).",
    )
    parser.add_argument("--api-url", type=str, default="", help="GitHub API base URL (default: https://api.github.com).")
    parser.add_argument(
        "--exclude-repo",
        action="append",
        default=[],
        help="Repository name (or glob) to keep out of per-repo stats; repeatable.",
    )
    parser.add_argument("--timeout", type=int, default=None, help="Per-repository clone/count timeout in seconds.")
    parser.add_argument("--fail-fast", action="store_true", help="Abort the whole run when any repository fails.")
    return parser


def main(argv: list[str]) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    return run_stats(args=args)
