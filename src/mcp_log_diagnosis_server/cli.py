from __future__ import annotations

import argparse
import asyncio
import dataclasses
import json
import logging
import os
import sys
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from mcp_log_diagnosis_server.core.analyzer import build_analyzer
from mcp_log_diagnosis_server.core.config import ENV_PREFIX, Settings, load_settings
from mcp_log_diagnosis_server.core.models import AnalysisRequest
from mcp_log_diagnosis_server.tools.analyze import read_log_tail

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_USAGE = 2


def _positive_float(s: str) -> float:
    try:
        value = float(s)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"not a number: {s!r}") from e
    if value <= 0:
        raise argparse.ArgumentTypeError("must be > 0")
    return value


def _threshold(s: str) -> float:
    try:
        value = float(s)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"not a number: {s!r}") from e
    if not 0.0 <= value <= 1.0:
        raise argparse.ArgumentTypeError("must be between 0 and 1")
    return value


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="log-diagnose",
        description="Diagnose a build/deploy/runtime log (rules first, then the reasoning engine).",
    )
    p.add_argument("log_path", nargs="?", default="-", help="Log file to read, or '-' for stdin")
    p.add_argument("--no-rules", action="store_true", help="Skip rule pre-classification")
    p.add_argument("--threshold", type=_threshold, default=None, help="Rule confidence threshold (0-1)")
    p.add_argument("--mock", action="store_true", help="Use the stand-in reasoning client (no network)")
    p.add_argument("--timeout", type=_positive_float, default=None, help="Overall reasoning deadline in seconds")
    p.add_argument("--compact", action="store_true", help="Print the envelope on a single line")
    return p


def _apply_overrides(settings: Settings, args: argparse.Namespace) -> Settings:
    changes: dict[str, Any] = {}
    if args.no_rules:
        changes["enable_rules"] = False
    if args.threshold is not None:
        changes["rule_confidence_threshold"] = args.threshold
    return dataclasses.replace(settings, **changes).validate() if changes else settings


async def _read_input(log_path: str, *, max_bytes: int) -> str:
    if log_path == "-":
        return await asyncio.to_thread(sys.stdin.read)
    path = Path(log_path)
    if not path.is_file():
        raise FileNotFoundError(f"File not found: {path}")
    return await read_log_tail(path, max_bytes=max_bytes)


async def _run(args: argparse.Namespace, settings: Settings) -> dict[str, Any]:
    text = await _read_input(args.log_path, max_bytes=settings.max_log_size)
    analyzer = build_analyzer(settings)
    try:
        response = await analyzer.analyze(AnalysisRequest(log=text), timeout=args.timeout)
    finally:
        await analyzer.aclose()
    return response.to_dict()


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        # --mock must win even when the environment lacks an API key.
        env_settings = load_settings(_env_with_mock() if args.mock else None)
        settings = _apply_overrides(env_settings, args)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_USAGE

    level = getattr(logging, settings.log_level, logging.WARNING)
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    try:
        out = asyncio.run(_run(args, settings))
    except FileNotFoundError as e:
        print(str(e), file=sys.stderr)
        return EXIT_USAGE
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_USAGE

    print(json.dumps(out, indent=None if args.compact else 2))
    return EXIT_OK if out["success"] else EXIT_FAILED


def _env_with_mock() -> dict[str, str]:
    env = dict(os.environ)
    env[f"{ENV_PREFIX}AI_MOCK_MODE"] = "true"
    return env


def run() -> None:
    raise SystemExit(main())


if __name__ == "__main__":
    run()
