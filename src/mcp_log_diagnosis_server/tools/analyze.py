"""MCP tool implementations.

Keep this layer thin: validate arguments, read input, hand the log to the
Analyzer and return the JSON-serializable envelope.
"""

from __future__ import annotations

import gzip
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

import aiofiles
import aiofiles.os
from aiofiles.threadpool import wrap

from mcp_log_diagnosis_server.core.analyzer import Analyzer
from mcp_log_diagnosis_server.core.errors import DiagnosisError
from mcp_log_diagnosis_server.core.models import AnalysisRequest

ALLOWED_FILE_SUFFIXES = {".log", ".txt"}
TEXT_ENCODING = "utf-8"
TEXT_ERRORS = "replace"
MAX_TIMEOUT_S = 600.0


def resolve_log_path(log_path: str, *, base_dir: str | Path) -> Path:
    """Resolve log_path under base_dir and check it is an allowed, existing file."""
    if not log_path or not log_path.strip():
        raise ValueError("log_path must not be empty")

    base = Path(base_dir).resolve()
    p = Path(log_path).expanduser()
    if not p.is_absolute():
        p = base / p
    p = p.resolve()
    if base not in p.parents and p != base:
        raise ValueError("Path escapes base dir")

    suffix = p.suffix.lower()
    if suffix == ".gz":
        suffix = p.with_suffix("").suffix.lower()
    if suffix not in ALLOWED_FILE_SUFFIXES:
        allowed = ", ".join(sorted(ALLOWED_FILE_SUFFIXES))
        raise ValueError(f"File type not allowed. Allowed: {allowed} (optionally .gz).")

    if not p.is_file():
        raise FileNotFoundError(f"File not found: {p}")
    return p


@asynccontextmanager
async def _open_text(path: Path) -> AsyncIterator[Any]:
    """Open a log file for async text reading (plain or gzip)."""
    if path.suffix.lower() == ".gz":
        af = wrap(gzip.open(path, mode="rt", encoding=TEXT_ENCODING, errors=TEXT_ERRORS))
        try:
            yield af
        finally:
            await af.close()
    else:
        async with aiofiles.open(path, encoding=TEXT_ENCODING, errors=TEXT_ERRORS) as f:
            yield f


async def read_log_tail(path: Path, *, max_bytes: int) -> str:
    """Return at most the last max_bytes (UTF-8) of the file, cut at a line start.

    Plain files are read from ``size - max_bytes`` onward; gzip streams cannot
    seek, so they are decompressed in full and cut afterwards.
    """
    if max_bytes <= 0:
        raise ValueError("tail_bytes must be > 0")

    if path.suffix.lower() == ".gz":
        async with _open_text(path) as f:
            text = await f.read()
        raw = text.encode(TEXT_ENCODING)
        if len(raw) <= max_bytes:
            return text
        return _from_line_start(raw[-max_bytes:].decode(TEXT_ENCODING, errors="ignore"))

    offset = max(0, (await aiofiles.os.stat(path)).st_size - max_bytes)
    async with aiofiles.open(path, mode="rb") as f:
        await f.seek(offset)
        raw = await f.read(max_bytes)
    if offset == 0:
        return raw.decode(TEXT_ENCODING, errors=TEXT_ERRORS)
    return _from_line_start(raw.decode(TEXT_ENCODING, errors="ignore"))


def _from_line_start(tail: str) -> str:
    # Drop the partial first line unless that would leave nothing.
    newline = tail.find("\n")
    if 0 <= newline < len(tail) - 1:
        return tail[newline + 1 :]
    return tail


def _check_timeout(timeout_s: float | None) -> float | None:
    if timeout_s is None:
        return None
    if timeout_s <= 0:
        raise ValueError("timeout_s must be > 0")
    return min(float(timeout_s), MAX_TIMEOUT_S)


async def analyze_log_impl(
    *,
    log: str,
    analyzer: Analyzer,
    timeout_s: float | None = None,
) -> dict[str, Any]:
    """Implementation for the `analyze_log` MCP tool.

    Empty or whitespace-only logs are not rejected here; the Analyzer turns
    them into a failure envelope so every call returns the same shape.
    """
    if log is None:
        raise ValueError("log is required")
    timeout = _check_timeout(timeout_s)
    response = await analyzer.analyze(AnalysisRequest(log=log), timeout=timeout)
    return response.to_dict()


async def analyze_log_file_impl(
    *,
    log_path: str,
    analyzer: Analyzer,
    base_dir: str | Path,
    tail_bytes: int | None = None,
    timeout_s: float | None = None,
) -> dict[str, Any]:
    """Implementation for the `analyze_log_file` MCP tool.

    Reads the end of the file (most recent lines), bounded by tail_bytes or
    the sanitizer's size ceiling, then delegates to analyze_log_impl.
    """
    path = resolve_log_path(log_path, base_dir=base_dir)
    limit = analyzer.sanitizer.max_size if tail_bytes is None else tail_bytes
    text = await read_log_tail(path, max_bytes=limit)
    return await analyze_log_impl(log=text, analyzer=analyzer, timeout_s=timeout_s)


async def reasoning_health_impl(*, analyzer: Analyzer) -> dict[str, Any]:
    """Implementation for the `reasoning_health` MCP tool."""
    try:
        await analyzer.health_check()
    except DiagnosisError as exc:
        return {"healthy": False, "error": str(exc)}
    return {"healthy": True}
