"""MCP server entrypoint (stdio transport).

This module wires together:
- Tools: diagnose a log (inline or from a file) and probe the reasoning engine
- Resources: the rule catalog and individual rules via URI
- Prompts: a reusable "diagnose this file" conversation template

Run locally (stdio):
    python -m mcp_log_diagnosis_server.server.diagnosis_server
"""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import Sequence
from functools import cache
from typing import Any

from mcp.server.fastmcp import FastMCP

from mcp_log_diagnosis_server.core.analyzer import Analyzer, build_analyzer
from mcp_log_diagnosis_server.core.config import ENV_PREFIX, Settings, load_settings
from mcp_log_diagnosis_server.core.rules import RuleEngine
from mcp_log_diagnosis_server.prompts.registry import register_prompts
from mcp_log_diagnosis_server.resources.registry import register_resources
from mcp_log_diagnosis_server.tools.analyze import (
    analyze_log_file_impl,
    analyze_log_impl,
    reasoning_health_impl,
)

LOGGER = logging.getLogger(__name__)


def _configure_logging() -> None:
    """Configure logging on stderr; stdout carries the MCP protocol."""
    level_name = os.getenv(f"{ENV_PREFIX}LOG_LEVEL", "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


@cache
def get_settings() -> Settings:
    return load_settings()


@cache
def get_analyzer() -> Analyzer:
    """Build the shared Analyzer on first use."""
    settings = get_settings()
    LOGGER.info(
        "analyzer ready (provider=%s, model=%s, rules=%s, threshold=%.2f)",
        "stand_in" if settings.uses_stand_in else settings.provider.value,
        settings.model,
        settings.enable_rules,
        settings.rule_confidence_threshold,
    )
    return build_analyzer(settings)


def _engine() -> RuleEngine:
    return get_analyzer().engine


mcp = FastMCP("log-diagnosis", json_response=True)

register_resources(mcp, _engine)
register_prompts(mcp)


@mcp.tool()
async def analyze_log(log: str, timeout_s: float | None = None) -> dict[str, Any]:
    """Diagnose a raw build/deploy/runtime log.

    Parameters
    ----------
    log:
        Raw log text. Secrets are masked and oversize input is truncated
        before any analysis.
    timeout_s:
        Optional overall deadline for the reasoning stage, in seconds.

    Returns
    -------
    dict:
        {"success": bool, "result"?: {...}, "error"?: str, "source"?: str,
         "processed_at": str}
    """
    return await analyze_log_impl(log=log, analyzer=get_analyzer(), timeout_s=timeout_s)


@mcp.tool()
async def analyze_log_file(
    log_path: str,
    tail_bytes: int | None = None,
    timeout_s: float | None = None,
) -> dict[str, Any]:
    """Diagnose the end of a log file under LOG_DIAGNOSIS_BASE_DIR.

    Supports .log and .txt files, optionally gzip-compressed (.gz). Only the
    last tail_bytes are read (default: the maximum log size).
    """
    return await analyze_log_file_impl(
        log_path=log_path,
        analyzer=get_analyzer(),
        base_dir=get_settings().base_dir,
        tail_bytes=tail_bytes,
        timeout_s=timeout_s,
    )


@mcp.tool()
async def reasoning_health() -> dict[str, Any]:
    """Check that the configured reasoning engine is reachable."""
    return await reasoning_health_impl(analyzer=get_analyzer())


def main(argv: Sequence[str] | None = None) -> None:
    """Start the MCP server over stdio."""
    _configure_logging()
    _ = argv or sys.argv[1:]
    # Fail fast on bad configuration instead of on the first tool call.
    get_analyzer()
    LOGGER.debug("Starting MCP server (transport=stdio)")
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
