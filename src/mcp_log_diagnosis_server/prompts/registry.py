"""MCP prompt registry.

Prompts are reusable templates that clients can render into messages.
"""

from __future__ import annotations

from typing import Any

from mcp.server.fastmcp import FastMCP


def register_prompts(mcp: FastMCP) -> None:
    """Register prompt templates on the MCP server."""

    @mcp.prompt()
    def diagnose_log_file(log_path: str, tail_bytes: int | None = None) -> list[dict[str, Any]]:
        """Build a prompt that diagnoses a log file and explains the result."""
        call_lines = [f"- log_path: {log_path}"]
        if tail_bytes is not None:
            call_lines.append(f"- tail_bytes: {tail_bytes}")
        call_block = "\n".join(call_lines)
        return [
            {
                "role": "system",
                "content": (
                    "You are a senior DevOps engineer helping a developer fix a failing "
                    "build, deployment or service. Base every statement on the tool "
                    "output; if the diagnosis failed, say so plainly."
                ),
            },
            {
                "role": "user",
                "content": (
                    "Diagnose the log file using analyze_log_file. Follow this workflow:\n"
                    "- Call analyze_log_file first with the parameters below.\n"
                    "- If success is false, report the error and suggest checking the "
                    "file path or reasoning_health.\n"
                    "- If source starts with 'rules:', mention that a built-in rule "
                    "matched (see rules://catalog).\n"
                    "- If source starts with 'rules_fallback:', mention that the "
                    "reasoning engine was unavailable and the result is a best-effort "
                    "rule match.\n"
                    "- Secrets in the log were masked before analysis; never try to "
                    "reconstruct them.\n\n"
                    "Call analyze_log_file with:\n"
                    f"{call_block}\n\n"
                    "Return this structure:\n"
                    "1) Error type and severity\n"
                    "2) Root cause (1-2 sentences)\n"
                    "3) Fix steps (numbered)\n"
                    "4) Prevention tips (bullets; omit if none)\n"
                ),
            },
        ]
