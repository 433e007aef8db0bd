"""MCP resource registry.

Resources expose the rule table so clients can see which failures are
diagnosed locally without a reasoning call.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from mcp.server.fastmcp import FastMCP

from mcp_log_diagnosis_server.core.models import AnalysisResponse, Rule
from mcp_log_diagnosis_server.core.rules import RuleEngine


def rule_summary(rule: Rule) -> dict[str, Any]:
    return {
        "id": rule.id,
        "name": rule.name,
        "description": rule.description,
        "confidence": rule.confidence,
        "severity": rule.result.severity.value,
    }


def rule_detail(rule: Rule) -> dict[str, Any]:
    """Full rule view, including triggers and the pre-computed diagnosis."""
    out = rule_summary(rule)
    out["keywords"] = list(rule.keywords)
    out["patterns"] = [p.pattern for p in rule.patterns]
    out["result"] = rule.result.model_dump(mode="json")
    return out


def rule_catalog(engine: RuleEngine) -> dict[str, Any]:
    return {
        "confidence_threshold": engine.confidence_threshold,
        "count": len(engine.rules),
        "rules": [rule_summary(r) for r in engine.rules],
    }


def register_resources(mcp: FastMCP, get_engine: Callable[[], RuleEngine]) -> None:
    """Register resource handlers on the MCP server."""

    @mcp.resource("rules://catalog")
    def catalog() -> dict[str, Any]:
        """List the built-in diagnosis rules and the active threshold."""
        return rule_catalog(get_engine())

    @mcp.resource("rules://{rule_id}")
    def rule(rule_id: str) -> dict[str, Any]:
        """Return one rule with its keywords, patterns and diagnosis."""
        found = get_engine().get_rule(rule_id)
        if found is None:
            raise ValueError(f"Unknown rule: {rule_id}")
        return rule_detail(found)

    @mcp.resource("schemas://analysis-response")
    def response_schema() -> dict[str, Any]:
        """Return the JSON schema of the analysis envelope."""
        return AnalysisResponse.model_json_schema()
