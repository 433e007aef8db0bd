"""Prompt construction for the reasoning engine."""

from __future__ import annotations

SYSTEM_PROMPT = """You are a senior DevOps engineer diagnosing CI/CD, Docker, Kubernetes, and backend system logs.

Your responsibilities:
1. Identify the type of error and categorize it appropriately
2. Determine the severity (Low, Medium, High) based on impact
3. Provide a clear, concise root cause analysis
4. Suggest specific, actionable remediation steps
5. Recommend prevention strategies for the future

Guidelines:
- Be specific and technical in your analysis
- Focus on actionable insights, not general advice
- Reference specific technologies when applicable
- Severity levels:
  - High: production outages, security vulnerabilities, data loss risks
  - Medium: performance degradation, partial failures, deprecated usage
  - Low: warnings, style issues, minor configuration problems

You MUST respond with ONLY a valid JSON object matching the schema provided."""

_USER_TEMPLATE = """Analyze the following log and return valid JSON exactly matching this schema:

{{
  "error_type": "string - category of the error (e.g. 'docker_build_failure', 'permission_denied')",
  "severity": "Low|Medium|High",
  "root_cause": "string - concise explanation of why this error occurred",
  "suggested_actions": ["string array - specific steps to fix the issue"],
  "prevention_tips": ["string array - how to prevent this in the future"]
}}

Log content:
---
{log}
---

Respond with ONLY the JSON object, no additional text."""


def build_system_prompt() -> str:
    return SYSTEM_PROMPT


def build_user_prompt(log: str) -> str:
    """Embed a sanitized log in the user prompt."""
    return _USER_TEMPLATE.format(log=log)
