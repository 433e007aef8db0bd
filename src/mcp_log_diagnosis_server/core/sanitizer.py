"""Secret masking and size enforcement for raw log input."""

from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass

from .models import SanitizationStats

REDACTED = "[REDACTED]"
DEFAULT_MAX_SIZE = 50_000

# Order matters: earlier patterns see the raw text, later ones the partially masked text.
DEFAULT_PATTERNS: tuple[re.Pattern[str], ...] = (
    # API, secret and access keys
    re.compile(r"(?i)(api[_-]?key|apikey)\s*[:=]\s*['\"]?([a-zA-Z0-9_\-]{20,})['\"]?"),
    re.compile(r"(?i)(secret[_-]?key|secretkey)\s*[:=]\s*['\"]?([a-zA-Z0-9_\-]{20,})['\"]?"),
    re.compile(r"(?i)(access[_-]?key|accesskey)\s*[:=]\s*['\"]?([a-zA-Z0-9_\-]{16,})['\"]?"),
    # Authentication tokens
    re.compile(r"(?i)(bearer\s+)[a-zA-Z0-9_\-.]+"),
    re.compile(r"(?i)(authorization:\s*)[a-zA-Z0-9_\-.\s]+"),
    re.compile(r"(?i)(token|auth[_-]?token)\s*[:=]\s*['\"]?([a-zA-Z0-9_\-.]{20,})['\"]?"),
    # Passwords
    re.compile(r"(?i)(password|passwd|pwd)\s*[:=]\s*['\"]?([^\s'\"]{4,})['\"]?"),
    # AWS
    re.compile(r"(?i)AKIA[0-9A-Z]{16}"),
    re.compile(
        r"(?i)(aws[_-]?secret[_-]?access[_-]?key)\s*[:=]\s*['\"]?([a-zA-Z0-9/+=]{40})['\"]?"
    ),
    # Private key headers
    re.compile(r"-----BEGIN\s+(RSA|DSA|EC|OPENSSH)?\s*PRIVATE KEY-----"),
    re.compile(r"-----BEGIN\s+PGP\s+PRIVATE\s+KEY\s+BLOCK-----"),
    # Database URIs with embedded credentials
    re.compile(r"(?i)(mongodb|mysql|postgres|postgresql|redis)://[^@\s]+@\S+"),
    re.compile(r"(?i)(connection[_-]?string)\s*[:=]\s*['\"]?([^\s'\"]+)['\"]?"),
    # GitHub tokens
    re.compile(r"gh[pousr]_[a-zA-Z0-9]{36}"),
    # JWT
    re.compile(r"eyJ[a-zA-Z0-9_-]*\.eyJ[a-zA-Z0-9_-]*\.[a-zA-Z0-9_-]*"),
    # Slack tokens
    re.compile(r"xox[baprs]-[0-9a-zA-Z-]+"),
    # Generic secret-looking assignments
    re.compile(r"(?i)(secret|private|credential)\s*[:=]\s*['\"]?([a-zA-Z0-9_\-]{16,})['\"]?"),
    # host:port (internal infrastructure)
    re.compile(r"\b(?:\d{1,3}\.){3}\d{1,3}:\d{4,5}\b"),
    # Email addresses (PII)
    re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}"),
)

_SEPARATOR_RE = re.compile(r"[:=]")


def mask_value(match: str) -> str:
    """Mask a secret while keeping enough context to debug with."""
    if len(match) <= 8:
        return REDACTED

    sep = _SEPARATOR_RE.search(match)
    if sep is not None:
        return match[: sep.end()] + REDACTED

    if len(match) > 10:
        return f"{match[:4]}****{match[-4:]}"

    return REDACTED


def _byte_len(text: str) -> int:
    return len(text.encode("utf-8"))


def _truncate_bytes(text: str, max_bytes: int) -> str:
    """Truncate to max_bytes of UTF-8 without splitting a code point."""
    raw = text.encode("utf-8")
    if len(raw) <= max_bytes:
        return text
    return raw[:max_bytes].decode("utf-8", errors="ignore")


@dataclass(frozen=True, slots=True)
class Sanitizer:
    """Stateless sanitizer; safe to share across concurrent requests."""

    max_size: int = DEFAULT_MAX_SIZE
    patterns: Sequence[re.Pattern[str]] = DEFAULT_PATTERNS

    def is_empty(self, log: str) -> bool:
        return not log.strip()

    def is_too_large(self, log: str) -> bool:
        return _byte_len(log) > self.max_size

    def sanitize(self, log: str) -> tuple[str, SanitizationStats]:
        """Trim, truncate to the size ceiling and mask secrets."""
        original_size = _byte_len(log)

        text = log.strip()
        truncated = _byte_len(text) > self.max_size
        if truncated:
            text = _truncate_bytes(text, self.max_size)

        text, masked = self._mask(text)
        # Redaction markers can be longer than what they replace.
        text = _truncate_bytes(text, self.max_size).rstrip()

        stats = SanitizationStats(
            original_size=original_size,
            sanitized_size=_byte_len(text),
            truncated=truncated,
            secrets_masked=masked,
        )
        return text, stats

    def _mask(self, text: str) -> tuple[str, int]:
        total = 0
        for pattern in self.patterns:
            text, n = pattern.subn(lambda m: mask_value(m.group(0)), text)
            total += n
        return text, total
