"""Secrets redaction for log output.

Tokens and auth headers must never reach the error stream in full. These
helpers produce short, recognisable forms that are safe to log.
"""

import re
from collections.abc import Mapping

# Redaction placeholder - clearly marks redacted content
REDACTED = "[REDACTED]"

# Number of leading characters kept visible in a redacted token
VISIBLE_PREFIX: int = 4

# Tokens shorter than this are hidden entirely
MIN_PARTIAL_LENGTH: int = 12

# Header names whose values are credentials
SENSITIVE_HEADERS: frozenset[str] = frozenset({"authorization", "x-api-key"})

# "Bearer abc", "ApiKey abc", "Token abc"
_SCHEME_PATTERN = re.compile(r"^(Bearer|ApiKey|Token)\s+(.+)$", re.IGNORECASE)


def redact_token(token: str | None) -> str:
    """Return a log-safe form of a token.

    Long tokens keep their first few characters so operators can tell keys
    apart; short ones are replaced completely.

    Args:
        token: The secret value, or None.

    Returns:
        Redacted string, e.g. ``"abcd...[REDACTED]"``.
    """
    if not token:
        return REDACTED
    if len(token) < MIN_PARTIAL_LENGTH:
        return REDACTED
    return f"{token[:VISIBLE_PREFIX]}...{REDACTED}"


def redact_headers(headers: Mapping[str, str]) -> dict[str, str]:
    """Copy a header mapping with credential values redacted."""
    result: dict[str, str] = {}
    for name, value in headers.items():
        if name.lower() not in SENSITIVE_HEADERS:
            result[name] = value
            continue
        match = _SCHEME_PATTERN.match(value)
        if match:
            result[name] = f"{match.group(1)} {redact_token(match.group(2))}"
        else:
            result[name] = redact_token(value)
    return result
