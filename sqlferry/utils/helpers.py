#!/usr/bin/env python3
"""
sqlferry Utility Functions

Helpers shared by the command runners and the CLI:
- Connection URL redaction and environment resolution
- Credential scrubbing for driver error messages
- Diagnostic summaries of failed records
- Human-readable durations and counts
"""

import os
import re
from typing import Mapping, Optional, Sequence

from ..core.errors import ConfigurationError
from ..core.values import Value, describe

REDACTION_MASK = "***"
MAX_RECORD_SUMMARY = 200

_CREDENTIALS_IN_TEXT = re.compile(r'://([^:/@\s]+):([^@\s]+)@')


def redact_url(url: str) -> str:
    """
    Mask the password segment of a connection URL.

    Replaces the text between the user's ':' and the '@' with a fixed mask.
    URLs without credentials are returned unchanged.
    """
    scheme_end = url.find('://')
    start = scheme_end + 3 if scheme_end >= 0 else 0
    query = url.find('?', start)
    end = query if query >= 0 else len(url)

    at_pos = url.rfind('@', start, end)
    if at_pos < 0:
        return url
    colon_pos = url.find(':', start, at_pos)
    if colon_pos < 0:
        return url
    return url[:colon_pos + 1] + REDACTION_MASK + url[at_pos:]


def sanitize_error(message: str) -> str:
    """Remove credentials embedded in URLs inside arbitrary error text."""
    return _CREDENTIALS_IN_TEXT.sub(r'://\1:' + REDACTION_MASK + '@', str(message))


def resolve_url(direct: Optional[str], env_var: Optional[str], label: str,
                environ: Optional[Mapping[str, str]] = None) -> str:
    """
    Pick a connection URL from a literal flag value or a named environment variable.

    Args:
        direct: URL passed on the command line, preferred when set
        env_var: Name of an environment variable holding the URL
        label: Option name used in the error message, e.g. 'source'
        environ: Mapping to read instead of os.environ

    Returns:
        The connection URL
    """
    if direct:
        return direct
    if env_var:
        env = os.environ if environ is None else environ
        value = env.get(env_var)
        if not value:
            raise ConfigurationError(f"Environment variable {env_var} not found",
                                     {'variable': env_var})
        return value
    raise ConfigurationError(f"Either --{label} or --{label}-env must be provided")


def summarize_record(row: Sequence[Value], max_len: int = MAX_RECORD_SUMMARY) -> str:
    """Render a row for diagnostics, truncated to max_len characters."""
    text = "[" + ", ".join(describe(value) for value in row) + "]"
    if len(text) <= max_len:
        return text
    return text[:max_len] + "..."


def split_list(value: Optional[str]) -> list:
    """Split a comma-separated option into trimmed, non-empty items."""
    if not value:
        return []
    return [item.strip() for item in value.split(',') if item.strip()]


def format_execution_time(seconds: float) -> str:
    """
    Format execution time in human-readable format

    Args:
        seconds: Time in seconds

    Returns:
        Formatted time string
    """
    if seconds < 1:
        return f"{seconds * 1000:.1f}ms"
    elif seconds < 60:
        return f"{seconds:.2f}s"
    else:
        minutes = int(seconds // 60)
        remaining_seconds = seconds % 60
        return f"{minutes}m {remaining_seconds:.1f}s"


def format_count(count: int) -> str:
    return f"{count:,}"
