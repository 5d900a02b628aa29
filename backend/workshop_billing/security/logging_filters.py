"""Logging filters that scrub sensitive content."""

from __future__ import annotations

import logging
import re

_SENSITIVE_PATTERN = re.compile(
    r"(Authorization: Bearer\s+[\w\.-]+"
    r"|access_token\"\s*:\s*\"[^\"]+\""
    r"|password\d?\"\s*:\s*\"[^\"]+\""
    r"|SignatureValue=[0-9A-Fa-f]+"
    r"|token\"\s*:\s*\"[\w\.-]+\")",
    re.IGNORECASE,
)


class SensitiveFilter(logging.Filter):
    """Replace secrets and gateway signatures in log messages."""

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            record.msg = _SENSITIVE_PATTERN.sub("**REDACTED**", record.msg)
        return True


__all__ = ["SensitiveFilter"]
