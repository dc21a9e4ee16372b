# © Copyright 2025-2026, Query.Farm LLC - https://query.farm
# SPDX-License-Identifier: Apache-2.0

"""JSON formatter for structured logging output.

Provides :class:`BitcoinJsonRpcJsonFormatter`, a :class:`logging.Formatter`
subclass that serializes log records as single-line JSON objects.  The
retry loop attaches its classification (``method``, ``executed``,
``attempt``, ``should_retry`` ...) as ``extra`` fields; every such field is
emitted, and node URLs found in string values have their password masked.

This module is **not** auto-imported by ``bitcoin_json_rpc``; import it
explicitly::

    from bitcoin_json_rpc.logging_utils import BitcoinJsonRpcJsonFormatter
"""

from __future__ import annotations

import json
import logging
import re

from bitcoin_json_rpc.config import redact_url

__all__ = ["BitcoinJsonRpcJsonFormatter", "redact_urls"]

# Attribute names every LogRecord has; anything else was injected via ``extra``.
_DEFAULT_RECORD_ATTRS: frozenset[str] = frozenset(logging.LogRecord("", 0, "", 0, "", (), None).__dict__.keys()) | {
    "message",
    "asctime",
}

_RESERVED_KEYS: frozenset[str] = frozenset({"timestamp", "level", "logger", "message", "exception", "stack_info"})

_URL_WITH_PASSWORD = re.compile(r"https?://[^\s/@:]*:[^\s/@]*@[^\s\"']+")


def redact_urls(text: str) -> str:
    """Mask the password of every credentialed URL embedded in *text*."""
    return _URL_WITH_PASSWORD.sub(lambda m: redact_url(m.group(0)), text)


def _scrub(value: object) -> object:
    if isinstance(value, str):
        return redact_urls(value)
    return value


class BitcoinJsonRpcJsonFormatter(logging.Formatter):
    """JSON formatter that emits all structured extra fields.

    Standard fields (``timestamp``, ``level``, ``logger``, ``message``) are
    always present and cannot be overwritten by extra fields with the same
    name.  Exception information is included under ``"exception"`` and
    stack traces requested with ``stack_info=True`` under ``"stack_info"``.
    Non-serializable values are coerced to strings via ``default=str``.
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format a log record as a single-line JSON string."""
        record.message = record.getMessage()
        obj: dict[str, object] = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": redact_urls(record.message),
            **{
                k: _scrub(v)
                for k, v in record.__dict__.items()
                if k not in _DEFAULT_RECORD_ATTRS and k not in _RESERVED_KEYS
            },
        }
        if record.exc_info and record.exc_info[1]:
            obj["exception"] = redact_urls(self.formatException(record.exc_info))
        if record.stack_info:
            obj["stack_info"] = redact_urls(self.formatStack(record.stack_info))
        return json.dumps(obj, default=str)
