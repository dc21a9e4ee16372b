# © Copyright 2025-2026, Query.Farm LLC - https://query.farm
# SPDX-License-Identifier: Apache-2.0

"""Debug logging infrastructure for wire protocol diagnostics.

Provides logger instances under the ``bitcoin_json_rpc.wire.*`` hierarchy
and formatting helpers for JSON-RPC payloads.  Enabling
``logging.getLogger("bitcoin_json_rpc.wire").setLevel(logging.DEBUG)``
shows every request sent to the node and a truncated preview of every
result.

All formatting helpers return ``str`` and never log directly.  Call them
inside ``isEnabledFor`` guards.
"""

from __future__ import annotations

import json
import logging
from typing import Any

# ---------------------------------------------------------------------------
# Logger hierarchy: bitcoin_json_rpc.wire.*
# ---------------------------------------------------------------------------

wire_request_logger = logging.getLogger("bitcoin_json_rpc.wire.request")
"""Outgoing JSON-RPC envelopes."""

wire_response_logger = logging.getLogger("bitcoin_json_rpc.wire.response")
"""Results and error bodies returned by the node."""

# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------

MAX_LOG_LENGTH = 250
"""Maximum length of a payload preview."""


def fmt_payload(value: Any, limit: int = MAX_LOG_LENGTH) -> str:
    """Serialize *value* as compact JSON, truncated to *limit* characters.

    Values that are not JSON-serializable fall back to ``str()``.
    """
    text = value if isinstance(value, str) else json.dumps(value, separators=(",", ":"), default=str)
    if len(text) > limit:
        return text[:limit] + "..."
    return text
