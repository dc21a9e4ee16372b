# © Copyright 2025-2026, Query.Farm LLC - https://query.farm
# SPDX-License-Identifier: Apache-2.0

"""Exception hierarchy for the node client.

``JsonRpcError`` and its subclasses describe one failed attempt and are
what the retry loop classifies.  ``BitcoinJsonRpcError`` and its
subclasses are terminal: exactly one of them reaches the caller when a
logical call fails, carrying the tri-state ``executed`` verdict and the
diagnostic bundle of every layer it passed through.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, Final

from bitcoin_json_rpc.effects import ExecutedVerdict

__all__ = [
    "MAX_ERROR_MESSAGE_LENGTH",
    "BitcoinJsonRpcError",
    "JsonRpcError",
    "JsonRpcResponseError",
    "JsonRpcTransportError",
    "RetriesExhaustedError",
    "ShapeMismatchError",
    "UnretryableError",
    "merge_data",
    "shorten_message",
]

MAX_ERROR_MESSAGE_LENGTH: Final = 150


def shorten_message(message: str) -> str:
    """Truncate *message* to ``MAX_ERROR_MESSAGE_LENGTH`` characters."""
    return message[:MAX_ERROR_MESSAGE_LENGTH]


def merge_data(base: Mapping[str, Any], extra: Mapping[str, Any]) -> dict[str, Any]:
    """Deep-merge *extra* into a copy of *base*.

    Nested mappings are merged key by key so that each layer adds fields
    without discarding those attached by inner layers.  For non-mapping
    values *extra* wins.
    """
    merged: dict[str, Any] = dict(base)
    for key, value in extra.items():
        current = merged.get(key)
        if isinstance(current, Mapping) and isinstance(value, Mapping):
            merged[key] = merge_data(current, value)
        else:
            merged[key] = value
    return merged


# ---------------------------------------------------------------------------
# Per-attempt failures
# ---------------------------------------------------------------------------


class JsonRpcError(Exception):
    """A single failed attempt, normalized.

    Attributes:
        message: Failure message truncated to ``MAX_ERROR_MESSAGE_LENGTH``.
        raw_message: The untruncated message, used for classification.
        data: Diagnostic payload (response body, request, HTTP status...).

    """

    def __init__(self, message: str, data: Mapping[str, Any] | None = None) -> None:
        """Initialize with the raw failure message and optional diagnostic data."""
        self.raw_message = message
        self.message = shorten_message(message)
        self.data: dict[str, Any] = dict(data) if data else {}
        super().__init__(self.message)

    def add_data(self, extra: Mapping[str, Any]) -> None:
        """Merge *extra* into ``data`` (used while the error propagates outward)."""
        self.data = merge_data(self.data, extra)


class JsonRpcResponseError(JsonRpcError):
    """The node answered, but with an error or an unusable body."""


class JsonRpcTransportError(JsonRpcError):
    """The request did not get a response (refused, timed out, reset)."""


# ---------------------------------------------------------------------------
# Terminal errors
# ---------------------------------------------------------------------------


class BitcoinJsonRpcError(Exception):
    """Raised to the caller when a logical call fails.

    Branch on ``executed`` before compensating: resubmitting a payment whose
    verdict is ``UNKNOWN`` or ``EXECUTED`` risks paying twice.

    Attributes:
        message: Message of the underlying failure.
        executed: Whether the node acted on the request.
        method: RPC method name.
        params: Positional parameters sent.
        method_is_pure: Whether the method is registered as read-only.
        max_attempts: Attempt budget of the call.
        attempts: Attempts actually made.
        data: Inner diagnostic data merged with a ``bitcoin_json_rpc`` bundle.

    """

    def __init__(
        self,
        inner: JsonRpcError | Exception,
        executed: ExecutedVerdict,
        *,
        method: str,
        params: Sequence[Any],
        method_is_pure: bool,
        max_attempts: int,
        attempts: int,
        url: str | None = None,
    ) -> None:
        """Wrap *inner* with the verdict and the call's diagnostic bundle."""
        self.message = inner.message if isinstance(inner, JsonRpcError) else str(inner)
        self.executed = executed
        self.method = method
        self.params = tuple(params)
        self.method_is_pure = method_is_pure
        self.max_attempts = max_attempts
        self.attempts = attempts
        bundle: dict[str, Any] = {
            "executed": executed.to_json(),
            "method": method,
            "params": list(self.params),
            "method_is_pure": method_is_pure,
            "max_attempts": max_attempts,
            "attempts_used": attempts,
        }
        if url is not None:
            bundle["url"] = url
        inner_data: Mapping[str, Any] = getattr(inner, "data", None) or {}
        self.data = merge_data(inner_data, {"bitcoin_json_rpc": bundle})
        super().__init__(self.message)
        self.__cause__ = inner

    def __repr__(self) -> str:
        """Return a representation naming the method and verdict."""
        return f"{type(self).__name__}({self.message!r}, method={self.method!r}, executed={self.executed.name})"


class RetriesExhaustedError(BitcoinJsonRpcError):
    """Every attempt failed and the attempt budget is spent."""


class UnretryableError(BitcoinJsonRpcError):
    """The failure is permanent or may have had side effects, so no retry was made."""


class ShapeMismatchError(BitcoinJsonRpcError):
    """The node returned a result that does not match the expected shape.

    The request reached the node and was acted on, so ``executed`` is
    always ``EXECUTED``.
    """
