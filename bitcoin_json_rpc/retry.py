# © Copyright 2025-2026, Query.Farm LLC - https://query.farm
# SPDX-License-Identifier: Apache-2.0

"""Bounded retry loop driven by side-effect classification.

Provides ``RetryConfig`` and ``call_with_retry``.  Each failed attempt is
classified with :func:`bitcoin_json_rpc.effects.decide`; the loop sleeps a
fixed delay and tries again only when the failure is transient and the call
cannot have had side effects.  When it stops it raises
``RetriesExhaustedError`` (budget spent) or ``UnretryableError`` (stopped
early).

Logger: ``bitcoin_json_rpc.retry``.  Failed attempts are logged at DEBUG level.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Any

from bitcoin_json_rpc.effects import DEFAULT_POLICY, EffectPolicy, decide
from bitcoin_json_rpc.errors import (
    BitcoinJsonRpcError,
    JsonRpcError,
    RetriesExhaustedError,
    UnretryableError,
)

__all__ = [
    "RetryConfig",
    "call_with_retry",
]

_logger = logging.getLogger("bitcoin_json_rpc.retry")


@dataclass(frozen=True)
class RetryConfig:
    """Attempt budget and fixed delay for one logical call.

    Attributes:
        max_attempts: Total attempts, including the first.
        delay_between_attempts: Seconds to wait before each retry.  The
            delay does not grow between attempts.

    Raises:
        ValueError: If *max_attempts* < 1 or *delay_between_attempts* < 0.

    """

    max_attempts: int = 5
    delay_between_attempts: float = 5.0

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {self.max_attempts}")
        if self.delay_between_attempts < 0:
            raise ValueError(f"delay_between_attempts must be >= 0, got {self.delay_between_attempts}")


async def call_with_retry(
    send: Callable[[], Awaitable[Any]],
    *,
    method: str,
    params: Sequence[Any],
    config: RetryConfig,
    policy: EffectPolicy = DEFAULT_POLICY,
    url: str | None = None,
    _sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
) -> Any:
    """Run *send* until it succeeds or the failure must be surfaced.

    Args:
        send: Performs one attempt; raises ``JsonRpcError`` on failure.
        method: RPC method name, for classification.
        params: Parameters of the call, for diagnostics.
        config: Attempt budget and delay.
        policy: Purity registry and rule tables.
        url: Redacted node URL, for diagnostics.
        _sleep: Sleep coroutine (injectable for tests).

    Returns:
        Whatever *send* returned on the first successful attempt.

    Raises:
        RetriesExhaustedError: If the last allowed attempt failed.
        UnretryableError: If a failure was permanent or possibly effectful.

    """
    method_is_pure = policy.is_pure(method)

    for attempt in range(1, config.max_attempts + 1):
        try:
            return await send()
        except JsonRpcError as exc:
            decision = decide(method, exc.raw_message, policy)

            _logger.debug(
                "Command failed: %s",
                exc.message,
                extra={
                    "method": method,
                    "method_is_pure": method_is_pure,
                    "executed": decision.executed.name,
                    "attempt": attempt,
                    "max_attempts": config.max_attempts,
                    "had_effects": decision.had_effects,
                    "should_retry": decision.should_retry,
                },
            )

            error_type: type[BitcoinJsonRpcError]
            if attempt == config.max_attempts:
                error_type = RetriesExhaustedError
            elif decision.should_retry:
                await _sleep(config.delay_between_attempts)
                continue
            else:
                _logger.debug(
                    "Cannot retry %s (attempt %d/%d, executed=%s)",
                    method,
                    attempt,
                    config.max_attempts,
                    decision.executed.name,
                )
                error_type = UnretryableError

            raise error_type(
                exc,
                decision.executed,
                method=method,
                params=params,
                method_is_pure=method_is_pure,
                max_attempts=config.max_attempts,
                attempts=attempt,
                url=url,
            ) from exc

    # max_attempts >= 1 means the loop always returns or raises.
    raise AssertionError("unreachable")  # pragma: no cover
