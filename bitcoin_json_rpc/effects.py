# © Copyright 2025-2026, Query.Farm LLC - https://query.farm
# SPDX-License-Identifier: Apache-2.0

"""Side-effect classification and retry eligibility for node RPC failures.

Two ordered rule tables drive every decision:

- **not_executed**: failure messages proving the node never acted on the
  request (startup/sync states, transaction construction failures,
  refused connections).  A match yields ``ExecutedVerdict.NOT_EXECUTED``;
  anything else is ``ExecutedVerdict.UNKNOWN``.  The classifier never
  concludes ``EXECUTED`` from a message.
- **no_retry**: failures that are permanent even when no side effects
  occurred (e.g. ``Insufficient funds``).

Rules are evaluated with ``re.search`` against the raw (untruncated)
failure message; the first matching rule wins.  Node error text is not a
stable contract, so the tables are bundled in an :class:`EffectPolicy`
that callers can extend or replace.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Final

__all__ = [
    "DEFAULT_POLICY",
    "EffectPolicy",
    "ExecutedVerdict",
    "NOT_EXECUTED_RULES",
    "NO_RETRY_RULES",
    "PURE_METHODS",
    "RetryDecision",
    "Rule",
    "classify_execution",
    "decide",
    "first_match",
    "should_retry",
]


class ExecutedVerdict(Enum):
    """Whether a failed call's side effects reached the node.

    Attributes:
        NOT_EXECUTED: The node definitely did not act on the request.
        EXECUTED: The node definitely acted on the request.
        UNKNOWN: No evidence either way.

    """

    NOT_EXECUTED = "not_executed"
    EXECUTED = "executed"
    UNKNOWN = "unknown"

    def to_json(self) -> bool | None:
        """Return ``False``, ``True`` or ``None`` for diagnostic payloads."""
        if self is ExecutedVerdict.NOT_EXECUTED:
            return False
        if self is ExecutedVerdict.EXECUTED:
            return True
        return None


@dataclass(frozen=True)
class Rule[V]:
    """One row of a rule table.

    Attributes:
        message: Pattern searched for in the failure message.
        outcome: Value produced when the rule matches.
        method: Optional pattern the method name must fully match.

    """

    message: re.Pattern[str]
    outcome: V
    method: re.Pattern[str] | None = None

    @classmethod
    def of(cls, message: str, outcome: V, *, method: str | None = None) -> Rule[V]:
        """Compile *message* (and *method*) into a rule."""
        return cls(re.compile(message), outcome, re.compile(method) if method is not None else None)

    def matches(self, method: str, message: str) -> bool:
        """Return whether this rule applies to *method* failing with *message*."""
        if self.method is not None and self.method.fullmatch(method) is None:
            return False
        return self.message.search(message) is not None


def first_match[V](rules: Iterable[Rule[V]], method: str, message: str, default: V) -> V:
    """Return the outcome of the first rule matching, or *default*."""
    for rule in rules:
        if rule.matches(method, message):
            return rule.outcome
    return default


_NOT = ExecutedVerdict.NOT_EXECUTED

NOT_EXECUTED_RULES: Final[tuple[Rule[ExecutedVerdict], ...]] = (
    # Node busy or still starting up
    Rule.of(r"^Work queue depth exceeded$", _NOT),
    Rule.of(r"^Loading block index", _NOT),
    Rule.of(r"^Rewinding blocks", _NOT),
    Rule.of(r"^Error creating transaction", _NOT),
    Rule.of(r"^Loading P2P addresses", _NOT),
    Rule.of(r"^Insufficient funds$", _NOT),
    Rule.of(r"^Error with selected inputs", _NOT),
    Rule.of(r"^Sender has insufficient balance", _NOT),
    Rule.of(r"^Insufficient funds", _NOT),
    Rule.of(r"^ECONNREFUSED$", _NOT),
    Rule.of(r"^Verifying blocks", _NOT),
    Rule.of(r"^Loading wallet", _NOT),
    Rule.of(r"fees may not be sufficient", _NOT),
    Rule.of(r"Error choosing inputs for the send transaction", _NOT),
    Rule.of(r"Rewinding blocks", _NOT),
    Rule.of(r"Invalid amount", _NOT),
    Rule.of(r"^Activating best chain", _NOT),
    Rule.of(r"^Parsing Omni Layer transactions", _NOT),
    Rule.of(r"^Upgrading", _NOT),
    Rule.of(r"^Error committing transaction", _NOT),
)
"""Failure messages proving the request was not acted on."""

NO_RETRY_RULES: Final[tuple[Rule[bool], ...]] = (
    Rule.of(r"^Insufficient funds$", False),
    Rule.of(r"Invalid or non-wallet transaction id", False, method="gettransaction"),
    Rule.of(r"Error creating transaction", False, method=r"omni_.*"),
    Rule.of(r"Error choosing inputs", False, method=r"omni_.*"),
    # Dropped out of the mempool, retrying won't bring it back
    Rule.of(r"No such mempool", False, method="getrawtransaction"),
)
"""Failures that are permanent even when nothing was executed."""

PURE_METHODS: Final[frozenset[str]] = frozenset(
    {
        "getinfo",
        "getblockchaininfo",
        "getrawtransaction",
        "getblockhash",
        "getblock",
        "getblockcount",
        "getrawmempool",
        "validateaddress",
        "getbalance",
        "getbalances",
        "listwallets",
        "listlabels",
        "omni_getwalletaddressbalances",
        "omni_gettransaction",
        "omni_listpendingtransactions",
        "z_getoperationresult",
        "z_getbalance",
        "z_validateaddress",
        "z_listunspent",
        "listunspent",
        "dumpprivkey",
        "gettransaction",
        "isfinaltransaction",
    }
)
"""Methods that never mutate node or wallet state."""


@dataclass(frozen=True)
class EffectPolicy:
    """Purity registry plus the two rule tables.

    Attributes:
        pure_methods: Method names known to be read-only.
        not_executed: Ordered rules producing an ``ExecutedVerdict``.
        no_retry: Ordered rules vetoing a retry (outcome ``False``).

    """

    pure_methods: frozenset[str] = PURE_METHODS
    not_executed: tuple[Rule[ExecutedVerdict], ...] = NOT_EXECUTED_RULES
    no_retry: tuple[Rule[bool], ...] = NO_RETRY_RULES

    def is_pure(self, method: str) -> bool:
        """Return whether *method* is registered as read-only."""
        return method in self.pure_methods

    def extend(
        self,
        *,
        pure_methods: Iterable[str] = (),
        not_executed: Sequence[Rule[ExecutedVerdict]] = (),
        no_retry: Sequence[Rule[bool]] = (),
    ) -> EffectPolicy:
        """Return a copy with extra entries appended to each table.

        Appended rules are consulted after the existing ones.
        """
        return EffectPolicy(
            pure_methods=self.pure_methods | frozenset(pure_methods),
            not_executed=self.not_executed + tuple(not_executed),
            no_retry=self.no_retry + tuple(no_retry),
        )


DEFAULT_POLICY: Final[EffectPolicy] = EffectPolicy()


def classify_execution(method: str, message: str, policy: EffectPolicy = DEFAULT_POLICY) -> ExecutedVerdict:
    """Decide whether a call to *method* failing with *message* was executed.

    Args:
        method: RPC method name.
        message: Raw failure message (before truncation).
        policy: Rule tables to consult.

    Returns:
        ``NOT_EXECUTED`` when a rule proves it, otherwise ``UNKNOWN``.

    """
    return first_match(policy.not_executed, method, message, ExecutedVerdict.UNKNOWN)


def should_retry(method: str, message: str, policy: EffectPolicy = DEFAULT_POLICY) -> bool:
    """Return whether the failure is transient, assuming no side effects occurred."""
    return first_match(policy.no_retry, method, message, True)


@dataclass(frozen=True)
class RetryDecision:
    """Outcome of classifying one failed attempt.

    Attributes:
        executed: Verdict from :func:`classify_execution`.
        method_is_pure: Whether the method is registered as read-only.
        had_effects: Whether side effects must be assumed.
        should_retry: Whether another attempt is allowed.

    """

    executed: ExecutedVerdict
    method_is_pure: bool
    had_effects: bool
    should_retry: bool


def decide(method: str, message: str, policy: EffectPolicy = DEFAULT_POLICY) -> RetryDecision:
    """Combine purity, execution verdict and the override table for one failure.

    A non-pure method is assumed to have had effects unless a rule proves
    it was not executed, and a call that may have had effects is never
    retried.
    """
    executed = classify_execution(method, message, policy)
    method_is_pure = policy.is_pure(method)
    had_effects = not method_is_pure and executed is not ExecutedVerdict.NOT_EXECUTED
    retry = not had_effects and should_retry(method, message, policy)
    return RetryDecision(
        executed=executed,
        method_is_pure=method_is_pure,
        had_effects=had_effects,
        should_retry=retry,
    )
