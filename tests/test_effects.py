# © Copyright 2025-2026, Query.Farm LLC - https://query.farm
# SPDX-License-Identifier: Apache-2.0

"""Tests for bitcoin_json_rpc.effects: execution verdicts and retry eligibility."""

from __future__ import annotations

import pytest

from bitcoin_json_rpc.effects import (
    DEFAULT_POLICY,
    PURE_METHODS,
    EffectPolicy,
    ExecutedVerdict,
    Rule,
    classify_execution,
    decide,
    first_match,
    should_retry,
)

# ---------------------------------------------------------------------------
# ExecutedVerdict
# ---------------------------------------------------------------------------


class TestExecutedVerdict:
    """Tests for the tri-state verdict's JSON form."""

    @pytest.mark.parametrize(
        ("verdict", "expected"),
        [
            (ExecutedVerdict.NOT_EXECUTED, False),
            (ExecutedVerdict.EXECUTED, True),
            (ExecutedVerdict.UNKNOWN, None),
        ],
    )
    def test_to_json(self, verdict: ExecutedVerdict, expected: bool | None) -> None:
        """Each verdict maps to false, true or null."""
        assert verdict.to_json() is expected


# ---------------------------------------------------------------------------
# Rules
# ---------------------------------------------------------------------------


class TestRule:
    """Tests for Rule matching."""

    def test_message_is_searched(self) -> None:
        """Unanchored patterns match anywhere in the message."""
        rule = Rule.of(r"fees may not be sufficient", True)
        assert rule.matches("sendtoaddress", "Transaction too large, fees may not be sufficient")

    def test_anchored_pattern(self) -> None:
        """Anchored patterns only match at the start."""
        rule = Rule.of(r"^Loading wallet", True)
        assert rule.matches("getbalance", "Loading wallet...")
        assert not rule.matches("getbalance", "Error: Loading wallet failed")

    def test_method_must_fully_match(self) -> None:
        """A method pattern constrains the rule to matching method names."""
        rule = Rule.of(r"Error creating transaction", False, method=r"omni_.*")
        assert rule.matches("omni_send", "Error creating transaction")
        assert not rule.matches("sendtoaddress", "Error creating transaction")
        assert not rule.matches("x_omni_send", "Error creating transaction")

    def test_first_match_order(self) -> None:
        """The first matching rule wins over later ones."""
        rules = [Rule.of("boom", "first"), Rule.of("boom", "second")]
        assert first_match(rules, "m", "boom", "default") == "first"

    def test_first_match_default(self) -> None:
        """No match yields the default."""
        assert first_match([Rule.of("boom", "x")], "m", "quiet", "default") == "default"


# ---------------------------------------------------------------------------
# classify_execution
# ---------------------------------------------------------------------------


class TestClassifyExecution:
    """Tests for the not-executed rule table."""

    @pytest.mark.parametrize(
        "message",
        [
            "Work queue depth exceeded",
            "Loading block index...",
            "Rewinding blocks...",
            "Error creating transaction: something",
            "Loading P2P addresses...",
            "Insufficient funds",
            "Insufficient funds for fee",
            "Error with selected inputs",
            "Sender has insufficient balance",
            "ECONNREFUSED",
            "Verifying blocks...",
            "Loading wallet...",
            "Signing transaction failed: fees may not be sufficient",
            "Error choosing inputs for the send transaction",
            "Invalid amount for send",
            "Activating best chain...",
            "Parsing Omni Layer transactions...",
            "Upgrading database...",
        ],
    )
    def test_not_executed_messages(self, message: str) -> None:
        """Known startup and construction failures prove nothing was executed."""
        assert classify_execution("sendtoaddress", message) is ExecutedVerdict.NOT_EXECUTED

    @pytest.mark.parametrize("message", ["socket hang up", "Request failed with status code 502", ""])
    def test_unknown_messages(self, message: str) -> None:
        """Anything unrecognized is UNKNOWN."""
        assert classify_execution("sendtoaddress", message) is ExecutedVerdict.UNKNOWN

    def test_never_concludes_executed(self) -> None:
        """The default tables have no rule producing EXECUTED."""
        assert all(rule.outcome is ExecutedVerdict.NOT_EXECUTED for rule in DEFAULT_POLICY.not_executed)

    def test_econnrefused_must_be_exact(self) -> None:
        """ECONNREFUSED is anchored at both ends."""
        assert classify_execution("getinfo", "connect ECONNREFUSED 127.0.0.1") is ExecutedVerdict.UNKNOWN


# ---------------------------------------------------------------------------
# should_retry
# ---------------------------------------------------------------------------


class TestShouldRetry:
    """Tests for the no-retry override table."""

    def test_default_is_retry(self) -> None:
        """Unrecognized failures are transient."""
        assert should_retry("getblockcount", "socket hang up") is True

    def test_insufficient_funds_exact(self) -> None:
        """Exactly 'Insufficient funds' is permanent for any method."""
        assert should_retry("sendtoaddress", "Insufficient funds") is False
        assert should_retry("sendtoaddress", "Insufficient funds for fee") is True

    def test_gettransaction_unknown_txid(self) -> None:
        """A non-wallet txid will not appear on retry."""
        assert should_retry("gettransaction", "Invalid or non-wallet transaction id") is False
        assert should_retry("getrawtransaction", "Invalid or non-wallet transaction id") is True

    @pytest.mark.parametrize("message", ["Error creating transaction", "Error choosing inputs"])
    def test_omni_construction_errors(self, message: str) -> None:
        """Omni construction errors are permanent for omni_ methods only."""
        assert should_retry("omni_funded_send", message) is False
        assert should_retry("sendtoaddress", message) is True

    def test_missing_mempool_transaction(self) -> None:
        """A transaction gone from the mempool is not retried."""
        assert should_retry("getrawtransaction", "No such mempool or blockchain transaction") is False


# ---------------------------------------------------------------------------
# decide
# ---------------------------------------------------------------------------


class TestDecide:
    """Tests for the combined retry decision."""

    def test_pure_method_unknown_failure_retries(self) -> None:
        """A read-only method can be retried whatever happened."""
        decision = decide("getrawmempool", "socket hang up")
        assert decision.method_is_pure
        assert decision.executed is ExecutedVerdict.UNKNOWN
        assert not decision.had_effects
        assert decision.should_retry

    def test_non_pure_unknown_failure_never_retries(self) -> None:
        """An effectful method with an unrecognized failure may have executed."""
        decision = decide("sendtoaddress", "socket hang up")
        assert not decision.method_is_pure
        assert decision.had_effects
        assert not decision.should_retry

    def test_non_pure_not_executed_retries(self) -> None:
        """An effectful method retries when nothing was executed."""
        decision = decide("sendtoaddress", "ECONNREFUSED")
        assert decision.executed is ExecutedVerdict.NOT_EXECUTED
        assert not decision.had_effects
        assert decision.should_retry

    def test_not_executed_but_permanent(self) -> None:
        """Insufficient funds: nothing happened, and retrying will not help."""
        decision = decide("sendtoaddress", "Insufficient funds")
        assert decision.executed is ExecutedVerdict.NOT_EXECUTED
        assert not decision.had_effects
        assert not decision.should_retry

    def test_pure_method_permanent_failure(self) -> None:
        """The override table applies to pure methods too."""
        decision = decide("gettransaction", "Invalid or non-wallet transaction id")
        assert decision.method_is_pure
        assert not decision.should_retry

    @pytest.mark.parametrize("method", sorted(PURE_METHODS))
    def test_had_effects_false_for_pure(self, method: str) -> None:
        """Pure methods never have effects."""
        assert not decide(method, "anything").had_effects


# ---------------------------------------------------------------------------
# EffectPolicy
# ---------------------------------------------------------------------------


class TestEffectPolicy:
    """Tests for policy extension."""

    def test_extend_pure_methods(self) -> None:
        """Extra pure methods make unknown failures retryable."""
        policy = DEFAULT_POLICY.extend(pure_methods=["getmininginfo"])
        assert policy.is_pure("getmininginfo")
        assert not DEFAULT_POLICY.is_pure("getmininginfo")
        assert decide("getmininginfo", "socket hang up", policy).should_retry

    def test_extend_not_executed(self) -> None:
        """Extra not-executed rules are consulted after the defaults."""
        policy = DEFAULT_POLICY.extend(not_executed=[Rule.of(r"^Node is warming up", ExecutedVerdict.NOT_EXECUTED)])
        decision = decide("sendtoaddress", "Node is warming up", policy)
        assert decision.executed is ExecutedVerdict.NOT_EXECUTED
        assert decision.should_retry

    def test_extend_no_retry(self) -> None:
        """Extra no-retry rules veto otherwise retryable failures."""
        policy = DEFAULT_POLICY.extend(no_retry=[Rule.of(r"^Block not found", False, method="getblock")])
        assert decide("getblock", "Socket error", policy).should_retry
        assert not decide("getblock", "Block not found", policy).should_retry

    def test_empty_policy(self) -> None:
        """A policy without rules treats every failure as unknown and transient."""
        policy = EffectPolicy(pure_methods=frozenset(), not_executed=(), no_retry=())
        decision = decide("getinfo", "ECONNREFUSED", policy)
        assert decision.executed is ExecutedVerdict.UNKNOWN
        assert decision.had_effects
