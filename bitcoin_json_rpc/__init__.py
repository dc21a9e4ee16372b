# © Copyright 2025-2026, Query.Farm LLC - https://query.farm
# SPDX-License-Identifier: Apache-2.0

"""Retrying asyncio client for bitcoind-compatible JSON-RPC nodes."""

import logging

from bitcoin_json_rpc.client import AddressType, BitcoinJsonRpc, EstimateMode
from bitcoin_json_rpc.config import NodeEndpoint, redact_url, with_wallet
from bitcoin_json_rpc.effects import (
    DEFAULT_POLICY,
    NO_RETRY_RULES,
    NOT_EXECUTED_RULES,
    PURE_METHODS,
    EffectPolicy,
    ExecutedVerdict,
    RetryDecision,
    Rule,
    classify_execution,
    decide,
    should_retry,
)
from bitcoin_json_rpc.errors import (
    MAX_ERROR_MESSAGE_LENGTH,
    BitcoinJsonRpcError,
    JsonRpcError,
    JsonRpcResponseError,
    JsonRpcTransportError,
    RetriesExhaustedError,
    ShapeMismatchError,
    UnretryableError,
)
from bitcoin_json_rpc.json_rpc import json_rpc_cmd
from bitcoin_json_rpc.retry import RetryConfig, call_with_retry
from bitcoin_json_rpc.shapes import PydanticShape, Shape, validate_result

logging.getLogger("bitcoin_json_rpc").addHandler(logging.NullHandler())

__all__ = [
    "DEFAULT_POLICY",
    "MAX_ERROR_MESSAGE_LENGTH",
    "NOT_EXECUTED_RULES",
    "NO_RETRY_RULES",
    "PURE_METHODS",
    "AddressType",
    "BitcoinJsonRpc",
    "BitcoinJsonRpcError",
    "EffectPolicy",
    "EstimateMode",
    "ExecutedVerdict",
    "JsonRpcError",
    "JsonRpcResponseError",
    "JsonRpcTransportError",
    "NodeEndpoint",
    "PydanticShape",
    "RetriesExhaustedError",
    "RetryConfig",
    "RetryDecision",
    "Rule",
    "Shape",
    "ShapeMismatchError",
    "UnretryableError",
    "call_with_retry",
    "classify_execution",
    "decide",
    "json_rpc_cmd",
    "redact_url",
    "should_retry",
    "validate_result",
    "with_wallet",
]
