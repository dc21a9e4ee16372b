# © Copyright 2025-2026, Query.Farm LLC - https://query.farm
# SPDX-License-Identifier: Apache-2.0

"""Expected result shapes and the validation adapter.

A :class:`Shape` is anything that turns a raw JSON result into a typed
value or raises ``ValueError``.  :class:`PydanticShape` is the shipped
implementation, backed by ``pydantic.TypeAdapter``; the client only relies
on the protocol.

Scalar fields use pydantic's strict types: the node speaks JSON, so a
string where a number is expected is a real mismatch, not something to
coerce.  Unknown fields are ignored, since nodes add fields between
releases.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, Literal, Protocol

from pydantic import BaseModel, ConfigDict, StrictBool, StrictFloat, StrictInt, StrictStr, TypeAdapter

from bitcoin_json_rpc.effects import ExecutedVerdict
from bitcoin_json_rpc.errors import ShapeMismatchError

__all__ = [
    "PydanticShape",
    "Shape",
    "validate_result",
]

Number = StrictInt | StrictFloat
"""JSON number: amounts, fees, balances."""


class Shape[T](Protocol):
    """Validates a raw result into ``T``."""

    name: str

    def validate(self, value: object) -> T:
        """Return *value* as ``T`` or raise ``ValueError`` describing the mismatch."""
        ...


class PydanticShape[T]:
    """``Shape`` backed by a ``pydantic.TypeAdapter``."""

    __slots__ = ("_adapter", "name")

    def __init__(self, tp: Any, name: str | None = None) -> None:
        """Build an adapter for the type expression *tp*."""
        self._adapter: TypeAdapter[T] = TypeAdapter(tp)
        self.name = name or getattr(tp, "__name__", repr(tp))

    def validate(self, value: object) -> T:
        """Validate *value*; pydantic's ``ValidationError`` is a ``ValueError``."""
        return self._adapter.validate_python(value)

    def __repr__(self) -> str:
        """Return ``PydanticShape(<name>)``."""
        return f"PydanticShape({self.name})"


def validate_result[T](
    shape: Shape[T],
    value: object,
    *,
    method: str,
    params: Sequence[Any],
    method_is_pure: bool,
    max_attempts: int,
    attempts: int,
    url: str | None = None,
) -> T:
    """Run *value* through *shape*.

    A mismatch means the node processed the request and answered, so the
    raised error is always marked ``EXECUTED``.

    Raises:
        ShapeMismatchError: If *shape* rejects *value*.

    """
    try:
        return shape.validate(value)
    except ValueError as exc:
        inner = _ShapeFailure(f"Invalid {shape.name} result for {method}: {exc}", value)
        raise ShapeMismatchError(
            inner,
            ExecutedVerdict.EXECUTED,
            method=method,
            params=params,
            method_is_pure=method_is_pure,
            max_attempts=max_attempts,
            attempts=attempts,
            url=url,
        ) from exc


class _ShapeFailure(Exception):
    """Carries the rejected value into ``ShapeMismatchError.data``."""

    def __init__(self, message: str, value: object) -> None:
        self.message = message
        self.data = {"value": value}
        super().__init__(message)


# ---------------------------------------------------------------------------
# Result models
# ---------------------------------------------------------------------------


class _Result(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)


class SignRawTransactionWithWalletResult(_Result):
    hex: StrictStr
    complete: StrictBool


class FundRawTransactionResult(_Result):
    hex: StrictStr
    fee: Number
    changepos: StrictInt


class GetTransactionResult(_Result):
    fee: Number | None = None
    blockhash: StrictStr | None = None


class LiquidTransactionDetail(_Result):
    # Absent when issuing
    address: StrictStr | None = None
    category: Literal["send", "receive"]
    amount: Number
    asset: StrictStr
    vout: StrictInt
    fee: Number | None = None


class LiquidGetTransactionResult(_Result):
    amount: dict[str, Number]
    fee: dict[str, Number] | None = None
    confirmations: StrictInt | None = None
    blockhash: StrictStr | None = None
    txid: StrictStr
    details: list[LiquidTransactionDetail]


class GetInfoResult(_Result):
    blocks: StrictInt


class GetBlockchainInfoResult(_Result):
    blocks: StrictInt
    headers: StrictInt | None = None
    initial_block_download_complete: StrictBool | None = None


class ScriptPubKey(_Result):
    hex: StrictStr
    addresses: list[StrictStr] | None = None
    address: StrictStr | None = None
    type: StrictStr
    reqSigs: StrictInt | None = None


class RawTransactionOutput(_Result):
    # n and scriptPubKey are missing for Litecoin MWEB outputs, value for Liquid
    n: StrictInt | None = None
    value: Number | None = None
    scriptPubKey: ScriptPubKey | None = None


class RawTransactionInput(_Result):
    # Missing for coinbase inputs
    txid: StrictStr | None = None
    vout: StrictInt | None = None


class GetRawTransactionAsObjectResult(_Result):
    txid: StrictStr
    hash: StrictStr | None = None
    blockhash: StrictStr | None = None
    vout: list[RawTransactionOutput]
    vin: list[RawTransactionInput]


class GetBlockFromHashResult(_Result):
    """Block at verbosity 1."""

    tx: list[StrictStr]
    height: StrictInt


class ValidateAddressResult(_Result):
    isvalid: StrictBool
    address: StrictStr | None = None
    ismweb: StrictBool | None = None


class LiquidValidateAddressResult(ValidateAddressResult):
    unconfidential: StrictStr
    address: StrictStr


class BalanceBreakdown(_Result):
    trusted: Number
    untrusted_pending: Number
    immature: Number
    used: Number | None = None


class GetBalancesResult(_Result):
    mine: BalanceBreakdown
    watchonly: BalanceBreakdown | None = None


class OmniPropertyBalance(_Result):
    propertyid: StrictInt
    name: StrictStr
    balance: StrictStr
    reserved: StrictStr
    frozen: StrictStr


class OmniWalletAddressBalance(_Result):
    address: StrictStr
    balances: list[OmniPropertyBalance]


class OmniGetTransactionResult(_Result):
    txid: StrictStr
    amount: StrictStr | None = None
    propertyid: StrictInt | None = None
    valid: StrictBool | None = None
    invalidreason: StrictStr | None = None
    type: StrictStr
    type_int: StrictInt
    version: StrictInt
    referenceaddress: StrictStr | None = None


class OmniPendingTransaction(_Result):
    txid: StrictStr
    amount: StrictStr | None = None
    propertyid: StrictInt | None = None
    type_int: StrictInt
    type: StrictStr
    version: StrictInt
    referenceaddress: StrictStr | None = None


class ZcashValidateAddressResult(_Result):
    isvalid: StrictBool
    address: StrictStr | None = None
    type: StrictStr | None = None


class ZcashUnspent(_Result):
    txid: StrictStr
    address: StrictStr
    change: StrictBool
    amount: Number
    outindex: StrictInt | None = None


class Unspent(_Result):
    txid: StrictStr
    vout: StrictInt
    address: StrictStr
    amount: Number
    confirmations: StrictInt
    spendable: StrictBool
    solvable: StrictBool | None = None
    safe: StrictBool | None = None


class WalletLoadResult(_Result):
    """Result of ``createwallet`` and ``loadwallet``."""

    name: StrictStr
    warning: StrictStr = ""


class WalletUnloadResult(_Result):
    warning: StrictStr = ""


# ---------------------------------------------------------------------------
# Shapes, one per distinct result
# ---------------------------------------------------------------------------

TXID: Shape[str] = PydanticShape(StrictStr, "txid")
HEX: Shape[str] = PydanticShape(StrictStr, "hex")
OPERATION_ID: Shape[str] = PydanticShape(StrictStr, "operation id")
ADDRESS: Shape[str] = PydanticShape(StrictStr, "address")
BLOCK_HASH: Shape[str] = PydanticShape(StrictStr, "block hash")
PRIVATE_KEY: Shape[str] = PydanticShape(StrictStr, "private key")
BOOL: Shape[bool] = PydanticShape(StrictBool, "bool")
AMOUNT: Shape[float] = PydanticShape(Number, "amount")
BLOCK_COUNT: Shape[int] = PydanticShape(StrictInt, "block count")
TXID_LIST: Shape[list[str]] = PydanticShape(list[StrictStr], "txid list")
NAME_LIST: Shape[list[str]] = PydanticShape(list[StrictStr], "name list")
ASSET_BALANCES: Shape[dict[str, float]] = PydanticShape(dict[str, Number], "asset balances")
OPERATION_RESULTS: Shape[list[Any]] = PydanticShape(list[Any], "operation results")

SIGN_RAW_TRANSACTION: Shape[SignRawTransactionWithWalletResult] = PydanticShape(SignRawTransactionWithWalletResult)
FUND_RAW_TRANSACTION: Shape[FundRawTransactionResult] = PydanticShape(FundRawTransactionResult)
GET_TRANSACTION: Shape[GetTransactionResult] = PydanticShape(GetTransactionResult)
LIQUID_GET_TRANSACTION: Shape[LiquidGetTransactionResult] = PydanticShape(LiquidGetTransactionResult)
GET_INFO: Shape[GetInfoResult] = PydanticShape(GetInfoResult)
GET_BLOCKCHAIN_INFO: Shape[GetBlockchainInfoResult] = PydanticShape(GetBlockchainInfoResult)
GET_RAW_TRANSACTION: Shape[GetRawTransactionAsObjectResult] = PydanticShape(GetRawTransactionAsObjectResult)
GET_BLOCK: Shape[GetBlockFromHashResult] = PydanticShape(GetBlockFromHashResult)
VALIDATE_ADDRESS: Shape[ValidateAddressResult] = PydanticShape(ValidateAddressResult)
LIQUID_VALIDATE_ADDRESS: Shape[LiquidValidateAddressResult] = PydanticShape(LiquidValidateAddressResult)
GET_BALANCES: Shape[GetBalancesResult] = PydanticShape(GetBalancesResult)
OMNI_WALLET_BALANCES: Shape[list[OmniWalletAddressBalance]] = PydanticShape(
    list[OmniWalletAddressBalance], "omni wallet balances"
)
OMNI_GET_TRANSACTION: Shape[OmniGetTransactionResult] = PydanticShape(OmniGetTransactionResult)
OMNI_PENDING: Shape[list[OmniPendingTransaction]] = PydanticShape(list[OmniPendingTransaction], "omni pending list")
ZCASH_VALIDATE_ADDRESS: Shape[ZcashValidateAddressResult] = PydanticShape(ZcashValidateAddressResult)
ZCASH_UNSPENT: Shape[list[ZcashUnspent]] = PydanticShape(list[ZcashUnspent], "zcash unspent list")
UNSPENT: Shape[list[Unspent]] = PydanticShape(list[Unspent], "unspent list")
WALLET_LOAD: Shape[WalletLoadResult] = PydanticShape(WalletLoadResult)
WALLET_UNLOAD: Shape[WalletUnloadResult] = PydanticShape(WalletUnloadResult)
