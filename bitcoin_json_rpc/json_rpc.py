# © Copyright 2025-2026, Query.Farm LLC - https://query.farm
# SPDX-License-Identifier: Apache-2.0

"""JSON-RPC 2.0 transport and response classification.

``json_rpc_cmd`` performs one attempt: it POSTs the envelope, normalizes
whatever comes back and either returns the ``result`` or raises a
``JsonRpcError`` subclass.  It never retries; see ``bitcoin_json_rpc.retry``.

Response normalization
----------------------
- empty body: ``data is undefined``, chained to the HTTP status error
- bare string body (legacy nodes, proxies): the string is the message
- envelope with ``error``: ``error.message``, or the whole body as JSON
- envelope without ``result``: ``Result missing from <body>``

Every raised error carries ``json_rpc_request`` (url redacted) in ``data``
and, where a body was received, ``json_rpc_response``.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping, Sequence
from typing import Any, Final

import httpx

from bitcoin_json_rpc._debug import fmt_payload, wire_request_logger, wire_response_logger
from bitcoin_json_rpc.config import redact_url
from bitcoin_json_rpc.errors import JsonRpcError, JsonRpcResponseError, JsonRpcTransportError

__all__ = [
    "CONNECTION_REFUSED",
    "build_envelope",
    "extract_result",
    "json_rpc_cmd",
    "raise_if_error_in_response",
]

CONNECTION_REFUSED: Final = "ECONNREFUSED"
"""Message used for every failure to establish a connection."""


def build_envelope(method: str, params: Sequence[Any]) -> dict[str, Any]:
    """Return the JSON-RPC 2.0 request object for *method*."""
    return {"jsonrpc": "2.0", "id": 1, "method": method, "params": list(params)}


def raise_if_error_in_response(body: Any, *, cause: BaseException | None = None) -> None:
    """Raise ``JsonRpcResponseError`` if *body* describes a failure.

    Args:
        body: Decoded response body (``None`` when empty).
        cause: Earlier error the failure should be chained to.

    Raises:
        JsonRpcResponseError: If *body* is empty, a bare string, or an
            envelope with a non-null ``error`` member.

    """
    if body is None:
        raise JsonRpcResponseError("data is undefined") from cause

    if isinstance(body, str):
        raise JsonRpcResponseError(body, {"json_rpc_response": body}) from cause

    if not isinstance(body, Mapping):
        return

    error = body.get("error")
    if error is None:
        return

    message = error.get("message") if isinstance(error, Mapping) else None
    if message:
        if wire_response_logger.isEnabledFor(logging.DEBUG):
            wire_response_logger.debug("<-- ERR %s", fmt_payload(message))
        raise JsonRpcResponseError(str(message), {"json_rpc_response": body}) from cause

    raise JsonRpcResponseError(json.dumps(body, default=str), {"json_rpc_response": body}) from cause


def extract_result(body: Any) -> Any:
    """Return ``body["result"]``.

    Raises:
        JsonRpcResponseError: If *body* is not an envelope with a ``result`` member.

    """
    if not isinstance(body, Mapping) or "result" not in body:
        text = body if isinstance(body, str) else json.dumps(body, default=str)
        raise JsonRpcResponseError(f"Result missing from {text}")
    return body["result"]


def _decode_body(response: httpx.Response) -> Any:
    """Decode a response body as JSON, falling back to text.

    Nodes label JSON bodies inconsistently, so parsing is attempted
    regardless of ``Content-Type``.
    """
    if not response.content:
        return None
    text = response.text
    try:
        return json.loads(text)
    except ValueError:
        return text


async def json_rpc_cmd(client: httpx.AsyncClient, url: str, method: str, params: Sequence[Any]) -> Any:
    """Send one JSON-RPC request and return its result.

    Args:
        client: HTTP client used for the POST.
        url: Node URL, credentials in userinfo.
        method: RPC method name.
        params: Positional parameters.

    Returns:
        The ``result`` member of the response envelope.

    Raises:
        JsonRpcTransportError: If no response was received.  Connection
            failures use the message ``ECONNREFUSED``.
        JsonRpcResponseError: If the response describes an error or lacks
            a result.

    """
    payload = build_envelope(method, params)
    request_data = {"json_rpc_request": {"url": redact_url(url), "method": method, "params": payload["params"]}}

    if wire_request_logger.isEnabledFor(logging.DEBUG):
        wire_request_logger.debug("--> REQ %s", fmt_payload(payload))

    try:
        response = await client.post(url, json=payload)
    except httpx.ConnectError as exc:
        raise JsonRpcTransportError(CONNECTION_REFUSED, {**request_data, "cause": str(exc)}) from exc
    except httpx.TimeoutException as exc:
        raise JsonRpcTransportError(f"Timeout: {exc}" if str(exc) else "Timeout", request_data) from exc
    except httpx.HTTPError as exc:
        raise JsonRpcTransportError(str(exc) or type(exc).__name__, request_data) from exc

    status_error: httpx.HTTPStatusError | None = None
    try:
        response.raise_for_status()
    except httpx.HTTPStatusError as exc:
        status_error = exc

    body = _decode_body(response)
    try:
        raise_if_error_in_response(body, cause=status_error)
        if status_error is not None:
            raise JsonRpcResponseError(
                f"Request failed with status code {response.status_code}",
                {"json_rpc_response": body},
            ) from status_error
        result = extract_result(body)
    except JsonRpcError as exc:
        exc.add_data({**request_data, "http_status": response.status_code})
        raise

    if wire_response_logger.isEnabledFor(logging.DEBUG):
        wire_response_logger.debug("<-- RES %s", fmt_payload(result))
    return result
