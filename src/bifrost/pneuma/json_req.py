"""
JSON-RPC request bodies understood by a Substrate node.

Each builder returns the request as a dict ready for ``json.dumps``.
Plain reads use ``REQUEST_DEFAULT`` as their id; extrinsic submission uses
``REQUEST_TRANSFER`` so its acknowledgement can be told apart from status
notifications on the same connection.
"""

from __future__ import annotations

from typing import Any, Optional

REQUEST_DEFAULT = 1
REQUEST_TRANSFER = 3


def _request(method: str, params: list, request_id: int) -> dict[str, Any]:
    return {
        "jsonrpc": "2.0",
        "method": method,
        "params": params,
        "id": request_id,
    }


def chain_get_block_hash(number: int = 0, request_id: int = REQUEST_DEFAULT) -> dict[str, Any]:
    """Block hash at ``number``; block 0 is the genesis hash."""
    return _request("chain_getBlockHash", [number], request_id)


def state_get_metadata(request_id: int = REQUEST_DEFAULT) -> dict[str, Any]:
    return _request("state_getMetadata", [], request_id)


def state_get_runtime_version(request_id: int = REQUEST_DEFAULT) -> dict[str, Any]:
    return _request("state_getRuntimeVersion", [], request_id)


def state_get_storage(
    key: str,
    block_hash: Optional[str] = None,
    request_id: int = REQUEST_DEFAULT,
) -> dict[str, Any]:
    params: list = [key]
    if block_hash is not None:
        params.append(block_hash)
    return _request("state_getStorage", params, request_id)


def state_subscribe_storage(keys: list[str], request_id: int = REQUEST_DEFAULT) -> dict[str, Any]:
    return _request("state_subscribeStorage", [list(keys)], request_id)


def author_submit_and_watch_extrinsic(
    xthex: str,
    request_id: int = REQUEST_TRANSFER,
) -> dict[str, Any]:
    return _request("author_submitAndWatchExtrinsic", [xthex], request_id)


def author_submit_extrinsic(xthex: str, request_id: int = REQUEST_DEFAULT) -> dict[str, Any]:
    """Fire-and-forget submission; the node answers with the extrinsic hash."""
    return _request("author_submitExtrinsic", [xthex], request_id)
