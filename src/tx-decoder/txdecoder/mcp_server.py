"""
MCP server exposing transaction trace decoding.
"""

import argparse
from collections.abc import Mapping
from typing import Any, Optional

from mcp.server.fastmcp import FastMCP

from .config import load_config
from .logging_config import setup_logging
from .serialization import load_bundle, to_jsonable
from .transaction import TransactionManager

server = FastMCP(
    name="tx-decoder",
    instructions="Decode Ethereum transaction call traces, events and constructor params into a typed call graph.",
)

_manager: Optional[TransactionManager] = None


def _get_manager() -> TransactionManager:
    global _manager
    if _manager is None:
        cfg = load_config()
        _manager = TransactionManager.from_config(cfg)
    return _manager


def _normalize_hashes(value: Any) -> list:
    """Accept a list of hashes or a comma separated string."""
    if isinstance(value, str):
        return [item.strip() for item in value.split(",") if item.strip()]
    if isinstance(value, Mapping):
        raise ValueError("tx_hashes must be an array or comma separated string, not an object/map.")
    if isinstance(value, (list, tuple)):
        return list(value)
    raise ValueError("tx_hashes must be an array or comma separated string.")


@server.tool(
    name="decode_transactions",
    title="Decode Transactions",
    description="Fetch traces for one or more transactions from the archive node and decode calls, params, events and contract call depths.",
)
def decode_transactions(
    tx_hashes: Any,
    max_depth: Optional[int] = None,
    include_params: bool = True,
) -> dict:
    manager = _get_manager()
    run = manager.fetch(_normalize_hashes(tx_hashes))
    return to_jsonable(run.to_dict(max_depth=max_depth, include_params=include_params))


@server.tool(
    name="decode_bundle",
    title="Decode Trace Bundle",
    description="Decode an already fetched bundle object with `transactions`, `traces` and `contracts` (address -> {abi, constructorInputs}).",
)
def decode_bundle(
    bundle: dict,
    max_depth: Optional[int] = None,
    include_params: bool = True,
) -> dict:
    transactions, traces, contracts = load_bundle(bundle)
    run = TransactionManager.decode(transactions, traces, contracts)
    return to_jsonable(run.to_dict(max_depth=max_depth, include_params=include_params))


def main() -> None:
    parser = argparse.ArgumentParser(description="Run the tx-decoder MCP server.")
    parser.add_argument(
        "--transport",
        choices=["stdio", "sse", "streamable-http"],
        default="stdio",
        help="Transport protocol for MCP.",
    )
    parser.add_argument(
        "--host",
        default="127.0.0.1",
        help="Host for SSE/HTTP transports.",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=8000,
        help="Port for SSE/HTTP transports.",
    )
    parser.add_argument(
        "--mount-path",
        default="/",
        help="Mount path for SSE transport (only when transport=sse).",
    )
    args = parser.parse_args()

    setup_logging()

    # FastMCP uses host/port only for SSE/HTTP transports; stdio ignores them.
    server.settings.host = args.host
    server.settings.port = args.port

    if args.transport == "sse":
        server.run(transport="sse", mount_path=args.mount_path)
    else:
        server.run(transport=args.transport)


if __name__ == "__main__":
    main()
