"""
Archive node clients that fetch transactions and flatten their call traces
into depth-ordered CallFrame lists.
"""

from typing import Any, Dict, List, Optional, Sequence

from .abi import ParamType, decode_abi, hex_to_bytes, selector_hex
from .exceptions import AbiDecodeError
from .logging_config import get_logger
from .models import CallFrame, Log, MessageType, Transaction
from .rpc_client import RpcClient, RpcError

logger = get_logger(__name__)

GETH_CALL_TYPES = {
    "CALL": MessageType.CALL,
    "CALLCODE": MessageType.DELEGATECALL,
    "DELEGATECALL": MessageType.DELEGATECALL,
    "STATICCALL": MessageType.STATICCALL,
    "CREATE": MessageType.CREATE,
    "CREATE2": MessageType.CREATE,
    "SELFDESTRUCT": MessageType.SELFDESTRUCT,
}

NAME_SELECTOR = selector_hex("name()")
SYMBOL_SELECTOR = selector_hex("symbol()")


class EthereumNodeClient:
    """Shared transaction and token lookups; subclasses implement the trace API of their node."""

    def __init__(self, rpc: RpcClient) -> None:
        self.rpc = rpc

    def get_transaction_details(self, tx_hash: str) -> Transaction:
        tx = self.rpc.call("eth_getTransactionByHash", [tx_hash])
        if not isinstance(tx, dict):
            raise ValueError(f"Transaction {tx_hash} not found.")
        receipt = self.rpc.call("eth_getTransactionReceipt", [tx_hash])
        if not isinstance(receipt, dict):
            raise ValueError(f"Receipt for transaction {tx_hash} not found.")

        status = _hex_to_int(receipt.get("status"), "status")
        return Transaction(
            hash=tx_hash.lower(),
            from_address=_address(tx.get("from")) or "",
            to_address=_address(tx.get("to")),
            status=None if status is None else status == 1,
            logs=[_map_log(entry) for entry in receipt.get("logs") or []],
            value=_hex_to_int(tx.get("value"), "value") or 0,
            nonce=_hex_to_int(tx.get("nonce"), "nonce"),
            gas_limit=_hex_to_int(tx.get("gas"), "gas"),
            gas_used=_hex_to_int(receipt.get("gasUsed"), "gasUsed"),
            gas_price=_hex_to_int(receipt.get("effectiveGasPrice") or tx.get("gasPrice"), "gasPrice"),
            block_number=_hex_to_int(tx.get("blockNumber"), "blockNumber"),
            contract_address=_address(receipt.get("contractAddress")),
        )

    def get_transaction_trace(self, tx_hash: str) -> List[CallFrame]:
        raise NotImplementedError

    def get_token_details(self, addresses: Sequence[str]) -> List[Dict[str, Optional[str]]]:
        """Read ERC20 name and symbol; addresses that answer neither are left out."""
        calls = [
            ("eth_call", [{"to": address, "data": selector}, "latest"])
            for address in addresses
            for selector in (NAME_SELECTOR, SYMBOL_SELECTOR)
        ]
        try:
            results = self.rpc.batch_call(calls)
        except RpcError as exc:
            logger.warning("Failed to get token details: %s", exc)
            return []

        details: List[Dict[str, Optional[str]]] = []
        for i, address in enumerate(addresses):
            name = _string_or_none(results[2 * i])
            symbol = _string_or_none(results[2 * i + 1])
            if name is None and symbol is None:
                continue
            details.append({"address": address, "name": name, "symbol": symbol})
        logger.debug("Found token details for %d of %d addresses", len(details), len(addresses))
        return details


class GethClient(EthereumNodeClient):
    """Geth (and Turbo-Geth) traces via debug_traceTransaction with the callTracer."""

    def get_transaction_trace(self, tx_hash: str) -> List[CallFrame]:
        root = self.rpc.call("debug_traceTransaction", [tx_hash, {"tracer": "callTracer"}])
        if not isinstance(root, dict):
            raise ValueError(f"No trace returned for transaction {tx_hash}.")
        frames: List[CallFrame] = []
        self._flatten(root, 0, frames)
        logger.debug("Got %d traces for transaction %s", len(frames), tx_hash)
        return frames

    def _flatten(self, call: Dict[str, Any], depth: int, frames: List[CallFrame]) -> None:
        frames.append(
            CallFrame(
                id=len(frames),
                type=GETH_CALL_TYPES.get(str(call.get("type", "")).upper(), MessageType.UNKNOWN),
                from_address=_address(call.get("from")) or "",
                to_address=_address(call.get("to")) or "",
                inputs=call.get("input"),
                outputs=call.get("output"),
                depth=depth,
                value=_hex_to_int(call.get("value"), "value") or 0,
                gas_limit=_hex_to_int(call.get("gas"), "gas"),
                gas_used=_hex_to_int(call.get("gasUsed"), "gasUsed"),
                error=call.get("error"),
            )
        )
        for child in call.get("calls") or []:
            self._flatten(child, depth + 1, frames)


class OpenEthereumClient(EthereumNodeClient):
    """OpenEthereum and Nethermind traces via trace_transaction."""

    def get_transaction_trace(self, tx_hash: str) -> List[CallFrame]:
        results = self.rpc.call("trace_transaction", [tx_hash])
        if not isinstance(results, list):
            raise ValueError(f"No trace returned for transaction {tx_hash}.")
        frames = [self._map_trace(idx, entry) for idx, entry in enumerate(results)]
        logger.debug("Got %d traces for transaction %s", len(frames), tx_hash)
        return frames

    def _map_trace(self, idx: int, entry: Dict[str, Any]) -> CallFrame:
        action = entry.get("action") or {}
        result = entry.get("result") or {}
        kind = entry.get("type")
        depth = len(entry.get("traceAddress") or [])

        if kind == "create":
            msg_type = MessageType.CREATE
            from_address = _address(action.get("from"))
            to_address = _address(result.get("address"))
            inputs = action.get("init")
            outputs = result.get("code")
        elif kind == "suicide":
            msg_type = MessageType.SELFDESTRUCT
            from_address = _address(action.get("address"))
            to_address = _address(action.get("refundAddress"))
            inputs = None
            outputs = None
        else:
            msg_type = GETH_CALL_TYPES.get(str(action.get("callType", "")).upper(), MessageType.UNKNOWN)
            from_address = _address(action.get("from"))
            to_address = _address(action.get("to"))
            inputs = action.get("input")
            outputs = result.get("output")

        return CallFrame(
            id=idx,
            type=msg_type,
            from_address=from_address or "",
            to_address=to_address or "",
            inputs=inputs,
            outputs=outputs,
            depth=depth,
            value=_hex_to_int(action.get("value") or action.get("balance"), "value") or 0,
            gas_limit=_hex_to_int(action.get("gas"), "gas"),
            gas_used=_hex_to_int(result.get("gasUsed"), "gasUsed"),
            error=entry.get("error"),
        )


def make_node_client(node_type: str, rpc: RpcClient) -> EthereumNodeClient:
    normalized = (node_type or "").lower()
    if normalized in {"geth", "tgeth"}:
        logger.debug("Using Geth client.")
        return GethClient(rpc)
    if normalized in {"openeth", "nether"}:
        logger.debug("Using OpenEthereum client.")
        return OpenEthereumClient(rpc)
    if normalized == "besu":
        raise ValueError("Hyperledger Besu nodes are not currently supported.")
    raise ValueError(f"Invalid node type '{node_type}'.")


def decode_string_result(result_hex: str) -> Optional[str]:
    """Decode a string return value, falling back to the bytes32 form some old tokens use."""
    data = hex_to_bytes(result_hex)
    if not data:
        return None
    if len(data) >= 64:
        return decode_abi([ParamType(name="", type="string")], data)[0]
    if len(data) == 32:
        return data.rstrip(b"\x00").decode("utf-8", errors="replace")
    raise AbiDecodeError("Unexpected string result length.")


def _string_or_none(result: Any) -> Optional[str]:
    if not isinstance(result, str):
        return None
    try:
        return decode_string_result(result)
    except AbiDecodeError:
        return None


def _map_log(entry: Dict[str, Any]) -> Log:
    return Log(
        address=_address(entry.get("address")) or "",
        topics=[str(topic).lower() for topic in entry.get("topics") or []],
        data=entry.get("data") or "0x",
        log_index=_hex_to_int(entry.get("logIndex"), "logIndex"),
    )


def _address(value: Any) -> Optional[str]:
    if not isinstance(value, str) or not value:
        return None
    return value.lower()


def _hex_to_int(value: Any, field: str) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, int):
        return value
    if not isinstance(value, str):
        return None
    try:
        return int(value, 16)
    except ValueError as exc:
        raise ValueError(f"{field} is not a valid hex value.") from exc
