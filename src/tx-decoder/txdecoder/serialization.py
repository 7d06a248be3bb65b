"""
JSON conversion of decoded runs, and loading of previously fetched bundles
for offline decoding.
"""

from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from .abi import Interface
from .models import CallFrame, Contract, DecodeOutcome, EventRecord, Log, MessageType, ParamNode, Transaction


def to_jsonable(obj: Any) -> Any:
    """Convert decoded values to JSON-serializable form."""
    if isinstance(obj, Enum):
        return obj.name
    if isinstance(obj, (bytes, bytearray)):
        return "0x" + bytes(obj).hex()
    if isinstance(obj, dict):
        return {str(k): to_jsonable(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [to_jsonable(item) for item in obj]
    return obj


def param_to_dict(param: ParamNode) -> Dict[str, Any]:
    data: Dict[str, Any] = {"name": param.name, "type": param.type, "value": to_jsonable(param.value)}
    if param.components is not None:
        data["components"] = [param_to_dict(child) for child in param.components]
    return data


def call_frame_to_dict(
    frame: CallFrame, outcome: Optional[DecodeOutcome] = None, include_params: bool = True
) -> Dict[str, Any]:
    data: Dict[str, Any] = {
        "id": frame.id,
        "type": frame.type.name,
        "from": frame.from_address,
        "to": frame.to_address,
        "depth": frame.depth,
        "value": frame.value,
        "gas_limit": frame.gas_limit,
        "gas_used": frame.gas_used,
        "func_selector": frame.func_selector,
        "func_name": frame.func_name,
        "proxy": frame.proxy,
        "error": frame.error,
    }
    if frame.type is MessageType.CREATE:
        data["parsed_constructor_params"] = frame.parsed_constructor_params
    if outcome is not None:
        data["outcome"] = outcome.name
    if include_params:
        data["input_params"] = [param_to_dict(param) for param in frame.input_params]
        data["output_params"] = [param_to_dict(param) for param in frame.output_params]
    return data


def event_to_dict(event: EventRecord, include_params: bool = True) -> Dict[str, Any]:
    data: Dict[str, Any] = {"name": event.name}
    if include_params:
        data["params"] = [param_to_dict(param) for param in event.params]
    return data


def contract_to_dict(contract: Contract, include_params: bool = True) -> Dict[str, Any]:
    return {
        "address": contract.address,
        "contract_name": contract.contract_name,
        "token_name": contract.token_name,
        "symbol": contract.symbol,
        "verified": contract.interface is not None,
        "implementation": contract.implementation,
        "min_depth": contract.min_depth,
        "events": [event_to_dict(event, include_params) for event in contract.events],
    }


def transaction_to_dict(tx: Transaction) -> Dict[str, Any]:
    return {
        "hash": tx.hash,
        "from": tx.from_address,
        "to": tx.to_address,
        "status": tx.status,
        "value": tx.value,
        "nonce": tx.nonce,
        "gas_limit": tx.gas_limit,
        "gas_used": tx.gas_used,
        "gas_price": tx.gas_price,
        "block_number": tx.block_number,
        "contract_address": tx.contract_address,
        "error": tx.error,
        "log_count": len(tx.logs),
    }


def load_bundle(
    bundle: Dict[str, Any]
) -> Tuple[List[Transaction], List[List[CallFrame]], Dict[str, Contract]]:
    """Build models from a JSON bundle with ``transactions``, ``traces`` and ``contracts``.

    Addresses that appear in traces but not in ``contracts`` get a bare Contract.
    """
    if not isinstance(bundle, dict):
        raise ValueError("Bundle must be a JSON object.")

    transactions = [_transaction_from_dict(entry) for entry in bundle.get("transactions") or []]
    traces = [
        [_frame_from_dict(idx, entry) for idx, entry in enumerate(frames)]
        for frames in bundle.get("traces") or []
    ]

    contracts: Dict[str, Contract] = {}
    for frames in traces:
        for frame in frames:
            for address in (frame.from_address, frame.to_address):
                if address and address not in contracts:
                    contracts[address] = Contract(address=address)

    for address, entry in (bundle.get("contracts") or {}).items():
        contract = _contract_from_dict(address.lower(), entry or {})
        contracts[contract.address] = contract
    return transactions, traces, contracts


def _frame_from_dict(idx: int, entry: Dict[str, Any]) -> CallFrame:
    raw_type = str(entry.get("type", "CALL")).upper()
    try:
        msg_type = MessageType[raw_type]
    except KeyError:
        msg_type = MessageType.UNKNOWN
    return CallFrame(
        id=int(entry.get("id", idx)),
        type=msg_type,
        from_address=str(entry.get("from") or "").lower(),
        to_address=str(entry.get("to") or "").lower(),
        inputs=entry.get("input"),
        outputs=entry.get("output"),
        depth=int(entry.get("depth", 0)),
        value=_int(entry.get("value")) or 0,
        gas_limit=_int(entry.get("gas")),
        gas_used=_int(entry.get("gasUsed")),
        error=entry.get("error"),
    )


def _transaction_from_dict(entry: Dict[str, Any]) -> Transaction:
    logs = [
        Log(
            address=str(log.get("address") or "").lower(),
            topics=[str(topic).lower() for topic in log.get("topics") or []],
            data=log.get("data") or "0x",
            log_index=_int(log.get("logIndex")),
        )
        for log in entry.get("logs") or []
    ]
    status = entry.get("status")
    return Transaction(
        hash=str(entry.get("hash") or "").lower(),
        from_address=str(entry.get("from") or "").lower(),
        to_address=(entry.get("to") or None) and str(entry.get("to")).lower(),
        status=None if status is None else bool(_int(status)),
        logs=logs,
        value=_int(entry.get("value")) or 0,
        gas_used=_int(entry.get("gasUsed")),
        block_number=_int(entry.get("blockNumber")),
    )


def _contract_from_dict(address: str, entry: Dict[str, Any]) -> Contract:
    abi = entry.get("abi")
    constructor_inputs = entry.get("constructorInputs") or entry.get("constructor_inputs")
    if isinstance(constructor_inputs, str) and constructor_inputs.startswith("0x"):
        constructor_inputs = constructor_inputs[2:]
    return Contract(
        address=address,
        interface=Interface(abi) if abi else None,
        contract_name=entry.get("contractName") or entry.get("contract_name"),
        constructor_inputs=constructor_inputs or None,
        token_name=entry.get("tokenName") or entry.get("token_name"),
        symbol=entry.get("symbol"),
    )


def _int(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    text = str(value).strip()
    return int(text, 16) if text.lower().startswith("0x") else int(text)
