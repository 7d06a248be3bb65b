from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional

from .abi import Interface


class MessageType(Enum):
    UNKNOWN = 0
    CALL = 1
    CREATE = 2
    SELFDESTRUCT = 3
    DELEGATECALL = 4
    STATICCALL = 5


class DecodeOutcome(Enum):
    """Result of one decode attempt on a call frame."""

    RESOLVED = "resolved"
    NO_CANDIDATE = "no_candidate"
    AMBIGUOUS_NO_MATCH = "ambiguous_no_match"
    MALFORMED_DATA = "malformed_data"
    SKIPPED = "skipped"


@dataclass
class ParamNode:
    """One decoded value; components are set for arrays and tuples with declared fields."""

    name: str
    type: str
    value: Any
    components: Optional[List["ParamNode"]] = None


@dataclass
class CallFrame:
    """One step of an EVM execution as returned by the archive node."""

    id: int
    type: MessageType
    from_address: str
    to_address: str
    inputs: Optional[str]
    outputs: Optional[str]
    depth: int
    value: int = 0
    gas_limit: Optional[int] = None
    gas_used: Optional[int] = None
    error: Optional[str] = None
    func_name: Optional[str] = None
    input_params: List[ParamNode] = field(default_factory=list)
    output_params: List[ParamNode] = field(default_factory=list)
    proxy: bool = False
    parsed_constructor_params: bool = False

    @property
    def func_selector(self) -> Optional[str]:
        if not self.inputs:
            return None
        # node and bundle inputs may come with or without the 0x prefix
        raw = self.inputs[2:] if self.inputs[:2] in ("0x", "0X") else self.inputs
        if len(raw) < 8:
            return None
        return "0x" + raw[:8].lower()


@dataclass
class EventRecord:
    name: str
    params: List[ParamNode] = field(default_factory=list)


@dataclass
class Contract:
    """On-chain address with whatever interface and token metadata could be fetched."""

    address: str
    interface: Optional[Interface] = None
    contract_name: Optional[str] = None
    # constructor arguments appended to the creation bytecode, hex without 0x
    constructor_inputs: Optional[str] = None
    token_name: Optional[str] = None
    symbol: Optional[str] = None
    implementation: Optional[str] = None
    min_depth: Optional[int] = None
    events: List[EventRecord] = field(default_factory=list)


@dataclass
class Log:
    address: str
    topics: List[str]
    data: str
    log_index: Optional[int] = None


@dataclass
class Transaction:
    hash: str
    from_address: str
    to_address: Optional[str]
    status: Optional[bool] = None
    logs: List[Log] = field(default_factory=list)
    value: int = 0
    nonce: Optional[int] = None
    gas_limit: Optional[int] = None
    gas_used: Optional[int] = None
    gas_price: Optional[int] = None
    block_number: Optional[int] = None
    contract_address: Optional[str] = None
    error: Optional[str] = None
