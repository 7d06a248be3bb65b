"""
Contract interfaces parsed from ABI JSON and a head/tail ABI decoder.
"""

import json
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from eth_utils import keccak

from .exceptions import AbiDecodeError, NoMatchingEventError, NoMatchingFunctionError

HEX_PATTERN = re.compile(r"^[0-9a-fA-F]*$")
WORD_SIZE = 32


class ParamCategory(Enum):
    SCALAR = "scalar"
    TUPLE = "tuple"
    ARRAY = "array"


@dataclass
class ParamType:
    """ABI parameter descriptor tagged with its decoding category."""

    name: str
    type: str
    components: Optional[List["ParamType"]] = None
    indexed: bool = False

    @classmethod
    def from_abi(cls, entry: Dict[str, Any]) -> "ParamType":
        typ = entry.get("type")
        if not isinstance(typ, str) or not typ.strip():
            raise ValueError("Invalid ABI parameter type.")
        components = None
        raw_components = entry.get("components")
        if isinstance(raw_components, list):
            components = [cls.from_abi(comp) for comp in raw_components]
        return cls(
            name=entry.get("name") or "",
            type=typ.strip(),
            components=components,
            indexed=bool(entry.get("indexed")),
        )

    @property
    def base_type(self) -> str:
        if self.type.endswith("]"):
            return "array"
        if self.type.startswith("tuple"):
            return "tuple"
        return self.type

    @property
    def category(self) -> ParamCategory:
        base = self.base_type
        if base == "array":
            return ParamCategory.ARRAY
        if base == "tuple":
            return ParamCategory.TUPLE
        return ParamCategory.SCALAR

    def array_length(self) -> Optional[int]:
        """Length of the outermost dimension, None for dynamic arrays."""
        if not self.type.endswith("]"):
            raise ValueError(f"'{self.type}' is not an array type.")
        size = self.type[self.type.rfind("[") + 1 : -1]
        return int(size) if size else None

    def element_type(self) -> "ParamType":
        """Strip the outermost array dimension: tuple[][] -> tuple[], uint8[3] -> uint8."""
        if not self.type.endswith("]"):
            raise ValueError(f"'{self.type}' is not an array type.")
        return ParamType(
            name=self.name,
            type=self.type[: self.type.rfind("[")],
            components=self.components,
            indexed=self.indexed,
        )

    def canonical_type(self) -> str:
        if self.type.startswith("tuple"):
            inner = ",".join(comp.canonical_type() for comp in self.components or [])
            return f"({inner}){self.type[len('tuple'):]}"
        base, suffix = _split_suffix(self.type)
        if base == "uint":
            base = "uint256"
        elif base == "int":
            base = "int256"
        return base + suffix


@dataclass
class FunctionFragment:
    name: str
    inputs: List[ParamType] = field(default_factory=list)
    outputs: List[ParamType] = field(default_factory=list)

    @property
    def signature(self) -> str:
        return format_signature(self.name, self.inputs)

    @property
    def selector(self) -> str:
        return selector_hex(self.signature)


@dataclass
class EventFragment:
    name: str
    inputs: List[ParamType] = field(default_factory=list)
    anonymous: bool = False

    @property
    def signature(self) -> str:
        return format_signature(self.name, self.inputs)

    @property
    def topic(self) -> str:
        return "0x" + keccak256(self.signature.encode()).hex()


@dataclass
class ConstructorFragment:
    inputs: List[ParamType] = field(default_factory=list)


class Interface:
    """Functions, events and constructor of one contract ABI."""

    def __init__(self, abi: Union[str, List[Dict[str, Any]]]) -> None:
        entries = parse_abi(abi) if isinstance(abi, str) else abi
        if not isinstance(entries, list):
            raise ValueError("ABI must be a JSON array.")

        self.abi = entries
        self.functions: Dict[str, FunctionFragment] = {}
        self.events: Dict[str, EventFragment] = {}
        self.constructor: Optional[ConstructorFragment] = None

        for entry in entries:
            if not isinstance(entry, dict):
                continue
            kind = entry.get("type", "function")
            inputs = [ParamType.from_abi(inp) for inp in entry.get("inputs") or []]
            if kind == "function":
                name = entry.get("name")
                if not name:
                    continue
                outputs = [ParamType.from_abi(out) for out in entry.get("outputs") or []]
                fragment = FunctionFragment(name=name, inputs=inputs, outputs=outputs)
                # first declaration wins on a selector clash
                self.functions.setdefault(fragment.selector, fragment)
            elif kind == "event":
                name = entry.get("name")
                if not name:
                    continue
                event = EventFragment(name=name, inputs=inputs, anonymous=bool(entry.get("anonymous")))
                if not event.anonymous:
                    self.events.setdefault(event.topic, event)
            elif kind == "constructor":
                self.constructor = ConstructorFragment(inputs=inputs)

    def selectors(self) -> List[str]:
        return list(self.functions.keys())

    def get_function(self, selector: str) -> Optional[FunctionFragment]:
        return self.functions.get(selector.lower())

    def parse_transaction(self, data: Union[str, bytes]) -> Tuple[FunctionFragment, List[Any]]:
        raw = data if isinstance(data, bytes) else hex_to_bytes(data)
        if len(raw) < 4:
            raise NoMatchingFunctionError("Call data shorter than a function selector.")
        selector = "0x" + raw[:4].hex()
        fragment = self.functions.get(selector)
        if fragment is None:
            raise NoMatchingFunctionError(f"No matching function for selector {selector}.")
        return fragment, decode_abi(fragment.inputs, raw[4:])

    def decode_function_result(self, fragment: FunctionFragment, data: Union[str, bytes]) -> List[Any]:
        raw = data if isinstance(data, bytes) else hex_to_bytes(data)
        return decode_abi(fragment.outputs, raw)

    def decode_constructor_args(self, data: Union[str, bytes]) -> List[Any]:
        if self.constructor is None:
            raise NoMatchingFunctionError("Interface declares no constructor.")
        raw = data if isinstance(data, bytes) else hex_to_bytes(data)
        return decode_abi(self.constructor.inputs, raw)

    def parse_log(self, topics: Sequence[str], data: Union[str, bytes]) -> Tuple[EventFragment, List[Any]]:
        if not topics:
            raise NoMatchingEventError("Log has no topics.")
        topic0 = topics[0].lower()
        fragment = self.events.get(topic0)
        if fragment is None:
            raise NoMatchingEventError(f"No matching event for topic {topic0}.")

        indexed = [param for param in fragment.inputs if param.indexed]
        if len(indexed) != len(topics) - 1:
            # same signature, different indexing (e.g. ERC20 vs ERC721 Transfer)
            raise NoMatchingEventError(
                f"Event {fragment.name} expects {len(indexed)} indexed topics, log has {len(topics) - 1}."
            )

        raw = data if isinstance(data, bytes) else hex_to_bytes(data)
        non_indexed = decode_abi([param for param in fragment.inputs if not param.indexed], raw)

        args: List[Any] = []
        topic_values = iter(topics[1:])
        data_values = iter(non_indexed)
        for param in fragment.inputs:
            if not param.indexed:
                args.append(next(data_values))
                continue
            topic = next(topic_values).lower()
            if is_hashed_topic(param):
                args.append(topic)
            else:
                args.append(decode_abi([param], hex_to_bytes(topic))[0])
        return fragment, args


def parse_abi(abi_raw: str) -> Any:
    try:
        return json.loads(abi_raw)
    except json.JSONDecodeError as exc:
        raise ValueError("Invalid ABI JSON.") from exc


def keccak256(data: bytes) -> bytes:
    return keccak(data)


def selector_hex(signature: str) -> str:
    return "0x" + keccak256(signature.encode())[:4].hex()


def format_signature(name: str, inputs: Sequence[ParamType]) -> str:
    return f"{name}({','.join(param.canonical_type() for param in inputs)})"


def is_hashed_topic(param: ParamType) -> bool:
    """Indexed reference types are stored in topics as the keccak hash of their encoding."""
    return param.category is not ParamCategory.SCALAR or param.type in {"bytes", "string"}


def hex_to_bytes(value: str) -> bytes:
    if not isinstance(value, str):
        raise AbiDecodeError("Data must be a hex string.")
    v = value[2:] if value[:2] in ("0x", "0X") else value
    if len(v) % 2 != 0:
        raise AbiDecodeError("Data must be an even-length hex string.")
    if not HEX_PATTERN.match(v):
        raise AbiDecodeError("Data must be a hex string.")
    return bytes.fromhex(v)


def is_dynamic(param: ParamType) -> bool:
    category = param.category
    if category is ParamCategory.ARRAY:
        if param.array_length() is None:
            return True
        return is_dynamic(param.element_type())
    if category is ParamCategory.TUPLE:
        if not param.components:
            return True
        return any(is_dynamic(comp) for comp in param.components)
    return param.type in {"bytes", "string"}


def static_size(param: ParamType) -> int:
    if is_dynamic(param):
        raise AbiDecodeError(f"Type '{param.type}' is dynamic; size unknown.")
    category = param.category
    if category is ParamCategory.ARRAY:
        return (param.array_length() or 0) * static_size(param.element_type())
    if category is ParamCategory.TUPLE:
        return sum(static_size(comp) for comp in param.components or [])
    return WORD_SIZE


def decode_abi(types: Sequence[ParamType], data: bytes) -> List[Any]:
    """Decode a head/tail encoded sequence of values, such as call arguments."""
    return _decode_sequence(types, data, 0)


def _decode_sequence(types: Sequence[ParamType], data: bytes, base_offset: int) -> List[Any]:
    values: List[Any] = []
    cursor = base_offset
    for param in types:
        if is_dynamic(param):
            offset = _read_uint(data, cursor)
            values.append(_decode_at(param, data, base_offset + offset))
            cursor += WORD_SIZE
        else:
            values.append(_decode_at(param, data, cursor))
            cursor += static_size(param)
    return values


def _decode_at(param: ParamType, data: bytes, position: int) -> Any:
    category = param.category
    if category is ParamCategory.ARRAY:
        return _decode_array(param, data, position)
    if category is ParamCategory.TUPLE:
        return tuple(_decode_sequence(param.components or [], data, position))
    return _decode_scalar(param.type, data, position)


def _decode_array(param: ParamType, data: bytes, position: int) -> List[Any]:
    element = param.element_type()
    length = param.array_length()
    body = position
    if length is None:
        length = _read_uint(data, position)
        body = position + WORD_SIZE
        head_size = WORD_SIZE if is_dynamic(element) else static_size(element)
        if length * head_size > len(data) - body:
            raise AbiDecodeError(f"Array length {length} exceeds available data.")
    return _decode_sequence([element] * length, data, body)


def _decode_scalar(typ: str, data: bytes, position: int) -> Any:
    word = _read_word(data, position)
    if typ == "address":
        if any(word[:12]):
            raise AbiDecodeError("Address has non-zero padding bytes.")
        return "0x" + word[-20:].hex()

    if typ.startswith("uint"):
        _check_int_size(typ[4:], "uint")
        return int.from_bytes(word, "big")

    if typ.startswith("int"):
        bits = _check_int_size(typ[3:], "int")
        unsigned = int.from_bytes(word, "big")
        if bits < 256:
            unsigned &= (1 << bits) - 1
        sign_bit = 1 << (bits - 1)
        return unsigned - (1 << bits) if unsigned & sign_bit else unsigned

    if typ == "bool":
        flag = int.from_bytes(word, "big")
        if flag > 1:
            raise AbiDecodeError(f"Invalid bool value {flag}.")
        return flag == 1

    if typ in {"bytes", "string"}:
        length = int.from_bytes(word, "big")
        start = position + WORD_SIZE
        end = start + length
        if end > len(data):
            raise AbiDecodeError(f"{typ} out of range.")
        if typ == "bytes":
            return "0x" + data[start:end].hex()
        return data[start:end].decode("utf-8", errors="replace")

    if typ == "function":
        return "0x" + word[:24].hex()

    if typ.startswith("bytes"):
        size_part = typ[5:]
        if not size_part.isdigit():
            raise AbiDecodeError(f"Unsupported bytes type {typ}.")
        size = int(size_part)
        if size <= 0 or size > 32:
            raise AbiDecodeError("bytesN size must be between 1 and 32.")
        return "0x" + word[:size].hex()

    raise AbiDecodeError(f"Unsupported ABI type '{typ}'.")


def _check_int_size(suffix: str, kind: str) -> int:
    bits = int(suffix) if suffix else 256
    if bits <= 0 or bits > 256 or bits % 8 != 0:
        raise AbiDecodeError(f"Unsupported {kind} size {bits}.")
    return bits


def _read_word(data: bytes, offset: int) -> bytes:
    end = offset + WORD_SIZE
    if offset < 0 or end > len(data):
        raise AbiDecodeError("Data shorter than expected for ABI decoding.")
    return data[offset:end]


def _read_uint(data: bytes, offset: int) -> int:
    return int.from_bytes(_read_word(data, offset), "big")


def _split_suffix(typ: str) -> Tuple[str, str]:
    idx = typ.find("[")
    if idx == -1:
        return typ, ""
    return typ[:idx], typ[idx:]
