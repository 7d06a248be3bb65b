"""
Resolve call frames to the function or constructor they invoke and decode
their arguments and return values in place.
"""

from typing import List, Mapping, Optional, Sequence, Union

from .abi import hex_to_bytes
from .exceptions import AbiDecodeError, NoMatchingFunctionError
from .logging_config import get_logger
from .models import CallFrame, Contract, DecodeOutcome, MessageType
from .params import build_params
from .selectors import SelectorIndex

logger = get_logger(__name__)

# 4-byte selector plus at least one 32-byte argument word
MIN_CALL_DATA_BYTES = 4 + 32


def parse_trace_params(
    traces: Sequence[Union[CallFrame, Sequence[CallFrame]]],
    contracts: Mapping[str, Contract],
    index: Optional[SelectorIndex] = None,
) -> List[DecodeOutcome]:
    """Decode every frame of every transaction; returns one outcome per frame in flattened order."""
    if index is None:
        index = SelectorIndex.build(contracts)
    return [resolve_frame(frame, index, contracts) for frame in flatten_traces(traces)]


def flatten_traces(traces: Sequence[Union[CallFrame, Sequence[CallFrame]]]) -> List[CallFrame]:
    flat: List[CallFrame] = []
    for item in traces:
        if isinstance(item, CallFrame):
            flat.append(item)
        else:
            flat.extend(item)
    return flat


def resolve_frame(frame: CallFrame, index: SelectorIndex, contracts: Mapping[str, Contract]) -> DecodeOutcome:
    try:
        call_data = hex_to_bytes(frame.inputs or "0x")
    except AbiDecodeError as exc:
        _warn_malformed(frame, exc)
        return DecodeOutcome.MALFORMED_DATA

    if len(call_data) < MIN_CALL_DATA_BYTES:
        return DecodeOutcome.SKIPPED

    if frame.type is MessageType.CREATE:
        return resolve_constructor(frame, contracts)

    selector = "0x" + call_data[:4].hex()
    candidates = index.candidates(selector)
    if not candidates:
        return DecodeOutcome.NO_CANDIDATE

    contract = next((c for c in candidates if c.address == frame.to_address), None)
    if contract is None:
        # code executed belongs to another contract, e.g. behind a delegatecall proxy
        contract = candidates[0]
        frame.proxy = True

    interface = contract.interface
    try:
        fragment, args = interface.parse_transaction(call_data)
        frame.func_name = fragment.name
        frame.input_params = build_params(fragment.inputs, args)

        # failed calls can leave outputs empty or hold revert data
        if frame.outputs and frame.outputs not in ("0x", "0X") and not frame.error:
            outputs = interface.decode_function_result(fragment, frame.outputs)
            frame.output_params = build_params(fragment.outputs, outputs)
            logger.debug(
                "Decoded %d output params for %s with selector %s",
                len(frame.output_params),
                frame.func_name,
                selector,
            )
    except NoMatchingFunctionError:
        return DecodeOutcome.AMBIGUOUS_NO_MATCH
    except (AbiDecodeError, ValueError, IndexError, TypeError) as exc:
        _warn_malformed(frame, exc)
        return DecodeOutcome.MALFORMED_DATA

    return DecodeOutcome.RESOLVED


def resolve_constructor(frame: CallFrame, contracts: Mapping[str, Contract]) -> DecodeOutcome:
    frame.func_name = "constructor"

    contract = contracts.get(frame.to_address)
    if contract is None or contract.interface is None:
        # constructor params stay unknown until the contract is verified
        return DecodeOutcome.NO_CANDIDATE

    # distinguishes "no constructor params" from "unknown constructor params"
    frame.parsed_constructor_params = True

    constructor = contract.interface.constructor
    # a verified ABI without a constructor entry has the implicit no-argument one
    if constructor is None or not constructor.inputs or not contract.constructor_inputs:
        return DecodeOutcome.RESOLVED

    try:
        values = contract.interface.decode_constructor_args(contract.constructor_inputs)
        frame.input_params = build_params(constructor.inputs, values)
    except (AbiDecodeError, ValueError, IndexError, TypeError) as exc:
        _warn_malformed(frame, exc)
        return DecodeOutcome.MALFORMED_DATA

    logger.debug("Decoded %d constructor params.", len(frame.input_params))
    return DecodeOutcome.RESOLVED


def _warn_malformed(frame: CallFrame, exc: Exception) -> None:
    logger.warning(
        "Failed to parse selector %s in trace with id %s from %s to %s: %s",
        frame.func_selector,
        frame.id,
        frame.from_address,
        frame.to_address,
        exc,
    )
