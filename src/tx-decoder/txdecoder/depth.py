from typing import Mapping, Sequence, Union

from .exceptions import MissingContractError
from .models import CallFrame, Contract
from .resolver import flatten_traces


def parse_trace_depths(
    traces: Sequence[Union[CallFrame, Sequence[CallFrame]]],
    contracts: Mapping[str, Contract],
) -> None:
    """Mark each contract with the minimum call depth it is used in across all transactions."""
    flat = flatten_traces(traces)
    if not flat:
        return

    _lookup(contracts, flat[0].from_address, flat[0]).min_depth = 0
    for frame in flat:
        if not frame.to_address:
            # failed contract creations have no target
            continue
        contract = _lookup(contracts, frame.to_address, frame)
        if contract.min_depth is None or frame.depth < contract.min_depth:
            contract.min_depth = frame.depth


def _lookup(contracts: Mapping[str, Contract], address: str, frame: CallFrame) -> Contract:
    contract = contracts.get(address)
    if contract is None:
        raise MissingContractError(f"Trace with id {frame.id} references unknown address {address}.")
    return contract
