from typing import List, Mapping, Sequence

from .abi import is_hashed_topic
from .exceptions import AbiDecodeError, NoMatchingEventError
from .logging_config import get_logger
from .models import Contract, EventRecord, Log, ParamNode
from .params import decode_param

logger = get_logger(__name__)


def parse_transaction_logs(logs: Sequence[Log], contracts: Mapping[str, Contract]) -> List[EventRecord]:
    """Decode logs against the emitting contract's interface and append them to its events.

    Returns the records decoded for this call, in emission order.
    """
    decoded: List[EventRecord] = []
    for log in logs:
        contract = contracts.get(log.address.lower())
        if contract is None or contract.interface is None:
            continue

        try:
            fragment, args = contract.interface.parse_log(log.topics, log.data)
        except (NoMatchingEventError, AbiDecodeError) as exc:
            topic = log.topics[0] if log.topics else None
            logger.debug("Failed to parse log with topic %s on contract %s: %s", topic, log.address, exc)
            continue

        params: List[ParamNode] = []
        for param, value in zip(fragment.inputs, args):
            if param.indexed and is_hashed_topic(param):
                params.append(ParamNode(name=param.name, type=param.type, value=value))
            else:
                params.append(decode_param(param, value))

        event = EventRecord(name=fragment.name, params=params)
        contract.events.append(event)
        decoded.append(event)
    return decoded
