"""
Build ParamNode trees from decoded ABI values.

Each ParamType category has its own strategy; arrays recurse one dimension at
a time so ``tuple[][]`` decodes to rows of ``tuple[]`` nodes, each holding
``tuple`` nodes.
"""

from typing import Any, Callable, Dict, List, Optional, Sequence

from .abi import ParamCategory, ParamType
from .models import ParamNode


def decode_param(param_type: ParamType, raw_value: Any) -> ParamNode:
    return ParamNode(
        name=param_type.name,
        type=param_type.type,
        value=raw_value,
        components=decode_components(param_type, raw_value),
    )


def build_params(param_types: Sequence[ParamType], values: Sequence[Any]) -> List[ParamNode]:
    return [decode_param(param_type, value) for param_type, value in zip(param_types, values)]


def decode_components(param_type: ParamType, raw_value: Any) -> Optional[List[ParamNode]]:
    strategy = _STRATEGIES[param_type.category]
    return strategy(param_type, raw_value)


def _scalar_components(param_type: ParamType, raw_value: Any) -> Optional[List[ParamNode]]:
    return None


def _tuple_components(param_type: ParamType, raw_value: Any) -> Optional[List[ParamNode]]:
    if not param_type.components:
        return None
    return [decode_param(component, raw_value[j]) for j, component in enumerate(param_type.components)]


def _array_components(param_type: ParamType, raw_value: Any) -> Optional[List[ParamNode]]:
    element = param_type.element_type()
    nodes: List[ParamNode] = []
    for index, row in enumerate(raw_value):
        nodes.append(
            ParamNode(
                name=str(index),
                type=element.type,
                value=row,
                components=decode_components(element, row),
            )
        )
    return nodes


_STRATEGIES: Dict[ParamCategory, Callable[[ParamType, Any], Optional[List[ParamNode]]]] = {
    ParamCategory.SCALAR: _scalar_components,
    ParamCategory.TUPLE: _tuple_components,
    ParamCategory.ARRAY: _array_components,
}
