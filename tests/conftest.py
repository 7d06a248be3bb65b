"""Shared fixtures: ABIs, addresses and call frame builders."""

from typing import Any, Dict, List

import pytest

from txdecoder.abi import Interface
from txdecoder.models import CallFrame, Contract, MessageType

TOKEN = "0x" + "aa" * 20
OTHER_TOKEN = "0x" + "bb" * 20
PROXY = "0x" + "cc" * 20
SENDER = "0x" + "11" * 20
RECIPIENT = "0x" + "22" * 20


ERC20_ABI: List[Dict[str, Any]] = [
    {
        "type": "function",
        "name": "transfer",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "to", "type": "address"},
            {"name": "amount", "type": "uint256"},
        ],
        "outputs": [{"name": "", "type": "bool"}],
    },
    {
        "type": "function",
        "name": "balanceOf",
        "stateMutability": "view",
        "inputs": [{"name": "account", "type": "address"}],
        "outputs": [{"name": "balance", "type": "uint256"}],
    },
    {
        "type": "event",
        "name": "Transfer",
        "anonymous": False,
        "inputs": [
            {"name": "from", "type": "address", "indexed": True},
            {"name": "to", "type": "address", "indexed": True},
            {"name": "value", "type": "uint256", "indexed": False},
        ],
    },
    {
        "type": "constructor",
        "inputs": [
            {"name": "name", "type": "string"},
            {"name": "supply", "type": "uint256"},
        ],
    },
]

ORDER_COMPONENTS = [
    {"name": "maker", "type": "address"},
    {"name": "amounts", "type": "uint256[]"},
    {
        "name": "fee",
        "type": "tuple",
        "components": [
            {"name": "recipient", "type": "address"},
            {"name": "bps", "type": "uint16"},
        ],
    },
]

EXCHANGE_ABI: List[Dict[str, Any]] = [
    {
        "type": "function",
        "name": "fillOrders",
        "inputs": [
            {"name": "orders", "type": "tuple[]", "components": ORDER_COMPONENTS},
            {"name": "memo", "type": "string"},
        ],
        "outputs": [{"name": "filled", "type": "uint256[2][]"}],
    },
    {
        "type": "event",
        "name": "Memo",
        "inputs": [
            {"name": "text", "type": "string", "indexed": True},
            {"name": "author", "type": "address", "indexed": True},
            {"name": "count", "type": "int32", "indexed": False},
        ],
    },
]


@pytest.fixture
def erc20_abi() -> List[Dict[str, Any]]:
    return ERC20_ABI


@pytest.fixture
def exchange_abi() -> List[Dict[str, Any]]:
    return EXCHANGE_ABI


@pytest.fixture
def erc20_interface() -> Interface:
    return Interface(ERC20_ABI)


@pytest.fixture
def token_contract(erc20_interface: Interface) -> Contract:
    return Contract(address=TOKEN, interface=erc20_interface)


@pytest.fixture
def make_frame():
    """Factory for call frames with sensible defaults."""

    def _make(
        inputs: str = "0x",
        to_address: str = TOKEN,
        from_address: str = SENDER,
        depth: int = 0,
        frame_type: MessageType = MessageType.CALL,
        outputs: str = "0x",
        error: str = None,
        frame_id: int = 0,
    ) -> CallFrame:
        return CallFrame(
            id=frame_id,
            type=frame_type,
            from_address=from_address,
            to_address=to_address,
            inputs=inputs,
            outputs=outputs,
            depth=depth,
            error=error,
        )

    return _make
