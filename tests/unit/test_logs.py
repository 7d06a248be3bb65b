"""Tests for event log decoding."""

from eth_abi import encode
from eth_utils import keccak

from conftest import EXCHANGE_ABI, OTHER_TOKEN, RECIPIENT, SENDER, TOKEN
from txdecoder.abi import Interface
from txdecoder.logs import parse_transaction_logs
from txdecoder.models import Contract, Log

TRANSFER_TOPIC = "0xddf252ad1be2c89b69c2b068fc378daa952ba7f163c4a11628f55a4df523b3ef"


def topic_for(address: str) -> str:
    return "0x" + "00" * 12 + address[2:]


def transfer_log(address: str = TOKEN, value: int = 42, log_index: int = 0) -> Log:
    return Log(
        address=address,
        topics=[TRANSFER_TOPIC, topic_for(SENDER), topic_for(RECIPIENT)],
        data="0x" + encode(["uint256"], [value]).hex(),
        log_index=log_index,
    )


class TestParseTransactionLogs:
    """Tests for attaching decoded events to contracts."""

    def test_transfer_event(self, token_contract: Contract) -> None:
        """Test that a Transfer log is decoded and appended to the emitter's events."""
        contracts = {TOKEN: token_contract}

        records = parse_transaction_logs([transfer_log()], contracts)

        assert len(records) == 1
        assert token_contract.events == records
        event = token_contract.events[0]
        assert event.name == "Transfer"
        assert [(p.name, p.type, p.value) for p in event.params] == [
            ("from", "address", SENDER),
            ("to", "address", RECIPIENT),
            ("value", "uint256", 42),
        ]

    def test_events_keep_emission_order(self, token_contract: Contract) -> None:
        """Test that several logs append in order."""
        contracts = {TOKEN: token_contract}

        parse_transaction_logs([transfer_log(value=1), transfer_log(value=2, log_index=1)], contracts)

        assert [event.params[2].value for event in token_contract.events] == [1, 2]

    def test_unknown_topic_is_skipped(self, token_contract: Contract) -> None:
        """Test that logs without a matching event produce no record and no error."""
        unknown = Log(address=TOKEN, topics=["0x" + "ff" * 32], data="0x")
        anonymous = Log(address=TOKEN, topics=[], data="0x")

        records = parse_transaction_logs([unknown, anonymous, transfer_log()], {TOKEN: token_contract})

        assert [event.name for event in records] == ["Transfer"]

    def test_unverified_and_missing_contracts(self) -> None:
        """Test that logs from contracts without an ABI are ignored."""
        contracts = {TOKEN: Contract(address=TOKEN)}

        records = parse_transaction_logs([transfer_log(), transfer_log(address=OTHER_TOKEN)], contracts)

        assert records == []
        assert contracts[TOKEN].events == []

    def test_checksummed_address_is_matched(self, token_contract: Contract) -> None:
        """Test that log addresses are compared lowercase."""
        log = transfer_log(address="0x" + "AA" * 20)

        parse_transaction_logs([log], {TOKEN: token_contract})

        assert len(token_contract.events) == 1

    def test_struct_and_array_data_expand_into_components(self) -> None:
        """Test that non-indexed tuple and array params become nested nodes."""
        abi = [
            {
                "type": "event",
                "name": "OrderFilled",
                "inputs": [
                    {"name": "maker", "type": "address", "indexed": True},
                    {
                        "name": "order",
                        "type": "tuple",
                        "indexed": False,
                        "components": [
                            {"name": "amount", "type": "uint256"},
                            {"name": "ids", "type": "uint8[]"},
                        ],
                    },
                    {"name": "fees", "type": "uint16[2]", "indexed": False},
                ],
            }
        ]
        contract = Contract(address=TOKEN, interface=Interface(abi))
        log = Log(
            address=TOKEN,
            topics=["0x" + keccak(text="OrderFilled(address,(uint256,uint8[]),uint16[2])").hex(), topic_for(SENDER)],
            data="0x" + encode(["(uint256,uint8[])", "uint16[2]"], [(5, [1, 2]), [30, 40]]).hex(),
        )

        (event,) = parse_transaction_logs([log], {TOKEN: contract})

        maker, order, fees = event.params
        assert maker.value == SENDER and maker.components is None
        assert [(c.name, c.type) for c in order.components] == [("amount", "uint256"), ("ids", "uint8[]")]
        ids = order.components[1]
        assert [(c.name, c.type, c.value) for c in ids.components] == [("0", "uint8", 1), ("1", "uint8", 2)]
        assert [(c.name, c.value) for c in fees.components] == [("0", 30), ("1", 40)]

    def test_indexed_string_kept_as_topic_hash(self) -> None:
        """Test that hashed indexed params stay leaf nodes holding the topic."""
        contract = Contract(address=TOKEN, interface=Interface(EXCHANGE_ABI))
        text_hash = "0x" + keccak(text="hello").hex()
        log = Log(
            address=TOKEN,
            topics=["0x" + keccak(text="Memo(string,address,int32)").hex(), text_hash, topic_for(SENDER)],
            data="0x" + encode(["int32"], [3]).hex(),
        )

        (event,) = parse_transaction_logs([log], {TOKEN: contract})

        assert event.name == "Memo"
        text = event.params[0]
        assert (text.name, text.type, text.value) == ("text", "string", text_hash)
        assert text.components is None
        assert event.params[2].value == 3
