"""
Fetch transactions, traces and contracts, then decode them into an annotated
call graph.
"""

import re
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from .config import DEFAULT_API_CONCURRENCY, Config
from .depth import parse_trace_depths
from .logging_config import get_logger
from .logs import parse_transaction_logs
from .models import CallFrame, Contract, DecodeOutcome, Transaction
from .node_client import EthereumNodeClient, make_node_client
from .resolver import flatten_traces, parse_trace_params
from .rpc_client import RpcClient
from .serialization import call_frame_to_dict, contract_to_dict, transaction_to_dict
from .service import ContractService

logger = get_logger(__name__)

TX_HASH_PATTERN = re.compile(r"^0x[0-9a-fA-F]{64}$")


@dataclass
class DecodedRun:
    transactions: List[Transaction]
    traces: List[List[CallFrame]]
    contracts: Dict[str, Contract]
    outcomes: List[DecodeOutcome] = field(default_factory=list)

    def to_dict(self, max_depth: Optional[int] = None, include_params: bool = True) -> Dict[str, Any]:
        outcome_by_frame: Dict[int, DecodeOutcome] = {}
        for frame, outcome in zip(flatten_traces(self.traces), self.outcomes):
            outcome_by_frame[id(frame)] = outcome

        traces = []
        for frames in self.traces:
            traces.append(
                [
                    call_frame_to_dict(frame, outcome_by_frame.get(id(frame)), include_params)
                    for frame in frames
                    if max_depth is None or frame.depth <= max_depth
                ]
            )
        return {
            "transactions": [transaction_to_dict(tx) for tx in self.transactions],
            "traces": traces,
            "contracts": {
                address: contract_to_dict(contract, include_params)
                for address, contract in self.contracts.items()
            },
        }


class TransactionManager:
    def __init__(
        self,
        node_client: EthereumNodeClient,
        contract_service: ContractService,
        api_concurrency_limit: int = DEFAULT_API_CONCURRENCY,
    ) -> None:
        self.node_client = node_client
        self.contract_service = contract_service
        self.api_concurrency_limit = max(1, api_concurrency_limit)

    @classmethod
    def from_config(cls, config: Config) -> "TransactionManager":
        rpc = RpcClient(
            config.node_url,
            timeout=config.request_timeout,
            max_retries=config.max_retries,
            backoff_seconds=config.backoff_seconds,
        )
        return cls(
            make_node_client(config.node_type, rpc),
            ContractService(config),
            api_concurrency_limit=config.api_concurrency,
        )

    def get_transactions(self, tx_hashes: Sequence[str]) -> List[Transaction]:
        for tx_hash in tx_hashes:
            if not isinstance(tx_hash, str) or not TX_HASH_PATTERN.match(tx_hash.strip()):
                raise ValueError(
                    f"Transaction hash '{tx_hash}' must be in hexadecimal format with a 0x prefix."
                )
        return [self.get_transaction(tx_hash.strip()) for tx_hash in tx_hashes]

    def get_transaction(self, tx_hash: str) -> Transaction:
        return self.node_client.get_transaction_details(tx_hash)

    def get_traces(self, transactions: Sequence[Transaction]) -> List[List[CallFrame]]:
        return [self.node_client.get_transaction_trace(tx.hash) for tx in transactions]

    def get_contracts(self, traces: Sequence[Sequence[CallFrame]]) -> Dict[str, Contract]:
        addresses: List[str] = []
        for frame in flatten_traces(traces):
            addresses.append(frame.from_address)
            addresses.append(frame.to_address)
        contracts = self.get_contracts_from_addresses(addresses)
        return self.set_token_attributes(contracts)

    def get_contracts_from_addresses(self, addresses: Sequence[str]) -> Dict[str, Contract]:
        """Fetch contract metadata in parallel; the returned mapping keeps first-seen address order."""
        unique_addresses = list(dict.fromkeys(address for address in addresses if address))
        logger.debug("%d contracts in the transactions", len(unique_addresses))

        with ThreadPoolExecutor(max_workers=self.api_concurrency_limit) as pool:
            results = list(pool.map(self.contract_service.fetch_contract, unique_addresses))

        return {contract.address: contract for contract in results}

    def set_token_attributes(self, contracts: Dict[str, Contract]) -> Dict[str, Contract]:
        for details in self.node_client.get_token_details(list(contracts.keys())):
            contract = contracts.get(details["address"])
            if contract is None:
                continue
            contract.token_name = details.get("name")
            contract.symbol = details.get("symbol")
        return contracts

    def fetch(self, tx_hashes: Sequence[str]) -> DecodedRun:
        transactions = self.get_transactions(tx_hashes)
        traces = self.get_traces(transactions)
        contracts = self.get_contracts(traces)
        return self.decode(transactions, traces, contracts)

    @staticmethod
    def decode(
        transactions: List[Transaction],
        traces: List[List[CallFrame]],
        contracts: Dict[str, Contract],
    ) -> DecodedRun:
        parse_trace_depths(traces, contracts)
        outcomes = parse_trace_params(traces, contracts)
        for tx in transactions:
            parse_transaction_logs(tx.logs, contracts)
        return DecodedRun(transactions=transactions, traces=traces, contracts=contracts, outcomes=outcomes)
