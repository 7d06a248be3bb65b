from typing import Dict, Iterable, List, Mapping, Union

from .models import Contract


class SelectorIndex:
    """Map 4-byte function selectors to every contract whose interface declares them.

    Candidates keep the iteration order of the contract mapping they were built
    from, so the first candidate is the first contract seen in the traces.
    Shared selectors are expected (many ERC20s declare ``transfer``).
    """

    def __init__(self) -> None:
        self._candidates: Dict[str, List[Contract]] = {}

    @classmethod
    def build(cls, contracts: Union[Mapping[str, Contract], Iterable[Contract]]) -> "SelectorIndex":
        index = cls()
        values = contracts.values() if isinstance(contracts, Mapping) else contracts
        for contract in values:
            index.add(contract)
        return index

    def add(self, contract: Contract) -> None:
        if contract.interface is None:
            return
        for selector in contract.interface.selectors():
            self._candidates.setdefault(selector, []).append(contract)

    def candidates(self, selector: str) -> List[Contract]:
        return list(self._candidates.get(selector.lower(), []))

    def __contains__(self, selector: object) -> bool:
        return isinstance(selector, str) and selector.lower() in self._candidates

    def __len__(self) -> int:
        return len(self._candidates)
