import threading
from typing import Dict, Optional

from .models import Contract


class ContractCache:
    """In-memory cache of fetched contracts keyed by chain id and address."""

    def __init__(self) -> None:
        self._memory: Dict[str, Contract] = {}
        self._lock = threading.Lock()

    def _key(self, address: str, chain_id: str) -> str:
        return f"{chain_id}:{address.lower()}"

    def get(self, address: str, chain_id: str) -> Optional[Contract]:
        with self._lock:
            return self._memory.get(self._key(address, chain_id))

    def set(self, address: str, chain_id: str, contract: Contract) -> None:
        with self._lock:
            self._memory[self._key(address, chain_id)] = contract
