import re
from dataclasses import replace
from typing import Any, Dict, Optional

from .abi import Interface
from .cache import ContractCache
from .config import Config
from .etherscan_client import EtherscanClient
from .logging_config import get_logger
from .models import Contract

logger = get_logger(__name__)

ADDRESS_PATTERN = re.compile(r"^0x[a-fA-F0-9]{40}$")


class ContractService:
    """Combine configuration, cache, and Etherscan client to build Contract records."""

    def __init__(self, config: Config, client: Optional[EtherscanClient] = None) -> None:
        self.config = config
        self.cache = ContractCache()
        if client is None and config.etherscan_api_key:
            client = EtherscanClient(
                api_key=config.etherscan_api_key,
                base_url=config.etherscan_base_url,
                chain_id=config.chain_id,
                timeout=config.request_timeout,
                max_retries=config.max_retries,
                backoff_seconds=config.backoff_seconds,
            )
        self.client = client

    def fetch_contract(self, address: str) -> Contract:
        normalized_address = self._normalize_address(address)
        chain_id = self.config.chain_id

        cached = self.cache.get(normalized_address, chain_id)
        if cached:
            # per-run annotations must not leak between decode runs
            return replace(cached, events=[], min_depth=None)

        if self.client is None:
            # without an API key every contract stays interface-less
            return Contract(address=normalized_address)

        payload = self.client.get_contract_source(normalized_address)
        contract = self._parse_contract_response(payload, normalized_address)
        self.cache.set(normalized_address, chain_id, contract)
        return replace(contract, events=[])

    def _parse_contract_response(self, payload: Dict[str, Any], address: str) -> Contract:
        if not isinstance(payload, dict):
            raise ValueError("Unexpected response from Etherscan.")

        status = str(payload.get("status", "")).strip()
        message = payload.get("message", "")
        result = payload.get("result", [])

        if status != "1" or not result or not isinstance(result, list):
            detail = ""
            if isinstance(result, str):
                detail = result
            elif isinstance(result, list) and result:
                detail = result[0] if isinstance(result[0], str) else ""
            raise ValueError(f"Etherscan error for {address}: {detail or message or 'unknown error'}.")

        entry = result[0]
        interface = self._parse_interface(entry.get("ABI", ""), address)
        constructor_inputs = (entry.get("ConstructorArguments") or "").strip().lower()
        if constructor_inputs.startswith("0x"):
            constructor_inputs = constructor_inputs[2:]

        return Contract(
            address=address,
            interface=interface,
            contract_name=entry.get("ContractName") or None,
            constructor_inputs=constructor_inputs or None,
            implementation=self._normalize_address_optional(entry.get("Implementation")),
        )

    def _parse_interface(self, abi_raw: Any, address: str) -> Optional[Interface]:
        # unverified contracts return a message such as "Contract source code not verified"
        if not isinstance(abi_raw, str) or not abi_raw.strip().startswith("["):
            logger.debug("No verified ABI for %s", address)
            return None
        try:
            return Interface(abi_raw)
        except ValueError as exc:
            logger.warning("Invalid ABI returned from Etherscan for %s: %s", address, exc)
            return None

    def _normalize_address(self, address: str) -> str:
        if not isinstance(address, str):
            raise ValueError("Address must be a string.")

        candidate = address.strip()
        if not candidate.startswith("0x"):
            candidate = f"0x{candidate}"

        if not ADDRESS_PATTERN.match(candidate):
            raise ValueError(f"Invalid address format '{address}'. Expected 0x-prefixed 40 hex characters.")

        return candidate.lower()

    def _normalize_address_optional(self, address: Any) -> Optional[str]:
        if not address:
            return None
        try:
            return self._normalize_address(str(address))
        except ValueError:
            return None
