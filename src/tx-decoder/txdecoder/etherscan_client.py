import time
from typing import Any, Dict, Optional

import requests

from .logging_config import get_logger

logger = get_logger(__name__)

RATE_LIMIT_MARKERS = (
    "rate limit",
    "max calls per sec",
    "too many requests",
)


class EtherscanClient:
    """Etherscan V2 contract metadata lookups.

    Free API keys allow a handful of calls per second, so rate limit replies
    and 5xx responses are retried with a linear backoff.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str,
        chain_id: str,
        timeout: int = 10,
        max_retries: int = 3,
        backoff_seconds: float = 0.5,
    ) -> None:
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.chain_id = chain_id
        self.timeout = timeout
        self.max_retries = max(1, int(max_retries))
        self.backoff_seconds = backoff_seconds
        self.session = requests.Session()
        self.session.headers.update({"X-API-Key": api_key})

    def get_contract_source(self, address: str) -> Dict[str, Any]:
        """Raw getsourcecode payload: ABI, ContractName, ConstructorArguments, Implementation."""
        return self._get("contract", "getsourcecode", address=address)

    def _get(self, module: str, action: str, **params: Any) -> Dict[str, Any]:
        query = {"module": module, "action": action, "chainid": self.chain_id, **params, "apikey": self.api_key}
        last_error: Optional[Exception] = None

        for attempt in range(1, self.max_retries + 1):
            retry = attempt < self.max_retries
            try:
                response = self.session.get(self.base_url, params=query, timeout=self.timeout)
                if response.status_code >= 500 and retry:
                    last_error = requests.HTTPError(f"HTTP {response.status_code}")
                else:
                    response.raise_for_status()
                    payload = response.json()
                    if not (retry and is_rate_limited(payload)):
                        return payload
                    logger.debug("Etherscan %s rate limited on attempt %d", action, attempt)
            except requests.RequestException as exc:
                if not retry:
                    raise
                last_error = exc
            except ValueError as exc:
                if not retry:
                    raise ValueError("Failed to parse response from Etherscan.") from exc
                last_error = exc
            time.sleep(self.backoff_seconds * attempt)

        raise RuntimeError(f"Etherscan {action} request failed: {last_error}")


def is_rate_limited(payload: Any) -> bool:
    if not isinstance(payload, dict):
        return False
    text = " ".join(
        value for value in (payload.get("message"), payload.get("result")) if isinstance(value, str)
    ).lower()
    return any(marker in text for marker in RATE_LIMIT_MARKERS)
