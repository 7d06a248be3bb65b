import os
from dataclasses import dataclass
from typing import Optional

DEFAULT_BASE_URL = "https://api.etherscan.io/v2/api"
DEFAULT_NODE_URL = "http://localhost:8545"
DEFAULT_NODE_TYPE = "geth"
# 3 works for smaller contracts but Etherscan rate limits larger ones
DEFAULT_API_CONCURRENCY = 2

NODE_TYPES = ("geth", "tgeth", "openeth", "nether", "besu")

NETWORK_CHAIN_ID_MAP = {
    "mainnet": "1",
    "ethereum": "1",
    "eth": "1",
    "sepolia": "11155111",
    "holesky": "17000",
}


@dataclass
class Config:
    etherscan_api_key: Optional[str] = None
    etherscan_base_url: str = DEFAULT_BASE_URL
    network: str = "mainnet"
    chain_id: str = "1"
    node_url: str = DEFAULT_NODE_URL
    node_type: str = DEFAULT_NODE_TYPE
    api_concurrency: int = DEFAULT_API_CONCURRENCY
    request_timeout: int = 10
    max_retries: int = 3
    backoff_seconds: float = 0.5
    log_level: str = "WARNING"


def resolve_chain_id(network: str, override_chain_id: Optional[str] = None) -> str:
    """Resolve chain ID from override or static network mapping."""
    if override_chain_id:
        return override_chain_id

    normalized = (network or "").strip().lower()
    if normalized.isdigit():
        return normalized

    if normalized in NETWORK_CHAIN_ID_MAP:
        return NETWORK_CHAIN_ID_MAP[normalized]

    allowed = ", ".join(sorted(NETWORK_CHAIN_ID_MAP.keys()) + ["<chain_id>"])
    raise ValueError(f"Unknown network '{network}'. Supported: {allowed}. Or set CHAIN_ID explicitly.")


def validate_node_type(node_type: str) -> str:
    normalized = (node_type or "").strip().lower()
    if normalized not in NODE_TYPES:
        raise ValueError(f"Invalid node type '{node_type}'. Must be one of: {', '.join(NODE_TYPES)}.")
    return normalized


def _positive_int(name: str, default: str) -> int:
    raw = os.getenv(name, default)
    try:
        value = int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got '{raw}'.") from exc
    if value < 1:
        raise ValueError(f"{name} must be at least 1.")
    return value


def load_config() -> Config:
    """Load configuration from environment variables."""
    api_key = os.getenv("ETHERSCAN_API_KEY") or None
    base_url = os.getenv("ETHERSCAN_BASE_URL", DEFAULT_BASE_URL).rstrip("/")
    network = os.getenv("NETWORK", "mainnet").strip().lower()
    chain_id_env = os.getenv("CHAIN_ID")
    chain_id = resolve_chain_id(network, chain_id_env.strip() if chain_id_env else None)

    return Config(
        etherscan_api_key=api_key,
        etherscan_base_url=base_url,
        network=network,
        chain_id=chain_id,
        node_url=os.getenv("ARCHIVE_NODE_URL", DEFAULT_NODE_URL).strip(),
        node_type=validate_node_type(os.getenv("ARCHIVE_NODE_TYPE", DEFAULT_NODE_TYPE)),
        api_concurrency=_positive_int("API_CONCURRENCY", str(DEFAULT_API_CONCURRENCY)),
        request_timeout=_positive_int("REQUEST_TIMEOUT", "10"),
        max_retries=_positive_int("REQUEST_RETRIES", "3"),
        backoff_seconds=float(os.getenv("REQUEST_BACKOFF_SECONDS", "0.5")),
        log_level=os.getenv("LOG_LEVEL", "WARNING").strip().upper(),
    )
