"""Tests for environment based configuration."""

import pytest

from txdecoder.config import load_config, resolve_chain_id, validate_node_type

ENV_VARS = (
    "ETHERSCAN_API_KEY",
    "ETHERSCAN_BASE_URL",
    "NETWORK",
    "CHAIN_ID",
    "ARCHIVE_NODE_URL",
    "ARCHIVE_NODE_TYPE",
    "API_CONCURRENCY",
    "REQUEST_TIMEOUT",
    "REQUEST_RETRIES",
    "REQUEST_BACKOFF_SECONDS",
    "LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch) -> None:
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


class TestLoadConfig:
    """Tests for load_config."""

    def test_defaults(self) -> None:
        """Test defaults when nothing is set."""
        config = load_config()

        assert config.etherscan_api_key is None
        assert config.chain_id == "1"
        assert config.node_url == "http://localhost:8545"
        assert config.node_type == "geth"
        assert config.api_concurrency == 2
        assert config.log_level == "WARNING"

    def test_overrides(self, monkeypatch) -> None:
        """Test that environment variables override defaults."""
        monkeypatch.setenv("ETHERSCAN_API_KEY", "abc")
        monkeypatch.setenv("NETWORK", "sepolia")
        monkeypatch.setenv("ARCHIVE_NODE_URL", "http://archive:8545 ")
        monkeypatch.setenv("ARCHIVE_NODE_TYPE", "OpenEth")
        monkeypatch.setenv("API_CONCURRENCY", "4")
        monkeypatch.setenv("LOG_LEVEL", "debug")

        config = load_config()

        assert config.etherscan_api_key == "abc"
        assert config.chain_id == "11155111"
        assert config.node_url == "http://archive:8545"
        assert config.node_type == "openeth"
        assert config.api_concurrency == 4
        assert config.log_level == "DEBUG"

    def test_invalid_concurrency(self, monkeypatch) -> None:
        """Test that non positive integers are rejected."""
        monkeypatch.setenv("API_CONCURRENCY", "0")

        with pytest.raises(ValueError, match="API_CONCURRENCY"):
            load_config()

    def test_invalid_node_type(self, monkeypatch) -> None:
        """Test that unknown node types are rejected at load time."""
        monkeypatch.setenv("ARCHIVE_NODE_TYPE", "parity")

        with pytest.raises(ValueError, match="Invalid node type"):
            load_config()


class TestResolveChainId:
    """Tests for network to chain id resolution."""

    def test_resolution(self) -> None:
        """Test names, numeric networks and explicit overrides."""
        assert resolve_chain_id("mainnet") == "1"
        assert resolve_chain_id("137") == "137"
        assert resolve_chain_id("mainnet", "10") == "10"
        assert validate_node_type(" Besu ") == "besu"

    def test_unknown_network(self) -> None:
        """Test that unknown names raise with the supported list."""
        with pytest.raises(ValueError, match="Unknown network"):
            resolve_chain_id("ropsten")
