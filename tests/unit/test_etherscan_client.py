"""Tests for the Etherscan contract metadata client."""

from typing import Any, List

import pytest
import requests

from conftest import TOKEN
from txdecoder.etherscan_client import EtherscanClient, is_rate_limited

RATE_LIMITED = {"status": "0", "message": "NOTOK", "result": "Max calls per sec rate limit reached (5/sec)"}
VERIFIED = {"status": "1", "message": "OK", "result": [{"ABI": "[]", "ContractName": "Token"}]}


class FakeResponse:
    def __init__(self, body: Any, status_code: int = 200) -> None:
        self.body = body
        self.status_code = status_code

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"HTTP {self.status_code}")

    def json(self) -> Any:
        return self.body


@pytest.fixture
def client() -> EtherscanClient:
    return EtherscanClient(api_key="key", base_url="https://api.example/v2/api/", chain_id="1", backoff_seconds=0)


def install(monkeypatch, client: EtherscanClient, responses: List[FakeResponse]) -> List[dict]:
    queries: List[dict] = []
    queue = list(responses)

    def fake_get(url, params=None, timeout=None):
        queries.append({"url": url, **params})
        return queue.pop(0)

    monkeypatch.setattr(client.session, "get", fake_get)
    return queries


class TestEtherscanClient:
    """Tests for getsourcecode requests."""

    def test_query_parameters(self, client: EtherscanClient, monkeypatch) -> None:
        """Test that module, action, chain id, address and key are sent."""
        queries = install(monkeypatch, client, [FakeResponse(VERIFIED)])

        assert client.get_contract_source(TOKEN) == VERIFIED
        assert queries == [
            {
                "url": "https://api.example/v2/api",
                "module": "contract",
                "action": "getsourcecode",
                "chainid": "1",
                "address": TOKEN,
                "apikey": "key",
            }
        ]

    def test_rate_limit_and_server_errors_retried(self, client: EtherscanClient, monkeypatch) -> None:
        """Test that rate limited payloads and 5xx responses are retried."""
        queries = install(
            monkeypatch,
            client,
            [FakeResponse(RATE_LIMITED), FakeResponse(None, status_code=502), FakeResponse(VERIFIED)],
        )

        assert client.get_contract_source(TOKEN) == VERIFIED
        assert len(queries) == 3

    def test_last_rate_limited_payload_returned(self, client: EtherscanClient, monkeypatch) -> None:
        """Test that the final attempt returns the payload for the caller to report."""
        install(monkeypatch, client, [FakeResponse(RATE_LIMITED)] * 3)

        assert client.get_contract_source(TOKEN) == RATE_LIMITED

    def test_rate_limit_detection(self) -> None:
        """Test rate limit markers in message or result."""
        assert is_rate_limited(RATE_LIMITED)
        assert is_rate_limited({"message": "Too Many Requests"})
        assert not is_rate_limited(VERIFIED)
        assert not is_rate_limited([])
