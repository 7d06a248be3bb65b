import time
from typing import Any, Dict, List, Optional, Sequence, Tuple

import requests

from .exceptions import DecoderError
from .logging_config import get_logger

logger = get_logger(__name__)

RETRY_STATUS_CODES = {429, 502, 503, 504}


class RpcError(DecoderError):
    """JSON-RPC error object returned by the node."""

    def __init__(self, message: str, code: Optional[int] = None) -> None:
        super().__init__(message)
        self.code = code


class RpcClient:
    """JSON-RPC 2.0 client for archive nodes over HTTP, with single and batched requests."""

    def __init__(
        self,
        rpc_url: str,
        timeout: int = 10,
        max_retries: int = 3,
        backoff_seconds: float = 0.5,
        headers: Optional[Dict[str, str]] = None,
    ) -> None:
        url = (rpc_url or "").strip()
        if not url:
            raise ValueError("rpc_url must be a non-empty string.")

        self.rpc_url = url
        self.timeout = timeout
        self.max_retries = max(1, int(max_retries))
        self.backoff_seconds = float(backoff_seconds)
        self.session = requests.Session()
        self.session.headers.update({"Content-Type": "application/json"})
        if headers:
            self.session.headers.update(dict(headers))
        self._next_id = 1

    def call(self, method: str, params: Optional[List[Any]] = None) -> Any:
        """Send one request and return its ``result``; node errors raise RpcError."""
        payload = self._payload(method, params)
        data = self._post(payload, method)
        return _extract_result(method, data)

    def batch_call(self, calls: Sequence[Tuple[str, List[Any]]]) -> List[Any]:
        """Send several requests in one HTTP round trip.

        Results come back in request order. Entries the node answered with an
        error object are None.
        """
        if not calls:
            return []
        payloads = [self._payload(method, params) for method, params in calls]
        data = self._post(payloads, f"batch of {len(payloads)}")
        if not isinstance(data, list):
            # some nodes answer a whole batch with a single error object
            _extract_result("batch", data)
            raise ValueError("Unexpected JSON-RPC batch response (non-array).")

        by_id = {entry.get("id"): entry for entry in data if isinstance(entry, dict)}
        results: List[Any] = []
        for payload in payloads:
            entry = by_id.get(payload["id"])
            try:
                results.append(_extract_result(payload["method"], entry))
            except (RpcError, ValueError) as exc:
                logger.debug("Batch entry %s failed: %s", payload["id"], exc)
                results.append(None)
        return results

    def _payload(self, method: str, params: Optional[List[Any]]) -> Dict[str, Any]:
        if not isinstance(method, str) or not method.strip():
            raise ValueError("method must be a non-empty string.")
        payload = {
            "jsonrpc": "2.0",
            "id": self._next_id,
            "method": method,
            "params": params if params is not None else [],
        }
        self._next_id += 1
        return payload

    def _post(self, body: Any, label: str) -> Any:
        last_error: Optional[Exception] = None
        for attempt in range(1, self.max_retries + 1):
            retry = attempt < self.max_retries
            try:
                response = self.session.post(self.rpc_url, json=body, timeout=self.timeout)
                if response.status_code in RETRY_STATUS_CODES and retry:
                    logger.debug("%s returned HTTP %s, retrying", label, response.status_code)
                    time.sleep(self.backoff_seconds * attempt)
                    continue
                response.raise_for_status()
                return response.json()
            except requests.RequestException as exc:
                last_error = exc
                if not retry:
                    raise
            except ValueError as exc:
                last_error = exc
                if not retry:
                    raise ValueError(f"Failed to parse JSON-RPC response for {label}.") from exc
            time.sleep(self.backoff_seconds * attempt)

        raise RuntimeError(f"RPC request for {label} failed: {last_error}")


def _extract_result(method: str, data: Any) -> Any:
    if not isinstance(data, dict):
        raise ValueError(f"Unexpected JSON-RPC response for {method} (non-object).")

    error_obj = data.get("error")
    if isinstance(error_obj, dict):
        code = error_obj.get("code")
        detail = ": ".join(
            str(part) for part in (error_obj.get("message"), error_obj.get("data")) if part
        )
        raise RpcError(f"RPC error from {method}: {detail or 'unknown error'} (code {code}).", code=code)

    if "result" not in data:
        raise ValueError(f"Unexpected JSON-RPC response for {method} (missing result).")
    return data["result"]
