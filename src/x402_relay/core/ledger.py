"""
Ledger access needed by the payment engine: the recent blockhash anchor.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import requests
from solders.hash import Hash, ParseHashError

from .errors import TransportError

__all__ = ["LedgerClient"]

DEFAULT_COMMITMENT = "confirmed"


class LedgerClient:
    """Minimal JSON-RPC client for the one ledger read a negotiation needs."""

    def __init__(
        self,
        rpc_url: str,
        *,
        session: Optional[requests.Session] = None,
        timeout: float = 30,
        commitment: str = DEFAULT_COMMITMENT,
    ) -> None:
        self.rpc_url = rpc_url
        self.session = session or requests.Session()
        self.timeout = timeout
        self.commitment = commitment

    def _call(self, method: str, params: list) -> Dict[str, Any]:
        body = {"jsonrpc": "2.0", "id": 1, "method": method, "params": params}
        try:
            response = self.session.post(self.rpc_url, json=body, timeout=self.timeout)
        except requests.RequestException as exc:
            raise TransportError(f"{method} at {self.rpc_url} failed: {exc}") from exc

        if response.status_code >= 400:
            raise TransportError(
                f"{method} at {self.rpc_url} responded with {response.status_code}: {response.text}"
            )
        try:
            payload = response.json()
        except ValueError as exc:
            raise TransportError(f"{method} at {self.rpc_url} returned no JSON") from exc
        if not isinstance(payload, dict):
            raise TransportError(f"Unexpected {method} response: {payload!r}")

        error = payload.get("error")
        if error:
            message = error.get("message") if isinstance(error, dict) else error
            raise TransportError(f"{method} rejected by {self.rpc_url}: {message}")
        result = payload.get("result")
        if not isinstance(result, dict):
            raise TransportError(f"Unexpected {method} response: {payload!r}")
        return result

    def latest_anchor(self) -> Hash:
        """
        Fetch the latest blockhash. Called once per negotiation; the value is
        never cached since blockhashes expire after a short window.
        """
        result = self._call("getLatestBlockhash", [{"commitment": self.commitment}])
        value = result.get("value")
        blockhash = value.get("blockhash") if isinstance(value, dict) else None
        if not isinstance(blockhash, str) or not blockhash:
            raise TransportError(f"Missing blockhash in getLatestBlockhash response: {result!r}")
        try:
            anchor = Hash.from_string(blockhash)
        except (ParseHashError, ValueError) as exc:
            raise TransportError(f"Malformed blockhash from {self.rpc_url}: {blockhash}") from exc

        logging.info("Fetched blockhash %s from %s", anchor, self.rpc_url)
        return anchor
