from __future__ import annotations

from typing import Any, Dict, List, Optional
import httpx

from .config import ConnectionConfig
from .errors import RpcError


class RpcClient:
    def __init__(
        self,
        rpc_url: str,
        timeout_s: float = 60.0,
        commitment: str = "confirmed",
        client: httpx.Client | None = None,
    ) -> None:
        self.rpc_url = rpc_url
        self.commitment = commitment
        self.client = client or httpx.Client(timeout=timeout_s)

    @classmethod
    def from_connection(cls, connection: ConnectionConfig, timeout_s: float = 60.0) -> "RpcClient":
        return cls(connection.endpoint, timeout_s=timeout_s, commitment=connection.commitment)

    def close(self) -> None:
        self.client.close()

    def _post(
        self,
        method: str,
        params: List[Any],
        timeout_s: float | None = None,
    ) -> Dict[str, Any]:
        payload = {"jsonrpc": "2.0", "id": 1, "method": method, "params": params}
        if timeout_s is None:
            resp = self.client.post(self.rpc_url, json=payload)
        else:
            resp = self.client.post(self.rpc_url, json=payload, timeout=timeout_s)
        resp.raise_for_status()
        try:
            data = resp.json()
        except ValueError as e:
            raise RpcError(None, f"{method}: response is not JSON ({e})") from e
        if not isinstance(data, dict):
            raise RpcError(None, f"{method}: expected a JSON object, got {type(data).__name__}")
        if "error" in data:
            err = data["error"] or {}
            raise RpcError(err.get("code"), err.get("message", ""), err.get("data"))
        return data

    def get_account_info_base64(
        self, address: str, commitment: str | None = None
    ) -> Optional[Dict[str, Any]]:
        """
        Returns {"owner": str, "lamports": int, "data": str (base64)} or None
        when the account does not exist.
        """
        data = self._post(
            "getAccountInfo",
            [address, {"encoding": "base64", "commitment": commitment or self.commitment}],
        )
        value = (data.get("result") or {}).get("value")
        if value is None:
            return None
        # value['data'] is [base64_str, "base64"]
        return {
            "owner": value["owner"],
            "lamports": int(value["lamports"]),
            "data": value["data"][0],
        }

    def get_balance(self, address: str, commitment: str | None = None) -> int:
        """Returns the balance in lamports."""
        data = self._post("getBalance", [address, {"commitment": commitment or self.commitment}])
        return int(data["result"]["value"])

    def get_latest_blockhash(self, commitment: str | None = None) -> str:
        data = self._post("getLatestBlockhash", [{"commitment": commitment or self.commitment}])
        return data["result"]["value"]["blockhash"]

    def get_minimum_balance_for_rent_exemption(self, size: int) -> int:
        data = self._post("getMinimumBalanceForRentExemption", [size])
        return int(data["result"])

    def send_transaction(self, wire_tx_b64: str, preflight_commitment: str | None = None) -> str:
        """Sends a signed, base64 encoded transaction once. Returns its signature."""
        data = self._post(
            "sendTransaction",
            [
                wire_tx_b64,
                {
                    "encoding": "base64",
                    "skipPreflight": False,
                    "preflightCommitment": preflight_commitment or self.commitment,
                },
            ],
        )
        return str(data["result"])

    def get_signature_statuses(
        self,
        signatures: List[str],
        timeout_s: float | None = None,
    ) -> List[Optional[Dict[str, Any]]]:
        data = self._post(
            "getSignatureStatuses",
            [signatures, {"searchTransactionHistory": True}],
            timeout_s=timeout_s,
        )
        return list(data["result"]["value"])
