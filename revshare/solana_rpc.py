from __future__ import annotations

import json
import logging
import time
import urllib.error
import urllib.request
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

# Commitment levels in increasing order of finality
_COMMITMENT_RANK = {"processed": 0, "confirmed": 1, "finalized": 2}


class TransactionFailed(RuntimeError):
    """The transaction landed but the cluster reports an execution error."""


@dataclass(frozen=True)
class SignatureStatus:
    confirmation_status: Optional[str]
    err: Any

    def reached(self, commitment: str) -> bool:
        if self.confirmation_status is None:
            return False
        return _COMMITMENT_RANK.get(self.confirmation_status, -1) >= _COMMITMENT_RANK[commitment]


@dataclass(frozen=True)
class SolanaRPC:
    url: str
    timeout_s: int = 20

    def _call(self, method: str, params: List[Any]) -> Any:
        """
        Single JSON-RPC call. Returns the `result` member.
        Raises RuntimeError if RPC call fails.
        """
        payload = {"jsonrpc": "2.0", "id": 1, "method": method, "params": params}
        data = json.dumps(payload).encode("utf-8")
        req = urllib.request.Request(
            self.url,
            data=data,
            headers={"Content-Type": "application/json"},
        )
        try:
            with urllib.request.urlopen(req, timeout=self.timeout_s) as resp:
                result = json.loads(resp.read().decode("utf-8"))
        except urllib.error.URLError as e:
            raise RuntimeError(f"Solana RPC request failed: {e}") from e
        except json.JSONDecodeError as e:
            raise RuntimeError(f"Solana RPC invalid JSON response: {e}") from e
        if "error" in result:
            raise RuntimeError(f"Solana RPC error: {result['error']}")
        if "result" not in result:
            raise RuntimeError(f"Solana RPC missing result: {result}")
        return result["result"]

    def get_balance_lamports(self, pubkey: str) -> int:
        """Read SOL balance (in lamports) for a given pubkey."""
        result = self._call("getBalance", [pubkey])
        balance = result.get("value")
        if balance is None:
            raise RuntimeError(f"Solana RPC missing balance value: {result}")
        return int(balance)

    def get_signature_status(self, signature: str) -> Optional[SignatureStatus]:
        """None when the cluster does not know the signature (yet)."""
        result = self._call(
            "getSignatureStatuses",
            [[signature], {"searchTransactionHistory": True}],
        )
        values: List[Optional[Dict[str, Any]]] = result.get("value") or [None]
        status = values[0]
        if status is None:
            return None
        return SignatureStatus(
            confirmation_status=status.get("confirmationStatus"),
            err=status.get("err"),
        )

    def wait_for_confirmation(
        self,
        signature: str,
        commitment: str = "confirmed",
        timeout_s: float = 60.0,
        poll_interval_s: float = 2.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> bool:
        """
        Poll until the signature reaches `commitment`.

        Returns True once confirmed, False if the deadline passes first.
        Raises TransactionFailed if the transaction executed with an error.
        """
        deadline = time.monotonic() + timeout_s
        while True:
            try:
                status = self.get_signature_status(signature)
            except RuntimeError as e:
                logger.warning("signature status poll failed for %s: %s", signature, e)
                status = None
            if status is not None:
                if status.err is not None:
                    raise TransactionFailed(f"Transaction {signature} failed on-chain: {status.err}")
                if status.reached(commitment):
                    return True
            if time.monotonic() >= deadline:
                return False
            sleep(poll_interval_s)
