from __future__ import annotations

import logging
import os
import subprocess
from dataclasses import dataclass

from revshare.errors import TransferNotSubmitted, TransferOutcomeUnknown

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SolanaCLIPayer:
    """Execute native SOL transfers from the treasury keypair using the Solana CLI."""

    keypair_path: str
    rpc_url: str
    commitment: str = "confirmed"
    timeout_s: int = 120

    def transfer_sol(self, to_wallet: str, sol: float) -> str:
        """
        Transfer SOL to a wallet using solana CLI.

        Args:
            to_wallet: Recipient wallet address
            sol: Amount of SOL to transfer

        Returns:
            Transaction signature

        Raises:
            TransferNotSubmitted if the keypair is missing or the CLI cannot be launched
            TransferOutcomeUnknown if the CLI times out, exits non-zero or prints no signature
        """
        if not self.keypair_path or not os.path.exists(self.keypair_path):
            raise TransferNotSubmitted(f"Treasury keypair not found at {self.keypair_path!r}")

        cmd = [
            "solana",
            "transfer",
            to_wallet,
            f"{sol:.9f}",
            "--keypair",
            self.keypair_path,
            "--url",
            self.rpc_url,
            "--commitment",
            self.commitment,
            "--allow-unfunded-recipient",
        ]

        try:
            proc = subprocess.run(cmd, capture_output=True, text=True, timeout=self.timeout_s)
        except subprocess.TimeoutExpired as e:
            signature = _find_signature(e.stdout)
            raise TransferOutcomeUnknown(
                f"solana transfer timed out after {self.timeout_s}s", signature=signature
            ) from e
        except OSError as e:
            raise TransferNotSubmitted(f"solana transfer could not run: {e}") from e

        # Extract transaction signature from output
        signature = _find_signature(proc.stdout)

        if proc.returncode != 0:
            logger.error("solana transfer failed:\nSTDOUT:\n%s\nSTDERR:\n%s", proc.stdout, proc.stderr)
            raise TransferOutcomeUnknown(
                f"solana transfer failed: {proc.stderr.strip() or proc.stdout.strip()}", signature=signature
            )

        if not signature:
            raise TransferOutcomeUnknown(f"solana transfer printed no signature:\n{proc.stdout}")

        logger.info("sent %.9f SOL to %s - sig: %s", sol, to_wallet, signature)
        return signature


def _find_signature(stdout: str | bytes | None) -> str:
    if isinstance(stdout, bytes):
        stdout = stdout.decode("utf-8", errors="replace")
    for line in (stdout or "").splitlines():
        if "Signature:" in line:
            signature = line.split("Signature:", 1)[1].strip()
            if signature:
                return signature
    return ""
