from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)


def _getenv(name: str, default: Optional[str] = None) -> str:
    val = os.getenv(name, default)
    if val is None:
        raise ValueError(f"Missing required env var: {name}")
    return val


def _getenv_bool(name: str, default: str = "false") -> bool:
    return _getenv(name, default).strip().lower() in {"1", "true", "yes", "y"}


def _getenv_int(name: str, default: str) -> int:
    return int(_getenv(name, default))


# Solana RPC URL (mainnet)
SOLANA_RPC_URL = "https://api.mainnet-beta.solana.com"

# Creator-fee API (pump.fun swap API)
PUMPFUN_API_URL = "https://swap-api.pump.fun"

COMMITMENT_LEVELS = {"processed", "confirmed", "finalized"}


def validate_rpc_url(rpc_url: str) -> None:
    """Hard fail if devnet is detected in RPC URL."""
    if "devnet" in rpc_url.lower():
        raise RuntimeError("FATAL: Devnet RPC configured. Refusing to run.")


@dataclass(frozen=True)
class Settings:
    db_path: str
    public_dir: str
    log_level: str

    pumpfun_api_url: str
    pumpfun_timeout_s: int
    pumpfun_fee_limit: int
    pumpfun_creator_wallet: str

    rpc_url: str
    treasury_pubkey: str
    treasury_keypair_path: str
    commitment: str
    confirm_timeout_s: int
    dry_run: bool

    api_secret_key: str
    host: str
    port: int
    claim_rate_limit: str


def load_settings() -> Settings:
    load_dotenv()

    db_path = _getenv("REVSHARE_DB_PATH", "revshare.sqlite3")
    public_dir = _getenv("REVSHARE_PUBLIC_DIR", "public")
    log_level = _getenv("REVSHARE_LOG_LEVEL", "INFO").strip().upper()

    pumpfun_api_url = _getenv("REVSHARE_PUMPFUN_API_URL", PUMPFUN_API_URL).rstrip("/")
    pumpfun_timeout_s = _getenv_int("REVSHARE_PUMPFUN_TIMEOUT_S", "15")
    pumpfun_fee_limit = _getenv_int("REVSHARE_PUMPFUN_FEE_LIMIT", "30")
    pumpfun_creator_wallet = _getenv("REVSHARE_PUMPFUN_CREATOR_WALLET", "").strip()

    # Use mainnet RPC URL (with validation to prevent devnet)
    rpc_url = _getenv("REVSHARE_RPC_URL", SOLANA_RPC_URL)
    validate_rpc_url(rpc_url)
    treasury_pubkey = _getenv("REVSHARE_TREASURY_PUBKEY", "").strip()
    treasury_keypair_path = _getenv("REVSHARE_TREASURY_KEYPAIR_PATH", "treasury_wallet.json").strip()
    commitment = _getenv("REVSHARE_COMMITMENT", "confirmed").strip().lower()
    confirm_timeout_s = _getenv_int("REVSHARE_CONFIRM_TIMEOUT_S", "60")
    dry_run = _getenv_bool("REVSHARE_DRY_RUN", "false")

    api_secret_key = _getenv("API_SECRET_KEY", "").strip()
    host = _getenv("REVSHARE_HOST", "0.0.0.0")
    port = _getenv_int("REVSHARE_PORT", "8000")
    claim_rate_limit = _getenv("REVSHARE_CLAIM_RATE_LIMIT", "10/minute")

    if commitment not in COMMITMENT_LEVELS:
        raise ValueError(f"REVSHARE_COMMITMENT must be one of {sorted(COMMITMENT_LEVELS)}")

    if pumpfun_fee_limit <= 0:
        raise ValueError("REVSHARE_PUMPFUN_FEE_LIMIT must be positive")

    if not api_secret_key:
        logger.warning("API_SECRET_KEY not set, orchestration endpoint will reject all calls")

    logger.info("using treasury keypair: %s", treasury_keypair_path)

    return Settings(
        db_path=db_path,
        public_dir=public_dir,
        log_level=log_level,
        pumpfun_api_url=pumpfun_api_url,
        pumpfun_timeout_s=pumpfun_timeout_s,
        pumpfun_fee_limit=pumpfun_fee_limit,
        pumpfun_creator_wallet=pumpfun_creator_wallet,
        rpc_url=rpc_url,
        treasury_pubkey=treasury_pubkey,
        treasury_keypair_path=treasury_keypair_path,
        commitment=commitment,
        confirm_timeout_s=confirm_timeout_s,
        dry_run=dry_run,
        api_secret_key=api_secret_key,
        host=host,
        port=port,
        claim_rate_limit=claim_rate_limit,
    )
