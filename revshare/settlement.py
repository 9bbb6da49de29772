from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from revshare.errors import (
    ConflictError,
    CriticalInconsistency,
    NotFoundError,
    TransferNotSubmitted,
    TransferOutcomeUnknown,
    UpstreamError,
    ValidationError,
)
from revshare.models import NOTIFY_PAYOUT_EARNED, NOTIFY_REFERRAL_BONUS, PAYOUT_PENDING
from revshare.payouts import lamports_to_sol, sol_to_lamports
from revshare.repository import REFERRAL_PAYOUTS, USER_PAYOUTS, Repository
from revshare.solana_payer import SolanaCLIPayer
from revshare.solana_rpc import SolanaRPC, TransactionFailed
from revshare.utils import parse_period_window, utc_now_iso
from revshare.validation import is_valid_solana_pubkey, require_solana_pubkey

logger = logging.getLogger(__name__)

CLAIM_TYPES = {NOTIFY_PAYOUT_EARNED, NOTIFY_REFERRAL_BONUS}
DRY_RUN_SIGNATURE = "DRY_RUN"


@dataclass(frozen=True)
class ClaimTarget:
    table: str
    row_ids: List[int]
    amount_sol: float


@dataclass(frozen=True)
class ClaimExecutor:
    """
    Settles one claim as one native SOL transfer.

    Rows move pending -> processing through a guarded UPDATE before any money
    moves, so two concurrent claims for the same payout cannot both transfer.
    A transfer that provably did not land puts the rows back to pending.
    Anything that may have moved funds without being recorded raises
    CriticalInconsistency and leaves the rows in processing.
    """

    repo: Repository
    payer: SolanaCLIPayer
    rpc: SolanaRPC
    commitment: str = "confirmed"
    confirm_timeout_s: float = 60.0
    treasury_pubkey: str = ""
    dry_run: bool = False

    def claim(
        self,
        user_id: Optional[str],
        period_start: Optional[str],
        period_end: Optional[str],
        notification_type: Optional[str],
        wallet_address: Optional[str] = None,
    ) -> Dict[str, Any]:
        if not user_id or not notification_type:
            raise ValidationError("Missing required fields: userId, periodStart, periodEnd, notificationType")
        start, end = parse_period_window(period_start, period_end)
        if notification_type not in CLAIM_TYPES:
            raise ValidationError(f"Invalid notificationType: {notification_type}")
        override = require_solana_pubkey(wallet_address) if wallet_address else None

        target = self._load_target(user_id, start.isoformat(), end.isoformat(), notification_type)
        wallet = self._resolve_wallet(user_id, override)

        lamports = sol_to_lamports(target.amount_sol)
        if lamports <= 0:
            raise ValidationError("No payout amount available")
        amount_sol = lamports_to_sol(lamports)

        if not self.dry_run:
            self._check_treasury(lamports)

        if not self.repo.begin_claim(target.table, target.row_ids):
            raise ConflictError("Payout is already being claimed")
        logger.info(
            "claim started: user=%s type=%s period=%s..%s amount=%.9f SOL",
            user_id,
            notification_type,
            start.isoformat(),
            end.isoformat(),
            amount_sol,
        )

        if self.dry_run:
            self.repo.release_claim(target.table, target.row_ids)
            logger.info("DRY RUN: would send %.9f SOL to %s", amount_sol, wallet)
            return {"transactionHash": DRY_RUN_SIGNATURE, "amount": amount_sol, "walletAddress": wallet, "dryRun": True}

        try:
            signature = self.payer.transfer_sol(to_wallet=wallet, sol=amount_sol)
        except TransferNotSubmitted:
            self.repo.release_claim(target.table, target.row_ids)
            raise
        except TransferOutcomeUnknown as e:
            logger.critical(
                "transfer to %s may have been submitted (sig=%s): %s; %s ids=%s left in processing",
                wallet,
                e.signature or "unknown",
                e,
                target.table,
                target.row_ids,
            )
            raise CriticalInconsistency(
                f"Transfer outcome unknown (signature {e.signature or 'unknown'}); "
                "payout left in processing for reconciliation"
            ) from e

        self._confirm(target, signature)

        claimed_at = utc_now_iso()
        try:
            updated = self.repo.complete_claim(target.table, target.row_ids, signature, claimed_at)
        except sqlite3.Error as e:
            logger.critical(
                "transfer %s landed but ledger update failed for %s ids=%s: %s",
                signature,
                target.table,
                target.row_ids,
                e,
            )
            raise CriticalInconsistency(
                f"Transfer {signature} succeeded but the payout could not be marked claimed"
            ) from e
        if updated == 0:
            logger.critical(
                "transfer %s landed but %s ids=%s were no longer processing",
                signature,
                target.table,
                target.row_ids,
            )
            raise CriticalInconsistency(
                f"Transfer {signature} succeeded but the payout could not be marked claimed"
            )

        if override:
            try:
                self.repo.set_payout_wallet(user_id, override)
            except sqlite3.Error:
                logger.exception("claim %s settled but payout wallet for %s was not saved", signature, user_id)

        logger.info("claim settled: user=%s sig=%s amount=%.9f SOL", user_id, signature, amount_sol)
        return {"transactionHash": signature, "amount": amount_sol, "walletAddress": wallet}

    def _load_target(self, user_id: str, start: str, end: str, notification_type: str) -> ClaimTarget:
        if notification_type == NOTIFY_PAYOUT_EARNED:
            row = self.repo.get_user_payout_row(user_id, start, end)
            if row is None:
                raise NotFoundError("No payout found for this period")
            if row["payout_status"] != PAYOUT_PENDING:
                raise ConflictError(f"Payout already {row['payout_status']}")
            return ClaimTarget(USER_PAYOUTS, [int(row["id"])], float(row["final_payout_sol"]))

        rows = self.repo.list_referral_payout_rows(start, end, referrer_id=user_id)
        if not rows:
            raise NotFoundError("No referral payout found for this period")
        pending = [r for r in rows if r["payout_status"] == PAYOUT_PENDING]
        if not pending:
            raise ConflictError(f"Referral payout already {rows[0]['payout_status']}")
        return ClaimTarget(
            REFERRAL_PAYOUTS,
            [int(r["id"]) for r in pending],
            sum(float(r["referral_bonus_sol"]) for r in pending),
        )

    def _resolve_wallet(self, user_id: str, override: Optional[str]) -> str:
        if override:
            return override
        wallet = self.repo.get_payout_wallet(user_id)
        if not wallet:
            raise ValidationError(
                "No payout wallet address found. Please set your wallet address in profile settings."
            )
        if not is_valid_solana_pubkey(wallet):
            raise ValidationError("Invalid wallet address format")
        return wallet.strip()

    def _check_treasury(self, lamports: int) -> None:
        if not self.treasury_pubkey:
            return
        try:
            balance = self.rpc.get_balance_lamports(self.treasury_pubkey)
        except RuntimeError as e:
            raise UpstreamError(f"Could not read treasury balance: {e}") from e
        if balance < lamports:
            logger.error("treasury balance %s lamports is below claim amount %s", balance, lamports)
            raise UpstreamError("Treasury balance is insufficient for this payout")

    def _confirm(self, target: ClaimTarget, signature: str) -> None:
        try:
            confirmed = self.rpc.wait_for_confirmation(
                signature,
                commitment=self.commitment,
                timeout_s=self.confirm_timeout_s,
            )
        except TransactionFailed as e:
            self.repo.release_claim(target.table, target.row_ids)
            raise UpstreamError(str(e)) from e
        if not confirmed:
            logger.critical(
                "transfer %s not confirmed at %s within %ss; %s ids=%s left in processing",
                signature,
                self.commitment,
                self.confirm_timeout_s,
                target.table,
                target.row_ids,
            )
            raise CriticalInconsistency(
                f"Transfer {signature} could not be confirmed; payout left in processing for reconciliation"
            )
