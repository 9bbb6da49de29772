from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict

from revshare.errors import ValidationError
from revshare.repository import Repository
from revshare.scoring import breakdown_of

MAX_HISTORY_LIMIT = 100


@dataclass(frozen=True)
class PayoutHistory:
    repo: Repository

    def history(self, user_id: str, limit: int = 20, offset: int = 0) -> Dict[str, Any]:
        """A user's payouts, newest period first, with engagement and referral earnings."""
        if not user_id:
            raise ValidationError("Missing required field: userId")
        if limit < 1 or limit > MAX_HISTORY_LIMIT:
            raise ValidationError(f"limit must be between 1 and {MAX_HISTORY_LIMIT}")
        if offset < 0:
            raise ValidationError("offset must be >= 0")

        rows = self.repo.user_payout_history(user_id, limit, offset)
        scores = {(s.period_start, s.period_end): s for s in self.repo.list_user_interaction_scores(user_id)}
        referral_totals = self.repo.referral_bonus_totals_for_referrer(user_id)

        payouts = []
        for r in rows:
            key = (r["period_start"], r["period_end"])
            score = scores.get(key)
            bonus, referred = referral_totals.get(key, (0.0, 0))
            payouts.append(
                {
                    "periodStart": r["period_start"],
                    "periodEnd": r["period_end"],
                    "finalPayoutSol": r["final_payout_sol"],
                    "pumpfunShareSol": r["pumpfun_share_sol"],
                    "platformShareSol": r["platform_share_sol"],
                    "payoutStatus": r["payout_status"],
                    "paymentTxHash": r["payment_tx_hash"],
                    "claimedAt": r["claimed_at"],
                    "interactionScore": score.total_score if score else 0.0,
                    "breakdown": breakdown_of(score) if score else None,
                    "referralEarnings": {"totalSol": bonus, "referredUsers": referred},
                }
            )

        return {
            "userId": user_id,
            "payouts": payouts,
            "pagination": {"limit": limit, "offset": offset, "returned": len(payouts)},
        }
