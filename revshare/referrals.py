from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, List, Mapping, Sequence

from revshare.errors import NotFoundError
from revshare.models import ReferralPayout, UserPayout
from revshare.repository import Repository

logger = logging.getLogger(__name__)

# Referrer earns 5% of the referred user's final payout (IMMUTABLE)
REFERRAL_BONUS_RATE = 0.05


def referral_bonus_for(final_payout_sol: float) -> float:
    return final_payout_sol * REFERRAL_BONUS_RATE


def compute_referral_payouts(
    user_payouts: Sequence[UserPayout],
    referrers: Mapping[str, str],
) -> List[ReferralPayout]:
    """
    One row per referred user with a referrer and a positive bonus.
    `referrers` maps referred_user_id -> referrer_id.
    """
    out: List[ReferralPayout] = []
    for p in user_payouts:
        referrer_id = referrers.get(p.user_id)
        if not referrer_id:
            continue
        bonus = referral_bonus_for(p.final_payout_sol)
        if bonus <= 0:
            continue
        out.append(
            ReferralPayout(
                referrer_id=referrer_id,
                referred_user_id=p.user_id,
                period_start=p.period_start,
                period_end=p.period_end,
                referral_bonus_sol=bonus,
            )
        )
    return out


def totals_by_referrer(payouts: Sequence[ReferralPayout]) -> Dict[str, float]:
    totals: Dict[str, float] = {}
    for p in payouts:
        totals[p.referrer_id] = totals.get(p.referrer_id, 0.0) + p.referral_bonus_sol
    return totals


@dataclass(frozen=True)
class ReferralBonusCalculator:
    repo: Repository

    def compute(self, period_start: date, period_end: date) -> Dict[str, Any]:
        start_s, end_s = period_start.isoformat(), period_end.isoformat()
        if self.repo.get_period(start_s, end_s) is None:
            raise NotFoundError(f"Period not found: {start_s} to {end_s}")

        user_payouts = self.repo.list_user_payouts(start_s, end_s)
        referrers = self.repo.referral_map()
        payouts = compute_referral_payouts(user_payouts, referrers)
        self.repo.replace_referral_payouts(start_s, end_s, payouts)

        total_bonus = sum(p.referral_bonus_sol for p in payouts)
        referred_in_period = sum(1 for p in user_payouts if p.user_id in referrers)
        logger.info(
            "computed %s referral payouts for %s..%s (total %.9f SOL)",
            len(payouts),
            start_s,
            end_s,
            total_bonus,
        )

        return {
            "period": {"start": start_s, "end": end_s},
            "summary": {
                "totalUserPayouts": len(user_payouts),
                "totalReferrals": referred_in_period,
                "processedReferrals": len(payouts),
                "totalReferralBonus": total_bonus,
                "referralPercentage": REFERRAL_BONUS_RATE * 100,
            },
            "referralPayouts": [
                {
                    "referrerId": p.referrer_id,
                    "referredUserId": p.referred_user_id,
                    "referralBonus": p.referral_bonus_sol,
                }
                for p in payouts
            ],
            "perReferrer": totals_by_referrer(payouts),
        }
