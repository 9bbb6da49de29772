from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, List, Sequence

from revshare.errors import NotFoundError, ValidationError
from revshare.models import InteractionScore, UserPayout
from revshare.repository import Repository
from revshare.scoring import InteractionScorer

logger = logging.getLogger(__name__)

LAMPORTS_PER_SOL = 1_000_000_000

# Max |expected - distributed| for a period to count as balanced
BALANCE_TOLERANCE_SOL = 0.0001


def sol_to_lamports(sol: float) -> int:
    return int(round(sol * LAMPORTS_PER_SOL))


def lamports_to_sol(lamports: int) -> float:
    return lamports / LAMPORTS_PER_SOL


def pool_referral_share(share: float, referral_bonus_pool_sol: float) -> float:
    """
    A user's proportional slice of the period's referral bonus pool.
    Unrelated to the 5% referrer bonus computed in revshare.referrals.
    """
    return share * referral_bonus_pool_sol


@dataclass(frozen=True)
class BalanceCheck:
    total_pool: float
    total_calculated_payout: float
    difference: float
    is_balanced: bool

    def as_dict(self) -> Dict[str, Any]:
        return {
            "totalPool": self.total_pool,
            "totalCalculatedPayout": self.total_calculated_payout,
            "difference": self.difference,
            "isBalanced": self.is_balanced,
        }


def compute_user_payouts(
    scores: Sequence[InteractionScore],
    pumpfun_pool_sol: float,
    platform_pool_sol: float,
    referral_bonus_pool_sol: float = 0.0,
) -> List[UserPayout]:
    """
    Split the period pools across users proportionally to score.
    Returns payouts sorted by final amount, highest first.
    Does NOT write to database - caller handles persistence.

    When the total score is positive, zero-score users get no row.
    When it is zero, every user gets an explicit zero row.
    """
    total_score = sum(s.total_score for s in scores)

    payouts: List[UserPayout] = []
    for s in scores:
        if total_score > 0 and s.total_score <= 0:
            continue
        share = s.total_score / total_score if total_score > 0 else 0.0
        pumpfun_share = share * pumpfun_pool_sol
        platform_share = share * platform_pool_sol
        referral_share = pool_referral_share(share, referral_bonus_pool_sol)
        final = pumpfun_share + platform_share + referral_share
        payouts.append(
            UserPayout(
                user_id=s.user_id,
                period_start=s.period_start,
                period_end=s.period_end,
                pumpfun_share_sol=pumpfun_share,
                platform_share_sol=platform_share,
                total_payout_sol=final,
                referral_bonus_sol=referral_share,
                final_payout_sol=final,
            )
        )

    payouts.sort(key=lambda p: (-p.final_payout_sol, p.user_id))
    return payouts


def verify_balance(payouts: Sequence[UserPayout], expected_total_sol: float) -> BalanceCheck:
    distributed = sum(p.final_payout_sol for p in payouts)
    difference = abs(expected_total_sol - distributed)
    return BalanceCheck(
        total_pool=expected_total_sol,
        total_calculated_payout=distributed,
        difference=difference,
        is_balanced=difference < BALANCE_TOLERANCE_SOL,
    )


@dataclass(frozen=True)
class PayoutCalculator:
    repo: Repository

    def compute(self, period_start: date, period_end: date) -> Dict[str, Any]:
        start_s, end_s = period_start.isoformat(), period_end.isoformat()
        period = self.repo.get_period(start_s, end_s)
        if period is None:
            raise NotFoundError(f"Period not found: {start_s} to {end_s}")

        scores = self.repo.list_interaction_scores(start_s, end_s, eligible_only=True)
        total_score = sum(s.total_score for s in scores)
        payouts = compute_user_payouts(
            scores,
            pumpfun_pool_sol=period.pumpfun_pool_sol,
            platform_pool_sol=period.platform_pool_sol,
            referral_bonus_pool_sol=period.referral_bonus_pool_sol,
        )
        self.repo.replace_user_payouts(start_s, end_s, payouts)

        check = verify_balance(payouts, period.total_pool_sol + period.referral_bonus_pool_sol)
        if total_score > 0 and not check.is_balanced:
            logger.warning(
                "payouts for %s do not balance: pool=%.9f distributed=%.9f",
                period.period_name,
                check.total_pool,
                check.total_calculated_payout,
            )
        logger.info(
            "computed %s payouts for %s (pool %.9f SOL, total score %.2f)",
            len(payouts),
            period.period_name,
            period.total_pool_sol,
            total_score,
        )

        return {
            "period": {"start": start_s, "end": end_s, "name": period.period_name},
            "revenueData": {
                "totalPool": period.total_pool_sol,
                "pumpfunPool": period.pumpfun_pool_sol,
                "platformPool": period.platform_pool_sol,
                "referralBonusPool": period.referral_bonus_pool_sol,
                "breakdown": {
                    "pumpfunFees": period.pumpfun_fees_sol,
                    "platformRevenue": period.platform_revenue_sol,
                },
            },
            "payoutSummary": {
                "totalUsers": len(payouts),
                "totalScore": total_score,
                "totalCalculatedPayout": check.total_calculated_payout,
                "verification": check.as_dict(),
            },
            "userPayouts": [
                {
                    "userId": p.user_id,
                    "pumpfunShare": p.pumpfun_share_sol,
                    "platformShare": p.platform_share_sol,
                    "referralBonus": p.referral_bonus_sol,
                    "finalPayout": p.final_payout_sol,
                }
                for p in payouts
            ],
        }

    def preview_earnings(self, period_start: date, period_end: date) -> Dict[str, Any]:
        """
        What each pro user would earn from the period's stored pool given the
        activity recorded so far. Nothing is written.
        """
        start_s, end_s = period_start.isoformat(), period_end.isoformat()
        period = self.repo.get_period(start_s, end_s)
        if period is None:
            raise NotFoundError(
                "No revenue data found for this period. Please calculate total pool revenue first."
            )
        if period.total_pool_sol <= 0:
            raise ValidationError("No revenue pool available for this period")

        scores = [s for s in InteractionScorer(self.repo).score_window(period_start, period_end) if s.total_score > 0]
        total_score = sum(s.total_score for s in scores)
        usernames = self.repo.get_usernames([s.user_id for s in scores])

        earnings = []
        for s in scores:
            share = s.total_score / total_score
            earnings.append(
                {
                    "userId": s.user_id,
                    "username": usernames.get(s.user_id),
                    "interactionScore": s.total_score,
                    "share": share,
                    "payoutSOL": share * period.total_pool_sol,
                }
            )
        earnings.sort(key=lambda e: (-e["payoutSOL"], e["userId"]))

        total_payout = sum(e["payoutSOL"] for e in earnings)
        difference = abs(period.total_pool_sol - total_payout)
        return {
            "period": {"start": start_s, "end": end_s},
            "revenueData": {
                "pumpfunFees": period.pumpfun_fees_sol,
                "platformRevenue": period.platform_revenue_sol,
                "pumpfunPool": period.pumpfun_pool_sol,
                "platformPool": period.platform_pool_sol,
                "totalPool": period.total_pool_sol,
            },
            "userEarnings": {
                "totalUsers": len(earnings),
                "totalScore": total_score,
                "totalPayout": total_payout,
                "payouts": earnings,
                "verification": {
                    "totalPool": period.total_pool_sol,
                    "totalPayout": total_payout,
                    "difference": difference,
                    "isBalanced": difference < BALANCE_TOLERANCE_SOL,
                },
            },
            "message": (
                f"Successfully calculated earnings for {len(earnings)} users. "
                f"Total pool: {period.total_pool_sol:.4f} SOL, Total payout: {total_payout:.4f} SOL"
            ),
        }
