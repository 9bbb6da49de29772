from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

PAYOUT_PENDING = "pending"
PAYOUT_PROCESSING = "processing"
PAYOUT_CLAIMED = "claimed"
PAYOUT_PAID = "paid"

REVENUE_PENDING = "pending"
REVENUE_CALCULATED = "calculated"
REVENUE_FAILED = "failed"

NOTIFY_PAYOUT_EARNED = "payout_earned"
NOTIFY_REFERRAL_BONUS = "referral_bonus"


@dataclass(frozen=True)
class Period:
    id: str
    period_start: str
    period_end: str
    period_name: str
    year: int
    month: int
    period_number: int
    is_current: bool
    is_future: bool
    pumpfun_creator_wallet: str
    revenue_status: str
    pumpfun_fees_sol: float = 0.0
    platform_revenue_sol: float = 0.0
    pumpfun_pool_sol: float = 0.0
    platform_pool_sol: float = 0.0
    referral_bonus_pool_sol: float = 0.0
    total_pool_sol: float = 0.0


@dataclass(frozen=True)
class InteractionScore:
    user_id: str
    period_start: str
    period_end: str
    posts_created: int
    comments_replies_created: int
    likes_received: int
    follows_received: int
    total_score: float
    is_pro_eligible: bool = True


@dataclass(frozen=True)
class UserPayout:
    user_id: str
    period_start: str
    period_end: str
    pumpfun_share_sol: float
    platform_share_sol: float
    total_payout_sol: float
    referral_bonus_sol: float
    final_payout_sol: float
    payout_status: str = PAYOUT_PENDING
    payment_tx_hash: Optional[str] = None


@dataclass(frozen=True)
class ReferralPayout:
    referrer_id: str
    referred_user_id: str
    period_start: str
    period_end: str
    referral_bonus_sol: float
    payout_status: str = PAYOUT_PENDING
    payment_tx_hash: Optional[str] = None


@dataclass(frozen=True)
class FeeBucket:
    """One daily bucket from the creator-fee API."""

    bucket: str
    creator_fee_sol: float
    num_trades: int = 0
