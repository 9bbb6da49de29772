from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, List

from revshare.errors import NotFoundError
from revshare.models import (
    NOTIFY_PAYOUT_EARNED,
    NOTIFY_REFERRAL_BONUS,
    PAYOUT_PENDING,
    InteractionScore,
    ReferralPayout,
)
from revshare.repository import Repository
from revshare.utils import utc_now_iso

logger = logging.getLogger(__name__)

NOTIFICATION_TYPE = "payout_available"


def payout_message(amount_sol: float, period_name: str, score: InteractionScore | None) -> str:
    posts = score.posts_created if score else 0
    comments = score.comments_replies_created if score else 0
    likes = score.likes_received if score else 0
    follows = score.follows_received if score else 0
    return (
        f"You earned {amount_sol:.4f} SOL for {period_name}. "
        f"Your engagement: {posts} posts, {comments} comments, {likes} likes, {follows} follows."
    )


def referral_message(amount_sol: float, period_name: str, referred: List[str]) -> str:
    who = referred[0] if len(referred) == 1 else f"{len(referred)} users"
    return f"You earned {amount_sol:.4f} SOL referral bonus for {period_name} from {who} you referred."


@dataclass(frozen=True)
class PayoutNotifier:
    """Tells users they have something to claim. Never touches payout rows."""

    repo: Repository

    def send(self, period_start: date, period_end: date) -> Dict[str, Any]:
        start_s, end_s = period_start.isoformat(), period_end.isoformat()
        period = self.repo.get_period(start_s, end_s)
        if period is None:
            raise NotFoundError(f"Period not found: {start_s} to {end_s}")
        created_at = utc_now_iso()

        user_payouts = self.repo.list_user_payouts(start_s, end_s, status=PAYOUT_PENDING, positive_only=True)
        scores = {s.user_id: s for s in self.repo.list_interaction_scores(start_s, end_s, eligible_only=False)}

        notifications: List[Dict[str, Any]] = []
        for p in user_payouts:
            score = scores.get(p.user_id)
            notifications.append(
                {
                    "user_id": p.user_id,
                    "type": NOTIFICATION_TYPE,
                    "notification_type": NOTIFY_PAYOUT_EARNED,
                    "period_start": start_s,
                    "period_end": end_s,
                    "payout_amount_sol": p.final_payout_sol,
                    "created_at": created_at,
                    "metadata": {
                        "interaction_breakdown": {
                            "posts": score.posts_created if score else 0,
                            "comments": score.comments_replies_created if score else 0,
                            "likes": score.likes_received if score else 0,
                            "follows": score.follows_received if score else 0,
                        },
                        "claim_action": "claim_payout",
                        "title": "Revenue Share Payout Available!",
                        "message": payout_message(p.final_payout_sol, period.period_name, score),
                        "action_text": "Claim Payout",
                    },
                }
            )
        user_count = len(notifications)

        referral_payouts = [
            r
            for r in self.repo.list_referral_payouts(start_s, end_s, status=PAYOUT_PENDING)
            if r.referral_bonus_sol > 0
        ]
        grouped: Dict[str, List[ReferralPayout]] = {}
        for r in referral_payouts:
            grouped.setdefault(r.referrer_id, []).append(r)
        usernames = self.repo.get_usernames(sorted({r.referred_user_id for r in referral_payouts}))

        for referrer_id, rows in grouped.items():
            total = sum(r.referral_bonus_sol for r in rows)
            referred = [usernames.get(r.referred_user_id, "a user") for r in rows]
            notifications.append(
                {
                    "user_id": referrer_id,
                    "type": NOTIFICATION_TYPE,
                    "notification_type": NOTIFY_REFERRAL_BONUS,
                    "period_start": start_s,
                    "period_end": end_s,
                    "payout_amount_sol": total,
                    "created_at": created_at,
                    "metadata": {
                        "interaction_breakdown": None,
                        "referred_users": [r.referred_user_id for r in rows],
                        "claim_action": "claim_payout",
                        "title": "Referral Bonus Earned!",
                        "message": referral_message(total, period.period_name, referred),
                        "action_text": "Claim Bonus",
                    },
                }
            )

        self.repo.upsert_notifications(notifications)
        referral_count = len(notifications) - user_count
        logger.info(
            "sent %s payout and %s referral notifications for %s",
            user_count,
            referral_count,
            period.period_name,
        )
        return {
            "period": {"start": start_s, "end": end_s, "name": period.period_name},
            "summary": {
                "userPayoutNotifications": user_count,
                "referralPayoutNotifications": referral_count,
                "totalNotifications": len(notifications),
            },
        }
