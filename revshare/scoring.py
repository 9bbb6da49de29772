from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, List

from revshare.errors import NotFoundError
from revshare.models import InteractionScore
from revshare.repository import Repository
from revshare.utils import window_bounds

logger = logging.getLogger(__name__)

# Interaction weights (IMMUTABLE)
POST_WEIGHT = 3.0
COMMENT_WEIGHT = 1.0
FOLLOW_WEIGHT = 0.5
LIKE_WEIGHT = 0.25

INTERACTION_WEIGHTS = {
    "posts": POST_WEIGHT,
    "comments": COMMENT_WEIGHT,
    "follows": FOLLOW_WEIGHT,
    "likes": LIKE_WEIGHT,
}


def score_interactions(posts: int, comments: int, follows: int, likes: int) -> float:
    """
    Weighted engagement score for one user in one period.

    - Posts created: 3.0 each
    - Comments/replies created: 1.0 each
    - Follows received: 0.5 each
    - Likes received: 0.25 each
    """
    return (
        POST_WEIGHT * posts
        + COMMENT_WEIGHT * comments
        + FOLLOW_WEIGHT * follows
        + LIKE_WEIGHT * likes
    )


def breakdown_of(score: InteractionScore) -> Dict[str, int]:
    return {
        "posts": score.posts_created,
        "comments": score.comments_replies_created,
        "likes": score.likes_received,
        "follows": score.follows_received,
    }


@dataclass(frozen=True)
class InteractionScorer:
    repo: Repository

    def score_window(self, period_start: date, period_end: date) -> List[InteractionScore]:
        """Live scores for every pro-eligible user in the window. Nothing is written."""
        start_s, end_s = period_start.isoformat(), period_end.isoformat()
        lower, upper = window_bounds(period_start, period_end)
        scores: List[InteractionScore] = []
        for user_id in self.repo.list_pro_eligible_users(lower, upper):
            counts = self.repo.count_user_activity(user_id, lower, upper)
            total = score_interactions(
                posts=counts["posts"],
                comments=counts["replies"],
                follows=counts["follows"],
                likes=counts["likes"],
            )
            scores.append(
                InteractionScore(
                    user_id=user_id,
                    period_start=start_s,
                    period_end=end_s,
                    posts_created=counts["posts"],
                    comments_replies_created=counts["replies"],
                    likes_received=counts["likes"],
                    follows_received=counts["follows"],
                    total_score=total,
                    is_pro_eligible=True,
                )
            )
        return scores

    def compute(self, period_start: date, period_end: date) -> Dict[str, Any]:
        """
        Score every pro-eligible user for the period and replace the period's
        stored scores. Users with no activity are stored with score 0.
        """
        start_s, end_s = period_start.isoformat(), period_end.isoformat()
        if self.repo.get_period(start_s, end_s) is None:
            raise NotFoundError(f"Period not found: {start_s} to {end_s}")

        scores = self.score_window(period_start, period_end)

        self.repo.replace_interaction_scores(start_s, end_s, scores)
        logger.info("scored %s pro users for %s..%s", len(scores), start_s, end_s)

        return {
            "period": {"start": start_s, "end": end_s},
            "summary": {"totalProUsers": len(scores), "processedUsers": len(scores)},
            "processedUsers": [
                {"userId": s.user_id, "interactionScore": s.total_score, "breakdown": breakdown_of(s)}
                for s in scores
            ],
        }

    def current_score(self, user_id: str, period_start: date, period_end: date) -> Dict[str, Any]:
        """
        Running score for one user in an open period, with the weighted points
        each activity category contributes. Read-only.
        """
        period = {"start": period_start.isoformat(), "end": period_end.isoformat()}
        lower, upper = window_bounds(period_start, period_end)
        if not self.repo.is_pro_eligible(user_id, lower, upper):
            return {
                "isProEligible": False,
                "message": "Pro subscription required for payouts",
                "period": period,
            }

        counts = self.repo.count_user_activity(user_id, lower, upper)
        points = {
            "posts": counts["posts"] * POST_WEIGHT,
            "comments": counts["replies"] * COMMENT_WEIGHT,
            "likes": counts["likes"] * LIKE_WEIGHT,
            "follows": counts["follows"] * FOLLOW_WEIGHT,
        }
        return {
            "isProEligible": True,
            "period": period,
            "interactions": {
                "postsCreated": counts["posts"],
                "commentsRepliesCreated": counts["replies"],
                "likesReceived": counts["likes"],
                "followsReceived": counts["follows"],
            },
            "score": {"current": sum(points.values()), "breakdown": points},
            "weights": dict(INTERACTION_WEIGHTS),
        }
