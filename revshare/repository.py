from __future__ import annotations

import json
import sqlite3
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from revshare.db import DB, connect
from revshare.models import (
    PAYOUT_CLAIMED,
    PAYOUT_PENDING,
    PAYOUT_PROCESSING,
    InteractionScore,
    Period,
    ReferralPayout,
    UserPayout,
)

USER_PAYOUTS = "user_payouts"
REFERRAL_PAYOUTS = "referral_payouts"
_CLAIM_TABLES = {USER_PAYOUTS, REFERRAL_PAYOUTS}


def _window_clause(column: str, lower: Optional[str], upper: Optional[str]) -> Tuple[str, Tuple[str, ...]]:
    # datetime() normalises Z and +HH:MM offsets to UTC before comparing
    if lower is None and upper is None:
        return "", ()
    return (
        f" AND datetime({column}) >= datetime(?) AND datetime({column}) < datetime(?)",
        (lower or "0001-01-01", upper or "9999-12-31"),
    )


def _period_from_row(row: sqlite3.Row) -> Period:
    return Period(
        id=row["id"],
        period_start=row["period_start"],
        period_end=row["period_end"],
        period_name=row["period_name"],
        year=int(row["year"]),
        month=int(row["month"]),
        period_number=int(row["period_number"]),
        is_current=bool(row["is_current"]),
        is_future=bool(row["is_future"]),
        pumpfun_creator_wallet=row["pumpfun_creator_wallet"] or "",
        revenue_status=row["revenue_status"] or "pending",
        pumpfun_fees_sol=float(row["pumpfun_fees_sol"] or 0),
        platform_revenue_sol=float(row["platform_revenue_sol"] or 0),
        pumpfun_pool_sol=float(row["pumpfun_pool_sol"] or 0),
        platform_pool_sol=float(row["platform_pool_sol"] or 0),
        referral_bonus_pool_sol=float(row["referral_bonus_pool_sol"] or 0),
        total_pool_sol=float(row["total_pool_sol"] or 0),
    )


def _score_from_row(row: sqlite3.Row) -> InteractionScore:
    return InteractionScore(
        user_id=row["user_id"],
        period_start=row["period_start"],
        period_end=row["period_end"],
        posts_created=int(row["posts_created"]),
        comments_replies_created=int(row["comments_replies_created"]),
        likes_received=int(row["likes_received"]),
        follows_received=int(row["follows_received"]),
        total_score=float(row["total_score"]),
        is_pro_eligible=bool(row["is_pro_eligible"]),
    )


def _user_payout_from_row(row: sqlite3.Row) -> UserPayout:
    return UserPayout(
        user_id=row["user_id"],
        period_start=row["period_start"],
        period_end=row["period_end"],
        pumpfun_share_sol=float(row["pumpfun_share_sol"]),
        platform_share_sol=float(row["platform_share_sol"]),
        total_payout_sol=float(row["total_payout_sol"]),
        referral_bonus_sol=float(row["referral_bonus_sol"]),
        final_payout_sol=float(row["final_payout_sol"]),
        payout_status=row["payout_status"],
        payment_tx_hash=row["payment_tx_hash"],
    )


def _referral_payout_from_row(row: sqlite3.Row) -> ReferralPayout:
    return ReferralPayout(
        referrer_id=row["referrer_id"],
        referred_user_id=row["referred_user_id"],
        period_start=row["period_start"],
        period_end=row["period_end"],
        referral_bonus_sol=float(row["referral_bonus_sol"]),
        payout_status=row["payout_status"],
        payment_tx_hash=row["payment_tx_hash"],
    )


def _placeholders(n: int) -> str:
    return ",".join("?" for _ in range(n))


@dataclass(frozen=True)
class Repository:
    """
    All SQL used by the pipeline. One instance is built per process and handed
    to every component; each method opens its own connection and commits on
    return, so a method is the unit of atomicity.
    """

    db: DB

    # ------------------------------------------------------------------ periods

    def insert_periods(self, periods: Iterable[Period]) -> int:
        inserted = 0
        with connect(self.db) as conn:
            for p in periods:
                cur = conn.execute(
                    """INSERT OR IGNORE INTO biweekly_periods
                       (id, period_start, period_end, period_name, year, month, period_number,
                        is_current, is_future, pumpfun_creator_wallet, revenue_status)
                       VALUES (?,?,?,?,?,?,?,?,?,?,?)""",
                    (
                        p.id,
                        p.period_start,
                        p.period_end,
                        p.period_name,
                        p.year,
                        p.month,
                        p.period_number,
                        1 if p.is_current else 0,
                        1 if p.is_future else 0,
                        p.pumpfun_creator_wallet,
                        p.revenue_status,
                    ),
                )
                inserted += cur.rowcount
        return inserted

    def update_status_flags(self, today: str) -> int:
        with connect(self.db) as conn:
            cur = conn.execute(
                """UPDATE biweekly_periods
                   SET is_current = CASE WHEN period_start <= ? AND period_end >= ? THEN 1 ELSE 0 END,
                       is_future = CASE WHEN period_start > ? THEN 1 ELSE 0 END""",
                (today, today, today),
            )
            return cur.rowcount

    def get_period(self, period_start: str, period_end: str) -> Optional[Period]:
        with connect(self.db) as conn:
            row = conn.execute(
                "SELECT * FROM biweekly_periods WHERE period_start=? AND period_end=?",
                (period_start, period_end),
            ).fetchone()
        return _period_from_row(row) if row else None

    def get_period_covering(self, day: str) -> Optional[Period]:
        with connect(self.db) as conn:
            row = conn.execute(
                """SELECT * FROM biweekly_periods
                   WHERE period_start <= ? AND period_end >= ?
                   ORDER BY period_start DESC LIMIT 1""",
                (day, day),
            ).fetchone()
        return _period_from_row(row) if row else None

    def get_flagged_current(self) -> Optional[Period]:
        with connect(self.db) as conn:
            row = conn.execute(
                "SELECT * FROM biweekly_periods WHERE is_current = 1 ORDER BY period_start DESC LIMIT 1"
            ).fetchone()
        return _period_from_row(row) if row else None

    def get_latest_ended(self, today: str, exclude_status: Optional[str] = None) -> Optional[Period]:
        """Most recent period whose end date is strictly before `today`."""
        query = "SELECT * FROM biweekly_periods WHERE period_end < ?"
        params: List[Any] = [today]
        if exclude_status is not None:
            query += " AND revenue_status != ?"
            params.append(exclude_status)
        query += " ORDER BY period_end DESC LIMIT 1"
        with connect(self.db) as conn:
            row = conn.execute(query, params).fetchone()
        return _period_from_row(row) if row else None

    def get_next_period(self, today: str) -> Optional[Period]:
        with connect(self.db) as conn:
            row = conn.execute(
                "SELECT * FROM biweekly_periods WHERE period_start > ? ORDER BY period_start ASC LIMIT 1",
                (today,),
            ).fetchone()
        return _period_from_row(row) if row else None

    def list_periods(self, year: Optional[int] = None) -> List[Period]:
        query = "SELECT * FROM biweekly_periods"
        params: List[Any] = []
        if year is not None:
            query += " WHERE year = ?"
            params.append(year)
        query += " ORDER BY period_start DESC"
        with connect(self.db) as conn:
            rows = conn.execute(query, params).fetchall()
        return [_period_from_row(r) for r in rows]

    def set_revenue_status(self, period_start: str, period_end: str, status: str) -> None:
        with connect(self.db) as conn:
            conn.execute(
                "UPDATE biweekly_periods SET revenue_status=? WHERE period_start=? AND period_end=?",
                (status, period_start, period_end),
            )

    def update_pumpfun_fees(
        self,
        period_start: str,
        period_end: str,
        creator_wallet: str,
        fees_sol: float,
        pool_sol: float,
    ) -> Optional[Period]:
        """Write the external fee fields; total is recomputed from the stored platform pool."""
        with connect(self.db) as conn:
            conn.execute(
                """UPDATE biweekly_periods
                   SET pumpfun_creator_wallet=?, pumpfun_fees_sol=?, pumpfun_pool_sol=?,
                       total_pool_sol = ? + platform_pool_sol
                   WHERE period_start=? AND period_end=?""",
                (creator_wallet, fees_sol, pool_sol, pool_sol, period_start, period_end),
            )
            row = conn.execute(
                "SELECT * FROM biweekly_periods WHERE period_start=? AND period_end=?",
                (period_start, period_end),
            ).fetchone()
        return _period_from_row(row) if row else None

    def update_platform_revenue(
        self,
        period_start: str,
        period_end: str,
        revenue_sol: float,
        pool_sol: float,
    ) -> Optional[Period]:
        """Write the internal revenue fields; total is recomputed from the stored pumpfun pool."""
        with connect(self.db) as conn:
            conn.execute(
                """UPDATE biweekly_periods
                   SET platform_revenue_sol=?, platform_pool_sol=?,
                       total_pool_sol = pumpfun_pool_sol + ?
                   WHERE period_start=? AND period_end=?""",
                (revenue_sol, pool_sol, pool_sol, period_start, period_end),
            )
            row = conn.execute(
                "SELECT * FROM biweekly_periods WHERE period_start=? AND period_end=?",
                (period_start, period_end),
            ).fetchone()
        return _period_from_row(row) if row else None

    # ----------------------------------------------------------- revenue inputs

    def featured_token_revenue(self, lower: Optional[str] = None, upper: Optional[str] = None) -> Tuple[float, int]:
        """Sum of promotion prices, all time when no bounds are given."""
        where, params = _window_clause("created_at", lower, upper)
        with connect(self.db) as conn:
            row = conn.execute(
                f"""SELECT COALESCE(SUM(promotion_price), 0) AS total, COUNT(*) AS n
                    FROM featured_tokens
                    WHERE promotion_price IS NOT NULL{where}""",
                params,
            ).fetchone()
        return float(row["total"]), int(row["n"])

    def pro_subscription_revenue(self, lower: Optional[str] = None, upper: Optional[str] = None) -> Tuple[float, int]:
        where, params = _window_clause("created_at", lower, upper)
        with connect(self.db) as conn:
            row = conn.execute(
                f"""SELECT COALESCE(SUM(COALESCE(price_sol, 0)), 0) AS total, COUNT(*) AS n
                    FROM pro_subscriptions
                    WHERE status = 'active'{where}""",
                params,
            ).fetchone()
        return float(row["total"]), int(row["n"])

    # ----------------------------------------------------------- scoring inputs

    def list_pro_eligible_users(self, lower: str, upper: str) -> List[str]:
        """Users holding an active subscription that overlaps [lower, upper)."""
        with connect(self.db) as conn:
            rows = conn.execute(
                """SELECT DISTINCT user_id FROM pro_subscriptions
                   WHERE status = 'active'
                     AND datetime(created_at) < datetime(?)
                     AND (expires_at IS NULL OR datetime(expires_at) >= datetime(?))
                   ORDER BY user_id ASC""",
                (upper, lower),
            ).fetchall()
        return [r["user_id"] for r in rows]

    def is_pro_eligible(self, user_id: str, lower: str, upper: str) -> bool:
        with connect(self.db) as conn:
            row = conn.execute(
                """SELECT 1 FROM pro_subscriptions
                   WHERE user_id = ? AND status = 'active'
                     AND datetime(created_at) < datetime(?)
                     AND (expires_at IS NULL OR datetime(expires_at) >= datetime(?))
                   LIMIT 1""",
                (user_id, upper, lower),
            ).fetchone()
        return row is not None

    def count_user_activity(self, user_id: str, lower: str, upper: str) -> Dict[str, int]:
        window, bounds = _window_clause("created_at", lower, upper)
        with connect(self.db) as conn:
            posts = conn.execute(
                f"SELECT COUNT(*) FROM posts WHERE user_id=?{window}",
                (user_id, *bounds),
            ).fetchone()[0]
            replies = conn.execute(
                f"SELECT COUNT(*) FROM replies WHERE user_id=?{window}",
                (user_id, *bounds),
            ).fetchone()[0]
            # Likes on the posts and replies the user created in the same window
            likes = conn.execute(
                f"""SELECT COUNT(*) FROM likes
                    WHERE 1=1{window}
                      AND (
                        post_id IN (SELECT id FROM posts WHERE user_id=?{window})
                        OR reply_id IN (SELECT id FROM replies WHERE user_id=?{window})
                      )""",
                (*bounds, user_id, *bounds, user_id, *bounds),
            ).fetchone()[0]
            follows = conn.execute(
                f"SELECT COUNT(*) FROM follows WHERE following_id=?{window}",
                (user_id, *bounds),
            ).fetchone()[0]
        return {
            "posts": int(posts),
            "replies": int(replies),
            "likes": int(likes),
            "follows": int(follows),
        }

    # ------------------------------------------------------- interaction scores

    def replace_interaction_scores(
        self, period_start: str, period_end: str, scores: Sequence[InteractionScore]
    ) -> int:
        """Upsert every score and drop rows for users no longer in the set."""
        with connect(self.db) as conn:
            for s in scores:
                conn.execute(
                    """INSERT INTO user_interaction_scores
                       (user_id, period_start, period_end, posts_created, comments_replies_created,
                        likes_received, follows_received, total_score, is_pro_eligible)
                       VALUES (?,?,?,?,?,?,?,?,?)
                       ON CONFLICT(user_id, period_start, period_end) DO UPDATE SET
                         posts_created=excluded.posts_created,
                         comments_replies_created=excluded.comments_replies_created,
                         likes_received=excluded.likes_received,
                         follows_received=excluded.follows_received,
                         total_score=excluded.total_score,
                         is_pro_eligible=excluded.is_pro_eligible""",
                    (
                        s.user_id,
                        period_start,
                        period_end,
                        s.posts_created,
                        s.comments_replies_created,
                        s.likes_received,
                        s.follows_received,
                        s.total_score,
                        1 if s.is_pro_eligible else 0,
                    ),
                )
            keep = [s.user_id for s in scores]
            query = "DELETE FROM user_interaction_scores WHERE period_start=? AND period_end=?"
            params: List[Any] = [period_start, period_end]
            if keep:
                query += f" AND user_id NOT IN ({_placeholders(len(keep))})"
                params.extend(keep)
            conn.execute(query, params)
        return len(scores)

    def list_interaction_scores(
        self, period_start: str, period_end: str, eligible_only: bool = True
    ) -> List[InteractionScore]:
        query = "SELECT * FROM user_interaction_scores WHERE period_start=? AND period_end=?"
        if eligible_only:
            query += " AND is_pro_eligible = 1"
        query += " ORDER BY user_id ASC"
        with connect(self.db) as conn:
            rows = conn.execute(query, (period_start, period_end)).fetchall()
        return [_score_from_row(r) for r in rows]

    def list_user_interaction_scores(self, user_id: str) -> List[InteractionScore]:
        with connect(self.db) as conn:
            rows = conn.execute(
                "SELECT * FROM user_interaction_scores WHERE user_id=? ORDER BY period_start DESC",
                (user_id,),
            ).fetchall()
        return [_score_from_row(r) for r in rows]

    # -------------------------------------------------------------- user payouts

    def replace_user_payouts(
        self, period_start: str, period_end: str, payouts: Sequence[UserPayout]
    ) -> int:
        """
        Upsert payouts keyed by (user_id, period). Rows that already left
        `pending` are never overwritten; stale pending rows are removed.
        """
        with connect(self.db) as conn:
            for p in payouts:
                conn.execute(
                    """INSERT INTO user_payouts
                       (user_id, period_start, period_end, pumpfun_share_sol, platform_share_sol,
                        total_payout_sol, referral_bonus_sol, final_payout_sol, payout_status)
                       VALUES (?,?,?,?,?,?,?,?,?)
                       ON CONFLICT(user_id, period_start, period_end) DO UPDATE SET
                         pumpfun_share_sol=excluded.pumpfun_share_sol,
                         platform_share_sol=excluded.platform_share_sol,
                         total_payout_sol=excluded.total_payout_sol,
                         referral_bonus_sol=excluded.referral_bonus_sol,
                         final_payout_sol=excluded.final_payout_sol
                       WHERE user_payouts.payout_status = 'pending'""",
                    (
                        p.user_id,
                        period_start,
                        period_end,
                        p.pumpfun_share_sol,
                        p.platform_share_sol,
                        p.total_payout_sol,
                        p.referral_bonus_sol,
                        p.final_payout_sol,
                        PAYOUT_PENDING,
                    ),
                )
            keep = [p.user_id for p in payouts]
            query = "DELETE FROM user_payouts WHERE period_start=? AND period_end=? AND payout_status=?"
            params: List[Any] = [period_start, period_end, PAYOUT_PENDING]
            if keep:
                query += f" AND user_id NOT IN ({_placeholders(len(keep))})"
                params.extend(keep)
            conn.execute(query, params)
        return len(payouts)

    def list_user_payouts(
        self,
        period_start: str,
        period_end: str,
        status: Optional[str] = None,
        positive_only: bool = False,
    ) -> List[UserPayout]:
        query = "SELECT * FROM user_payouts WHERE period_start=? AND period_end=?"
        params: List[Any] = [period_start, period_end]
        if status is not None:
            query += " AND payout_status=?"
            params.append(status)
        if positive_only:
            query += " AND final_payout_sol > 0"
        query += " ORDER BY final_payout_sol DESC, user_id ASC"
        with connect(self.db) as conn:
            rows = conn.execute(query, params).fetchall()
        return [_user_payout_from_row(r) for r in rows]

    def get_user_payout_row(self, user_id: str, period_start: str, period_end: str) -> Optional[Dict[str, Any]]:
        with connect(self.db) as conn:
            row = conn.execute(
                "SELECT * FROM user_payouts WHERE user_id=? AND period_start=? AND period_end=?",
                (user_id, period_start, period_end),
            ).fetchone()
        return dict(row) if row else None

    def user_payout_history(self, user_id: str, limit: int, offset: int) -> List[Dict[str, Any]]:
        with connect(self.db) as conn:
            rows = conn.execute(
                """SELECT * FROM user_payouts WHERE user_id=?
                   ORDER BY period_start DESC LIMIT ? OFFSET ?""",
                (user_id, limit, offset),
            ).fetchall()
        return [dict(r) for r in rows]

    # --------------------------------------------------------------- referrals

    def referral_map(self) -> Dict[str, str]:
        """referred_user_id -> referrer_id"""
        with connect(self.db) as conn:
            rows = conn.execute("SELECT referrer_id, referred_user_id FROM referrals").fetchall()
        return {r["referred_user_id"]: r["referrer_id"] for r in rows}

    def replace_referral_payouts(
        self, period_start: str, period_end: str, payouts: Sequence[ReferralPayout]
    ) -> int:
        with connect(self.db) as conn:
            for p in payouts:
                conn.execute(
                    """INSERT INTO referral_payouts
                       (referrer_id, referred_user_id, period_start, period_end,
                        referral_bonus_sol, payout_status)
                       VALUES (?,?,?,?,?,?)
                       ON CONFLICT(referrer_id, referred_user_id, period_start, period_end) DO UPDATE SET
                         referral_bonus_sol=excluded.referral_bonus_sol
                       WHERE referral_payouts.payout_status = 'pending'""",
                    (p.referrer_id, p.referred_user_id, period_start, period_end, p.referral_bonus_sol, PAYOUT_PENDING),
                )
            pending = conn.execute(
                """SELECT id, referrer_id, referred_user_id FROM referral_payouts
                   WHERE period_start=? AND period_end=? AND payout_status=?""",
                (period_start, period_end, PAYOUT_PENDING),
            ).fetchall()
            keep = {(p.referrer_id, p.referred_user_id) for p in payouts}
            stale = [r["id"] for r in pending if (r["referrer_id"], r["referred_user_id"]) not in keep]
            if stale:
                conn.execute(f"DELETE FROM referral_payouts WHERE id IN ({_placeholders(len(stale))})", stale)
        return len(payouts)

    def list_referral_payouts(
        self,
        period_start: str,
        period_end: str,
        referrer_id: Optional[str] = None,
        status: Optional[str] = None,
    ) -> List[ReferralPayout]:
        return [_referral_payout_from_row(r) for r in self._referral_rows(period_start, period_end, referrer_id, status)]

    def list_referral_payout_rows(
        self,
        period_start: str,
        period_end: str,
        referrer_id: Optional[str] = None,
        status: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        return [dict(r) for r in self._referral_rows(period_start, period_end, referrer_id, status)]

    def _referral_rows(
        self,
        period_start: str,
        period_end: str,
        referrer_id: Optional[str],
        status: Optional[str],
    ) -> List[sqlite3.Row]:
        query = "SELECT * FROM referral_payouts WHERE period_start=? AND period_end=?"
        params: List[Any] = [period_start, period_end]
        if referrer_id is not None:
            query += " AND referrer_id=?"
            params.append(referrer_id)
        if status is not None:
            query += " AND payout_status=?"
            params.append(status)
        query += " ORDER BY referral_bonus_sol DESC, referred_user_id ASC"
        with connect(self.db) as conn:
            return conn.execute(query, params).fetchall()

    def referral_bonus_totals_for_referrer(self, referrer_id: str) -> Dict[Tuple[str, str], Tuple[float, int]]:
        """(period_start, period_end) -> (total bonus, row count) for one referrer."""
        with connect(self.db) as conn:
            rows = conn.execute(
                """SELECT period_start, period_end, SUM(referral_bonus_sol) AS total, COUNT(*) AS n
                   FROM referral_payouts WHERE referrer_id=?
                   GROUP BY period_start, period_end""",
                (referrer_id,),
            ).fetchall()
        return {(r["period_start"], r["period_end"]): (float(r["total"]), int(r["n"])) for r in rows}

    # ----------------------------------------------------------- notifications

    def upsert_notifications(self, notifications: Sequence[Dict[str, Any]]) -> int:
        with connect(self.db) as conn:
            for n in notifications:
                conn.execute(
                    """INSERT INTO notifications
                       (user_id, type, notification_type, period_start, period_end,
                        payout_amount_sol, metadata, created_at)
                       VALUES (?,?,?,?,?,?,?,?)
                       ON CONFLICT(user_id, period_start, period_end, notification_type) DO UPDATE SET
                         payout_amount_sol=excluded.payout_amount_sol,
                         metadata=excluded.metadata,
                         created_at=excluded.created_at""",
                    (
                        n["user_id"],
                        n["type"],
                        n["notification_type"],
                        n["period_start"],
                        n["period_end"],
                        n["payout_amount_sol"],
                        json.dumps(n["metadata"], sort_keys=True),
                        n["created_at"],
                    ),
                )
        return len(notifications)

    def list_notifications(self, user_id: Optional[str] = None) -> List[Dict[str, Any]]:
        query = "SELECT * FROM notifications"
        params: List[Any] = []
        if user_id is not None:
            query += " WHERE user_id=?"
            params.append(user_id)
        query += " ORDER BY id ASC"
        with connect(self.db) as conn:
            rows = conn.execute(query, params).fetchall()
        out = []
        for r in rows:
            item = dict(r)
            item["metadata"] = json.loads(item["metadata"])
            out.append(item)
        return out

    # ---------------------------------------------------------------- profiles

    def get_usernames(self, user_ids: Sequence[str]) -> Dict[str, str]:
        if not user_ids:
            return {}
        with connect(self.db) as conn:
            rows = conn.execute(
                f"SELECT id, username FROM profiles WHERE id IN ({_placeholders(len(user_ids))})",
                list(user_ids),
            ).fetchall()
        return {r["id"]: r["username"] for r in rows if r["username"]}

    def get_payout_wallet(self, user_id: str) -> Optional[str]:
        with connect(self.db) as conn:
            row = conn.execute("SELECT payout_wallet_address FROM profiles WHERE id=?", (user_id,)).fetchone()
        if row is None or not row["payout_wallet_address"]:
            return None
        return row["payout_wallet_address"]

    def set_payout_wallet(self, user_id: str, wallet: str) -> None:
        with connect(self.db) as conn:
            conn.execute(
                """INSERT INTO profiles (id, payout_wallet_address) VALUES (?, ?)
                   ON CONFLICT(id) DO UPDATE SET payout_wallet_address=excluded.payout_wallet_address""",
                (user_id, wallet),
            )

    # ------------------------------------------------------------------ claims

    def begin_claim(self, table: str, row_ids: Sequence[int]) -> bool:
        """
        Guarded pending -> processing transition. Either every row moves or
        none does; False means another claim got there first.
        """
        self._check_table(table)
        if not row_ids:
            return False
        with connect(self.db) as conn:
            cur = conn.execute(
                f"""UPDATE {table} SET payout_status=?
                    WHERE id IN ({_placeholders(len(row_ids))}) AND payout_status=?""",
                [PAYOUT_PROCESSING, *row_ids, PAYOUT_PENDING],
            )
            if cur.rowcount != len(row_ids):
                conn.rollback()
                return False
        return True

    def release_claim(self, table: str, row_ids: Sequence[int]) -> int:
        """processing -> pending after a transfer that did not land."""
        self._check_table(table)
        with connect(self.db) as conn:
            cur = conn.execute(
                f"""UPDATE {table} SET payout_status=?
                    WHERE id IN ({_placeholders(len(row_ids))}) AND payout_status=?""",
                [PAYOUT_PENDING, *row_ids, PAYOUT_PROCESSING],
            )
            return cur.rowcount

    def complete_claim(self, table: str, row_ids: Sequence[int], tx_hash: str, claimed_at: str) -> int:
        self._check_table(table)
        with connect(self.db) as conn:
            cur = conn.execute(
                f"""UPDATE {table} SET payout_status=?, payment_tx_hash=?, claimed_at=?
                    WHERE id IN ({_placeholders(len(row_ids))}) AND payout_status=?""",
                [PAYOUT_CLAIMED, tx_hash, claimed_at, *row_ids, PAYOUT_PROCESSING],
            )
            if cur.rowcount != len(row_ids):
                conn.rollback()
                return 0
            return cur.rowcount

    @staticmethod
    def _check_table(table: str) -> None:
        if table not in _CLAIM_TABLES:
            raise ValueError(f"Not a payout table: {table}")
