from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone

from revshare.config import load_settings
from revshare.db import DB, connect, init_db
from revshare.periods import PeriodRegistry
from revshare.repository import Repository
from revshare.utils import utc_today


DEMO_USERS = [
    # user_id, username, wallet, posts, replies, follows received
    ("user_alice", "alice", "C4RmBaZJdXBJZsGxnRsjSrpfxAt6hz9BiBEVYpeMcCnD", 4, 6, 3),
    ("user_bob", "bob", "9WzDXwBbmkg8ZTbNMqUxvQRAyrZzDsGYdLVL9zYtAWWM", 1, 2, 0),
    ("user_carol", "carol", None, 2, 0, 5),
]


def _ts(day: date, hour: int) -> str:
    return datetime.combine(day, time(hour=hour), tzinfo=timezone.utc).isoformat().replace("+00:00", "Z")


def main() -> None:
    s = load_settings()
    db = DB(s.db_path)
    init_db(db)

    today = utc_today()
    registry = PeriodRegistry(repo=Repository(db), creator_wallet=s.pumpfun_creator_wallet)
    registry.generate_year(today.year, today)
    if today.month == 1 and today.day < 15:
        registry.generate_year(today.year - 1, today)
    period = registry.resolve_processable(today)

    start = date.fromisoformat(period.period_start)
    inside = start + timedelta(days=2)
    created = _ts(inside, 12)

    with connect(db) as conn:
        for user_id, username, wallet, n_posts, n_replies, n_follows in DEMO_USERS:
            conn.execute(
                "INSERT OR REPLACE INTO profiles(id, username, payout_wallet_address) VALUES(?,?,?)",
                (user_id, username, wallet),
            )
            conn.execute(
                "INSERT INTO pro_subscriptions(user_id, status, price_sol, created_at, expires_at) VALUES(?,?,?,?,?)",
                (user_id, "active", 0.5, _ts(start - timedelta(days=30), 0), None),
            )
            for i in range(n_posts):
                post_id = f"{user_id}_post_{period.id}_{i}"
                conn.execute(
                    "INSERT OR REPLACE INTO posts(id, user_id, created_at) VALUES(?,?,?)",
                    (post_id, user_id, created),
                )
                # Two likes per post from other demo users
                for liker in ("user_alice", "user_bob"):
                    if liker != user_id:
                        conn.execute(
                            "INSERT INTO likes(user_id, post_id, reply_id, created_at) VALUES(?,?,?,?)",
                            (liker, post_id, None, _ts(inside, 13)),
                        )
            for i in range(n_replies):
                conn.execute(
                    "INSERT OR REPLACE INTO replies(id, user_id, post_id, created_at) VALUES(?,?,?,?)",
                    (f"{user_id}_reply_{period.id}_{i}", user_id, None, created),
                )
            for i in range(n_follows):
                conn.execute(
                    "INSERT INTO follows(follower_id, following_id, created_at) VALUES(?,?,?)",
                    (f"follower_{i}", user_id, created),
                )

        conn.execute(
            "INSERT INTO featured_tokens(promotion_price, created_at) VALUES(?,?)",
            (1.5, created),
        )
        conn.execute(
            "INSERT OR REPLACE INTO referrals(referrer_id, referred_user_id) VALUES(?,?)",
            ("user_alice", "user_carol"),
        )

    print("OK: seeded test data")
    print(f"db: {s.db_path}")
    print(f"period: {period.period_name} ({period.period_start} .. {period.period_end})")
    print(f"activity_created_at_utc: {created}")


if __name__ == "__main__":
    main()
