from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator


SCHEMA = """
PRAGMA journal_mode=WAL;

CREATE TABLE IF NOT EXISTS biweekly_periods (
  id TEXT PRIMARY KEY,
  period_start TEXT NOT NULL,
  period_end TEXT NOT NULL,
  period_name TEXT NOT NULL,
  year INTEGER NOT NULL,
  month INTEGER NOT NULL,
  period_number INTEGER NOT NULL,
  is_current INTEGER NOT NULL DEFAULT 0,
  is_future INTEGER NOT NULL DEFAULT 0,
  pumpfun_creator_wallet TEXT NOT NULL DEFAULT '',
  revenue_status TEXT NOT NULL DEFAULT 'pending',
  pumpfun_fees_sol REAL NOT NULL DEFAULT 0,
  platform_revenue_sol REAL NOT NULL DEFAULT 0,
  pumpfun_pool_sol REAL NOT NULL DEFAULT 0,
  platform_pool_sol REAL NOT NULL DEFAULT 0,
  referral_bonus_pool_sol REAL NOT NULL DEFAULT 0,
  total_pool_sol REAL NOT NULL DEFAULT 0,
  UNIQUE (period_start, period_end),
  CHECK (period_start < period_end)
);

CREATE TABLE IF NOT EXISTS user_interaction_scores (
  user_id TEXT NOT NULL,
  period_start TEXT NOT NULL,
  period_end TEXT NOT NULL,
  posts_created INTEGER NOT NULL,
  comments_replies_created INTEGER NOT NULL,
  likes_received INTEGER NOT NULL,
  follows_received INTEGER NOT NULL,
  total_score REAL NOT NULL,
  is_pro_eligible INTEGER NOT NULL DEFAULT 1,
  PRIMARY KEY (user_id, period_start, period_end)
);

CREATE TABLE IF NOT EXISTS user_payouts (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  user_id TEXT NOT NULL,
  period_start TEXT NOT NULL,
  period_end TEXT NOT NULL,
  pumpfun_share_sol REAL NOT NULL,
  platform_share_sol REAL NOT NULL,
  total_payout_sol REAL NOT NULL,
  referral_bonus_sol REAL NOT NULL,
  final_payout_sol REAL NOT NULL,
  payout_status TEXT NOT NULL DEFAULT 'pending',
  payment_tx_hash TEXT,
  claimed_at TEXT,
  UNIQUE (user_id, period_start, period_end)
);

CREATE TABLE IF NOT EXISTS referral_payouts (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  referrer_id TEXT NOT NULL,
  referred_user_id TEXT NOT NULL,
  period_start TEXT NOT NULL,
  period_end TEXT NOT NULL,
  referral_bonus_sol REAL NOT NULL,
  payout_status TEXT NOT NULL DEFAULT 'pending',
  payment_tx_hash TEXT,
  claimed_at TEXT,
  UNIQUE (referrer_id, referred_user_id, period_start, period_end)
);

CREATE TABLE IF NOT EXISTS notifications (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  user_id TEXT NOT NULL,
  type TEXT NOT NULL,
  notification_type TEXT NOT NULL,
  period_start TEXT NOT NULL,
  period_end TEXT NOT NULL,
  payout_amount_sol REAL NOT NULL,
  metadata TEXT NOT NULL,
  created_at TEXT NOT NULL,
  UNIQUE (user_id, period_start, period_end, notification_type)
);

-- Inputs owned by the social feed, signup and billing flows.

CREATE TABLE IF NOT EXISTS profiles (
  id TEXT PRIMARY KEY,
  username TEXT,
  payout_wallet_address TEXT
);

CREATE TABLE IF NOT EXISTS referrals (
  referrer_id TEXT NOT NULL,
  referred_user_id TEXT PRIMARY KEY
);

CREATE TABLE IF NOT EXISTS pro_subscriptions (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  user_id TEXT NOT NULL,
  status TEXT NOT NULL,
  price_sol REAL,
  created_at TEXT NOT NULL,
  expires_at TEXT
);

CREATE TABLE IF NOT EXISTS featured_tokens (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  promotion_price REAL,
  created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS posts (
  id TEXT PRIMARY KEY,
  user_id TEXT NOT NULL,
  created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS replies (
  id TEXT PRIMARY KEY,
  user_id TEXT NOT NULL,
  post_id TEXT,
  created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS likes (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  user_id TEXT NOT NULL,
  post_id TEXT,
  reply_id TEXT,
  created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS follows (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  follower_id TEXT NOT NULL,
  following_id TEXT NOT NULL,
  created_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_posts_user_created ON posts(user_id, created_at);
CREATE INDEX IF NOT EXISTS idx_replies_user_created ON replies(user_id, created_at);
CREATE INDEX IF NOT EXISTS idx_follows_following_created ON follows(following_id, created_at);
"""


@dataclass(frozen=True)
class DB:
    path: str
    timeout_s: float = 30.0


@contextmanager
def connect(db: DB) -> Iterator[sqlite3.Connection]:
    conn = sqlite3.connect(db.path, timeout=db.timeout_s)
    try:
        conn.row_factory = sqlite3.Row
        yield conn
        conn.commit()
    finally:
        conn.close()


def _column_names(conn: sqlite3.Connection, table: str) -> set[str]:
    return {row[1] for row in conn.execute(f"PRAGMA table_info({table})").fetchall()}


def init_db(db: DB) -> None:
    with connect(db) as conn:
        conn.executescript(SCHEMA)
        # Migration: claimed_at was added after the first payout tables shipped
        for table in ("user_payouts", "referral_payouts"):
            if "claimed_at" not in _column_names(conn, table):
                conn.execute(f"ALTER TABLE {table} ADD COLUMN claimed_at TEXT")
