#!/usr/bin/env python3
"""Quick script to view periods, interaction scores and payouts from database."""

import sqlite3
import sys
from pathlib import Path

from revshare.config import load_settings

# Fix Unicode encoding on Windows
if sys.platform == 'win32':
    import io
    sys.stdout = io.TextIOWrapper(sys.stdout.buffer, encoding='utf-8', errors='replace')

db_path = Path(load_settings().db_path)
if not db_path.exists():
    print(f"Database not found at {db_path}")
    sys.exit(1)

conn = sqlite3.connect(str(db_path))
conn.row_factory = sqlite3.Row

print("=" * 80)
print("PERIODS (ended, most recent first)")
print("=" * 80)
periods = conn.execute(
    """SELECT period_start, period_end, period_name, revenue_status,
              pumpfun_pool_sol, platform_pool_sol, total_pool_sol
       FROM biweekly_periods WHERE is_future=0 ORDER BY period_start DESC LIMIT 10"""
).fetchall()
print(f"Periods shown: {len(periods)}")
for p in periods:
    print(f"  {p['period_name']:28s} {p['period_start']} .. {p['period_end']} [{p['revenue_status']}]")
    print(
        f"    Pools: pumpfun {p['pumpfun_pool_sol']:.6f} + platform {p['platform_pool_sol']:.6f}"
        f" = {p['total_pool_sol']:.6f} SOL"
    )

latest = conn.execute(
    "SELECT period_start, period_end FROM biweekly_periods WHERE revenue_status='calculated' "
    "ORDER BY period_start DESC LIMIT 1"
).fetchone()
if latest is None:
    print("\nNo calculated period yet. Run: python -m revshare run-orchestration")
    conn.close()
    sys.exit(0)

window = (latest["period_start"], latest["period_end"])

print("\n" + "=" * 80)
print(f"INTERACTION SCORES ({window[0]} .. {window[1]})")
print("=" * 80)
scores = conn.execute(
    """SELECT s.user_id, p.username, s.posts_created, s.comments_replies_created,
              s.likes_received, s.follows_received, s.total_score
       FROM user_interaction_scores s LEFT JOIN profiles p ON p.id = s.user_id
       WHERE s.period_start=? AND s.period_end=? ORDER BY s.total_score DESC LIMIT 20""",
    window,
).fetchall()
print(f"Total scored users: {len(scores)}")
for s in scores:
    name = s['username'] or s['user_id']
    print(
        f"  {name:20s} | Score: {s['total_score']:7.2f} | posts {s['posts_created']}, "
        f"comments {s['comments_replies_created']}, likes {s['likes_received']}, follows {s['follows_received']}"
    )

print("\n" + "=" * 80)
print("USER PAYOUTS")
print("=" * 80)
payouts = conn.execute(
    """SELECT u.user_id, p.username, u.final_payout_sol, u.payout_status, u.payment_tx_hash
       FROM user_payouts u LEFT JOIN profiles p ON p.id = u.user_id
       WHERE u.period_start=? AND u.period_end=? ORDER BY u.final_payout_sol DESC LIMIT 20""",
    window,
).fetchall()
print(f"Total payouts: {len(payouts)}")
for u in payouts:
    name = u['username'] or u['user_id']
    print(f"  {name:20s} | {u['final_payout_sol']:.9f} SOL | {u['payout_status']}")
    if u['payment_tx_hash']:
        print(f"      Tx: {u['payment_tx_hash']}")

print("\n" + "=" * 80)
print("REFERRAL PAYOUTS")
print("=" * 80)
referrals = conn.execute(
    """SELECT referrer_id, referred_user_id, referral_bonus_sol, payout_status FROM referral_payouts
       WHERE period_start=? AND period_end=? ORDER BY referral_bonus_sol DESC LIMIT 20""",
    window,
).fetchall()
print(f"Total referral payouts: {len(referrals)}")
for r in referrals:
    print(
        f"  {r['referrer_id']:20s} <- {r['referred_user_id']:20s} | "
        f"{r['referral_bonus_sol']:.9f} SOL | {r['payout_status']}"
    )
print()

conn.close()
