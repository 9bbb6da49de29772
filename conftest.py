"""Shared fixtures: a temporary database, seeding helpers and fake network collaborators."""
from __future__ import annotations

import itertools
import threading
from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional

import pytest

from revshare.components import Components, build_components
from revshare.config import Settings
from revshare.db import DB, connect, init_db
from revshare.errors import UpstreamError
from revshare.models import FeeBucket
from revshare.repository import Repository
from revshare.solana_rpc import TransactionFailed

TODAY = date(2026, 2, 20)
PERIOD_START = "2026-02-01"
PERIOD_END = "2026-02-14"

CREATOR_WALLET = "7xKXtg2CW87d97TXJSDpbD5jBkheTqA83TZRuJosgAsU"
USER_WALLET = "C4RmBaZJdXBJZsGxnRsjSrpfxAt6hz9BiBEVYpeMcCnD"
OTHER_WALLET = "9WzDXwBbmkg8ZTbNMqUxvQRAyrZzDsGYdLVL9zYtAWWM"
API_KEY = "test-secret-key"


@dataclass
class FakeFeeClient:
    buckets: List[FeeBucket] = field(default_factory=list)
    error: Optional[Exception] = None
    calls: List[tuple] = field(default_factory=list)

    def get_daily_fees(self, creator_wallet: str, limit: int = 30) -> List[FeeBucket]:
        self.calls.append((creator_wallet, limit))
        if self.error is not None:
            raise self.error
        return list(self.buckets)


@dataclass
class FakePayer:
    error: Optional[Exception] = None
    delay_event: Optional[threading.Event] = None
    transfers: List[tuple] = field(default_factory=list)
    _counter: itertools.count = field(default_factory=lambda: itertools.count(1))
    _lock: threading.Lock = field(default_factory=threading.Lock)

    def transfer_sol(self, to_wallet: str, sol: float) -> str:
        if self.delay_event is not None:
            self.delay_event.wait(timeout=5)
        if self.error is not None:
            raise self.error
        with self._lock:
            n = next(self._counter)
            self.transfers.append((to_wallet, sol))
        return f"sig{n}"


@dataclass
class FakeRPC:
    confirmed: bool = True
    tx_error: Optional[str] = None
    balance_lamports: int = 1_000_000_000_000
    confirmations: List[str] = field(default_factory=list)

    def get_balance_lamports(self, pubkey: str) -> int:
        return self.balance_lamports

    def wait_for_confirmation(self, signature: str, commitment: str = "confirmed", timeout_s: float = 60.0) -> bool:
        self.confirmations.append(signature)
        if self.tx_error is not None:
            raise TransactionFailed(f"Transaction {signature} failed on-chain: {self.tx_error}")
        return self.confirmed


class Seeder:
    """Writes rows into the source tables the pipeline reads."""

    def __init__(self, db: DB):
        self.db = db
        self._ids = itertools.count(1)

    def _id(self, prefix: str) -> str:
        return f"{prefix}{next(self._ids)}"

    def profile(self, user_id: str, username: Optional[str] = None, wallet: Optional[str] = None) -> None:
        with connect(self.db) as conn:
            conn.execute(
                "INSERT OR REPLACE INTO profiles (id, username, payout_wallet_address) VALUES (?,?,?)",
                (user_id, username or user_id, wallet),
            )

    def pro(
        self,
        user_id: str,
        created_at: str = "2026-01-01T00:00:00Z",
        expires_at: Optional[str] = None,
        price_sol: Optional[float] = None,
        status: str = "active",
    ) -> None:
        with connect(self.db) as conn:
            conn.execute(
                "INSERT INTO pro_subscriptions (user_id, status, price_sol, created_at, expires_at) VALUES (?,?,?,?,?)",
                (user_id, status, price_sol, created_at, expires_at),
            )

    def posts(self, user_id: str, n: int, created_at: str = "2026-02-05T12:00:00Z") -> List[str]:
        ids = []
        with connect(self.db) as conn:
            for _ in range(n):
                post_id = self._id("post")
                conn.execute("INSERT INTO posts (id, user_id, created_at) VALUES (?,?,?)", (post_id, user_id, created_at))
                ids.append(post_id)
        return ids

    def replies(self, user_id: str, n: int, created_at: str = "2026-02-05T12:00:00Z") -> List[str]:
        ids = []
        with connect(self.db) as conn:
            for _ in range(n):
                reply_id = self._id("reply")
                conn.execute(
                    "INSERT INTO replies (id, user_id, created_at) VALUES (?,?,?)", (reply_id, user_id, created_at)
                )
                ids.append(reply_id)
        return ids

    def likes(
        self,
        n: int,
        post_id: Optional[str] = None,
        reply_id: Optional[str] = None,
        created_at: str = "2026-02-06T12:00:00Z",
    ) -> None:
        with connect(self.db) as conn:
            for _ in range(n):
                conn.execute(
                    "INSERT INTO likes (user_id, post_id, reply_id, created_at) VALUES (?,?,?,?)",
                    (self._id("liker"), post_id, reply_id, created_at),
                )

    def follows(self, following_id: str, n: int, created_at: str = "2026-02-07T12:00:00Z") -> None:
        with connect(self.db) as conn:
            for _ in range(n):
                conn.execute(
                    "INSERT INTO follows (follower_id, following_id, created_at) VALUES (?,?,?)",
                    (self._id("follower"), following_id, created_at),
                )

    def featured_token(self, price: Optional[float], created_at: str = "2026-02-03T00:00:00Z") -> None:
        with connect(self.db) as conn:
            conn.execute(
                "INSERT INTO featured_tokens (promotion_price, created_at) VALUES (?,?)", (price, created_at)
            )

    def referral(self, referrer_id: str, referred_user_id: str) -> None:
        with connect(self.db) as conn:
            conn.execute(
                "INSERT OR REPLACE INTO referrals (referrer_id, referred_user_id) VALUES (?,?)",
                (referrer_id, referred_user_id),
            )

    def scores(self, period_start: str, period_end: str, scores: dict) -> None:
        with connect(self.db) as conn:
            for user_id, score in scores.items():
                conn.execute(
                    """INSERT INTO user_interaction_scores
                       (user_id, period_start, period_end, posts_created, comments_replies_created,
                        likes_received, follows_received, total_score, is_pro_eligible)
                       VALUES (?,?,?,0,0,0,0,?,1)""",
                    (user_id, period_start, period_end, score),
                )

    def pools(self, period_start: str, period_end: str, pumpfun_pool: float, platform_pool: float) -> None:
        with connect(self.db) as conn:
            conn.execute(
                """UPDATE biweekly_periods
                   SET pumpfun_pool_sol=?, platform_pool_sol=?, total_pool_sol=?
                   WHERE period_start=? AND period_end=?""",
                (pumpfun_pool, platform_pool, pumpfun_pool + platform_pool, period_start, period_end),
            )


@pytest.fixture
def db(tmp_path) -> DB:
    d = DB(str(tmp_path / "revshare.sqlite3"))
    init_db(d)
    return d


@pytest.fixture
def repo(db) -> Repository:
    return Repository(db)


@pytest.fixture
def seed(db) -> Seeder:
    return Seeder(db)


@pytest.fixture
def settings(tmp_path, db) -> Settings:
    return Settings(
        db_path=db.path,
        public_dir=str(tmp_path / "public"),
        log_level="INFO",
        pumpfun_api_url="https://swap-api.example.test",
        pumpfun_timeout_s=5,
        pumpfun_fee_limit=30,
        pumpfun_creator_wallet=CREATOR_WALLET,
        rpc_url="https://rpc.example.test",
        treasury_pubkey="",
        treasury_keypair_path=str(tmp_path / "treasury.json"),
        commitment="confirmed",
        confirm_timeout_s=5,
        dry_run=False,
        api_secret_key=API_KEY,
        host="127.0.0.1",
        port=8000,
        claim_rate_limit="100/minute",
    )


@pytest.fixture
def fee_client() -> FakeFeeClient:
    return FakeFeeClient()


@pytest.fixture
def payer() -> FakePayer:
    return FakePayer()


@pytest.fixture
def rpc() -> FakeRPC:
    return FakeRPC()


@pytest.fixture
def components(settings, fee_client, payer, rpc) -> Components:
    c = build_components(settings, fee_client=fee_client, payer=payer, rpc=rpc, today=lambda: TODAY)
    c.registry.generate_year(2026, TODAY)
    return c


@pytest.fixture
def failing_fee_client() -> FakeFeeClient:
    return FakeFeeClient(error=UpstreamError("Creator-fee API returned HTTP 503"))
