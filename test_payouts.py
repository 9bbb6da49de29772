"""Tests for proportional payout computation."""
from datetime import date

import pytest

from conftest import PERIOD_END, PERIOD_START, TODAY
from revshare.db import connect
from revshare.errors import NotFoundError, ValidationError
from revshare.models import PAYOUT_CLAIMED, InteractionScore
from revshare.payouts import (
    PayoutCalculator,
    compute_user_payouts,
    lamports_to_sol,
    pool_referral_share,
    sol_to_lamports,
    verify_balance,
)
from revshare.periods import PeriodRegistry

FEB1 = date(2026, 2, 1)
FEB14 = date(2026, 2, 14)


def _score(user_id, total):
    return InteractionScore(user_id, PERIOD_START, PERIOD_END, 0, 0, 0, 0, float(total))


@pytest.fixture
def calculator(repo):
    PeriodRegistry(repo).generate_year(2026, TODAY)
    return PayoutCalculator(repo)


def test_lamport_conversion():
    assert sol_to_lamports(1.5) == 1_500_000_000
    assert sol_to_lamports(0.1) == 100_000_000
    assert lamports_to_sol(2_500_000_000) == 2.5


def test_proportional_split():
    """Pool 10 SOL, scores 30 and 10 -> 7.5 and 2.5."""
    payouts = compute_user_payouts([_score("a", 30), _score("b", 10)], pumpfun_pool_sol=4.0, platform_pool_sol=6.0)
    by_user = {p.user_id: p for p in payouts}
    assert by_user["a"].final_payout_sol == pytest.approx(7.5)
    assert by_user["b"].final_payout_sol == pytest.approx(2.5)
    assert by_user["a"].pumpfun_share_sol == pytest.approx(3.0)
    assert by_user["a"].platform_share_sol == pytest.approx(4.5)
    assert by_user["a"].total_payout_sol == by_user["a"].final_payout_sol
    assert [p.user_id for p in payouts] == ["a", "b"]


def test_conservation_with_many_users():
    scores = [_score(f"u{i}", i * 1.75 + 0.25) for i in range(1, 200)]
    payouts = compute_user_payouts(scores, pumpfun_pool_sol=12.3456789, platform_pool_sol=0.987654321)
    check = verify_balance(payouts, 12.3456789 + 0.987654321)
    assert check.is_balanced
    assert check.difference < 1e-4


def test_zero_total_score_gives_zero_rows():
    payouts = compute_user_payouts([_score("a", 0), _score("b", 0)], pumpfun_pool_sol=2.0, platform_pool_sol=3.0)
    assert len(payouts) == 2
    assert all(p.final_payout_sol == 0 for p in payouts)


def test_zero_score_users_omitted_when_others_scored():
    payouts = compute_user_payouts([_score("a", 5), _score("b", 0)], pumpfun_pool_sol=1.0, platform_pool_sol=1.0)
    assert [p.user_id for p in payouts] == ["a"]
    assert payouts[0].final_payout_sol == pytest.approx(2.0)


def test_pool_referral_share_is_proportional():
    assert pool_referral_share(0.25, 4.0) == pytest.approx(1.0)
    payouts = compute_user_payouts(
        [_score("a", 3), _score("b", 1)], pumpfun_pool_sol=0.0, platform_pool_sol=0.0, referral_bonus_pool_sol=2.0
    )
    assert {p.user_id: p.referral_bonus_sol for p in payouts} == pytest.approx({"a": 1.5, "b": 0.5})


def test_calculator_scenario_a(repo, seed, calculator):
    seed.scores(PERIOD_START, PERIOD_END, {"a": 30.0, "b": 10.0})
    seed.pools(PERIOD_START, PERIOD_END, pumpfun_pool=4.0, platform_pool=6.0)

    result = calculator.compute(FEB1, FEB14)

    summary = result["payoutSummary"]
    assert summary["totalUsers"] == 2
    assert summary["totalScore"] == 40.0
    assert summary["verification"]["isBalanced"] is True
    stored = {p.user_id: p.final_payout_sol for p in repo.list_user_payouts(PERIOD_START, PERIOD_END)}
    assert stored == pytest.approx({"a": 7.5, "b": 2.5})


def test_calculator_scenario_b_all_zero(repo, seed, calculator):
    seed.scores(PERIOD_START, PERIOD_END, {"a": 0.0, "b": 0.0, "c": 0.0})
    seed.pools(PERIOD_START, PERIOD_END, pumpfun_pool=2.0, platform_pool=3.0)

    result = calculator.compute(FEB1, FEB14)

    assert result["payoutSummary"]["totalUsers"] == 3
    assert result["payoutSummary"]["totalCalculatedPayout"] == 0
    assert all(p.final_payout_sol == 0 for p in repo.list_user_payouts(PERIOD_START, PERIOD_END))


def test_calculator_without_scores(repo, calculator):
    result = calculator.compute(FEB1, FEB14)
    assert result["payoutSummary"]["totalUsers"] == 0
    assert repo.list_user_payouts(PERIOD_START, PERIOD_END) == []


def test_calculator_is_idempotent(repo, seed, calculator):
    seed.scores(PERIOD_START, PERIOD_END, {"a": 30.0, "b": 10.0})
    seed.pools(PERIOD_START, PERIOD_END, pumpfun_pool=4.0, platform_pool=6.0)

    calculator.compute(FEB1, FEB14)
    first = repo.list_user_payouts(PERIOD_START, PERIOD_END)
    calculator.compute(FEB1, FEB14)
    assert repo.list_user_payouts(PERIOD_START, PERIOD_END) == first


def test_recompute_never_touches_claimed_rows(repo, seed, calculator):
    seed.scores(PERIOD_START, PERIOD_END, {"a": 30.0, "b": 10.0})
    seed.pools(PERIOD_START, PERIOD_END, pumpfun_pool=4.0, platform_pool=6.0)
    calculator.compute(FEB1, FEB14)

    with connect(repo.db) as conn:
        conn.execute("UPDATE user_payouts SET payout_status='claimed', payment_tx_hash='sig1' WHERE user_id='a'")
        conn.execute("DELETE FROM user_interaction_scores WHERE user_id='a'")
    seed.pools(PERIOD_START, PERIOD_END, pumpfun_pool=40.0, platform_pool=60.0)
    calculator.compute(FEB1, FEB14)

    by_user = {p.user_id: p for p in repo.list_user_payouts(PERIOD_START, PERIOD_END)}
    assert by_user["a"].payout_status == PAYOUT_CLAIMED
    assert by_user["a"].final_payout_sol == pytest.approx(7.5)
    assert by_user["a"].payment_tx_hash == "sig1"
    assert by_user["b"].final_payout_sol == pytest.approx(100.0)


def test_recompute_removes_stale_pending_rows(repo, seed, calculator):
    seed.scores(PERIOD_START, PERIOD_END, {"a": 30.0, "b": 10.0})
    seed.pools(PERIOD_START, PERIOD_END, pumpfun_pool=4.0, platform_pool=6.0)
    calculator.compute(FEB1, FEB14)

    with connect(repo.db) as conn:
        conn.execute("DELETE FROM user_interaction_scores WHERE user_id='b'")
    calculator.compute(FEB1, FEB14)

    assert [p.user_id for p in repo.list_user_payouts(PERIOD_START, PERIOD_END)] == ["a"]


def test_unknown_period(calculator):
    with pytest.raises(NotFoundError):
        calculator.compute(date(2026, 2, 2), date(2026, 2, 9))


def test_preview_earnings_uses_live_activity(repo, seed, calculator):
    seed.profile("a", username="ann")
    seed.pro("a")
    seed.pro("b")
    seed.pro("idle")
    seed.posts("a", 3)
    seed.posts("b", 1)
    seed.posts("free", 10)
    seed.pools(PERIOD_START, PERIOD_END, pumpfun_pool=4.0, platform_pool=4.0)

    result = calculator.preview_earnings(FEB1, FEB14)

    earnings = result["userEarnings"]
    assert earnings["totalUsers"] == 2
    assert earnings["totalScore"] == 12.0
    assert [(e["userId"], e["username"]) for e in earnings["payouts"]] == [("a", "ann"), ("b", None)]
    assert [e["payoutSOL"] for e in earnings["payouts"]] == pytest.approx([6.0, 2.0])
    assert earnings["verification"]["isBalanced"] is True
    assert result["revenueData"]["totalPool"] == 8.0
    # Nothing is stored
    assert repo.list_user_payouts(PERIOD_START, PERIOD_END) == []
    assert repo.list_interaction_scores(PERIOD_START, PERIOD_END) == []


def test_preview_earnings_needs_a_pool(calculator):
    with pytest.raises(ValidationError):
        calculator.preview_earnings(FEB1, FEB14)
    with pytest.raises(NotFoundError):
        calculator.preview_earnings(date(2026, 2, 2), date(2026, 2, 9))
