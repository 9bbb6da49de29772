"""Tests for the seven-step payout orchestration and notifications."""
import csv
import sqlite3
from datetime import date
from unittest.mock import patch

import pytest

from conftest import CREATOR_WALLET, PERIOD_END, PERIOD_START, TODAY
from revshare.components import build_components
from revshare.errors import UpstreamError, ValidationError
from revshare.models import (
    FeeBucket,
    NOTIFY_PAYOUT_EARNED,
    NOTIFY_REFERRAL_BONUS,
    REVENUE_CALCULATED,
    REVENUE_FAILED,
    REVENUE_PENDING,
)
from revshare.orchestrator import STEP_NAMES
from revshare.periods import PeriodRegistry
from revshare.referrals import totals_by_referrer
from revshare.reporting import build_orchestration_report, export_payouts_csv, write_report


def _seed_activity(seed):
    seed.profile("alice", username="alice")
    seed.profile("bob", username="bob")
    seed.pro("alice")
    seed.pro("bob")
    seed.posts("alice", 2)
    seed.replies("alice", 3)
    seed.follows("alice", 4)
    seed.posts("bob", 1)
    seed.referral("ref", "alice")


def test_full_run(components, seed, fee_client, repo):
    _seed_activity(seed)
    fee_client.buckets = [FeeBucket("2026-02-03", 10.0), FeeBucket("2026-02-16", 99.0)]
    seed.featured_token(4.0)

    result = components.orchestrator.run(TODAY, PERIOD_START, PERIOD_END)

    assert result.success
    assert [s.name for s in result.steps] == STEP_NAMES
    final = result.final_results
    # pumpfun 10 * 0.4 + platform 4 * 0.5
    assert final["totalPool"] == pytest.approx(6.0)
    assert final["totalUsers"] == 2
    assert final["totalPayout"] == pytest.approx(6.0)
    assert final["isBalanced"] is True
    assert final["processedReferrals"] == 1

    # alice 6 + 3 + 2 = 11, bob 3
    payouts = {p.user_id: p.final_payout_sol for p in repo.list_user_payouts(PERIOD_START, PERIOD_END)}
    assert payouts == pytest.approx({"alice": 6.0 * 11 / 14, "bob": 6.0 * 3 / 14})
    assert final["totalReferralBonus"] == pytest.approx(0.05 * 6.0 * 11 / 14)

    assert repo.get_period(PERIOD_START, PERIOD_END).revenue_status == REVENUE_CALCULATED
    assert fee_client.calls[0][0] == CREATOR_WALLET


def test_notifications(components, seed, fee_client, repo):
    _seed_activity(seed)
    fee_client.buckets = [FeeBucket("2026-02-03", 10.0)]

    components.orchestrator.run(TODAY, PERIOD_START, PERIOD_END)

    alice = repo.list_notifications("alice")
    assert len(alice) == 1
    assert alice[0]["notification_type"] == NOTIFY_PAYOUT_EARNED
    assert alice[0]["type"] == "payout_available"
    message = alice[0]["metadata"]["message"]
    assert message.startswith("You earned ")
    assert "February 2026 - Period 1" in message
    assert "2 posts, 3 comments, 0 likes, 4 follows" in message

    referrer = repo.list_notifications("ref")
    assert len(referrer) == 1
    assert referrer[0]["notification_type"] == NOTIFY_REFERRAL_BONUS
    assert "from alice you referred" in referrer[0]["metadata"]["message"]

    # Re-sending refreshes instead of duplicating
    components.notifier.send(date(2026, 2, 1), date(2026, 2, 14))
    assert len(repo.list_notifications()) == 3


def test_scenario_b_zero_scores(components, seed, fee_client, repo):
    seed.pro("quiet1")
    seed.pro("quiet2")
    fee_client.buckets = [FeeBucket("2026-02-03", 12.5)]

    result = components.orchestrator.run(TODAY, PERIOD_START, PERIOD_END)

    assert result.success
    payouts = repo.list_user_payouts(PERIOD_START, PERIOD_END)
    assert len(payouts) == 2
    assert all(p.final_payout_sol == 0 for p in payouts)
    assert result.final_results["totalPool"] == pytest.approx(5.0)
    assert repo.list_notifications() == []


def test_scenario_d_fee_api_failure_halts(settings, seed, repo, failing_fee_client, payer, rpc):
    c = build_components(settings, fee_client=failing_fee_client, payer=payer, rpc=rpc, today=lambda: TODAY)
    c.registry.generate_year(2026, TODAY)
    _seed_activity(seed)

    result = c.orchestrator.run(TODAY, PERIOD_START, PERIOD_END)

    assert not result.success
    assert [s.success for s in result.steps] == [True, True, False]
    assert result.failed_step.name == "Calculate PumpFun Period Fees"
    assert "503" in result.failed_step.error
    body = result.as_dict()
    assert body["failedStep"] == 3
    assert "finalResults" not in body

    # Step 2 writes stay, later steps never ran
    assert len(repo.list_interaction_scores(PERIOD_START, PERIOD_END)) == 2
    assert repo.list_user_payouts(PERIOD_START, PERIOD_END) == []
    assert repo.get_period(PERIOD_START, PERIOD_END).revenue_status == REVENUE_FAILED


def test_failed_run_can_be_rerun(components, seed, fee_client, repo):
    _seed_activity(seed)
    fee_client.error = UpstreamError("timeout")
    assert not components.orchestrator.run(TODAY, PERIOD_START, PERIOD_END).success

    fee_client.error = None
    fee_client.buckets = [FeeBucket("2026-02-03", 10.0)]
    assert components.orchestrator.run(TODAY, PERIOD_START, PERIOD_END).success
    assert repo.get_period(PERIOD_START, PERIOD_END).revenue_status == REVENUE_CALCULATED


def test_status_write_failure_is_a_failed_step(components, seed, fee_client, repo):
    _seed_activity(seed)
    fee_client.buckets = [FeeBucket("2026-02-03", 10.0)]
    locked = sqlite3.OperationalError("database is locked")
    with patch.object(PeriodRegistry, "mark_status", side_effect=locked):
        result = components.orchestrator.run(TODAY, PERIOD_START, PERIOD_END)

    assert not result.success
    assert result.failed_step.step == 7
    assert "database is locked" in result.failed_step.error
    body = result.as_dict()
    assert body["failedStep"] == 7
    assert "database is locked" in body["statusError"]
    assert repo.get_period(PERIOD_START, PERIOD_END).revenue_status == REVENUE_PENDING


def test_validation_step_failure(components, repo):
    result = components.orchestrator.run(TODAY, "2026-02-15", "2026-02-28")
    assert not result.success
    assert len(result.steps) == 1
    assert result.failed_step.step == 1
    assert repo.get_period("2026-02-15", "2026-02-28").revenue_status == REVENUE_PENDING


def test_malformed_dates_rejected_before_running(components):
    with pytest.raises(ValidationError):
        components.orchestrator.run(TODAY, "2026-02-14", "2026-02-01")
    with pytest.raises(ValidationError):
        components.orchestrator.run(TODAY, "14/02/2026", "2026-02-28")
    with pytest.raises(ValidationError):
        components.orchestrator.run(TODAY, "2026-02-01", None)


def test_time_components_are_stripped(components, fee_client):
    fee_client.buckets = []
    result = components.orchestrator.run(TODAY, "2026-02-01T00:00:00Z", "2026-02-14T23:59:59Z")
    assert result.success
    assert result.period_start == PERIOD_START


def test_resolves_latest_uncalculated_period(components, fee_client, repo):
    fee_client.buckets = []
    first = components.orchestrator.run(TODAY)
    assert first.period_start == PERIOD_START

    second = components.orchestrator.run(TODAY)
    assert second.period_start == "2026-01-15"


def test_run_report(components, fee_client, tmp_path):
    fee_client.buckets = []
    result = components.orchestrator.run(TODAY, PERIOD_START, PERIOD_END)
    path = write_report(str(tmp_path / "public"), result.period_start, build_orchestration_report(result))

    assert path.endswith("latest.json")
    assert (tmp_path / "public" / "history" / f"{PERIOD_START}.json").exists()


def test_export_payouts_csv(components, seed, fee_client, repo, tmp_path):
    _seed_activity(seed)
    fee_client.buckets = [FeeBucket("2026-02-03", 10.0)]
    components.orchestrator.run(TODAY, PERIOD_START, PERIOD_END)

    period = repo.get_period(PERIOD_START, PERIOD_END)
    payouts = repo.list_user_payouts(PERIOD_START, PERIOD_END)
    path = export_payouts_csv(
        period,
        payouts,
        repo.get_usernames([p.user_id for p in payouts]),
        totals_by_referrer(repo.list_referral_payouts(PERIOD_START, PERIOD_END)),
        str(tmp_path / "exports" / "payouts.csv"),
    )

    with open(path, newline="", encoding="utf-8") as f:
        rows = list(csv.DictReader(f))
    assert [r["username"] for r in rows] == ["alice", "bob"]
    assert rows[0]["rank"] == "1"
    assert float(rows[0]["final_payout_sol"]) == pytest.approx(4.0 * 11 / 14)
