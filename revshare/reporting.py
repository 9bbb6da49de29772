from __future__ import annotations

import csv
import json
import os
from typing import Any, Dict, List, Sequence

from revshare.models import Period, UserPayout
from revshare.orchestrator import OrchestrationResult
from revshare.utils import utc_now_iso


def ensure_dir(path: str) -> None:
    os.makedirs(path, exist_ok=True)


def write_report(public_dir: str, period_id: str, report: Dict[str, Any]) -> str:
    ensure_dir(public_dir)
    ensure_dir(os.path.join(public_dir, "history"))

    latest_path = os.path.join(public_dir, "latest.json")
    hist_path = os.path.join(public_dir, "history", f"{period_id}.json")

    payload = json.dumps(report, indent=2, sort_keys=True)
    with open(latest_path, "w", encoding="utf-8") as f:
        f.write(payload)
    with open(hist_path, "w", encoding="utf-8") as f:
        f.write(payload)

    return latest_path


def build_orchestration_report(result: OrchestrationResult) -> Dict[str, Any]:
    report: Dict[str, Any] = {
        "generated_at_utc": utc_now_iso(),
        "period_start": result.period_start,
        "period_end": result.period_end,
        "period_name": result.period_name,
        "success": result.success,
        "steps": [
            {"step": s.step, "name": s.name, "success": s.success, "error": s.error}
            for s in result.steps
        ],
    }

    failed = result.failed_step
    if failed is not None:
        report["failed_step"] = failed.step
        report["error"] = failed.error

    if result.final_results is not None:
        report["final_results"] = result.final_results

    if result.status_error is not None:
        report["status_error"] = result.status_error

    return report


def export_payouts_csv(
    period: Period,
    payouts: Sequence[UserPayout],
    usernames: Dict[str, str],
    referral_totals: Dict[str, float],
    output_path: str,
) -> str:
    """
    Export a period's computed payouts to CSV.

    Args:
        period: Period the payouts belong to
        payouts: User payouts, highest first
        usernames: user_id -> username for display
        referral_totals: referrer_id -> 5% referral bonus earned this period
        output_path: Full path to output CSV file

    Returns:
        Path to created CSV file
    """
    ensure_dir(os.path.dirname(output_path) or ".")

    rows: List[List[Any]] = []
    for rank, p in enumerate(payouts, start=1):
        share = p.final_payout_sol / period.total_pool_sol if period.total_pool_sol > 0 else 0.0
        rows.append([
            rank,
            p.user_id,
            usernames.get(p.user_id, ""),
            f"{share:.6f}",
            f"{p.pumpfun_share_sol:.9f}",
            f"{p.platform_share_sol:.9f}",
            f"{p.final_payout_sol:.9f}",
            f"{referral_totals.get(p.user_id, 0.0):.9f}",
            p.payout_status,
            p.payment_tx_hash or "",
        ])

    with open(output_path, "w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow([
            "rank",
            "user_id",
            "username",
            "share",
            "pumpfun_share_sol",
            "platform_share_sol",
            "final_payout_sol",
            "referral_bonus_earned_sol",
            "payout_status",
            "payment_tx_hash",
        ])
        writer.writerows(rows)

    return output_path
