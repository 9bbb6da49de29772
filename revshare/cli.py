from __future__ import annotations

import argparse
import json
import os
from datetime import datetime, timezone
from typing import Optional

from revshare.components import Components, build_components
from revshare.config import load_settings
from revshare.db import DB, init_db
from revshare.errors import NotFoundError, RevshareError
from revshare.models import Period
from revshare.referrals import totals_by_referrer
from revshare.reporting import build_orchestration_report, export_payouts_csv, write_report
from revshare.utils import configure_logging, parse_period_window


def _components() -> Components:
    s = load_settings()
    configure_logging(s.log_level)
    return build_components(s)


def _select_period(c: Components, period_start: Optional[str], period_end: Optional[str]) -> Period:
    """Explicit window, else the most recently ended period."""
    today = c.today()
    if period_start or period_end:
        start, end = parse_period_window(period_start, period_end)
        return c.registry.get_period(start, end)
    period = c.repo.get_latest_ended(today.isoformat())
    if period is None:
        raise NotFoundError("No ended period found. Pass --period-start and --period-end.")
    return period


def cmd_init_db() -> None:
    s = load_settings()
    init_db(DB(s.db_path))
    print(f"OK: initialized DB at {s.db_path}")


def cmd_generate_periods(year: Optional[int]) -> None:
    c = _components()
    today = c.today()
    result = c.registry.generate_year(year or today.year, today)
    print(
        f"OK: periods for {result['year']}: {result['periodsCreated']} created, "
        f"{result['periodsExisting']} already existed"
    )


def cmd_update_period_flags() -> None:
    c = _components()
    updated = c.registry.update_status_flags(c.today())
    print(f"OK: updated status flags on {updated} periods")


def cmd_current_period() -> None:
    c = _components()
    p = c.registry.get_current(c.today())
    print(f"Current period: {p.period_name} ({p.period_start} to {p.period_end})")
    print(f"  - Revenue status: {p.revenue_status}")
    print(f"  - PumpFun pool:   {p.pumpfun_pool_sol:.9f} SOL")
    print(f"  - Platform pool:  {p.platform_pool_sol:.9f} SOL")
    print(f"  - Total pool:     {p.total_pool_sol:.9f} SOL")


def cmd_run_orchestration(period_start: Optional[str], period_end: Optional[str]) -> None:
    c = _components()
    result = c.orchestrator.run(c.today(), period_start, period_end)

    for step in result.steps:
        mark = "OK" if step.success else "FAILED"
        line = f"[{mark}] Step {step.step}: {step.name}"
        if step.error:
            line += f" - {step.error}"
        print(line)

    if result.period_start:
        path = write_report(c.settings.public_dir, result.period_start, build_orchestration_report(result))
        print(f"Report written to {path}")

    if not result.success:
        raise SystemExit(1)

    print(f"\nOK: orchestration complete for {result.period_name}")
    print(json.dumps(result.final_results, indent=2, sort_keys=True))


def cmd_preview_payouts(period_start: Optional[str], period_end: Optional[str]) -> None:
    """Show the computed payouts for a period (no recomputation)."""
    c = _components()
    period = _select_period(c, period_start, period_end)
    payouts = c.repo.list_user_payouts(period.period_start, period.period_end)

    if not payouts:
        print(f"No payouts found for {period.period_name}")
        print("Run 'run-orchestration' first")
        return

    usernames = c.repo.get_usernames([p.user_id for p in payouts])

    print(f"\nPayouts for: {period.period_name} ({period.period_start} to {period.period_end})")
    print("=" * 100)
    print(f"{'Rank':<6} {'User':<36} {'PumpFun':>14} {'Platform':>14} {'Final (SOL)':>15} {'Status':<10}")
    print("-" * 100)

    total = 0.0
    for rank, p in enumerate(payouts, start=1):
        name = usernames.get(p.user_id) or p.user_id
        name = name[:33] + "..." if len(name) > 36 else name
        total += p.final_payout_sol
        print(
            f"{rank:<6} {name:<36} {p.pumpfun_share_sol:>14.9f} {p.platform_share_sol:>14.9f} "
            f"{p.final_payout_sol:>15.9f} {p.payout_status:<10}"
        )

    print("-" * 100)
    print(f"{'TOTAL':<6} {'':<36} {'':>14} {'':>14} {total:>15.9f}")
    print(f"{'POOL':<6} {'':<36} {'':>14} {'':>14} {period.total_pool_sol:>15.9f}")
    print("=" * 100)


def cmd_export_payouts(period_start: Optional[str], period_end: Optional[str]) -> None:
    """Export the computed payouts for a period to CSV."""
    c = _components()
    period = _select_period(c, period_start, period_end)
    payouts = c.repo.list_user_payouts(period.period_start, period.period_end)

    if not payouts:
        print(f"No payouts found for {period.period_name}")
        print("Run 'run-orchestration' first")
        return

    referral_totals = totals_by_referrer(c.repo.list_referral_payouts(period.period_start, period.period_end))
    usernames = c.repo.get_usernames([p.user_id for p in payouts])

    timestamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
    csv_path = os.path.join(c.settings.public_dir, "exports", f"payouts_{period.id}_{timestamp}.csv")
    export_payouts_csv(period, payouts, usernames, referral_totals, csv_path)
    print(f"OK: Exported {len(payouts)} payouts to {csv_path}")


def cmd_claim(
    user_id: str,
    period_start: str,
    period_end: str,
    notification_type: str,
    wallet: Optional[str],
) -> None:
    c = _components()
    result = c.claims.claim(
        user_id=user_id,
        period_start=period_start,
        period_end=period_end,
        notification_type=notification_type,
        wallet_address=wallet,
    )
    print(f"OK: sent {result['amount']:.9f} SOL to {result['walletAddress']} - sig: {result['transactionHash']}")


def cmd_current_score(user_id: str) -> None:
    c = _components()
    period = c.registry.get_current(c.today())
    start, end = parse_period_window(period.period_start, period.period_end)
    result = c.scorer.current_score(user_id, start, end)
    print(f"Current period: {period.period_name} ({period.period_start} to {period.period_end})")
    if not result["isProEligible"]:
        print(f"  {result['message']}")
        return
    for name, points in result["score"]["breakdown"].items():
        print(f"  - {name:<9} {points:>8.2f}")
    print(f"  Score: {result['score']['current']:.2f}")


def cmd_all_time_revenue(wallet: Optional[str]) -> None:
    c = _components()
    result = c.aggregator.all_time_revenue(wallet)
    print(f"OK: {result['message']}")


def cmd_serve() -> None:
    from revshare.api import run_api

    c = _components()
    print(f"Serving revenue share API at http://{c.settings.host}:{c.settings.port}")
    run_api(c)


def main() -> None:
    parser = argparse.ArgumentParser(prog="revshare")
    sub = parser.add_subparsers(dest="cmd", required=True)

    sub.add_parser("init-db")

    p_generate = sub.add_parser("generate-periods", help="Create the 24 bi-weekly periods of a year")
    p_generate.add_argument("--year", type=int, help="Year (default: current year)")

    sub.add_parser("update-period-flags", help="Recompute is_current / is_future for every period")
    sub.add_parser("current-period", help="Show the current period and its pools")

    for name, help_text in (
        ("run-orchestration", "Run all payout steps (defaults to the latest uncalculated ended period)"),
        ("preview-payouts", "Preview computed payouts (defaults to the latest ended period)"),
        ("export-payouts", "Export computed payouts to CSV (defaults to the latest ended period)"),
    ):
        p = sub.add_parser(name, help=help_text)
        p.add_argument("--period-start", type=str, help="Period start (YYYY-MM-DD)")
        p.add_argument("--period-end", type=str, help="Period end (YYYY-MM-DD)")

    p_claim = sub.add_parser("claim", help="Settle one pending payout as a SOL transfer")
    p_claim.add_argument("--user-id", type=str, required=True)
    p_claim.add_argument("--period-start", type=str, required=True)
    p_claim.add_argument("--period-end", type=str, required=True)
    p_claim.add_argument(
        "--type",
        type=str,
        default="payout_earned",
        choices=["payout_earned", "referral_bonus"],
        help="Which payout to claim (default: payout_earned)",
    )
    p_claim.add_argument("--wallet", type=str, help="Override the payout wallet; saved once the claim settles")

    p_score = sub.add_parser("current-score", help="Show a user's running score in the current period")
    p_score.add_argument("--user-id", type=str, required=True)

    p_all_time = sub.add_parser("all-time-revenue", help="Sum lifetime creator fees and platform revenue")
    p_all_time.add_argument("--wallet", type=str, help="Creator wallet (default: REVSHARE_PUMPFUN_CREATOR_WALLET)")

    sub.add_parser("serve")

    args = parser.parse_args()

    try:
        if args.cmd == "init-db":
            cmd_init_db()
            return
        if args.cmd == "generate-periods":
            cmd_generate_periods(year=args.year)
            return
        if args.cmd == "update-period-flags":
            cmd_update_period_flags()
            return
        if args.cmd == "current-period":
            cmd_current_period()
            return
        if args.cmd == "run-orchestration":
            cmd_run_orchestration(args.period_start, args.period_end)
            return
        if args.cmd == "preview-payouts":
            cmd_preview_payouts(args.period_start, args.period_end)
            return
        if args.cmd == "export-payouts":
            cmd_export_payouts(args.period_start, args.period_end)
            return
        if args.cmd == "claim":
            cmd_claim(args.user_id, args.period_start, args.period_end, args.type, args.wallet)
            return
        if args.cmd == "current-score":
            cmd_current_score(args.user_id)
            return
        if args.cmd == "all-time-revenue":
            cmd_all_time_revenue(args.wallet)
            return
        if args.cmd == "serve":
            cmd_serve()
            return
    except RevshareError as e:
        raise SystemExit(f"ERROR: {e}") from e

    raise SystemExit("Unknown command")
