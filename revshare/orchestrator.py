from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Callable, Dict, List, Optional

from revshare.models import REVENUE_CALCULATED, REVENUE_FAILED
from revshare.notifier import PayoutNotifier
from revshare.payouts import PayoutCalculator
from revshare.periods import PeriodRegistry
from revshare.referrals import ReferralBonusCalculator
from revshare.revenue import RevenueAggregator
from revshare.scoring import InteractionScorer
from revshare.utils import parse_period_window

logger = logging.getLogger(__name__)

STEP_NAMES = [
    "Validate Period",
    "Calculate Interaction Scores",
    "Calculate PumpFun Period Fees",
    "Calculate Platform Period Fees",
    "Calculate User Payouts",
    "Calculate Referral Payouts",
    "Send Payout Notifications",
]


@dataclass(frozen=True)
class StepResult:
    step: int
    name: str
    success: bool
    data: Optional[Dict[str, Any]] = None
    error: Optional[str] = None

    def as_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"step": self.step, "name": self.name, "success": self.success}
        if self.data is not None:
            out["data"] = self.data
        if self.error is not None:
            out["error"] = self.error
        return out


@dataclass
class OrchestrationResult:
    period_start: Optional[str] = None
    period_end: Optional[str] = None
    period_name: Optional[str] = None
    steps: List[StepResult] = field(default_factory=list)
    final_results: Optional[Dict[str, Any]] = None
    status_error: Optional[str] = None

    @property
    def success(self) -> bool:
        return bool(self.steps) and all(s.success for s in self.steps) and len(self.steps) == len(STEP_NAMES)

    @property
    def failed_step(self) -> Optional[StepResult]:
        for s in self.steps:
            if not s.success:
                return s
        return None

    def as_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "success": self.success,
            "period": {"start": self.period_start, "end": self.period_end, "name": self.period_name},
            "steps": [s.as_dict() for s in self.steps],
        }
        failed = self.failed_step
        if failed is not None:
            out["failedStep"] = failed.step
            out["error"] = f"Step {failed.step} ({failed.name}) failed: {failed.error}"
        if self.final_results is not None:
            out["finalResults"] = self.final_results
        if self.status_error is not None:
            out["statusError"] = self.status_error
        return out


@dataclass(frozen=True)
class PayoutOrchestrator:
    """
    Runs the seven payout stages for one period, in order, stopping at the
    first failure. Stages are idempotent upserts, so recovery is a re-run.
    """

    registry: PeriodRegistry
    aggregator: RevenueAggregator
    scorer: InteractionScorer
    payouts: PayoutCalculator
    referrals: ReferralBonusCalculator
    notifier: PayoutNotifier

    def run(
        self,
        today: date,
        period_start: Optional[str] = None,
        period_end: Optional[str] = None,
    ) -> OrchestrationResult:
        # Malformed dates are rejected before anything is read
        explicit = None
        if period_start or period_end:
            explicit = parse_period_window(period_start, period_end)

        result = OrchestrationResult()

        def validate() -> Dict[str, Any]:
            if explicit is not None:
                period = self.registry.validate_processable(explicit[0], explicit[1], today)
            else:
                period = self.registry.resolve_processable(today)
            result.period_start = period.period_start
            result.period_end = period.period_end
            result.period_name = period.period_name
            return {
                "periodId": period.id,
                "periodName": period.period_name,
                "currentRevenueStatus": period.revenue_status,
            }

        if not self._run_step(result, 1, validate):
            return result

        start = date.fromisoformat(result.period_start or "")
        end = date.fromisoformat(result.period_end or "")

        stages: List[Callable[[], Dict[str, Any]]] = [
            lambda: self.scorer.compute(start, end),
            lambda: self.aggregator.compute_pumpfun_fees(start, end, today),
            lambda: self.aggregator.compute_platform_fees(start, end),
            lambda: self.payouts.compute(start, end),
            lambda: self.referrals.compute(start, end),
            lambda: self._notify_and_mark(start, end),
        ]
        for number, stage in enumerate(stages, start=2):
            if not self._run_step(result, number, stage):
                self._mark_failed(result)
                return result

        result.final_results = self._final_results(result)
        logger.info("orchestration complete for %s", result.period_name)
        return result

    def _notify_and_mark(self, start: date, end: date) -> Dict[str, Any]:
        data = self.notifier.send(start, end)
        self.registry.mark_status(start.isoformat(), end.isoformat(), REVENUE_CALCULATED)
        return data

    def _mark_failed(self, result: OrchestrationResult) -> None:
        try:
            self.registry.mark_status(result.period_start or "", result.period_end or "", REVENUE_FAILED)
        except sqlite3.Error as e:
            logger.exception("could not mark %s as failed", result.period_name)
            result.status_error = f"Could not record revenue status: {e}"

    @staticmethod
    def _run_step(result: OrchestrationResult, number: int, fn: Callable[[], Dict[str, Any]]) -> bool:
        name = STEP_NAMES[number - 1]
        logger.info("step %s: %s", number, name)
        try:
            data = fn()
        except Exception as e:
            logger.exception("step %s (%s) failed", number, name)
            result.steps.append(StepResult(step=number, name=name, success=False, error=str(e)))
            return False
        result.steps.append(StepResult(step=number, name=name, success=True, data=data))
        return True

    @staticmethod
    def _final_results(result: OrchestrationResult) -> Dict[str, Any]:
        by_step = {s.step: s.data or {} for s in result.steps}
        payouts = by_step.get(5, {})
        referrals = by_step.get(6, {}).get("summary", {})
        summary = payouts.get("payoutSummary", {})
        return {
            "totalPool": payouts.get("revenueData", {}).get("totalPool", 0.0),
            "totalUsers": summary.get("totalUsers", 0),
            "totalPayout": summary.get("totalCalculatedPayout", 0.0),
            "totalReferralBonus": referrals.get("totalReferralBonus", 0.0),
            "processedReferrals": referrals.get("processedReferrals", 0),
            "isBalanced": summary.get("verification", {}).get("isBalanced", False),
        }

