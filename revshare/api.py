"""
HTTP surface for the revenue-share pipeline.
Admin stages, the protected orchestration trigger, and the user claim flow.
"""
# Annotations stay evaluated: body models behind @limiter.limit cannot be string references.
import logging
import secrets
from typing import Any, Dict, Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from revshare.components import Components
from revshare.errors import RevshareError, ValidationError
from revshare.periods import period_category, period_timing, period_to_dict
from revshare.reporting import build_orchestration_report, write_report
from revshare.utils import parse_period_window

logger = logging.getLogger(__name__)


class PeriodWindowRequest(BaseModel):
    periodStart: Optional[str] = None
    periodEnd: Optional[str] = None


class PumpFunFeesRequest(PeriodWindowRequest):
    walletAddress: Optional[str] = None


class AllTimeRevenueRequest(BaseModel):
    pumpfunCreatorWallet: Optional[str] = None


class TotalPoolRequest(PeriodWindowRequest):
    pumpfunCreatorWallet: Optional[str] = None


class PeriodsActionRequest(BaseModel):
    action: Optional[str] = None
    year: Optional[int] = None


class ClaimRequest(BaseModel):
    userId: Optional[str] = None
    periodStart: Optional[str] = None
    periodEnd: Optional[str] = None
    notificationType: Optional[str] = None
    walletAddress: Optional[str] = None


def _bearer_token(request: Request) -> str:
    header = request.headers.get("Authorization", "")
    if not header.startswith("Bearer "):
        return ""
    return header[len("Bearer "):].strip()


def create_app(c: Components) -> FastAPI:
    limiter = Limiter(key_func=get_remote_address)
    app = FastAPI(title="Revenue Share API", version="1.0.0")
    app.state.limiter = limiter
    app.state.components = c
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    @app.exception_handler(RevshareError)
    def handle_revshare_error(request: Request, exc: RevshareError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc)
        return JSONResponse({"error": str(exc)}, status_code=exc.status_code)

    @app.exception_handler(RequestValidationError)
    def handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
        details = [f"{'.'.join(str(x) for x in e['loc'])}: {e['msg']}" for e in exc.errors()]
        return JSONResponse({"error": "Invalid request body", "details": details}, status_code=400)

    @app.get("/health")
    def health_check() -> Dict[str, Any]:
        return {"status": "healthy"}

    # ------------------------------------------------------------------ periods

    @app.post("/periods")
    def manage_periods(body: PeriodsActionRequest) -> Dict[str, Any]:
        today = c.today()
        if body.action == "generate_year":
            year = body.year if body.year is not None else today.year
            return {"success": True, **c.registry.generate_year(year, today)}
        if body.action == "update_status_flags":
            updated = c.registry.update_status_flags(today)
            return {"success": True, "periodsUpdated": updated}
        raise ValidationError("Invalid action. Use 'generate_year' or 'update_status_flags'")

    @app.get("/periods")
    def list_periods(year: Optional[int] = None, category: str = "all") -> Dict[str, Any]:
        today = c.today()
        periods = c.registry.list_periods(today, year=year, category=category)
        counts = {"past": 0, "current": 0, "future": 0}
        for p in periods:
            counts[period_category(p, today)] += 1
        return {
            "periods": [period_to_dict(p) for p in periods],
            "summary": {"total": len(periods), **counts},
        }

    @app.get("/periods/current")
    def current_period() -> Dict[str, Any]:
        today = c.today()
        period = c.registry.get_current(today)
        nxt = c.registry.get_next(today)
        return {
            "currentPeriod": period_to_dict(period),
            "timing": period_timing(period, today),
            "nextPeriod": period_to_dict(nxt) if nxt else None,
        }

    # ------------------------------------------------------------------ revenue

    @app.post("/revenue/pumpfun-fees")
    def pumpfun_fees(body: PumpFunFeesRequest) -> Dict[str, Any]:
        start, end = parse_period_window(body.periodStart, body.periodEnd)
        if not body.walletAddress:
            raise ValidationError("Missing required fields: walletAddress, periodStart, periodEnd")
        data = c.aggregator.compute_pumpfun_fees(start, end, c.today(), creator_wallet=body.walletAddress)
        return {"success": True, **data}

    @app.post("/revenue/total-pool-revenue")
    def total_pool_revenue(body: TotalPoolRequest) -> Dict[str, Any]:
        start, end = parse_period_window(body.periodStart, body.periodEnd)
        data = c.aggregator.compute_total_pool(start, end, c.today(), creator_wallet=body.pumpfunCreatorWallet)
        return {"success": True, **data}

    @app.post("/revenue/all-time")
    def all_time_revenue(body: AllTimeRevenueRequest) -> Dict[str, Any]:
        return {"success": True, **c.aggregator.all_time_revenue(body.pumpfunCreatorWallet)}

    @app.post("/revenue/platform-fees")
    def platform_fees(body: PeriodWindowRequest) -> Dict[str, Any]:
        start, end = parse_period_window(body.periodStart, body.periodEnd)
        return {"success": True, **c.aggregator.compute_platform_fees(start, end)}

    @app.post("/revenue/interaction-score")
    def interaction_score(body: PeriodWindowRequest) -> Dict[str, Any]:
        start, end = parse_period_window(body.periodStart, body.periodEnd)
        return {"success": True, **c.scorer.compute(start, end)}

    @app.post("/revenue/user-payouts")
    def user_payouts(body: PeriodWindowRequest) -> Dict[str, Any]:
        start, end = parse_period_window(body.periodStart, body.periodEnd)
        return {"success": True, **c.payouts.compute(start, end)}

    @app.post("/revenue/user-earnings")
    def user_earnings(body: PeriodWindowRequest) -> Dict[str, Any]:
        start, end = parse_period_window(body.periodStart, body.periodEnd)
        return {"success": True, **c.payouts.preview_earnings(start, end)}

    @app.post("/revenue/referral-payouts")
    def referral_payouts(body: PeriodWindowRequest) -> Dict[str, Any]:
        start, end = parse_period_window(body.periodStart, body.periodEnd)
        return {"success": True, **c.referrals.compute(start, end)}

    @app.post("/revenue/payout-notifications")
    def payout_notifications(body: PeriodWindowRequest) -> Dict[str, Any]:
        start, end = parse_period_window(body.periodStart, body.periodEnd)
        return {"success": True, **c.notifier.send(start, end)}

    @app.post("/revenue/run-orchestration")
    def run_orchestration(request: Request, body: Optional[PeriodWindowRequest] = None) -> JSONResponse:
        key = c.settings.api_secret_key
        token = _bearer_token(request)
        if not key or not token or not secrets.compare_digest(token.encode(), key.encode()):
            return JSONResponse({"error": "Unauthorized"}, status_code=401)

        body = body or PeriodWindowRequest()
        result = c.orchestrator.run(c.today(), body.periodStart, body.periodEnd)
        if result.period_start:
            write_report(c.settings.public_dir, result.period_start, build_orchestration_report(result))

        failed = result.failed_step
        if failed is None:
            status = 200
        elif failed.step == 1:
            status = 400
        else:
            status = 500
        return JSONResponse(result.as_dict(), status_code=status)

    # ------------------------------------------------------------------ payouts

    @app.post("/payouts/claim")
    @limiter.limit(c.settings.claim_rate_limit)
    def claim_payout(request: Request, body: ClaimRequest) -> Dict[str, Any]:
        result = c.claims.claim(
            user_id=body.userId,
            period_start=body.periodStart,
            period_end=body.periodEnd,
            notification_type=body.notificationType,
            wallet_address=body.walletAddress,
        )
        return {"success": True, **result}

    @app.get("/payouts/current-score")
    def current_score(userId: str = "") -> Dict[str, Any]:
        if not userId:
            raise ValidationError("User ID is required")
        period = c.registry.get_current(c.today())
        start, end = parse_period_window(period.period_start, period.period_end)
        return {"success": True, **c.scorer.current_score(userId, start, end)}

    @app.get("/payouts/history")
    def payout_history(userId: str = "", limit: int = 20, offset: int = 0) -> Dict[str, Any]:
        return {"success": True, **c.history.history(userId, limit=limit, offset=offset)}

    return app


def run_api(c: Components) -> None:
    """Run the API server."""
    uvicorn.run(create_app(c), host=c.settings.host, port=c.settings.port, log_level=c.settings.log_level.lower())
