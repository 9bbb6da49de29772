from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, Iterable, Optional

from revshare.errors import NotFoundError, ValidationError
from revshare.models import FeeBucket, Period
from revshare.pumpfun_api import PumpFunClient
from revshare.repository import Repository
from revshare.utils import day_of, window_bounds
from revshare.validation import is_valid_solana_pubkey

logger = logging.getLogger(__name__)

# Share of each revenue source that goes into the distributable pool (IMMUTABLE)
PUMPFUN_POOL_RATE = 0.4
PLATFORM_POOL_RATE = 0.5

# Daily buckets requested for all-time totals
ALL_TIME_FEE_LIMIT = 1000


def sum_fees_in_window(buckets: Iterable[FeeBucket], period_start: date, period_end: date) -> float:
    """Sum creator fees for buckets whose day falls within the inclusive window."""
    total = 0.0
    for b in buckets:
        day = day_of(b.bucket)
        if day is None:
            logger.warning("skipping fee bucket with unparseable date: %r", b.bucket)
            continue
        if period_start <= day <= period_end:
            total += b.creator_fee_sol
    return total


def pumpfun_pool_for(fees_sol: float) -> float:
    return fees_sol * PUMPFUN_POOL_RATE


def platform_pool_for(revenue_sol: float) -> float:
    return revenue_sol * PLATFORM_POOL_RATE


def fee_limit_for(period_start: date, today: date, configured_limit: int) -> int:
    """Enough daily buckets to reach back to the first day of the period."""
    return max(configured_limit, (today - period_start).days + 1)


@dataclass(frozen=True)
class RevenueAggregator:
    repo: Repository
    fee_client: PumpFunClient
    fee_limit: int = 30
    default_creator_wallet: str = ""

    def _period(self, period_start: date, period_end: date) -> Period:
        period = self.repo.get_period(period_start.isoformat(), period_end.isoformat())
        if period is None:
            raise NotFoundError(
                f"Period not found: {period_start.isoformat()} to {period_end.isoformat()}"
            )
        return period

    def compute_pumpfun_fees(
        self,
        period_start: date,
        period_end: date,
        today: date,
        creator_wallet: Optional[str] = None,
    ) -> Dict[str, Any]:
        if creator_wallet is not None and not is_valid_solana_pubkey(creator_wallet):
            raise ValidationError("Invalid wallet address format")

        period = self._period(period_start, period_end)
        wallet = (creator_wallet or period.pumpfun_creator_wallet or self.default_creator_wallet).strip()
        if not wallet:
            raise ValidationError("Missing required field: walletAddress")
        if not is_valid_solana_pubkey(wallet):
            raise ValidationError("Invalid wallet address format")

        limit = fee_limit_for(period_start, today, self.fee_limit)
        buckets = self.fee_client.get_daily_fees(wallet, limit=limit)
        fees_sol = sum_fees_in_window(buckets, period_start, period_end)
        pool_sol = pumpfun_pool_for(fees_sol)

        updated = self.repo.update_pumpfun_fees(
            period.period_start, period.period_end, wallet, fees_sol, pool_sol
        )
        if updated is None:
            raise NotFoundError(f"Period disappeared during update: {period.id}")
        logger.info(
            "pumpfun fees for %s: %.9f SOL -> pool %.9f SOL (total pool %.9f)",
            period.period_name,
            fees_sol,
            pool_sol,
            updated.total_pool_sol,
        )
        return {
            "period": {"start": period.period_start, "end": period.period_end, "name": period.period_name},
            "walletAddress": wallet,
            "pumpfunFees": fees_sol,
            "pumpfunPool": pool_sol,
            "platformPool": updated.platform_pool_sol,
            "totalPool": updated.total_pool_sol,
            "bucketsFetched": len(buckets),
        }

    def compute_platform_fees(self, period_start: date, period_end: date) -> Dict[str, Any]:
        period = self._period(period_start, period_end)
        lower, upper = window_bounds(period_start, period_end)

        featured_revenue, featured_count = self.repo.featured_token_revenue(lower, upper)
        pro_revenue, pro_count = self.repo.pro_subscription_revenue(lower, upper)
        revenue_sol = featured_revenue + pro_revenue
        pool_sol = platform_pool_for(revenue_sol)

        updated = self.repo.update_platform_revenue(period.period_start, period.period_end, revenue_sol, pool_sol)
        if updated is None:
            raise NotFoundError(f"Period disappeared during update: {period.id}")
        logger.info(
            "platform revenue for %s: %.9f SOL (featured=%s, pro=%s) -> pool %.9f SOL",
            period.period_name,
            revenue_sol,
            featured_count,
            pro_count,
            pool_sol,
        )
        return {
            "period": {"start": period.period_start, "end": period.period_end, "name": period.period_name},
            "featuredTokens": {"revenue": featured_revenue, "count": featured_count},
            "proSubscriptions": {"revenue": pro_revenue, "count": pro_count},
            "total": revenue_sol,
            "platformPool": pool_sol,
            "pumpfunPool": updated.pumpfun_pool_sol,
            "totalPool": updated.total_pool_sol,
        }

    def compute_total_pool(
        self,
        period_start: date,
        period_end: date,
        today: date,
        creator_wallet: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Both pool stages for one period, reported together."""
        pumpfun = self.compute_pumpfun_fees(period_start, period_end, today, creator_wallet)
        platform = self.compute_platform_fees(period_start, period_end)
        total_pool = platform["totalPool"]
        return {
            "totalPoolRevenue": {
                "period": pumpfun["period"],
                "pumpfun": {"fees": pumpfun["pumpfunFees"], "pool": pumpfun["pumpfunPool"]},
                "platform": {
                    "featuredTokens": platform["featuredTokens"],
                    "proSubscriptions": platform["proSubscriptions"],
                    "total": platform["total"],
                    "pool": platform["platformPool"],
                },
                "totalPool": total_pool,
            },
            "message": (
                f"Successfully calculated total pool revenue for period: {total_pool:.4f} SOL "
                f"(PumpFun Pool: {pumpfun['pumpfunPool']:.4f}, Platform Pool: {platform['platformPool']:.4f})"
            ),
        }

    def all_time_revenue(self, creator_wallet: Optional[str] = None) -> Dict[str, Any]:
        """Lifetime creator fees and platform revenue. Nothing is written."""
        wallet = (creator_wallet or self.default_creator_wallet).strip()
        if not wallet:
            raise ValidationError("Missing required field: pumpfunCreatorWallet")
        if not is_valid_solana_pubkey(wallet):
            raise ValidationError("Invalid wallet address format")

        buckets = self.fee_client.get_daily_fees(wallet, limit=ALL_TIME_FEE_LIMIT)
        pumpfun_total = sum(b.creator_fee_sol for b in buckets)
        featured_revenue, featured_count = self.repo.featured_token_revenue()
        pro_revenue, pro_count = self.repo.pro_subscription_revenue()
        platform_total = featured_revenue + pro_revenue
        total = pumpfun_total + platform_total
        logger.info("all-time revenue for %s: %.9f SOL over %s fee buckets", wallet, total, len(buckets))

        return {
            "allTimeRevenue": {
                "pumpfun": {
                    "totalFees": pumpfun_total,
                    "data": [{"bucket": b.bucket, "creatorFeeSOL": b.creator_fee_sol} for b in buckets],
                },
                "platform": {
                    "featuredTokens": {"revenue": featured_revenue, "count": featured_count},
                    "proSubscriptions": {"revenue": pro_revenue, "count": pro_count},
                    "total": platform_total,
                },
                "total": total,
            },
            "message": (
                f"Successfully calculated all-time revenue: {total:.4f} SOL "
                f"(PumpFun: {pumpfun_total:.4f}, Platform: {platform_total:.4f})"
            ),
        }
