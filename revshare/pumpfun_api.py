from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List

import requests

from revshare.config import PUMPFUN_API_URL
from revshare.errors import UpstreamError
from revshare.models import FeeBucket

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PumpFunClient:
    """Read-only client for the pump.fun creator-fee API."""

    base_url: str = PUMPFUN_API_URL
    timeout_s: int = 15

    def _get(self, url: str, params: Dict[str, Any]) -> Any:
        """GET with a bounded timeout. Any failure becomes UpstreamError; nothing is retried."""
        try:
            resp = requests.get(url, params=params, timeout=self.timeout_s)
        except requests.exceptions.RequestException as e:
            raise UpstreamError(f"Creator-fee API request failed: {e}") from e

        if resp.status_code != 200:
            logger.error(
                "creator-fee API error: status=%s url=%s body=%s",
                resp.status_code,
                resp.url,
                resp.text[:500],
            )
            raise UpstreamError(f"Creator-fee API returned HTTP {resp.status_code}")

        try:
            return resp.json()
        except ValueError as e:
            raise UpstreamError(
                f"Creator-fee API returned invalid JSON (status {resp.status_code}): {resp.text[:200]}"
            ) from e

    def get_daily_fees(self, creator_wallet: str, limit: int = 30) -> List[FeeBucket]:
        """
        Daily creator-fee buckets for a wallet, newest first as returned by the API.

        Args:
            creator_wallet: Creator wallet the token fees accrue to
            limit: Number of daily buckets to request

        Returns:
            List of FeeBucket with creator fees in SOL
        """
        url = f"{self.base_url}/v1/creators/{creator_wallet}/fees"
        data = self._get(url, {"interval": "24h", "limit": limit})

        if not isinstance(data, list):
            raise UpstreamError(f"Creator-fee API returned unexpected payload: {type(data).__name__}")

        buckets: List[FeeBucket] = []
        for item in data:
            try:
                buckets.append(
                    FeeBucket(
                        bucket=str(item["bucket"]),
                        creator_fee_sol=float(item["creatorFeeSOL"]),
                        num_trades=int(item.get("numTrades", 0) or 0),
                    )
                )
            except (KeyError, ValueError, TypeError) as e:
                raise UpstreamError(f"Creator-fee API returned a malformed bucket: {item!r}") from e

        logger.info("fetched %s fee buckets for %s", len(buckets), creator_wallet)
        return buckets
