from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Callable

from revshare.config import Settings
from revshare.db import DB, init_db
from revshare.history import PayoutHistory
from revshare.notifier import PayoutNotifier
from revshare.orchestrator import PayoutOrchestrator
from revshare.payouts import PayoutCalculator
from revshare.periods import PeriodRegistry
from revshare.pumpfun_api import PumpFunClient
from revshare.referrals import ReferralBonusCalculator
from revshare.repository import Repository
from revshare.revenue import RevenueAggregator
from revshare.scoring import InteractionScorer
from revshare.settlement import ClaimExecutor
from revshare.solana_payer import SolanaCLIPayer
from revshare.solana_rpc import SolanaRPC
from revshare.utils import utc_today


@dataclass(frozen=True)
class Components:
    settings: Settings
    repo: Repository
    registry: PeriodRegistry
    aggregator: RevenueAggregator
    scorer: InteractionScorer
    payouts: PayoutCalculator
    referrals: ReferralBonusCalculator
    notifier: PayoutNotifier
    orchestrator: PayoutOrchestrator
    claims: ClaimExecutor
    history: PayoutHistory
    today: Callable[[], date] = utc_today


def build_components(
    s: Settings,
    fee_client: PumpFunClient | None = None,
    payer: SolanaCLIPayer | None = None,
    rpc: SolanaRPC | None = None,
    today: Callable[[], date] = utc_today,
) -> Components:
    """Wire every stage against one database. Collaborators can be swapped for fakes."""
    db = DB(s.db_path)
    init_db(db)
    repo = Repository(db)

    fee_client = fee_client or PumpFunClient(base_url=s.pumpfun_api_url, timeout_s=s.pumpfun_timeout_s)
    payer = payer or SolanaCLIPayer(
        keypair_path=s.treasury_keypair_path,
        rpc_url=s.rpc_url,
        commitment=s.commitment,
    )
    rpc = rpc or SolanaRPC(url=s.rpc_url)

    registry = PeriodRegistry(repo, creator_wallet=s.pumpfun_creator_wallet)
    aggregator = RevenueAggregator(
        repo,
        fee_client,
        fee_limit=s.pumpfun_fee_limit,
        default_creator_wallet=s.pumpfun_creator_wallet,
    )
    scorer = InteractionScorer(repo)
    payouts = PayoutCalculator(repo)
    referrals = ReferralBonusCalculator(repo)
    notifier = PayoutNotifier(repo)

    return Components(
        settings=s,
        repo=repo,
        registry=registry,
        aggregator=aggregator,
        scorer=scorer,
        payouts=payouts,
        referrals=referrals,
        notifier=notifier,
        orchestrator=PayoutOrchestrator(
            registry=registry,
            aggregator=aggregator,
            scorer=scorer,
            payouts=payouts,
            referrals=referrals,
            notifier=notifier,
        ),
        claims=ClaimExecutor(
            repo=repo,
            payer=payer,
            rpc=rpc,
            commitment=s.commitment,
            confirm_timeout_s=s.confirm_timeout_s,
            treasury_pubkey=s.treasury_pubkey,
            dry_run=s.dry_run,
        ),
        history=PayoutHistory(repo),
        today=today,
    )
