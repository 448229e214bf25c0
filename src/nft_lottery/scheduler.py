from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional

from .config import ChainCredentials, Settings
from .deployments import ChainDeployment, load_deployment
from .errors import (
    CapExceeded,
    ConfigurationMissing,
    ExecutionFailure,
    PurchaseWindowClosed,
    ReadFailure,
)
from .executor import PurchaseExecutor, PurchaseLedger, wall_clock
from .ledger import LotteryLedger
from .oracle import RoundOracle
from .rounds import should_attempt_purchase
from .tasks import QueueFileTaskSource, StaticTaskSource, TaskSource


class ChainOutcome(str, Enum):
    SKIPPED_CONFIG = "skipped_config"
    READ_FAILED = "read_failed"
    WINDOW_CLOSED = "window_closed"
    NO_TASK = "no_task"
    INVALID_TASK = "invalid_task"
    REJECTED = "rejected"
    SUBMITTED = "submitted"
    FAILED = "failed"
    OUT_OF_TIME = "out_of_time"


@dataclass(frozen=True)
class ChainResult:
    chain: str
    outcome: ChainOutcome
    chain_id: Optional[int] = None
    round_id: Optional[int] = None
    tx_hash: Optional[str] = None
    detail: str = ""


LedgerFactory = Callable[[ChainDeployment, ChainCredentials], PurchaseLedger]
DeploymentLoader = Callable[[str], ChainDeployment]


def task_source_from_settings(settings: Settings) -> TaskSource:
    if settings.task_queue_file:
        return QueueFileTaskSource(settings.task_queue_file)
    return StaticTaskSource(settings.next_task)


class PurchaseScheduler:
    """
    One tick = one pass over every configured chain, in order. Each chain
    gets at most one purchase attempt per tick and its failures stay local.
    Nothing is remembered between ticks.
    """

    def __init__(
        self,
        settings: Settings,
        task_source: Optional[TaskSource] = None,
        ledger_factory: Optional[LedgerFactory] = None,
        deployment_loader: Optional[DeploymentLoader] = None,
        clock: Callable[[], int] = wall_clock,
        monotonic: Callable[[], float] = time.monotonic,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.settings = settings
        self.task_source = task_source or task_source_from_settings(settings)
        self.ledger_factory = ledger_factory or self._connect
        self.deployment_loader = deployment_loader or self._load_deployment
        self.clock = clock
        self.monotonic = monotonic
        self.log = logger or logging.getLogger("scheduler")
        self.executor = PurchaseExecutor(clock=clock)

    def _load_deployment(self, name: str) -> ChainDeployment:
        return load_deployment(self.settings.deployments_dir, name)

    def _connect(self, deployment: ChainDeployment, creds: ChainCredentials) -> LotteryLedger:
        return LotteryLedger.connect(
            deployment,
            creds.rpc_url,
            creds.private_key,
            timeout_s=self.settings.rpc_timeout_s,
            gas_limit_multiplier=self.settings.gas_limit_multiplier,
            receipt_timeout_s=self.settings.receipt_timeout_s,
        )

    def tick(self) -> List[ChainResult]:
        started = self.monotonic()
        budget = self.settings.tick_budget_s
        results: List[ChainResult] = []

        for name in self.settings.chains:
            if budget > 0 and self.monotonic() - started >= budget:
                self.log.warning("Tick budget of %.1fs spent; %s left for next tick", budget, name)
                results.append(ChainResult(name, ChainOutcome.OUT_OF_TIME))
                continue
            try:
                result = self.process_chain(name)
            except Exception as e:
                self.log.exception("[%s] unexpected failure", name)
                result = ChainResult(name, ChainOutcome.FAILED, detail=f"{type(e).__name__}: {e}")
            results.append(result)

        self.log.debug(
            "Tick done in %.2fs: %s",
            self.monotonic() - started,
            ", ".join(f"{r.chain}={r.outcome.value}" for r in results) or "no chains",
        )
        return results

    def process_chain(self, name: str) -> ChainResult:
        try:
            deployment = self.deployment_loader(name)
            creds = self.settings.credentials_for(deployment.chain_id)
            ledger = self.ledger_factory(deployment, creds)
        except ConfigurationMissing as e:
            self.log.info("[%s] skipped: %s", name, e)
            return ChainResult(name, ChainOutcome.SKIPPED_CONFIG, detail=str(e))

        try:
            return self._attempt(name, deployment, ledger)
        finally:
            close = getattr(ledger, "close", None)
            if close is not None:
                close()

    def _attempt(
        self, name: str, deployment: ChainDeployment, ledger: PurchaseLedger
    ) -> ChainResult:
        chain_id = deployment.chain_id

        try:
            snapshot = RoundOracle(ledger).read()
        except ReadFailure as e:
            self.log.warning("[%s] round read failed: %s", name, e)
            return ChainResult(name, ChainOutcome.READ_FAILED, chain_id, detail=str(e))

        round_id = snapshot.round_id
        now = self.clock()
        if not should_attempt_purchase(snapshot.round, snapshot.purchase_window, now):
            self.log.info(
                "[%s] round %d is %s; no purchase",
                name,
                round_id,
                snapshot.phase(now).value,
            )
            return ChainResult(name, ChainOutcome.WINDOW_CLOSED, chain_id, round_id)

        try:
            task = self.task_source.take(chain_id)
        except ValueError as e:
            self.log.error("[%s] bad purchase task: %s", name, e)
            return ChainResult(name, ChainOutcome.INVALID_TASK, chain_id, round_id, detail=str(e))
        if task is None:
            self.log.info("[%s] round %d in purchase window; no task queued", name, round_id)
            return ChainResult(name, ChainOutcome.NO_TASK, chain_id, round_id)

        try:
            receipt = self.executor.execute(ledger, round_id, task)
        except CapExceeded as e:
            self.log.error("[%s] task rejected: %s", name, e)
            return ChainResult(name, ChainOutcome.REJECTED, chain_id, round_id, detail=str(e))
        except PurchaseWindowClosed as e:
            self.log.info("[%s] %s", name, e)
            return ChainResult(name, ChainOutcome.WINDOW_CLOSED, chain_id, round_id, detail=str(e))
        except ReadFailure as e:
            self.log.warning("[%s] round re-read failed: %s", name, e)
            return ChainResult(name, ChainOutcome.READ_FAILED, chain_id, round_id, detail=str(e))
        except (ExecutionFailure, ConfigurationMissing) as e:
            self.log.error("[%s] marketplace purchase failed: %s", name, e)
            return ChainResult(name, ChainOutcome.FAILED, chain_id, round_id, detail=str(e))

        self.log.info("[%s] purchase confirmed for round %d: %s", name, round_id, receipt.tx_hash)
        return ChainResult(
            name, ChainOutcome.SUBMITTED, chain_id, round_id, tx_hash=receipt.tx_hash
        )

    def run_forever(self, max_ticks: Optional[int] = None, sleep: Callable[[float], None] = time.sleep) -> None:
        interval = self.settings.tick_interval_s
        self.log.info(
            "Scheduler started: chains=%s interval=%.0fs",
            " ".join(self.settings.chains) or "(none)",
            interval,
        )
        ticks = 0
        while max_ticks is None or ticks < max_ticks:
            self.tick()
            ticks += 1
            if max_ticks is None or ticks < max_ticks:
                sleep(interval)
