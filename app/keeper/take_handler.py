"""
One take pass over one pool: scan, evaluate, dispatch.
"""

import threading
import time
from typing import Optional

from .config_loader import PoolConfig
from .dispatcher import ExecutionDispatcher
from .evaluator import ProfitabilityEvaluator
from .logging_config import setup_logger
from .models import PassSummary
from .pool import AjnaPool
from .scanner import LiquidationScanner

logger = setup_logger()


class PoolTakeHandler:
    """
    Runs take passes for one pool. Candidates are handled one at a time: external
    take first, then DELAY_BETWEEN_ACTIONS seconds, then the arb take.
    Setting ``stop_event`` ends the pass before the next candidate starts.
    """

    def __init__(
        self,
        pool: AjnaPool,
        pool_config: PoolConfig,
        scanner: LiquidationScanner,
        evaluator: ProfitabilityEvaluator,
        dispatcher: ExecutionDispatcher,
        delay_between_actions: float = 1,
        stop_event: Optional[threading.Event] = None,
    ):
        self.pool = pool
        self.pool_config = pool_config
        self.scanner = scanner
        self.evaluator = evaluator
        self.dispatcher = dispatcher
        self.delay_between_actions = delay_between_actions
        self.stop_event = stop_event or threading.Event()
        self.last_summary: Optional[PassSummary] = None

    def handle_takes(self) -> PassSummary:
        summary = PassSummary(pool_name=self.pool_config.name, started_at=time.time())
        self.last_summary = summary

        if self.pool_config.take is None:
            logger.debug("TakeHandler: no take settings for %s", self.pool_config.name)
            summary.finished_at = time.time()
            return summary

        candidates = self.scanner.scan(self.pool, self.pool_config)
        try:
            for candidate in candidates:
                if self.stop_event.is_set():
                    logger.info("TakeHandler: pass over %s cancelled", self.pool_config.name)
                    summary.cancelled = True
                    break

                summary.candidates += 1
                self.evaluator.evaluate(self.pool, self.pool_config, candidate)

                if candidate.is_externally_takeable:
                    result = self.dispatcher.dispatch_take(self.pool, self.pool_config, candidate)
                    if result.success:
                        summary.takes += 1
                    else:
                        summary.failures += 1

                    if candidate.is_arb_takeable:
                        time.sleep(self.delay_between_actions)

                if candidate.is_arb_takeable:
                    result = self.dispatcher.dispatch_arb_take(self.pool, self.pool_config, candidate)
                    if result.success:
                        summary.arb_takes += 1
                    else:
                        summary.failures += 1
        finally:
            summary.finished_at = time.time()

        logger.info(
            "TakeHandler: pass over %s done: %s candidates, %s takes, %s arb takes, %s failures",
            self.pool_config.name, summary.candidates, summary.takes, summary.arb_takes, summary.failures,
        )
        return summary
