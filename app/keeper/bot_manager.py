import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, List, Optional

from .config_loader import KeeperConfig, load_keeper_config
from .dispatcher import ExecutionDispatcher
from .evaluator import ProfitabilityEvaluator
from .logging_config import setup_logger
from .nonce import NonceSequencer
from .pool import AjnaPool
from .scanner import LiquidationScanner
from .subgraph import SubgraphClient
from .take_handler import PoolTakeHandler
from .venues import LiquiditySource

logger = setup_logger()


class KeeperManager:
    """Runs take passes over every configured pool of one chain"""

    def __init__(self, chain_id: int, notify: bool = True, config: Optional[KeeperConfig] = None):
        self.chain_id = chain_id
        self.notify = notify
        self.config = config or load_keeper_config(chain_id)
        self.stop_event = threading.Event()

        self.sequencer = NonceSequencer(self.config.w3)
        self.subgraph = SubgraphClient(self.config.SUBGRAPH_URL, timeout=float(self.config.RPC_TIMEOUT))
        self.scanner = LiquidationScanner(self.subgraph)
        self.evaluator = ProfitabilityEvaluator(
            self.subgraph, self.config.venues, self.config.w3, quote_timeout=float(self.config.QUOTE_TIMEOUT)
        )
        self.dispatcher = ExecutionDispatcher(self.config, self.sequencer, dry_run=self.config.DRY_RUN, notify=notify)
        self.handlers: Dict[str, PoolTakeHandler] = {}

        self._initialize_pools()

    def _initialize_pools(self):
        """Create one take handler per pool; disable external takes the deployment cannot serve"""
        logger.info(
            "Initializing keeper on %s (deployment: %s, dry run: %s)",
            self.config.CHAIN_NAME, self.config.deployment_type(), self.config.DRY_RUN,
        )
        deployment_errors = self.config.validate_deployment()
        for pool_config in self.config.pools:
            if pool_config.name in deployment_errors:
                logger.warning(
                    "KeeperManager: external takes disabled for %s: %s",
                    pool_config.name, "; ".join(deployment_errors[pool_config.name]),
                )
                pool_config.take.liquidity_source = LiquiditySource.NONE

        for pool_config in self.config.pools:
            pool = AjnaPool(pool_config.address, pool_config.name, self.config)
            self.handlers[pool_config.address] = PoolTakeHandler(
                pool,
                pool_config,
                self.scanner,
                self.evaluator,
                self.dispatcher,
                delay_between_actions=float(self.config.DELAY_BETWEEN_ACTIONS),
                stop_event=self.stop_event,
            )

    def run_once(self) -> None:
        """Run one take pass over every pool and wait for all of them"""
        with ThreadPoolExecutor(max_workers=max(len(self.handlers), 1), thread_name_prefix="pool") as executor:
            futures = {executor.submit(handler.handle_takes): address for address, handler in self.handlers.items()}
            for future, address in futures.items():
                try:
                    future.result()
                except Exception as e:
                    logger.error("Take pass failed for pool %s: %s", address, e, exc_info=True)

    def start(self):
        """Run take passes until stopped, DELAY_BETWEEN_RUNS seconds apart"""
        logger.info("KeeperManager: starting with %s pools", len(self.handlers))
        while not self.stop_event.is_set():
            self.run_once()
            self.stop_event.wait(float(self.config.DELAY_BETWEEN_RUNS))
        self.evaluator.shutdown()
        logger.info("KeeperManager: stopped")

    def stop(self):
        """Stop after the candidate currently being processed"""
        self.stop_event.set()

    def status(self) -> List[Dict[str, Any]]:
        response = []
        for address, handler in self.handlers.items():
            summary = handler.last_summary
            response.append(
                {
                    "pool": handler.pool_config.name,
                    "address": address,
                    "last_pass": None if summary is None else {
                        "started_at": summary.started_at,
                        "finished_at": summary.finished_at,
                        "candidates": summary.candidates,
                        "takes": summary.takes,
                        "arb_takes": summary.arb_takes,
                        "failures": summary.failures,
                        "cancelled": summary.cancelled,
                    },
                }
            )
        return response
