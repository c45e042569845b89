"""Module for handling API routes"""

from flask import Blueprint, jsonify, make_response, request
from web3 import Web3

from .bot_manager import KeeperManager
from .logging_config import setup_logger

logger = setup_logger()

keeper = Blueprint("keeper", __name__)


def start_keeper(chain_id: int = 8453) -> KeeperManager:
    """Start the keeper loop for one chain, defaults to Base if none specified"""
    keeper_manager = KeeperManager(chain_id, notify=True)

    # Store on module level for route access before app context is available
    start_keeper._keeper_manager = keeper_manager

    keeper_manager.start()

    return keeper_manager


def _get_keeper_manager():
    """Get the keeper manager instance."""
    return getattr(start_keeper, "_keeper_manager", None)


@keeper.route("/status", methods=["GET"])
def get_status():
    keeper_manager = _get_keeper_manager()
    if not keeper_manager:
        return jsonify({"error": "Keeper not initialized"}), 500

    return make_response(
        jsonify(
            {
                "chain_id": keeper_manager.chain_id,
                "dry_run": keeper_manager.config.DRY_RUN,
                "deployment_type": keeper_manager.config.deployment_type(),
                "pools": keeper_manager.status(),
            }
        )
    )


@keeper.route("/pools", methods=["GET"])
def get_pools():
    keeper_manager = _get_keeper_manager()
    if not keeper_manager:
        return jsonify({"error": "Keeper not initialized"}), 500

    response = []
    for pool_config in keeper_manager.config.pools:
        take = pool_config.take
        entry = {"name": pool_config.name, "address": pool_config.address, "take": None}
        if take:
            source = take.liquidity_source
            venue = keeper_manager.config.venue(source)
            venue_available = take.external_take_configured and venue is not None and venue.is_complete()
            entry["take"] = {
                "min_collateral": take.min_collateral,
                "market_price_factor": take.market_price_factor,
                "hpb_price_factor": take.hpb_price_factor,
                "liquidity_source": source.name,
                "venue_available": venue_available,
            }
        response.append(entry)

    return make_response(jsonify(response))


@keeper.route("/loans", methods=["GET"])
def get_loans():
    keeper_manager = _get_keeper_manager()
    if not keeper_manager:
        return jsonify({"error": "Keeper not initialized"}), 500

    pool_address = request.args.get("pool")
    if not pool_address:
        return jsonify({"error": "Missing pool parameter"}), 400
    if not Web3.is_address(pool_address):
        return jsonify({"error": f"Invalid pool address {pool_address}"}), 400

    logger.info("API: Getting loans for pool %s", pool_address)
    loans = keeper_manager.subgraph.get_loans(pool_address)
    if loans is None:
        return jsonify({"error": f"No loan data for pool {pool_address}"}), 404
    return make_response(jsonify(loans))
