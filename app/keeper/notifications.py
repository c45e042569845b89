"""
Notification functions for the auction keeper.
"""

import time
from typing import Optional

from apprise import Apprise

from .config_loader import KeeperConfig
from .logging_config import setup_logger
from .models import LiquidationCandidate
from .venues import LiquiditySource

logger = setup_logger()


def setup_apprise_notification_object(config: KeeperConfig) -> Apprise:
    """Set up the Apprise notification engine."""
    apprise = Apprise()
    apprise.add(config.NOTIFICATION_URL)
    return apprise


def _send(title: str, message: str, config: Optional[KeeperConfig]) -> bool:
    if config is None or not config.NOTIFICATION_URL:
        return False
    try:
        apprise = setup_apprise_notification_object(config)
        return apprise.notify(body=message, title=title)
    except Exception as ex:
        logger.error("Failed to send %s notification: %s", title, ex, exc_info=True)
        return False


def _tx_link(tx_hash: str, config: KeeperConfig) -> str:
    return f"{config.EXPLORER_URL}/tx/{tx_hash}"


def post_take_notification(
    pool_name: str, candidate: LiquidationCandidate, source: LiquiditySource, tx_hash: str, config: KeeperConfig
) -> bool:
    """Post a notification about a completed take."""
    message = (
        ":moneybag: *Take Completed* :moneybag:\n\n"
        f"*Pool*: `{pool_name}` (`{candidate.pool_address}`)\n"
        f"*Borrower*: `{candidate.borrower}`\n"
        f"• Collateral: `{candidate.collateral_decimal:.6f}`\n"
        f"• Auction Price: `{candidate.auction_price_decimal:.6f}`\n"
        f"• Liquidity Source: `{source.name}`\n"
        f"• Transaction: <{_tx_link(tx_hash, config)}|View Transaction on Explorer>\n"
        f"Time of take: {time.strftime('%Y-%m-%d %H:%M:%S')}\n\n"
        f"Network: `{config.CHAIN_NAME}`"
    )
    logger.info("Take notification:\n%s", message)
    return _send("Take Completed", message, config)


def post_arb_take_notification(
    pool_name: str, candidate: LiquidationCandidate, tx_hash: str, config: KeeperConfig
) -> bool:
    """Post a notification about a completed arb take."""
    message = (
        ":moneybag: *ArbTake Completed* :moneybag:\n\n"
        f"*Pool*: `{pool_name}` (`{candidate.pool_address}`)\n"
        f"*Borrower*: `{candidate.borrower}`\n"
        f"• Bucket Index: `{candidate.arb_bucket_index}`\n"
        f"• Auction Price: `{candidate.auction_price_decimal:.6f}`\n"
        f"• Transaction: <{_tx_link(tx_hash, config)}|View Transaction on Explorer>\n"
        f"Time of arb take: {time.strftime('%Y-%m-%d %H:%M:%S')}\n\n"
        f"Network: `{config.CHAIN_NAME}`"
    )
    logger.info("ArbTake notification:\n%s", message)
    return _send("ArbTake Completed", message, config)


def post_error_notification(message: str, config: KeeperConfig = None) -> bool:
    """Post an error notification."""
    error_message = f":rotating_light: *Error Notification* :rotating_light:\n\n{message}\n\n"
    error_message += f"Time: {time.strftime('%Y-%m-%d %H:%M:%S')}\n"
    if config:
        error_message += f"Network: `{config.CHAIN_NAME}`"

    logger.info("Error notification:\n%s", error_message)
    return _send("Error Notification", error_message, config)
