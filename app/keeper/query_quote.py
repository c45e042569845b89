"""
Print a quote from one configured liquidity venue.

    python -m app.keeper.query_quote --chain-id 8453 --source uniswapv3 \
        --token-in 0x... --token-out 0x... --amount 1.5
"""

import argparse
import sys

from dotenv import load_dotenv

from app.keeper.config_loader import load_keeper_config
from app.keeper.contracts import create_contract_instance
from app.keeper.exceptions import ConfigurationError
from app.keeper.logging_config import setup_logger
from app.keeper.quote_providers.registry import build_quote_provider
from app.keeper.venues import LiquiditySource

logger = setup_logger()


def _decimals(token: str, config) -> int:
    erc20 = create_contract_instance(token, config.abi_path("ERC20_ABI_PATH"), config.w3)
    return erc20.functions.decimals().call()


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Query a liquidity venue quote")
    parser.add_argument("--chain-id", type=int, default=8453, help="Chain ID (default: 8453 for Base)")
    parser.add_argument("--source", type=str, required=True, help="Liquidity source, e.g. oneinch, uniswapv3, curve")
    parser.add_argument("--token-in", type=str, required=True, help="Input token address")
    parser.add_argument("--token-out", type=str, required=True, help="Output token address")
    parser.add_argument("--amount", type=str, help="Input amount in token units, e.g. 1.5")
    parser.add_argument("--amount-wei", type=int, help="Input amount in native units")
    parser.add_argument("--fee-tier", type=int, help="Fee tier override for Uniswap V3 / SushiSwap")
    args = parser.parse_args(argv)

    load_dotenv()
    config = load_keeper_config(args.chain_id)

    try:
        source = LiquiditySource.parse(args.source)
        provider = build_quote_provider(source, config.venue(source), config.w3)
    except ConfigurationError as ex:
        logger.error("Cannot build quote provider: %s", ex)
        return 1

    if not provider.is_available():
        logger.error("%s venue is missing: %s", source.name, ", ".join(provider.venue_config.missing_fields()))
        return 1

    if args.amount_wei:
        amount = args.amount_wei
    elif args.amount:
        amount = int(float(args.amount) * 10 ** _decimals(args.token_in, config))
    else:
        logger.error("Must specify either --amount or --amount-wei")
        return 1

    quote = provider.get_quote(amount, args.token_in, args.token_out, args.fee_tier)
    if not quote.success:
        print(f"Quote failed: {quote.error}")
        return 1

    out_decimals = _decimals(args.token_out, config)
    print(f"{source.name}: {amount} -> {quote.amount} ({quote.amount / 10**out_decimals} tokens out)")
    return 0


if __name__ == "__main__":
    sys.exit(main())
