"""
Config Loader module - reads config.yaml and environment for one chain
"""

import os
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import yaml
from web3 import Web3

from .exceptions import ConfigurationError
from .venues import LiquiditySource, VenueConfig, parse_venue_config

APP_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))


class Web3Singleton:
    """
    Singleton class to manage w3 object creation per RPC URL
    """

    _instances = {}

    @staticmethod
    def get_instance(rpc_url: Optional[str] = None, timeout: float = 30):
        """
        Set up a Web3 instance for the given RPC URL.
        Maintains separate instances per unique RPC URL.
        """

        if rpc_url not in Web3Singleton._instances:
            Web3Singleton._instances[rpc_url] = Web3(
                Web3.HTTPProvider(rpc_url, request_kwargs={"timeout": timeout})
            )

        return Web3Singleton._instances[rpc_url]


def setup_w3(rpc_url: Optional[str] = None, timeout: float = 30) -> Web3:
    """
    Get the Web3 instance from the singleton class

    Args:
        rpc_url (Optional[str]): RPC URL of the chain
        timeout (float): Per-request timeout in seconds

    Returns:
        Web3: Web3 instance.
    """
    return Web3Singleton.get_instance(rpc_url, timeout)


def _env_flag(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None or value == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class TakeSettings:
    """Per-pool take thresholds."""

    min_collateral: Optional[float] = None
    market_price_factor: Optional[float] = None
    hpb_price_factor: Optional[float] = None
    liquidity_source: LiquiditySource = LiquiditySource.NONE

    @property
    def external_take_configured(self) -> bool:
        return bool(self.market_price_factor) and self.liquidity_source != LiquiditySource.NONE

    @property
    def arb_take_configured(self) -> bool:
        return bool(self.min_collateral) and bool(self.hpb_price_factor)


@dataclass
class PoolConfig:
    name: str
    address: str
    take: Optional[TakeSettings] = None

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "PoolConfig":
        take = None
        if raw.get("take"):
            take_raw = raw["take"]
            take = TakeSettings(
                min_collateral=take_raw.get("min_collateral"),
                market_price_factor=take_raw.get("market_price_factor"),
                hpb_price_factor=take_raw.get("hpb_price_factor"),
                liquidity_source=LiquiditySource.parse(take_raw.get("liquidity_source", LiquiditySource.NONE)),
            )
        return cls(name=raw.get("name", "(unnamed)"), address=Web3.to_checksum_address(raw["address"]), take=take)


class KeeperConfig:
    """
    Keeper Config object to access config variables
    """

    required_env_vars = [
        "KEEPER_EOA",
        "KEEPER_PRIVATE_KEY",
        # "ONEINCH_API_KEY",  # Optional, only for 1inch takes
        # "NOTIFICATION_URL",  # Optional
    ]

    def __init__(self, chain_id: int, global_config: Dict[str, Any], chain_config: Dict[str, Any]):
        self.CHAIN_ID = chain_id
        self.CHAIN_NAME = chain_config["name"]
        self._global = global_config
        self._chain = chain_config

        # validate env
        self.validate()
        self.KEEPER_EOA = Web3.to_checksum_address(os.environ["KEEPER_EOA"])
        self.KEEPER_PRIVATE_KEY = os.environ["KEEPER_PRIVATE_KEY"]
        self.ONEINCH_API_KEY = os.environ.get("ONEINCH_API_KEY", "")
        self.NOTIFICATION_URL = os.environ.get("NOTIFICATION_URL", "")
        self.DRY_RUN = _env_flag("DRY_RUN", bool(self._global.get("DRY_RUN", True)))

        # Load chain-specific RPC from env using RPC_NAME from config
        self.RPC_URL = os.environ.get(self._chain["RPC_NAME"], "")
        if not self.RPC_URL:
            raise EnvironmentError(
                f"Missing RPC URL for {self._chain['name']}. Env var {self._chain['RPC_NAME']} not found"
            )

        self.w3 = setup_w3(self.RPC_URL, float(self._global.get("RPC_TIMEOUT", 30)))

        self.LOGS_PATH = f"{self._global['LOGS_PATH']}/{self._chain['name']}_keeper.log"

        self.pools: List[PoolConfig] = [PoolConfig.from_dict(pool) for pool in self._chain.get("pools", [])]
        self.venues: Dict[LiquiditySource, VenueConfig] = self._load_venues()

    def _load_venues(self) -> Dict[LiquiditySource, VenueConfig]:
        venues = {}
        for name, raw in (self._chain.get("venues") or {}).items():
            source = LiquiditySource.parse(name)
            raw = dict(raw or {})
            if source == LiquiditySource.ONEINCH:
                raw.setdefault("api_key", self.ONEINCH_API_KEY)
                raw.setdefault("chain_id", self.CHAIN_ID)
            venues[source] = parse_venue_config(source, raw)
        return venues

    def __getattr__(self, name: str) -> Any:
        """Look up config values in chain-specific, then contracts, then global config."""
        if name.startswith("_"):
            raise AttributeError(name)
        if name in self._chain:
            return self._chain[name]
        if name in self._chain.get("contracts", {}):
            return self._chain["contracts"][name]
        if name in self._global:
            return self._global[name]
        raise AttributeError(f"Config has no attribute '{name}'")

    def validate(self) -> None:
        """
        Validates that all required environment variables are set.
        Raises an error if any are missing.
        """
        missing_keys = [key for key in self.required_env_vars if not os.getenv(key)]
        if missing_keys:
            raise EnvironmentError(f"Missing required environment variables: {', '.join(missing_keys)}")

    def abi_path(self, key: str) -> str:
        """Resolve an ABI path from the global section relative to the app package."""
        path = self._global[key]
        return path if os.path.isabs(path) else os.path.join(APP_DIR, path)

    def contract_address(self, key: str) -> Optional[str]:
        address = self._chain.get("contracts", {}).get(key)
        return Web3.to_checksum_address(address) if address else None

    def venue(self, source: LiquiditySource) -> Optional[VenueConfig]:
        return self.venues.get(source)

    def deployment_type(self) -> str:
        """
        Which taker deployment is configured: "factory" (multi venue),
        "single" (1inch keeper taker only) or "none" (arb takes only).
        """
        if self.contract_address("KEEPER_TAKER_FACTORY"):
            return "factory"
        if self.contract_address("KEEPER_TAKER"):
            return "single"
        return "none"

    def taker_address_for(self, source: LiquiditySource) -> str:
        """Return the taker contract that executes swaps for ``source``."""
        if source == LiquiditySource.ONEINCH:
            address = self.contract_address("KEEPER_TAKER")
            if not address:
                raise ConfigurationError("KEEPER_TAKER must be configured for 1inch takes")
            return address
        address = self.contract_address("KEEPER_TAKER_FACTORY")
        if not address:
            raise ConfigurationError(f"KEEPER_TAKER_FACTORY must be configured for {source.name} takes")
        return address

    def validate_deployment(self) -> Dict[str, List[str]]:
        """
        Configuration problems that would block external takes, keyed by pool name.
        """
        errors: Dict[str, List[str]] = {}
        for pool in self.pools:
            if not pool.take or not pool.take.external_take_configured:
                continue
            source = pool.take.liquidity_source
            try:
                self.taker_address_for(source)
            except ConfigurationError as ex:
                errors.setdefault(pool.name, []).append(str(ex))
            venue = self.venue(source)
            if venue is None:
                errors.setdefault(pool.name, []).append(f"no venue configuration for {source.name}")
            elif not venue.is_complete():
                errors.setdefault(pool.name, []).append(f"{source.name} venue missing {', '.join(venue.missing_fields())}")
        return errors


def load_keeper_config(chain_id: int, config_path: Optional[str] = None) -> KeeperConfig:
    if config_path is None:
        config_path = os.environ.get("KEEPER_CONFIG_PATH", os.path.join(APP_DIR, "config.yaml"))

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            config = yaml.safe_load(f)
    except FileNotFoundError as exc:
        raise FileNotFoundError(f"Config file not found at {config_path}") from exc
    except yaml.YAMLError as e:
        raise ValueError(f"Error parsing YAML file: {e}") from e

    if chain_id not in config["chains"]:
        raise ValueError(f"No configuration found for chain ID {chain_id}")

    return KeeperConfig(chain_id=chain_id, global_config=config["global"], chain_config=config["chains"][chain_id])
