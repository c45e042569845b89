"""
Liquidity venue kinds and their configuration payloads.

Each venue kind carries its own config dataclass. A venue is usable only when
every field listed in ``required_fields`` is present; nothing is inferred.
"""

from dataclasses import dataclass, field, fields
from enum import IntEnum
from typing import Any, ClassVar, Dict, List, Optional, Tuple, Type

from web3 import Web3

from .exceptions import ConfigurationError


class LiquiditySource(IntEnum):
    """Venue ids, as understood by the keeper taker contracts."""

    NONE = 0
    ONEINCH = 1
    UNISWAPV3 = 2
    SUSHISWAP = 3
    CURVE = 4
    UNISWAPV4 = 5

    @classmethod
    def parse(cls, value: Any) -> "LiquiditySource":
        if isinstance(value, LiquiditySource):
            return value
        if isinstance(value, int):
            return cls(value)
        try:
            return cls[str(value).upper().replace("_", "")]
        except KeyError as ex:
            raise ConfigurationError(f"Unknown liquidity source: {value}") from ex


class CurvePoolType(IntEnum):
    STABLE = 0
    CRYPTO = 1


@dataclass
class VenueConfig:
    """Base venue configuration."""

    source: ClassVar[LiquiditySource] = LiquiditySource.NONE
    required_fields: ClassVar[Tuple[str, ...]] = ()

    def missing_fields(self) -> List[str]:
        missing = []
        for name in self.required_fields:
            value = getattr(self, name, None)
            if value is None or value == "" or value == {}:
                missing.append(name)
        return missing

    def is_complete(self) -> bool:
        return not self.missing_fields()


@dataclass
class OneInchVenueConfig(VenueConfig):
    source: ClassVar[LiquiditySource] = LiquiditySource.ONEINCH
    required_fields: ClassVar[Tuple[str, ...]] = ("api_base_url", "api_key", "router_address", "chain_id")

    api_base_url: Optional[str] = None
    api_key: Optional[str] = None
    router_address: Optional[str] = None
    chain_id: Optional[int] = None
    slippage: float = 1.0
    request_delay: float = 1.1


@dataclass
class UniswapV3VenueConfig(VenueConfig):
    source: ClassVar[LiquiditySource] = LiquiditySource.UNISWAPV3
    required_fields: ClassVar[Tuple[str, ...]] = (
        "universal_router_address",
        "permit2_address",
        "pool_factory_address",
        "quoter_v2_address",
        "weth_address",
        "default_fee_tier",
    )

    universal_router_address: Optional[str] = None
    permit2_address: Optional[str] = None
    pool_factory_address: Optional[str] = None
    quoter_v2_address: Optional[str] = None
    weth_address: Optional[str] = None
    default_fee_tier: Optional[int] = None
    # percent, e.g. 0.5 for 0.5%
    default_slippage: float = 0.5

    @property
    def router_address(self) -> Optional[str]:
        return self.universal_router_address


@dataclass
class SushiSwapVenueConfig(VenueConfig):
    source: ClassVar[LiquiditySource] = LiquiditySource.SUSHISWAP
    required_fields: ClassVar[Tuple[str, ...]] = (
        "swap_router_address",
        "quoter_v2_address",
        "factory_address",
        "weth_address",
        "default_fee_tier",
    )

    swap_router_address: Optional[str] = None
    quoter_v2_address: Optional[str] = None
    factory_address: Optional[str] = None
    weth_address: Optional[str] = None
    default_fee_tier: Optional[int] = None

    @property
    def router_address(self) -> Optional[str]:
        return self.swap_router_address


@dataclass
class UniV4PoolKey:
    token0: str
    token1: str
    fee: int
    tick_spacing: int
    hooks: str = "0x0000000000000000000000000000000000000000"

    def matches(self, token_a: str, token_b: str) -> bool:
        pair = {self.token0.lower(), self.token1.lower()}
        return pair == {token_a.lower(), token_b.lower()}

    def as_tuple(self) -> Tuple[str, str, int, int, str]:
        return (
            Web3.to_checksum_address(self.token0),
            Web3.to_checksum_address(self.token1),
            int(self.fee),
            int(self.tick_spacing),
            Web3.to_checksum_address(self.hooks),
        )


@dataclass
class UniswapV4VenueConfig(VenueConfig):
    source: ClassVar[LiquiditySource] = LiquiditySource.UNISWAPV4
    required_fields: ClassVar[Tuple[str, ...]] = ("router_address", "quoter_address", "pool_keys")

    router_address: Optional[str] = None
    quoter_address: Optional[str] = None
    pool_keys: Dict[str, UniV4PoolKey] = field(default_factory=dict)

    def find_pool_key(self, token_in: str, token_out: str) -> Optional[UniV4PoolKey]:
        for pool_key in self.pool_keys.values():
            if pool_key.matches(token_in, token_out):
                return pool_key
        return None


@dataclass
class CurvePoolConfig:
    address: str
    pool_type: CurvePoolType = CurvePoolType.STABLE
    tokens: Tuple[str, ...] = ()

    def matches(self, token_a: str, token_b: str) -> bool:
        lowered = {token.lower() for token in self.tokens}
        return token_a.lower() in lowered and token_b.lower() in lowered


@dataclass
class CurveVenueConfig(VenueConfig):
    source: ClassVar[LiquiditySource] = LiquiditySource.CURVE
    required_fields: ClassVar[Tuple[str, ...]] = ("pools",)

    pools: Dict[str, CurvePoolConfig] = field(default_factory=dict)

    @property
    def router_address(self) -> Optional[str]:
        return None

    def find_pool(self, token_in: str, token_out: str) -> Optional[CurvePoolConfig]:
        for pool in self.pools.values():
            if pool.matches(token_in, token_out):
                return pool
        return None


VENUE_CONFIG_CLASSES: Dict[LiquiditySource, Type[VenueConfig]] = {
    LiquiditySource.ONEINCH: OneInchVenueConfig,
    LiquiditySource.UNISWAPV3: UniswapV3VenueConfig,
    LiquiditySource.SUSHISWAP: SushiSwapVenueConfig,
    LiquiditySource.UNISWAPV4: UniswapV4VenueConfig,
    LiquiditySource.CURVE: CurveVenueConfig,
}


def parse_venue_config(source: LiquiditySource, raw: Dict[str, Any]) -> VenueConfig:
    """
    Build the venue config dataclass for ``source`` from a raw YAML mapping.
    Unknown keys are ignored; missing keys stay None and make the venue unavailable.
    """
    config_class = VENUE_CONFIG_CLASSES.get(source)
    if config_class is None:
        raise ConfigurationError(f"No venue configuration for liquidity source {source.name}")

    raw = dict(raw or {})
    if source == LiquiditySource.UNISWAPV4:
        raw["pool_keys"] = {
            label: UniV4PoolKey(**pool_key) for label, pool_key in (raw.get("pool_keys") or {}).items()
        }
    elif source == LiquiditySource.CURVE:
        raw["pools"] = {
            label: CurvePoolConfig(
                address=pool["address"],
                pool_type=CurvePoolType[str(pool.get("pool_type", "stable")).upper()],
                tokens=tuple(pool.get("tokens", ())),
            )
            for label, pool in (raw.get("pools") or {}).items()
        }

    known = {f.name for f in fields(config_class)}
    return config_class(**{key: value for key, value in raw.items() if key in known})
