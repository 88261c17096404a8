"""
Módulo de sharding para particionamiento de datos.
Distribuye claves entre shards en memoria con estrategias intercambiables.
"""
from sharding.base import (
    DistributionStats,
    NamedShardStrategy,
    ShardingStrategy,
    StrategyType,
    is_sharding_strategy,
    strategy_name,
)
from sharding.consistent_hash import ConsistentHashStrategy
from sharding.coordinator import Coordinator, create_coordinator, create_strategy
from sharding.exceptions import (
    ConfigurationError,
    InvalidKeyError,
    InvalidValueError,
    ShardingError,
    ShardNotFoundError,
)
from sharding.hash_strategy import ModuloHashStrategy, fnv1a_32, hash_key, rolling_hash, rolling_hash_32
from sharding.range_strategy import RangeStrategy, SlotRange
from sharding.round_robin import RoundRobinStrategy
from sharding.shard import NOT_FOUND, Shard

__all__ = [
    "NOT_FOUND",
    "Shard",
    "ShardingStrategy",
    "NamedShardStrategy",
    "StrategyType",
    "DistributionStats",
    "is_sharding_strategy",
    "strategy_name",
    "ModuloHashStrategy",
    "RoundRobinStrategy",
    "ConsistentHashStrategy",
    "RangeStrategy",
    "SlotRange",
    "Coordinator",
    "create_coordinator",
    "create_strategy",
    "hash_key",
    "rolling_hash",
    "rolling_hash_32",
    "fnv1a_32",
    "ShardingError",
    "ConfigurationError",
    "InvalidKeyError",
    "InvalidValueError",
    "ShardNotFoundError",
]
