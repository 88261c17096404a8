"""
Funciones de hash y estrategia de sharding por módulo.
"""
import logging
from typing import Dict, Iterable, Iterator

from sharding.base import ShardingStrategy, StrategyType
from sharding.exceptions import validate_key, validate_shard_count
from sharding.metrics import track_resolve_latency

logger = logging.getLogger(__name__)

_MASK_32 = 0xFFFFFFFF
_SIGN_BIT = 0x80000000

FNV_OFFSET_BASIS = 2166136261
FNV_PRIME = 16777619


def _code_units(key: str) -> Iterator[int]:
    """Recorre la clave como unidades de código UTF-16."""
    for char in key:
        code = ord(char)
        if code > 0xFFFF:
            code -= 0x10000
            yield 0xD800 + (code >> 10)
            yield 0xDC00 + (code & 0x3FF)
        else:
            yield code


def rolling_hash(key: str) -> int:
    """
    Hash rodante h = h * 31 + c, truncado a entero de 32 bits con signo.

    Args:
        key: Clave a hashear

    Returns:
        Entero en [-2^31, 2^31)
    """
    hash_value = 0
    for code in _code_units(key):
        hash_value = ((hash_value << 5) - hash_value + code) & _MASK_32

    if hash_value & _SIGN_BIT:
        hash_value -= 1 << 32
    return hash_value


def rolling_hash_32(key: str) -> int:
    """El mismo hash rodante interpretado como entero sin signo (posición en el ring)."""
    return rolling_hash(key) & _MASK_32


def fnv1a_32(key: str) -> int:
    """FNV-1a de 32 bits sobre unidades UTF-16. Mejor dispersión para el ring."""
    hash_value = FNV_OFFSET_BASIS
    for code in _code_units(key):
        hash_value ^= code
        hash_value = (hash_value * FNV_PRIME) & _MASK_32
    return hash_value


def hash_key(key: str, num_shards: int) -> int:
    """
    Calcula el índice de shard para una clave.

    Args:
        key: Clave a hashear
        num_shards: Número total de shards

    Returns:
        Índice de shard (0 a num_shards-1)
    """
    validate_key(key)
    validate_shard_count(num_shards)
    return abs(rolling_hash(key)) % num_shards


def _key_length(key: str) -> int:
    return sum(1 for _ in _code_units(key))


class ModuloHashStrategy(ShardingStrategy):
    """
    Hash determinista + módulo.

    resolve() es función pura de (key, shard_count); solo lleva
    contadores de diagnóstico.
    """

    strategy_type = StrategyType.HASH

    def __init__(self):
        super().__init__()
        self._call_count = 0
        self._total_chars = 0

    @track_resolve_latency
    def resolve(self, key: str, shard_count: int) -> int:
        index = hash_key(key, shard_count)

        with self._lock:
            self._call_count += 1
            self._total_chars += _key_length(key)

        return index

    def compute_hash(self, key: str) -> int:
        """Hash crudo con signo, sin aplicar módulo."""
        validate_key(key)
        return rolling_hash(key)

    @property
    def call_count(self) -> int:
        return self._call_count

    @property
    def total_chars_hashed(self) -> int:
        return self._total_chars

    def average_key_length(self) -> float:
        with self._lock:
            if self._call_count == 0:
                return 0.0
            return self._total_chars / self._call_count

    def reset_stats(self):
        with self._lock:
            self._call_count = 0
            self._total_chars = 0

    def get_stats(self) -> Dict:
        return {
            "type": self.strategy_type.value,
            "calls": self._call_count,
            "total_chars": self._total_chars,
            "avg_key_length": self.average_key_length(),
        }

    def test_distribution(self, keys: Iterable[str], shard_count: int) -> Dict[int, int]:
        """
        Cuenta cuántas claves caen en cada índice.

        Returns:
            Diccionario {índice: número de claves}, con todos los índices
        """
        validate_shard_count(shard_count)
        distribution = {index: 0 for index in range(shard_count)}

        for key in keys:
            distribution[self.resolve(key, shard_count)] += 1

        return distribution

    def keys_map_to_same_shard(self, key1: str, key2: str, shard_count: int) -> bool:
        return hash_key(key1, shard_count) == hash_key(key2, shard_count)

    def __repr__(self) -> str:
        return (
            f"ModuloHashStrategy(calls={self._call_count}, "
            f"avg_key_len={self.average_key_length():.1f})"
        )
