"""
Estrategia round-robin: reparte por orden de llamada, no por contenido.
"""
import logging
from typing import Dict

from sharding.base import ShardingStrategy, StrategyType
from sharding.exceptions import validate_key, validate_shard_count
from sharding.metrics import track_resolve_latency

logger = logging.getLogger(__name__)

MAX_SAFE_INTEGER = 2 ** 53 - 1


class RoundRobinStrategy(ShardingStrategy):
    """
    Cicla los índices de shard en orden de llamada.

    La clave se valida pero se ignora: dos llamadas con la misma clave
    pueden ir a shards distintos.
    """

    strategy_type = StrategyType.ROUND_ROBIN

    def __init__(self):
        super().__init__()
        self._counter = 0
        self._operation_count = 0

    @track_resolve_latency
    def resolve(self, key: str, shard_count: int) -> int:
        validate_key(key)
        validate_shard_count(shard_count)

        with self._lock:
            index = self._counter % shard_count
            self._counter += 1
            self._operation_count += 1

            if self._counter >= MAX_SAFE_INTEGER:
                logger.warning("RoundRobinStrategy: contador reiniciado a 0")
                self._counter = 0

        return index

    def reset(self):
        """Vuelve el contador a 0."""
        with self._lock:
            self._counter = 0

    def peek_next(self, shard_count: int) -> int:
        """Índice que devolvería la próxima llamada, sin avanzar el contador."""
        validate_shard_count(shard_count)
        with self._lock:
            return self._counter % shard_count

    @property
    def counter(self) -> int:
        return self._counter

    @property
    def operation_count(self) -> int:
        return self._operation_count

    def get_stats(self) -> Dict:
        with self._lock:
            return {
                "type": self.strategy_type.value,
                "counter": self._counter,
                "operations": self._operation_count,
                "max_safe_integer": MAX_SAFE_INTEGER,
                "percent_to_overflow": self._counter / MAX_SAFE_INTEGER * 100,
            }

    def clone(self) -> "RoundRobinStrategy":
        """Copia con el mismo contador (las operaciones no se copian)."""
        cloned = RoundRobinStrategy()
        with self._lock:
            cloned._counter = self._counter
        return cloned

    def __repr__(self) -> str:
        return f"RoundRobinStrategy(counter={self._counter}, ops={self._operation_count})"
