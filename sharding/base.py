"""
Interfaz común de estrategias de sharding y estadísticas de distribución.
"""
import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Union

import numpy as np

from sharding.exceptions import ConfigurationError, validate_key

logger = logging.getLogger(__name__)

# Un índice (estrategias por índice) o un shard_id (estrategias con nombre)
ShardTarget = Union[int, str]


class StrategyType(Enum):
    """Estrategias de sharding disponibles."""
    HASH = "hash"
    ROUND_ROBIN = "round_robin"
    CONSISTENT_HASH = "consistent_hash"
    RANGE = "range"


@dataclass
class DistributionStats:
    """Resumen de cómo se reparten las claves entre shards."""
    shards: Dict[Any, int] = field(default_factory=dict)
    total_keys: int = 0
    mean: float = 0.0
    std_dev: float = 0.0
    balance: float = 1.0

    @classmethod
    def from_counts(cls, counts: Dict[Any, int]) -> "DistributionStats":
        """
        Calcula media, desviación estándar y balance.

        balance = 1 - std_dev / mean, acotado a [0, 1]. Sin shards o sin
        claves el balance es 1.

        Args:
            counts: Diccionario {shard: número de claves}
        """
        total = int(sum(counts.values()))

        if not counts:
            return cls(shards={}, total_keys=total)

        values = list(counts.values())
        mean = float(np.mean(values))
        std_dev = float(np.std(values))

        if mean > 0:
            balance = min(1.0, max(0.0, 1.0 - std_dev / mean))
        else:
            balance = 1.0

        return cls(
            shards=dict(counts),
            total_keys=total,
            mean=mean,
            std_dev=std_dev,
            balance=balance
        )

    def to_dict(self) -> Dict:
        return {
            "shards": dict(self.shards),
            "total_keys": self.total_keys,
            "mean": self.mean,
            "std_dev": self.std_dev,
            "balance": self.balance,
        }


class ShardingStrategy(ABC):
    """
    Convierte una clave en el shard destino.

    Las implementaciones devuelven un índice en [0, shard_count) o,
    si gestionan shards por nombre, el shard_id.
    """

    strategy_type: StrategyType = None

    def __init__(self):
        self._lock = threading.Lock()

    @abstractmethod
    def resolve(self, key: str, shard_count: int) -> ShardTarget:
        """
        Obtiene el shard para una clave.

        Args:
            key: Clave a ubicar
            shard_count: Número de shards del coordinador

        Raises:
            InvalidKeyError: si la clave no es str
            ConfigurationError: si no hay shards
        """

    @property
    def name(self) -> str:
        return type(self).__name__

    def get_stats(self) -> Dict:
        return {"type": self.strategy_type.value if self.strategy_type else self.name}

    def __repr__(self) -> str:
        return f"{self.name}()"


class NamedShardStrategy(ShardingStrategy):
    """
    Estrategia que mantiene su propio registro de shards por nombre.

    resolve() ignora shard_count y devuelve un shard_id.
    """

    def __init__(self):
        super().__init__()
        self._shards: List[str] = []

    @abstractmethod
    def add_shard(self, shard_id: str):
        """Registra un shard. No hace nada si ya existe."""

    @abstractmethod
    def remove_shard(self, shard_id: str):
        """Quita un shard. No hace nada si no existe."""

    @abstractmethod
    def _lookup(self, key: str) -> str:
        """Resuelve sin validar ni tomar el lock. Requiere shards registrados."""

    def resolve(self, key: str, shard_count: int = None) -> str:
        validate_key(key)
        with self._lock:
            self._require_shards()
            return self._lookup(key)

    def _require_shards(self):
        if not self._shards:
            raise ConfigurationError(
                f"{self.name}: no hay shards registrados",
                field="shard_count",
                value=0
            )

    def has_shard(self, shard_id: str) -> bool:
        with self._lock:
            return shard_id in self._shards

    def get_shards(self) -> List[str]:
        with self._lock:
            return list(self._shards)

    @property
    def shard_count(self) -> int:
        with self._lock:
            return len(self._shards)

    def get_distribution_stats(self, keys: Iterable[str]) -> DistributionStats:
        """
        Reporte analítico de cómo se repartirían las claves dadas.

        No modifica el estado de la estrategia.
        """
        with self._lock:
            counts = {shard_id: 0 for shard_id in self._shards}
            if counts:
                for key in keys:
                    validate_key(key)
                    target = self._lookup(key)
                    counts[target] += 1

        return DistributionStats.from_counts(counts)


def is_sharding_strategy(obj: Any) -> bool:
    """Comprueba si un objeto expone resolve(key, shard_count)."""
    return callable(getattr(obj, "resolve", None))


def strategy_name(strategy: Any) -> str:
    """Nombre de una estrategia, incluidas las que no heredan de ShardingStrategy."""
    return getattr(strategy, "name", None) or type(strategy).__name__
