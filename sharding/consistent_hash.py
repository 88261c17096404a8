"""
Consistent hashing con nodos virtuales.
Permite añadir/remover shards con mínima redistribución.
"""
import logging
from typing import Callable, Dict, Iterable, List, Tuple

from sharding.base import NamedShardStrategy, StrategyType
from sharding.exceptions import ConfigurationError, validate_key
from sharding.hash_strategy import fnv1a_32
from sharding.metrics import track_resolve_latency

logger = logging.getLogger(__name__)

DEFAULT_VIRTUAL_NODES = 150


class ConsistentHashStrategy(NamedShardStrategy):
    """
    Ring de hash ordenado; cada shard aporta virtual_nodes_per_shard posiciones.

    Una clave va al primer nodo virtual con hash >= hash(clave), o al
    primero del ring si ninguno lo cumple.
    """

    strategy_type = StrategyType.CONSISTENT_HASH

    def __init__(
        self,
        shards: Iterable[str] = (),
        virtual_nodes_per_shard: int = DEFAULT_VIRTUAL_NODES,
        hash_fn: Callable[[str], int] = fnv1a_32
    ):
        """
        Inicializa el ring.

        Args:
            shards: IDs de shard iniciales
            virtual_nodes_per_shard: Nodos virtuales por shard (para balanceo)
            hash_fn: Función str -> uint32 para posiciones del ring
                (default: FNV-1a; rolling_hash_32 agrupa los nodos virtuales)
        """
        super().__init__()

        if isinstance(virtual_nodes_per_shard, bool) or not isinstance(virtual_nodes_per_shard, int) \
                or virtual_nodes_per_shard < 1:
            raise ConfigurationError(
                f"virtual_nodes_per_shard debe ser >= 1, se recibió {virtual_nodes_per_shard!r}",
                field="virtual_nodes_per_shard",
                value=virtual_nodes_per_shard
            )

        self.virtual_nodes_per_shard = virtual_nodes_per_shard
        self._hash_fn = hash_fn

        # Ring de hash: (hash_value, shard_id) ordenado por hash_value
        self._ring: List[Tuple[int, str]] = []

        for shard_id in shards:
            self.add_shard(shard_id)

    def _hash(self, key: str) -> int:
        return self._hash_fn(key)

    def _virtual_nodes(self, shard_id: str) -> List[Tuple[int, str]]:
        return [
            (self._hash(f"{shard_id}:{vnode}"), shard_id)
            for vnode in range(self.virtual_nodes_per_shard)
        ]

    def add_shard(self, shard_id: str):
        """
        Añade un nuevo shard al ring.

        Args:
            shard_id: ID del nuevo shard
        """
        validate_key(shard_id)

        with self._lock:
            if shard_id in self._shards:
                return

            self._shards.append(shard_id)
            self._ring.extend(self._virtual_nodes(shard_id))

            # Re-ordenar
            self._ring.sort()

        logger.debug(
            f"ConsistentHashStrategy: shard {shard_id} añadido "
            f"({self.virtual_nodes_per_shard} nodos virtuales)"
        )

    def remove_shard(self, shard_id: str):
        """
        Remueve un shard del ring. Solo sus nodos virtuales se ven afectados.

        Args:
            shard_id: ID del shard a remover
        """
        with self._lock:
            if shard_id not in self._shards:
                return

            self._shards.remove(shard_id)
            self._ring = [
                (h, s) for h, s in self._ring
                if s != shard_id
            ]

        logger.debug(f"ConsistentHashStrategy: shard {shard_id} removido")

    @track_resolve_latency
    def resolve(self, key: str, shard_count: int = None) -> str:
        return super().resolve(key, shard_count)

    def _lookup(self, key: str) -> str:
        key_hash = self._hash(key)

        # Búsqueda binaria del primer nodo >= key_hash
        left, right = 0, len(self._ring) - 1
        result_idx = 0

        while left <= right:
            mid = (left + right) // 2

            if self._ring[mid][0] >= key_hash:
                result_idx = mid
                right = mid - 1
            else:
                left = mid + 1

        # Si no encontramos, wrapeamos al primer nodo
        if self._ring[result_idx][0] < key_hash:
            result_idx = 0

        return self._ring[result_idx][1]

    def get_ring_position(self, key: str) -> int:
        """Posición (hash) de una clave en el ring."""
        validate_key(key)
        return self._hash(key)

    @property
    def ring(self) -> List[Tuple[int, str]]:
        """Snapshot del ring ordenado."""
        with self._lock:
            return list(self._ring)

    def get_shard_distribution(self) -> Dict[str, int]:
        """
        Calcula la distribución de vnodes por shard.

        Returns:
            Diccionario {shard_id: número_de_vnodes}
        """
        with self._lock:
            distribution = {shard_id: 0 for shard_id in self._shards}
            for _, shard_id in self._ring:
                distribution[shard_id] += 1

        return distribution

    def get_ring_stats(self) -> Dict:
        with self._lock:
            total = len(self._ring)
            shard_count = len(self._shards)

        return {
            "total_virtual_nodes": total,
            "virtual_nodes_per_shard": self.virtual_nodes_per_shard,
            "average_virtual_nodes_per_shard": total / shard_count if shard_count else 0.0,
        }

    def get_stats(self) -> Dict:
        stats = self.get_ring_stats()
        stats["type"] = self.strategy_type.value
        stats["shards"] = self.get_shards()
        return stats

    def rebalance(self) -> Dict[str, List[str]]:
        """
        Plan de migración tras un cambio de shards.

        Con consistent hashing el ring ya refleja el cambio, así que no hay
        rangos que mover: devuelve una lista vacía por shard.
        """
        return {shard_id: [] for shard_id in self.get_shards()}

    def __repr__(self) -> str:
        return (
            f"ConsistentHashStrategy(shards={len(self._shards)}, "
            f"virtual_nodes={len(self._ring)})"
        )
