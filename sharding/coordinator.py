"""
Coordinador de shards.
Enruta inserciones y consultas según la estrategia activa.
"""
import json
import logging
import threading
import time
from typing import Any, Dict, Iterable, List, Optional

from sharding import metrics
from sharding.base import (
    DistributionStats,
    NamedShardStrategy,
    ShardingStrategy,
    StrategyType,
    is_sharding_strategy,
    strategy_name,
)
from sharding.config import Config, get_config
from sharding.consistent_hash import ConsistentHashStrategy
from sharding.exceptions import ConfigurationError, ShardNotFoundError, validate_key
from sharding.hash_strategy import ModuloHashStrategy
from sharding.range_strategy import RangeStrategy
from sharding.round_robin import RoundRobinStrategy
from sharding.shard import Shard

logger = logging.getLogger(__name__)


class Coordinator:
    """
    Dueño de la colección de shards y de la estrategia activa.

    Cambiar de estrategia no migra datos: una clave insertada con la
    estrategia anterior puede dejar de encontrarse con la nueva.
    """

    def __init__(
        self,
        shard_count: int = 3,
        strategy: Optional[ShardingStrategy] = None,
        shard_ids: Optional[Iterable[str]] = None,
        shard_id_prefix: str = "shard"
    ):
        """
        Inicializa el coordinador.

        Args:
            shard_count: Número de shards (ignorado si se pasa shard_ids)
            strategy: Estrategia de sharding (default: ModuloHashStrategy)
            shard_ids: IDs explícitos de los shards
            shard_id_prefix: Prefijo para IDs generados ("shard-0", ...)
        """
        if shard_ids is None:
            if isinstance(shard_count, bool) or not isinstance(shard_count, int) or shard_count < 0:
                raise ConfigurationError(
                    f"shard_count inválido: {shard_count!r}",
                    field="shard_count",
                    value=shard_count
                )
            shard_ids = [f"{shard_id_prefix}-{i}" for i in range(shard_count)]
        else:
            shard_ids = list(shard_ids)

        if len(set(shard_ids)) != len(shard_ids):
            raise ConfigurationError(
                "Los IDs de shard deben ser únicos",
                field="shard_ids",
                value=shard_ids
            )

        if strategy is not None and not is_sharding_strategy(strategy):
            raise ConfigurationError(
                f"Estrategia inválida: {strategy!r}",
                field="strategy",
                value=repr(strategy)
            )

        self.shard_id_prefix = shard_id_prefix
        self._shards: List[Shard] = [Shard(shard_id) for shard_id in shard_ids]
        self._strategy = strategy or ModuloHashStrategy()
        self._operation_count = 0
        self._created_at = time.time()

        # Protege la lista de shards y la referencia a la estrategia
        self._lock = threading.RLock()

        logger.info(
            f"Coordinator: Inicializado con {len(self._shards)} shards "
            f"(estrategia {strategy_name(self._strategy)})"
        )

    def _count_operation(self, operation: str):
        with self._lock:
            self._operation_count += 1
        metrics.record_operation(operation)

    def _resolve_shard(self, key: str) -> Shard:
        """
        Resuelve el shard destino de una clave.

        Raises:
            InvalidKeyError: si la clave no es str
            ConfigurationError: si no hay shards para resolver
            ShardNotFoundError: si la estrategia devuelve un shard desconocido
        """
        validate_key(key)

        with self._lock:
            target = self._strategy.resolve(key, len(self._shards))

            if isinstance(target, str):
                for shard in self._shards:
                    if shard.id == target:
                        return shard
                raise ShardNotFoundError(target)

            if not 0 <= target < len(self._shards):
                raise ShardNotFoundError(target)
            return self._shards[target]

    def insert(self, key: str, data: Any):
        """
        Guarda un valor en el shard que indique la estrategia.

        Args:
            key: Clave
            data: Valor opaco
        """
        shard = self._resolve_shard(key)
        shard.store(key, data)
        self._count_operation("insert")

        logger.debug(f"Coordinator: '{key}' -> {shard.id}")

    def query(self, key: str) -> Any:
        """
        Busca una clave por el mismo camino de resolución que insert().

        Returns:
            Valor almacenado o NOT_FOUND
        """
        shard = self._resolve_shard(key)
        result = shard.retrieve(key)
        self._count_operation("query")
        return result

    def query_all(self) -> List[Any]:
        """Todos los valores, concatenados en orden de declaración de shards."""
        all_data = []
        for shard in self.shards:
            all_data.extend(shard.get_all())

        self._count_operation("query_all")
        return all_data

    def query_shard(self, index: int) -> List[Any]:
        """
        Contenido de un shard sin pasar por la estrategia.

        Returns:
            Lista de valores, vacía si el índice no existe
        """
        with self._lock:
            if not isinstance(index, int) or not 0 <= index < len(self._shards):
                return []
            shard = self._shards[index]

        self._count_operation("query_shard")
        return shard.get_all()

    @property
    def shards(self) -> List[Shard]:
        """Snapshot de la lista de shards."""
        with self._lock:
            return list(self._shards)

    @property
    def shard_count(self) -> int:
        with self._lock:
            return len(self._shards)

    def get_shard(self, shard_id: str) -> Optional[Shard]:
        with self._lock:
            for shard in self._shards:
                if shard.id == shard_id:
                    return shard
        return None

    def get_shard_for_key(self, key: str) -> int:
        """Índice del shard al que iría la clave."""
        shard = self._resolve_shard(key)
        with self._lock:
            return self._shards.index(shard)

    def get_total_records(self) -> int:
        return sum(shard.size() for shard in self.shards)

    def get_shard_distribution(self) -> List[int]:
        """Número de entradas por shard, en orden de declaración."""
        return [shard.size() for shard in self.shards]

    def is_balanced(self) -> bool:
        """
        True si todos los shards están a ±1 de la media.

        Sin shards o sin datos se considera balanceado.
        """
        distribution = self.get_shard_distribution()
        if not distribution:
            return True

        average = sum(distribution) / len(distribution)
        return all(abs(count - average) <= 1 for count in distribution)

    def get_distribution_stats(self) -> DistributionStats:
        """Media, desviación estándar y balance de lo almacenado."""
        return DistributionStats.from_counts(
            {shard.id: shard.size() for shard in self.shards}
        )

    @property
    def strategy(self) -> ShardingStrategy:
        with self._lock:
            return self._strategy

    @property
    def strategy_name(self) -> str:
        return strategy_name(self.strategy)

    @property
    def operation_count(self) -> int:
        return self._operation_count

    def switch_strategy(self, new_strategy: ShardingStrategy):
        """
        Reemplaza la estrategia activa. No mueve datos.

        Args:
            new_strategy: Nueva estrategia (puede no tener shards registrados;
                en ese caso las resoluciones fallarán con ConfigurationError)
        """
        if not is_sharding_strategy(new_strategy):
            raise ConfigurationError(
                f"Estrategia inválida: {new_strategy!r}",
                field="strategy",
                value=repr(new_strategy)
            )

        new_name = strategy_name(new_strategy)
        with self._lock:
            old_name = strategy_name(self._strategy)
            self._strategy = new_strategy

        metrics.record_strategy_switch()

        records = self.get_total_records()
        if records:
            logger.warning(
                f"Coordinator: estrategia cambiada {old_name} -> {new_name} "
                f"con {records} registros; los datos no se migran"
            )
        else:
            logger.info(f"Coordinator: estrategia cambiada {old_name} -> {new_name}")

    def add_shard(self, shard_id: Optional[str] = None) -> Shard:
        """
        Añade un shard vacío. Los datos existentes no se redistribuyen.

        Si la estrategia gestiona shards por nombre, también se registra en ella.

        Args:
            shard_id: ID del nuevo shard (default: siguiente "{prefijo}-{n}" libre)

        Returns:
            El shard creado
        """
        with self._lock:
            existing = {shard.id for shard in self._shards}

            if shard_id is None:
                index = len(self._shards)
                while f"{self.shard_id_prefix}-{index}" in existing:
                    index += 1
                shard_id = f"{self.shard_id_prefix}-{index}"
            elif shard_id in existing:
                raise ConfigurationError(
                    f"Shard ya existe: {shard_id}",
                    field="shard_id",
                    value=shard_id
                )

            shard = Shard(shard_id)
            self._shards.append(shard)

            if isinstance(self._strategy, NamedShardStrategy):
                self._strategy.add_shard(shard_id)

        logger.info(f"Coordinator: shard {shard_id} añadido ({self.shard_count} shards)")
        return shard

    def remove_shard(self, shard_id: str) -> Optional[Shard]:
        """
        Quita un shard de la colección. No hace nada si no existe.

        Los datos no se migran: el shard removido se devuelve intacto.

        Returns:
            El shard removido o None
        """
        with self._lock:
            shard = None
            for candidate in self._shards:
                if candidate.id == shard_id:
                    shard = candidate
                    break

            if shard is None:
                return None

            self._shards.remove(shard)

            if isinstance(self._strategy, NamedShardStrategy):
                self._strategy.remove_shard(shard_id)

        size = shard.size()
        if size:
            logger.warning(
                f"Coordinator: shard {shard_id} removido con {size} registros sin migrar"
            )
        else:
            logger.info(f"Coordinator: shard {shard_id} removido")

        return shard

    def clear(self):
        """Vacía todos los shards."""
        for shard in self.shards:
            shard.clear()
        self._count_operation("clear")

    def export(self) -> str:
        """Snapshot JSON de query_all(). Los valores deben ser serializables."""
        return json.dumps(self.query_all(), ensure_ascii=False)

    def get_stats(self) -> Dict:
        """Obtiene estadísticas del coordinador."""
        distribution = self.get_shard_distribution()
        return {
            "shard_count": len(distribution),
            "total_records": sum(distribution),
            "distribution": distribution,
            "balanced": self.is_balanced(),
            "operations": self._operation_count,
            "strategy": self.strategy_name,
            "uptime_seconds": time.time() - self._created_at,
            "shards": [shard.stats() for shard in self.shards],
        }

    def __repr__(self) -> str:
        return (
            f"Coordinator(shards={self.shard_count}, strategy={self.strategy_name}, "
            f"records={self.get_total_records()})"
        )


def create_strategy(
    strategy_type,
    shard_ids: Iterable[str] = (),
    virtual_nodes_per_shard: int = 150
) -> ShardingStrategy:
    """
    Construye una estrategia a partir de su tipo.

    Args:
        strategy_type: StrategyType o su valor ("hash", "round_robin", ...)
        shard_ids: Shards a registrar en estrategias por nombre
        virtual_nodes_per_shard: Solo para consistent hashing

    Raises:
        ConfigurationError: si el tipo no existe
    """
    try:
        strategy_type = StrategyType(strategy_type)
    except ValueError:
        raise ConfigurationError(
            f"Estrategia desconocida: {strategy_type!r}",
            field="strategy",
            value=strategy_type
        ) from None

    if strategy_type is StrategyType.HASH:
        return ModuloHashStrategy()
    if strategy_type is StrategyType.ROUND_ROBIN:
        return RoundRobinStrategy()
    if strategy_type is StrategyType.CONSISTENT_HASH:
        return ConsistentHashStrategy(shard_ids, virtual_nodes_per_shard=virtual_nodes_per_shard)
    return RangeStrategy(shard_ids)


def create_coordinator(config: Optional[Config] = None) -> Coordinator:
    """
    Construye un coordinador desde la configuración (default: entorno).
    """
    config = config or get_config()
    metrics.set_enabled(config.observability.metrics_enabled)

    sharding_config = config.sharding
    shard_ids = [sharding_config.shard_id(i) for i in range(sharding_config.shard_count)]

    strategy = create_strategy(
        sharding_config.strategy,
        shard_ids=shard_ids,
        virtual_nodes_per_shard=sharding_config.virtual_nodes_per_shard
    )

    return Coordinator(
        strategy=strategy,
        shard_ids=shard_ids,
        shard_id_prefix=sharding_config.shard_id_prefix
    )
