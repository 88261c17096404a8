"""
Sharding por rangos sobre un espacio fijo de slots.
"""
import logging
from dataclasses import dataclass
from typing import Dict, List

from sharding.base import NamedShardStrategy, StrategyType
from sharding.exceptions import ConfigurationError, validate_key
from sharding.hash_strategy import rolling_hash
from sharding.metrics import track_resolve_latency

logger = logging.getLogger(__name__)

MIN_SLOT = 0
MAX_SLOT = 65535


@dataclass(frozen=True)
class SlotRange:
    """Rango cerrado [start, end] de slots."""
    start: int
    end: int

    @property
    def size(self) -> int:
        return self.end - self.start + 1

    def contains(self, slot: int) -> bool:
        return self.start <= slot <= self.end

    def overlaps(self, other: "SlotRange") -> bool:
        return not (self.end < other.start or other.end < self.start)

    def __str__(self) -> str:
        return f"{self.start}-{self.end}"


def key_slot(key: str) -> int:
    """Slot (0..65535) de una clave."""
    validate_key(key)
    return MIN_SLOT + abs(rolling_hash(key)) % (MAX_SLOT - MIN_SLOT + 1)


def _validate_slot(slot: int):
    if isinstance(slot, bool) or not isinstance(slot, int) or not MIN_SLOT <= slot <= MAX_SLOT:
        raise ConfigurationError(
            f"Slot inválido: {slot!r}. Debe estar entre {MIN_SLOT} y {MAX_SLOT}",
            field="slot",
            value=slot
        )


class RangeStrategy(NamedShardStrategy):
    """
    Divide el espacio de slots en rangos contiguos, uno por shard.

    Añadir o quitar un shard recalcula todos los rangos.
    """

    strategy_type = StrategyType.RANGE

    def __init__(self, shards=()):
        super().__init__()
        self._ranges: Dict[str, SlotRange] = {}

        for shard_id in shards:
            self.add_shard(shard_id)

    def add_shard(self, shard_id: str):
        validate_key(shard_id)
        with self._lock:
            if shard_id in self._shards:
                return
            self._shards.append(shard_id)
            self._recalculate_ranges()

        logger.debug(f"RangeStrategy: shard {shard_id} añadido")

    def remove_shard(self, shard_id: str):
        with self._lock:
            if shard_id not in self._shards:
                return
            self._shards.remove(shard_id)
            self._recalculate_ranges()

        logger.debug(f"RangeStrategy: shard {shard_id} removido")

    def _recalculate_ranges(self):
        # Llamar con self._lock tomado
        self._ranges = {}
        if not self._shards:
            return

        total_slots = MAX_SLOT - MIN_SLOT + 1
        slots_per_shard, remainder = divmod(total_slots, len(self._shards))

        current_start = MIN_SLOT
        for i, shard_id in enumerate(self._shards):
            size = slots_per_shard + (1 if i < remainder else 0)
            self._ranges[shard_id] = SlotRange(current_start, current_start + size - 1)
            current_start += size

    @track_resolve_latency
    def resolve(self, key: str, shard_count: int = None) -> str:
        return super().resolve(key, shard_count)

    def _lookup(self, key: str) -> str:
        slot = key_slot(key)
        for shard_id, slot_range in self._ranges.items():
            if slot_range.contains(slot):
                return shard_id

        raise ConfigurationError(
            f"Ningún shard cubre el slot {slot}",
            field="slot",
            value=slot
        )

    def get_shard_range(self, shard_id: str):
        """Rango del shard o None."""
        with self._lock:
            return self._ranges.get(shard_id)

    def get_all_ranges(self) -> Dict[str, SlotRange]:
        with self._lock:
            return dict(self._ranges)

    def set_custom_ranges(self, ranges: Dict[str, SlotRange]):
        """
        Reemplaza los rangos calculados por rangos explícitos.

        Los huecos están permitidos; las claves que caigan en un hueco
        fallan al resolverse.

        Raises:
            ConfigurationError: si un rango está fuera de límites, invertido
                o se solapa con otro
        """
        checked: Dict[str, SlotRange] = {}

        for shard_id, slot_range in ranges.items():
            validate_key(shard_id)
            _validate_slot(slot_range.start)
            _validate_slot(slot_range.end)
            if slot_range.start > slot_range.end:
                raise ConfigurationError(
                    f"Rango inválido para shard {shard_id}: start > end",
                    field=shard_id,
                    value=str(slot_range)
                )

            for other_id, other in checked.items():
                if slot_range.overlaps(other):
                    raise ConfigurationError(
                        f"Rangos solapados: {other_id} [{other}] y {shard_id} [{slot_range}]",
                        field=shard_id,
                        value=str(slot_range)
                    )
            checked[shard_id] = slot_range

        with self._lock:
            self._shards = list(checked.keys())
            self._ranges = checked

        logger.info(f"RangeStrategy: {len(checked)} rangos personalizados aplicados")

    def get_range_stats(self) -> Dict:
        with self._lock:
            sizes = [r.size for r in self._ranges.values()]

        if not sizes:
            return {
                "total_range_size": 0,
                "average_range_size": 0.0,
                "min_range_size": 0,
                "max_range_size": 0,
                "range_imbalance": 0.0,
            }

        total = sum(sizes)
        average = total / len(sizes)
        return {
            "total_range_size": total,
            "average_range_size": average,
            "min_range_size": min(sizes),
            "max_range_size": max(sizes),
            "range_imbalance": (max(sizes) - min(sizes)) / average if average > 0 else 0.0,
        }

    def rebalance(self) -> Dict[str, List[str]]:
        """
        Recalcula los rangos y describe qué slots cambian de dueño.

        Returns:
            {shard_nuevo: ["start-end from shard_viejo", ...]}
        """
        with self._lock:
            old_ranges = dict(self._ranges)
            self._recalculate_ranges()
            new_ranges = dict(self._ranges)

        migration: Dict[str, List[str]] = {}
        for new_id, new_range in new_ranges.items():
            moves = []
            for old_id, old_range in old_ranges.items():
                if old_id == new_id:
                    continue
                start = max(new_range.start, old_range.start)
                end = min(new_range.end, old_range.end)
                if start <= end:
                    moves.append(f"{start}-{end} from {old_id}")
            migration[new_id] = moves

        logger.info(
            f"RangeStrategy: rebalanceo con "
            f"{sum(len(m) for m in migration.values())} movimientos de slots"
        )
        return migration

    def get_stats(self) -> Dict:
        stats = self.get_range_stats()
        stats["type"] = self.strategy_type.value
        stats["shards"] = self.get_shards()
        return stats

    def __repr__(self) -> str:
        return f"RangeStrategy(shards={len(self._shards)})"
