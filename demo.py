"""
Script de demo rápido para probar el sistema de sharding.
"""
import sys

from sharding import (
    NOT_FOUND,
    ConsistentHashStrategy,
    Coordinator,
    ModuloHashStrategy,
    RangeStrategy,
    RoundRobinStrategy,
    create_coordinator,
)
from sharding.config import setup_logging


def print_distribution(coordinator):
    stats = coordinator.get_distribution_stats()
    for shard_id, count in stats.shards.items():
        print(f"     {shard_id:<10} {count:>5} {'#' * (count // 20)}")
    print(f"     media={stats.mean:.1f} desv={stats.std_dev:.1f} balance={stats.balance:.2f}")


def quick_demo():
    """Demo rápida del sistema."""
    print("="*70)
    print(" DistriShard - Almacén clave/valor particionado")
    print("="*70)

    keys = [f"user:{i}" for i in range(1000)]

    # Hash modular
    print("\n[1/5] Hash modular con 3 shards...")
    coordinator = Coordinator(3, ModuloHashStrategy())
    for key in ("key1", "key2", "key3"):
        coordinator.insert(key, {"key": key})
        print(f"  OK [{key}] -> shard {coordinator.get_shard_for_key(key)}")
    print(f"  query('key2') = {coordinator.query('key2')}")
    print(f"  query('missing') = {coordinator.query('missing')}")

    # Round robin
    print("\n[2/5] Round robin: la misma clave va a shards distintos...")
    coordinator = Coordinator(3, RoundRobinStrategy())
    for value in range(6):
        coordinator.insert("same-key", value)
    print(f"  Distribución: {coordinator.get_shard_distribution()}")
    print(f"  Balanceado: {'SI' if coordinator.is_balanced() else 'NO'}")

    # Consistent hashing
    print("\n[3/5] Consistent hashing (150 nodos virtuales por shard)...")
    shard_ids = [f"shard-{i}" for i in range(4)]
    coordinator = Coordinator(
        shard_ids=shard_ids,
        strategy=ConsistentHashStrategy(shard_ids)
    )
    for key in keys:
        coordinator.insert(key, key)
    print_distribution(coordinator)

    before = {key: coordinator.get_shard_for_key(key) for key in keys}
    before_ids = {key: coordinator.shards[index].id for key, index in before.items()}
    coordinator.add_shard()
    moved = sum(
        1 for key in keys
        if coordinator.shards[coordinator.get_shard_for_key(key)].id != before_ids[key]
    )
    print(f"  Añadido shard-4: {moved}/{len(keys)} claves cambiarían de shard")

    # Range
    print("\n[4/5] Rangos de slots...")
    ranges = RangeStrategy(["a", "b", "c"])
    for shard_id, slot_range in ranges.get_all_ranges().items():
        print(f"     {shard_id}: {slot_range}")

    # Cambio de estrategia
    print("\n[5/5] Cambio de estrategia sin migración...")
    coordinator = create_coordinator()
    coordinator.insert("a", 1)
    coordinator.insert("b", 2)
    coordinator.switch_strategy(RoundRobinStrategy())
    lost = sum(1 for key in ("a", "b") if coordinator.query(key) is NOT_FOUND)
    print(f"  Claves no encontradas tras el cambio: {lost}/2")
    print(f"  Datos siguen en los shards: {coordinator.query_all()}")

    # Resumen final
    print("\n" + "="*70)
    print(" RESUMEN")
    print("="*70)
    stats = coordinator.get_stats()
    print(f"  OK Shards: {stats['shard_count']}")
    print(f"  OK Registros: {stats['total_records']}")
    print(f"  OK Operaciones: {stats['operations']}")
    print(f"  OK Estrategia: {stats['strategy']}")
    print("="*70)


if __name__ == "__main__":
    setup_logging()
    try:
        quick_demo()
    except KeyboardInterrupt:
        print("\n\nAdvertencia: Demo interrumpida por usuario")
        sys.exit(0)
