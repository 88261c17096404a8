"""
Métricas Prometheus para monitoreo del sharding.
"""
from prometheus_client import Counter, Histogram, Gauge, generate_latest, REGISTRY
import time
from functools import wraps
import logging

logger = logging.getLogger(__name__)

_enabled = True


# Definir métricas
operations = Counter(
    'sharding_operations_total',
    'Operaciones del coordinador',
    ['operation']
)

shard_operations = Counter(
    'sharding_shard_operations_total',
    'Operaciones por shard',
    ['shard_id', 'operation']
)

shard_entries = Gauge(
    'sharding_shard_entries',
    'Entradas almacenadas por shard',
    ['shard_id']
)

strategy_switches = Counter(
    'sharding_strategy_switches_total',
    'Cambios de estrategia de sharding'
)

resolve_latency = Histogram(
    'sharding_resolve_latency_seconds',
    'Latencia de resolución de shard',
    ['strategy'],
    buckets=(0.00001, 0.0001, 0.001, 0.01, 0.1)
)


def set_enabled(enabled: bool):
    """Activa o desactiva el registro de métricas."""
    global _enabled
    _enabled = bool(enabled)
    logger.debug(f"Métricas {'activadas' if _enabled else 'desactivadas'}")


def is_enabled() -> bool:
    return _enabled


def record_operation(operation: str):
    if _enabled:
        operations.labels(operation=operation).inc()


def record_shard_operation(shard_id: str, operation: str):
    if _enabled:
        shard_operations.labels(shard_id=shard_id, operation=operation).inc()


def set_shard_entries(shard_id: str, count: int):
    if _enabled:
        shard_entries.labels(shard_id=shard_id).set(count)


def record_strategy_switch():
    if _enabled:
        strategy_switches.inc()


def track_resolve_latency(func):
    """Decorator para medir la latencia de resolve() por estrategia."""
    @wraps(func)
    def wrapper(self, *args, **kwargs):
        if not _enabled:
            return func(self, *args, **kwargs)
        start = time.perf_counter()
        try:
            return func(self, *args, **kwargs)
        finally:
            latency = time.perf_counter() - start
            resolve_latency.labels(strategy=type(self).__name__).observe(latency)
    return wrapper


def export_metrics() -> bytes:
    """Exporta métricas en formato Prometheus."""
    return generate_latest(REGISTRY)
