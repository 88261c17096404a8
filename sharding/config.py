"""
Configuración del sistema de sharding.

Todas las variables de entorno se documentan aquí:

    SHARD_COUNT               Número de shards iniciales (3)
    SHARD_STRATEGY            hash | round_robin | consistent_hash | range (hash)
    VIRTUAL_NODES_PER_SHARD   Nodos virtuales por shard en consistent hashing (150)
    SHARD_ID_PREFIX           Prefijo de los IDs de shard (shard)
    LOG_LEVEL                 DEBUG, INFO, WARNING, ERROR (INFO)
    METRICS_ENABLED           true | false (true)
"""
import logging
import os
import sys
import threading
from dataclasses import dataclass, field
from typing import Optional

from sharding.base import StrategyType

logger = logging.getLogger(__name__)


def _parse_strategy(value: str) -> StrategyType:
    try:
        return StrategyType(value.strip().lower())
    except ValueError:
        logger.warning(f"SHARD_STRATEGY desconocida '{value}', usando 'hash'")
        return StrategyType.HASH


@dataclass
class ShardingConfig:
    """Configuración del coordinador y de las estrategias"""
    shard_count: int = field(default_factory=lambda: int(os.getenv("SHARD_COUNT", "3")))
    strategy: StrategyType = field(
        default_factory=lambda: _parse_strategy(os.getenv("SHARD_STRATEGY", "hash"))
    )
    virtual_nodes_per_shard: int = field(
        default_factory=lambda: int(os.getenv("VIRTUAL_NODES_PER_SHARD", "150"))
    )
    shard_id_prefix: str = field(default_factory=lambda: os.getenv("SHARD_ID_PREFIX", "shard"))

    def __post_init__(self):
        if isinstance(self.strategy, str):
            self.strategy = _parse_strategy(self.strategy)
        if self.shard_count < 0:
            self.shard_count = 0
        if self.virtual_nodes_per_shard < 1:
            self.virtual_nodes_per_shard = 1
        if not self.shard_id_prefix:
            self.shard_id_prefix = "shard"

    def shard_id(self, index: int) -> str:
        return f"{self.shard_id_prefix}-{index}"


@dataclass
class ObservabilityConfig:
    """Configuración de logging y métricas"""
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO").upper())
    metrics_enabled: bool = field(
        default_factory=lambda: os.getenv("METRICS_ENABLED", "true").lower() == "true"
    )

    def __post_init__(self):
        if self.log_level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            self.log_level = "INFO"


@dataclass
class Config:
    """Configuración completa"""
    sharding: ShardingConfig = field(default_factory=ShardingConfig)
    observability: ObservabilityConfig = field(default_factory=ObservabilityConfig)


_config: Optional[Config] = None
_config_lock = threading.Lock()


def get_config() -> Config:
    """Instancia de configuración cacheada (leída del entorno la primera vez)."""
    global _config
    if _config is None:
        with _config_lock:
            if _config is None:
                _config = Config()
    return _config


def reset_config():
    """Descarta la configuración cacheada; la próxima lectura vuelve al entorno."""
    global _config
    with _config_lock:
        _config = None


# Configurar logging con UTF-8
def setup_logging(level: Optional[str] = None):
    """Configura logging con soporte UTF-8."""
    # Crear handler con encoding UTF-8
    handler = logging.StreamHandler(sys.stdout)

    # Intentar configurar UTF-8, con fallback al encoding por defecto
    try:
        if hasattr(handler.stream, 'reconfigure'):
            handler.stream.reconfigure(encoding='utf-8', errors='replace')
    except (OSError, ValueError):
        pass

    handler.setFormatter(
        logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
    )

    # Configurar root logger
    root_logger = logging.getLogger()
    root_logger.setLevel(level or get_config().observability.log_level)
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
