"""
Tests para configuración, logging, métricas y fábricas.
"""
import logging

import pytest
from prometheus_client import REGISTRY

from sharding import metrics
from sharding.base import StrategyType
from sharding.config import (
    Config,
    ObservabilityConfig,
    ShardingConfig,
    get_config,
    reset_config,
    setup_logging,
)
from sharding.consistent_hash import ConsistentHashStrategy
from sharding.coordinator import Coordinator, create_coordinator, create_strategy
from sharding.exceptions import ConfigurationError
from sharding.range_strategy import RangeStrategy
from sharding.round_robin import RoundRobinStrategy


def _sample(name, labels=None):
    return REGISTRY.get_sample_value(name, labels or {}) or 0.0


def test_defaults(monkeypatch):
    """Test valores por defecto sin variables de entorno."""
    for var in ("SHARD_COUNT", "SHARD_STRATEGY", "VIRTUAL_NODES_PER_SHARD",
                "SHARD_ID_PREFIX", "LOG_LEVEL", "METRICS_ENABLED"):
        monkeypatch.delenv(var, raising=False)

    config = Config()

    assert config.sharding.shard_count == 3
    assert config.sharding.strategy is StrategyType.HASH
    assert config.sharding.virtual_nodes_per_shard == 150
    assert config.sharding.shard_id(2) == "shard-2"
    assert config.observability.log_level == "INFO"
    assert config.observability.metrics_enabled is True


def test_from_environment(monkeypatch):
    """Test lectura de variables de entorno."""
    monkeypatch.setenv("SHARD_COUNT", "5")
    monkeypatch.setenv("SHARD_STRATEGY", "Consistent_Hash")
    monkeypatch.setenv("VIRTUAL_NODES_PER_SHARD", "20")
    monkeypatch.setenv("SHARD_ID_PREFIX", "node")
    monkeypatch.setenv("LOG_LEVEL", "debug")
    monkeypatch.setenv("METRICS_ENABLED", "false")

    config = get_config()

    assert config.sharding.shard_count == 5
    assert config.sharding.strategy is StrategyType.CONSISTENT_HASH
    assert config.sharding.virtual_nodes_per_shard == 20
    assert config.sharding.shard_id(0) == "node-0"
    assert config.observability.log_level == "DEBUG"
    assert config.observability.metrics_enabled is False


def test_unknown_strategy_falls_back(caplog):
    with caplog.at_level(logging.WARNING, logger="sharding.config"):
        config = ShardingConfig(strategy="modulo")

    assert config.strategy is StrategyType.HASH
    assert "modulo" in caplog.text


def test_invalid_values_clamped():
    config = ShardingConfig(shard_count=-2, virtual_nodes_per_shard=0, shard_id_prefix="")

    assert config.shard_count == 0
    assert config.virtual_nodes_per_shard == 1
    assert config.shard_id_prefix == "shard"

    assert ObservabilityConfig(log_level="VERBOSE").log_level == "INFO"


def test_config_is_cached(monkeypatch):
    """Test get_config cachea hasta reset_config."""
    monkeypatch.setenv("SHARD_COUNT", "4")
    first = get_config()

    monkeypatch.setenv("SHARD_COUNT", "7")
    assert get_config() is first
    assert get_config().sharding.shard_count == 4

    reset_config()
    assert get_config().sharding.shard_count == 7


def test_setup_logging():
    """Test handler en stdout con el nivel pedido."""
    root_logger = logging.getLogger()
    saved_handlers = list(root_logger.handlers)
    saved_level = root_logger.level

    try:
        setup_logging("WARNING")

        assert root_logger.level == logging.WARNING
        assert len(root_logger.handlers) == 1
        assert isinstance(root_logger.handlers[0], logging.StreamHandler)
    finally:
        root_logger.handlers[:] = saved_handlers
        root_logger.setLevel(saved_level)


class TestFactories:

    def test_create_strategy_by_value(self, shard_ids):
        assert isinstance(create_strategy("round_robin"), RoundRobinStrategy)

        ring = create_strategy(StrategyType.CONSISTENT_HASH, shard_ids, virtual_nodes_per_shard=10)
        assert isinstance(ring, ConsistentHashStrategy)
        assert len(ring.ring) == 30

        ranges = create_strategy("range", shard_ids)
        assert isinstance(ranges, RangeStrategy)
        assert ranges.get_shards() == shard_ids

    def test_create_strategy_unknown(self):
        with pytest.raises(ConfigurationError):
            create_strategy("random")

    def test_create_coordinator(self):
        config = Config(
            sharding=ShardingConfig(
                shard_count=4,
                strategy=StrategyType.CONSISTENT_HASH,
                virtual_nodes_per_shard=50,
                shard_id_prefix="db"
            ),
            observability=ObservabilityConfig(metrics_enabled=True)
        )

        coordinator = create_coordinator(config)

        assert isinstance(coordinator, Coordinator)
        assert [shard.id for shard in coordinator.shards] == ["db-0", "db-1", "db-2", "db-3"]
        assert coordinator.strategy.get_shards() == ["db-0", "db-1", "db-2", "db-3"]

        coordinator.insert("k", 1)
        assert coordinator.query("k") == 1

        added = coordinator.add_shard()
        assert added.id == "db-4"

    def test_consistent_hash_coordinator_distributes(self):
        """Test consistent hashing por configuración reparte entre todos los shards."""
        config = Config(
            sharding=ShardingConfig(shard_count=4, strategy=StrategyType.CONSISTENT_HASH)
        )
        coordinator = create_coordinator(config)

        for i in range(2000):
            coordinator.insert(f"user:{i}", i)

        assert all(count > 0 for count in coordinator.get_shard_distribution())
        assert coordinator.get_distribution_stats().balance > 0.5

    def test_create_coordinator_from_environment(self, monkeypatch):
        monkeypatch.setenv("SHARD_COUNT", "2")
        monkeypatch.setenv("SHARD_STRATEGY", "round_robin")

        coordinator = create_coordinator()

        assert coordinator.shard_count == 2
        assert coordinator.strategy_name == "RoundRobinStrategy"


class TestMetrics:

    def test_operations_counted(self):
        coordinator = Coordinator(2)
        before = _sample("sharding_operations_total", {"operation": "insert"})

        coordinator.insert("a", 1)

        after = _sample("sharding_operations_total", {"operation": "insert"})
        assert after == before + 1

    def test_shard_entries_gauge(self):
        coordinator = Coordinator(shard_ids=["gauge-shard"])
        coordinator.insert("a", 1)
        coordinator.insert("b", 2)

        assert _sample("sharding_shard_entries", {"shard_id": "gauge-shard"}) == 2.0

    def test_strategy_switch_counted(self):
        coordinator = Coordinator(2)
        before = _sample("sharding_strategy_switches_total")

        coordinator.switch_strategy(RoundRobinStrategy())

        assert _sample("sharding_strategy_switches_total") == before + 1

    def test_disabled_metrics_not_recorded(self):
        coordinator = Coordinator(2)
        metrics.set_enabled(False)
        before = _sample("sharding_operations_total", {"operation": "query"})

        coordinator.query("a")

        assert not metrics.is_enabled()
        assert _sample("sharding_operations_total", {"operation": "query"}) == before

    def test_create_coordinator_disables_metrics(self):
        config = Config(observability=ObservabilityConfig(metrics_enabled=False))

        create_coordinator(config)

        assert not metrics.is_enabled()

    def test_export(self):
        Coordinator(1).insert("a", 1)

        output = metrics.export_metrics()

        assert b"sharding_operations_total" in output
        assert b"sharding_resolve_latency_seconds" in output
