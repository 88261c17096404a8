"""
Tests para RoundRobinStrategy.
"""
import pytest

from sharding import RoundRobinStrategy
from sharding import round_robin
from sharding.exceptions import ConfigurationError, InvalidKeyError


def test_sequence_wraps():
    """Test n=3: cuatro llamadas devuelven 0, 1, 2, 0."""
    strategy = RoundRobinStrategy()

    results = [strategy.resolve(key, 3) for key in ("a", "b", "c", "d")]

    assert results == [0, 1, 2, 0]


def test_same_key_different_shards():
    """Test la misma clave va a shards distintos según el orden de llamada."""
    strategy = RoundRobinStrategy()

    assert strategy.resolve("key1", 2) == 0
    assert strategy.resolve("key1", 2) == 1


def test_peek_does_not_advance():
    """Test peek_next no muta el contador."""
    strategy = RoundRobinStrategy()
    strategy.resolve("a", 3)

    assert strategy.peek_next(3) == 1
    assert strategy.peek_next(3) == 1
    assert strategy.resolve("b", 3) == 1


def test_reset():
    """Test reset vuelve a 0."""
    strategy = RoundRobinStrategy()
    for _ in range(5):
        strategy.resolve("x", 4)

    strategy.reset()

    assert strategy.counter == 0
    assert strategy.operation_count == 5
    assert strategy.resolve("x", 4) == 0


def test_zero_shards_raises():
    """Test shard_count == 0 falla sin avanzar el contador."""
    strategy = RoundRobinStrategy()

    with pytest.raises(ConfigurationError):
        strategy.resolve("x", 0)

    with pytest.raises(ConfigurationError):
        strategy.peek_next(0)

    assert strategy.counter == 0


def test_invalid_key_raises():
    strategy = RoundRobinStrategy()

    with pytest.raises(InvalidKeyError):
        strategy.resolve(None, 2)


def test_counter_wraps_before_safe_integer(monkeypatch):
    """Test el contador vuelve a 0 al llegar al máximo."""
    monkeypatch.setattr(round_robin, "MAX_SAFE_INTEGER", 5)
    strategy = RoundRobinStrategy()

    results = [strategy.resolve("k", 10) for _ in range(7)]

    assert results == [0, 1, 2, 3, 4, 0, 1]


def test_clone_and_stats():
    """Test clone copia el contador."""
    strategy = RoundRobinStrategy()
    strategy.resolve("a", 3)
    strategy.resolve("b", 3)

    cloned = strategy.clone()

    assert cloned.counter == 2
    assert cloned.operation_count == 0
    assert cloned.resolve("c", 3) == strategy.resolve("c", 3) == 2

    stats = strategy.get_stats()
    assert stats["type"] == "round_robin"
    assert stats["counter"] == 3
    assert stats["operations"] == 3
