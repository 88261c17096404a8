"""
Tests para RangeStrategy (rangos de slots).
"""
import pytest

from sharding import RangeStrategy, SlotRange
from sharding.exceptions import ConfigurationError
from sharding.range_strategy import MAX_SLOT, MIN_SLOT, key_slot


def _assert_contiguous(ranges):
    ordered = sorted(ranges.values(), key=lambda r: r.start)
    assert ordered[0].start == MIN_SLOT
    assert ordered[-1].end == MAX_SLOT
    for previous, current in zip(ordered, ordered[1:]):
        assert current.start == previous.end + 1


def test_ranges_cover_slot_space(shard_ids):
    """Test rangos contiguos y sin solapamiento."""
    strategy = RangeStrategy(shard_ids)
    ranges = strategy.get_all_ranges()

    _assert_contiguous(ranges)
    assert ranges["shard-0"] == SlotRange(0, 21845)
    assert ranges["shard-1"] == SlotRange(21846, 43690)
    assert ranges["shard-2"] == SlotRange(43691, 65535)


def test_resolve_uses_slot(shard_ids, sample_keys):
    strategy = RangeStrategy(shard_ids)

    for key in sample_keys[:300]:
        shard_id = strategy.resolve(key)
        assert strategy.get_shard_range(shard_id).contains(key_slot(key))


def test_add_and_remove_recalculate(shard_ids):
    strategy = RangeStrategy(shard_ids)

    strategy.add_shard("shard-3")
    assert len(strategy.get_all_ranges()) == 4
    _assert_contiguous(strategy.get_all_ranges())

    strategy.remove_shard("shard-0")
    strategy.remove_shard("missing")
    assert strategy.get_shard_range("shard-0") is None
    _assert_contiguous(strategy.get_all_ranges())


def test_zero_shards_raises():
    with pytest.raises(ConfigurationError):
        RangeStrategy().resolve("key")


def test_custom_ranges_validation():
    """Test rangos personalizados inválidos."""
    strategy = RangeStrategy()

    with pytest.raises(ConfigurationError):
        strategy.set_custom_ranges({"a": SlotRange(0, 100), "b": SlotRange(50, 200)})

    with pytest.raises(ConfigurationError):
        strategy.set_custom_ranges({"a": SlotRange(10, 5)})

    with pytest.raises(ConfigurationError):
        strategy.set_custom_ranges({"a": SlotRange(0, MAX_SLOT + 1)})

    assert strategy.get_shards() == []


def test_custom_ranges_gap_fails_at_resolve():
    strategy = RangeStrategy()
    strategy.set_custom_ranges({"a": SlotRange(0, 0)})

    key = next(k for k in (f"k{i}" for i in range(1000)) if key_slot(k) != 0)
    with pytest.raises(ConfigurationError):
        strategy.resolve(key)


def test_rebalance_reports_moves():
    """Test rebalanceo desde rangos personalizados."""
    strategy = RangeStrategy()
    strategy.set_custom_ranges({"a": SlotRange(0, 100), "b": SlotRange(101, MAX_SLOT)})

    migration = strategy.rebalance()

    assert migration["a"] == ["101-32767 from b"]
    assert migration["b"] == []
    assert strategy.get_shard_range("a") == SlotRange(0, 32767)


def test_range_stats(shard_ids):
    stats = RangeStrategy(shard_ids).get_range_stats()

    assert stats["total_range_size"] == 65536
    assert stats["max_range_size"] - stats["min_range_size"] == 1

    empty = RangeStrategy().get_range_stats()
    assert empty["total_range_size"] == 0


def test_distribution_stats(shard_ids, sample_keys):
    stats = RangeStrategy(shard_ids).get_distribution_stats(sample_keys)

    assert sum(stats.shards.values()) == len(sample_keys)
    assert 0.0 <= stats.balance <= 1.0
