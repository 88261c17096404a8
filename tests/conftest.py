"""
Configuración compartida de fixtures para pytest
"""
import pytest

from sharding import metrics
from sharding.config import reset_config


def pytest_configure(config):
    """Registrar markers personalizados"""
    config.addinivalue_line("markers", "slow: tests con muestras grandes de claves")
    config.addinivalue_line("markers", "concurrency: tests con múltiples hilos")


@pytest.fixture(autouse=True)
def clean_state():
    """Métricas activadas y configuración sin cachear en cada test."""
    metrics.set_enabled(True)
    reset_config()
    yield
    metrics.set_enabled(True)
    reset_config()


@pytest.fixture
def sample_keys():
    """Muestra de claves para tests de distribución."""
    return [f"key-{i}" for i in range(2000)]


@pytest.fixture
def shard_ids():
    return ["shard-0", "shard-1", "shard-2"]
