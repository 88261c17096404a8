"""
Excepciones del subsistema de sharding.
"""
from typing import Any, Dict, List, Optional


class ShardingError(Exception):
    """
    Excepción base para todos los errores de sharding.
    """

    def __init__(
        self,
        message: str,
        code: str = "SHARDING_ERROR",
        details: Optional[List[Dict[str, Any]]] = None
    ):
        self.message = message
        self.code = code
        self.details = details or []
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Serializa la excepción para reportes."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details
        }


class ConfigurationError(ShardingError):
    """Configuración inválida (cero shards, nodos virtuales, rangos...)."""

    def __init__(self, message: str, field: Optional[str] = None, value: Any = None):
        details = []
        if field:
            details.append({"field": field, "value": value})

        super().__init__(
            message=message,
            code="CONFIGURATION_ERROR",
            details=details
        )


class InvalidKeyError(ShardingError, TypeError):
    """La clave no es un string."""

    def __init__(self, key: Any):
        super().__init__(
            message=f"Clave inválida: se esperaba str, se recibió {type(key).__name__}",
            code="INVALID_KEY",
            details=[{"field": "key", "type": type(key).__name__}]
        )


class InvalidValueError(ShardingError, ValueError):
    """El valor no puede almacenarse (p. ej. el centinela NOT_FOUND)."""

    def __init__(self, message: str):
        super().__init__(message=message, code="INVALID_VALUE")


class ShardNotFoundError(ShardingError, LookupError):
    """La estrategia resolvió un shard que el coordinador no tiene."""

    def __init__(self, shard_id: Any):
        super().__init__(
            message=f"Shard no encontrado: {shard_id}",
            code="SHARD_NOT_FOUND",
            details=[{"field": "shard_id", "value": shard_id}]
        )


def validate_key(key: Any) -> str:
    """
    Verifica que la clave sea un string.

    Raises:
        InvalidKeyError: si la clave es None o no es str
    """
    if not isinstance(key, str):
        raise InvalidKeyError(key)
    return key


def validate_shard_count(shard_count: Any) -> int:
    """
    Verifica que el número de shards sea un entero positivo.

    Raises:
        ConfigurationError: si shard_count <= 0 o no es entero
    """
    if isinstance(shard_count, bool) or not isinstance(shard_count, int):
        raise ConfigurationError(
            f"shard_count debe ser un entero, se recibió {shard_count!r}",
            field="shard_count",
            value=shard_count
        )
    if shard_count <= 0:
        raise ConfigurationError(
            f"No hay shards disponibles (shard_count={shard_count})",
            field="shard_count",
            value=shard_count
        )
    return shard_count
