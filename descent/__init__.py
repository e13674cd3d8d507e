"""Front-end helpers for the Eternity's Descent game service."""

from .config import BotConfig, ConfigError
from .gateway import BackendGateway, GatewayError, GatewayTimeout, TransportError

__all__ = [
    "BackendGateway",
    "BotConfig",
    "ConfigError",
    "GatewayError",
    "GatewayTimeout",
    "TransportError",
]
