"""
Traveler Common Module

Shared infrastructure for the curator and the ingress servers.
"""

from .config import TravelerConfig, ReceiverConfig, load_config, load_receiver_config
from .errors import (
    TravelerError,
    ConfigurationError,
    AuthenticationError,
    ValidationError,
    UpstreamError,
    StateError,
)
from .openclaw_client import OpenClawClient
from .rote_client import RoteClient

__all__ = [
    "TravelerConfig",
    "ReceiverConfig",
    "load_config",
    "load_receiver_config",
    "TravelerError",
    "ConfigurationError",
    "AuthenticationError",
    "ValidationError",
    "UpstreamError",
    "StateError",
    "OpenClawClient",
    "RoteClient",
]
