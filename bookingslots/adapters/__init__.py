"""
Adapters layer - External integrations (scheduling provider).
"""

from .mock_provider_client import MockProviderClient
from .provider_client import HttpProviderClient, ProviderClientProtocol
from .records import parse_busy_block, parse_worker

__all__ = [
    "HttpProviderClient",
    "MockProviderClient",
    "ProviderClientProtocol",
    "parse_busy_block",
    "parse_worker",
]
