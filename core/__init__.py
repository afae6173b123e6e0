"""
hostfault Core Module
Fault lifecycle engine: plugin contract, registry, supervision and exhaustion pool.
"""

from .config import Config
from .errors import FaultError, PreconditionError, ExecutionError, DiscoveryError
from .logger import setup_logging

__all__ = [
    'Config',
    'FaultError',
    'PreconditionError',
    'ExecutionError',
    'DiscoveryError',
    'setup_logging'
]
