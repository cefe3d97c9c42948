"""cache-facade.

Async Redis facade with explicit operation results:
- redis_client: CacheFacade and the store protocol it depends on
- models: OperationResult and OperationStatus
- config: Configuration management
- observability: Structured logging
"""

from cache_facade.models import OperationResult, OperationStatus
from cache_facade.redis_client import CacheFacade, KeyValueStore

__version__ = "0.1.0"

__all__ = [
    "CacheFacade",
    "KeyValueStore",
    "OperationResult",
    "OperationStatus",
]
