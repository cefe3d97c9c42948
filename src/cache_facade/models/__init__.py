"""Data models for cache-facade.

All models follow these conventions:
- Field names: lowercase snake_case
- Enums: uppercase SNAKE_CASE
"""

from .base import CacheBaseModel
from .result import OperationResult, OperationStatus

__all__ = [
    "CacheBaseModel",
    "OperationResult",
    "OperationStatus",
]
