"""Redis cache facade.

Key layout:
- Plain values: {key}
- Auto-suffixed values: {prefix}:{n}, counter at {prefix}
"""

from .facade import CacheFacade, prefix_pattern, serialize_value
from .protocol import KeyValueStore

__all__ = [
    "CacheFacade",
    "KeyValueStore",
    "prefix_pattern",
    "serialize_value",
]
