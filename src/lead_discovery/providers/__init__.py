"""Provider API clients.

- WizaClient: asynchronous prospect lists (primary)
- HunterClient / HunterFallbackSearch: synchronous email search (fallback)
"""

from .base import BaseProviderClient
from .hunter import HunterClient, HunterFallbackSearch
from .wiza import WizaClient

__all__ = [
    "BaseProviderClient",
    "HunterClient",
    "HunterFallbackSearch",
    "WizaClient",
]
