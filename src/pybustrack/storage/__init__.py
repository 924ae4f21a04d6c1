"""Storage collaborators.

The tracking core depends only on the :class:`Storage` protocol.
"""

from pybustrack.storage.base import Storage
from pybustrack.storage.memory import InMemoryStorage

__all__ = ["InMemoryStorage", "Storage"]
