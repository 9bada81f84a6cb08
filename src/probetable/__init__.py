"""Linear-probing hash table with lazy deletion and prime-sized growth."""

from . import analysis, contracts, core
from .core import LinearProbingMap, Lookup, MISSING

__all__ = [
    "LinearProbingMap",
    "Lookup",
    "MISSING",
    "analysis",
    "contracts",
    "core",
]
