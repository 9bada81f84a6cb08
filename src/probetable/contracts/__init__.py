"""Error contracts shared by the table core and the CLI."""

from .error import (
    BadInputError,
    CapacityExhaustedError,
    EnvelopeError,
    ErrorEnvelope,
    Exit,
    InvariantError,
    IOErrorEnvelope,
    PolicyError,
    die,
    guard_cli,
)

__all__ = [
    "Exit",
    "ErrorEnvelope",
    "EnvelopeError",
    "BadInputError",
    "InvariantError",
    "PolicyError",
    "CapacityExhaustedError",
    "IOErrorEnvelope",
    "guard_cli",
    "die",
]
