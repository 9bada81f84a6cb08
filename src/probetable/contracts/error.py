"""Exception hierarchy, exit codes, and the CLI error envelope for probetable."""

from __future__ import annotations

import json
import logging
import sys
from collections.abc import Callable
from dataclasses import dataclass
from enum import IntEnum
from functools import wraps
from typing import Any, NoReturn, TypeVar

logger = logging.getLogger(__name__)
T = TypeVar("T")


class Exit(IntEnum):
    """Process exit codes returned by the probetable CLI."""

    OK = 0
    BAD_INPUT = 2
    INVARIANT = 3
    POLICY = 4
    IO = 5
    CAPACITY = 6


@dataclass(slots=True)
class ErrorEnvelope:
    """One-line JSON error written to stderr when a command fails."""

    error: str
    detail: str
    hint: str | None = None

    def to_json(self) -> str:
        payload = {"error": self.error, "detail": self.detail}
        if self.hint:
            payload["hint"] = self.hint
        return json.dumps(payload, ensure_ascii=False)


def die(code: Exit, kind: str, detail: str, hint: str | None = None) -> NoReturn:
    """Write an error envelope to stderr and exit with ``code``."""

    env = ErrorEnvelope(error=kind, detail=detail, hint=hint)
    sys.stderr.write(env.to_json() + "\n")
    try:
        sys.stderr.flush()
    finally:
        sys.exit(int(code))


class EnvelopeError(Exception):
    """Base class for errors that carry an optional remediation hint."""

    def __init__(self, message: str, *, hint: str | None = None) -> None:
        super().__init__(message)
        self.hint = hint


class BadInputError(EnvelopeError):
    """Malformed user input: CSV rows, config files, command flags."""


class InvariantError(EnvelopeError):
    """A table or slot invariant would be broken (bad transition, bad hasher)."""


class PolicyError(EnvelopeError):
    """The requested operation is not supported by the table's policy."""


class CapacityExhaustedError(PolicyError):
    """Growth asked for a capacity beyond the end of the prime schedule."""


class IOErrorEnvelope(EnvelopeError):  # noqa: N818 - mirrors OSError naming
    """File-system failures surfaced to the CLI."""


# Subclasses must precede their bases.
_EXCEPTION_ORDER: tuple[tuple[type[EnvelopeError], Exit, str], ...] = (
    (BadInputError, Exit.BAD_INPUT, "BadInput"),
    (InvariantError, Exit.INVARIANT, "Invariant"),
    (CapacityExhaustedError, Exit.CAPACITY, "CapacityExhausted"),
    (PolicyError, Exit.POLICY, "Policy"),
    (IOErrorEnvelope, Exit.IO, "IO"),
)


def guard_cli(fn: Callable[..., T]) -> Callable[..., T]:
    """Map raised envelope errors of a CLI handler onto exit codes."""

    @wraps(fn)
    def _wrapped(*args: Any, **kwargs: Any) -> T:
        try:
            return fn(*args, **kwargs)
        except EnvelopeError as exc:
            for exc_type, exit_code, label in _EXCEPTION_ORDER:
                if isinstance(exc, exc_type):
                    die(exit_code, label, str(exc), hint=exc.hint)
            die(Exit.POLICY, "UnhandledEnvelope", str(exc), hint=exc.hint)
        except FileNotFoundError as exc:
            die(Exit.IO, "FileNotFound", str(exc))
        except Exception as exc:  # pragma: no cover - last-resort envelope
            logger.exception("Unhandled CLI exception")
            die(Exit.POLICY, "Unhandled", f"{type(exc).__name__}: {exc}")

    return _wrapped


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
