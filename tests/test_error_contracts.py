from __future__ import annotations

import json

import pytest

from probetable.contracts.error import (
    BadInputError,
    CapacityExhaustedError,
    ErrorEnvelope,
    Exit,
    InvariantError,
    IOErrorEnvelope,
    PolicyError,
    guard_cli,
)


def _raise(exc: Exception) -> int:
    raise exc


@pytest.mark.parametrize(
    "exc, code, label",
    [
        (BadInputError("bad row"), Exit.BAD_INPUT, "BadInput"),
        (InvariantError("broken slot"), Exit.INVARIANT, "Invariant"),
        (PolicyError("nope"), Exit.POLICY, "Policy"),
        (CapacityExhaustedError("no more primes"), Exit.CAPACITY, "CapacityExhausted"),
        (IOErrorEnvelope("disk"), Exit.IO, "IO"),
        (FileNotFoundError("gone.csv"), Exit.IO, "FileNotFound"),
    ],
)
def test_guard_cli_maps_errors_to_exit_codes(
    exc: Exception, code: Exit, label: str, capsys: pytest.CaptureFixture[str]
) -> None:
    with pytest.raises(SystemExit) as excinfo:
        guard_cli(_raise)(exc)
    assert excinfo.value.code == int(code)
    envelope = json.loads(capsys.readouterr().err.strip().splitlines()[-1])
    assert envelope["error"] == label
    assert str(exc) in envelope["detail"]


def test_guard_cli_passes_through_results() -> None:
    assert guard_cli(lambda: 0)() == 0


def test_hint_is_carried_into_envelope(capsys: pytest.CaptureFixture[str]) -> None:
    with pytest.raises(SystemExit):
        guard_cli(_raise)(BadInputError("bad header", hint="use op,key,value"))
    envelope = json.loads(capsys.readouterr().err.strip())
    assert envelope == {"error": "BadInput", "detail": "bad header", "hint": "use op,key,value"}


def test_envelope_omits_empty_hint() -> None:
    payload = json.loads(ErrorEnvelope(error="IO", detail="x").to_json())
    assert payload == {"error": "IO", "detail": "x"}


def test_capacity_exhausted_is_a_policy_error() -> None:
    assert issubclass(CapacityExhaustedError, PolicyError)
