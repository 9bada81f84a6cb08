"""JSON-schema contract for run-csv summaries."""

from __future__ import annotations

import json
from functools import lru_cache
from importlib import resources
from pathlib import Path
from typing import Any

from jsonschema import Draft202012Validator

from .error import BadInputError, IOErrorEnvelope

SUMMARY_SCHEMA = "probetable.summary.v1"


@lru_cache(maxsize=1)
def load_summary_schema() -> dict[str, Any]:
    schema_resource = resources.files("probetable.contracts") / "summary_schema.json"
    with schema_resource.open(encoding="utf-8") as stream:
        return json.load(stream)


def summary_errors(obj: Any) -> list[str]:
    """Return human-readable schema violations (empty when valid)."""

    validator = Draft202012Validator(load_summary_schema())
    errors = sorted(validator.iter_errors(obj), key=lambda err: list(err.path))
    messages = [f"{err.message} @ {list(err.path)}" for err in errors]
    if not errors and isinstance(obj, dict):
        final = obj["final"]
        if obj["inserts"] - obj["dels_removed"] != final["size"]:
            messages.append(
                f"inserts ({obj['inserts']}) - dels_removed ({obj['dels_removed']}) "
                f"!= final size ({final['size']})"
            )
        if obj["get_hits"] + obj["get_misses"] != obj["gets"]:
            messages.append("get_hits + get_misses != gets")
    return messages


def validate_summary_file(path: str | Path) -> dict[str, Any]:
    summary_path = Path(path)
    try:
        obj = json.loads(summary_path.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise IOErrorEnvelope(f"Summary not found: {summary_path}") from exc
    except json.JSONDecodeError as exc:
        raise BadInputError(f"Summary is not valid JSON: {exc}") from exc
    problems = summary_errors(obj)
    if problems:
        raise BadInputError(
            f"Summary {summary_path} violates {SUMMARY_SCHEMA}: " + "; ".join(problems),
            hint="Regenerate it with `probetable run-csv --json-summary-out`.",
        )
    return obj


__all__ = ["SUMMARY_SCHEMA", "load_summary_schema", "summary_errors", "validate_summary_file"]
