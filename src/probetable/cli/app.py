"""
app.py

Command-line front end for probetable:
- run-csv: replay an op,key,value workload against a fresh LinearProbingMap
  and report size, capacity growth, tombstones, and probe statistics
- probe-visualize: trace the probe walk of one GET/PUT/DEL (text or JSON)
- validate-summary: check a run-csv JSON summary against its bundled schema

Errors surface as one-line JSON envelopes on stderr with stable exit codes
(see probetable.contracts.error).
"""

from __future__ import annotations

import argparse
import contextlib
import csv
import json
import logging
import os
import sys
import time
from collections import Counter
from collections.abc import Iterator
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

from probetable.cli.commands import CLIContext, register_subcommands
from probetable.config import AppConfig, load_app_config
from probetable.contracts.error import BadInputError, IOErrorEnvelope, PolicyError, guard_cli
from probetable.contracts.summary import SUMMARY_SCHEMA, validate_summary_file
from probetable.core.maps import LinearProbingMap, collect_probe_histogram

# --------------------------------------------------------------------
# Logging
# --------------------------------------------------------------------
logger = logging.getLogger("probetable")

DEFAULT_LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DEFAULT_LOG_DATEFMT = "%Y-%m-%dT%H:%M:%S"
DEFAULT_LOG_MAX_BYTES = 5_000_000
DEFAULT_LOG_BACKUP_COUNT = 5
DEFAULT_CSV_MAX_ROWS = 5_000_000
CSV_HINT = "Expected header 'op,key,value' with ops put/get/del"


class JsonFormatter(logging.Formatter):
    """Render log records as JSON objects."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": self.formatTime(record, DEFAULT_LOG_DATEFMT),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        if record.stack_info:
            payload["stack"] = self.formatStack(record.stack_info)
        return json.dumps(payload, ensure_ascii=False)


def configure_logging(
    use_json: bool = False,
    log_file: str | None = None,
    *,
    max_bytes: int = DEFAULT_LOG_MAX_BYTES,
    backup_count: int = DEFAULT_LOG_BACKUP_COUNT,
    level: int = logging.INFO,
) -> None:
    """Configure console (and optional rotating file) logging."""

    formatter: logging.Formatter
    if use_json:
        formatter = JsonFormatter()
    else:
        formatter = logging.Formatter(DEFAULT_LOG_FORMAT, DEFAULT_LOG_DATEFMT)

    for handler in list(logger.handlers):
        with contextlib.suppress(Exception):
            handler.close()
        logger.removeHandler(handler)

    logger.setLevel(level)
    stream = logging.StreamHandler()
    stream.setFormatter(formatter)
    logger.addHandler(stream)

    if log_file:
        handler = RotatingFileHandler(log_file, maxBytes=max_bytes, backupCount=backup_count)
        handler.setFormatter(formatter)
        logger.addHandler(handler)


APP_CONFIG: AppConfig = AppConfig()
OUTPUT_JSON: bool = False


def set_app_config(cfg: AppConfig) -> None:
    global APP_CONFIG
    APP_CONFIG = cfg


def emit_success(
    command: str, *, text: str | None = None, data: dict[str, Any] | None = None
) -> None:
    if OUTPUT_JSON:
        payload: dict[str, Any] = {"ok": True, "command": command}
        if data:
            payload.update(data)
        if text is not None and "result" not in payload:
            payload["result"] = text
        print(json.dumps(payload, ensure_ascii=False))
    elif text is not None:
        print(text)


def build_table() -> LinearProbingMap:
    return APP_CONFIG.table.build_table()


# --------------------------------------------------------------------
# Ops runner
# --------------------------------------------------------------------
def run_op(m: LinearProbingMap, op: str, key: str, value: str | None) -> str:
    if op == "put":
        if value is None:
            raise ValueError("PUT operations require both key and value")
        return m.put(key, value)
    if op == "get":
        return str(m.get(key).value_or(""))
    if op == "del":
        return "1" if m.delete(key) else "0"
    raise ValueError(f"unknown op: {op}")


def load_ops(path: str, csv_max_rows: int = DEFAULT_CSV_MAX_ROWS) -> list[tuple[str, str, str | None]]:
    """Read and validate every row of an op,key,value CSV."""

    ops: list[tuple[str, str, str | None]] = []
    try:
        with open(path, newline="", encoding="utf-8") as f:
            reader = csv.DictReader(f)
            header = {fn.strip() for fn in (reader.fieldnames or [])}
            required = {"op", "key", "value"}
            missing = required - header
            if missing:
                raise BadInputError(
                    f"Missing header columns: {', '.join(sorted(missing))}", hint=CSV_HINT
                )
            unexpected = header - required
            if unexpected:
                raise BadInputError(
                    f"Unexpected column(s) in header: {', '.join(sorted(unexpected))}",
                    hint=CSV_HINT,
                )
            for row in reader:
                if csv_max_rows and csv_max_rows > 0 and len(ops) >= csv_max_rows:
                    raise BadInputError(
                        f"CSV row limit exceeded ({len(ops) + 1} > {csv_max_rows})", hint=CSV_HINT
                    )
                line_no = reader.line_num
                op = (row.get("op") or "").strip().lower()
                key = (row.get("key") or "").strip()
                value = row.get("value")
                if not op:
                    raise BadInputError(f"Missing op at line {line_no}", hint=CSV_HINT)
                if op not in {"put", "get", "del"}:
                    raise BadInputError(f"Unknown op '{op}' at line {line_no}", hint=CSV_HINT)
                if not key:
                    raise BadInputError(f"Missing key at line {line_no}", hint=CSV_HINT)
                if op == "put":
                    if value is None or value.strip() == "":
                        raise BadInputError(f"PUT missing value at line {line_no}", hint=CSV_HINT)
                else:
                    value = None
                ops.append((op, key, value))
    except FileNotFoundError as exc:
        raise IOErrorEnvelope(f"CSV not found: {path}") from exc
    except UnicodeDecodeError as exc:
        raise BadInputError(f"CSV is not valid UTF-8: {exc}", hint=CSV_HINT) from exc
    return ops


def iter_seed_entries(entries: list[str]) -> Iterator[tuple[str, str]]:
    for entry in entries:
        if "=" not in entry:
            raise BadInputError(f"Seed entry '{entry}' must be KEY=VALUE")
        key, value = entry.split("=", 1)
        if not key:
            raise BadInputError(f"Seed entry '{entry}' has an empty key")
        yield key, value


def run_csv(
    path: str,
    *,
    dump: bool = False,
    json_summary_out: str | None = None,
    csv_max_rows: int = DEFAULT_CSV_MAX_ROWS,
    dry_run: bool = False,
) -> dict[str, Any]:
    """Replay a CSV workload against a fresh table and return a result payload."""

    ops = load_ops(path, csv_max_rows)
    if dry_run:
        logger.info("Validation successful (%d rows)", len(ops))
        return {"status": "validated", "rows": len(ops)}

    table = build_table()
    counts: Counter[str] = Counter()
    start = time.perf_counter()
    for op, key, value in ops:
        out = run_op(table, op, key, value)
        counts[op] += 1
        if op == "put":
            counts[f"put_{out}"] += 1
        elif op == "get":
            # PUT values are validated non-empty, so "" only means a miss.
            counts["get_hits" if out else "get_misses"] += 1
        elif out == "1":
            counts["del_removed"] += 1
    elapsed = time.perf_counter() - start

    summary: dict[str, Any] = {
        "schema": SUMMARY_SCHEMA,
        "total_ops": len(ops),
        "puts": counts["put"],
        "gets": counts["get"],
        "dels": counts["del"],
        "inserts": counts["put_insert"] + counts["put_reuse-tombstone"],
        "updates": counts["put_update"],
        "tombstones_reused": counts["put_reuse-tombstone"],
        "get_hits": counts["get_hits"],
        "get_misses": counts["get_misses"],
        "dels_removed": counts["del_removed"],
        "elapsed_seconds": elapsed,
        "ops_per_second": (len(ops) / elapsed) if elapsed > 0 else None,
        "final": table.stats(),
        "probe_histogram": collect_probe_histogram(table),
    }
    logger.info(
        "Replayed %d ops: size=%d capacity=%d resizes=%d tombstones=%d",
        len(ops),
        len(table),
        table.capacity,
        table.resize_count,
        table.tombstone_count(),
    )

    if json_summary_out:
        out_path = Path(json_summary_out).expanduser()
        try:
            out_path.parent.mkdir(parents=True, exist_ok=True)
            out_path.write_text(json.dumps(summary, indent=2), encoding="utf-8")
        except OSError as exc:
            raise IOErrorEnvelope(f"Failed to write summary {out_path}: {exc}") from exc
        logger.info("Wrote JSON summary to %s", out_path)

    result: dict[str, Any] = {"status": "completed", "summary": summary}
    if dump:
        result["dump"] = table.dump_lines()
    return result


def main(argv: list[str]) -> int:
    p = argparse.ArgumentParser(
        description="Linear-probing hash table toolkit: workload replay and probe tracing."
    )
    p.add_argument("--log-json", action="store_true", help="Emit logs in JSON format")
    p.add_argument(
        "--log-file",
        default=None,
        help="Optional log file path (rotates at 5MB, keeps 5 backups by default)",
    )
    p.add_argument(
        "--log-max-bytes",
        type=int,
        default=DEFAULT_LOG_MAX_BYTES,
        help="Max bytes per log file before rotation (default: %(default)s)",
    )
    p.add_argument(
        "--log-backup-count",
        type=int,
        default=DEFAULT_LOG_BACKUP_COUNT,
        help="Number of rotated log files to keep (default: %(default)s)",
    )
    p.add_argument("--verbose", action="store_true", help="Log resizes and compactions (DEBUG)")
    p.add_argument(
        "--json", action="store_true", help="Emit machine-readable success output to stdout"
    )
    p.add_argument(
        "--config",
        default=None,
        help="Path to TOML config file (env: PROBETABLE_CONFIG)",
    )
    sub = p.add_subparsers(dest="cmd", required=True)

    ctx = CLIContext(
        emit_success=emit_success,
        build_table=build_table,
        run_csv=run_csv,
        load_ops=load_ops,
        iter_seed_entries=iter_seed_entries,
        validate_summary=validate_summary_file,
        logger=logger,
        guard=guard_cli,
    )
    handlers = register_subcommands(sub, ctx)

    args = p.parse_args(argv)

    global OUTPUT_JSON
    OUTPUT_JSON = bool(args.json)

    configure_logging(
        args.log_json,
        args.log_file,
        max_bytes=args.log_max_bytes,
        backup_count=args.log_backup_count,
        level=logging.DEBUG if args.verbose else logging.INFO,
    )

    cfg_path = args.config or os.getenv("PROBETABLE_CONFIG")
    cfg = guard_cli(load_app_config)(cfg_path)
    set_app_config(cfg)
    if cfg_path:
        logger.info("Loaded config from %s", cfg_path)

    handler = handlers.get(args.cmd)
    if handler is None:
        raise PolicyError(f"Unknown command {args.cmd}")
    return handler(args)


def console_main() -> None:
    """Entry point for console_scripts."""

    try:
        raise SystemExit(main(sys.argv[1:]))
    except SystemExit:
        raise
    except Exception as e:  # noqa: BLE001
        logger.exception("Fatal error: %s", e)
        raise SystemExit(2) from e


__all__ = [
    "JsonFormatter",
    "build_table",
    "configure_logging",
    "console_main",
    "emit_success",
    "iter_seed_entries",
    "load_ops",
    "main",
    "run_csv",
    "run_op",
    "set_app_config",
]


if __name__ == "__main__":
    console_main()
