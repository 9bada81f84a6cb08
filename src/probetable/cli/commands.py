"""CLI command registration and handlers for probetable."""

from __future__ import annotations

import argparse
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple

from probetable.analysis import (
    format_trace_lines,
    trace_probe_delete,
    trace_probe_get,
    trace_probe_put,
)
from probetable.contracts.error import BadInputError, Exit, IOErrorEnvelope
from probetable.core.maps import LinearProbingMap


@dataclass(frozen=True)
class CLIContext:
    """Runtime hooks supplied by the top-level CLI entrypoint."""

    emit_success: Callable[..., None]
    build_table: Callable[[], LinearProbingMap]
    run_csv: Callable[..., Dict[str, Any]]
    load_ops: Callable[..., List[Tuple[str, str, Optional[str]]]]
    iter_seed_entries: Callable[[List[str]], Iterator[Tuple[str, str]]]
    validate_summary: Callable[[str], Dict[str, Any]]
    logger: logging.Logger
    guard: Callable[[Callable[[argparse.Namespace], int]], Callable[[argparse.Namespace], int]]


def register_subcommands(
    subparsers: argparse._SubParsersAction[argparse.ArgumentParser],
    ctx: CLIContext,
) -> Dict[str, Callable[[argparse.Namespace], int]]:
    """Define CLI subcommands and return their guarded handlers."""

    handlers: Dict[str, Callable[[argparse.Namespace], int]] = {}

    def _register(
        name: str,
        help_text: Optional[str],
        configure: Callable[[argparse.ArgumentParser], Callable[[argparse.Namespace], int]],
    ) -> None:
        parser = subparsers.add_parser(name, help=help_text)
        handler = configure(parser)
        handlers[name] = ctx.guard(handler)

    _register(
        "run-csv",
        "Replay an op,key,value CSV workload and summarise table behaviour.",
        lambda parser: _configure_run_csv(parser, ctx),
    )
    _register(
        "probe-visualize",
        "Trace the probe walk of a GET/PUT/DEL (text/JSON).",
        lambda parser: _configure_probe_visualize(parser, ctx),
    )
    _register(
        "validate-summary",
        "Check a run-csv JSON summary against the probetable.summary.v1 schema.",
        lambda parser: _configure_validate_summary(parser, ctx),
    )
    return handlers


def _configure_run_csv(
    parser: argparse.ArgumentParser, ctx: CLIContext
) -> Callable[[argparse.Namespace], int]:
    parser.add_argument("--csv", required=True)
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Validate the CSV workload and exit without executing it",
    )
    parser.add_argument(
        "--csv-max-rows",
        type=int,
        default=5_000_000,
        help="Abort if CSV rows exceed this count (0 disables check)",
    )
    parser.add_argument("--json-summary-out", default=None, help="Write the summary JSON here")
    parser.add_argument(
        "--dump", action="store_true", help="Print every slot of the final table"
    )

    def handler(args: argparse.Namespace) -> int:
        result = ctx.run_csv(
            args.csv,
            dump=args.dump,
            json_summary_out=args.json_summary_out,
            csv_max_rows=args.csv_max_rows,
            dry_run=args.dry_run,
        )
        if result.get("status") == "validated":
            text = f"Validated {result.get('rows', 0)} rows"
        else:
            final = result["summary"]["final"]
            text = (
                f"Replayed {result['summary']['total_ops']} ops: size={final['size']} "
                f"capacity={final['capacity']} tombstones={final['tombstones']} "
                f"load_factor={final['load_factor']:.3f}"
            )
            if args.dump:
                text = "\n".join([text, *result.get("dump", [])])
        data = {"csv": args.csv, **result}
        ctx.emit_success("run-csv", text=text, data=data)
        return int(Exit.OK)

    return handler


def _configure_probe_visualize(
    parser: argparse.ArgumentParser, ctx: CLIContext
) -> Callable[[argparse.Namespace], int]:
    parser.add_argument(
        "--operation",
        "--op",
        dest="operation",
        choices=["get", "put", "del"],
        required=True,
        help="Operation to trace",
    )
    parser.add_argument("--key", required=True, help="Key to probe")
    parser.add_argument("--value", help="Value for PUT operations")
    parser.add_argument(
        "--seed",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Seed the table with entries before tracing (repeatable)",
    )
    parser.add_argument(
        "--seed-csv",
        default=None,
        help="Replay an op,key,value CSV into the table before tracing",
    )
    parser.add_argument(
        "--export-json",
        help="Write the trace payload to a JSON file (indent=2)",
    )

    def handler(args: argparse.Namespace) -> int:
        if args.operation == "put" and args.value is None:
            raise BadInputError("PUT operation requires --value")

        table = ctx.build_table()
        if args.seed_csv:
            for op, key, value in ctx.load_ops(args.seed_csv):
                if op == "put":
                    table.put(key, value)
                elif op == "del":
                    table.delete(key)
        for key, value in ctx.iter_seed_entries(args.seed):
            table.put(key, value)

        if args.operation == "get":
            trace = trace_probe_get(table, args.key)
        elif args.operation == "put":
            trace = trace_probe_put(table, args.key, args.value)
        else:
            trace = trace_probe_delete(table, args.key)

        export_path: Optional[Path] = None
        if args.export_json:
            export_path = Path(args.export_json).expanduser().resolve()
            try:
                export_path.parent.mkdir(parents=True, exist_ok=True)
                export_path.write_text(json.dumps(trace, indent=2), encoding="utf-8")
            except OSError as exc:
                raise IOErrorEnvelope(f"Failed to write trace {export_path}: {exc}") from exc

        text_output = "\n".join(
            format_trace_lines(trace, seeds=args.seed, export_path=export_path)
        )
        payload: Dict[str, Any] = {"trace": trace}
        if args.seed:
            payload["seed_entries"] = list(args.seed)
        if export_path is not None:
            payload["export_json"] = str(export_path)

        ctx.emit_success("probe-visualize", text=text_output, data=payload)
        return int(Exit.OK)

    return handler


def _configure_validate_summary(
    parser: argparse.ArgumentParser, ctx: CLIContext
) -> Callable[[argparse.Namespace], int]:
    parser.add_argument("summary", help="Path written by run-csv --json-summary-out")

    def handler(args: argparse.Namespace) -> int:
        summary = ctx.validate_summary(args.summary)
        ctx.emit_success(
            "validate-summary",
            text=f"Summary valid ({summary['total_ops']} ops)",
            data={"summary_path": args.summary, "valid": True},
        )
        return int(Exit.OK)

    return handler


__all__ = ["CLIContext", "register_subcommands"]
