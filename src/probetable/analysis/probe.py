"""Probe-path tracing for :class:`LinearProbingMap` operations."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

from probetable.core.maps import LinearProbingMap
from probetable.core.slots import Slot

ProbeTrace = Dict[str, Any]


def _json_friendly(value: Any) -> Any:
    """Return a JSON-serialisable representation of ``value``."""

    try:
        json.dumps(value)
        return value
    except (TypeError, ValueError):
        return repr(value)


def _occupied_step(map_obj: LinearProbingMap, idx: int, slot: Slot, key: Any) -> Dict[str, Any]:
    return {
        "state": "occupied",
        "key_repr": repr(slot.key),
        "value_repr": repr(slot.value),
        "ideal_slot": map_obj.hasher.bucket(slot.key, map_obj.capacity),
        "probe_distance": map_obj.probe_distance(idx),
        "matches": slot.key == key,
    }


def trace_probe_get(map_obj: LinearProbingMap, key: Any) -> ProbeTrace:
    storage = map_obj._storage  # pylint: disable=protected-access
    cap = len(storage)
    start_idx = map_obj.hasher.bucket(key, cap)
    idx = start_idx
    path: List[Dict[str, Any]] = []
    found = False
    terminal = "overflow"
    for scanned in range(cap):
        slot = storage[idx]
        step: Dict[str, Any] = {"step": scanned, "slot": idx, "start_slot": start_idx}
        if slot.is_virgin:
            step["state"] = "virgin"
            path.append(step)
            terminal = "virgin"
            break
        if slot.is_tombstone:
            step["state"] = "tombstone"
        else:
            step.update(_occupied_step(map_obj, idx, slot, key))
        path.append(step)
        if step.get("matches"):
            terminal = "match"
            found = True
            break
        idx = (idx + 1) % cap
    return {
        "backend": "linear-probing",
        "operation": "get",
        "key_repr": repr(key),
        "found": found,
        "terminal": terminal,
        "capacity": cap,
        "prime_index": map_obj.prime_index,
        "path": path,
    }


def trace_probe_put(map_obj: LinearProbingMap, key: Any, value: Any) -> ProbeTrace:
    """Trace a PUT against a scratch copy so ``map_obj`` is left untouched."""

    sim = map_obj.copy()
    # Same ordering as LinearProbingMap.put: only a new entry can trigger growth.
    resized = False if sim.contains(key) else sim.resize_check()
    storage = sim._storage  # pylint: disable=protected-access
    cap = len(storage)
    idx = sim.hasher.bucket(key, cap)
    path: List[Dict[str, Any]] = []
    reuse_slot: Optional[int] = None
    virgin_slot: Optional[int] = None
    update_slot: Optional[int] = None
    for steps in range(cap):
        slot = storage[idx]
        step: Dict[str, Any] = {"step": steps, "slot": idx, "candidate_key": repr(key)}
        if slot.is_virgin:
            step.update({"state": "virgin", "action": "stop"})
            path.append(step)
            virgin_slot = idx
            break
        if slot.is_tombstone:
            step.update({"state": "tombstone", "action": "advance"})
            if reuse_slot is None:
                reuse_slot = idx
                step["action"] = "remember"
            path.append(step)
        else:
            step.update(_occupied_step(sim, idx, slot, key))
            step["action"] = "update" if step["matches"] else "advance"
            path.append(step)
            if step["matches"]:
                update_slot = idx
                break
        idx = (idx + 1) % cap

    if update_slot is not None:
        terminal, target = "update", update_slot
    elif reuse_slot is not None:
        terminal, target = "reuse-tombstone", reuse_slot
    elif virgin_slot is not None:
        terminal, target = "insert", virgin_slot
    else:
        terminal, target = "exhausted", None
    return {
        "backend": "linear-probing",
        "operation": "put",
        "key_repr": repr(key),
        "value_repr": _json_friendly(value),
        "terminal": terminal,
        "target_slot": target,
        "capacity": cap,
        "prime_index": sim.prime_index,
        "resized": resized,
        "path": path,
    }


def trace_probe_delete(map_obj: LinearProbingMap, key: Any) -> ProbeTrace:
    trace = trace_probe_get(map_obj, key)
    trace["operation"] = "del"
    if trace["found"]:
        trace["terminal"] = "tombstone-marked"
    return trace


def format_trace_lines(
    trace: Dict[str, Any],
    *,
    seeds: Optional[Sequence[str]] = None,
    export_path: Optional[Union[str, Path]] = None,
) -> List[str]:
    """Return a human-friendly rendering of a probe trace."""

    lines: List[str] = []
    operation = trace.get("operation", "?")
    key_repr = trace.get("key_repr", "?")
    lines.append(f"Probe visualization [{trace.get('backend', '?')}] {operation.upper()} key={key_repr}")
    if "found" in trace:
        lines.append(f"Found: {trace.get('found')} | Terminal: {trace.get('terminal')}")
    else:
        lines.append(f"Terminal: {trace.get('terminal')} | Target slot: {trace.get('target_slot')}")
    if "capacity" in trace:
        capacity_line = f"Capacity: {trace['capacity']}"
        if trace.get("resized"):
            capacity_line += " (after resize)"
        lines.append(capacity_line)
    if seeds:
        lines.append("Seed entries: " + ", ".join(seeds))
    lines.append("Steps:")
    path = trace.get("path")
    if not isinstance(path, list) or not path:
        lines.append("  (no path recorded)")
    else:
        for item in path:
            if not isinstance(item, dict):
                lines.append(f"  {item!r}")
                continue
            prefix = f"  Step {item['step']}: " if "step" in item else "  Item: "
            attrs: List[str] = []
            for key in (
                "slot",
                "start_slot",
                "state",
                "action",
                "ideal_slot",
                "probe_distance",
                "matches",
                "key_repr",
                "candidate_key",
            ):
                if key in item and item[key] is not None:
                    value = item[key]
                    if isinstance(value, bool):
                        value = str(value).lower()
                    attrs.append(f"{key}={value}")
            if not attrs:
                attrs.append(", ".join(f"{k}={v}" for k, v in item.items()))
            lines.append(prefix + ", ".join(attrs))
    if export_path:
        lines.append(f"Trace JSON written to: {export_path}")
    return lines


__all__ = [
    "ProbeTrace",
    "format_trace_lines",
    "trace_probe_delete",
    "trace_probe_get",
    "trace_probe_put",
]
