"""Spreadsheet layout for a submitted answer payload.

One sheet per survey: a ``key``/``value`` block with the flattened payload
(answers excluded), a blank row, then one block per label cluster with the
``answers.matrix_<n>`` header in columns A-B and the labelled grid starting
at column B.
"""
from __future__ import annotations

import csv
import io
import json
import math
import re
import time
from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Sequence, Tuple

from . import config
from .matrix import build_all, report_block

__all__ = [
    "sanitize_sheet_name",
    "format_timestamp",
    "flatten",
    "build_rows",
    "to_csv",
]

_SHEET_BAD_CHARS = re.compile(r"[:\\/?*\[\]]")
_TIME_FIELDS: tuple[str, ...] = ("startTime", "endTime")


def sanitize_sheet_name(name: Any) -> str:
    s = _SHEET_BAD_CHARS.sub("_", str(name))[: config.SHEET_NAME_MAX]
    if not s.strip():
        s = f"sheet_{int(time.time() * 1000)}"
    return s


def _parse_datetime(text: str) -> datetime | None:
    raw = text.strip()
    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(raw)
    except ValueError:
        return None


def format_timestamp(value: Any) -> str:
    """``YYYY-MM-DD HH:MM:SS`` in local time.

    Numbers above 1e12 are epoch milliseconds, above 1e9 epoch seconds,
    anything smaller is taken as milliseconds.  Unparsable strings and
    numbers outside the platform time range are returned unchanged.
    """

    if value is None or value == "":
        return ""
    if isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value):
        ms = value if value > 1e12 else (value * 1000 if value > 1e9 else value)
        try:
            dt = datetime.fromtimestamp(ms / 1000)
        except (OverflowError, OSError, ValueError):
            return str(value)
    else:
        parsed = _parse_datetime(str(value))
        if parsed is None:
            return str(value)
        dt = parsed.astimezone() if parsed.tzinfo is not None else parsed
    return dt.strftime("%Y-%m-%d %H:%M:%S")


def _cell_text(x: Any) -> str:
    if isinstance(x, (dict, list)):
        return json.dumps(x, ensure_ascii=False, separators=(",", ":"))
    if isinstance(x, bool):
        return "true" if x else "false"
    return "null" if x is None else str(x)


def flatten(obj: Mapping[str, Any], prefix: str = "", skip: Sequence[str] = ()) -> List[Tuple[str, Any]]:
    """Flatten nested objects into dotted ``(key, value)`` pairs."""

    kv: List[Tuple[str, Any]] = []
    for key, val in obj.items():
        if key in skip:
            continue
        name = f"{prefix}.{key}" if prefix else str(key)
        if val is None:
            kv.append((name, ""))
        elif isinstance(val, list):
            kv.append((name, ", ".join(_cell_text(x) for x in val)))
        elif isinstance(val, dict):
            kv.extend(flatten(val, name))
        else:
            kv.append((name, val))
    return kv


def build_rows(payload: Mapping[str, Any]) -> List[List[Any]]:
    """Full sheet content as a list of rows (ragged; short rows are padded by the writer)."""

    head: Dict[str, Any] = dict(payload)
    for key in _TIME_FIELDS:
        if key in head:
            head[key] = format_timestamp(head[key])

    rows: List[List[Any]] = [["key", "value"]]
    rows.extend([k, v] for k, v in flatten(head, skip=("answers",)))
    rows.append([])

    answers = payload.get("answers")
    if isinstance(answers, Mapping):
        for n, (_cluster, matrix) in enumerate(build_all(answers), start=1):
            block = report_block(n, matrix)
            rows.append(block[0])
            rows.extend([""] + grid_row for grid_row in block[1:])
            rows.append([])
    return rows


def to_csv(rows: Iterable[Sequence[Any]]) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf)
    for row in rows:
        writer.writerow(list(row))
    return buf.getvalue()
