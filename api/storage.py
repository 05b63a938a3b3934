"""File-backed storage for rendered answer sheets and the submission history.

Each submitted survey gets one CSV "sheet" named after its survey id, and
every raw submission is appended to ``history.csv``, mirroring the
spreadsheet the reporting backend originally wrote to.
"""

from __future__ import annotations

import csv
import io
import json
import os
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from dematel_core import config
from dematel_core.sheet import to_csv


DATA_ROOT = Path(os.getenv("DATA_DIR", "data")).resolve()
SHEETS_DIR = DATA_ROOT / "sheets"
HISTORY_PATH = DATA_ROOT / f"{config.HISTORY_SHEET_NAME}.csv"
HISTORY_HEADERS: tuple[str, ...] = ("timestamp", "surveyId", "json")

_LOCK = threading.Lock()


def _ensure_dirs() -> None:
    SHEETS_DIR.mkdir(parents=True, exist_ok=True)
    DATA_ROOT.mkdir(parents=True, exist_ok=True)


def _write_text(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    tmp.write_text(text, encoding="utf-8", newline="")
    tmp.replace(path)


def utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def sheet_path(name: str) -> Path:
    return SHEETS_DIR / f"{name}.csv"


def save_sheet(name: str, rows: Sequence[Sequence[Any]]) -> Path:
    """Replace the whole sheet ``name`` with ``rows``."""

    _ensure_dirs()
    path = sheet_path(name)
    with _LOCK:
        _write_text(path, to_csv(rows))
    return path


def load_sheet(name: str) -> Optional[str]:
    path = sheet_path(name)
    if not path.exists():
        return None
    return path.read_text(encoding="utf-8")


def append_history(survey_id: str, payload: Dict[str, Any]) -> None:
    _ensure_dirs()
    row = [utcnow_iso(), survey_id, json.dumps(payload, ensure_ascii=False, separators=(",", ":"))]
    with _LOCK:
        new_file = not HISTORY_PATH.exists() or HISTORY_PATH.stat().st_size == 0
        buf = io.StringIO()
        writer = csv.writer(buf)
        if new_file:
            writer.writerow(HISTORY_HEADERS)
        writer.writerow(row)
        with HISTORY_PATH.open("a", encoding="utf-8", newline="") as f:
            f.write(buf.getvalue())


def read_history() -> List[Dict[str, str]]:
    if not HISTORY_PATH.exists():
        return []
    with HISTORY_PATH.open("r", encoding="utf-8", newline="") as f:
        return list(csv.DictReader(f))


def list_sheets() -> List[str]:
    if not SHEETS_DIR.exists():
        return []
    return sorted(p.stem for p in SHEETS_DIR.glob("*.csv"))
