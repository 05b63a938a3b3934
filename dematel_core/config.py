from __future__ import annotations
import os, json, pathlib


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw.strip())
    except ValueError:
        return default


def _env_str(name: str, default: str) -> str:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip()


# QR transport
SEGMENT_BUDGET: int = 800
SEGMENT_OVERHEAD: int = 100
DIGEST_HEX_LEN: int = 16
TRANSPORT_VERSION: str = "1.0"
COMPRESSION_MODULE: str = "zlib"
COMPRESSION_LEVEL: int = 9

# auto-shorten thresholds
SHORTEN_MIN_LEN: int = 8
SHORTEN_MIN_GAIN: int = 2

# question space
QUESTION_SOFT_LIMIT: int = 5000
STRUCTURE_PATH: str = "dematel-structure.json"

# reporting backend
SHARED_KEY: str = ""
BACKEND_VERSION: str = "v2025-08-13-5"
HISTORY_SHEET_NAME: str = "history"
SHEET_NAME_MAX: int = 100

DEBUG_TRACE: bool = False

# // env overrides for staging/ops; defaults match the printed QR layout.
SEGMENT_BUDGET = _env_int("SEGMENT_BUDGET", SEGMENT_BUDGET)
SEGMENT_OVERHEAD = _env_int("SEGMENT_OVERHEAD", SEGMENT_OVERHEAD)
COMPRESSION_MODULE = _env_str("COMPRESSION_MODULE", COMPRESSION_MODULE)
QUESTION_SOFT_LIMIT = _env_int("QUESTION_SOFT_LIMIT", QUESTION_SOFT_LIMIT)
STRUCTURE_PATH = _env_str("STRUCTURE_PATH", STRUCTURE_PATH)
SHARED_KEY = os.getenv("SHARED_KEY", SHARED_KEY)
DEBUG_TRACE = _env_bool("DEBUG_TRACE", False)


def load_config() -> dict:
    cfg = {}
    p = pathlib.Path("config.json")
    if p.exists():
        try: cfg = json.loads(p.read_text(encoding="utf-8"))
        except (OSError, ValueError): cfg = {}
    e = os.environ
    if e.get("STRUCTURE_PATH"): cfg["STRUCTURE_PATH"] = e.get("STRUCTURE_PATH")
    if e.get("SEGMENT_BUDGET"): cfg["SEGMENT_BUDGET"] = _env_int("SEGMENT_BUDGET", SEGMENT_BUDGET)
    if e.get("COMPRESSION_MODULE"): cfg["COMPRESSION_MODULE"] = e.get("COMPRESSION_MODULE")
    cfg.setdefault("STRUCTURE_PATH", STRUCTURE_PATH)
    cfg.setdefault("SEGMENT_BUDGET", SEGMENT_BUDGET)
    cfg.setdefault("COMPRESSION_MODULE", COMPRESSION_MODULE)
    return cfg
