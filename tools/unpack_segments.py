"""Rebuild a survey snapshot from scanned QR segment texts (one JSON per line)."""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Sequence

from dematel_core.errors import TransportError
from dematel_core.record import snapshot_filename, snapshot_text
from dematel_core.transport import unpack


def main(argv: Sequence[str] | None = None) -> int:
    ap = argparse.ArgumentParser(description=__doc__)
    ap.add_argument("segments", help="text file, one scanned segment per line")
    ap.add_argument("--out-dir", default=None, help="save as dematel-survey-<id>.json in this directory")
    args = ap.parse_args(list(argv) if argv is not None else None)

    logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(message)s")
    lines = [ln for ln in Path(args.segments).read_text(encoding="utf-8").splitlines() if ln.strip()]
    try:
        record = unpack(lines)
    except TransportError as exc:
        logging.error("%s: %s", type(exc).__name__, exc)
        return 1

    text = snapshot_text(record)
    if args.out_dir:
        out = Path(args.out_dir) / snapshot_filename(str(record.get("surveyId", "unknown")))
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_text(text, encoding="utf-8")
        logging.info("wrote %s", out)
    else:
        sys.stdout.write(text + "\n")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
