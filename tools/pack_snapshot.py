"""Pack a downloaded survey snapshot into QR segment texts (one JSON per line)."""
from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Sequence

from dematel_core import config
from dematel_core.errors import ConfigurationError
from dematel_core.structure import load_structure, verify_config_digest
from dematel_core.transport import pack, segment_to_text


def main(argv: Sequence[str] | None = None) -> int:
    ap = argparse.ArgumentParser(description=__doc__)
    ap.add_argument("snapshot", help="dematel-survey-<id>.json")
    ap.add_argument("--budget", type=int, default=config.SEGMENT_BUDGET)
    ap.add_argument("--structure", default=None, help="structure file the survey was taken against (default: STRUCTURE_PATH or bundled sample)")
    ap.add_argument("--skip-config-check", action="store_true", help="pack even if the structure digest differs")
    ap.add_argument("--out", default=None, help="write segments here instead of stdout")
    ap.add_argument("-v", "--verbose", action="store_true")
    args = ap.parse_args(list(argv) if argv is not None else None)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO, format="[%(levelname)s] %(message)s")
    record = json.loads(Path(args.snapshot).read_text(encoding="utf-8"))
    if not args.skip_config_check:
        try:
            verify_config_digest(record, load_structure(args.structure))
        except ConfigurationError as exc:
            logging.error("%s", exc)
            return 1
    segments = pack(record, args.budget)
    lines = "\n".join(segment_to_text(s) for s in segments) + "\n"
    if args.out:
        Path(args.out).write_text(lines, encoding="utf-8")
        logging.info("wrote %d segment(s) to %s", len(segments), args.out)
    else:
        sys.stdout.write(lines)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
