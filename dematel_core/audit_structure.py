from __future__ import annotations

import argparse
import json
from math import comb
from pathlib import Path
from typing import Iterable, Sequence

from . import config
from .structure import load_structure
from .types import Dimension


def _blank_dimension(dim: Dimension) -> dict[str, object]:
    return {
        "name": dim.name,
        "criteria": len(dim.criteria),
        "missing_name": 0,
        "missing_description": 0,
        "with_examples": 0,
    }


def audit_dimensions(dimensions: Iterable[Dimension]) -> dict[str, object]:
    dims = list(dimensions)
    coverage: dict[str, dict[str, object]] = {}
    criteria_total = 0

    for dim in dims:
        data = coverage.setdefault(dim.code, _blank_dimension(dim))
        for crit in dim.criteria:
            criteria_total += 1
            if not crit.name.strip():
                data["missing_name"] += 1
            if not crit.description.strip():
                data["missing_description"] += 1
            if crit.examples:
                data["with_examples"] += 1

    totals = {
        "dimensions": len(dims),
        "criteria": criteria_total,
        "dimension_questions": comb(len(dims), 2),
        "criteria_questions": comb(criteria_total, 2),
    }
    totals["questions"] = totals["dimension_questions"] + totals["criteria_questions"]

    warnings: list[str] = []
    for dim in dims:
        data = coverage[dim.code]
        if not dim.name.strip():
            warnings.append(f"dimension {dim.code} has no name")
        if not data["criteria"]:
            warnings.append(f"dimension {dim.code} has no criteria")
        if data["missing_name"]:
            warnings.append(f"dimension {dim.code} has {data['missing_name']} criteria without a name")
        if data["missing_description"]:
            warnings.append(f"dimension {dim.code} has {data['missing_description']} criteria without a description")
    if totals["questions"] > config.QUESTION_SOFT_LIMIT:
        warnings.append(f"{totals['questions']} questions exceed the soft limit of {config.QUESTION_SOFT_LIMIT}")

    return {"coverage": coverage, "warnings": warnings, "totals": totals}


def print_report(summary: dict[str, object]) -> None:
    coverage: dict[str, dict[str, object]] = summary["coverage"]  # type: ignore[assignment]
    print("=== Structure Coverage ===")
    for code, data in coverage.items():
        print(f"\nDimension {code}: {data['name']}")
        print(f"  criteria: {data['criteria']:3d}  with examples: {data['with_examples']:3d}")
        if data["missing_name"] or data["missing_description"]:
            print(f"    missing name: {data['missing_name']}  missing description: {data['missing_description']}")

    warnings: list[str] = summary["warnings"]  # type: ignore[assignment]
    if warnings:
        print("\nWarnings:")
        for msg in warnings:
            print(f" - {msg}")
    else:
        print("\nNo warnings.")

    print("\nTotals:", summary["totals"])


def write_summary(summary: dict[str, object], path: Path = Path("/tmp/structure_audit.json")) -> str:
    text = json.dumps(summary, indent=2, sort_keys=True, ensure_ascii=False)
    path.write_text(text + "\n", encoding="utf-8")
    print(text)
    return text


def main(argv: Sequence[str] | None = None) -> int:
    ap = argparse.ArgumentParser(description="Audit a DEMATEL structure file")
    ap.add_argument("path", nargs="?", default=None, help="structure JSON (default: bundled sample)")
    ap.add_argument("--out", default="/tmp/structure_audit.json")
    args = ap.parse_args(list(argv) if argv is not None else None)

    structure = load_structure(args.path)
    summary = audit_dimensions(structure.dimensions)
    print_report(summary)
    write_summary(summary, Path(args.out))
    return 2 if summary["warnings"] else 0


if __name__ == "__main__":
    raise SystemExit(main())
