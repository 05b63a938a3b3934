"""Pairwise question space.

Dimension pairs come first, then criteria pairs over the flattened criteria
list.  The ordering and the ``<category>:<idA>|<idB>`` keys must stay stable
across runs: saved answers are resumed against regenerated keys.
"""
from __future__ import annotations

import logging
from typing import Dict, List, Mapping, Sequence, Tuple

from . import config
from .errors import ConfigurationError
from .structure import all_criteria
from .types import Dimension, Item, PairwiseQuestion

log = logging.getLogger(__name__)

__all__ = [
    "validate_dimensions",
    "question_key",
    "strip_category",
    "generate",
    "split_phases",
    "progress",
]


def validate_dimensions(dimensions: Sequence[Dimension]) -> None:
    if len(dimensions) < 2:
        raise ConfigurationError("at least 2 dimensions are required")
    total_criteria = sum(len(d.criteria) for d in dimensions)
    if total_criteria < 2:
        raise ConfigurationError("at least 2 criteria in total are required for comparison")

    dim_codes: set[str] = set()
    crit_codes: set[str] = set()
    for dim in dimensions:
        if dim.code in dim_codes:
            raise ConfigurationError(f"duplicate dimension code: {dim.code}")
        dim_codes.add(dim.code)
        for crit in dim.criteria:
            if crit.code in crit_codes:
                raise ConfigurationError(f"duplicate criterion code: {crit.code}")
            crit_codes.add(crit.code)


def question_key(category: str, id_a: str, id_b: str) -> str:
    return f"{category}:{id_a}|{id_b}"


def strip_category(key: str) -> str:
    """``"criteria:A1|B2"`` -> ``"A1|B2"``; keys without a prefix are unchanged."""

    _, sep, rest = key.partition(":")
    return rest if sep else key


def _pairs(category: str, items: Sequence[Item]) -> List[PairwiseQuestion]:
    out: List[PairwiseQuestion] = []
    for i in range(len(items)):
        for j in range(i + 1, len(items)):
            a, b = items[i], items[j]
            out.append(PairwiseQuestion(category=category, key=question_key(category, a.id, b.id), item_a=a, item_b=b))
    return out


def _dimension_items(dimensions: Sequence[Dimension]) -> List[Item]:
    return [Item(id=d.code, name=d.name, description=d.description) for d in dimensions]


def _criteria_items(dimensions: Sequence[Dimension]) -> List[Item]:
    return [
        Item(
            id=c.code,
            name=c.name,
            description=c.description,
            examples=tuple(c.examples),
            dimension_id=d.code,
            dimension_name=d.name,
        )
        for d, c in all_criteria(dimensions)
    ]


def generate(dimensions: Sequence[Dimension]) -> List[PairwiseQuestion]:
    """Build every dimension pair followed by every criteria pair."""

    validate_dimensions(dimensions)
    questions = _pairs("dimension", _dimension_items(dimensions))
    questions += _pairs("criteria", _criteria_items(dimensions))
    if len(questions) > config.QUESTION_SOFT_LIMIT:
        log.warning(
            "question space has %d questions (soft limit %d); respondents may give up",
            len(questions),
            config.QUESTION_SOFT_LIMIT,
        )
    return questions


def split_phases(questions: Sequence[PairwiseQuestion]) -> Tuple[List[PairwiseQuestion], List[PairwiseQuestion]]:
    dims = [q for q in questions if q.category == "dimension"]
    crits = [q for q in questions if q.category == "criteria"]
    return dims, crits


def _answered(value: object) -> bool:
    if value is None:
        return False
    if isinstance(value, Mapping):
        relation = value.get("relation")
    else:
        relation = getattr(value, "relation", None)
    return relation != "skipped"


def progress(questions: Sequence[PairwiseQuestion], answers: Mapping[str, object]) -> Dict[str, object]:
    dims, crits = split_phases(questions)
    dim_done = sum(1 for q in dims if _answered(answers.get(q.key)))
    crit_done = sum(1 for q in crits if _answered(answers.get(q.key)))
    total = len(dims) + len(crits)
    # half-up, not banker's rounding
    percent = int((dim_done + crit_done) * 100 / total + 0.5) if total else 0
    return {
        "dimension": {"answered": dim_done, "total": len(dims)},
        "criteria": {"answered": crit_done, "total": len(crits)},
        "percent": percent,
    }
