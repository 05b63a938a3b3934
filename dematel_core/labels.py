"""Label graph over ``left|right`` answer keys.

Every valid key is an undirected edge; connected components become the
comparison clusters that get their own influence matrix.
"""
from __future__ import annotations

import math
import re
from collections import deque
from typing import Any, Dict, List, Mapping, NamedTuple, Optional, Tuple

from .types import LabelCluster

__all__ = [
    "AnswerRow",
    "natural_label_key",
    "compare_labels",
    "sort_labels",
    "to_number",
    "parse_rows",
    "build_clusters",
]

_LABEL_RX = re.compile(r"^([A-Za-z]+)(\d+)?$")


class AnswerRow(NamedTuple):
    left: str
    right: str
    score_a: float
    score_b: float


def natural_label_key(label: str) -> Tuple[str, int, int, str]:
    """Sort key: alphabetic prefix (case-insensitive), then numeric suffix.

    A label without a numeric suffix sorts before a suffixed one with the same
    prefix.  Labels outside the ``letters+digits`` shape compare by their
    lower-cased text.
    """

    text = str(label)
    m = _LABEL_RX.match(text)
    if not m:
        return (text.lower(), 0, 0, text)
    prefix, digits = m.group(1), m.group(2)
    if digits is None:
        return (prefix.lower(), 0, 0, text)
    return (prefix.lower(), 1, int(digits), text)


def compare_labels(a: str, b: str) -> int:
    ka, kb = natural_label_key(a), natural_label_key(b)
    return (ka > kb) - (ka < kb)


def sort_labels(labels) -> List[str]:
    return sorted(labels, key=natural_label_key)


def to_number(token: Any) -> float:
    """Coerce a score token; anything non-numeric or non-finite becomes 0."""

    if token is None:
        return 0
    try:
        val = float(str(token).strip())
    except ValueError:
        return 0
    if not math.isfinite(val):
        return 0
    return int(val) if val.is_integer() else val


def _split_key(key: Any) -> Optional[Tuple[str, str]]:
    if not isinstance(key, str) or "|" not in key:
        return None
    parts = key.split("|")
    left, right = parts[0].strip(), parts[1].strip()
    if not left or not right:
        return None
    return left, right


def parse_rows(raw_answers: Mapping[str, Any]) -> List[AnswerRow]:
    """Valid rows in mapping order; malformed keys are skipped silently."""

    rows: List[AnswerRow] = []
    for key, value in raw_answers.items():
        ends = _split_key(key)
        if ends is None:
            continue
        tokens = ("" if value is None else str(value)).strip().split("|")
        a = to_number(tokens[0])
        b = to_number(tokens[1]) if len(tokens) > 1 else 0
        rows.append(AnswerRow(ends[0], ends[1], a, b))
    return rows


def _adjacency(rows: List[AnswerRow]) -> Dict[str, set]:
    neighbors: Dict[str, set] = {}
    for row in rows:
        neighbors.setdefault(row.left, set()).add(row.right)
        neighbors.setdefault(row.right, set()).add(row.left)
    return neighbors


def build_clusters(raw_answers: Mapping[str, Any]) -> List[LabelCluster]:
    """Partition the labels into connected clusters, each naturally sorted."""

    neighbors = _adjacency(parse_rows(raw_answers))
    visited: set = set()
    clusters: List[LabelCluster] = []
    for node in neighbors:
        if node in visited:
            continue
        comp: List[str] = []
        queue = deque([node])
        visited.add(node)
        while queue:
            cur = queue.popleft()
            comp.append(cur)
            for nb in neighbors[cur]:
                if nb not in visited:
                    visited.add(nb)
                    queue.append(nb)
        clusters.append(LabelCluster(labels=tuple(sort_labels(comp))))
    clusters.sort(key=lambda c: natural_label_key(c.labels[0]))
    return clusters
