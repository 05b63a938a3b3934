"""Direct-influence matrices per label cluster, plus the report layout."""
from __future__ import annotations

from typing import Any, List, Mapping, Sequence, Tuple

from .labels import AnswerRow, build_clusters, parse_rows
from .types import InfluenceMatrix, LabelCluster

__all__ = ["group_label", "build", "build_all", "report_block"]


def group_label(labels: Sequence[str]) -> str:
    if not labels:
        return ""
    return f"{labels[0]}-{labels[-1]}"


def _fill(labels: Sequence[str], rows: Sequence[AnswerRow]) -> List[List[float]]:
    idx = {lab: i for i, lab in enumerate(labels)}
    n = len(labels)
    values: List[List[float]] = [[0] * n for _ in range(n)]
    for row in rows:
        if row.left not in idx or row.right not in idx:
            continue
        i, j = idx[row.left], idx[row.right]
        if i == j:
            # a label never influences itself; the diagonal stays 0
            continue
        values[i][j] = row.score_a
        values[j][i] = row.score_b
    return values


def build(cluster: LabelCluster | Sequence[str], raw_answers: Mapping[str, Any]) -> InfluenceMatrix:
    """Place ``a`` at (left, right) and ``b`` at (right, left) for every row
    of ``raw_answers`` whose labels both belong to ``cluster``.
    """

    labels = list(cluster.labels if isinstance(cluster, LabelCluster) else cluster)
    values = _fill(labels, parse_rows(raw_answers))
    return InfluenceMatrix(labels=labels, values=values, group_label=group_label(labels))


def build_all(raw_answers: Mapping[str, Any]) -> List[Tuple[LabelCluster, InfluenceMatrix]]:
    rows = parse_rows(raw_answers)
    out: List[Tuple[LabelCluster, InfluenceMatrix]] = []
    for cluster in build_clusters(raw_answers):
        labels = list(cluster.labels)
        out.append((cluster, InfluenceMatrix(labels=labels, values=_fill(labels, rows), group_label=group_label(labels))))
    return out


def report_block(number: int, matrix: InfluenceMatrix) -> List[List[Any]]:
    """Header row then the labelled (n+1)x(n+1) grid for matrix ``number``."""

    block: List[List[Any]] = [[f"answers.matrix_{number}", f"Group: {matrix.group_label}"]]
    block.append([""] + list(matrix.labels))
    for label, row in zip(matrix.labels, matrix.values):
        block.append([label] + list(row))
    return block
